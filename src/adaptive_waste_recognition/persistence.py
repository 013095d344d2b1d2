"""Storage interface for learned corrections and thresholds."""

from __future__ import annotations

import threading
from typing import List, Optional, Protocol, Sequence

from .types import LearningRecord, Thresholds


class LearningPersistence(Protocol):
    """Where a recognizer keeps what it learned between runs.

    Implementations raise :class:`~adaptive_waste_recognition.errors.PersistenceFailure`
    when the backing store is unavailable.
    """

    def load_learning_records(self) -> List[LearningRecord]:
        ...

    def save_learning_records(self, records: Sequence[LearningRecord]) -> None:
        ...

    def load_thresholds(self) -> Optional[Thresholds]:
        ...

    def save_thresholds(self, thresholds: Thresholds) -> None:
        ...


class InMemoryPersistence:
    """Process-local persistence, useful for tests and embedding."""

    def __init__(
        self,
        records: Sequence[LearningRecord] = (),
        thresholds: Optional[Thresholds] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._records = list(records)
        self._thresholds = thresholds

    def load_learning_records(self) -> List[LearningRecord]:
        with self._lock:
            return list(self._records)

    def save_learning_records(self, records: Sequence[LearningRecord]) -> None:
        with self._lock:
            self._records = list(records)

    def load_thresholds(self) -> Optional[Thresholds]:
        with self._lock:
            return self._thresholds

    def save_thresholds(self, thresholds: Thresholds) -> None:
        with self._lock:
            self._thresholds = thresholds
