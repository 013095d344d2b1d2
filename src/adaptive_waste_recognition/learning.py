"""User-feedback learning store, threshold control and learned boosts."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .types import (
    ConsolidatedDetection,
    Correction,
    LearningRecord,
    LearningStatus,
    LearningType,
    Region,
    Thresholds,
)

logger = logging.getLogger(__name__)

UNKNOWN_LABELS = ("Unknown", "Unknown Object")
SIMILARITY_BOOST_THRESHOLD = 0.75
LEARNED_BOOST = 0.1
PATTERN_MATCH_BOOST = 0.05
MAX_CONFIDENCE = 0.95


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two unit-range embeddings centred on 0.5.

    Centring keeps two mid-grey embeddings from looking identical just
    because every component is positive. Mismatched lengths or zero vectors
    score 0.
    """

    left = np.asarray(a, dtype=np.float64) - 0.5
    right = np.asarray(b, dtype=np.float64) - 0.5
    if left.shape != right.shape:
        return 0.0
    norm = float(np.linalg.norm(left) * np.linalg.norm(right))
    if norm == 0.0:
        return 0.0
    return float(np.dot(left, right) / norm)


def time_ago(timestamp: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    seconds = max((now - timestamp).total_seconds(), 0.0)

    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        count = int(seconds // size)
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return "Just now"


@dataclass(frozen=True)
class HistoryEntry:
    record: LearningRecord
    time_ago: str


class LearningStore:
    """Corrections supplied by users, keyed by detection id.

    Safe to share between threads; every read and write takes the store lock.
    """

    def __init__(self, records: Iterable[LearningRecord] = (), learning_mode: bool = True) -> None:
        self.learning_mode = learning_mode
        self._lock = threading.RLock()
        self._records: "OrderedDict[str, LearningRecord]" = OrderedDict()
        self.load(records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def load(self, records: Iterable[LearningRecord]) -> None:
        """Replace the store contents with ``records``."""

        with self._lock:
            self._records.clear()
            for record in records:
                self._records[record.id] = record

    def record_feedback(
        self,
        detection_id: str,
        correction: Correction,
        original_label: str,
        feature_vector: Optional[Sequence[float]] = None,
        confidence: float = 1.0,
        timestamp: Optional[datetime] = None,
    ) -> LearningStatus:
        learning_type = (
            LearningType.NEW_OBJECT if original_label in UNKNOWN_LABELS else LearningType.CORRECTION
        )
        record = LearningRecord(
            id=detection_id,
            timestamp=timestamp or datetime.now(timezone.utc),
            original_label=original_label,
            correction=correction,
            confidence=confidence,
            learning_type=learning_type,
            feature_vector=tuple(float(v) for v in feature_vector) if feature_vector is not None else None,
        )
        with self._lock:
            self._records[detection_id] = record
            self._records.move_to_end(detection_id)
        logger.info(
            "Learned %s (%s) from feedback on %s [%s]",
            correction.object_name,
            correction.category,
            detection_id,
            learning_type.value,
        )
        return self.status()

    def records(self) -> List[LearningRecord]:
        with self._lock:
            return list(self._records.values())

    def status(self) -> LearningStatus:
        size = len(self)
        return LearningStatus(
            objects_seen=size,
            patterns_learned=int(size * 0.7),
            adaptation_level=min(size / 100, 1.0),
            learning_mode=self.learning_mode,
        )

    def history(self, now: Optional[datetime] = None) -> List[HistoryEntry]:
        return [HistoryEntry(record=record, time_ago=time_ago(record.timestamp, now)) for record in self.records()]

    def best_match(self, vector: Sequence[float]) -> Tuple[float, Optional[LearningRecord]]:
        """Return the most similar stored correction and its similarity."""

        best_score = -1.0
        best_record: Optional[LearningRecord] = None
        for record in self.records():
            if record.feature_vector is None:
                continue
            score = cosine_similarity(vector, record.feature_vector)
            if score > best_score:
                best_score = score
                best_record = record
        return best_score, best_record

    def has_pattern(self, category: str, object_name: str) -> bool:
        return any(
            record.correction.category == category and record.correction.object_name == object_name
            for record in self.records()
        )


class ThresholdController:
    """Hysteresis control of the strategy thresholds from observed false positives."""

    ADAPTIVE_BOUNDS = (0.2, 0.8)
    CONFIDENCE_BOUNDS = (0.3, 0.9)

    def __init__(self, thresholds: Optional[Thresholds] = None) -> None:
        self._lock = threading.Lock()
        self._thresholds = thresholds or Thresholds()

    @property
    def thresholds(self) -> Thresholds:
        with self._lock:
            return self._thresholds

    def load(self, thresholds: Thresholds) -> None:
        with self._lock:
            self._thresholds = thresholds

    def adapt(self, false_positive_rate: float) -> Thresholds:
        with self._lock:
            current = self._thresholds
            if false_positive_rate > 0.3:
                step = 0.05
            elif false_positive_rate < 0.1:
                step = -0.02
            else:
                step = 0.0

            adaptive = _clamp(current.adaptive_threshold + step, *self.ADAPTIVE_BOUNDS)
            confidence = _clamp(current.confidence_threshold + step, *self.CONFIDENCE_BOUNDS)
            self._thresholds = Thresholds(
                adaptive_threshold=round(adaptive, 4),
                confidence_threshold=round(confidence, 4),
            )
            updated = self._thresholds

        logger.info(
            "Adapted thresholds: adaptive=%.2f, confidence=%.2f (false positive rate %.2f)",
            updated.adaptive_threshold,
            updated.confidence_threshold,
            false_positive_rate,
        )
        return updated


def apply_adaptive_learning(
    detections: Sequence[ConsolidatedDetection],
    regions: Mapping[str, Region],
    store: LearningStore,
) -> List[ConsolidatedDetection]:
    """Raise confidence of detections that resemble what users have taught."""

    if len(store) == 0:
        return list(detections)

    boosted: List[ConsolidatedDetection] = []
    for detection in detections:
        confidence = detection.confidence
        features = list(detection.features)

        region = regions.get(detection.region_id)
        if region is not None:
            similarity, _ = store.best_match(region.feature_vector())
            if similarity >= SIMILARITY_BOOST_THRESHOLD:
                confidence += LEARNED_BOOST
                features.append("learned-boost")

        if store.has_pattern(detection.category, detection.object_name):
            confidence += PATTERN_MATCH_BOOST
            features.append("pattern-match")

        boosted.append(
            replace(
                detection,
                confidence=min(confidence, MAX_CONFIDENCE),
                features=tuple(dict.fromkeys(features)),
            )
        )
    return boosted


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
