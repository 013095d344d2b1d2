"""Base strategy classifier definitions."""

from __future__ import annotations

import zlib
from abc import ABC, abstractmethod
from typing import List, Sequence

from ..types import Detection, Region, Strategy, Thresholds

# Highest confidence any single strategy may report.
MAX_CONFIDENCE = 0.95


class StrategyClassifier(ABC):
    """Abstract base class for one independent classification strategy."""

    strategy: Strategy
    method: str

    def __init__(self, strategy: Strategy, method: str) -> None:
        self.strategy = strategy
        self.method = method

    @abstractmethod
    def classify(self, region: Region, thresholds: Thresholds) -> List[Detection]:
        """Return zero or more candidate detections for ``region``."""

    def _clip_confidence(self, value: float, cap: float = MAX_CONFIDENCE) -> float:
        return float(max(0.0, min(cap, value)))

    @staticmethod
    def _pick_name(names: Sequence[str], region: Region) -> str:
        """Choose a template name, stable for a given region id."""

        return names[zlib.crc32(region.id.encode("utf-8")) % len(names)]
