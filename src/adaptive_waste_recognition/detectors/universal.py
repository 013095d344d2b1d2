"""Universal fallback strategy that always produces a candidate."""

from __future__ import annotations

from typing import List

from ..types import Detection, Region, Strategy, Thresholds
from .base import StrategyClassifier


class UniversalClassifier(StrategyClassifier):
    def __init__(self, confidence: float = 0.5) -> None:
        super().__init__(Strategy.UNIVERSAL, "universal-fallback")
        self.confidence = self._clip_confidence(confidence)

    def classify(self, region: Region, thresholds: Thresholds) -> List[Detection]:
        return [
            Detection(
                region_id=region.id,
                strategy=self.strategy,
                category="general",
                confidence=self.confidence,
                method=self.method,
                object_name="Unidentified Object",
                features=("universal-detection",),
                disposal="general",
                needs_learning=True,
            )
        ]
