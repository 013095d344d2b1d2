"""Learned-pattern strategy backed by the user-feedback store."""

from __future__ import annotations

from typing import List

from ..cart import CATEGORY_DISPOSAL
from ..learning import LearningStore
from ..types import Detection, Region, Strategy, Thresholds
from .base import StrategyClassifier


class LearnedPatternClassifier(StrategyClassifier):
    """Recognises regions that resemble objects users have corrected before."""

    def __init__(self, store: LearningStore) -> None:
        super().__init__(Strategy.LEARNED, "learned-patterns")
        self.store = store

    def classify(self, region: Region, thresholds: Thresholds) -> List[Detection]:
        if len(self.store) == 0:
            return []

        similarity, record = self.store.best_match(region.feature_vector())
        if record is None:
            return []

        # Similarity in [-1, 1] maps onto [0.4, 0.8]; only the upper half counts.
        confidence = self._clip_confidence(0.4 + 0.4 * max(similarity, 0.0))
        if confidence <= thresholds.confidence_threshold:
            return []

        correction = record.correction
        return [
            Detection(
                region_id=region.id,
                strategy=self.strategy,
                category=correction.category,
                confidence=confidence,
                method=self.method,
                object_name=correction.object_name,
                features=("learned-pattern",),
                disposal=CATEGORY_DISPOSAL.get(correction.category, "general"),
            )
        ]
