"""Context strategy: infers the object from where and how it is used."""

from __future__ import annotations

from typing import List

from ..types import Detection, Region, Strategy, Thresholds
from .base import StrategyClassifier

CONTEXT_CATEGORIES = {
    "kitchen-item": "general",
    "office-supply": "paper",
    "electronic-device": "electronic",
    "packaging-material": "plastic",
    "household-item": "general",
    "tool": "metal",
    "decorative-object": "general",
    "storage-container": "plastic",
}

CONTEXT_DISPOSAL = {
    "office-supply": "recycling",
    "electronic-device": "e-waste",
    "packaging-material": "recycling",
    "storage-container": "recycling",
}

CONTEXT_NAMES = {
    "kitchen-item": ("Kitchen Utensil", "Kitchen Container", "Kitchen Item"),
    "office-supply": ("Office Item", "Stationery", "Office Supply"),
    "electronic-device": ("Electronic Device", "Electronic Item", "Tech Object"),
    "packaging-material": ("Packaging", "Package Material", "Container"),
    "household-item": ("Household Item", "Home Object", "Domestic Item"),
    "tool": ("Tool", "Instrument", "Implement"),
    "decorative-object": ("Decorative Item", "Ornament", "Display Object"),
    "storage-container": ("Storage Container", "Storage Box", "Container"),
}

_UNKNOWN_NAMES = ("Unknown Item", "General Object", "Unidentified Item")


class ContextClassifier(StrategyClassifier):
    def __init__(self) -> None:
        super().__init__(Strategy.CONTEXT, "context-analysis")

    def classify(self, region: Region, thresholds: Thresholds) -> List[Detection]:
        hints = region.context
        confidence = 0.3
        if hints.functional > 0.7:
            confidence += 0.2
        if hints.usage > 0.6:
            confidence += 0.15
        if hints.location > 0.6:
            confidence += 0.15
        confidence = self._clip_confidence(confidence, cap=0.8)
        if confidence <= thresholds.adaptive_threshold:
            return []

        context = hints.likely_context or "general"
        return [
            Detection(
                region_id=region.id,
                strategy=self.strategy,
                category=CONTEXT_CATEGORIES.get(context, "general"),
                confidence=confidence,
                method=self.method,
                object_name=self._pick_name(CONTEXT_NAMES.get(context, _UNKNOWN_NAMES), region),
                features=(f"context: {context}",),
                disposal=CONTEXT_DISPOSAL.get(context, "general"),
            )
        ]
