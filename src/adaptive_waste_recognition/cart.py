"""Projection of detections into disposal-cart items."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from .types import CartItem, DisposalInfo, EnrichedDetection, EnvironmentalImpact

logger = logging.getLogger(__name__)

DISPOSAL_GUIDE: Dict[str, DisposalInfo] = {
    "recycling": DisposalInfo(
        method="Recycling Center",
        tips=("Clean if necessary", "Check local guidelines", "Remove non-recyclable parts"),
        bin_color="Blue",
        preparation="Clean and sort",
    ),
    "e-waste": DisposalInfo(
        method="Electronics Recycling",
        tips=("Remove personal data", "Check manufacturer programs", "Handle batteries separately"),
        bin_color="Special",
        preparation="Data wipe and component separation",
    ),
    "composting": DisposalInfo(
        method="Compost Bin",
        tips=("Ensure compostable", "Break into small pieces", "Monitor decomposition"),
        bin_color="Green",
        preparation="Size reduction",
    ),
    "textile-recycling": DisposalInfo(
        method="Textile Collection",
        tips=("Wash and dry items", "Donate wearable pieces", "Bag loose scraps together"),
        bin_color="Purple",
        preparation="Clean and bag",
    ),
    "special-handling": DisposalInfo(
        method="Special Disposal",
        tips=("Check local regulations", "May require special center", "Handle with care"),
        bin_color="Special",
        preparation="Research proper disposal",
    ),
    "general": DisposalInfo(
        method="General Waste",
        tips=("Standard disposal", "Check if recyclable", "Minimize when possible"),
        bin_color="Black",
        preparation="Standard disposal",
    ),
}

# Disposal tag used when a detection carries none the guide knows.
CATEGORY_DISPOSAL = {
    "plastic": "recycling",
    "metal": "recycling",
    "glass": "recycling",
    "paper": "recycling",
    "electronic": "e-waste",
    "organic": "composting",
    "fabric": "textile-recycling",
    "general": "general",
}

IMPACT_TABLE: Dict[str, EnvironmentalImpact] = {
    "plastic": EnvironmentalImpact((1.5, 3.2), (20, 85), (800, 2400)),
    "metal": EnvironmentalImpact((2.1, 4.5), (70, 95), (1500, 3500)),
    "glass": EnvironmentalImpact((1.2, 2.8), (80, 90), (600, 1200)),
    "paper": EnvironmentalImpact((0.8, 2.1), (60, 88), (400, 800)),
    "electronic": EnvironmentalImpact((3.2, 8.5), (15, 65), (2000, 5000)),
    "organic": EnvironmentalImpact((0.5, 1.2), (90, 100), (200, 500)),
    "general": EnvironmentalImpact((0.2, 0.8), (5, 25), (100, 300)),
}


def disposal_for(disposal: Optional[str], category: str) -> DisposalInfo:
    """Look up disposal guidance by tag, then by the category's default tag."""

    if disposal in DISPOSAL_GUIDE:
        return DISPOSAL_GUIDE[disposal]
    return DISPOSAL_GUIDE.get(CATEGORY_DISPOSAL.get(category, "general"), DISPOSAL_GUIDE["general"])


def impact_for(category: str) -> EnvironmentalImpact:
    return IMPACT_TABLE.get(category, IMPACT_TABLE["general"])


def project_cart_items(detections: Sequence[EnrichedDetection]) -> List[CartItem]:
    """Map each enriched detection onto exactly one cart item."""

    batch = uuid.uuid4().hex[:8]
    items: List[CartItem] = []
    for index, enriched in enumerate(detections):
        detection = enriched.detection
        items.append(
            CartItem(
                id=f"adaptive_item_{batch}_{index}",
                name=detection.object_name,
                category=detection.category,
                confidence=max(0, min(100, int(round(detection.confidence * 100)))),
                detection_method=detection.method,
                features=detection.features,
                disposal=disposal_for(detection.disposal, detection.category),
                impact=impact_for(detection.category),
                suggestions=enriched.suggestions,
                learning_opportunity=enriched.learning_opportunity,
            )
        )
    return items


class Cart:
    """Items the user intends to dispose of."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[CartItem] = []

    def add(self, items: Iterable[CartItem]) -> int:
        new_items = list(items)
        with self._lock:
            self._items.extend(new_items)
            total = len(self._items)
        logger.debug("Added %d items to cart (%d total)", len(new_items), total)
        return total

    def items(self) -> List[CartItem]:
        with self._lock:
            return list(self._items)

    def summary(self) -> Dict[str, int]:
        counts: Counter = Counter()
        for item in self.items():
            counts[item.category] += item.quantity
        return dict(counts)

    def learning_opportunities(self) -> int:
        return sum(1 for item in self.items() if item.learning_opportunity)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
