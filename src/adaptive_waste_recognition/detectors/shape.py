"""Shape strategy: geometry and edge complexity."""

from __future__ import annotations

from typing import Dict, List, Tuple

from ..types import Detection, Region, Strategy, Thresholds
from .analysis import complexity_class, shape_class
from .base import StrategyClassifier

SHAPE_CATEGORIES = {
    "elongated": "general",
    "compact": "general",
    "flat-wide": "paper",
    "small-object": "general",
    "irregular": "organic",
}

SHAPE_NAMES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "elongated": {
        "simple": ("Long Object", "Rod-like Item", "Elongated Item"),
        "moderate": ("Shaped Tool", "Functional Item", "Elongated Object"),
        "complex": ("Complex Tool", "Multi-part Item", "Engineered Object"),
    },
    "compact": {
        "simple": ("Round Object", "Compact Item", "Simple Container"),
        "moderate": ("Shaped Object", "Functional Container", "Compact Device"),
        "complex": ("Complex Object", "Multi-function Item", "Sophisticated Device"),
    },
    "flat-wide": {
        "simple": ("Flat Item", "Sheet Material", "Thin Object"),
        "moderate": ("Flat Container", "Layered Item", "Structured Sheet"),
        "complex": ("Complex Panel", "Multi-layer Item", "Composite Sheet"),
    },
    "small-object": {
        "simple": ("Small Item", "Tiny Object", "Small Part"),
        "moderate": ("Small Component", "Detailed Part", "Precision Item"),
        "complex": ("Complex Component", "Intricate Part", "Micro-device"),
    },
}


class ShapeClassifier(StrategyClassifier):
    def __init__(self) -> None:
        super().__init__(Strategy.SHAPE, "shape-analysis")

    def classify(self, region: Region, thresholds: Thresholds) -> List[Detection]:
        shape = shape_class(region.bounding_box, region.shape.aspect_ratio)
        complexity = complexity_class(
            region.visual.edges.complexity, region.visual.texture.roughness
        )
        confidence = self.score(region, shape, complexity)
        if confidence <= thresholds.adaptive_threshold:
            return []

        return [
            Detection(
                region_id=region.id,
                strategy=self.strategy,
                category=SHAPE_CATEGORIES.get(shape, "general"),
                confidence=confidence,
                method=self.method,
                object_name=self._shape_name(shape, complexity, region),
                features=(f"shape: {shape}", f"complexity: {complexity}"),
                disposal=self._disposal(shape, complexity),
            )
        ]

    def score(self, region: Region, shape: str, complexity: str) -> float:
        confidence = 0.4
        if shape in ("compact", "elongated"):
            confidence += 0.2
        if complexity == "simple":
            confidence += 0.15
        if region.visual.edges.sharpness > 0.6:
            confidence += 0.15
        if region.visual.symmetry.bilateral > 0.7:
            confidence += 0.1
        return self._clip_confidence(confidence, cap=0.9)

    def _shape_name(self, shape: str, complexity: str, region: Region) -> str:
        templates = SHAPE_NAMES.get(shape, SHAPE_NAMES["compact"])
        return self._pick_name(templates.get(complexity, templates["simple"]), region)

    @staticmethod
    def _disposal(shape: str, complexity: str) -> str:
        if shape == "flat-wide":
            return "recycling"
        if complexity == "complex":
            return "special-handling"
        return "general"
