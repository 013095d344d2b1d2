"""Common types used throughout the recognition pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np


class Strategy(str, Enum):
    """Classification strategies that contribute candidate detections."""

    MATERIAL = "material"
    SHAPE = "shape"
    CONTEXT = "context"
    LEARNED = "learned"
    UNIVERSAL = "universal"


# Tie-break order used when two candidates share the same confidence.
STRATEGY_RANK: Dict[Strategy, int] = {strategy: rank for rank, strategy in enumerate(Strategy)}


class Stability(str, Enum):
    """How consistently an object has been seen across camera frames."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LearningType(str, Enum):
    NEW_OBJECT = "new-object"
    CORRECTION = "correction"


@dataclass(frozen=True)
class BoundingBox:
    """Normalised box, every coordinate in [0, 1]."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def iou(self, other: "BoundingBox") -> float:
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.x + self.width, other.x + other.width)
        y2 = min(self.y + self.height, other.y + other.height)
        if x2 <= x1 or y2 <= y1:
            return 0.0
        intersection = (x2 - x1) * (y2 - y1)
        union = self.area + other.area - intersection
        if union <= 0:
            return 0.0
        return float(intersection / union)


@dataclass(frozen=True)
class EdgeCharacteristics:
    sharpness: float
    regularity: float
    complexity: float


@dataclass(frozen=True)
class TextureMetrics:
    roughness: float
    uniformity: float
    regularity: float


@dataclass(frozen=True)
class Symmetry:
    bilateral: float
    radial: float


@dataclass(frozen=True)
class VisualFeatures:
    brightness: float
    contrast: float
    saturation: float
    dominant_colors: Tuple[str, ...]
    edges: EdgeCharacteristics
    texture: TextureMetrics
    symmetry: Symmetry


@dataclass(frozen=True)
class MaterialIndicators:
    reflectivity: float
    transparency: float
    flexibility: float
    density: float


@dataclass(frozen=True)
class ShapeCharacteristics:
    aspect_ratio: float
    compactness: float
    elongation: float
    hollowness: float


@dataclass(frozen=True)
class ContextualHints:
    likely_context: str
    functional: float
    usage: float
    location: float


@dataclass(frozen=True)
class Region:
    """One candidate object location together with its extracted signals."""

    id: str
    bounding_box: BoundingBox
    visual: VisualFeatures
    material: MaterialIndicators
    shape: ShapeCharacteristics
    context: ContextualHints
    novelty: float
    complexity: float

    def feature_vector(self) -> np.ndarray:
        """Fixed-length embedding used for learned-pattern matching.

        Every component lies in [0, 1]; the aspect ratio is scaled by the
        largest ratio the extractors produce.
        """

        return np.array(
            [
                self.visual.brightness,
                self.visual.contrast,
                self.visual.saturation,
                self.visual.edges.sharpness,
                self.visual.edges.complexity,
                self.visual.texture.roughness,
                self.visual.texture.uniformity,
                self.visual.symmetry.bilateral,
                self.material.reflectivity,
                self.material.transparency,
                self.material.flexibility,
                self.material.density,
                min(self.shape.aspect_ratio / 4.3, 1.0),
                self.shape.compactness,
                self.shape.elongation,
                self.shape.hollowness,
                self.complexity,
            ],
            dtype=np.float64,
        )


@dataclass(frozen=True)
class MaterialAnalysis:
    region_id: str
    material_type: str
    surface_texture: str
    recyclability: float


@dataclass(frozen=True)
class ShapeAnalysis:
    region_id: str
    geometric_shape: str
    symmetry: float
    complexity: float


@dataclass(frozen=True)
class ContextualClue:
    region_id: str
    likely_function: str
    usage_context: str


@dataclass(frozen=True)
class EnvironmentalContext:
    lighting: str
    background: str
    setting: str


@dataclass(frozen=True)
class FeatureBundle:
    """Everything feature extraction learned about one image."""

    regions: Tuple[Region, ...]
    material_analysis: Tuple[MaterialAnalysis, ...] = ()
    shape_analysis: Tuple[ShapeAnalysis, ...] = ()
    contextual_clues: Tuple[ContextualClue, ...] = ()
    environmental_context: Optional[EnvironmentalContext] = None

    def region_map(self) -> Dict[str, Region]:
        return {region.id: region for region in self.regions}


@dataclass(frozen=True)
class Detection:
    """One strategy's scored opinion about a region."""

    region_id: str
    strategy: Strategy
    category: str
    confidence: float
    method: str
    object_name: str
    features: Tuple[str, ...]
    disposal: str
    needs_learning: bool = False


@dataclass(frozen=True)
class ConsolidatedDetection:
    """The single best estimate for a region after ensemble voting."""

    region_id: str
    strategy: Strategy
    category: str
    confidence: float
    method: str
    object_name: str
    features: Tuple[str, ...]
    disposal: str
    needs_learning: bool = False
    ensemble_size: int = 1
    bounding_box: Optional[BoundingBox] = None


@dataclass(frozen=True)
class EnrichedDetection:
    id: str
    detection: ConsolidatedDetection
    description: str
    suggestions: Tuple[str, ...]
    learning_opportunity: bool
    adaptive_score: float

    @property
    def object_name(self) -> str:
        return self.detection.object_name

    @property
    def category(self) -> str:
        return self.detection.category

    @property
    def confidence(self) -> float:
        return self.detection.confidence


@dataclass(frozen=True)
class DisposalInfo:
    method: str
    tips: Tuple[str, ...]
    bin_color: str
    preparation: str


@dataclass(frozen=True)
class EnvironmentalImpact:
    co2_saved_kg: Tuple[float, float]
    recycling_rate_pct: Tuple[float, float]
    energy_saved_kj: Tuple[float, float]


@dataclass(frozen=True)
class CartItem:
    id: str
    name: str
    category: str
    confidence: int
    detection_method: str
    features: Tuple[str, ...]
    disposal: DisposalInfo
    impact: EnvironmentalImpact
    suggestions: Tuple[str, ...] = ()
    quantity: int = 1
    learning_opportunity: bool = False
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Correction:
    """What the user says a detected object really is."""

    category: str
    object_name: str


@dataclass(frozen=True)
class LearningRecord:
    id: str
    timestamp: datetime
    original_label: str
    correction: Correction
    confidence: float = 1.0
    learning_type: LearningType = LearningType.CORRECTION
    feature_vector: Optional[Tuple[float, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "original_label": self.original_label,
            "correction": {
                "category": self.correction.category,
                "object_name": self.correction.object_name,
            },
            "confidence": self.confidence,
            "learning_type": self.learning_type.value,
            "feature_vector": list(self.feature_vector) if self.feature_vector is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningRecord":
        vector = data.get("feature_vector")
        return cls(
            id=str(data["id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            original_label=str(data["original_label"]),
            correction=Correction(
                category=str(data["correction"]["category"]),
                object_name=str(data["correction"]["object_name"]),
            ),
            confidence=float(data.get("confidence", 1.0)),
            learning_type=LearningType(data.get("learning_type", LearningType.CORRECTION.value)),
            feature_vector=tuple(float(v) for v in vector) if vector is not None else None,
        )


@dataclass(frozen=True)
class Thresholds:
    adaptive_threshold: float = 0.4
    confidence_threshold: float = 0.6

    def to_dict(self) -> Dict[str, float]:
        return {
            "adaptive_threshold": self.adaptive_threshold,
            "confidence_threshold": self.confidence_threshold,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Thresholds":
        return cls(
            adaptive_threshold=float(data["adaptive_threshold"]),
            confidence_threshold=float(data["confidence_threshold"]),
        )


@dataclass(frozen=True)
class LearningStatus:
    objects_seen: int
    patterns_learned: int
    adaptation_level: float
    learning_mode: bool = True


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a one-shot scan."""

    success: bool
    detections: Tuple[EnrichedDetection, ...]
    cart_items: Tuple[CartItem, ...]
    method: str
    adaptive_confidence: float
    learning_status: LearningStatus
    error: Optional[str] = None
    material_analysis: Tuple[MaterialAnalysis, ...] = ()
    shape_analysis: Tuple[ShapeAnalysis, ...] = ()
    contextual_clues: Tuple[ContextualClue, ...] = ()
    environmental_context: Optional[EnvironmentalContext] = None

    @property
    def total_detections(self) -> int:
        return len(self.detections)


@dataclass(frozen=True)
class FeedbackResult:
    success: bool
    message: str
    learning_progress: LearningStatus


@dataclass(frozen=True)
class DominantColor:
    rgb: Tuple[float, float, float]
    percentage: float
    hsv: Tuple[int, int, int]


@dataclass(frozen=True)
class SurfaceTexture:
    roughness: float
    smoothness: float
    uniformity: float
    manufactured: float


@dataclass(frozen=True)
class VisualSignature:
    """Compact per-object features the camera pipeline compares across frames."""

    dominant_colors: Tuple[DominantColor, ...]
    edge_intensity: float
    surface_texture: SurfaceTexture
    aspect_ratio: float
    compactness: float


@dataclass(frozen=True)
class FrameDetection:
    """A detection produced by the computer-vision engine for one frame."""

    id: str
    name: str
    category: str
    confidence: int
    recyclable: bool
    class_index: int
    signature: Optional[VisualSignature]
    disposal: DisposalInfo
    bounding_box: BoundingBox
    stability: Optional[Stability] = None
    detection_count: int = 0
    stability_score: float = 0.0
    timestamp: Optional[float] = None
    frame_id: Optional[str] = None


@dataclass(frozen=True)
class VisionResult:
    success: bool
    objects: Tuple[FrameDetection, ...]
    max_confidence: float
    processing_time_ms: float
    detection_id: Optional[str] = None
    error: Optional[str] = None
    fallback: bool = False
