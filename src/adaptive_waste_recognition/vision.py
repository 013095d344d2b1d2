"""Computer-vision waste detector used by the camera pipeline."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from .config import DetectorConfig
from .errors import ClassifierFailure, RecognitionError
from .features.computer_vision import FEATURE_LAYOUT, ComputerVisionExtractor, ComputerVisionFeatures
from .image_utils import ImageInput
from .types import BoundingBox, DisposalInfo, FrameDetection, VisionResult, VisualSignature

logger = logging.getLogger(__name__)

Range = Tuple[float, float]


@dataclass(frozen=True)
class WasteCategory:
    index: int
    name: str
    material: str
    recyclable: bool
    hsv_range: Tuple[Tuple[int, int, int], Tuple[int, int, int]]
    shape_ranges: Mapping[str, Range] = field(default_factory=dict)
    texture_ranges: Mapping[str, Range] = field(default_factory=dict)


WASTE_CATEGORIES: Tuple[WasteCategory, ...] = (
    WasteCategory(
        0, "Plastic Bottle", "plastic", True,
        ((0, 100, 100), (179, 255, 255)),
        {"aspect_ratio": (0.3, 0.8), "compactness": (0.4, 0.9)},
        {"smoothness": (0.6, 1.0), "uniformity": (0.5, 1.0)},
    ),
    WasteCategory(
        1, "Glass Bottle", "glass", True,
        ((0, 0, 50), (179, 30, 255)),
        {"aspect_ratio": (0.2, 0.6), "compactness": (0.5, 0.95)},
        {"smoothness": (0.8, 1.0), "reflectivity": (0.7, 1.0)},
    ),
    WasteCategory(
        2, "Aluminum Can", "metal", True,
        ((0, 0, 150), (179, 50, 255)),
        {"aspect_ratio": (0.8, 1.5), "compactness": (0.7, 0.95)},
        {"smoothness": (0.7, 1.0), "reflectivity": (0.8, 1.0)},
    ),
    WasteCategory(
        3, "Paper/Cardboard", "paper", True,
        ((15, 30, 80), (30, 180, 220)),
        {"aspect_ratio": (0.1, 5.0), "compactness": (0.2, 0.8)},
        {"smoothness": (0.2, 0.6), "roughness": (0.4, 0.8)},
    ),
    WasteCategory(
        4, "Food Waste", "organic", False,
        ((0, 50, 50), (179, 255, 255)),
        {"aspect_ratio": (0.3, 3.0), "compactness": (0.2, 0.9)},
        {"smoothness": (0.0, 0.5), "irregularity": (0.5, 1.0)},
    ),
    WasteCategory(
        5, "Electronic Device", "electronic", True,
        ((0, 0, 0), (179, 255, 100)),
        {"aspect_ratio": (0.5, 2.0), "compactness": (0.6, 0.95)},
        {"complexity": (0.6, 1.0), "manufactured": (0.7, 1.0)},
    ),
)

VISION_DISPOSAL: Dict[str, DisposalInfo] = {
    "plastic": DisposalInfo("Recycling Center", ("Clean container thoroughly and remove all labels",), "Blue", "Recyclable"),
    "glass": DisposalInfo("Glass Recycling", ("Rinse clean and remove caps/lids",), "Green", "Recyclable"),
    "metal": DisposalInfo("Metal Recycling", ("Clean and sort by metal type",), "Blue", "Recyclable"),
    "paper": DisposalInfo("Paper Recycling", ("Keep dry and remove non-paper materials",), "Blue", "Recyclable"),
    "organic": DisposalInfo("Compost Bin", ("Compost or organic waste collection",), "Brown", "Compostable"),
    "electronic": DisposalInfo(
        "E-waste Center", ("Take to certified electronics recycling facility",), "Special", "Special Handling"
    ),
}
GENERAL_DISPOSAL = DisposalInfo("General Waste", ("Check local waste management guidelines",), "Black", "General")

FALLBACK_CONFIDENCE = 35
# Thinnest box side, relative to the long side, an estimated box may have.
MIN_BOX_ASPECT = 0.05


def metric_lookup(vector: np.ndarray) -> Dict[str, float]:
    """Read the named metrics back out of a feature vector.

    ``complexity`` and ``irregularity`` are derived: the former is the
    normalised texture complexity, the latter the complement of compactness.
    """

    metrics = {name: float(vector[index]) for index, name in enumerate(FEATURE_LAYOUT)}
    metrics["complexity"] = metrics["texture_complexity"]
    metrics["irregularity"] = float(np.clip(1.0 - metrics["compactness"], 0.0, 1.0))
    return metrics


def range_affinity(value: float, bounds: Range) -> float:
    """1 inside ``bounds``, decaying linearly with the distance outside."""

    low, high = bounds
    if low <= value <= high:
        return 1.0
    width = max(high - low, 1e-6)
    gap = low - value if value < low else value - high
    return max(0.0, 1.0 - gap / width)


def fraction_in_range(metrics: Mapping[str, float], ranges: Mapping[str, Range]) -> float:
    if not ranges:
        return 1.0
    hits = sum(1 for name, (low, high) in ranges.items() if low <= metrics.get(name, -1.0) <= high)
    return hits / len(ranges)


class CategoryClassifier(Protocol):
    """Anything mapping a feature vector onto one score per waste category."""

    def predict(self, vector: np.ndarray) -> np.ndarray:
        ...


class ProfileAffinityClassifier:
    """Scores each category by how close the metrics sit to its profile ranges."""

    def __init__(self, categories: Sequence[WasteCategory] = WASTE_CATEGORIES) -> None:
        self.categories = tuple(categories)

    def predict(self, vector: np.ndarray) -> np.ndarray:
        metrics = metric_lookup(vector)
        scores = []
        for category in self.categories:
            ranges = dict(category.shape_ranges)
            ranges.update(category.texture_ranges)
            affinities = [range_affinity(metrics.get(name, 0.0), bounds) for name, bounds in ranges.items()]
            scores.append(float(np.mean(affinities)) if affinities else 0.0)
        return np.asarray(scores, dtype=np.float64)


class VisionWasteDetector:
    """Classifies a whole frame into the six known waste categories.

    Only one frame is processed at a time; a second call while one is running
    returns an unsuccessful result instead of waiting.
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        extractor: Optional[ComputerVisionExtractor] = None,
        classifier: Optional[CategoryClassifier] = None,
        categories: Sequence[WasteCategory] = WASTE_CATEGORIES,
    ) -> None:
        self.config = config or DetectorConfig()
        self.categories = tuple(categories)
        self.extractor = extractor or ComputerVisionExtractor(
            image_size=self.config.image_size,
            kmeans_clusters=self.config.kmeans_clusters,
            kmeans_max_iterations=self.config.kmeans_max_iterations,
            seed=self.config.random_seed or 0,
        )
        self.classifier = classifier or ProfileAffinityClassifier(self.categories)
        self.confidence_threshold = self.config.vision_confidence_threshold
        self._lock = threading.Lock()
        self._feedback_lock = threading.Lock()
        self._feedback: Dict[str, dict] = {}

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    def detect(self, image_input: ImageInput) -> VisionResult:
        if not self._lock.acquire(blocking=False):
            return VisionResult(
                success=False, objects=(), max_confidence=0.0, processing_time_ms=0.0, error="busy"
            )

        start = time.perf_counter()
        try:
            features = self.extractor.extract(image_input)
            raw_scores = self._predict(features.to_vector())
            if raw_scores.shape != (len(self.categories),):
                raise ValueError(
                    f"Classifier returned {raw_scores.shape} scores for {len(self.categories)} categories"
                )
            scores = self.apply_constraints(raw_scores, features)
            detection_id = f"real_{uuid.uuid4().hex[:8]}"
            objects = self._build_objects(detection_id, scores, features)
        except (RecognitionError, ValueError, cv2.error) as exc:
            elapsed = (time.perf_counter() - start) * 1000.0
            logger.warning("Vision detection failed: %s", exc)
            return VisionResult(
                success=False,
                objects=(self._fallback_object(),),
                max_confidence=FALLBACK_CONFIDENCE / 100.0,
                processing_time_ms=elapsed,
                error=str(exc),
                fallback=True,
            )
        finally:
            self._lock.release()

        elapsed = (time.perf_counter() - start) * 1000.0
        max_confidence = max((obj.confidence for obj in objects), default=0) / 100.0
        logger.debug("Vision detection found %d objects in %.1f ms", len(objects), elapsed)
        return VisionResult(
            success=True,
            objects=tuple(objects),
            max_confidence=max_confidence,
            processing_time_ms=elapsed,
            detection_id=detection_id,
        )

    def apply_constraints(self, scores: np.ndarray, features: ComputerVisionFeatures) -> np.ndarray:
        """Weight raw scores by colour, shape and texture plausibility."""

        metrics = metric_lookup(features.to_vector())
        top_color = features.dominant_colors[0].hsv if features.dominant_colors else None
        adjusted = np.zeros(len(self.categories), dtype=np.float64)
        for index, category in enumerate(self.categories):
            color = self._color_match(top_color, category)
            shape = fraction_in_range(metrics, category.shape_ranges)
            texture = fraction_in_range(metrics, category.texture_ranges)
            constraint = 0.4 * color + 0.3 * shape + 0.3 * texture
            adjusted[index] = scores[index] * (0.5 + 0.5 * constraint)
        return np.clip(np.nan_to_num(adjusted), 0.0, 1.0)

    def record_feedback(
        self,
        detection_id: str,
        category: str,
        name: str,
        confidence: float = 1.0,
    ) -> int:
        """Store a correction and nudge the detection threshold; returns the feedback count."""

        with self._feedback_lock:
            self._feedback[detection_id] = {
                "category": category,
                "name": name,
                "confidence": confidence,
                "timestamp": time.time(),
            }
            if confidence > 0.8:
                self.confidence_threshold = max(0.5, self.confidence_threshold - 0.01)
            else:
                self.confidence_threshold = min(0.8, self.confidence_threshold + 0.01)
            self.confidence_threshold = round(self.confidence_threshold, 4)
            total = len(self._feedback)
        logger.info("Adjusted vision confidence threshold to %.3f", self.confidence_threshold)
        return total

    def model_info(self) -> dict:
        return {
            "model_type": "Computer Vision Profile Matching",
            "categories": [category.name for category in self.categories],
            "total_categories": len(self.categories),
            "confidence_threshold": self.confidence_threshold,
            "image_size": self.config.image_size,
            "feedback_count": len(self._feedback),
            "classifier": type(self.classifier).__name__,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _predict(self, vector: np.ndarray) -> np.ndarray:
        try:
            return np.asarray(self.classifier.predict(vector), dtype=np.float64)
        except Exception as exc:
            logger.exception("%s failed to score the frame", type(self.classifier).__name__)
            raise ClassifierFailure(str(exc)) from exc

    def _build_objects(
        self,
        detection_id: str,
        scores: np.ndarray,
        features: ComputerVisionFeatures,
    ) -> List[FrameDetection]:
        ranked = sorted(range(len(scores)), key=lambda index: -scores[index])[: self.config.top_predictions]
        signature = VisualSignature(
            dominant_colors=features.dominant_colors[:3],
            edge_intensity=features.edge_intensity,
            surface_texture=features.surface_texture,
            aspect_ratio=features.aspect_ratio,
            compactness=features.compactness,
        )
        box = estimate_bounding_box(features)

        objects = []
        for index in ranked:
            if scores[index] <= self.confidence_threshold:
                continue
            category = self.categories[index]
            objects.append(
                FrameDetection(
                    id=f"{detection_id}_{category.index}",
                    name=category.name,
                    category=category.material,
                    confidence=int(round(scores[index] * 100)),
                    recyclable=category.recyclable,
                    class_index=category.index,
                    signature=signature,
                    disposal=VISION_DISPOSAL.get(category.material, GENERAL_DISPOSAL),
                    bounding_box=box,
                )
            )
        return objects

    @staticmethod
    def _color_match(hsv: Optional[Tuple[int, int, int]], category: WasteCategory) -> float:
        if hsv is None:
            return 0.0
        low, high = category.hsv_range
        if all(low[channel] <= hsv[channel] <= high[channel] for channel in range(3)):
            return 1.0
        return 0.2

    @staticmethod
    def _fallback_object() -> FrameDetection:
        return FrameDetection(
            id=f"fallback_real_{uuid.uuid4().hex[:8]}",
            name="Unknown Object",
            category="unknown",
            confidence=FALLBACK_CONFIDENCE,
            recyclable=False,
            class_index=-1,
            signature=None,
            disposal=GENERAL_DISPOSAL,
            bounding_box=BoundingBox(x=0.2, y=0.2, width=0.6, height=0.6),
        )


def estimate_bounding_box(features: ComputerVisionFeatures) -> BoundingBox:
    """Centre a box whose long side is 0.6 and whose shape follows the aspect ratio."""

    if features.contours.count == 0:
        return BoundingBox(x=0.2, y=0.2, width=0.6, height=0.6)

    aspect = min(max(features.aspect_ratio, MIN_BOX_ASPECT), 1.0 / MIN_BOX_ASPECT)
    if aspect > 1:
        width, height = 0.6, 0.6 / aspect
    else:
        width, height = 0.6 * aspect, 0.6
    return BoundingBox(x=(1 - width) / 2, y=(1 - height) / 2, width=width, height=height)
