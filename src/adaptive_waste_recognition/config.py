"""Runtime configuration for the recognition pipeline.

Every tunable has a default and can be overridden through a ``WASTE_*``
environment variable via :meth:`DetectorConfig.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _env_optional_int(key: str) -> Optional[int]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass(frozen=True)
class DetectorConfig:
    """Tunables shared by the one-shot recognizer and the camera pipeline."""

    # Adaptive strategy gates
    adaptive_threshold: float = 0.4
    confidence_threshold: float = 0.6

    # Region extraction
    max_regions: int = 8
    min_region_area: float = 0.005
    random_seed: Optional[int] = None

    # Validation of consolidated detections
    min_valid_confidence: float = 0.3
    min_valid_area: float = 0.005
    max_valid_area: float = 0.95

    # Computer-vision engine
    image_size: int = 224
    kmeans_clusters: int = 5
    kmeans_max_iterations: int = 10
    vision_confidence_threshold: float = 0.65
    top_predictions: int = 3

    # Camera pipeline
    processing_interval_ms: int = 1000
    max_detection_history: int = 10
    confidence_smoothing: int = 3
    similarity_threshold: float = 0.7
    min_stream_confidence: int = 50

    @property
    def history_window_ms(self) -> int:
        return self.processing_interval_ms * self.max_detection_history

    @classmethod
    def from_env(cls) -> "DetectorConfig":
        defaults = cls()
        return cls(
            adaptive_threshold=_env_float("WASTE_ADAPTIVE_THRESHOLD", defaults.adaptive_threshold),
            confidence_threshold=_env_float("WASTE_CONFIDENCE_THRESHOLD", defaults.confidence_threshold),
            max_regions=_env_int("WASTE_MAX_REGIONS", defaults.max_regions),
            min_region_area=_env_float("WASTE_MIN_REGION_AREA", defaults.min_region_area),
            random_seed=_env_optional_int("WASTE_RANDOM_SEED"),
            min_valid_confidence=_env_float("WASTE_MIN_VALID_CONFIDENCE", defaults.min_valid_confidence),
            min_valid_area=_env_float("WASTE_MIN_VALID_AREA", defaults.min_valid_area),
            max_valid_area=_env_float("WASTE_MAX_VALID_AREA", defaults.max_valid_area),
            image_size=_env_int("WASTE_IMAGE_SIZE", defaults.image_size),
            kmeans_clusters=_env_int("WASTE_KMEANS_CLUSTERS", defaults.kmeans_clusters),
            kmeans_max_iterations=_env_int("WASTE_KMEANS_MAX_ITERATIONS", defaults.kmeans_max_iterations),
            vision_confidence_threshold=_env_float(
                "WASTE_VISION_CONFIDENCE_THRESHOLD", defaults.vision_confidence_threshold
            ),
            top_predictions=_env_int("WASTE_TOP_PREDICTIONS", defaults.top_predictions),
            processing_interval_ms=_env_int("WASTE_PROCESSING_INTERVAL_MS", defaults.processing_interval_ms),
            max_detection_history=_env_int("WASTE_MAX_DETECTION_HISTORY", defaults.max_detection_history),
            confidence_smoothing=_env_int("WASTE_CONFIDENCE_SMOOTHING", defaults.confidence_smoothing),
            similarity_threshold=_env_float("WASTE_SIMILARITY_THRESHOLD", defaults.similarity_threshold),
            min_stream_confidence=_env_int("WASTE_MIN_STREAM_CONFIDENCE", defaults.min_stream_confidence),
        )
