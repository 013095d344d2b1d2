"""Feature extractors turning images into region signals."""

from .base import COLOR_PALETTES, LIKELY_CONTEXTS, FeatureExtractor
from .computer_vision import ComputerVisionExtractor, ComputerVisionFeatures
from .contours import ContourRegionExtractor
from .synthetic import SeededRegionExtractor

__all__ = [
    "COLOR_PALETTES",
    "LIKELY_CONTEXTS",
    "ComputerVisionExtractor",
    "ComputerVisionFeatures",
    "ContourRegionExtractor",
    "FeatureExtractor",
    "SeededRegionExtractor",
]
