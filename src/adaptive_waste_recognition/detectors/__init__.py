"""Strategy classifier exports."""

from .base import MAX_CONFIDENCE, StrategyClassifier
from .context import ContextClassifier
from .learned import LearnedPatternClassifier
from .material import MATERIAL_DATABASE, MaterialClassifier, MaterialProfile
from .shape import ShapeClassifier
from .universal import UniversalClassifier

__all__ = [
    "MAX_CONFIDENCE",
    "StrategyClassifier",
    "ContextClassifier",
    "LearnedPatternClassifier",
    "MATERIAL_DATABASE",
    "MaterialClassifier",
    "MaterialProfile",
    "ShapeClassifier",
    "UniversalClassifier",
]
