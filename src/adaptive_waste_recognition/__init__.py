"""Public exports for the adaptive waste recognition package."""

from .cart import Cart, project_cart_items
from .config import DetectorConfig
from .ensemble import consolidate
from .errors import (
    ClassifierFailure,
    ConsolidationInconsistency,
    ExtractionFailure,
    PersistenceFailure,
    RecognitionError,
    ScanCancelled,
)
from .learning import LearningStore, ThresholdController, apply_adaptive_learning
from .persistence import InMemoryPersistence, LearningPersistence
from .recognizer import AdaptiveWasteRecognizer
from .scanner import CameraScanner
from .smoothing import TemporalSmoother, filter_stream
from .types import (
    CartItem,
    ConsolidatedDetection,
    Correction,
    Detection,
    EnrichedDetection,
    FrameDetection,
    LearningRecord,
    ScanResult,
    Stability,
    Strategy,
    Thresholds,
    VisionResult,
)
from .vision import VisionWasteDetector

__all__ = [
    "AdaptiveWasteRecognizer",
    "CameraScanner",
    "Cart",
    "CartItem",
    "ClassifierFailure",
    "ConsolidatedDetection",
    "ConsolidationInconsistency",
    "Correction",
    "Detection",
    "DetectorConfig",
    "EnrichedDetection",
    "ExtractionFailure",
    "FrameDetection",
    "InMemoryPersistence",
    "LearningPersistence",
    "LearningRecord",
    "LearningStore",
    "PersistenceFailure",
    "RecognitionError",
    "ScanCancelled",
    "ScanResult",
    "Stability",
    "Strategy",
    "TemporalSmoother",
    "ThresholdController",
    "Thresholds",
    "VisionResult",
    "VisionWasteDetector",
    "apply_adaptive_learning",
    "consolidate",
    "filter_stream",
    "project_cart_items",
]
