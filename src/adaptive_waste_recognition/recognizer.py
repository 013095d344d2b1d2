"""High level API that runs the adaptive multi-strategy pipeline."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from typing import Iterable, List, Optional, Sequence, Tuple

from .cart import project_cart_items
from .config import DetectorConfig
from .detectors import (
    MAX_CONFIDENCE,
    ContextClassifier,
    LearnedPatternClassifier,
    MaterialClassifier,
    ShapeClassifier,
    StrategyClassifier,
    UniversalClassifier,
)
from .ensemble import consolidate
from .errors import ClassifierFailure, ExtractionFailure, PersistenceFailure, ScanCancelled
from .features import ContourRegionExtractor, FeatureExtractor
from .image_utils import ImageInput
from .learning import LearningStore, ThresholdController, apply_adaptive_learning
from .persistence import LearningPersistence
from .types import (
    ConsolidatedDetection,
    Correction,
    Detection,
    EnrichedDetection,
    FeatureBundle,
    FeedbackResult,
    LearningStatus,
    Region,
    ScanResult,
    Strategy,
    Thresholds,
)

logger = logging.getLogger(__name__)

SCAN_METHOD = "adaptive_universal"
FALLBACK_METHOD = "universal-fallback"
LOW_CONFIDENCE = 0.6
_RECENT_LIMIT = 256


class AdaptiveWasteRecognizer:
    """Runs every strategy on each region of an image and consolidates the results."""

    def __init__(
        self,
        extractor: Optional[FeatureExtractor] = None,
        classifiers: Optional[Sequence[StrategyClassifier]] = None,
        store: Optional[LearningStore] = None,
        persistence: Optional[LearningPersistence] = None,
        config: Optional[DetectorConfig] = None,
    ) -> None:
        self.config = config or DetectorConfig()
        self.extractor = extractor or ContourRegionExtractor(
            max_regions=self.config.max_regions,
            min_region_area=self.config.min_region_area,
        )
        self.store = store if store is not None else LearningStore()
        self.controller = ThresholdController(
            Thresholds(
                adaptive_threshold=self.config.adaptive_threshold,
                confidence_threshold=self.config.confidence_threshold,
            )
        )
        self.classifiers: List[StrategyClassifier] = list(
            classifiers if classifiers is not None else self._default_classifiers(self.store)
        )
        self.persistence = persistence
        self._lock = threading.Lock()
        self._recent: "OrderedDict[str, Tuple[Optional[Region], str]]" = OrderedDict()

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    @property
    def thresholds(self) -> Thresholds:
        return self.controller.thresholds

    def start(self) -> None:
        """Restore learned corrections and thresholds from persistence."""

        if self.persistence is None:
            return
        try:
            records = self.persistence.load_learning_records()
        except PersistenceFailure as exc:
            logger.warning("Could not load learning records, starting empty: %s", exc)
        else:
            self.store.load(records)
            logger.info("Loaded %d learning records", len(records))

        try:
            thresholds = self.persistence.load_thresholds()
        except PersistenceFailure as exc:
            logger.warning("Could not load thresholds, keeping defaults: %s", exc)
            return
        if thresholds is not None:
            self.controller.load(thresholds)

    def shutdown(self) -> None:
        """Save learned corrections and thresholds to persistence."""

        if self.persistence is None:
            return
        try:
            self.persistence.save_learning_records(self.store.records())
            self.persistence.save_thresholds(self.controller.thresholds)
        except PersistenceFailure as exc:
            logger.warning("Could not save learning data: %s", exc)

    def detect(
        self,
        image_input: ImageInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """Scan an image and return detections with their cart projection.

        Only one scan runs at a time; a call made while another is in flight
        returns immediately with ``error="busy"``.
        """

        if not self._lock.acquire(blocking=False):
            logger.warning("Scan rejected, another scan is in progress")
            return self._unsuccessful("busy")
        try:
            return self._scan(image_input, cancel_event)
        except ScanCancelled:
            logger.info("Scan cancelled")
            return self._unsuccessful("cancelled")
        finally:
            self._lock.release()

    def submit_feedback(
        self,
        detection_id: str,
        correction: Correction,
        original_label: Optional[str] = None,
    ) -> FeedbackResult:
        region, label = self._recent.get(detection_id, (None, "Unknown"))
        status = self.store.record_feedback(
            detection_id,
            correction,
            original_label if original_label is not None else label,
            feature_vector=region.feature_vector() if region is not None else None,
        )
        return FeedbackResult(
            success=True,
            message="Feedback recorded successfully",
            learning_progress=status,
        )

    def adapt_thresholds(self, false_positive_rate: float) -> Thresholds:
        return self.controller.adapt(false_positive_rate)

    def learning_status(self) -> LearningStatus:
        return self.store.status()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _scan(self, image_input: ImageInput, cancel_event: Optional[threading.Event]) -> ScanResult:
        thresholds = self.controller.thresholds
        try:
            bundle = self.extractor.extract(image_input, cancel_event)
        except ExtractionFailure as exc:
            logger.warning("Feature extraction failed, using universal fallback: %s", exc)
            return self._fallback_result()

        if not bundle.regions:
            logger.info("No object regions found, using universal fallback")
            return self._fallback_result(bundle)

        candidates = []
        for region in bundle.regions:
            _check_cancelled(cancel_event)
            for classifier in self.classifiers:
                try:
                    candidates.extend(check_candidates(region, classifier.classify(region, thresholds)))
                except ClassifierFailure as exc:
                    logger.warning(
                        "Dropping %s output for %s: %s", classifier.strategy.value, region.id, exc
                    )
                except Exception:
                    logger.exception(
                        "%s strategy failed on %s, skipping it", classifier.strategy.value, region.id
                    )

        _check_cancelled(cancel_event)
        region_map = bundle.region_map()
        consolidated = consolidate(candidates, bundle.regions)
        boosted = apply_adaptive_learning(consolidated, region_map, self.store)
        valid = [detection for detection in boosted if self._is_valid(detection)]
        if not valid:
            logger.info("Every detection failed validation, using universal fallback")
            return self._fallback_result(bundle)

        enriched = enrich_detections(valid)
        for item in enriched:
            self._remember(item.id, region_map.get(item.detection.region_id), item.object_name)

        logger.info(
            "Scan found %d objects from %d candidates over %d regions",
            len(enriched),
            len(candidates),
            len(bundle.regions),
        )
        return ScanResult(
            success=True,
            detections=tuple(enriched),
            cart_items=tuple(project_cart_items(enriched)),
            method=SCAN_METHOD,
            adaptive_confidence=sum(item.adaptive_score for item in enriched) / len(enriched),
            learning_status=self.store.status(),
            **_analyses(bundle),
        )

    def _is_valid(self, detection: ConsolidatedDetection) -> bool:
        if detection.confidence < self.config.min_valid_confidence:
            return False
        box = detection.bounding_box
        if box is not None and not self.config.min_valid_area <= box.area <= self.config.max_valid_area:
            return False
        return True

    def _fallback_result(self, bundle: Optional[FeatureBundle] = None) -> ScanResult:
        detection = ConsolidatedDetection(
            region_id="fallback",
            strategy=Strategy.UNIVERSAL,
            category="general",
            confidence=0.4,
            method=FALLBACK_METHOD,
            object_name="Unknown Object",
            features=("fallback-detection",),
            disposal="general",
            needs_learning=True,
        )
        enriched = EnrichedDetection(
            id=f"fallback_{uuid.uuid4().hex[:8]}",
            detection=detection,
            description="Object detected but needs manual classification for learning",
            suggestions=(),
            learning_opportunity=True,
            adaptive_score=detection.confidence,
        )
        self._remember(enriched.id, None, enriched.object_name)
        return ScanResult(
            success=True,
            detections=(enriched,),
            cart_items=tuple(project_cart_items([enriched])),
            method=FALLBACK_METHOD,
            adaptive_confidence=enriched.adaptive_score,
            learning_status=self.store.status(),
            **_analyses(bundle),
        )

    def _unsuccessful(self, error: str) -> ScanResult:
        return ScanResult(
            success=False,
            detections=(),
            cart_items=(),
            method=SCAN_METHOD,
            adaptive_confidence=0.0,
            learning_status=self.store.status(),
            error=error,
        )

    def _remember(self, detection_id: str, region: Optional[Region], label: str) -> None:
        self._recent[detection_id] = (region, label)
        while len(self._recent) > _RECENT_LIMIT:
            self._recent.popitem(last=False)

    @staticmethod
    def _default_classifiers(store: LearningStore) -> Iterable[StrategyClassifier]:
        return (
            MaterialClassifier(),
            ShapeClassifier(),
            ContextClassifier(),
            LearnedPatternClassifier(store),
            UniversalClassifier(),
        )


def enrich_detections(detections: Sequence[ConsolidatedDetection]) -> List[EnrichedDetection]:
    """Attach ids, descriptions and improvement suggestions."""

    batch = uuid.uuid4().hex[:8]
    return [
        EnrichedDetection(
            id=f"adaptive_{batch}_{index}",
            detection=detection,
            description=describe(detection),
            suggestions=suggestions_for(detection),
            learning_opportunity=detection.needs_learning or detection.confidence < LOW_CONFIDENCE,
            adaptive_score=adaptive_score(detection),
        )
        for index, detection in enumerate(detections)
    ]


def describe(detection: ConsolidatedDetection) -> str:
    return (
        f"{detection.object_name} identified through {detection.method} with "
        f"{round(detection.confidence * 100)}% confidence. "
        f"Material appears to be {detection.category}-based."
    )


def suggestions_for(detection: ConsolidatedDetection) -> Tuple[str, ...]:
    suggestions = []
    if detection.confidence < LOW_CONFIDENCE:
        suggestions.append("Consider better lighting for improved detection")
    if detection.needs_learning:
        suggestions.append("This object can be learned for better future recognition")
    if detection.strategy is Strategy.UNIVERSAL:
        suggestions.append("Manual verification recommended for accurate classification")
    return tuple(suggestions)


def adaptive_score(detection: ConsolidatedDetection) -> float:
    score = detection.confidence
    if detection.ensemble_size > 1:
        score += 0.1
    if "learned-boost" in detection.features:
        score += 0.1
    if "pattern-match" in detection.features:
        score += 0.05
    return min(score, 1.0)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled("Scan cancelled between pipeline steps")


def check_candidates(region: Region, candidates: Iterable[Detection]) -> List[Detection]:
    """Return one strategy's candidates for ``region``.

    Raises :class:`ClassifierFailure` when any candidate is not a
    :class:`Detection`, names another region, or reports a confidence outside
    ``[0, MAX_CONFIDENCE]``.
    """

    checked = list(candidates)
    for candidate in checked:
        if not isinstance(candidate, Detection):
            raise ClassifierFailure(f"expected a Detection, got {type(candidate).__name__}")
        if candidate.region_id != region.id:
            raise ClassifierFailure(f"candidate names region {candidate.region_id!r}, expected {region.id!r}")
        if not 0.0 <= candidate.confidence <= MAX_CONFIDENCE:
            raise ClassifierFailure(f"confidence {candidate.confidence!r} is outside [0, {MAX_CONFIDENCE}]")
    return checked


def _analyses(bundle: Optional[FeatureBundle]) -> dict:
    if bundle is None:
        return {}
    return {
        "material_analysis": bundle.material_analysis,
        "shape_analysis": bundle.shape_analysis,
        "contextual_clues": bundle.contextual_clues,
        "environmental_context": bundle.environmental_context,
    }
