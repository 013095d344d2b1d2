"""Tests for the whole-frame computer-vision detector."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from adaptive_waste_recognition.config import DetectorConfig
from adaptive_waste_recognition.features.computer_vision import ComputerVisionExtractor, ContourStats
from adaptive_waste_recognition.vision import (
    FALLBACK_CONFIDENCE,
    GENERAL_DISPOSAL,
    MIN_BOX_ASPECT,
    WASTE_CATEGORIES,
    ProfileAffinityClassifier,
    VisionWasteDetector,
    estimate_bounding_box,
    fraction_in_range,
    range_affinity,
)

from . import image_factory as factory

CONFIG = DetectorConfig(image_size=64)


class ConstantClassifier:
    def __init__(self, scores):
        self.scores = np.asarray(scores, dtype=np.float64)

    def predict(self, vector):
        return self.scores


@pytest.fixture(scope="module")
def features():
    return ComputerVisionExtractor(image_size=64).extract(factory.create_bottle_image())


def test_default_detector_handles_a_real_frame():
    result = VisionWasteDetector(CONFIG).detect(factory.create_bottle_image())

    assert result.success is True
    assert result.fallback is False
    assert result.detection_id.startswith("real_")
    for obj in result.objects:
        assert obj.id.startswith(result.detection_id)
        assert obj.signature is not None
        assert 0 <= obj.confidence <= 100


def test_blank_frame_still_succeeds():
    result = VisionWasteDetector(CONFIG).detect(factory.create_blank_image())
    assert result.success is True
    assert result.processing_time_ms >= 0.0


def test_strong_scores_keep_at_most_the_top_predictions():
    detector = VisionWasteDetector(CONFIG, classifier=ConstantClassifier([1.0] * len(WASTE_CATEGORIES)))
    result = detector.detect(factory.create_bottle_image())

    assert result.success is True
    assert len(result.objects) <= CONFIG.top_predictions
    confidences = [obj.confidence for obj in result.objects]
    assert confidences == sorted(confidences, reverse=True)
    assert all(confidence >= 65 for confidence in confidences)
    if result.objects:
        assert result.max_confidence == pytest.approx(confidences[0] / 100)


def test_zero_scores_find_nothing():
    detector = VisionWasteDetector(CONFIG, classifier=ConstantClassifier([0.0] * len(WASTE_CATEGORIES)))
    result = detector.detect(factory.create_bottle_image())

    assert result.success is True
    assert result.objects == ()
    assert result.max_confidence == 0.0


def test_wrong_number_of_scores_falls_back():
    detector = VisionWasteDetector(CONFIG, classifier=ConstantClassifier([1.0, 1.0]))
    result = detector.detect(factory.create_bottle_image())

    assert result.success is False
    assert result.fallback is True
    [fallback] = result.objects
    assert fallback.confidence == FALLBACK_CONFIDENCE
    assert fallback.name == "Unknown Object"
    assert fallback.disposal == GENERAL_DISPOSAL


def test_unreadable_input_falls_back():
    result = VisionWasteDetector(CONFIG).detect("/definitely/missing.png")

    assert result.success is False
    assert result.fallback is True
    assert result.max_confidence == pytest.approx(0.35)
    assert result.error


def test_busy_detector_refuses_a_second_frame():
    detector = VisionWasteDetector(CONFIG)
    detector._lock.acquire()
    try:
        assert detector.is_processing is True
        result = detector.detect(factory.create_blank_image())
    finally:
        detector._lock.release()

    assert result.success is False
    assert result.error == "busy"
    assert result.objects == ()
    assert detector.is_processing is False


def test_feedback_moves_the_threshold_within_bounds():
    detector = VisionWasteDetector(CONFIG)
    for index in range(40):
        count = detector.record_feedback(f"real_{index}", "plastic", "Bottle", confidence=1.0)
    assert count == 40
    assert detector.confidence_threshold == pytest.approx(0.5)

    for index in range(40):
        detector.record_feedback(f"low_{index}", "plastic", "Bottle", confidence=0.3)
    assert detector.confidence_threshold == pytest.approx(0.8)
    assert detector.model_info()["feedback_count"] == 80


def test_model_info_lists_categories():
    info = VisionWasteDetector(CONFIG).model_info()
    assert info["total_categories"] == 6
    assert info["categories"][2] == "Aluminum Can"
    assert info["classifier"] == "ProfileAffinityClassifier"


def test_constraints_keep_scores_in_unit_range(features):
    detector = VisionWasteDetector(CONFIG)
    scores = detector.apply_constraints(np.full(len(WASTE_CATEGORIES), 2.0), features)
    assert scores.shape == (len(WASTE_CATEGORIES),)
    assert ((scores >= 0.0) & (scores <= 1.0)).all()


def test_profile_classifier_scores_every_category(features):
    scores = ProfileAffinityClassifier().predict(features.to_vector())
    assert scores.shape == (len(WASTE_CATEGORIES),)
    assert ((scores >= 0.0) & (scores <= 1.0)).all()


def test_bounding_box_follows_aspect_ratio(features):
    wide = replace(features, aspect_ratio=2.0, contours=ContourStats(1, 10.0, 10.0, 20.0))
    tall = replace(features, aspect_ratio=0.5, contours=ContourStats(1, 10.0, 10.0, 20.0))
    empty = replace(features, contours=ContourStats(0, 0.0, 0.0, 0.0))

    assert estimate_bounding_box(wide).width == pytest.approx(0.6)
    assert estimate_bounding_box(wide).height == pytest.approx(0.3)
    assert estimate_bounding_box(tall).width == pytest.approx(0.3)
    assert estimate_bounding_box(tall).x == pytest.approx(0.35)
    assert estimate_bounding_box(empty).width == pytest.approx(0.6)


def test_zero_aspect_still_gives_a_box_with_area(features):
    sliver = replace(features, aspect_ratio=0.0, contours=ContourStats(1, 10.0, 10.0, 20.0))
    box = estimate_bounding_box(sliver)

    assert box.width == pytest.approx(0.6 * MIN_BOX_ASPECT)
    assert box.area > 0.0
    assert box.iou(box) == pytest.approx(1.0)


class CrashingClassifier:
    def predict(self, vector):
        raise RuntimeError("model crashed")


def test_crashing_classifier_falls_back(caplog):
    detector = VisionWasteDetector(CONFIG, classifier=CrashingClassifier())
    with caplog.at_level("ERROR"):
        result = detector.detect(factory.create_box_image())

    assert result.success is False
    assert result.fallback is True
    assert result.objects[0].confidence == FALLBACK_CONFIDENCE
    assert "model crashed" in result.error
    assert "CrashingClassifier" in caplog.text
    assert detector.is_processing is False


def test_normalised_float_frame_matches_the_uint8_frame():
    image = factory.create_bottle_image()
    as_bytes = VisionWasteDetector(CONFIG).extractor.extract(image)
    as_floats = VisionWasteDetector(CONFIG).extractor.extract(image.astype(np.float32) / 255.0)

    assert as_floats.contours.count == as_bytes.contours.count
    assert as_floats.edge_intensity == pytest.approx(as_bytes.edge_intensity, abs=1e-3)

    result = VisionWasteDetector(CONFIG).detect(image.astype(np.float32) / 255.0)
    assert result.success is True


def test_range_helpers():
    assert range_affinity(0.5, (0.4, 0.6)) == 1.0
    assert range_affinity(0.7, (0.4, 0.6)) == pytest.approx(0.5)
    assert range_affinity(5.0, (0.4, 0.6)) == 0.0
    assert fraction_in_range({"a": 0.5, "b": 2.0}, {"a": (0.0, 1.0), "b": (0.0, 1.0)}) == 0.5
    assert fraction_in_range({}, {}) == 1.0
