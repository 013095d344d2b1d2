"""Tests for the feedback store, threshold control and learned boosts."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from adaptive_waste_recognition.ensemble import consolidate
from adaptive_waste_recognition.learning import (
    LearningStore,
    ThresholdController,
    apply_adaptive_learning,
    cosine_similarity,
    time_ago,
)
from adaptive_waste_recognition.types import (
    Correction,
    LearningRecord,
    LearningType,
    Thresholds,
)

from . import image_factory as factory

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("rate", [0.0, 0.05, 0.2, 0.5, 0.9, 1.0])
def test_thresholds_stay_within_bounds(rate):
    controller = ThresholdController()
    for _ in range(50):
        thresholds = controller.adapt(rate)
        assert 0.2 <= thresholds.adaptive_threshold <= 0.8
        assert 0.3 <= thresholds.confidence_threshold <= 0.9


def test_high_false_positive_rate_raises_thresholds():
    assert ThresholdController().adapt(0.5) == Thresholds(0.45, 0.65)


def test_low_false_positive_rate_lowers_thresholds():
    controller = ThresholdController()
    for _ in range(10):
        controller.adapt(0.0)
    assert controller.thresholds == Thresholds(0.2, 0.4)


def test_mid_band_leaves_thresholds_alone():
    controller = ThresholdController(Thresholds(0.5, 0.7))
    assert controller.adapt(0.2) == Thresholds(0.5, 0.7)


def test_repeated_raises_stop_at_the_ceiling():
    controller = ThresholdController()
    for _ in range(20):
        controller.adapt(1.0)
    assert controller.thresholds == Thresholds(0.8, 0.9)


def test_status_tracks_store_size():
    store = LearningStore()
    for index in range(10):
        status = store.record_feedback(
            f"adaptive_{index}", Correction("metal", "Soup Can"), "Metal Object"
        )

    assert status.objects_seen == 10
    assert status.patterns_learned == 7
    assert status.adaptation_level == pytest.approx(0.1)
    assert status.learning_mode is True


def test_adaptation_level_saturates():
    store = LearningStore(
        LearningRecord(id=str(i), timestamp=NOW, original_label="x", correction=Correction("general", "x"))
        for i in range(150)
    )
    assert store.status().adaptation_level == 1.0


def test_feedback_for_the_same_detection_replaces_the_old_record():
    store = LearningStore()
    store.record_feedback("adaptive_1", Correction("metal", "Soup Can"), "Metal Object")
    store.record_feedback("adaptive_1", Correction("plastic", "Yoghurt Pot"), "Metal Object")

    assert len(store) == 1
    assert store.records()[0].correction.object_name == "Yoghurt Pot"


def test_unknown_originals_are_new_objects():
    store = LearningStore()
    store.record_feedback("a", Correction("metal", "Soup Can"), "Unknown Object")
    store.record_feedback("b", Correction("metal", "Soup Can"), "Metal Object")

    kinds = [record.learning_type for record in store.records()]
    assert kinds == [LearningType.NEW_OBJECT, LearningType.CORRECTION]


def test_history_reports_relative_times():
    store = LearningStore()
    store.record_feedback("a", Correction("metal", "Can"), "x", timestamp=NOW - timedelta(days=2))
    store.record_feedback("b", Correction("paper", "Box"), "x", timestamp=NOW - timedelta(hours=1))
    store.record_feedback("c", Correction("glass", "Jar"), "x", timestamp=NOW - timedelta(seconds=5))

    assert [entry.time_ago for entry in store.history(now=NOW)] == [
        "2 days ago",
        "1 hour ago",
        "Just now",
    ]


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=59), "59 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=1, hours=5), "1 day ago"),
        (timedelta(seconds=-30), "Just now"),
    ],
)
def test_time_ago(delta, expected):
    assert time_ago(NOW - delta, now=NOW) == expected


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([0.9, 0.1], [0.9, 0.1]) == pytest.approx(1.0)
    assert cosine_similarity([0.9, 0.1], [0.1, 0.9]) == pytest.approx(-1.0)
    assert cosine_similarity([0.5, 0.5], [0.9, 0.1]) == 0.0
    assert cosine_similarity([0.9], [0.9, 0.1]) == 0.0


def test_learned_region_gets_a_boost():
    region = factory.make_metal_region()
    store = LearningStore()
    store.record_feedback(
        "adaptive_x_0", Correction("metal", "Soup Can"), "Metal Object", feature_vector=region.feature_vector()
    )
    [detection] = consolidate([factory.make_detection(confidence=0.55)], [region])
    [boosted] = apply_adaptive_learning([detection], {region.id: region}, store)

    assert boosted.confidence == pytest.approx(0.65)
    assert "learned-boost" in boosted.features
    assert "pattern-match" not in boosted.features


def test_matching_pattern_adds_a_small_boost():
    region = factory.make_metal_region()
    store = LearningStore()
    store.record_feedback(
        "adaptive_x_0", Correction("metal", "Soup Can"), "Metal Object", feature_vector=region.feature_vector()
    )
    detection = consolidate(
        [factory.make_detection(confidence=0.9, object_name="Soup Can")], [region]
    )[0]
    [boosted] = apply_adaptive_learning([detection], {region.id: region}, store)

    assert boosted.features[-2:] == ("learned-boost", "pattern-match")
    assert boosted.confidence == pytest.approx(0.95)


def test_empty_store_changes_nothing():
    region = factory.make_metal_region()
    detections = consolidate([factory.make_detection()], [region])
    assert apply_adaptive_learning(detections, {region.id: region}, LearningStore()) == detections


def test_records_survive_a_json_round_trip():
    record = LearningRecord(
        id="adaptive_x_0",
        timestamp=NOW,
        original_label="Unknown Object",
        correction=Correction("metal", "Soup Can"),
        learning_type=LearningType.NEW_OBJECT,
        feature_vector=(0.1, 0.9),
    )
    restored = LearningRecord.from_dict(json.loads(json.dumps(record.to_dict())))
    assert restored == record
