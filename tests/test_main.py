"""Tests for the batch scanning script and its JSON persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import cv2
import pytest

from adaptive_waste_recognition import AdaptiveWasteRecognizer, Cart, DetectorConfig
from adaptive_waste_recognition.errors import PersistenceFailure
from adaptive_waste_recognition.types import Correction, LearningRecord, Thresholds
from main import JsonFilePersistence, analyze_images_in_folder

from . import image_factory as factory


def test_json_persistence_round_trip(tmp_path):
    persistence = JsonFilePersistence(tmp_path / "learning.json")
    assert persistence.load_learning_records() == []
    assert persistence.load_thresholds() is None

    record = LearningRecord(
        id="adaptive_x_0",
        timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc),
        original_label="Unknown Object",
        correction=Correction("metal", "Soup Can"),
        feature_vector=(0.2, 0.8),
    )
    persistence.save_learning_records([record])
    persistence.save_thresholds(Thresholds(0.45, 0.65))

    assert persistence.load_learning_records() == [record]
    assert persistence.load_thresholds() == Thresholds(0.45, 0.65)


def test_corrupt_file_raises_persistence_failure(tmp_path):
    path = tmp_path / "learning.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceFailure):
        JsonFilePersistence(path).load_learning_records()


def test_recognizer_survives_a_corrupt_learning_file(tmp_path):
    path = tmp_path / "learning.json"
    path.write_text("{not json", encoding="utf-8")
    recognizer = AdaptiveWasteRecognizer(persistence=JsonFilePersistence(path))
    recognizer.start()
    assert recognizer.learning_status().objects_seen == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"learning_records": [{"id": "x"}]},
        {"learning_records": [None]},
        {"learning_records": [{"id": "x", "timestamp": "yesterday"}]},
        ["not", "an", "object"],
    ],
)
def test_malformed_learning_file_raises_persistence_failure(tmp_path, payload):
    path = tmp_path / "learning.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(PersistenceFailure):
        JsonFilePersistence(path).load_learning_records()


def test_recognizer_survives_a_malformed_learning_record(tmp_path):
    path = tmp_path / "learning.json"
    path.write_text(json.dumps({"learning_records": [{"id": "x"}]}), encoding="utf-8")
    recognizer = AdaptiveWasteRecognizer(persistence=JsonFilePersistence(path))
    recognizer.start()
    assert recognizer.learning_status().objects_seen == 0


def test_malformed_thresholds_keep_the_loaded_records(tmp_path):
    record = LearningRecord(
        id="adaptive_x_0",
        timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc),
        original_label="Unknown Object",
        correction=Correction("metal", "Soup Can"),
    )
    path = tmp_path / "learning.json"
    path.write_text(
        json.dumps({"learning_records": [record.to_dict()], "thresholds": {"adaptive_threshold": 0.5}}),
        encoding="utf-8",
    )
    recognizer = AdaptiveWasteRecognizer(persistence=JsonFilePersistence(path))
    defaults = recognizer.controller.thresholds

    recognizer.start()

    assert recognizer.learning_status().objects_seen == 1
    assert recognizer.controller.thresholds == defaults


def test_folder_scan_fills_the_cart(tmp_path):
    cv2.imwrite(str(tmp_path / "box.png"), factory.create_box_image())
    cv2.imwrite(str(tmp_path / "blank.png"), factory.create_blank_image())
    (tmp_path / "notes.txt").write_text("not an image", encoding="utf-8")

    cart = Cart()
    results = analyze_images_in_folder(str(tmp_path), AdaptiveWasteRecognizer(), cart)

    assert sorted(results) == ["blank.png", "box.png"]
    assert results["blank.png"]["method"] == "universal-fallback"
    assert len(cart.items()) == 2


def test_missing_folder_returns_nothing(tmp_path):
    assert analyze_images_in_folder(str(tmp_path / "nope"), AdaptiveWasteRecognizer(), Cart()) == {}


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("WASTE_ADAPTIVE_THRESHOLD", "0.5")
    monkeypatch.setenv("WASTE_RANDOM_SEED", "7")
    monkeypatch.setenv("WASTE_PROCESSING_INTERVAL_MS", "250")

    config = DetectorConfig.from_env()

    assert config.adaptive_threshold == 0.5
    assert config.random_seed == 7
    assert config.history_window_ms == 2500
    assert config.confidence_threshold == DetectorConfig().confidence_threshold


def test_config_defaults(monkeypatch):
    monkeypatch.delenv("WASTE_RANDOM_SEED", raising=False)
    config = DetectorConfig.from_env()
    assert config.random_seed is None
    assert config.history_window_ms == 10000
