#!/usr/bin/env python3
"""Batch waste scanning of every image in a folder."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from adaptive_waste_recognition import AdaptiveWasteRecognizer, Cart, DetectorConfig
from adaptive_waste_recognition.errors import PersistenceFailure
from adaptive_waste_recognition.features import ContourRegionExtractor, SeededRegionExtractor
from adaptive_waste_recognition.types import LearningRecord, ScanResult, Thresholds


class JsonFilePersistence:
    """Keeps learned corrections and thresholds in a single JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load_learning_records(self) -> List[LearningRecord]:
        entries = self._read().get("learning_records", [])
        try:
            return [LearningRecord.from_dict(entry) for entry in entries]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Malformed learning record in {self.path}: {exc!r}") from exc

    def save_learning_records(self, records: Sequence[LearningRecord]) -> None:
        data = self._read()
        data["learning_records"] = [record.to_dict() for record in records]
        self._write(data)

    def load_thresholds(self) -> Optional[Thresholds]:
        data = self._read().get("thresholds")
        if not data:
            return None
        try:
            return Thresholds.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Malformed thresholds in {self.path}: {exc!r}") from exc

    def save_thresholds(self, thresholds: Thresholds) -> None:
        data = self._read()
        data["thresholds"] = thresholds.to_dict()
        self._write(data)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceFailure(f"Expected a JSON object in {self.path}")
        return data

    def _write(self, data: dict) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        except OSError as exc:
            raise PersistenceFailure(f"Cannot write {self.path}: {exc}") from exc


def analyze_images_in_folder(
    folder_path: str,
    recognizer: AdaptiveWasteRecognizer,
    cart: Cart,
) -> dict:
    """Scan every image in ``folder_path`` and collect the results per file."""

    image_extensions = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff'}

    folder = Path(folder_path)
    if not folder.exists():
        print(f"❌ Folder not found: {folder_path}")
        return {}

    image_files = sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in image_extensions
    )
    if not image_files:
        print(f"⚠️  No images found in: {folder_path}")
        return {}

    print(f"📁 Found {len(image_files)} images")
    print("🔍 Scanning...\n")
    print("=" * 80)

    all_results = {}
    for idx, image_file in enumerate(image_files, 1):
        print(f"\n[{idx}/{len(image_files)}] Scanning: {image_file.name}")

        result: ScanResult = recognizer.detect(str(image_file))
        if not result.success:
            print(f"  ❌ Scan failed: {result.error}")
            all_results[image_file.name] = {"error": result.error}
            continue

        cart.add(result.cart_items)
        for detection in result.detections:
            marker = "🎓" if detection.learning_opportunity else "✅"
            print(
                f"  {marker} {detection.object_name} ({detection.category}) "
                f"{detection.confidence:.0%} via {detection.detection.method}"
            )

        all_results[image_file.name] = {
            "method": result.method,
            "adaptive_confidence": round(result.adaptive_confidence, 4),
            "environment": (
                {
                    "lighting": result.environmental_context.lighting,
                    "background": result.environmental_context.background,
                    "setting": result.environmental_context.setting,
                }
                if result.environmental_context is not None
                else None
            ),
            "detections": [
                {
                    "id": detection.id,
                    "object_name": detection.object_name,
                    "category": detection.category,
                    "confidence": round(detection.confidence, 4),
                    "description": detection.description,
                    "suggestions": list(detection.suggestions),
                    "learning_opportunity": detection.learning_opportunity,
                }
                for detection in result.detections
            ],
            "cart_items": [
                {
                    "name": item.name,
                    "category": item.category,
                    "confidence": item.confidence,
                    "disposal": item.disposal.method,
                    "bin_color": item.disposal.bin_color,
                }
                for item in result.cart_items
            ],
        }

    print("\n" + "=" * 80)
    print(f"\n✨ Done! Scanned {len(image_files)} images\n")
    return all_results


def print_summary(results: dict, cart: Cart) -> None:
    print("\n" + "=" * 80)
    print("📊 Summary")
    print("=" * 80)

    failed = sum(1 for data in results.values() if "error" in data)
    print(f"\nTotal images: {len(results)}")
    print(f"  - scanned: {len(results) - failed}")
    print(f"  - failed: {failed}")
    print(f"  - learning opportunities: {cart.learning_opportunities()}")

    summary = cart.summary()
    if summary:
        print("\nItems per category:")
        for category, count in sorted(summary.items(), key=lambda x: x[1], reverse=True):
            print(f"  - {category}: {count}")

    print("\n" + "=" * 80)


def save_results_to_json(results: dict, cart: Cart, output_file: str) -> None:
    report = {
        "images": results,
        "cart_summary": cart.summary(),
        "learning_opportunities": cart.learning_opportunities(),
    }
    try:
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, ensure_ascii=False, indent=2)
        print(f"💾 Results saved to: {output_file}")
    except OSError as e:
        print(f"❌ Could not save results: {e}")


def main():
    script_dir = Path(__file__).parent
    images_folder = script_dir / "test-images"

    # ==================== Settings ====================
    USE_SYNTHETIC_REGIONS = False  # Seeded synthetic regions instead of contour analysis
    LEARNING_FILE = script_dir / "learning_data.json"
    # ==================================================

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = DetectorConfig.from_env()

    if USE_SYNTHETIC_REGIONS:
        extractor = SeededRegionExtractor(seed=config.random_seed)
    else:
        extractor = ContourRegionExtractor(
            max_regions=config.max_regions,
            min_region_area=config.min_region_area,
        )

    recognizer = AdaptiveWasteRecognizer(
        extractor=extractor,
        persistence=JsonFilePersistence(LEARNING_FILE),
        config=config,
    )
    cart = Cart()

    print("\n" + "=" * 80)
    print("♻️  Batch waste scanner")
    print("=" * 80)
    print(f"📂 Image folder: {images_folder}")
    print(f"🔧 Region extraction: {'seeded synthetic' if USE_SYNTHETIC_REGIONS else 'contours'}")
    print(f"📊 Adaptive threshold: {config.adaptive_threshold:.0%}\n")

    recognizer.start()
    try:
        results = analyze_images_in_folder(str(images_folder), recognizer, cart)
    finally:
        recognizer.shutdown()

    if results:
        print_summary(results, cart)
        save_results_to_json(results, cart, str(script_dir / "scan_results.json"))

    print("\n✅ Finished!\n")


if __name__ == "__main__":
    main()
