"""Tests for the region extractors."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from adaptive_waste_recognition.errors import ExtractionFailure, ScanCancelled
from adaptive_waste_recognition.features import (
    COLOR_PALETTES,
    LIKELY_CONTEXTS,
    ContourRegionExtractor,
    SeededRegionExtractor,
)

from . import image_factory as factory


@pytest.fixture(scope="module")
def extractor() -> ContourRegionExtractor:
    return ContourRegionExtractor()


def test_blank_image_has_no_regions(extractor):
    bundle = extractor.extract(factory.create_blank_image())
    assert bundle.regions == ()
    assert bundle.environmental_context is not None
    assert bundle.environmental_context.background == "clean"


def test_single_box_yields_one_region(extractor):
    bundle = extractor.extract(factory.create_box_image())

    assert len(bundle.regions) == 1
    region = bundle.regions[0]
    box = region.bounding_box
    assert box.x == pytest.approx(0.25, abs=0.02)
    assert box.y == pytest.approx(60 / 320, abs=0.02)
    assert box.width == pytest.approx(0.5, abs=0.03)
    assert region.shape.aspect_ratio == pytest.approx(161 / 141, abs=0.1)
    assert len(bundle.material_analysis) == len(bundle.shape_analysis) == len(bundle.contextual_clues) == 1


def test_region_signals_stay_in_unit_range(extractor):
    region = extractor.extract(factory.create_bottle_image()).regions[0]
    values = [
        region.visual.brightness,
        region.visual.contrast,
        region.visual.saturation,
        region.visual.edges.sharpness,
        region.visual.edges.complexity,
        region.visual.texture.roughness,
        region.visual.symmetry.bilateral,
        region.material.reflectivity,
        region.material.transparency,
        region.material.flexibility,
        region.material.density,
        region.shape.compactness,
        region.shape.elongation,
        region.shape.hollowness,
        region.novelty,
        region.complexity,
    ]
    assert all(0.0 <= value <= 1.0 for value in values)
    assert region.visual.dominant_colors in COLOR_PALETTES
    assert region.context.likely_context in LIKELY_CONTEXTS


def test_bottle_is_tall(extractor):
    region = extractor.extract(factory.create_bottle_image()).regions[0]
    assert region.shape.aspect_ratio < 0.5


def test_max_regions_keeps_the_largest():
    extractor = ContourRegionExtractor(max_regions=3)
    bundle = extractor.extract(factory.create_scene_image(5))

    assert len(bundle.regions) == 3
    areas = [region.bounding_box.area for region in bundle.regions]
    assert areas == sorted(areas, reverse=True)


def test_tiny_contours_are_ignored(extractor):
    assert extractor.extract(factory.create_speck_image()).regions == ()


@pytest.mark.parametrize("bad_input", ["/definitely/missing.png", object()])
def test_unusable_input_raises_extraction_failure(extractor, bad_input):
    with pytest.raises(ExtractionFailure):
        extractor.extract(bad_input)


def test_empty_array_raises_extraction_failure(extractor):
    with pytest.raises(ExtractionFailure):
        extractor.extract(np.zeros((0, 0, 3), dtype=np.uint8))


def test_contour_extraction_can_be_cancelled(extractor):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ScanCancelled):
        extractor.extract(factory.create_box_image(), cancel)


def test_seeded_extractor_is_reproducible():
    image = factory.create_blank_image()
    first = SeededRegionExtractor(seed=42).extract(image)
    second = SeededRegionExtractor(seed=42).extract(image)
    assert first == second


@pytest.mark.parametrize("seed", range(10))
def test_seeded_regions_are_well_formed(seed):
    bundle = SeededRegionExtractor(seed=seed).extract(factory.create_blank_image())

    assert 1 <= len(bundle.regions) <= 8
    for region in bundle.regions:
        box = region.bounding_box
        assert 0.0 <= box.x and box.x + box.width <= 1.0 + 1e-9
        assert 0.0 <= box.y and box.y + box.height <= 1.0 + 1e-9
        assert 0.1 <= box.width <= 0.5
        assert region.context.likely_context in LIKELY_CONTEXTS


def test_seeded_region_count_override():
    bundle = SeededRegionExtractor(seed=1, region_count=4).extract(factory.create_blank_image())
    assert [region.id for region in bundle.regions] == ["region_0", "region_1", "region_2", "region_3"]


def test_seeded_extractor_still_validates_input():
    with pytest.raises(ExtractionFailure):
        SeededRegionExtractor(seed=1).extract("/definitely/missing.png")
