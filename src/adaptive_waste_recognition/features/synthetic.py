"""Seeded synthetic region generator.

Produces plausible but random region signals without looking at pixel
content. The same seed always yields the same bundle, which makes it the
extractor of choice for reproducible pipeline tests.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

import numpy as np

from ..image_utils import ImageInput
from ..types import (
    BoundingBox,
    ContextualClue,
    ContextualHints,
    EdgeCharacteristics,
    EnvironmentalContext,
    FeatureBundle,
    MaterialAnalysis,
    MaterialIndicators,
    Region,
    ShapeAnalysis,
    ShapeCharacteristics,
    Symmetry,
    TextureMetrics,
    VisualFeatures,
)
from .base import COLOR_PALETTES, LIKELY_CONTEXTS, FeatureExtractor

logger = logging.getLogger(__name__)

_MATERIAL_TYPES = ("plastic", "metal", "glass", "paper", "organic", "composite")
_SURFACE_TEXTURES = ("smooth", "rough", "textured", "glossy")
_GEOMETRIC_SHAPES = ("circular", "rectangular", "cylindrical", "irregular")
_FUNCTIONS = ("container", "tool", "decoration", "packaging")
_USAGE_CONTEXTS = ("kitchen", "office", "bedroom", "bathroom")
_LIGHTING = ("excellent", "good", "fair", "poor")
_BACKGROUNDS = ("clean", "cluttered", "mixed", "complex")
_SETTINGS = ("indoor", "outdoor", "kitchen", "office", "workshop")


class SeededRegionExtractor(FeatureExtractor):
    """Random-feature extractor driven by a seedable ``numpy`` generator."""

    def __init__(self, seed: Optional[int] = None, region_count: Optional[int] = None) -> None:
        self.seed = seed
        self.region_count = region_count
        self._rng = np.random.default_rng(seed)

    def extract(
        self,
        image_input: ImageInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> FeatureBundle:
        self._load(image_input)

        count = self.region_count if self.region_count is not None else self._scenario_region_count()
        regions: List[Region] = []
        for index in range(count):
            self._check_cancelled(cancel_event)
            regions.append(self._region(index))

        logger.debug("Generated %d synthetic regions (seed=%s)", len(regions), self.seed)
        return FeatureBundle(
            regions=tuple(regions),
            material_analysis=tuple(self._material_analysis(region) for region in regions),
            shape_analysis=tuple(self._shape_analysis(region) for region in regions),
            contextual_clues=tuple(self._contextual_clue(region) for region in regions),
            environmental_context=EnvironmentalContext(
                lighting=self._pick(_LIGHTING),
                background=self._pick(_BACKGROUNDS),
                setting=self._pick(_SETTINGS),
            ),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _scenario_region_count(self) -> int:
        scenario = int(self._rng.integers(0, 3))
        if scenario == 0:
            return 1
        if scenario == 1:
            return int(self._rng.integers(2, 6))
        return int(self._rng.integers(3, 9))

    def _region(self, index: int) -> Region:
        box = self._bounding_box()
        return Region(
            id=f"region_{index}",
            bounding_box=box,
            visual=VisualFeatures(
                brightness=self._unit(),
                contrast=self._unit(),
                saturation=self._unit(),
                dominant_colors=COLOR_PALETTES[int(self._rng.integers(0, len(COLOR_PALETTES)))],
                edges=EdgeCharacteristics(
                    sharpness=self._unit(),
                    regularity=self._unit(),
                    complexity=self._unit(),
                ),
                texture=TextureMetrics(
                    roughness=self._unit(),
                    uniformity=self._unit(),
                    regularity=self._unit(),
                ),
                symmetry=Symmetry(bilateral=self._unit(), radial=self._unit()),
            ),
            material=MaterialIndicators(
                reflectivity=self._unit(),
                transparency=self._unit(),
                flexibility=self._unit(),
                density=self._unit(),
            ),
            shape=ShapeCharacteristics(
                aspect_ratio=box.width / box.height,
                compactness=self._unit(),
                elongation=self._unit(),
                hollowness=self._unit(),
            ),
            context=ContextualHints(
                likely_context=self._pick(LIKELY_CONTEXTS),
                functional=self._unit(),
                usage=self._unit(),
                location=self._unit(),
            ),
            novelty=self._unit(),
            complexity=self._unit(),
        )

    def _bounding_box(self) -> BoundingBox:
        base_size = float(self._rng.uniform(0.1, 0.5))
        aspect_ratio = float(self._rng.uniform(0.3, 4.3))
        x = float(self._rng.uniform(0.0, 1.0 - base_size))
        y = float(self._rng.uniform(0.0, 1.0 - base_size))
        height = min(base_size / aspect_ratio, 1.0 - y)
        return BoundingBox(x=x, y=y, width=base_size, height=height)

    def _material_analysis(self, region: Region) -> MaterialAnalysis:
        return MaterialAnalysis(
            region_id=region.id,
            material_type=self._pick(_MATERIAL_TYPES),
            surface_texture=self._pick(_SURFACE_TEXTURES),
            recyclability=self._unit(),
        )

    def _shape_analysis(self, region: Region) -> ShapeAnalysis:
        return ShapeAnalysis(
            region_id=region.id,
            geometric_shape=self._pick(_GEOMETRIC_SHAPES),
            symmetry=self._unit(),
            complexity=self._unit(),
        )

    def _contextual_clue(self, region: Region) -> ContextualClue:
        return ContextualClue(
            region_id=region.id,
            likely_function=self._pick(_FUNCTIONS),
            usage_context=self._pick(_USAGE_CONTEXTS),
        )

    def _unit(self) -> float:
        return float(self._rng.random())

    def _pick(self, options):
        return options[int(self._rng.integers(0, len(options)))]
