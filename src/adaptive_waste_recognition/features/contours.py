"""Contour-based region extractor working on real pixel content."""

from __future__ import annotations

import logging
import math
import threading
from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..image_utils import ImageInput, ensure_gray
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
from .base import FeatureExtractor

logger = logging.getLogger(__name__)

_PALETTE_MATERIAL = {
    "glass-clear": "glass",
    "metallic-silver": "metal",
    "electronic-black": "composite",
    "paper-white": "paper",
    "organic-brown": "organic",
    "fabric-colored": "composite",
    "plastic-white": "plastic",
    "unknown-colored": "composite",
}

_MATERIAL_RECYCLABILITY = {
    "glass": 0.9,
    "metal": 0.9,
    "paper": 0.8,
    "plastic": 0.6,
    "organic": 0.5,
    "composite": 0.3,
}

_CONTEXT_USAGE = {
    "kitchen-item": ("container", "kitchen"),
    "office-supply": ("packaging", "office"),
    "electronic-device": ("tool", "office"),
    "packaging-material": ("packaging", "kitchen"),
    "household-item": ("container", "bedroom"),
    "tool": ("tool", "office"),
    "storage-container": ("container", "kitchen"),
}


class ContourRegionExtractor(FeatureExtractor):
    """Segments objects with Canny edges and measures every contour crop."""

    def __init__(
        self,
        max_regions: int = 8,
        min_region_area: float = 0.005,
        canny_low: int = 50,
        canny_high: int = 150,
    ) -> None:
        self.max_regions = max_regions
        self.min_region_area = min_region_area
        self.canny_low = canny_low
        self.canny_high = canny_high

    def extract(
        self,
        image_input: ImageInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> FeatureBundle:
        image = self._load(image_input)
        gray = ensure_gray(image)
        hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
        height, width = gray.shape
        image_area = float(height * width)

        blurred = cv2.GaussianBlur(gray, (5, 5), 0)
        edges = cv2.Canny(blurred, self.canny_low, self.canny_high)
        dilated = cv2.dilate(edges, np.ones((3, 3), dtype=np.uint8), iterations=1)
        contours, _ = cv2.findContours(dilated, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        candidates = [
            contour for contour in contours
            if cv2.contourArea(contour) >= self.min_region_area * image_area
        ]
        candidates.sort(key=cv2.contourArea, reverse=True)
        candidates = candidates[: self.max_regions]

        regions: List[Region] = []
        materials: List[MaterialAnalysis] = []
        shapes: List[ShapeAnalysis] = []
        clues: List[ContextualClue] = []
        for index, contour in enumerate(candidates):
            self._check_cancelled(cancel_event)
            region, material, shape, clue = self._measure(index, contour, gray, hsv, edges)
            regions.append(region)
            materials.append(material)
            shapes.append(shape)
            clues.append(clue)

        logger.debug("Contour extraction found %d regions out of %d contours", len(regions), len(contours))
        return FeatureBundle(
            regions=tuple(regions),
            material_analysis=tuple(materials),
            shape_analysis=tuple(shapes),
            contextual_clues=tuple(clues),
            environmental_context=self._environment(gray, edges),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _measure(
        self,
        index: int,
        contour: np.ndarray,
        gray: np.ndarray,
        hsv: np.ndarray,
        edges: np.ndarray,
    ) -> Tuple[Region, MaterialAnalysis, ShapeAnalysis, ContextualClue]:
        height, width = gray.shape
        x, y, w, h = cv2.boundingRect(contour)
        box = BoundingBox(x=x / width, y=y / height, width=w / width, height=h / height)

        mask = np.zeros((h, w), dtype=np.uint8)
        cv2.drawContours(mask, [contour - np.array([x, y])], -1, 255, thickness=cv2.FILLED)
        inside = mask > 0
        if not inside.any():
            inside = np.ones((h, w), dtype=bool)

        crop = gray[y : y + h, x : x + w].astype(np.float32) / 255.0
        pixels = crop[inside]
        brightness = float(pixels.mean())
        contrast = float(np.clip(pixels.std() / 0.5, 0.0, 1.0))
        saturation = float(hsv[y : y + h, x : x + w, 1][inside].mean() / 255.0)
        hue = float(hsv[y : y + h, x : x + w, 0][inside].mean())

        edge_density = float(np.count_nonzero(edges[y : y + h, x : x + w]) / max(w * h, 1))
        sharpness = float(np.clip(edge_density * 4.0, 0.0, 1.0))

        area = float(cv2.contourArea(contour))
        perimeter = float(cv2.arcLength(contour, True))
        approx = cv2.approxPolyDP(contour, 0.02 * perimeter, True)
        polygon_complexity = float(np.clip((len(approx) - 3) / 17.0, 0.0, 1.0))
        fill_ratio = float(np.clip(area / max(w * h, 1), 0.0, 1.0))

        laplacian = cv2.Laplacian(crop, cv2.CV_32F)
        roughness = float(np.clip(laplacian.std() / 0.5, 0.0, 1.0))

        bilateral = float(np.clip(1.0 - 2.0 * np.abs(crop - np.fliplr(crop)).mean(), 0.0, 1.0))
        radial = float(np.clip(1.0 - 2.0 * np.abs(crop - np.rot90(crop, 2)).mean(), 0.0, 1.0))

        reflectivity = float(np.count_nonzero(pixels > 0.8) / pixels.size)
        transparency = float(np.clip((1.0 - sharpness) * pixels.var() * 4.0, 0.0, 1.0))

        hull_area = float(cv2.contourArea(cv2.convexHull(contour)))
        solidity = area / hull_area if hull_area > 0 else 1.0
        hollowness = float(np.clip(1.0 - solidity, 0.0, 1.0))
        (_, _), (rect_w, rect_h), _ = cv2.minAreaRect(contour)
        longest = max(rect_w, rect_h)
        elongation = float(1.0 - min(rect_w, rect_h) / longest) if longest > 0 else 0.0
        compactness = (
            float(np.clip(4.0 * math.pi * area / (perimeter * perimeter), 0.0, 1.0))
            if perimeter > 0
            else 0.0
        )
        aspect = w / h if h > 0 else 1.0

        palette = _palette(brightness, saturation, reflectivity, roughness, hue)
        context = _likely_context(aspect, brightness, fill_ratio, reflectivity, box.area, hollowness, palette)
        centre_offset = abs(box.x + box.width / 2 - 0.5) + abs(box.y + box.height / 2 - 0.5)

        region = Region(
            id=f"region_{index}",
            bounding_box=box,
            visual=VisualFeatures(
                brightness=brightness,
                contrast=contrast,
                saturation=saturation,
                dominant_colors=palette,
                edges=EdgeCharacteristics(
                    sharpness=sharpness,
                    regularity=fill_ratio,
                    complexity=polygon_complexity,
                ),
                texture=TextureMetrics(
                    roughness=roughness,
                    uniformity=1.0 - contrast,
                    regularity=1.0 - roughness,
                ),
                symmetry=Symmetry(bilateral=bilateral, radial=radial),
            ),
            material=MaterialIndicators(
                reflectivity=reflectivity,
                transparency=transparency,
                flexibility=float(np.clip(hollowness + (1.0 - fill_ratio) * 0.5, 0.0, 1.0)),
                density=float(np.clip(fill_ratio * min(box.area * 4.0, 1.0), 0.0, 1.0)),
            ),
            shape=ShapeCharacteristics(
                aspect_ratio=aspect,
                compactness=compactness,
                elongation=elongation,
                hollowness=hollowness,
            ),
            context=ContextualHints(
                likely_context=context,
                functional=fill_ratio,
                usage=compactness,
                location=float(np.clip(1.0 - centre_offset, 0.0, 1.0)),
            ),
            novelty=float(np.clip((hollowness + (1.0 - fill_ratio)) / 2.0, 0.0, 1.0)),
            complexity=(sharpness + roughness) / 2.0,
        )

        material_type = _PALETTE_MATERIAL.get(palette[0], "composite")
        if compactness > 0.75:
            geometric = "circular"
        elif len(approx) == 4:
            geometric = "rectangular"
        elif elongation > 0.6:
            geometric = "cylindrical"
        else:
            geometric = "irregular"
        function, usage = _CONTEXT_USAGE.get(context, ("decoration", "bedroom"))

        return (
            region,
            MaterialAnalysis(
                region_id=region.id,
                material_type=material_type,
                surface_texture="rough" if roughness > 0.6 else ("glossy" if reflectivity > 0.3 else "smooth"),
                recyclability=_MATERIAL_RECYCLABILITY[material_type],
            ),
            ShapeAnalysis(
                region_id=region.id,
                geometric_shape=geometric,
                symmetry=bilateral,
                complexity=polygon_complexity,
            ),
            ContextualClue(region_id=region.id, likely_function=function, usage_context=usage),
        )

    @staticmethod
    def _environment(gray: np.ndarray, edges: np.ndarray) -> EnvironmentalContext:
        brightness = float(gray.mean() / 255.0)
        if brightness > 0.6:
            lighting = "excellent"
        elif brightness > 0.45:
            lighting = "good"
        elif brightness > 0.3:
            lighting = "fair"
        else:
            lighting = "poor"

        density = float(np.count_nonzero(edges) / max(edges.size, 1))
        if density < 0.02:
            background = "clean"
        elif density < 0.08:
            background = "mixed"
        elif density < 0.15:
            background = "cluttered"
        else:
            background = "complex"
        return EnvironmentalContext(lighting=lighting, background=background, setting="indoor")


def _palette(
    brightness: float,
    saturation: float,
    reflectivity: float,
    roughness: float,
    hue: float,
) -> Tuple[str, str]:
    if saturation < 0.15 and brightness > 0.75 and roughness < 0.3:
        return ("glass-clear", "transparent")
    if saturation < 0.2 and reflectivity > 0.3:
        return ("metallic-silver", "reflective")
    if brightness < 0.25:
        return ("electronic-black", "manufactured")
    if saturation < 0.2 and brightness > 0.7:
        return ("paper-white", "matte")
    if 5 <= hue <= 30 and saturation > 0.25 and brightness < 0.7:
        return ("organic-brown", "natural")
    if roughness > 0.6:
        return ("fabric-colored", "textured")
    if saturation >= 0.2:
        return ("plastic-white", "smooth")
    return ("unknown-colored", "mixed")


def _likely_context(
    aspect: float,
    brightness: float,
    fill_ratio: float,
    reflectivity: float,
    area: float,
    hollowness: float,
    palette: Tuple[str, str],
) -> str:
    if (aspect > 2.5 or aspect < 0.4) and reflectivity > 0.3:
        return "tool"
    if brightness < 0.25 and fill_ratio > 0.8:
        return "electronic-device"
    if area > 0.15 and aspect < 0.7:
        return "office-supply"
    if hollowness > 0.3:
        return "storage-container"
    if palette[0] in ("glass-clear", "plastic-white"):
        return "packaging-material"
    if 0.7 <= aspect <= 1.5:
        return "kitchen-item"
    return "household-item"
