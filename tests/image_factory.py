"""Helpers that generate synthetic images and regions for pipeline tests."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from adaptive_waste_recognition.cart import DISPOSAL_GUIDE
from adaptive_waste_recognition.types import (
    BoundingBox,
    ContextualHints,
    Detection,
    DominantColor,
    EdgeCharacteristics,
    FrameDetection,
    MaterialIndicators,
    Region,
    ShapeCharacteristics,
    Strategy,
    SurfaceTexture,
    Symmetry,
    TextureMetrics,
    VisualFeatures,
    VisualSignature,
)


Color = Tuple[int, int, int]


def create_blank_image(width: int = 320, height: int = 320, color: Color = (255, 255, 255)) -> np.ndarray:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = color
    return image


def create_box_image() -> np.ndarray:
    """One dark cardboard-brown rectangle on a white background."""

    image = create_blank_image()
    cv2.rectangle(image, (80, 60), (240, 200), (40, 90, 140), -1)
    return image


def create_bottle_image() -> np.ndarray:
    image = create_blank_image(320, 480, color=(235, 235, 235))
    cv2.rectangle(image, (130, 140), (190, 420), (200, 120, 30), -1)
    cv2.rectangle(image, (148, 90), (172, 140), (200, 120, 30), -1)
    return image


def create_scene_image(count: int = 5) -> np.ndarray:
    """``count`` separate dark squares of decreasing size."""

    image = create_blank_image(640, 160)
    for index in range(count):
        left = 10 + index * 125
        size = 100 - index * 12
        cv2.rectangle(image, (left, 20), (left + size, 20 + size), (30, 30, 30), -1)
    return image


def create_speck_image() -> np.ndarray:
    image = create_blank_image()
    cv2.rectangle(image, (150, 150), (152, 152), (0, 0, 0), -1)
    return image


def make_region(
    region_id: str = "region_0",
    box: Tuple[float, float, float, float] = (0.2, 0.2, 0.6, 0.6),
    aspect_ratio: float = 1.0,
    brightness: float = 0.5,
    contrast: float = 0.5,
    saturation: float = 0.3,
    dominant_colors: Sequence[str] = ("unknown-colored", "mixed"),
    sharpness: float = 0.5,
    edge_complexity: float = 0.5,
    roughness: float = 0.5,
    bilateral: float = 0.5,
    reflectivity: float = 0.3,
    transparency: float = 0.2,
    likely_context: str = "household-item",
    functional: float = 0.5,
    usage: float = 0.5,
    location: float = 0.5,
    novelty: float = 0.2,
    complexity: float = 0.4,
) -> Region:
    x, y, width, height = box
    return Region(
        id=region_id,
        bounding_box=BoundingBox(x=x, y=y, width=width, height=height),
        visual=VisualFeatures(
            brightness=brightness,
            contrast=contrast,
            saturation=saturation,
            dominant_colors=tuple(dominant_colors),
            edges=EdgeCharacteristics(sharpness=sharpness, regularity=0.7, complexity=edge_complexity),
            texture=TextureMetrics(roughness=roughness, uniformity=0.6, regularity=0.4),
            symmetry=Symmetry(bilateral=bilateral, radial=0.3),
        ),
        material=MaterialIndicators(
            reflectivity=reflectivity,
            transparency=transparency,
            flexibility=0.25,
            density=0.8,
        ),
        shape=ShapeCharacteristics(
            aspect_ratio=aspect_ratio,
            compactness=0.65,
            elongation=0.1,
            hollowness=0.05,
        ),
        context=ContextualHints(
            likely_context=likely_context,
            functional=functional,
            usage=usage,
            location=location,
        ),
        novelty=novelty,
        complexity=complexity,
    )


def make_detection(
    region_id: str = "region_0",
    strategy: Strategy = Strategy.MATERIAL,
    category: str = "metal",
    confidence: float = 0.55,
    object_name: str = "Metal Can",
    features: Sequence[str] = ("material: metal",),
    disposal: str = "recycling",
) -> Detection:
    return Detection(
        region_id=region_id,
        strategy=strategy,
        category=category,
        confidence=confidence,
        method=f"{strategy.value}-analysis",
        object_name=object_name,
        features=tuple(features),
        disposal=disposal,
    )


def make_signature(
    colors: Sequence[Tuple[float, float, float]] = ((200.0, 200.0, 210.0),),
    edge_intensity: float = 0.3,
    aspect_ratio: float = 1.0,
) -> VisualSignature:
    share = 1.0 / max(len(colors), 1)
    return VisualSignature(
        dominant_colors=tuple(DominantColor(rgb=rgb, percentage=share, hsv=(0, 0, 0)) for rgb in colors),
        edge_intensity=edge_intensity,
        surface_texture=SurfaceTexture(roughness=0.2, smoothness=0.8, uniformity=0.7, manufactured=1.0),
        aspect_ratio=aspect_ratio,
        compactness=0.5,
    )


def make_frame_detection(
    detection_id: str = "cv_0",
    name: str = "Plastic Bottle",
    category: str = "plastic",
    confidence: int = 80,
    box: Tuple[float, float, float, float] = (0.2, 0.2, 0.4, 0.4),
    signature: Optional[VisualSignature] = None,
) -> FrameDetection:
    x, y, width, height = box
    return FrameDetection(
        id=detection_id,
        name=name,
        category=category,
        confidence=confidence,
        recyclable=True,
        class_index=0,
        signature=signature if signature is not None else make_signature(),
        disposal=DISPOSAL_GUIDE["recycling"],
        bounding_box=BoundingBox(x=x, y=y, width=width, height=height),
    )


def make_metal_region(region_id: str = "region_0") -> Region:
    """Bright, contrasty, large and compact: reads as highly reflective and heavy."""

    return make_region(
        region_id=region_id,
        box=(0.2, 0.2, 0.6, 0.6),
        aspect_ratio=1.0,
        brightness=0.9,
        contrast=0.8,
        dominant_colors=("metallic-silver", "reflective"),
        sharpness=0.5,
        novelty=0.2,
    )
