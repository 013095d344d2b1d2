"""Discrete classes derived from continuous region signals.

These helpers are shared by the material and shape strategies. Each maps a
handful of scores onto the vocabulary used by the material database.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from ..types import BoundingBox

_TRANSPARENT_TAGS = {"transparent", "clear", "translucent"}


def reflectivity_class(brightness: float, contrast: float) -> str:
    if brightness > 0.8 and contrast > 0.7:
        return "highly-reflective"
    if brightness > 0.6 and contrast > 0.5:
        return "moderately-reflective"
    if brightness < 0.4 and contrast < 0.3:
        return "matte"
    return "mixed-reflectivity"


def density_class(box: BoundingBox, aspect_ratio: float) -> str:
    """Large compact objects read as heavy, thin long ones as light."""

    if box.area > 0.3 and aspect_ratio < 2:
        return "heavy"
    if box.area > 0.1 and aspect_ratio > 3:
        return "light"
    return "medium"


def texture_class(edge_sharpness: float, brightness: float) -> str:
    if edge_sharpness > 0.7:
        return "complex-texture"
    if edge_sharpness < 0.3 and brightness > 0.6:
        return "smooth"
    if edge_sharpness < 0.3 and brightness < 0.4:
        return "matte-smooth"
    return "moderate-texture"


def transparency_class(color_tags: Sequence[str], brightness: float) -> str:
    see_through = any(tag.lower() in _TRANSPARENT_TAGS for tag in color_tags)
    if see_through and brightness > 0.5:
        return "transparent"
    if see_through and brightness < 0.5:
        return "translucent"
    return "opaque"


def shape_class(box: BoundingBox, aspect_ratio: float) -> str:
    if aspect_ratio > 2.5:
        return "elongated"
    if aspect_ratio < 0.7 and box.area > 0.15:
        return "flat-wide"
    if 0.7 <= aspect_ratio <= 1.5:
        return "compact"
    if box.area < 0.05:
        return "small-object"
    return "irregular"


def container_likelihood(aspect_ratio: float, edge_density: float) -> Tuple[bool, float]:
    """Containers tend to be moderately tall with clear edges."""

    if 1.2 < aspect_ratio < 4.0 and edge_density > 0.4:
        return True, 0.8
    return False, 0.2


def complexity_class(edge_complexity: float, texture_roughness: float) -> str:
    complexity = (edge_complexity + texture_roughness) / 2
    if complexity > 0.7:
        return "complex"
    if complexity > 0.4:
        return "moderate"
    return "simple"
