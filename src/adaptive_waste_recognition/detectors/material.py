"""Material strategy: scores a region against every known material."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from ..types import Detection, Region, Strategy, Thresholds
from .analysis import (
    container_likelihood,
    density_class,
    reflectivity_class,
    shape_class,
    texture_class,
    transparency_class,
)
from .base import StrategyClassifier


@dataclass(frozen=True)
class MaterialProfile:
    surfaces: Tuple[str, ...]
    densities: Tuple[str, ...]
    textures: Tuple[str, ...]
    disposal: str


MATERIAL_DATABASE: Dict[str, MaterialProfile] = {
    "plastic": MaterialProfile(
        surfaces=("smooth", "glossy", "translucent", "opaque", "flexible", "moderately-reflective"),
        densities=("light", "medium"),
        textures=("uniform", "molded", "manufactured"),
        disposal="recycling",
    ),
    "metal": MaterialProfile(
        surfaces=("reflective", "metallic", "shiny", "matte", "highly-reflective"),
        densities=("heavy", "medium-heavy"),
        textures=("smooth", "brushed", "polished"),
        disposal="recycling",
    ),
    "glass": MaterialProfile(
        surfaces=("transparent", "translucent", "reflective", "highly-reflective"),
        densities=("heavy",),
        textures=("smooth", "uniform"),
        disposal="recycling",
    ),
    "organic": MaterialProfile(
        surfaces=("natural", "irregular", "textured"),
        densities=("light", "variable"),
        textures=("rough", "fibrous", "organic"),
        disposal="composting",
    ),
    "paper": MaterialProfile(
        surfaces=("matte", "textured", "fibrous"),
        densities=("light",),
        textures=("rough", "smooth", "coated"),
        disposal="recycling",
    ),
    "electronic": MaterialProfile(
        surfaces=("plastic", "metal", "glass", "composite"),
        densities=("medium", "heavy"),
        textures=("manufactured", "complex"),
        disposal="e-waste",
    ),
    "fabric": MaterialProfile(
        surfaces=("soft", "textured", "woven", "matte"),
        densities=("light", "medium"),
        textures=("fibrous", "woven", "knitted"),
        disposal="textile-recycling",
    ),
}

NAME_TEMPLATES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "plastic": {
        "elongated": ("Plastic Rod", "Plastic Tube", "Plastic Tool"),
        "compact": ("Plastic Container", "Plastic Item", "Plastic Object"),
        "flat-wide": ("Plastic Sheet", "Plastic Packaging", "Plastic Film"),
        "small-object": ("Plastic Part", "Plastic Component", "Small Plastic Item"),
    },
    "metal": {
        "elongated": ("Metal Rod", "Metal Tool", "Metal Utensil"),
        "compact": ("Metal Container", "Metal Can", "Metal Object"),
        "flat-wide": ("Metal Sheet", "Metal Plate", "Metal Panel"),
        "small-object": ("Metal Part", "Metal Component", "Small Metal Item"),
    },
    "glass": {
        "elongated": ("Glass Bottle", "Glass Tube", "Glass Container"),
        "compact": ("Glass Jar", "Glass Container", "Glass Object"),
        "flat-wide": ("Glass Sheet", "Glass Panel", "Flat Glass"),
        "small-object": ("Glass Fragment", "Small Glass Item", "Glass Piece"),
    },
    "paper": {
        "elongated": ("Paper Roll", "Paper Tube", "Rolled Paper"),
        "compact": ("Paper Package", "Paper Box", "Paper Item"),
        "flat-wide": ("Paper Sheet", "Paper Document", "Flat Paper"),
        "small-object": ("Paper Scrap", "Small Paper Item", "Paper Piece"),
    },
    "organic": {
        "elongated": ("Organic Material", "Natural Item", "Biological Object"),
        "compact": ("Organic Matter", "Natural Object", "Organic Item"),
        "flat-wide": ("Organic Sheet", "Natural Flat Material", "Organic Layer"),
        "small-object": ("Organic Fragment", "Small Natural Item", "Organic Piece"),
    },
    "electronic": {
        "elongated": ("Electronic Component", "Electronic Device", "Electronic Tool"),
        "compact": ("Electronic Device", "Electronic Item", "Electronic Object"),
        "flat-wide": ("Circuit Board", "Electronic Panel", "Flat Electronic"),
        "small-object": ("Electronic Part", "Small Electronic", "Electronic Component"),
    },
    "fabric": {
        "elongated": ("Fabric Strip", "Textile Material", "Fabric Roll"),
        "compact": ("Fabric Item", "Textile Object", "Fabric Material"),
        "flat-wide": ("Fabric Sheet", "Textile Fabric", "Flat Fabric"),
        "small-object": ("Fabric Scrap", "Small Textile", "Fabric Piece"),
    },
}


class MaterialClassifier(StrategyClassifier):
    """Emits one candidate per material whose indicators the region matches."""

    def __init__(self, materials: Optional[Mapping[str, MaterialProfile]] = None) -> None:
        super().__init__(Strategy.MATERIAL, "material-analysis")
        self.materials = dict(materials or MATERIAL_DATABASE)

    def classify(self, region: Region, thresholds: Thresholds) -> List[Detection]:
        detections: List[Detection] = []
        for material, profile in self.materials.items():
            confidence = self.score(region, profile)
            if confidence <= thresholds.adaptive_threshold:
                continue
            detections.append(
                Detection(
                    region_id=region.id,
                    strategy=self.strategy,
                    category=material,
                    confidence=confidence,
                    method=self.method,
                    object_name=self._material_name(material, region),
                    features=self._material_features(material, region),
                    disposal=profile.disposal,
                )
            )
        return detections

    def score(self, region: Region, profile: MaterialProfile) -> float:
        visual = region.visual
        confidence = 0.0

        if reflectivity_class(visual.brightness, visual.contrast) in profile.surfaces:
            confidence += 0.3
        if density_class(region.bounding_box, region.shape.aspect_ratio) in profile.densities:
            confidence += 0.25

        texture = texture_class(visual.edges.sharpness, visual.brightness)
        if texture in profile.textures or texture in profile.surfaces:
            confidence += 0.2

        if transparency_class(visual.dominant_colors, visual.brightness) in profile.surfaces:
            confidence += 0.15
        if region.novelty > 0.7:
            confidence += 0.1

        return self._clip_confidence(confidence)

    def _material_name(self, material: str, region: Region) -> str:
        templates = NAME_TEMPLATES.get(material, NAME_TEMPLATES["plastic"])
        shape = shape_class(region.bounding_box, region.shape.aspect_ratio)
        return self._pick_name(templates.get(shape, templates["compact"]), region)

    @staticmethod
    def _material_features(material: str, region: Region) -> Tuple[str, ...]:
        visual = region.visual
        features = [
            f"material: {material}",
            f"reflectivity: {reflectivity_class(visual.brightness, visual.contrast)}",
            f"texture: {texture_class(visual.edges.sharpness, visual.brightness)}",
        ]
        is_container, _ = container_likelihood(region.shape.aspect_ratio, visual.edges.sharpness)
        if is_container:
            features.append("container")
        return tuple(features)
