"""Pixel statistics used by the computer-vision waste detector."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from ..errors import ExtractionFailure
from ..image_utils import ImageInput, to_unit_rgb
from ..types import DominantColor, SurfaceTexture
from .base import FeatureExtractor

logger = logging.getLogger(__name__)

FEATURE_VECTOR_SIZE = 64

# Names of the leading components of ``ComputerVisionFeatures.to_vector``.
FEATURE_LAYOUT = (
    "color_variance",
    "dominant_color_share",
    "edge_intensity",
    "texture_complexity",
    "surface_smoothness",
    "aspect_ratio",
    "compactness",
    "contour_density",
    "reflectivity",
    "transparency",
    "roughness",
    "smoothness",
    "uniformity",
    "manufactured",
)

_NEIGHBOUR_OFFSETS = ((-1, -1), (-1, 0), (-1, 1), (0, 1), (1, 1), (1, 0), (1, -1), (0, -1))


@dataclass(frozen=True)
class ColorVariance:
    r: float
    g: float
    b: float
    overall: float


@dataclass(frozen=True)
class ContourStats:
    count: int
    average_area: float
    max_area: float
    total_perimeter: float


@dataclass(frozen=True)
class ComputerVisionFeatures:
    histogram: np.ndarray
    dominant_colors: Tuple[DominantColor, ...]
    color_variance: ColorVariance
    edge_intensity: float
    texture_complexity: float
    surface_smoothness: float
    contours: ContourStats
    aspect_ratio: float
    compactness: float
    reflectivity: float
    transparency: float
    surface_texture: SurfaceTexture

    def named_metrics(self) -> dict:
        top_share = self.dominant_colors[0].percentage if self.dominant_colors else 0.0
        return {
            "color_variance": self.color_variance.overall,
            "dominant_color_share": top_share,
            "edge_intensity": self.edge_intensity,
            "texture_complexity": self.texture_complexity / 8.0,
            "surface_smoothness": self.surface_smoothness,
            "aspect_ratio": self.aspect_ratio,
            "compactness": self.compactness,
            "contour_density": self.contours.count / 100.0,
            "reflectivity": self.reflectivity,
            "transparency": self.transparency,
            "roughness": self.surface_texture.roughness,
            "smoothness": self.surface_texture.smoothness,
            "uniformity": self.surface_texture.uniformity,
            "manufactured": self.surface_texture.manufactured,
        }

    def to_vector(self) -> np.ndarray:
        metrics = self.named_metrics()
        vector = np.zeros(FEATURE_VECTOR_SIZE, dtype=np.float64)
        vector[: len(FEATURE_LAYOUT)] = [metrics[name] for name in FEATURE_LAYOUT]
        return vector


class ComputerVisionExtractor:
    """Computes colour, edge, texture and shape statistics for a whole frame."""

    def __init__(
        self,
        image_size: int = 224,
        kmeans_clusters: int = 5,
        kmeans_max_iterations: int = 10,
        seed: int = 0,
    ) -> None:
        self.image_size = image_size
        self.kmeans_clusters = kmeans_clusters
        self.kmeans_max_iterations = kmeans_max_iterations
        self.seed = seed

    def prepare(self, image_input: ImageInput) -> np.ndarray:
        image = FeatureExtractor._load(image_input)
        try:
            return to_unit_rgb(image, self.image_size)
        except cv2.error as exc:
            raise ExtractionFailure(str(exc)) from exc

    def extract(self, image_input: ImageInput) -> ComputerVisionFeatures:
        return self.extract_rgb(self.prepare(image_input))

    def extract_rgb(self, rgb: np.ndarray) -> ComputerVisionFeatures:
        """Compute every metric on an RGB float image already scaled to [0, 1]."""

        gray = grey_level(rgb)
        variance = color_variance(rgb)
        edge = edge_intensity(gray)
        texture = texture_complexity(gray)
        smoothness = surface_smoothness(gray)
        contours = contour_stats(gray)
        roughness = float(np.clip(texture / 8.0, 0.0, 1.0))

        return ComputerVisionFeatures(
            histogram=color_histogram(rgb),
            dominant_colors=dominant_colors(
                rgb,
                clusters=self.kmeans_clusters,
                max_iterations=self.kmeans_max_iterations,
                rng=np.random.default_rng(self.seed),
            ),
            color_variance=variance,
            edge_intensity=edge,
            texture_complexity=texture,
            surface_smoothness=smoothness,
            contours=contours,
            aspect_ratio=aspect_ratio(gray),
            compactness=compactness(contours),
            reflectivity=reflectivity(gray),
            transparency=float(np.clip((1.0 - edge) * variance.overall, 0.0, 1.0)),
            surface_texture=SurfaceTexture(
                roughness=roughness,
                smoothness=smoothness,
                uniformity=1.0 - roughness,
                manufactured=1.0 if smoothness > 0.7 else 0.0,
            ),
        )


def grey_level(rgb: np.ndarray) -> np.ndarray:
    """Channel-mean grey image."""

    return rgb.mean(axis=2).astype(np.float32)


def color_histogram(rgb: np.ndarray) -> np.ndarray:
    """256-bin histogram per channel, each normalised by the pixel count."""

    values = np.clip(np.floor(rgb * 255.0), 0, 255).astype(np.uint8)
    total = max(values.shape[0] * values.shape[1], 1)
    channels = [
        cv2.calcHist([values], [channel], None, [256], [0, 256]).ravel()
        for channel in range(3)
    ]
    return np.stack(channels).astype(np.float64) / total


def dominant_colors(
    rgb: np.ndarray,
    clusters: int = 5,
    max_iterations: int = 10,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[DominantColor, ...]:
    """Cluster pixels with k-means and report the non-empty clusters by size.

    Centroids are seeded from random pixels; an empty cluster takes the first
    centroid. Iteration stops when no centroid moves by one unit or more.
    """

    pixels = rgb.reshape(-1, 3).astype(np.float64) * 255.0
    if pixels.shape[0] == 0 or clusters <= 0:
        return ()
    rng = rng if rng is not None else np.random.default_rng(0)

    centroids = pixels[rng.integers(0, pixels.shape[0], size=clusters)].copy()
    labels = np.zeros(pixels.shape[0], dtype=np.int64)
    for _ in range(max_iterations):
        distances = np.linalg.norm(pixels[:, None, :] - centroids[None, :, :], axis=2)
        labels = np.argmin(distances, axis=1)

        updated = np.empty_like(centroids)
        for index in range(clusters):
            members = pixels[labels == index]
            updated[index] = members.mean(axis=0) if len(members) else centroids[0]

        shift = np.linalg.norm(updated - centroids, axis=1)
        centroids = updated
        if np.all(shift < 1.0):
            break

    counts = np.bincount(labels, minlength=clusters)
    order = sorted(range(clusters), key=lambda index: -counts[index])
    colors = []
    for index in order:
        if counts[index] == 0:
            continue
        centre = np.clip(centroids[index], 0.0, 255.0)
        colors.append(
            DominantColor(
                rgb=(float(centre[0]), float(centre[1]), float(centre[2])),
                percentage=float(counts[index] / pixels.shape[0]),
                hsv=rgb_to_hsv(centre),
            )
        )
    return tuple(colors)


def rgb_to_hsv(rgb) -> Tuple[int, int, int]:
    """Convert one 0-255 RGB triple to OpenCV HSV (H in 0-179)."""

    pixel = np.array([[np.clip(np.round(rgb), 0, 255)]], dtype=np.uint8)
    h, s, v = cv2.cvtColor(pixel, cv2.COLOR_RGB2HSV)[0, 0]
    return int(h), int(s), int(v)


def color_variance(rgb: np.ndarray) -> ColorVariance:
    r, g, b = (float(np.var(rgb[..., channel])) for channel in range(3))
    return ColorVariance(r=r, g=g, b=b, overall=(r + g + b) / 3.0)


def edge_intensity(gray: np.ndarray) -> float:
    """Mean 3x3 Sobel gradient magnitude over interior pixels."""

    height, width = gray.shape
    if height < 3 or width < 3:
        return 0.0
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = np.sqrt(gx * gx + gy * gy)
    return float(magnitude[1:-1, 1:-1].mean())


def texture_complexity(gray: np.ndarray) -> float:
    """Average count of bit transitions in the 8-neighbour local binary pattern."""

    height, width = gray.shape
    if height < 3 or width < 3:
        return 0.0
    centre = gray[1:-1, 1:-1]
    bits = [
        gray[1 + dy : height - 1 + dy, 1 + dx : width - 1 + dx] >= centre
        for dy, dx in _NEIGHBOUR_OFFSETS
    ]
    transitions = np.zeros(centre.shape, dtype=np.int32)
    for index in range(len(bits)):
        transitions += bits[index] != bits[(index + 1) % len(bits)]
    return float(transitions.mean())


def surface_smoothness(gray: np.ndarray, window: int = 5) -> float:
    """Mean of ``1 / (1 + variance)`` over windows sampled on a coarse grid."""

    height, width = gray.shape
    rows = np.arange(window, height - window, window)
    cols = np.arange(window, width - window, window)
    if len(rows) == 0 or len(cols) == 0:
        return 0.0
    mean = cv2.blur(gray, (window, window))
    mean_sq = cv2.blur(gray * gray, (window, window))
    variance = np.maximum(mean_sq - mean * mean, 0.0)
    sampled = variance[np.ix_(rows, cols)]
    return float(np.mean(1.0 / (1.0 + sampled)))


def edge_map(gray: np.ndarray, threshold: float = 0.1) -> np.ndarray:
    """Binary map of pixels differing from any 8-neighbour by more than ``threshold``."""

    kernel = np.ones((3, 3), dtype=np.uint8)
    above = cv2.dilate(gray, kernel) - gray
    below = gray - cv2.erode(gray, kernel)
    edges = (np.maximum(above, below) > threshold).astype(np.uint8)
    edges[0, :] = 0
    edges[-1, :] = 0
    edges[:, 0] = 0
    edges[:, -1] = 0
    return edges


def contour_stats(gray: np.ndarray, min_pixels: int = 10) -> ContourStats:
    """Count the 8-connected edge blobs larger than ``min_pixels``."""

    edges = edge_map(gray)
    count, labels, stats, _ = cv2.connectedComponentsWithStats(edges, connectivity=8)

    areas = []
    perimeters = []
    for label in range(1, count):
        area = int(stats[label, cv2.CC_STAT_AREA])
        if area <= min_pixels:
            continue
        x = stats[label, cv2.CC_STAT_LEFT]
        y = stats[label, cv2.CC_STAT_TOP]
        w = stats[label, cv2.CC_STAT_WIDTH]
        h = stats[label, cv2.CC_STAT_HEIGHT]
        mask = (labels[y : y + h, x : x + w] == label).astype(np.uint8)
        found, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE)
        areas.append(area)
        perimeters.append(sum(cv2.arcLength(contour, True) for contour in found))

    if not areas:
        return ContourStats(count=0, average_area=0.0, max_area=0.0, total_perimeter=0.0)
    return ContourStats(
        count=len(areas),
        average_area=float(np.mean(areas)),
        max_area=float(max(areas)),
        total_perimeter=float(sum(perimeters)),
    )


def aspect_ratio(gray: np.ndarray) -> float:
    """Width over height of the region that stands out from mid-grey."""

    ys, xs = np.nonzero(np.abs(gray - 0.5) > 0.1)
    if len(xs) == 0:
        return 1.0
    # inclusive pixel extent, so a single row or column is still one pixel wide
    width = float(xs.max() - xs.min() + 1)
    height = float(ys.max() - ys.min() + 1)
    return width / height


def compactness(contours: ContourStats) -> float:
    if contours.count == 0 or contours.max_area <= 0:
        return 0.0
    average_perimeter = contours.total_perimeter / contours.count
    if average_perimeter <= 0:
        return 0.0
    return float(4.0 * math.pi * contours.max_area / (average_perimeter * average_perimeter))


def reflectivity(gray: np.ndarray) -> float:
    if gray.size == 0:
        return 0.0
    return float(np.count_nonzero(gray > 0.8) / gray.size)
