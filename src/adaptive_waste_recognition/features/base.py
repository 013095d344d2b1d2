"""Base feature extractor definitions."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

import cv2
import numpy as np

from ..errors import ExtractionFailure, ScanCancelled
from ..image_utils import ImageInput, load_image
from ..types import FeatureBundle

# Colour/surface tag pairs a region can be described with.
COLOR_PALETTES = (
    ("metallic-silver", "reflective"),
    ("plastic-white", "smooth"),
    ("organic-brown", "natural"),
    ("glass-clear", "transparent"),
    ("fabric-colored", "textured"),
    ("electronic-black", "manufactured"),
    ("paper-white", "matte"),
    ("unknown-colored", "mixed"),
)

LIKELY_CONTEXTS = (
    "kitchen-item",
    "office-supply",
    "electronic-device",
    "packaging-material",
    "household-item",
    "tool",
    "decorative-object",
    "storage-container",
    "unknown",
)


class FeatureExtractor(ABC):
    """Turns an image into the per-region signals the strategies consume."""

    @abstractmethod
    def extract(
        self,
        image_input: ImageInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> FeatureBundle:
        """Return the feature bundle for ``image_input``.

        Raises :class:`ExtractionFailure` when the image cannot be processed and
        :class:`ScanCancelled` when ``cancel_event`` is set mid-extraction.
        """

    @staticmethod
    def _load(image_input: ImageInput) -> np.ndarray:
        try:
            return load_image(image_input)
        except (FileNotFoundError, ValueError, TypeError, cv2.error) as exc:
            raise ExtractionFailure(str(exc)) from exc

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelled("Feature extraction cancelled")
