"""Image loading and colour-space helpers shared by the extractors."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image

ImageInput = Union[str, Path, np.ndarray, Image.Image]


def load_image(image_input: ImageInput) -> np.ndarray:
    """Load an image input into an OpenCV-compatible BGR ndarray.

    Arrays are taken to be in OpenCV's BGR channel order, as ``cv2.imread``
    and camera captures produce them; pass RGB data as a ``PIL.Image``.
    Floating point arrays whose values all lie in [0, 1] are treated as
    normalised samples and scaled to 0-255.
    """

    if isinstance(image_input, np.ndarray):
        image = image_input.copy()
    elif isinstance(image_input, Image.Image):
        image = cv2.cvtColor(np.array(image_input.convert("RGB")), cv2.COLOR_RGB2BGR)
    elif isinstance(image_input, (str, Path)):
        path = Path(image_input)
        if not path.exists():
            raise FileNotFoundError(f"Image path not found: {path}")
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise ValueError(f"Unable to read image from path: {path}")
    else:
        raise TypeError(f"Unsupported image input: {type(image_input).__name__}")

    if image.size == 0 or image.ndim not in (2, 3):
        raise ValueError(f"Image has no usable pixels (shape={image.shape})")
    if image.dtype != np.uint8:
        if np.issubdtype(image.dtype, np.floating) and float(np.nanmax(image)) <= 1.0:
            image = image * 255.0
        image = np.clip(np.round(np.nan_to_num(image)), 0, 255).astype(np.uint8)

    return ensure_color(image)


def ensure_color(image: np.ndarray) -> np.ndarray:
    """Ensure the ndarray is three-channel BGR."""

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def ensure_gray(image: np.ndarray) -> np.ndarray:
    """Convert a BGR image to grayscale if necessary."""

    if image.ndim == 2:
        return image
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def to_unit_rgb(image: np.ndarray, size: Optional[int] = None) -> np.ndarray:
    """Return an RGB float32 copy scaled to [0, 1], optionally resized to ``size``x``size``."""

    color_image = ensure_color(image)
    if size is not None and color_image.shape[:2] != (size, size):
        color_image = cv2.resize(color_image, (size, size), interpolation=cv2.INTER_AREA)
    rgb = cv2.cvtColor(color_image, cv2.COLOR_BGR2RGB)
    return rgb.astype(np.float32) / 255.0
