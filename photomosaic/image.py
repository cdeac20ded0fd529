"""In-memory RGBA8 image helpers.

Images are plain ``(H, W, 4)`` ``uint8`` NumPy arrays. The helpers here
normalise caller input into that shape and wrap the few Pillow resampling
calls the engine needs.
"""

from __future__ import annotations

import numpy as np
from PIL import Image

from photomosaic.errors import ValidationError

RESAMPLE = {
    "nearest": Image.NEAREST,
    "box": Image.BOX,
    "bilinear": Image.BILINEAR,
    "bicubic": Image.BICUBIC,
    "lanczos": Image.LANCZOS,
}


def as_rgba(image: np.ndarray, name: str = "image") -> np.ndarray:
    """Validate *image* and return it as a contiguous (H, W, 4) uint8 array.

    Grayscale (H, W) and RGB (H, W, 3) input gain an opaque alpha channel.

    Raises:
        ValidationError: wrong dtype, wrong shape, or zero area.
    """
    arr = np.asarray(image)
    if arr.dtype != np.uint8:
        msg = f"{name} must be uint8, got {arr.dtype}"
        raise ValidationError(msg)

    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, np.newaxis], 3, axis=2)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        msg = f"{name} must have shape (H, W), (H, W, 3) or (H, W, 4), got {arr.shape}"
        raise ValidationError(msg)
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        msg = f"{name} has zero area: {arr.shape[1]}x{arr.shape[0]}"
        raise ValidationError(msg)

    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return np.ascontiguousarray(arr)


def from_buffer(data: bytes, width: int, height: int) -> np.ndarray:
    """Wrap a raw row-major RGBA8 buffer of *width* x *height* pixels."""
    if width <= 0 or height <= 0:
        msg = f"Buffer dimensions must be positive, got {width}x{height}"
        raise ValidationError(msg)
    expected = width * height * 4
    if len(data) != expected:
        msg = f"Buffer holds {len(data)} bytes, expected {expected} for {width}x{height} RGBA"
        raise ValidationError(msg)
    return np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy()


def compute_target_size(
    original_width: int,
    original_height: int,
    max_side: int,
) -> tuple[int, int]:
    """Compute downscaled (w, h) preserving aspect ratio.

    The longest side becomes *max_side*; the other is scaled
    proportionally (rounded to the nearest integer, minimum 1).
    """
    if original_width >= original_height:
        w = max_side
        h = max(1, round(original_height * max_side / original_width))
    else:
        h = max_side
        w = max(1, round(original_width * max_side / original_height))
    return w, h


def resize(
    image: np.ndarray,
    width: int,
    height: int,
    resample: str = "bilinear",
) -> np.ndarray:
    """Resize an RGBA array to exactly *width* x *height*."""
    img = Image.fromarray(image).resize((width, height), RESAMPLE[resample])
    return np.asarray(img, dtype=np.uint8).copy()


def downscale_to_fit(
    image: np.ndarray,
    max_side: int | None,
    resample: str = "bilinear",
) -> np.ndarray:
    """Shrink *image* so its longest side is at most *max_side*.

    Images already within the limit (or ``max_side=None``) are returned
    unchanged.
    """
    h, w = image.shape[:2]
    if max_side is None or max(w, h) <= max_side:
        return image
    new_w, new_h = compute_target_size(w, h, max_side)
    return resize(image, new_w, new_h, resample)
