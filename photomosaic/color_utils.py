"""Colour sampling, colour-space conversion and distance computation."""

from __future__ import annotations

import math
from typing import NamedTuple

import numpy as np
from scipy.spatial.distance import cdist
from skimage.color import rgb2lab

from photomosaic.errors import ValidationError


class ColorSample(NamedTuple):
    """Mean R, G, B of a region, each in [0, 255]."""

    r: float
    g: float
    b: float


def average_color(
    image: np.ndarray,
    x: int,
    y: int,
    w: int,
    h: int,
) -> ColorSample:
    """Arithmetic mean of R, G, B over a rectangle of *image* (alpha ignored).

    Args:
        image: (H, W, C) uint8 array, C >= 3.
        x, y:  Top-left corner of the region.
        w, h:  Region size; both must be positive.

    Raises:
        ValidationError: empty region or region outside the image.
    """
    height, width = image.shape[:2]
    if w <= 0 or h <= 0:
        msg = f"Region must have positive area, got {w}x{h}"
        raise ValidationError(msg)
    if x < 0 or y < 0 or x + w > width or y + h > height:
        msg = f"Region ({x}, {y}, {w}, {h}) outside {width}x{height} image"
        raise ValidationError(msg)

    region = image[y : y + h, x : x + w, :3]
    mean = region.reshape(-1, 3).mean(axis=0, dtype=np.float64)
    return ColorSample(float(mean[0]), float(mean[1]), float(mean[2]))


def color_distance(a: ColorSample, b: ColorSample) -> float:
    """Euclidean distance between two RGB samples."""
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


def brightness(color: ColorSample) -> float:
    """Perceptual luma in [0, 1]."""
    return (0.299 * color[0] + 0.587 * color[1] + 0.114 * color[2]) / 255.0


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) RGB in [0, 255] → (N, 3) float64 CIELAB."""
    rgb = np.asarray(rgb, dtype=np.float64)
    return rgb2lab(rgb.reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def to_color_space(colors: np.ndarray, color_space: str = "rgb") -> np.ndarray:
    """Express flat (N, 3) RGB colours in the working space as float64."""
    colors = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
    if color_space == "lab":
        return rgb_to_lab(colors)
    if color_space == "rgb":
        return colors
    msg = f"Unknown color space '{color_space}'"
    raise ValidationError(msg)


def compute_distances(
    candidates: np.ndarray,
    targets: np.ndarray,
) -> np.ndarray:
    """Pairwise Euclidean distance between target and candidate colours.

    Both inputs must already be in the same colour space
    (see :func:`to_color_space`).

    Args:
        candidates: (N, 3) float colours, e.g. gallery sections.
        targets:    (M, 3) float colours, e.g. tile targets.

    Returns:
        (M, N) float64 distance matrix.
    """
    candidates = np.asarray(candidates, dtype=np.float64).reshape(-1, 3)
    targets = np.asarray(targets, dtype=np.float64).reshape(-1, 3)
    return cdist(targets, candidates)
