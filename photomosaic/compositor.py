"""Crop matched sections, cover-resize them and paste them into the canvas."""

from __future__ import annotations

import numpy as np
from PIL import Image, ImageOps

from photomosaic.gallery import GalleryIndex, Section
from photomosaic.image import RESAMPLE


def new_canvas(
    width: int,
    height: int,
    background: tuple[int, int, int, int] = (255, 255, 255, 255),
) -> np.ndarray:
    """Allocate a (height, width, 4) uint8 canvas filled with *background*."""
    canvas = np.empty((height, width, 4), dtype=np.uint8)
    canvas[:] = background
    return canvas


def render_cover(
    image: np.ndarray,
    target_w: int,
    target_h: int,
    resample: str = "lanczos",
) -> np.ndarray:
    """Scale *image* to fill *target_w* x *target_h*, centre-cropping overflow.

    The aspect ratio is preserved: the image is scaled until its shorter
    side (relative to the target aspect) fits, and the excess along the
    other axis is trimmed equally from both ends.
    """
    img = ImageOps.fit(
        Image.fromarray(np.ascontiguousarray(image)),
        (target_w, target_h),
        method=RESAMPLE[resample],
        centering=(0.5, 0.5),
    )
    return np.array(img, dtype=np.uint8)


def composite_into(canvas: np.ndarray, tile: np.ndarray, x: int, y: int) -> None:
    """Overwrite ``canvas[y:y+h, x:x+w]`` with *tile*."""
    th, tw = tile.shape[:2]
    ch, cw = canvas.shape[:2]
    if x < 0 or y < 0 or x + tw > cw or y + th > ch:
        msg = f"Tile {tw}x{th} at ({x}, {y}) does not fit a {cw}x{ch} canvas"
        raise ValueError(msg)
    canvas[y : y + th, x : x + tw] = tile


class Compositor:
    """Render gallery sections as mosaic tiles.

    Rendered tiles are cached per (section, size), since a popular section
    is usually placed many times at the same size.
    """

    def __init__(self, index: GalleryIndex, resample: str = "lanczos") -> None:
        self.index = index
        self.resample = resample
        self._cache: dict[tuple[Section, int, int], np.ndarray] = {}

    def render_tile(self, section: Section, target_w: int, target_h: int) -> np.ndarray:
        """Crop *section* from its image and cover-resize it to the target size."""
        key = (section, target_w, target_h)
        tile = self._cache.get(key)
        if tile is None:
            image = self.index.image_of(section)
            crop = image[section.y : section.y + section.h, section.x : section.x + section.w]
            tile = render_cover(crop, target_w, target_h, self.resample)
            self._cache[key] = tile
        return tile
