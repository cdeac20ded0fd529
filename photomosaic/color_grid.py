"""Solid-colour targets: swatches and labelled colour grids."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from PIL import Image, ImageDraw

from photomosaic.errors import ValidationError

RGB = tuple[int, int, int]

# The nine-colour reference grid, in row-major order.
NAMED_COLORS: dict[str, RGB] = {
    "blue": (0, 0, 255),
    "orange": (255, 165, 0),
    "yellow": (255, 255, 0),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "purple": (128, 0, 128),
    "gray": (128, 128, 128),
    "pink": (255, 192, 203),
    "white": (255, 255, 255),
}


def hex_to_rgb(hex_str: str) -> RGB:
    """Parse '#RRGGBB' to an (r, g, b) tuple."""
    h = hex_str.lstrip("#")
    if len(h) != 6:
        msg = f"Expected '#RRGGBB', got '{hex_str}'"
        raise ValidationError(msg)
    try:
        return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))
    except ValueError as exc:
        msg = f"Expected '#RRGGBB', got '{hex_str}'"
        raise ValidationError(msg) from exc


def _resolve(color: str | Sequence[int]) -> RGB:
    if isinstance(color, str):
        if color in NAMED_COLORS:
            return NAMED_COLORS[color]
        return hex_to_rgb(color)
    r, g, b = (int(c) for c in color)
    return (r, g, b)


def solid_image(color: str | Sequence[int], width: int, height: int) -> np.ndarray:
    """A (height, width, 4) opaque swatch of one colour."""
    r, g, b = _resolve(color)
    out = np.empty((height, width, 4), dtype=np.uint8)
    out[:] = (r, g, b, 255)
    return out


def make_color_grid(
    colors: Sequence[str | Sequence[int]] = tuple(NAMED_COLORS),
    rows: int = 3,
    cols: int = 3,
    cell_size: int = 200,
    line_width: int = 0,
) -> np.ndarray:
    """Paint *colors* row-major into a *rows* x *cols* grid of square cells.

    Args:
        colors:     Names from :data:`NAMED_COLORS`, '#RRGGBB' strings, or
                    RGB triples; exactly ``rows * cols`` of them.
        rows, cols: Grid shape.
        cell_size:  Edge of one cell in pixels.
        line_width: Black grid lines of this width (0 = none).

    Returns:
        (rows * cell_size, cols * cell_size, 4) uint8 array.
    """
    if len(colors) != rows * cols:
        msg = f"Need {rows * cols} colours for a {rows}x{cols} grid, got {len(colors)}"
        raise ValidationError(msg)

    img = Image.new("RGBA", (cols * cell_size, rows * cell_size), (255, 255, 255, 255))
    draw = ImageDraw.Draw(img)
    for i, color in enumerate(colors):
        r, c = divmod(i, cols)
        x0, y0 = c * cell_size, r * cell_size
        draw.rectangle(
            [x0, y0, x0 + cell_size - 1, y0 + cell_size - 1],
            fill=(*_resolve(color), 255),
        )

    if line_width > 0:
        for i in range(rows + 1):
            y = min(i * cell_size, img.height - 1)
            draw.line([(0, y), (img.width, y)], fill=(0, 0, 0, 255), width=line_width)
        for i in range(cols + 1):
            x = min(i * cell_size, img.width - 1)
            draw.line([(x, 0), (x, img.height)], fill=(0, 0, 0, 255), width=line_width)

    return np.array(img, dtype=np.uint8)
