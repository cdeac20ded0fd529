"""Tile grid planning, including brightness-driven adaptive tile sizes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import accumulate

import numpy as np

from photomosaic.color_utils import ColorSample, brightness
from photomosaic.config import MosaicConfig
from photomosaic.errors import ValidationError

logger = logging.getLogger(__name__)


def adaptive_tile_size(base_size: float, color: ColorSample) -> float:
    """Scale *base_size* by local brightness: dark → up to 1.3x, bright → 0.7x."""
    return base_size * (0.7 + (1.0 - brightness(color)) * 0.6)


def plan_grid(width: int, height: int, config: MosaicConfig) -> tuple[int, int, int]:
    """Decide (columns, rows, tile_size) for a *width* x *height* target.

    With ``config.target_columns`` set, the tile size is derived from the
    target width and clamped to ``[min_tile_size, max_tile_size]``;
    otherwise the fixed ``tile_columns`` x ``tile_rows`` grid is used.
    Either way columns and rows never exceed the target's pixel count
    along that axis, so every tile covers at least one source pixel.
    """
    if width <= 0 or height <= 0:
        msg = f"Target has zero area: {width}x{height}"
        raise ValidationError(msg)

    if config.target_columns is not None:
        tile_size = width // config.target_columns
        tile_size = min(max(tile_size, config.min_tile_size), config.max_tile_size)
        cols = max(1, width // tile_size)
        rows = max(1, height // tile_size)
    else:
        tile_size = config.tile_size
        cols, rows = config.tile_columns, config.tile_rows

    if cols > width or rows > height:
        logger.warning(
            "Target %dx%d is smaller than the %dx%d tile grid; clamping",
            width, height, cols, rows,
        )
        cols, rows = min(cols, width), min(rows, height)
    return cols, rows, tile_size


@dataclass(frozen=True)
class GridLayout:
    """Column widths and row heights of the output mosaic, in pixels.

    Every tile in column *c* is ``col_widths[c]`` wide and every tile in
    row *r* is ``row_heights[r]`` high, so tiles never overlap and the
    canvas is exactly ``sum(col_widths)`` x ``sum(row_heights)``.
    """

    col_widths: tuple[int, ...]
    row_heights: tuple[int, ...]

    @property
    def columns(self) -> int:
        return len(self.col_widths)

    @property
    def rows(self) -> int:
        return len(self.row_heights)

    @property
    def width(self) -> int:
        return sum(self.col_widths)

    @property
    def height(self) -> int:
        return sum(self.row_heights)

    @property
    def col_offsets(self) -> tuple[int, ...]:
        return (0, *accumulate(self.col_widths))[:-1]

    @property
    def row_offsets(self) -> tuple[int, ...]:
        return (0, *accumulate(self.row_heights))[:-1]

    def cell(self, row: int, col: int) -> tuple[int, int, int, int]:
        """(x, y, w, h) of the tile at *row*, *col*."""
        return (
            self.col_offsets[col],
            self.row_offsets[row],
            self.col_widths[col],
            self.row_heights[row],
        )

    @classmethod
    def uniform(cls, columns: int, rows: int, tile_size: int) -> GridLayout:
        return cls((tile_size,) * columns, (tile_size,) * rows)

    @classmethod
    def adaptive(cls, colors: np.ndarray, base_size: int) -> GridLayout:
        """Derive a non-uniform layout from a (rows, cols, 3) colour grid.

        Each tile gets :func:`adaptive_tile_size`; a column is as wide as
        the rounded mean size of its tiles and a row as high as the rounded
        mean size of its tiles (at least 1 px each).
        """
        rows, cols = colors.shape[:2]
        sizes = np.array([
            [adaptive_tile_size(base_size, ColorSample(*map(float, colors[r, c, :3])))
             for c in range(cols)]
            for r in range(rows)
        ])
        col_widths = tuple(max(1, round(float(v))) for v in sizes.mean(axis=0))
        row_heights = tuple(max(1, round(float(v))) for v in sizes.mean(axis=1))
        return cls(col_widths, row_heights)
