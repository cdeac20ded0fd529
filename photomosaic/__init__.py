"""
Photomosaic Engine
==================

Rebuild a target image as a grid of tiles, each tile cut from the
gallery image section whose average colour matches it best.
Ships two matching strategies:

- **Full search** (exact, every section of every image)
- **Heuristic** (closest whole image first, then its best section)

and an optional brightness-driven adaptive tile grid.
"""

__version__ = "1.0.0"

from photomosaic.builder import (
    BuildState,
    CancellationToken,
    Mosaic,
    MosaicBuilder,
    Tile,
)
from photomosaic.color_grid import NAMED_COLORS, make_color_grid, solid_image
from photomosaic.color_utils import ColorSample, average_color, color_distance
from photomosaic.compositor import Compositor, composite_into, render_cover
from photomosaic.config import MosaicConfig
from photomosaic.errors import (
    Cancelled,
    EmptyGallery,
    ImageLoadError,
    MosaicError,
    NoMatchFound,
    OutputWriteError,
    ValidationError,
)
from photomosaic.gallery import GalleryIndex, Section
from photomosaic.image import as_rgba, from_buffer
from photomosaic.image_io import load_gallery, load_image, make_comparison_grid, save_image
from photomosaic.matcher import Match, TileMatcher
from photomosaic.sizing import GridLayout, adaptive_tile_size, plan_grid

__all__ = [
    "NAMED_COLORS",
    "BuildState",
    "CancellationToken",
    "Cancelled",
    "ColorSample",
    "Compositor",
    "EmptyGallery",
    "GalleryIndex",
    "GridLayout",
    "ImageLoadError",
    "Match",
    "Mosaic",
    "MosaicBuilder",
    "MosaicConfig",
    "MosaicError",
    "NoMatchFound",
    "OutputWriteError",
    "Section",
    "Tile",
    "TileMatcher",
    "ValidationError",
    "adaptive_tile_size",
    "as_rgba",
    "average_color",
    "color_distance",
    "composite_into",
    "from_buffer",
    "load_gallery",
    "load_image",
    "make_color_grid",
    "make_comparison_grid",
    "plan_grid",
    "render_cover",
    "save_image",
    "solid_image",
]
