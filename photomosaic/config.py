"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from photomosaic.errors import ValidationError

MATCH_STRATEGIES = ("full", "heuristic")
SAMPLING_STRATEGIES = ("sections", "random")
COLOR_SPACES = ("rgb", "lab")
RESAMPLE_FILTERS = ("nearest", "box", "bilinear", "bicubic", "lanczos")

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        tile_columns:     Tiles across the output (fixed-grid mode).
        tile_rows:        Tiles down the output (fixed-grid mode).
        tile_size:        Edge length in pixels of one output tile (fixed-grid mode).
        target_columns:   If set, derive the grid from the target width instead:
                          tile size = width // target_columns, clamped to
                          [min_tile_size, max_tile_size].
        min_tile_size:    Lower clamp for the derived tile size.
        max_tile_size:    Upper clamp for the derived tile size.
        section_grid:     Each gallery image is split into n x n sections.
        match_strategy:   "full" (exhaustive) or "heuristic" (best image first,
                          then best section inside it; faster, approximate).
        adaptive_sizing:  Darker regions get larger tiles (0.7x - 1.3x base).
        sampling:         "sections" (precomputed, deterministic) or "random"
                          (one random patch per gallery image per tile; requires
                          match_strategy="full").
        patch_size:       Edge length of the random patch for "random" sampling.
        seed:             Seed for "random" sampling (None = non-deterministic).
        color_space:      Distance metric - "rgb" or "lab" (perceptual).
        min_gallery_size: Fewer gallery images than this is a validation error.
        max_gallery_side: Downscale gallery images whose longest side exceeds this.
        max_target_side:  Downscale the target whose longest side exceeds this.
        downsample:       Filter reducing the target to one pixel per tile;
                          "box" averages each tile's footprint exactly.
        workers:          Thread pool size (None = os.cpu_count()).
        progress_interval: Fraction of tiles between progress reports.
        background:       RGBA fill of the freshly allocated canvas.
        resample:         Filter used when cover-resizing tiles.
        progress_callback: Called with (tiles_done, tiles_total).
    """

    # Grid
    tile_columns: int = 60
    tile_rows: int = 60
    tile_size: int = 16
    target_columns: int | None = None
    min_tile_size: int = 2
    max_tile_size: int = 40

    # Gallery
    section_grid: int = 12
    min_gallery_size: int = 9
    max_gallery_side: int | None = 1000
    max_target_side: int | None = None
    downsample: str = "box"

    # Matching
    match_strategy: str = "full"  # "full" | "heuristic"
    color_space: str = "rgb"
    adaptive_sizing: bool = False
    sampling: str = "sections"  # "sections" | "random"
    patch_size: int = 16
    seed: int | None = 42

    # Execution
    workers: int | None = None
    progress_interval: float = 0.1
    progress_callback: ProgressCallback | None = field(
        default=None, compare=False, repr=False,
    )

    # Output
    background: tuple[int, int, int, int] = (255, 255, 255, 255)
    resample: str = "lanczos"

    def __post_init__(self) -> None:
        for name in ("tile_columns", "tile_rows", "tile_size", "section_grid",
                     "min_tile_size", "max_tile_size", "patch_size"):
            if getattr(self, name) < 1:
                msg = f"{name} must be >= 1, got {getattr(self, name)}"
                raise ValidationError(msg)
        if self.min_tile_size > self.max_tile_size:
            msg = (
                f"min_tile_size ({self.min_tile_size}) exceeds "
                f"max_tile_size ({self.max_tile_size})"
            )
            raise ValidationError(msg)
        if self.target_columns is not None and self.target_columns < 1:
            msg = f"target_columns must be >= 1, got {self.target_columns}"
            raise ValidationError(msg)
        if self.min_gallery_size < 1:
            msg = f"min_gallery_size must be >= 1, got {self.min_gallery_size}"
            raise ValidationError(msg)
        for name in ("max_gallery_side", "max_target_side", "workers"):
            value = getattr(self, name)
            if value is not None and value < 1:
                msg = f"{name} must be >= 1 or None, got {value}"
                raise ValidationError(msg)
        if self.seed is not None and self.seed < 0:
            msg = f"seed must be non-negative, got {self.seed}"
            raise ValidationError(msg)
        if self.sampling == "random" and self.match_strategy != "full":
            msg = (
                f"match_strategy '{self.match_strategy}' does not apply to random "
                "sampling, which always searches every gallery image"
            )
            raise ValidationError(msg)
        if not 0.0 < self.progress_interval <= 1.0:
            msg = f"progress_interval must be in (0, 1], got {self.progress_interval}"
            raise ValidationError(msg)

        _check_choice("match_strategy", self.match_strategy, MATCH_STRATEGIES)
        _check_choice("sampling", self.sampling, SAMPLING_STRATEGIES)
        _check_choice("color_space", self.color_space, COLOR_SPACES)
        _check_choice("resample", self.resample, RESAMPLE_FILTERS)
        _check_choice("downsample", self.downsample, RESAMPLE_FILTERS)

        if len(self.background) != 4 or not all(0 <= c <= 255 for c in self.background):
            msg = f"background must be four 0-255 channels, got {self.background}"
            raise ValidationError(msg)


def _check_choice(name: str, value: str, allowed: tuple[str, ...]) -> None:
    if value not in allowed:
        available = ", ".join(allowed)
        msg = f"Unknown {name} '{value}'. Available: {available}"
        raise ValidationError(msg)
