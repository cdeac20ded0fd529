"""Mosaic orchestration: target → tile colours → matches → canvas.

A :class:`MosaicBuilder` walks one run through a fixed sequence of states::

    INIT → TARGET_LOADED → GALLERY_INDEXED → TILES_MATCHED → COMPOSITED → DONE

Any error moves it to ``FAILED`` and a cancellation to ``CANCELLED``; in
both cases the loaded images are released and no canvas is returned.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum

import numpy as np
from PIL import Image

from photomosaic.color_utils import ColorSample
from photomosaic.compositor import Compositor, composite_into, new_canvas
from photomosaic.config import MosaicConfig
from photomosaic.errors import (
    Cancelled,
    NoMatchFound,
    OutputWriteError,
    ValidationError,
)
from photomosaic.gallery import GalleryIndex
from photomosaic.image import as_rgba, downscale_to_fit, resize
from photomosaic.matcher import Match, TileMatcher
from photomosaic.sizing import GridLayout, plan_grid

logger = logging.getLogger(__name__)

Sink = Callable[[np.ndarray], None]


class BuildState(str, Enum):
    INIT = "init"
    TARGET_LOADED = "target_loaded"
    GALLERY_INDEXED = "gallery_indexed"
    TILES_MATCHED = "tiles_matched"
    COMPOSITED = "composited"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Thread-safe cancel flag with an optional deadline.

    Args:
        timeout: Seconds from now after which the token counts as cancelled.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self.deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            reason = "cancelled" if self._event.is_set() else "deadline exceeded"
            msg = f"Mosaic build {reason}"
            raise Cancelled(msg)


@dataclass
class Tile:
    """One destination cell of the mosaic; resolved exactly once."""

    row: int
    col: int
    x: int
    y: int
    width: int
    height: int
    target: ColorSample
    match: Match | None = None

    def resolve(self, match: Match) -> None:
        if self.match is not None:
            msg = f"Tile ({self.row}, {self.col}) is already resolved"
            raise RuntimeError(msg)
        self.match = match


@dataclass
class Mosaic:
    canvas: np.ndarray
    layout: GridLayout
    tiles: list[Tile]
    tile_size: int

    @property
    def columns(self) -> int:
        return self.layout.columns

    @property
    def rows(self) -> int:
        return self.layout.rows

    @property
    def mean_distance(self) -> float:
        """Average colour distance between tile targets and their matches."""
        return float(np.mean([t.match.distance for t in self.tiles if t.match is not None]))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.canvas)


class MosaicBuilder:
    """Build photomosaics according to one :class:`MosaicConfig`.

    The builder is reusable; each :meth:`build` call starts again from
    ``INIT``. :attr:`state` reflects the last transition reached.
    """

    def __init__(self, config: MosaicConfig) -> None:
        self.config = config
        self.state = BuildState.INIT
        self.index: GalleryIndex | None = None

    def build(
        self,
        target: np.ndarray,
        gallery: Sequence[np.ndarray],
        names: Sequence[str] | None = None,
        cancel: CancellationToken | None = None,
        sink: Sink | None = None,
    ) -> Mosaic:
        """Run the full pipeline.

        Args:
            target:  Image to reproduce, (H, W[, C]) uint8.
            gallery: Source images in load order.
            names:   Optional gallery labels for logs.
            cancel:  Token checked between states and per tile.
            sink:    Receives the finished canvas (e.g. a file writer).

        Returns:
            The finished :class:`Mosaic`.

        Raises:
            ValidationError: bad target or gallery below the minimum size.
            EmptyGallery: no gallery image was usable.
            Cancelled: *cancel* fired before the run finished.
            OutputWriteError: *sink* failed.
        """
        cfg = self.config
        cancel = cancel or CancellationToken()
        self.state = BuildState.INIT
        self.index = None
        t_total = time.perf_counter()

        try:
            if len(gallery) < cfg.min_gallery_size:
                msg = (
                    f"Gallery has {len(gallery)} images, "
                    f"at least {cfg.min_gallery_size} required"
                )
                raise ValidationError(msg)

            colors, layout, tile_size = self._load_target(target)
            cancel.raise_if_cancelled()

            self.index = GalleryIndex.build(
                gallery, cfg.section_grid, names=names,
                workers=cfg.workers, max_side=cfg.max_gallery_side,
            )
            self._advance(BuildState.GALLERY_INDEXED)
            cancel.raise_if_cancelled()

            tiles = self._make_tiles(colors, layout)
            self._match_tiles(self.index, tiles, cancel)
            self._advance(BuildState.TILES_MATCHED)
            cancel.raise_if_cancelled()

            canvas = self._composite(self.index, tiles, layout, cancel)
            self._advance(BuildState.COMPOSITED)

            if sink is not None:
                try:
                    sink(canvas)
                except OutputWriteError:
                    raise
                except OSError as exc:
                    msg = f"Writing the mosaic failed: {exc}"
                    raise OutputWriteError(msg) from exc
            self._advance(BuildState.DONE)
        except Cancelled:
            self._abort(BuildState.CANCELLED)
            raise
        except Exception:
            self._abort(BuildState.FAILED)
            raise

        mosaic = Mosaic(canvas=canvas, layout=layout, tiles=tiles, tile_size=tile_size)
        logger.info(
            "Mosaic done | %dx%d px  %dx%d tiles  error=%.1f  (%.1f s)",
            layout.width, layout.height, layout.columns, layout.rows,
            mosaic.mean_distance, time.perf_counter() - t_total,
        )
        return mosaic

    # -- States ------------------------------------------------------------

    def _advance(self, state: BuildState) -> None:
        logger.debug("State %s → %s", self.state.value, state.value)
        self.state = state

    def _abort(self, state: BuildState) -> None:
        logger.warning("Mosaic build stopped in state %s → %s", self.state.value, state.value)
        self.state = state
        self.index = None

    def _load_target(self, target: np.ndarray) -> tuple[np.ndarray, GridLayout, int]:
        """Reduce the target to one colour per tile and lay out the grid."""
        cfg = self.config
        target = downscale_to_fit(as_rgba(target, "target"), cfg.max_target_side)
        h, w = target.shape[:2]
        cols, rows, tile_size = plan_grid(w, h, cfg)

        small = resize(target, cols, rows, cfg.downsample)
        colors = small[:, :, :3].astype(np.float64)

        if cfg.adaptive_sizing:
            layout = GridLayout.adaptive(colors, tile_size)
        else:
            layout = GridLayout.uniform(cols, rows, tile_size)

        logger.info(
            "Target: %dx%d → %dx%d tiles (tile size %d px, %s grid)",
            w, h, cols, rows, tile_size, "adaptive" if cfg.adaptive_sizing else "uniform",
        )
        self._advance(BuildState.TARGET_LOADED)
        return colors, layout, tile_size

    def _make_tiles(self, colors: np.ndarray, layout: GridLayout) -> list[Tile]:
        xs, ys = layout.col_offsets, layout.row_offsets
        return [
            Tile(
                row=r, col=c, x=xs[c], y=ys[r],
                width=layout.col_widths[c], height=layout.row_heights[r],
                target=ColorSample(*map(float, colors[r, c])),
            )
            for r in range(layout.rows)
            for c in range(layout.columns)
        ]

    def _match_tiles(
        self,
        index: GalleryIndex,
        tiles: list[Tile],
        cancel: CancellationToken,
    ) -> None:
        """Resolve every tile on a bounded thread pool.

        Work is split into contiguous chunks of tile indices; each tile is
        written in place, so completion order does not affect the result.
        """
        cfg = self.config
        matcher = TileMatcher(index, cfg.match_strategy, cfg.color_space, cfg.patch_size)
        random_sampling = cfg.sampling == "random"

        def _work(start: int, stop: int) -> int:
            for i in range(start, stop):
                cancel.raise_if_cancelled()
                tile = tiles[i]
                if random_sampling:
                    seed = None if cfg.seed is None else [cfg.seed, i]
                    tile.resolve(matcher.match_sampled(tile.target, np.random.default_rng(seed)))
                else:
                    tile.resolve(matcher.match(tile.target))
            return stop - start

        total = len(tiles)
        workers = cfg.workers or os.cpu_count() or 1
        step = max(1, int(total * cfg.progress_interval))
        # a chunk never spans more than one progress step
        chunk = max(1, min(math.ceil(total / (workers * 4)), step))

        logger.info(
            "Matching %d tiles (%s search, %s sampling, %d workers) …",
            total, cfg.match_strategy, cfg.sampling, workers,
        )
        t0 = time.perf_counter()
        done = 0
        next_report = step
        pool = ThreadPoolExecutor(max_workers=workers)
        try:
            futures = [
                pool.submit(_work, start, min(start + chunk, total))
                for start in range(0, total, chunk)
            ]
            for future in as_completed(futures):
                done += future.result()
                if done >= next_report or done == total:
                    self._report(done, total, t0)
                    next_report = (done // step + 1) * step
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

    def _report(self, done: int, total: int, t0: float) -> None:
        logger.info(
            "  matched %5.1f%%  (%d/%d tiles, %.1f s)",
            done / total * 100, done, total, time.perf_counter() - t0,
        )
        if self.config.progress_callback is not None:
            self.config.progress_callback(done, total)

    def _composite(
        self,
        index: GalleryIndex,
        tiles: list[Tile],
        layout: GridLayout,
        cancel: CancellationToken,
    ) -> np.ndarray:
        canvas = new_canvas(layout.width, layout.height, self.config.background)
        compositor = Compositor(index, self.config.resample)

        t0 = time.perf_counter()
        for tile in tiles:
            if tile.col == 0:
                cancel.raise_if_cancelled()
            if tile.match is None:
                msg = f"Tile ({tile.row}, {tile.col}) has no match"
                raise NoMatchFound(msg)
            rendered = compositor.render_tile(tile.match.section, tile.width, tile.height)
            composite_into(canvas, rendered, tile.x, tile.y)
        logger.info(
            "Composited %dx%d canvas  (%.1f s)",
            layout.width, layout.height, time.perf_counter() - t0,
        )
        return canvas
