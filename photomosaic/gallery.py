"""Gallery indexing: split every source image into colour-averaged sections."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from photomosaic.color_utils import ColorSample, average_color
from photomosaic.errors import EmptyGallery, ValidationError
from photomosaic.image import as_rgba, downscale_to_fit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Section:
    """A rectangle of one gallery image together with its mean colour.

    ``image_index`` is a lookup key into the owning :class:`GalleryIndex`;
    the index, not the section, holds the pixels.
    """

    x: int
    y: int
    w: int
    h: int
    color: ColorSample
    image_index: int


@dataclass(frozen=True)
class GalleryEntry:
    name: str
    image: np.ndarray
    average: ColorSample
    sections: tuple[Section, ...]


def _axis_cells(dim: int, grid: int) -> list[tuple[int, int]]:
    """(offset, length) pairs splitting *dim* pixels into *grid* cells.

    Every cell has length ``dim // grid`` except the last, which absorbs
    the remainder. The grid shrinks to *dim* when there are fewer pixels
    than cells.
    """
    grid = min(grid, dim)
    base = dim // grid
    cells = [(i * base, base) for i in range(grid - 1)]
    last = base * (grid - 1)
    cells.append((last, dim - last))
    return cells


def section_rects(width: int, height: int, grid: int) -> list[tuple[int, int, int, int]]:
    """Partition a *width* x *height* image into at most *grid* x *grid* rects.

    Rects are listed column-major (x outer, y inner) and cover the image
    exactly, with no gaps and no overlaps.
    """
    if grid < 1:
        msg = f"section grid must be >= 1, got {grid}"
        raise ValidationError(msg)
    return [
        (x, y, w, h)
        for x, w in _axis_cells(width, grid)
        for y, h in _axis_cells(height, grid)
    ]


def _index_image(
    image: np.ndarray,
    name: str,
    image_index: int,
    section_grid: int,
) -> GalleryEntry:
    h, w = image.shape[:2]
    sections = tuple(
        Section(sx, sy, sw, sh, average_color(image, sx, sy, sw, sh), image_index)
        for sx, sy, sw, sh in section_rects(w, h, section_grid)
    )
    return GalleryEntry(
        name=name,
        image=image,
        average=average_color(image, 0, 0, w, h),
        sections=sections,
    )


class GalleryIndex:
    """Ordered gallery images with their precomputed sections.

    Load order is preserved and decides tie-breaks during matching. The
    index is read-only once built and may be shared across threads.

    Attributes:
        entries:         One :class:`GalleryEntry` per usable image.
        section_grid:    Requested sections per axis.
        skipped:         ``(name, reason)`` for every rejected input.
        section_colors:  (S, 3) float64 mean colours of all sections.
        section_owner:   (S,) image index of every section.
        image_averages:  (I, 3) float64 whole-image mean colours.
        section_offsets: (I + 1,) start of each image's run of sections.
    """

    def __init__(
        self,
        entries: Sequence[GalleryEntry],
        section_grid: int,
        skipped: Sequence[tuple[str, str]] = (),
    ) -> None:
        self.entries = list(entries)
        self.section_grid = section_grid
        self.skipped = list(skipped)
        self.sections: list[Section] = [s for e in self.entries for s in e.sections]

        self.section_colors = np.array(
            [s.color for s in self.sections], dtype=np.float64,
        ).reshape(-1, 3)
        self.section_owner = np.array(
            [s.image_index for s in self.sections], dtype=np.intp,
        )
        self.image_averages = np.array(
            [e.average for e in self.entries], dtype=np.float64,
        ).reshape(-1, 3)
        counts = [len(e.sections) for e in self.entries]
        self.section_offsets = np.concatenate([[0], np.cumsum(counts)]).astype(np.intp)

    def __len__(self) -> int:
        return len(self.entries)

    def image_of(self, section: Section) -> np.ndarray:
        """Pixels of the image that owns *section*."""
        return self.entries[section.image_index].image

    def name_of(self, section: Section) -> str:
        return self.entries[section.image_index].name

    def sections_of(self, image_index: int) -> slice:
        """Slice into :attr:`sections` / :attr:`section_colors` for one image."""
        return slice(
            int(self.section_offsets[image_index]),
            int(self.section_offsets[image_index + 1]),
        )

    @classmethod
    def build(
        cls,
        images: Sequence[np.ndarray],
        section_grid: int,
        names: Sequence[str] | None = None,
        workers: int | None = None,
        max_side: int | None = None,
    ) -> GalleryIndex:
        """Index *images* in order, splitting each into sections.

        Args:
            images:       Gallery arrays in load order.
            section_grid: Sections per axis (n gives n x n per image).
            names:        Optional labels for logging; defaults to "image-<i>".
            workers:      Thread pool size (None = os.cpu_count()).
            max_side:     Downscale images whose longest side exceeds this
                          before indexing (None = keep full size).

        Raises:
            ValidationError: *section_grid* < 1 or *names* length mismatch.
            EmptyGallery: no image was usable.
        """
        if section_grid < 1:
            msg = f"section grid must be >= 1, got {section_grid}"
            raise ValidationError(msg)
        if names is None:
            names = [f"image-{i}" for i in range(len(images))]
        elif len(names) != len(images):
            msg = f"Got {len(names)} names for {len(images)} images"
            raise ValidationError(msg)

        usable: list[tuple[str, np.ndarray]] = []
        skipped: list[tuple[str, str]] = []
        for name, image in zip(names, images, strict=True):
            try:
                usable.append((name, downscale_to_fit(as_rgba(image, name), max_side)))
            except ValidationError as exc:
                logger.warning("Skipping gallery image %s: %s", name, exc)
                skipped.append((name, str(exc)))

        if not usable:
            msg = f"No usable gallery images ({len(skipped)} skipped)"
            raise EmptyGallery(msg)

        logger.info(
            "Indexing %d gallery images (%dx%d sections) …",
            len(usable), section_grid, section_grid,
        )
        t0 = time.perf_counter()
        with ThreadPoolExecutor(max_workers=workers or os.cpu_count()) as pool:
            entries = list(pool.map(
                _index_image,
                [image for _, image in usable],
                [name for name, _ in usable],
                range(len(usable)),
                [section_grid] * len(usable),
            ))

        index = cls(entries, section_grid, skipped)
        logger.info(
            "Gallery indexed  | images=%d  sections=%d  (%.2f s)",
            len(index), len(index.sections), time.perf_counter() - t0,
        )
        return index
