"""Nearest-colour search of a target colour against a gallery index.

Two strategies are available and must be picked explicitly:

- **full**: exhaustive search over every section of every image. Exact;
  cost grows with the total number of sections.
- **heuristic**: pick the image whose whole-image average is closest,
  then search only that image's sections. Much cheaper, but it can miss
  a closer section living in another image, so its distance is never
  smaller than the full-search one.

Ties resolve to the first candidate in index order.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from photomosaic.color_utils import (
    ColorSample,
    average_color,
    compute_distances,
    to_color_space,
)
from photomosaic.config import MATCH_STRATEGIES
from photomosaic.errors import NoMatchFound, ValidationError
from photomosaic.gallery import GalleryIndex, Section


@dataclass(frozen=True)
class Match:
    section: Section
    distance: float


class TileMatcher:
    """Resolve target colours to gallery sections.

    Args:
        index:       A built :class:`GalleryIndex`; only read, never mutated.
        strategy:    ``"full"`` or ``"heuristic"``.
        color_space: ``"rgb"`` or ``"lab"`` distance.
        patch_size:  Patch edge for :meth:`match_sampled`.
    """

    def __init__(
        self,
        index: GalleryIndex,
        strategy: str = "full",
        color_space: str = "rgb",
        patch_size: int = 16,
    ) -> None:
        if strategy not in MATCH_STRATEGIES:
            msg = f"Unknown match strategy '{strategy}'"
            raise ValidationError(msg)
        self.index = index
        self.strategy = strategy
        self.color_space = color_space
        self.patch_size = patch_size

        self._sections = to_color_space(index.section_colors, color_space)
        self._images = to_color_space(index.image_averages, color_space)

    def match(self, target: ColorSample) -> Match:
        """Best section for *target* under the configured strategy."""
        if len(self._sections) == 0:
            msg = "Gallery index holds no sections"
            raise NoMatchFound(msg)
        t = to_color_space(np.array([target]), self.color_space)

        if self.strategy == "heuristic":
            image_idx = int(np.argmin(compute_distances(self._images, t)[0]))
            window = self.index.sections_of(image_idx)
        else:
            window = slice(0, len(self._sections))

        dist = compute_distances(self._sections[window], t)[0]
        best = int(np.argmin(dist))
        return Match(self.index.sections[window.start + best], float(dist[best]))

    def match_sampled(
        self,
        target: ColorSample,
        rng: np.random.Generator,
    ) -> Match:
        """Match against one random patch per gallery image.

        The winning image is returned as a section spanning the whole image,
        coloured with the patch sample that won it.
        """
        if len(self.index) == 0:
            msg = "Gallery index holds no images"
            raise NoMatchFound(msg)

        samples = []
        for entry in self.index.entries:
            h, w = entry.image.shape[:2]
            pw = min(self.patch_size, w)
            ph = min(self.patch_size, h)
            x = int(rng.integers(0, w - pw + 1))
            y = int(rng.integers(0, h - ph + 1))
            samples.append(average_color(entry.image, x, y, pw, ph))

        t = to_color_space(np.array([target]), self.color_space)
        dist = compute_distances(to_color_space(np.array(samples), self.color_space), t)[0]
        best = int(np.argmin(dist))

        image = self.index.entries[best].image
        h, w = image.shape[:2]
        return Match(Section(0, 0, w, h, samples[best], best), float(dist[best]))
