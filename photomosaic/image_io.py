"""Image loading, saving, and comparison-grid generation."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from photomosaic.errors import ImageLoadError, OutputWriteError

logger = logging.getLogger(__name__)


def load_image(path: str | Path) -> np.ndarray:
    """Decode an image file into an (H, W, 4) uint8 RGBA array.

    Raises:
        ImageLoadError: the file is missing, unreadable, or not an image.
    """
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGBA"), dtype=np.uint8)
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise ImageLoadError(str(path), str(exc)) from exc


def load_gallery(paths: Iterable[str | Path]) -> tuple[list[np.ndarray], list[str]]:
    """Load gallery images in the given order, skipping unreadable files.

    Returns:
        ``(images, names)`` where names are the file names of the images
        that loaded successfully.
    """
    images: list[np.ndarray] = []
    names: list[str] = []
    for path in paths:
        try:
            images.append(load_image(path))
        except ImageLoadError as exc:
            logger.warning("%s - skipping", exc)
            continue
        names.append(Path(path).name)
        logger.debug("Loaded %s", path)
    logger.info("Loaded %d gallery images", len(images))
    return images, names


def save_image(canvas: np.ndarray, path: str | Path) -> None:
    """Encode *canvas* to *path*; the format follows the file extension.

    Raises:
        OutputWriteError: the file could not be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.fromarray(canvas)
        if path.suffix.lower() in {".jpg", ".jpeg"}:
            img = img.convert("RGB")
        img.save(path)
    except (OSError, ValueError) as exc:
        msg = f"Cannot write {path}: {exc}"
        raise OutputWriteError(msg) from exc
    logger.info("Saved %s (%dx%d)", path, canvas.shape[1], canvas.shape[0])


def make_comparison_grid(
    target: np.ndarray,
    mosaic: np.ndarray,
    output_path: str | Path,
    panel_height: int = 480,
) -> None:
    """Create a 2-panel comparison: Target | Mosaic.

    Both panels are scaled to *panel_height*, keeping their aspect ratio.
    """
    label_height = 36
    panels = []
    for array in (target, mosaic):
        h, w = array.shape[:2]
        panel_w = max(1, round(w * panel_height / h))
        panels.append(
            Image.fromarray(array).convert("RGB").resize((panel_w, panel_height), Image.LANCZOS),
        )
    labels = [
        f"Target {target.shape[1]}x{target.shape[0]}",
        f"Mosaic {mosaic.shape[1]}x{mosaic.shape[0]}",
    ]

    gap = 8
    total_w = sum(p.width for p in panels) + (len(panels) - 1) * gap
    total_h = panel_height + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    x = 0
    for panel, label in zip(panels, labels, strict=True):
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (panel.width - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)
        x += panel.width + gap

    save_image(np.array(canvas), output_path)
