"""Pillow helpers for material display images."""

from __future__ import annotations

import io
import logging
import random
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp")


def make_thumbnail(image_bytes: bytes, size: int = 300) -> Optional[bytes]:
    """Center-crop *image_bytes* to a ``size`` x ``size`` PNG, or None if unreadable."""
    if not image_bytes:
        return None
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image = ImageOps.exif_transpose(image)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA")
            fitted = ImageOps.fit(image, (size, size), method=Image.LANCZOS)
            buffer = io.BytesIO()
            fitted.save(buffer, format="PNG")
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Thumbnail normalization failed: %s", exc)
        return None


def list_fallback_images(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
    )


def pick_fallback_image(directory: Path, rng: Optional[random.Random] = None) -> Optional[bytes]:
    """Read one pseudo-randomly chosen image from the fallback pool."""
    candidates = list_fallback_images(directory)
    if not candidates:
        logger.warning("No fallback images found in %s", directory)
        return None
    chosen = (rng or random).choice(candidates)
    try:
        return chosen.read_bytes()
    except OSError as exc:
        logger.warning("Could not read fallback image %s: %s", chosen, exc)
        return None


def display_image(
    uploaded: Optional[bytes], *, size: int, fallback_dir: Path
) -> Optional[bytes]:
    """Normalize the uploaded image, or a fallback one when none was supplied."""
    source = uploaded if uploaded else pick_fallback_image(fallback_dir)
    if source is None:
        return None
    return make_thumbnail(source, size)
