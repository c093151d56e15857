"""Media processing helpers."""

from .thumbnails import (
    display_image,
    list_fallback_images,
    make_thumbnail,
    pick_fallback_image,
)

__all__ = [
    "display_image",
    "list_fallback_images",
    "make_thumbnail",
    "pick_fallback_image",
]
