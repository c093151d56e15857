"""Materials package exports."""

from .accessibility import OPEN, Open, RestrictedTo, parse_accessibility
from .models import Material, MaterialComment, MaterialRating, ReadingListEntry

__all__ = [
    "OPEN",
    "Open",
    "RestrictedTo",
    "parse_accessibility",
    "Material",
    "MaterialComment",
    "MaterialRating",
    "ReadingListEntry",
]
