"""Derived document statistics (page and word counts) for decompressed uploads."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

import pypdf

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


@dataclass(frozen=True)
class DocumentStats:
    total_pages: Optional[int]
    total_words: int


UNREADABLE_PDF = DocumentStats(total_pages=None, total_words=0)


def _count_words(text: str) -> int:
    return len(text.split())


def extract_stats(data: bytes) -> DocumentStats:
    """Parse *data* and count pages and words.

    PDFs are read with pypdf. Anything else is treated as text: words are counted
    on the decoded content and the page count is unknown. A PDF the parser cannot
    read yields no page count and zero words.
    """
    if data.lstrip()[:5] == PDF_MAGIC:
        try:
            reader = pypdf.PdfReader(io.BytesIO(data))
            text = " ".join(page.extract_text() or "" for page in reader.pages)
            return DocumentStats(total_pages=len(reader.pages), total_words=_count_words(text))
        except Exception as exc:
            logger.warning("PDF extraction error: %s", exc)
            return UNREADABLE_PDF
    return DocumentStats(
        total_pages=None, total_words=_count_words(data.decode("utf-8", errors="ignore"))
    )


__all__ = ["DocumentStats", "UNREADABLE_PDF", "extract_stats"]
