import gzip
import os
import random

import pytest

from app.core.exceptions import IntegrityFailureException
from app.modules.materials import content_store
from app.modules.materials import documents
from app.modules.materials.documents import UNREADABLE_PDF, DocumentStats, extract_stats
from tests.factories import pdf_bytes


def test_pack_hashes_the_compressed_bytes():
    stored = content_store.pack(b"lecture notes " * 100)

    assert stored.content_hash == content_store.content_hash(stored.blob)
    assert len(stored.content_hash) == 64
    assert stored.original_size == 1400
    assert gzip.decompress(stored.blob) == b"lecture notes " * 100


def test_pack_is_deterministic():
    first = content_store.pack(b"same upload")
    second = content_store.pack(b"same upload")

    assert first.blob == second.blob
    assert first.content_hash == second.content_hash


def test_verify_detects_tampering():
    stored = content_store.pack(b"original")

    assert content_store.verify(stored.blob, stored.content_hash)
    assert content_store.verify(stored.blob, stored.content_hash.upper())
    assert not content_store.verify(stored.blob[:-1] + b"\x00", stored.content_hash)
    assert not content_store.verify(stored.blob, "")


def test_decompress_rejects_undecodable_content():
    with pytest.raises(IntegrityFailureException) as exc_info:
        content_store.decompress(b"definitely not gzip", material_id="m-1")

    assert exc_info.value.status_code == 409
    assert exc_info.value.details == {"reason": "undecodable_content", "material_id": "m-1"}


def test_extract_stats_for_pdf_counts_pages():
    stats = extract_stats(pdf_bytes(pages=3))

    assert stats.total_pages == 3
    assert stats.total_words == 0


def test_extract_stats_for_text_counts_words_only():
    stats = extract_stats(b"one two  three\nfour")

    assert stats.total_pages is None
    assert stats.total_words == 4


def test_extract_stats_for_broken_pdf_degrades():
    stats = extract_stats(b"%PDF-1.4 this is not really a pdf")

    assert stats.total_pages is None
    assert stats.total_words == 0


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"\x00",
        b"x",
        os.urandom(4096),
        bytes(range(256)) * 64,
        b"chapter " * 200_000,
    ],
    ids=["empty", "nul-byte", "single-byte", "random-binary", "all-byte-values", "large"],
)
def test_pack_then_decompress_returns_the_upload(payload):
    stored = content_store.pack(payload)

    assert content_store.verify(stored.blob, stored.content_hash)
    assert content_store.decompress(stored.blob) == payload


def test_extract_stats_for_truncated_pdf_degrades():
    data = pdf_bytes(pages=2)

    for cut in (len(data) // 4, len(data) // 2, len(data) - 10):
        stats = extract_stats(data[:cut])
        assert isinstance(stats, DocumentStats)
        assert stats.total_words >= 0


@pytest.mark.parametrize("seed", range(25))
def test_extract_stats_for_byte_mutated_pdf_never_raises(seed):
    rng = random.Random(seed)
    data = bytearray(pdf_bytes(pages=2))
    for _ in range(8):
        position = rng.randrange(len("%PDF-"), len(data))
        data[position] = rng.randrange(256)

    stats = extract_stats(bytes(data))

    assert isinstance(stats, DocumentStats)
    assert stats.total_words >= 0


@pytest.mark.parametrize(
    "error",
    [
        TypeError("argument of type 'NumberObject' is not iterable"),
        AttributeError("'NoneType' object has no attribute 'get_object'"),
        RecursionError("maximum recursion depth exceeded"),
    ],
)
def test_extract_stats_degrades_on_any_parser_error(monkeypatch, error):
    def exploding_reader(*args, **kwargs):
        raise error

    monkeypatch.setattr(documents.pypdf, "PdfReader", exploding_reader)

    assert extract_stats(pdf_bytes(pages=1)) == UNREADABLE_PDF
