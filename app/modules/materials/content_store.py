"""Content store: compression and integrity hashing of material payloads.

Uploads are gzip-compressed before anything else happens to them. The integrity
hash is the SHA-256 hex digest of the *compressed* bytes, which are what the
database stores and what the ledger attests. The gzip header timestamp is fixed
so the same upload always yields the same stored bytes and hash.
"""

from __future__ import annotations

import gzip
import hashlib
import hmac
import zlib
from dataclasses import dataclass

from app.core.exceptions import IntegrityFailureException


@dataclass(frozen=True)
class StoredContent:
    blob: bytes
    content_hash: str
    original_size: int


def compress(raw: bytes) -> bytes:
    return gzip.compress(raw, mtime=0)


def decompress(blob: bytes, *, material_id=None) -> bytes:
    """Inflate stored bytes; corrupt payloads are an integrity failure."""
    try:
        return gzip.decompress(blob)
    except (OSError, EOFError, zlib.error) as exc:
        raise IntegrityFailureException(material_id, reason="undecodable_content") from exc


def content_hash(blob: bytes) -> str:
    return hashlib.sha256(blob).hexdigest()


def pack(raw: bytes) -> StoredContent:
    """Compress an upload and hash the compressed result."""
    blob = compress(raw)
    return StoredContent(blob=blob, content_hash=content_hash(blob), original_size=len(raw))


def verify(blob: bytes, expected_hash: str) -> bool:
    if not expected_hash:
        return False
    return hmac.compare_digest(content_hash(blob), expected_hash.lower())


__all__ = ["StoredContent", "compress", "content_hash", "decompress", "pack", "verify"]
