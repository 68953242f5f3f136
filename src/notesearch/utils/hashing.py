"""Content hashes used for change detection."""

import hashlib

FILE_HASH_LENGTH = 32
CHUNK_HASH_LENGTH = 16


def content_hash(text: str, length: int = FILE_HASH_LENGTH) -> str:
    """Return a truncated SHA-256 hex digest of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def chunk_hash(text: str) -> str:
    """Hash a chunk's trimmed text."""
    return content_hash(text.strip(), CHUNK_HASH_LENGTH)
