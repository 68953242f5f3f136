"""Utility functions for notesearch."""

from notesearch.utils.binary import detect_binary, is_binary_content, is_binary_extension
from notesearch.utils.hashing import chunk_hash, content_hash
from notesearch.utils.vectors import (
    cosine_similarities,
    deserialize_embedding,
    serialize_embedding,
)

__all__ = [
    "chunk_hash",
    "content_hash",
    "cosine_similarities",
    "deserialize_embedding",
    "detect_binary",
    "is_binary_content",
    "is_binary_extension",
    "serialize_embedding",
]
