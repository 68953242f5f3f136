"""notesearch - incremental BM25 and hybrid search over a notes folder."""

from notesearch.api import NoteSearch
from notesearch.config import SearchConfig
from notesearch.exceptions import (
    EmbeddingUnavailableError,
    IndexCorruptionError,
    NoteSearchError,
    StoreError,
)
from notesearch.models import HybridSearchResult, IndexResult, IndexStats, SearchResult

__version__ = "0.1.0"

__all__ = [
    "EmbeddingUnavailableError",
    "HybridSearchResult",
    "IndexCorruptionError",
    "IndexResult",
    "IndexStats",
    "NoteSearch",
    "NoteSearchError",
    "SearchConfig",
    "SearchResult",
    "StoreError",
]
