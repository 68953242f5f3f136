"""Data models for notesearch."""

from notesearch.models.document import (
    Chunk,
    ChunkRecord,
    Document,
    FileMetadata,
    FileRecord,
    HybridSearchResult,
    IndexResult,
    IndexStats,
    SearchMode,
    SearchResult,
    SessionEntry,
    Source,
    SourceFilter,
)

__all__ = [
    "Chunk",
    "ChunkRecord",
    "Document",
    "FileMetadata",
    "FileRecord",
    "HybridSearchResult",
    "IndexResult",
    "IndexStats",
    "SearchMode",
    "SearchResult",
    "SessionEntry",
    "Source",
    "SourceFilter",
]
