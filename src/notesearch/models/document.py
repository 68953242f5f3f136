"""Core data models for notes, chunks and search results."""

from dataclasses import dataclass, field
from typing import Literal, Optional

Source = Literal["memory", "sessions"]
SourceFilter = Literal["memory", "sessions", "all"]
SearchMode = Literal["hybrid", "bm25"]


@dataclass(frozen=True)
class FileMetadata:
    """Metadata for a file found under the source root."""

    path: str  # relative to the source root, "/" separated
    source: Source
    size_bytes: int
    mtime_ms: int
    is_binary: bool = False


@dataclass
class Document:
    """A note or transcript read from the source tree."""

    metadata: FileMetadata
    content: Optional[str] = None  # None for binary or unreadable files


@dataclass
class Chunk:
    """A heading-aware slice of a document, as produced by a chunker."""

    text: str
    file_path: str
    chunk_index: int
    start_line: int  # 1-indexed, inclusive
    end_line: int  # 1-indexed, inclusive
    hash: str
    heading_context: Optional[str] = None  # prefixed line, not counted in the span


@dataclass
class FileRecord:
    """A row of the files table."""

    path: str
    source: Source
    hash: str
    mtime: int
    size: int
    indexed_at: int


@dataclass
class ChunkRecord:
    """A row of the chunks table."""

    id: int
    path: str
    source: Source
    start_line: int
    end_line: int
    text: str
    hash: str
    updated_at: int


@dataclass
class SearchResult:
    """A ranked passage returned by a query."""

    path: str
    snippet: str
    start_line: int
    end_line: int
    score: float
    source: Source
    chunk_id: Optional[int] = None


@dataclass
class HybridSearchResult:
    """Results of a hybrid query plus the ranking mode actually used."""

    results: list[SearchResult]
    mode: SearchMode


@dataclass
class IndexResult:
    """Counters reported by an indexing pass."""

    indexed: int = 0
    skipped: int = 0
    removed: int = 0
    embedded: Optional[int] = None  # only set when embeddings were requested


@dataclass
class IndexStats:
    """Summary of the index contents."""

    total_files: int
    total_chunks: int
    memory_chunks: int
    session_chunks: int
    vector_chunks: int
    last_indexed: str
    db_size_bytes: int


@dataclass
class SessionEntry:
    """One line of a JSONL session transcript."""

    timestamp: str
    session_id: str
    role: str
    content: str
    source: str = "claude-code"
    extra: dict = field(default_factory=dict)

    def to_json_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "role": self.role,
            "content": self.content,
            "source": self.source,
            **self.extra,
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "SessionEntry":
        known = {"timestamp", "sessionId", "role", "content", "source"}
        return cls(
            timestamp=str(data.get("timestamp", "")),
            session_id=str(data.get("sessionId", "")),
            role=str(data.get("role", "")),
            content=str(data.get("content", "")),
            source=str(data.get("source", "claude-code")),
            extra={k: v for k, v in data.items() if k not in known},
        )
