"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable

from notesearch.models import Chunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies.

    Chunks must be ordered, non-overlapping and carry 1-indexed line spans.
    """

    def chunk(self, text: str, file_path: str) -> list[Chunk]:
        """Split text into chunks with metadata."""
        ...
