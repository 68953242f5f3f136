"""Protocol for source tree scanners."""

from pathlib import Path
from typing import Iterator, Optional, Protocol, runtime_checkable

from notesearch.models import Document, Source


@runtime_checkable
class Ingester(Protocol):
    """Protocol for source partitions (notes, session transcripts).

    Uses structural subtyping - no inheritance required.
    """

    @property
    def source_type(self) -> Source:
        """Return the partition this ingester feeds ('memory' or 'sessions')."""
        ...

    def owns(self, root: Path, rel_path: str) -> bool:
        """Check if a root-relative path belongs to this partition."""
        ...

    def ingest(self, root: Path) -> Iterator[Document]:
        """Yield documents from the partition.

        Binary files are yielded with ``is_binary`` set and ``content=None``;
        unreadable files with ``content=None`` only.
        """
        ...

    def load(self, root: Path, rel_path: str) -> Optional[Document]:
        """Read one file, or return None if it no longer exists."""
        ...
