"""Ingester for JSONL session transcripts."""

from pathlib import Path
from typing import Iterator, Optional

from notesearch.ingesters.folder_ingester import is_hidden, read_document
from notesearch.models import Document, Source

TRANSCRIPT_SUFFIX = ".jsonl"


class SessionIngester:
    """Ingester for append-only transcripts in ``<root>/sessions``.

    Each transcript is indexed as a whole file in the ``sessions`` partition,
    so appends go through the same hash-diff-and-replace path as notes.
    """

    source_type: Source = "sessions"

    def __init__(self, sessions_dirname: str = "sessions"):
        self.sessions_dirname = sessions_dirname

    def owns(self, root: Path, rel_path: str) -> bool:
        parts = Path(rel_path).parts
        return (
            len(parts) == 2
            and parts[0] == self.sessions_dirname
            and parts[1].endswith(TRANSCRIPT_SUFFIX)
            and not is_hidden(rel_path)
        )

    def ingest(self, root: Path) -> Iterator[Document]:
        sessions_dir = root / self.sessions_dirname
        if not sessions_dir.is_dir():
            return
        for full_path in sorted(sessions_dir.glob(f"*{TRANSCRIPT_SUFFIX}")):
            rel_path = full_path.relative_to(root).as_posix()
            if not full_path.is_file() or not self.owns(root, rel_path):
                continue
            doc = read_document(root, rel_path, self.source_type)
            if doc is not None:
                yield doc

    def load(self, root: Path, rel_path: str) -> Optional[Document]:
        return read_document(root, rel_path, self.source_type)
