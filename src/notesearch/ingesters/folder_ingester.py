"""Ingester for the notes folder."""

import logging
import os
from pathlib import Path
from typing import Iterator, Optional

from notesearch.models import Document, FileMetadata, Source
from notesearch.utils.binary import BINARY_SAMPLE_SIZE, detect_binary

logger = logging.getLogger(__name__)

# Directory names never descended into
SKIP_DIRS = {
    "__pycache__",
    "node_modules",
    "venv",
    "env",
    "dist",
    "build",
}


def read_document(root: Path, rel_path: str, source: Source) -> Optional[Document]:
    """Read one file under ``root``.

    Returns:
        None if the file does not exist; a Document with ``content=None`` if it
        is binary or cannot be read
    """
    full_path = root / rel_path
    try:
        stat = full_path.stat()
        raw_content = full_path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning(f"Could not read {rel_path}: {e}")
        return Document(
            metadata=FileMetadata(path=rel_path, source=source, size_bytes=0, mtime_ms=0)
        )

    is_binary = detect_binary(rel_path, raw_content[:BINARY_SAMPLE_SIZE])
    metadata = FileMetadata(
        path=rel_path,
        source=source,
        size_bytes=stat.st_size,
        mtime_ms=int(stat.st_mtime * 1000),
        is_binary=is_binary,
    )
    if is_binary:
        return Document(metadata=metadata, content=None)

    try:
        content = raw_content.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug(f"{rel_path} is not valid UTF-8, decoding with replacement")
        content = raw_content.decode("utf-8", errors="replace")
    return Document(metadata=metadata, content=content)


def is_hidden(rel_path: str | Path) -> bool:
    """Hidden files and anything under a hidden or build directory."""
    parts = Path(rel_path).parts
    if any(part.startswith(".") for part in parts):
        return True
    return any(part in SKIP_DIRS or part.endswith(".egg-info") for part in parts[:-1])


class FolderIngester:
    """Ingester for plaintext notes under the source root.

    The sessions directory is left to :class:`SessionIngester`.
    """

    source_type: Source = "memory"

    def __init__(self, sessions_dirname: str = "sessions"):
        self.sessions_dirname = sessions_dirname

    def owns(self, root: Path, rel_path: str) -> bool:
        if is_hidden(rel_path):
            return False
        return Path(rel_path).parts[0] != self.sessions_dirname

    def ingest(self, root: Path) -> Iterator[Document]:
        """Yield documents from the notes folder recursively.

        Args:
            root: Path to the source root

        Yields:
            Document objects for each candidate file, in path order
        """
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = Path(dirpath).relative_to(root)
            # Prune in place so os.walk never descends into skipped dirs
            dirnames[:] = sorted(
                d for d in dirnames if self.owns(root, (rel_dir / d / "_").as_posix())
            )
            for filename in sorted(filenames):
                rel_path = (rel_dir / filename).as_posix()
                if not self.owns(root, rel_path):
                    continue
                doc = read_document(root, rel_path, self.source_type)
                if doc is not None:
                    yield doc

    def load(self, root: Path, rel_path: str) -> Optional[Document]:
        return read_document(root, rel_path, self.source_type)
