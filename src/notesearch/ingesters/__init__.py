"""Source partition handlers (ingesters) for notesearch."""

from pathlib import Path
from typing import Optional

from notesearch.ingesters.folder_ingester import FolderIngester, is_hidden, read_document
from notesearch.ingesters.session_ingester import SessionIngester
from notesearch.protocols import Ingester


def default_ingesters(sessions_dirname: str = "sessions") -> list[Ingester]:
    """Ingesters for both partitions; transcripts are matched first."""
    return [
        SessionIngester(sessions_dirname),
        FolderIngester(sessions_dirname),
    ]


def get_ingester(
    ingesters: list[Ingester], root: Path, rel_path: str
) -> Optional[Ingester]:
    """Find the ingester whose partition contains ``rel_path``.

    Args:
        ingesters: Candidates, in priority order
        root: Source root
        rel_path: Root-relative path

    Returns:
        The owning Ingester, or None if the path is not indexable
    """
    for ingester in ingesters:
        if ingester.owns(root, rel_path):
            return ingester
    return None


__all__ = [
    "FolderIngester",
    "SessionIngester",
    "default_ingesters",
    "get_ingester",
    "is_hidden",
    "read_document",
]
