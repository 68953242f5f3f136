"""Incremental synchronization of the source tree into the index store."""

import logging
import os
import sqlite3
import time
from pathlib import Path
from typing import Callable, Literal, Optional

from notesearch.chunkers import HeadingChunker
from notesearch.config import SearchConfig
from notesearch.embedders import NullEmbedder
from notesearch.exceptions import IndexCorruptionError, NoteSearchError
from notesearch.ingesters import default_ingesters, get_ingester, is_hidden
from notesearch.models import Document, FileRecord, IndexResult, Source
from notesearch.protocols import ChunkingStrategy, EmbeddingProvider, Ingester
from notesearch.storage import NoteIndexStore
from notesearch.utils.hashing import content_hash

logger = logging.getLogger(__name__)

SyncOutcome = Literal["indexed", "skipped", "removed", "ignored"]
ProgressCallback = Callable[[int, int], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class Indexer:
    """Diffs the source tree against the store by content hash.

    A changed file is fully re-chunked and its rows replaced in a single
    transaction; unchanged files are skipped; vanished files are removed.
    """

    def __init__(
        self,
        store: NoteIndexStore,
        chunker: Optional[ChunkingStrategy] = None,
        embedder: Optional[EmbeddingProvider] = None,
        config: Optional[SearchConfig] = None,
        ingesters: Optional[list[Ingester]] = None,
    ):
        self.config = config or SearchConfig()
        self.store = store
        self.chunker = chunker or HeadingChunker(self.config.chunk_target_size)
        self.embedder = embedder or NullEmbedder()
        self.ingesters = ingesters or default_ingesters(self.config.sessions_dirname)

    # Full scans

    def index(self, root: Path | str, embeddings: bool = False) -> IndexResult:
        """Index every note and transcript under ``root``.

        Args:
            root: Source root
            embeddings: Also embed chunks that have no vector yet

        Returns:
            Counters for the pass
        """
        root = Path(root).resolve()
        result = IndexResult()
        existing = self.store.list_paths()
        seen: set[str] = set()

        for ingester in self.ingesters:
            for doc in ingester.ingest(root):
                path = doc.metadata.path
                if doc.metadata.is_binary:
                    logger.warning(f"Skipping binary file: {path}")
                    continue
                # Unreadable files keep their previous rows
                seen.add(path)
                if doc.content is None:
                    continue
                try:
                    outcome = self._index_document(doc)
                except (NoteSearchError, sqlite3.DatabaseError):
                    raise
                except Exception as e:
                    logger.warning(f"Could not index {path}: {e}")
                    continue
                if outcome == "indexed":
                    result.indexed += 1
                else:
                    result.skipped += 1

        for path in sorted(existing - seen):
            self.store.remove_file(path)
            logger.info(f"Removed: {path}")
            result.removed += 1

        if embeddings:
            result.embedded = self.generate_embeddings()

        logger.debug(
            f"Index pass: {result.indexed} indexed, {result.skipped} skipped, "
            f"{result.removed} removed"
        )
        return result

    def reindex_all(self, root: Path | str, embeddings: bool = False) -> IndexResult:
        """Drop everything and rebuild from the source tree."""
        self.store.reset()
        result = self.index(root, embeddings=embeddings)
        return IndexResult(indexed=result.indexed, embedded=result.embedded)

    # Single files

    def index_session(self, rel_path: str, content: str, mtime_ms: Optional[int] = None) -> bool:
        """Index a transcript from already-read content.

        Returns:
            True if the transcript was (re)indexed, False if unchanged
        """
        file_hash = content_hash(content)
        if self.store.get_file_hash(rel_path) == file_hash:
            return False
        self._replace(
            rel_path,
            "sessions",
            content,
            file_hash,
            mtime_ms if mtime_ms is not None else _now_ms(),
            len(content.encode("utf-8")),
        )
        return True

    def sync_path(self, root: Path | str, path: Path | str) -> SyncOutcome:
        """Bring one path's rows in line with the disk, as a full scan would.

        A path that no longer exists may have been a directory, so every
        stored file under it is removed too. An existing directory is synced
        file by file.

        Args:
            root: Source root
            path: Absolute path, or path relative to ``root``
        """
        root = Path(root).resolve()
        full_path = Path(path)
        if not full_path.is_absolute():
            full_path = root / full_path
        try:
            rel_path = full_path.resolve().relative_to(root).as_posix()
        except ValueError:
            return "ignored"
        if rel_path == "." or is_hidden(rel_path):
            return "ignored"

        if not full_path.exists():
            removed = self.store.remove_prefix(rel_path)
            for removed_path in removed:
                logger.info(f"Removed: {removed_path}")
            return "removed" if removed else "ignored"
        if full_path.is_dir():
            return self._sync_directory(root, full_path)

        ingester = get_ingester(self.ingesters, root, rel_path)
        if ingester is None:
            return "ignored"

        doc = ingester.load(root, rel_path)
        if doc is None or doc.metadata.is_binary:
            # Vanished between the existence check and the read, or binary
            if self.store.remove_file(rel_path):
                logger.info(f"Removed: {rel_path}")
                return "removed"
            return "ignored"
        if doc.content is None:
            return "ignored"
        return self._index_document(doc)

    def _sync_directory(self, root: Path, directory: Path) -> SyncOutcome:
        """Sync every file under a directory that was moved into the tree."""
        outcomes = []
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames.sort()
            for filename in sorted(filenames):
                outcomes.append(self.sync_path(root, Path(dirpath) / filename))
        if "indexed" in outcomes:
            return "indexed"
        return "skipped" if "skipped" in outcomes else "ignored"

    def _index_document(self, doc: Document) -> SyncOutcome:
        path = doc.metadata.path
        file_hash = content_hash(doc.content)
        if self.store.get_file_hash(path) == file_hash:
            return "skipped"
        self._replace(
            path,
            doc.metadata.source,
            doc.content,
            file_hash,
            doc.metadata.mtime_ms,
            doc.metadata.size_bytes,
        )
        logger.info(f"Indexed: {path}")
        return "indexed"

    def _replace(
        self,
        path: str,
        source: Source,
        content: str,
        file_hash: str,
        mtime_ms: int,
        size: int,
    ) -> None:
        # Chunk before opening the transaction so a chunker error writes nothing
        chunks = self.chunker.chunk(content, path)
        record = FileRecord(
            path=path,
            source=source,
            hash=file_hash,
            mtime=mtime_ms,
            size=size,
            indexed_at=_now_ms(),
        )
        self.store.replace_file(record, chunks)

    # Embeddings

    def generate_embeddings(self, progress: Optional[ProgressCallback] = None) -> int:
        """Embed every chunk that has no vector yet.

        Batches that fail are logged and skipped; re-running picks up
        whatever is still missing.

        Args:
            progress: Called with (chunks processed, total) after each batch

        Returns:
            Number of vectors written
        """
        if not self.embedder.available():
            logger.debug("Embedding provider unavailable; skipping vector generation")
            return 0

        missing = self.store.chunk_ids_missing_vectors()
        total = len(missing)
        if total == 0:
            return 0

        batch_size = self.config.embedding_batch_size
        logger.info(f"Embedding {total} chunks with {self.embedder.model_name}...")

        embedded = 0
        for start in range(0, total, batch_size):
            batch_ids = missing[start : start + batch_size]
            try:
                texts = self.store.get_chunk_texts(batch_ids)
                ids = [chunk_id for chunk_id in batch_ids if chunk_id in texts]
                if ids:
                    vectors = self.embedder.embed_batch([texts[chunk_id] for chunk_id in ids])
                    self._check_dimension(len(vectors[0]))
                    embedded += self.store.store_embeddings(ids, vectors)
            except IndexCorruptionError:
                raise
            except Exception as e:
                logger.warning(f"Embedding batch {start // batch_size + 1} failed: {e}")
                if not self.embedder.available():
                    logger.warning("Embedding provider became unavailable; stopping")
                    break
            done = min(start + batch_size, total)
            logger.info(f"  Embedded {done}/{total}")
            if progress is not None:
                progress(done, total)

        return embedded

    def _check_dimension(self, dimension: int) -> None:
        stored = self.store.get_metadata("embedding_dim")
        if stored is None:
            self.store.set_metadata("embedding_dim", str(dimension))
            self.store.set_metadata("embedding_model", self.embedder.model_name)
        elif int(stored) != dimension:
            raise IndexCorruptionError(
                f"Stored vectors have dimension {stored} but "
                f"{self.embedder.model_name} produces {dimension}"
            )
