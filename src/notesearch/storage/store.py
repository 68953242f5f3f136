"""SQLite-backed storage for the search index."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

import numpy as np

from notesearch.exceptions import IndexCorruptionError, StoreError
from notesearch.models import Chunk, ChunkRecord, FileRecord, IndexStats
from notesearch.storage.schema import SCHEMA, SCHEMA_VERSION
from notesearch.utils.vectors import serialize_embedding

logger = logging.getLogger(__name__)

_ARTIFACT_SUFFIXES = ("", "-wal", "-shm", "-journal")


class NoteIndexStore:
    """SQLite-backed storage for files, chunks, the FTS index and vectors.

    Every public method runs in its own connection and transaction, so each
    call is an atomic unit of work. Chunk writes update ``chunks_fts``
    through triggers inside that same transaction.
    """

    BUSY_TIMEOUT = 30.0

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.path, timeout=self.BUSY_TIMEOUT)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open search index at {self.path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create schema if not exists.

        Raises:
            StoreError: the index file cannot be opened at all
            IndexCorruptionError: the file is not a usable index of this schema
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create index directory {self.path.parent}: {e}") from e

        try:
            with self.connection() as conn:
                has_metadata = conn.execute(
                    "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'metadata'"
                ).fetchone()
                if has_metadata:
                    row = conn.execute(
                        "SELECT value FROM metadata WHERE key = 'schema_version'"
                    ).fetchone()
                    if row and row["value"] != SCHEMA_VERSION:
                        raise IndexCorruptionError(
                            f"Index schema version {row['value']} does not match {SCHEMA_VERSION}"
                        )

                conn.execute("PRAGMA journal_mode = WAL")
                conn.executescript(SCHEMA)
                conn.execute(
                    "INSERT OR IGNORE INTO metadata (key, value) VALUES ('schema_version', ?)",
                    (SCHEMA_VERSION,),
                )
        except sqlite3.OperationalError as e:
            if "fts5" in str(e):
                raise StoreError(f"SQLite was built without FTS5 support: {e}") from e
            raise IndexCorruptionError(f"Cannot initialize {self.path}: {e}") from e
        except sqlite3.DatabaseError as e:
            raise IndexCorruptionError(f"{self.path} is not a usable index: {e}") from e

    def destroy(self) -> None:
        """Delete the index artifact (it is only a cache of the source tree)."""
        for suffix in _ARTIFACT_SUFFIXES:
            Path(f"{self.path}{suffix}").unlink(missing_ok=True)

    def reset(self) -> None:
        """Empty the index, recreating the artifact if it is unusable."""
        try:
            self.initialize()
            self.clear()
        except (IndexCorruptionError, sqlite3.DatabaseError) as e:
            logger.warning(f"Recreating search index {self.path}: {e}")
            self.destroy()
            self.initialize()

    def clear(self) -> None:
        """Remove all files, chunks and vectors and rebuild the FTS index."""
        with self.connection() as conn:
            conn.execute("DELETE FROM vectors")
            conn.execute("DELETE FROM chunks")
            conn.execute("DELETE FROM files")
            conn.execute("INSERT INTO chunks_fts(chunks_fts) VALUES ('rebuild')")
            conn.execute(
                "DELETE FROM metadata WHERE key IN ('embedding_model', 'embedding_dim')"
            )

    # File and chunk writes

    def get_file_hash(self, path: str) -> Optional[str]:
        with self.connection() as conn:
            row = conn.execute("SELECT hash FROM files WHERE path = ?", (path,)).fetchone()
            return row["hash"] if row else None

    def get_file(self, path: str) -> Optional[FileRecord]:
        with self.connection() as conn:
            row = conn.execute(
                """SELECT path, source, hash, mtime, size, indexed_at
                   FROM files WHERE path = ?""",
                (path,),
            ).fetchone()
            return FileRecord(**dict(row)) if row else None

    def list_paths(self, source: Optional[str] = None) -> set[str]:
        """Paths of all indexed files, optionally for one source."""
        with self.connection() as conn:
            if source is None:
                cursor = conn.execute("SELECT path FROM files")
            else:
                cursor = conn.execute("SELECT path FROM files WHERE source = ?", (source,))
            return {row["path"] for row in cursor}

    def replace_file(self, record: FileRecord, chunks: list[Chunk]) -> list[int]:
        """Atomically replace a file's row and all of its chunks.

        Old chunks (and their FTS entries and vectors) are deleted and the new
        set inserted in one transaction; on failure nothing changes.

        Returns:
            IDs of the inserted chunks, in order
        """
        chunk_ids = []
        with self.connection() as conn:
            conn.execute("DELETE FROM chunks WHERE path = ?", (record.path,))
            conn.execute("DELETE FROM files WHERE path = ?", (record.path,))
            conn.execute(
                """INSERT INTO files (path, source, hash, mtime, size, indexed_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    record.path,
                    record.source,
                    record.hash,
                    record.mtime,
                    record.size,
                    record.indexed_at,
                ),
            )
            for chunk in chunks:
                cursor = conn.execute(
                    """INSERT INTO chunks
                       (path, source, start_line, end_line, text, hash, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        record.path,
                        record.source,
                        chunk.start_line,
                        chunk.end_line,
                        chunk.text,
                        chunk.hash,
                        record.indexed_at,
                    ),
                )
                chunk_ids.append(cursor.lastrowid)
        return chunk_ids

    def remove_file(self, path: str) -> bool:
        """Delete a file with its chunks and vectors. Returns True if it existed."""
        with self.connection() as conn:
            conn.execute("DELETE FROM chunks WHERE path = ?", (path,))
            cursor = conn.execute("DELETE FROM files WHERE path = ?", (path,))
            return cursor.rowcount > 0

    def remove_prefix(self, rel_path: str) -> list[str]:
        """Delete ``rel_path`` and every file under it as a directory.

        Returns:
            Removed paths, sorted
        """
        pattern = _escape_like(rel_path.rstrip("/")) + "/%"
        with self.connection() as conn:
            paths = [
                row["path"]
                for row in conn.execute(
                    "SELECT path FROM files WHERE path = ? OR path LIKE ? ESCAPE '\\'",
                    (rel_path, pattern),
                )
            ]
            for path in paths:
                conn.execute("DELETE FROM chunks WHERE path = ?", (path,))
                conn.execute("DELETE FROM files WHERE path = ?", (path,))
        return sorted(paths)

    # Chunk reads

    def get_chunks(
        self,
        path: str,
        from_line: Optional[int] = None,
        to_line: Optional[int] = None,
    ) -> list[ChunkRecord]:
        """Chunks of ``path`` intersecting ``[from_line, to_line]``, by start line."""
        sql = """SELECT id, path, source, start_line, end_line, text, hash, updated_at
                 FROM chunks WHERE path = ?"""
        params: list = [path]
        if from_line is not None:
            sql += " AND end_line >= ?"
            params.append(from_line)
        if to_line is not None:
            sql += " AND start_line <= ?"
            params.append(to_line)
        sql += " ORDER BY start_line"

        with self.connection() as conn:
            return [ChunkRecord(**dict(row)) for row in conn.execute(sql, params)]

    def fts_search(self, fts_query: str, source: Optional[str], limit: int) -> list[dict]:
        """Run a MATCH query; higher ``score`` is better.

        Raises:
            sqlite3.OperationalError: the query was rejected by FTS5
        """
        sql = """SELECT c.id AS chunk_id, c.path, c.text AS snippet,
                        c.start_line, c.end_line, c.source,
                        -chunks_fts.rank AS score
                 FROM chunks_fts
                 JOIN chunks c ON chunks_fts.rowid = c.id
                 WHERE chunks_fts MATCH ?"""
        params: list = [fts_query]
        if source is not None:
            sql += " AND c.source = ?"
            params.append(source)
        sql += " ORDER BY chunks_fts.rank, c.id LIMIT ?"
        params.append(limit)

        with self.connection() as conn:
            return [dict(row) for row in conn.execute(sql, params)]

    # Vectors

    def chunk_ids_missing_vectors(self) -> list[int]:
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT c.id FROM chunks c
                   LEFT JOIN vectors v ON v.chunk_id = c.id
                   WHERE v.chunk_id IS NULL ORDER BY c.id"""
            )
            return [row["id"] for row in cursor]

    def get_chunk_texts(self, chunk_ids: list[int]) -> dict[int, str]:
        if not chunk_ids:
            return {}
        placeholders = ",".join("?" for _ in chunk_ids)
        with self.connection() as conn:
            cursor = conn.execute(
                f"SELECT id, text FROM chunks WHERE id IN ({placeholders})", chunk_ids
            )
            return {row["id"]: row["text"] for row in cursor}

    def store_embeddings(self, chunk_ids: list[int], embeddings: Iterable[np.ndarray]) -> int:
        """Store embeddings for chunks that still exist. Returns rows written."""
        written = 0
        with self.connection() as conn:
            for chunk_id, embedding in zip(chunk_ids, embeddings):
                cursor = conn.execute(
                    """INSERT OR REPLACE INTO vectors (chunk_id, embedding)
                       SELECT ?, ? WHERE EXISTS (SELECT 1 FROM chunks WHERE id = ?)""",
                    (chunk_id, serialize_embedding(embedding), chunk_id),
                )
                written += cursor.rowcount
        return written

    def vector_count(self) -> int:
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM vectors").fetchone()[0]

    def vector_rows(self, source: Optional[str] = None) -> list[dict]:
        """All stored vectors joined with their chunks."""
        sql = """SELECT v.chunk_id, v.embedding, c.path, c.text AS snippet,
                        c.start_line, c.end_line, c.source
                 FROM vectors v JOIN chunks c ON v.chunk_id = c.id"""
        params: list = []
        if source is not None:
            sql += " WHERE c.source = ?"
            params.append(source)
        with self.connection() as conn:
            return [dict(row) for row in conn.execute(sql, params)]

    # Metadata

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    # Reporting

    def size_bytes(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def stats(self) -> IndexStats:
        with self.connection() as conn:
            total_files = conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]
            counts = conn.execute(
                """SELECT COUNT(*) AS total,
                          COALESCE(SUM(source = 'memory'), 0) AS memory,
                          COALESCE(SUM(source = 'sessions'), 0) AS sessions
                   FROM chunks"""
            ).fetchone()
            vector_chunks = conn.execute("SELECT COUNT(*) FROM vectors").fetchone()[0]
            last_ts = conn.execute("SELECT MAX(indexed_at) FROM files").fetchone()[0]

        if last_ts:
            last_indexed = datetime.fromtimestamp(last_ts / 1000, tz=timezone.utc).strftime(
                "%Y-%m-%d %H:%M:%S"
            )
        else:
            last_indexed = "never"

        return IndexStats(
            total_files=total_files,
            total_chunks=counts["total"],
            memory_chunks=counts["memory"],
            session_chunks=counts["sessions"],
            vector_chunks=vector_chunks,
            last_indexed=last_indexed,
            db_size_bytes=self.size_bytes(),
        )

    def verify(self) -> None:
        """Check structural consistency of the index.

        Raises:
            IndexCorruptionError: on any inconsistency; the store is not patched
        """
        try:
            with self.connection() as conn:
                result = conn.execute("PRAGMA quick_check").fetchone()[0]
                if result != "ok":
                    raise IndexCorruptionError(f"SQLite integrity check failed: {result}")

                conn.execute("INSERT INTO chunks_fts(chunks_fts) VALUES ('integrity-check')")

                orphan_chunks = conn.execute(
                    """SELECT COUNT(*) FROM chunks c
                       LEFT JOIN files f ON f.path = c.path WHERE f.path IS NULL"""
                ).fetchone()[0]
                if orphan_chunks:
                    raise IndexCorruptionError(f"{orphan_chunks} chunks have no file record")

                orphan_vectors = conn.execute(
                    """SELECT COUNT(*) FROM vectors v
                       LEFT JOIN chunks c ON c.id = v.chunk_id WHERE c.id IS NULL"""
                ).fetchone()[0]
                if orphan_vectors:
                    raise IndexCorruptionError(f"{orphan_vectors} vectors have no chunk")

                bad_spans = conn.execute(
                    "SELECT COUNT(*) FROM chunks WHERE start_line < 1 OR end_line < start_line"
                ).fetchone()[0]
                if bad_spans:
                    raise IndexCorruptionError(f"{bad_spans} chunks have invalid line spans")
        except sqlite3.DatabaseError as e:
            raise IndexCorruptionError(f"Search index is damaged: {e}") from e


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
