"""In-process API consumed by bots, CLIs and assistant integrations."""

import logging
from pathlib import Path
from typing import Optional

from notesearch.chunkers import HeadingChunker
from notesearch.config import SearchConfig
from notesearch.embedders import get_embedder
from notesearch.indexer import Indexer, ProgressCallback, SyncOutcome
from notesearch.models import HybridSearchResult, IndexResult, IndexStats, SearchResult, SourceFilter
from notesearch.protocols import EmbeddingProvider
from notesearch.search import SearchEngine
from notesearch.sessions import log_session
from notesearch.storage import NoteIndexStore
from notesearch.watcher import FlushCallback, NoteWatcher

logger = logging.getLogger(__name__)


class NoteSearch:
    """Search index over a notes folder.

    The index lives in ``<root>/.search.db`` by default. It is a cache: the
    notes are the source of truth and ``reindex_all()`` rebuilds it.

    Example:
        notes = NoteSearch("~/memory")
        notes.index()
        for hit in notes.search("typescript preferences"):
            print(hit.path, hit.start_line, hit.score)
    """

    def __init__(
        self,
        root: Path | str,
        db_path: Path | str | None = None,
        config: Optional[SearchConfig] = None,
        embedder: Optional[EmbeddingProvider] = None,
    ):
        self.config = config or SearchConfig.from_env()
        self.root = Path(root).expanduser().resolve()
        self.db_path = Path(db_path) if db_path else self.root / self.config.db_filename
        self.embedder = embedder or get_embedder(
            self.config.embeddings_enabled, self.config.embedding_model
        )

        self.store = NoteIndexStore(self.db_path)
        self.indexer = Indexer(
            self.store,
            chunker=HeadingChunker(self.config.chunk_target_size),
            embedder=self.embedder,
            config=self.config,
        )
        self.engine = SearchEngine(self.store, self.embedder)
        self._initialized = False

    def _ensure_store(self) -> None:
        if not self._initialized:
            self.store.initialize()
            self._initialized = True

    # Indexing

    def index(self, embeddings: bool = False) -> IndexResult:
        """Incrementally index the notes folder."""
        self._ensure_store()
        return self.indexer.index(self.root, embeddings=embeddings)

    def reindex_all(self, embeddings: bool = False) -> IndexResult:
        """Drop the index and rebuild it from scratch.

        Also the recovery path for :class:`~notesearch.exceptions.IndexCorruptionError`.
        """
        result = self.indexer.reindex_all(self.root, embeddings=embeddings)
        self._initialized = True
        return result

    def generate_embeddings(self, progress: Optional[ProgressCallback] = None) -> int:
        """Embed chunks that have no vector yet."""
        self._ensure_store()
        return self.indexer.generate_embeddings(progress)

    def index_file(self, path: Path | str) -> SyncOutcome:
        """Sync a single file (absolute or root-relative)."""
        self._ensure_store()
        return self.indexer.sync_path(self.root, path)

    # Queries

    def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        min_score: float = 0.0,
        source: SourceFilter = "all",
    ) -> list[SearchResult]:
        self._ensure_store()
        return self.engine.search(
            query,
            max_results=self.config.default_max_results if max_results is None else max_results,
            min_score=min_score,
            source=source,
        )

    def hybrid_search(
        self,
        query: str,
        max_results: Optional[int] = None,
        min_score: float = 0.0,
        source: SourceFilter = "all",
        bm25_weight: float = 0.5,
        vector_weight: float = 0.5,
    ) -> HybridSearchResult:
        self._ensure_store()
        return self.engine.hybrid_search(
            query,
            max_results=self.config.default_max_results if max_results is None else max_results,
            min_score=min_score,
            source=source,
            bm25_weight=bm25_weight,
            vector_weight=vector_weight,
        )

    def get_chunk(
        self,
        path: str,
        from_line: Optional[int] = None,
        line_count: Optional[int] = None,
    ) -> Optional[str]:
        self._ensure_store()
        return self.engine.get_chunk(path, from_line, line_count)

    def get_stats(self) -> IndexStats:
        self._ensure_store()
        return self.store.stats()

    def verify(self) -> None:
        """Raise IndexCorruptionError if the index is inconsistent."""
        self._ensure_store()
        self.store.verify()

    # Watching and sessions

    def watch(self, on_flush: Optional[FlushCallback] = None) -> NoteWatcher:
        """Start watching the notes folder. Call ``close()`` on the result to stop."""
        self._ensure_store()
        watcher = NoteWatcher(
            self.indexer,
            self.root,
            debounce_seconds=self.config.debounce_seconds,
            queue_size=self.config.watch_queue_size,
            on_flush=on_flush,
        )
        return watcher.start()

    def log_session(
        self,
        session_id: str,
        content: str,
        role: str = "user",
        origin: str = "claude-code",
    ) -> Path:
        """Append a transcript entry and index the transcript.

        Returns:
            Path of the transcript file
        """
        self._ensure_store()
        file_path = log_session(
            self.root,
            session_id,
            role,
            content,
            origin=origin,
            sessions_dirname=self.config.sessions_dirname,
            content_limit=self.config.session_content_limit,
        )
        rel_path = file_path.resolve().relative_to(self.root).as_posix()
        self.indexer.index_session(
            rel_path,
            file_path.read_text(encoding="utf-8"),
            int(file_path.stat().st_mtime * 1000),
        )
        return file_path
