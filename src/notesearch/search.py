"""Lexical (BM25) and hybrid retrieval over the index store."""

import logging
import re
import sqlite3
from typing import Optional

import numpy as np

from notesearch.embedders import NullEmbedder
from notesearch.models import HybridSearchResult, SearchResult, SourceFilter
from notesearch.protocols import EmbeddingProvider
from notesearch.storage import NoteIndexStore
from notesearch.utils.vectors import cosine_similarities, deserialize_embedding

logger = logging.getLogger(__name__)

# Characters with meaning in FTS5 query syntax
FTS_SPECIAL_CHARS = re.compile(r"""[:*^()"']""")
NON_WORD_CHARS = re.compile(r"[^\w]+", re.UNICODE)

HYBRID_CANDIDATE_FACTOR = 3


def _query_words(query: str) -> list[str]:
    return [w for w in query.split() if len(w) > 1]


def format_fts_query(query: str) -> str:
    """Format a natural language query for FTS5.

    Words longer than one character are quoted and OR-ed together for
    recall; characters that break MATCH syntax are stripped.
    """
    words = [FTS_SPECIAL_CHARS.sub("", w) for w in _query_words(query)]
    return " OR ".join(f'"{w}"' for w in words if w)


def sanitize_fts_query(query: str) -> str:
    """Stricter fallback: keep only word characters of each token."""
    words = []
    for w in _query_words(query):
        words.extend(part for part in NON_WORD_CHARS.split(w) if len(part) > 1)
    return " OR ".join(f'"{w}"' for w in words)


def _source_param(source: Optional[SourceFilter]) -> Optional[str]:
    return None if source in (None, "all") else source


class SearchEngine:
    """Answers ranked queries against a :class:`NoteIndexStore`."""

    def __init__(self, store: NoteIndexStore, embedder: Optional[EmbeddingProvider] = None):
        self.store = store
        self.embedder = embedder or NullEmbedder()

    def search(
        self,
        query: str,
        max_results: int = 10,
        min_score: float = 0.0,
        source: SourceFilter = "all",
    ) -> list[SearchResult]:
        """BM25 full-text search with scores normalized to [0, 1].

        Scores are relative to the best hit of this query and are not
        comparable across queries. Never raises for a bad or empty query.
        """
        fts_query = format_fts_query(query)
        if not fts_query or max_results <= 0:
            return []

        rows = self._run_fts(query, fts_query, _source_param(source), max_results)
        results = [
            SearchResult(
                path=row["path"],
                snippet=row["snippet"],
                start_line=row["start_line"],
                end_line=row["end_line"],
                score=float(row["score"]),
                source=row["source"],
                chunk_id=row["chunk_id"],
            )
            for row in rows
        ]

        if results:
            max_score = max(r.score for r in results)
            if max_score > 0:
                for r in results:
                    r.score = r.score / max_score

        return [r for r in results if r.score >= min_score]

    def _run_fts(
        self, query: str, fts_query: str, source: Optional[str], limit: int
    ) -> list[dict]:
        try:
            return self.store.fts_search(fts_query, source, limit)
        except sqlite3.OperationalError as e:
            logger.debug(f"FTS query rejected ({e}), retrying with sanitized terms")

        simple_query = sanitize_fts_query(query)
        if not simple_query:
            return []
        try:
            return self.store.fts_search(simple_query, source, limit)
        except sqlite3.OperationalError as e:
            logger.debug(f"Sanitized FTS query rejected too: {e}")
            return []

    def hybrid_search(
        self,
        query: str,
        max_results: int = 10,
        min_score: float = 0.0,
        source: SourceFilter = "all",
        bm25_weight: float = 0.5,
        vector_weight: float = 0.5,
    ) -> HybridSearchResult:
        """Blend BM25 and cosine similarity scores.

        Falls back to BM25 only (``mode="bm25"``) when the provider is
        unavailable, no vectors are stored, or the query cannot be embedded.
        """
        bm25_results = self.search(
            query,
            max_results=max_results * HYBRID_CANDIDATE_FACTOR,
            min_score=0.0,
            source=source,
        )

        def lexical_only() -> HybridSearchResult:
            limited = [r for r in bm25_results[:max_results] if r.score >= min_score]
            return HybridSearchResult(results=limited, mode="bm25")

        if not query.strip() or not self.embedder.available():
            return lexical_only()
        if self.store.vector_count() == 0:
            return lexical_only()

        try:
            query_embedding = np.asarray(self.embedder.embed(query), dtype=np.float32)
        except Exception as e:
            logger.warning(f"Query embedding failed, using BM25 only: {e}")
            return lexical_only()

        vector_scores = self._vector_scores(query_embedding, _source_param(source))

        merged: dict[int, SearchResult] = {}
        bm25_scores: dict[int, float] = {}
        for r in bm25_results:
            merged[r.chunk_id] = r
            bm25_scores[r.chunk_id] = r.score
        cosine_scores: dict[int, float] = {}
        for chunk_id, (cosine, result) in vector_scores.items():
            cosine_scores[chunk_id] = cosine
            merged.setdefault(chunk_id, result)

        ranked = []
        for chunk_id, result in merged.items():
            score = bm25_weight * bm25_scores.get(chunk_id, 0.0) + vector_weight * cosine_scores.get(
                chunk_id, 0.0
            )
            ranked.append(
                SearchResult(
                    path=result.path,
                    snippet=result.snippet,
                    start_line=result.start_line,
                    end_line=result.end_line,
                    score=score,
                    source=result.source,
                    chunk_id=chunk_id,
                )
            )

        ranked.sort(key=lambda r: (-r.score, r.chunk_id))
        if ranked and ranked[0].score > 0:
            top = ranked[0].score
            for r in ranked:
                r.score = r.score / top

        results = [r for r in ranked[:max_results] if r.score >= min_score]
        return HybridSearchResult(results=results, mode="hybrid")

    def _vector_scores(
        self, query_embedding: np.ndarray, source: Optional[str]
    ) -> dict[int, tuple[float, SearchResult]]:
        """Clamped, max-normalized cosine similarity for every stored vector."""
        rows = []
        vectors = []
        for row in self.store.vector_rows(source):
            vector = deserialize_embedding(row["embedding"])
            if vector.shape != query_embedding.shape:
                logger.debug(f"Ignoring vector for chunk {row['chunk_id']}: dimension mismatch")
                continue
            rows.append(row)
            vectors.append(vector)

        if not rows:
            return {}

        sims = np.maximum(cosine_similarities(query_embedding, np.vstack(vectors)), 0.0)
        max_sim = float(sims.max())
        if max_sim > 0:
            sims = sims / max_sim

        return {
            row["chunk_id"]: (
                float(sim),
                SearchResult(
                    path=row["path"],
                    snippet=row["snippet"],
                    start_line=row["start_line"],
                    end_line=row["end_line"],
                    score=0.0,
                    source=row["source"],
                    chunk_id=row["chunk_id"],
                ),
            )
            for row, sim in zip(rows, sims)
        }

    def get_chunk(
        self,
        path: str,
        from_line: Optional[int] = None,
        line_count: Optional[int] = None,
    ) -> Optional[str]:
        """Stored text of ``path``, optionally limited to a line window.

        The window is ``[from_line, from_line + line_count]`` with
        ``line_count`` defaulting to 20.

        Returns:
            Concatenated chunk texts ordered by start line, or None if nothing
            is indexed for that window
        """
        to_line = None
        if from_line is not None:
            to_line = from_line + (line_count if line_count is not None else 20)
        chunks = self.store.get_chunks(path, from_line, to_line)
        if not chunks:
            return None
        return "\n".join(c.text for c in chunks)
