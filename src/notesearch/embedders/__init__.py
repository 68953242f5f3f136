"""Embedding providers for vector generation."""

import logging

from notesearch.embedders.null import NullEmbedder
from notesearch.embedders.sentence_transformer import (
    SentenceTransformerEmbedder,
    sentence_transformers_installed,
)
from notesearch.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)


def get_embedder(enabled: bool = True, model_name: str | None = None) -> EmbeddingProvider:
    """Select the embedding provider once, at startup.

    Falls back to :class:`NullEmbedder` (with a single warning) when
    sentence-transformers is not installed.
    """
    if not enabled:
        return NullEmbedder()
    if not sentence_transformers_installed():
        logger.warning(
            "sentence-transformers is not installed; vector search is disabled "
            "(install notesearch[embeddings] to enable it)"
        )
        return NullEmbedder("sentence-transformers is not installed")
    return SentenceTransformerEmbedder(model_name)


__all__ = [
    "NullEmbedder",
    "SentenceTransformerEmbedder",
    "get_embedder",
    "sentence_transformers_installed",
]
