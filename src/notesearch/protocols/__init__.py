"""Protocol definitions for extensible components."""

from notesearch.protocols.chunker import ChunkingStrategy
from notesearch.protocols.embedder import EmbeddingProvider
from notesearch.protocols.ingester import Ingester

__all__ = ["Ingester", "EmbeddingProvider", "ChunkingStrategy"]
