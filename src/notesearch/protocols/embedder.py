"""Protocol for embedding model providers."""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding model providers.

    Embeddings are a capability, not a requirement: the indexer and search
    engine only branch on ``available()``. Swapping in an API-based model or
    a test double needs no inheritance.
    """

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        ...

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        ...

    def available(self) -> bool:
        """Whether the provider can produce embeddings in this process."""
        ...

    def embed(self, text: str) -> np.ndarray:
        """Embed a single text. Returns a 1-D float32 array."""
        ...

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        """Generate embeddings for a batch of texts.

        Returns: numpy array of shape (len(texts), dimension)
        """
        ...
