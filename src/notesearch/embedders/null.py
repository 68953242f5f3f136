"""No-op embedding provider used when embeddings are disabled or missing."""

import numpy as np

from notesearch.exceptions import EmbeddingUnavailableError


class NullEmbedder:
    """Provider that is never available; search stays lexical-only."""

    dimension = 0
    model_name = "none"

    def __init__(self, reason: str = "embeddings are disabled"):
        self.reason = reason

    def available(self) -> bool:
        return False

    def embed(self, text: str) -> np.ndarray:
        raise EmbeddingUnavailableError(self.reason)

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        raise EmbeddingUnavailableError(self.reason)
