"""Local embedding provider backed by sentence-transformers."""

from __future__ import annotations

import importlib.util
import logging
import threading
from typing import TYPE_CHECKING

import numpy as np

from notesearch.exceptions import EmbeddingUnavailableError

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

_availability: bool | None = None
_availability_lock = threading.Lock()


def sentence_transformers_installed() -> bool:
    """Probe for the optional library once per process."""
    global _availability
    with _availability_lock:
        if _availability is None:
            _availability = importlib.util.find_spec("sentence_transformers") is not None
        return _availability


class SentenceTransformerEmbedder:
    """Embeds note chunks with a local sentence-transformers model.

    all-MiniLM-L6-v2 (384 dimensions) is small enough to run on a laptop CPU.
    The model loads on first use; concurrent first callers block on one lock
    and share a single load. A failed load is remembered: the provider then
    reports itself unavailable and is never retried in this process.
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: str | None = None):
        """
        Args:
            model_name: Any sentence-transformers model id. Defaults to
                ``DEFAULT_MODEL``.
        """
        self._model_name = model_name or self.DEFAULT_MODEL
        self._loaded: SentenceTransformer | None = None
        self._load_lock = threading.Lock()
        self._load_error: Exception | None = None

    def available(self) -> bool:
        return self._load_error is None and sentence_transformers_installed()

    @property
    def model(self) -> SentenceTransformer:
        if self._loaded is None:
            with self._load_lock:
                if self._load_error is not None:
                    raise EmbeddingUnavailableError(
                        f"Embedding model {self._model_name} failed to load: {self._load_error}"
                    )
                if self._loaded is None:
                    logger.info(f"Loading embedding model: {self._model_name}...")
                    try:
                        from sentence_transformers import SentenceTransformer

                        self._loaded = SentenceTransformer(self._model_name)
                    except Exception as e:
                        self._load_error = e
                        logger.warning(
                            f"Could not load embedding model {self._model_name}: {e}; "
                            "vector search is disabled"
                        )
                        raise EmbeddingUnavailableError(
                            f"Embedding model {self._model_name} failed to load: {e}"
                        ) from e
                    logger.info("Embedding model loaded.")
        return self._loaded

    @property
    def dimension(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed(self, text: str) -> np.ndarray:
        """Embed one query or chunk into a unit-length float32 vector."""
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        """Embed several texts in one model call.

        Returns:
            float32 array with one unit-length row per input text
        """
        if not texts:
            return np.zeros((0, 0), dtype=np.float32)

        vectors = self.model.encode(texts, convert_to_numpy=True, normalize_embeddings=True)
        return np.asarray(vectors, dtype=np.float32)
