"""Embedding serialization and similarity helpers."""

import numpy as np

# Fixed-width little-endian float32, independent of the host byte order
EMBEDDING_DTYPE = np.dtype("<f4")


def serialize_embedding(embedding: np.ndarray) -> bytes:
    """Serialize a 1-D embedding to bytes for a SQLite BLOB column."""
    return np.asarray(embedding, dtype=EMBEDDING_DTYPE).reshape(-1).tobytes()


def deserialize_embedding(blob: bytes) -> np.ndarray:
    """Inverse of :func:`serialize_embedding`."""
    return np.frombuffer(blob, dtype=EMBEDDING_DTYPE).astype(np.float32)


def cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Zero-norm rows score 0.0.
    """
    if matrix.size == 0:
        return np.zeros((0,), dtype=np.float32)

    query = np.asarray(query, dtype=np.float32)
    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return np.zeros((matrix.shape[0],), dtype=np.float32)

    row_norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(row_norms > 0, dots / (row_norms * query_norm), 0.0)
    return sims.astype(np.float32)
