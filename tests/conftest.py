"""Shared fixtures for notesearch tests."""

import hashlib
import re
from pathlib import Path

import numpy as np
import pytest

from notesearch import NoteSearch, SearchConfig


class FakeEmbedder:
    """Deterministic bag-of-words embedder; no model download.

    Dimension 0 is a constant bias so every pair of texts has a positive
    cosine similarity.
    """

    def __init__(self, dimension: int = 16, fail_calls: set[int] | None = None):
        self._dimension = dimension
        self.fail_calls = fail_calls or set()
        self.batch_calls = 0
        self.fail_query = False

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return f"fake-{self._dimension}"

    def available(self) -> bool:
        return True

    def _vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self._dimension, dtype=np.float32)
        vec[0] = 1.0
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % (self._dimension - 1)
            vec[bucket + 1] += 1.0
        return vec / np.linalg.norm(vec)

    def embed(self, text: str) -> np.ndarray:
        if self.fail_query:
            raise RuntimeError("query embedding failed")
        return self._vector(text)

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        self.batch_calls += 1
        if self.batch_calls in self.fail_calls:
            raise RuntimeError(f"batch {self.batch_calls} failed")
        return np.vstack([self._vector(t) for t in texts])


def write_note(root: Path, rel_path: str, content: str) -> Path:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def notes_root(tmp_path: Path) -> Path:
    root = tmp_path / "memory"
    root.mkdir()
    return root


@pytest.fixture
def config() -> SearchConfig:
    return SearchConfig(embeddings_enabled=False, debounce_seconds=0.1)


@pytest.fixture
def notes(notes_root: Path, config: SearchConfig) -> NoteSearch:
    return NoteSearch(notes_root, config=config)


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def hybrid_notes(notes_root: Path, config: SearchConfig, fake_embedder: FakeEmbedder) -> NoteSearch:
    return NoteSearch(notes_root, config=config, embedder=fake_embedder)
