"""Runtime configuration for notesearch."""

import os
from dataclasses import dataclass, fields, replace


ENV_PREFIX = "NOTESEARCH_"


@dataclass(frozen=True)
class SearchConfig:
    """Tunable settings shared by the indexer, search engine and watcher.

    Every field can be overridden from the environment with an upper-cased
    ``NOTESEARCH_`` variable, e.g. ``NOTESEARCH_DEBOUNCE_SECONDS=0.5``.
    """

    db_filename: str = ".search.db"
    sessions_dirname: str = "sessions"
    chunk_target_size: int = 800  # bytes, roughly 200 tokens
    embedding_batch_size: int = 32
    embedding_model: str = "all-MiniLM-L6-v2"
    embeddings_enabled: bool = True
    debounce_seconds: float = 2.0
    watch_queue_size: int = 1024
    default_max_results: int = 10
    session_content_limit: int = 5000

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "SearchConfig":
        """Build a config from defaults plus ``NOTESEARCH_*`` overrides."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _coerce(raw, type(f.default))
        return replace(cls(), **overrides)


def _coerce(raw: str, kind: type):
    if kind is bool:
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if kind is int:
        return int(raw)
    if kind is float:
        return float(raw)
    return raw
