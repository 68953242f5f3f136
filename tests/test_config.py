"""Tests for configuration loading."""

import pytest

from notesearch import SearchConfig


class TestSearchConfig:
    def test_defaults(self):
        config = SearchConfig()

        assert config.db_filename == ".search.db"
        assert config.chunk_target_size == 800
        assert config.embedding_batch_size == 32
        assert config.embeddings_enabled is True

    def test_from_env_overrides_typed_fields(self):
        config = SearchConfig.from_env(
            {
                "NOTESEARCH_DEBOUNCE_SECONDS": "0.5",
                "NOTESEARCH_EMBEDDING_BATCH_SIZE": "8",
                "NOTESEARCH_EMBEDDINGS_ENABLED": "no",
                "NOTESEARCH_EMBEDDING_MODEL": "other-model",
                "UNRELATED": "1",
            }
        )

        assert config.debounce_seconds == 0.5
        assert config.embedding_batch_size == 8
        assert config.embeddings_enabled is False
        assert config.embedding_model == "other-model"

    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_truthy_booleans(self, raw):
        assert SearchConfig.from_env({"NOTESEARCH_EMBEDDINGS_ENABLED": raw}).embeddings_enabled

    def test_invalid_number_raises(self):
        with pytest.raises(ValueError):
            SearchConfig.from_env({"NOTESEARCH_CHUNK_TARGET_SIZE": "big"})

    def test_from_env_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("NOTESEARCH_DEFAULT_MAX_RESULTS", "3")

        assert SearchConfig.from_env().default_max_results == 3
