"""Tests for incremental indexing."""

import shutil

import pytest

from conftest import write_note
from notesearch import NoteSearch
from notesearch.chunkers import HeadingChunker
from notesearch.indexer import Indexer


def numbered_lines(count: int, word: str = "line") -> str:
    return "".join(f"{word} {i}\n" for i in range(1, count + 1))


class TestFullScan:
    def test_initial_index_counts_every_file(self, notes, notes_root):
        write_note(notes_root, "identity.md", "# Identity\n" + numbered_lines(49))
        write_note(notes_root, "long-term.md", numbered_lines(10, "fact"))
        write_note(notes_root, "preferences.md", "")

        result = notes.index()

        assert (result.indexed, result.skipped, result.removed) == (3, 0, 0)
        assert result.embedded is None
        assert notes.get_stats().total_files == 3

    def test_empty_file_has_a_file_row_but_no_chunks(self, notes, notes_root):
        write_note(notes_root, "empty.md", "   \n\n")
        notes.index()

        assert notes.store.get_file("empty.md") is not None
        assert notes.store.get_chunks("empty.md") == []

    def test_unchanged_files_are_skipped_and_rows_preserved(self, notes, notes_root):
        write_note(notes_root, "a.md", "# A\nalpha\n")
        write_note(notes_root, "b.md", "# B\nbeta\n")
        notes.index()
        before = [(c.id, c.hash) for c in notes.store.get_chunks("a.md")]

        result = notes.index()

        assert (result.indexed, result.skipped, result.removed) == (0, 2, 0)
        assert [(c.id, c.hash) for c in notes.store.get_chunks("a.md")] == before

    def test_modified_file_replaces_all_chunks(self, notes, notes_root):
        write_note(notes_root, "a.md", "# A\nthe aardvark sleeps\n\n# B\nmore text\n")
        notes.index()
        old_ids = {c.id for c in notes.store.get_chunks("a.md")}

        write_note(notes_root, "a.md", "# A\nthe badger wakes\n")
        result = notes.index()

        new_chunks = notes.store.get_chunks("a.md")
        assert result.indexed == 1
        assert old_ids.isdisjoint({c.id for c in new_chunks})
        assert notes.get_stats().total_chunks == len(new_chunks) == 1
        assert notes.search("aardvark") == []
        assert notes.search("badger")[0].path == "a.md"

    def test_deleted_files_are_removed(self, notes, notes_root):
        for name in "abcde":
            write_note(notes_root, f"{name}.md", f"note {name} zanzibar{name}\n")
        notes.index()

        (notes_root / "d.md").unlink()
        (notes_root / "e.md").unlink()
        result = notes.index()

        assert result.removed == 2
        assert notes.get_stats().total_files == 3
        assert notes.search("zanzibard") == []

    def test_nested_paths_are_relative_with_forward_slashes(self, notes, notes_root):
        write_note(notes_root, "people/alice.md", "Alice likes kayaking\n")
        notes.index()

        assert notes.search("kayaking")[0].path == "people/alice.md"


class TestSkippedFiles:
    def test_hidden_and_binary_files_are_not_indexed(self, notes, notes_root):
        write_note(notes_root, ".gitkeep", "")
        write_note(notes_root, ".obsidian/config.md", "hidden settings\n")
        write_note(notes_root, "node_modules/pkg/readme.md", "vendored\n")
        (notes_root / "blob.txt").write_bytes(b"text\x00with nul")
        (notes_root / "photo.png").write_bytes(b"\x89PNG")
        write_note(notes_root, "real.md", "a real note\n")

        result = notes.index()

        assert result.indexed == 1
        assert notes.store.list_paths() == {"real.md"}

    def test_index_artifact_is_not_indexed(self, notes, notes_root):
        write_note(notes_root, "a.md", "alpha\n")
        notes.index()
        notes.index()

        assert ".search.db" not in notes.store.list_paths()

    def test_file_that_turns_binary_is_removed(self, notes, notes_root):
        write_note(notes_root, "a.txt", "plain text\n")
        notes.index()

        (notes_root / "a.txt").write_bytes(b"\x00\x01\x02")
        result = notes.index()

        assert result.removed == 1
        assert notes.get_stats().total_files == 0

    def test_non_utf8_text_is_decoded_with_replacement(self, notes, notes_root):
        (notes_root / "latin.txt").write_bytes("caf\xe9 menu\n".encode("latin-1"))

        assert notes.index().indexed == 1
        assert notes.search("menu")[0].path == "latin.txt"


class TestSessions:
    def test_transcripts_are_indexed_as_sessions(self, notes, notes_root):
        write_note(
            notes_root,
            "sessions/2026-01-01.jsonl",
            '{"role": "user", "content": "remember the quokka"}\n',
        )
        write_note(notes_root, "a.md", "memory note\n")
        notes.index()

        stats = notes.get_stats()
        assert stats.session_chunks == 1
        assert stats.memory_chunks == 1
        assert notes.search("quokka", source="sessions")[0].source == "sessions"
        assert notes.search("quokka", source="memory") == []

    def test_index_session_uses_hash_diff(self, notes):
        notes.index()
        indexer = notes.indexer

        assert indexer.index_session("sessions/x.jsonl", '{"content": "one"}\n') is True
        assert indexer.index_session("sessions/x.jsonl", '{"content": "one"}\n') is False
        assert indexer.index_session("sessions/x.jsonl", '{"content": "two"}\n') is True
        assert notes.get_stats().session_chunks == 1


class TestReindexAll:
    def test_reindex_all_rebuilds_from_disk(self, notes, notes_root):
        write_note(notes_root, "a.md", "alpha\n")
        write_note(notes_root, "b.md", "beta\n")
        notes.index()

        result = notes.reindex_all()

        assert result.indexed == 2
        assert notes.get_stats().total_files == 2

    def test_deleting_the_artifact_reproduces_content(self, notes, notes_root, config):
        write_note(notes_root, "a.md", "# A\n" + numbered_lines(80, "gecko"))
        notes.index()
        before = [(c.path, c.start_line, c.end_line, c.hash) for c in notes.store.get_chunks("a.md")]

        notes.store.destroy()
        fresh = NoteSearch(notes_root, config=config)
        fresh.index()

        after = [(c.path, c.start_line, c.end_line, c.hash) for c in fresh.store.get_chunks("a.md")]
        assert after == before


class TestSyncPath:
    @pytest.fixture
    def indexer(self, notes):
        notes.index()
        return notes.indexer

    def test_sync_new_changed_unchanged_and_deleted(self, indexer, notes_root):
        path = write_note(notes_root, "a.md", "first\n")
        assert indexer.sync_path(notes_root, path) == "indexed"
        assert indexer.sync_path(notes_root, path) == "skipped"

        write_note(notes_root, "a.md", "second\n")
        assert indexer.sync_path(notes_root, "a.md") == "indexed"

        path.unlink()
        assert indexer.sync_path(notes_root, path) == "removed"
        assert indexer.sync_path(notes_root, path) == "ignored"

    def test_sync_ignores_hidden_and_outside_paths(self, indexer, notes_root, tmp_path):
        hidden = write_note(notes_root, ".hidden.md", "secret\n")
        outside = write_note(tmp_path, "outside.md", "elsewhere\n")

        assert indexer.sync_path(notes_root, hidden) == "ignored"
        assert indexer.sync_path(notes_root, outside) == "ignored"

    def test_sync_removed_directory_drops_every_file_under_it(self, indexer, notes_root, tmp_path):
        write_note(notes_root, "projects/alpha.md", "alpha gannet\n")
        write_note(notes_root, "projects/deep/beta.md", "beta gannet\n")
        write_note(notes_root, "projects-notes.md", "sibling gannet\n")
        indexer.index(notes_root)

        shutil.move(str(notes_root / "projects"), str(tmp_path / "archived"))

        assert indexer.sync_path(notes_root, notes_root / "projects") == "removed"
        assert indexer.store.list_paths() == {"projects-notes.md"}
        assert indexer.sync_path(notes_root, notes_root / "projects") == "ignored"

    def test_sync_moved_in_directory_indexes_its_files(self, indexer, notes_root, tmp_path):
        write_note(tmp_path, "incoming/one.md", "first cormorant\n")
        write_note(tmp_path, "incoming/nested/two.md", "second cormorant\n")
        shutil.move(str(tmp_path / "incoming"), str(notes_root / "incoming"))

        assert indexer.sync_path(notes_root, notes_root / "incoming") == "indexed"
        assert indexer.store.list_paths() == {"incoming/one.md", "incoming/nested/two.md"}
        assert indexer.sync_path(notes_root, "incoming") == "skipped"

    def test_sync_root_itself_is_ignored(self, indexer, notes_root):
        write_note(notes_root, "kept.md", "stays\n")
        indexer.index(notes_root)

        assert indexer.sync_path(notes_root, notes_root) == "ignored"
        assert indexer.store.list_paths() == {"kept.md"}


class ExplodingChunker(HeadingChunker):
    def chunk(self, text, file_path):
        if "explode" in text:
            raise RuntimeError("chunker failure")
        return super().chunk(text, file_path)


class TestFailures:
    def test_failed_file_keeps_previous_rows_and_scan_continues(self, notes, notes_root):
        write_note(notes_root, "a.md", "stable armadillo\n")
        write_note(notes_root, "b.md", "beta\n")
        notes.index()
        before = [(c.id, c.text) for c in notes.store.get_chunks("a.md")]

        indexer = Indexer(notes.store, chunker=ExplodingChunker(), config=notes.config)
        write_note(notes_root, "a.md", "now explode\n")
        write_note(notes_root, "b.md", "beta changed\n")
        result = indexer.index(notes_root)

        assert result.indexed == 1
        assert result.removed == 0
        assert [(c.id, c.text) for c in notes.store.get_chunks("a.md")] == before
        assert notes.search("armadillo")[0].path == "a.md"
