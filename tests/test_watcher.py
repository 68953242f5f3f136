"""Tests for the debounced filesystem watcher."""

import shutil
import threading

import pytest
from watchdog.events import DirCreatedEvent, DirDeletedEvent, DirMovedEvent

from conftest import write_note
from notesearch.watcher import NoteFileHandler


@pytest.fixture
def flushes():
    return []


@pytest.fixture
def watcher(notes, flushes):
    notes.index()
    watcher = notes.watch(on_flush=flushes.append)
    yield watcher
    watcher.close()


class TestNoteWatcher:
    def test_close_flushes_pending_paths(self, notes, notes_root, flushes):
        notes.index()
        path = write_note(notes_root, "pending.md", "written before the watcher started\n")
        watcher = notes.watch(on_flush=flushes.append)

        watcher.notify(path)
        watcher.close()

        assert flushes == [{str(path): "indexed"}]
        assert watcher.flush_count == 1
        assert notes.search("watcher")[0].path == "pending.md"

    def test_filesystem_change_is_indexed_after_debounce(self, notes, notes_root):
        notes.index()
        flushed = threading.Event()
        outcomes = {}

        def on_flush(results):
            outcomes.update(results)
            if "indexed" in results.values():
                flushed.set()

        with notes.watch(on_flush=on_flush):
            write_note(notes_root, "live.md", "the capybara arrived\n")
            assert flushed.wait(timeout=10)

        assert outcomes[str(notes.root / "live.md")] == "indexed"
        assert notes.search("capybara")[0].path == "live.md"

    def test_deleted_file_is_removed(self, notes, notes_root, flushes):
        path = write_note(notes_root, "gone.md", "soon deleted\n")
        notes.index()
        watcher = notes.watch(on_flush=flushes.append)

        path.unlink()
        watcher.notify(path)
        watcher.close()

        merged = {k: v for flush in flushes for k, v in flush.items()}
        assert merged[str(path)] == "removed"
        assert notes.get_stats().total_files == 0

    def test_repeated_events_are_coalesced(self, watcher, notes_root, flushes):
        path = notes_root / "many.md"
        for _ in range(5):
            watcher.notify(path)
        watcher.close()

        assert len(flushes) == 1
        assert list(flushes[0]) == [str(path)]

    def test_close_is_idempotent_and_stops_notifications(self, watcher, notes_root, flushes):
        watcher.close()
        watcher.close()

        watcher.notify(notes_root / "late.md")

        assert flushes == []
        assert watcher.flush_count == 0

    def test_hidden_paths_are_not_forwarded(self, notes_root):
        received = []
        handler = NoteFileHandler(notes_root, received.append)
        handler._forward(str(notes_root / ".search.db-wal"))
        handler._forward(str(notes_root / "node_modules" / "x.md"))
        handler._forward(str(notes_root / "note.md"))

        assert received == [str(notes_root / "note.md")]

    def test_directory_moved_out_of_the_tree_is_removed(self, notes, notes_root, tmp_path):
        write_note(notes_root, "projects/alpha.md", "the alpha pelican\n")
        write_note(notes_root, "projects/deep/beta.md", "the beta pelican\n")
        write_note(notes_root, "kept.md", "kept pelican\n")
        notes.index()
        removed = threading.Event()

        def on_flush(results):
            if "removed" in results.values():
                removed.set()

        watcher = notes.watch(on_flush=on_flush)
        try:
            shutil.move(str(notes_root / "projects"), str(tmp_path / "archived"))
            assert removed.wait(timeout=10)
        finally:
            watcher.close()

        assert notes.store.list_paths() == {"kept.md"}
        assert [hit.path for hit in notes.search("pelican")] == ["kept.md"]

    def test_event_during_a_flush_lands_in_the_next_flush(self, notes, notes_root):
        notes.index()
        first = write_note(notes_root, "first.md", "first albatross\n")
        second = write_note(notes_root, "second.md", "second albatross\n")
        flushes = []
        first_flushed = threading.Event()
        second_flushed = threading.Event()

        def on_flush(results):
            flushes.append(results)
            if len(flushes) == 1:
                # Still inside the first flush
                watcher.notify(second)
                first_flushed.set()
            else:
                second_flushed.set()

        watcher = notes.watch(on_flush=on_flush)
        try:
            watcher.notify(first)
            assert first_flushed.wait(timeout=10)
            assert second_flushed.wait(timeout=10)
        finally:
            watcher.close()

        assert flushes == [{str(first): "indexed"}, {str(second): "indexed"}]
        assert notes.get_stats().total_files == 2

    def test_directory_delete_and_move_events_are_forwarded(self, notes_root):
        received = []
        handler = NoteFileHandler(notes_root, received.append)
        handler.on_deleted(DirDeletedEvent(str(notes_root / "old")))
        handler.on_moved(DirMovedEvent(str(notes_root / "a"), str(notes_root / "b")))
        handler.on_created(DirCreatedEvent(str(notes_root / "new")))

        assert received == [
            str(notes_root / "old"),
            str(notes_root / "a"),
            str(notes_root / "b"),
        ]
