"""Filesystem watcher that feeds debounced changes to the indexer."""

import logging
import os
import queue
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from notesearch.indexer import Indexer, SyncOutcome
from notesearch.ingesters import is_hidden

logger = logging.getLogger(__name__)

FlushCallback = Callable[[dict[str, SyncOutcome]], None]

_STOP = object()


class NoteFileHandler(FileSystemEventHandler):
    """Forwards file create/modify events and any delete/move event to a watcher."""

    def __init__(self, root: Path, notify: Callable[[str], None]):
        super().__init__()
        self.root = root
        self.notify = notify

    def _should_process(self, path: str) -> bool:
        try:
            rel_path = Path(path).relative_to(self.root)
        except ValueError:
            return False
        return not is_hidden(rel_path)

    def _forward(self, path: str | bytes) -> None:
        path = os.fsdecode(path)
        if self._should_process(path):
            self.notify(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    # Directories are forwarded too: the indexer drops every stored file
    # under a vanished directory and syncs one that appeared.

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path)
        self._forward(event.dest_path)


class NoteWatcher:
    """Watches the source root and re-indexes changed files.

    Events go into a bounded queue drained by a single consumer thread. The
    consumer collects paths until no event has arrived for
    ``debounce_seconds``, then syncs each pending path. Because only that
    thread indexes, one flush runs at a time and events arriving during a
    flush are picked up by the next one.

    ``close()`` blocks until pending paths are flushed.
    """

    def __init__(
        self,
        indexer: Indexer,
        root: Path | str,
        debounce_seconds: float = 2.0,
        queue_size: int = 1024,
        on_flush: Optional[FlushCallback] = None,
    ):
        self.indexer = indexer
        self.root = Path(root).resolve()
        self.debounce_seconds = debounce_seconds
        self.on_flush = on_flush
        self.flush_count = 0

        self._events: queue.Queue = queue.Queue(maxsize=queue_size)
        self._observer: Optional[Observer] = None
        self._consumer: Optional[threading.Thread] = None
        self._closed = False
        self._state_lock = threading.Lock()

    def start(self) -> "NoteWatcher":
        """Start the consumer thread and the filesystem observer."""
        with self._state_lock:
            if self._consumer is not None:
                return self
            self._consumer = threading.Thread(
                target=self._run, name="notesearch-watcher", daemon=True
            )
            self._consumer.start()

            self._observer = Observer()
            self._observer.schedule(
                NoteFileHandler(self.root, self.notify), str(self.root), recursive=True
            )
            self._observer.start()

        logger.info(f"Watching {self.root} for changes...")
        return self

    def notify(self, path: str | Path) -> None:
        """Queue a changed path. Blocks while the queue is full."""
        if self._closed:
            return
        self._events.put(str(path))

    def close(self) -> None:
        """Stop watching, wait for pending work to be indexed."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            observer, consumer = self._observer, self._consumer

        if observer is not None:
            observer.stop()
            observer.join()
        if consumer is not None:
            self._events.put(_STOP)
            consumer.join()
        logger.info("Watcher stopped.")

    def __enter__(self) -> "NoteWatcher":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _run(self) -> None:
        pending: set[str] = set()
        while True:
            timeout = self.debounce_seconds if pending else None
            try:
                item = self._events.get(timeout=timeout)
            except queue.Empty:
                # Window elapsed with no new events
                self._flush(pending)
                pending = set()
                continue

            if item is _STOP:
                if pending:
                    self._flush(pending)
                return
            pending.add(item)

    def _flush(self, paths: set[str]) -> None:
        results: dict[str, SyncOutcome] = {}
        for path in sorted(paths):
            try:
                results[path] = self.indexer.sync_path(self.root, path)
            except Exception as e:
                logger.warning(f"Could not index {path}: {e}")
        self.flush_count += 1

        if self.on_flush is not None:
            try:
                self.on_flush(results)
            except Exception as e:
                logger.warning(f"Error in flush callback: {e}")
