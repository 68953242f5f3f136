"""SQLite storage for the search index."""

from notesearch.storage.schema import SCHEMA, SCHEMA_VERSION
from notesearch.storage.store import NoteIndexStore

__all__ = ["NoteIndexStore", "SCHEMA", "SCHEMA_VERSION"]
