"""Exceptions raised by notesearch."""


class NoteSearchError(Exception):
    """Base class for notesearch errors."""


class StoreError(NoteSearchError):
    """The index store could not be opened or created."""


class IndexCorruptionError(NoteSearchError):
    """The index is structurally inconsistent and must be rebuilt.

    Raised instead of patching the store in place. Recover with
    ``NoteSearch.reindex_all()`` (or ``notesearch index --reindex``).
    """

    def __init__(self, detail: str):
        super().__init__(f"{detail}; run a full reindex to rebuild the search index")
        self.detail = detail


class EmbeddingUnavailableError(NoteSearchError):
    """No embedding backend is installed or configured."""
