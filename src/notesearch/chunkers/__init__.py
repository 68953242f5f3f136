"""Chunking strategies for notesearch."""

from notesearch.chunkers.heading_chunker import HeadingChunker, is_heading

__all__ = ["HeadingChunker", "is_heading"]
