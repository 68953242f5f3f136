"""Heading-aware, size-bounded chunking for markdown notes."""

import re
from typing import Optional

from notesearch.models import Chunk
from notesearch.utils.hashing import chunk_hash

HEADING_RE = re.compile(r"^#{1,6}\s")


def is_heading(line: str) -> bool:
    return HEADING_RE.match(line) is not None


class HeadingChunker:
    """Default chunking: cut before headings, split long runs at blank lines.

    Strategy:
    - A heading line always starts a new chunk
    - Once a chunk reaches TARGET_CHUNK_SIZE bytes, split it at the blank
      line closest to 60% of its lines (searching 30%-100%)
    - With no blank line in that window, keep accumulating rather than cut
      mid-paragraph, even if the chunk grows oversized
    - A chunk created by a size split repeats the section heading as its
      first line; that line is context only and not part of the line span
    """

    TARGET_CHUNK_SIZE = 800  # approximately 200 tokens
    SPLIT_WINDOW_START = 0.3
    SPLIT_TARGET = 0.6

    def __init__(self, target_size: int | None = None):
        self.target_size = target_size or self.TARGET_CHUNK_SIZE

    def chunk(self, text: str, file_path: str) -> list[Chunk]:
        """Split text into chunks with line spans and hashes.

        Args:
            text: The text content to chunk
            file_path: Path to the source file (for metadata)

        Returns:
            Ordered list of Chunk objects; empty for blank input
        """
        if not text or not text.strip():
            return []

        lines = text.split("\n")
        chunks: list[Chunk] = []

        heading: Optional[str] = None
        context: Optional[str] = None
        pending: list[str] = []
        start_line = 1
        size = 0

        for i, line in enumerate(lines):
            line_num = i + 1

            if is_heading(line):
                # Flush accumulated content before the new section
                if pending:
                    self._emit(chunks, pending, start_line, context, file_path)
                    pending = []
                    size = 0
                    context = None
                    start_line = line_num
                heading = line

            pending.append(line)
            size += _byte_len(line)

            if size < self.target_size:
                continue

            split_index = self._find_split_point(pending)
            if not 0 < split_index < len(pending) - 1:
                # No usable blank line yet; keep going
                continue

            first_part = pending[: split_index + 1]
            remainder = pending[split_index + 1 :]
            self._emit(chunks, first_part, start_line, context, file_path)

            start_line += split_index + 1
            if heading and not is_heading(remainder[0]):
                context = heading
            else:
                context = None
            pending = remainder
            size = sum(_byte_len(part) for part in remainder)
            if context:
                size += _byte_len(context)

        if pending:
            self._emit(chunks, pending, start_line, context, file_path)

        return chunks

    def _find_split_point(self, lines: list[str]) -> int:
        """Index of the blank line nearest 60% of ``lines``, or -1."""
        target = int(len(lines) * self.SPLIT_TARGET)
        best_index = -1
        best_distance = len(lines) + 1

        for i in range(int(len(lines) * self.SPLIT_WINDOW_START), len(lines)):
            if lines[i].strip():
                continue
            distance = abs(i - target)
            if distance < best_distance:
                best_distance = distance
                best_index = i

        return best_index

    def _emit(
        self,
        chunks: list[Chunk],
        lines: list[str],
        start_line: int,
        context: Optional[str],
        file_path: str,
    ) -> None:
        chunk = self._build_chunk(lines, start_line, context, file_path, len(chunks))
        if chunk is not None:
            chunks.append(chunk)

    @staticmethod
    def _build_chunk(
        lines: list[str],
        start_line: int,
        context: Optional[str],
        file_path: str,
        index: int,
    ) -> Optional[Chunk]:
        """Build a chunk, tightening its span to the non-blank lines it holds."""
        first = 0
        last = len(lines) - 1
        while first <= last and not lines[first].strip():
            first += 1
        while last >= first and not lines[last].strip():
            last -= 1
        if first > last:
            return None

        body = "\n".join(lines[first : last + 1]).strip()
        text = f"{context}\n{body}" if context else body

        return Chunk(
            text=text,
            file_path=file_path,
            chunk_index=index,
            start_line=start_line + first,
            end_line=start_line + last,
            hash=chunk_hash(text),
            heading_context=context,
        )


def _byte_len(line: str) -> int:
    return len(line.encode("utf-8")) + 1  # +1 for the newline
