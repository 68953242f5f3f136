"""Append-only JSONL session transcripts, one file per UTC day."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from notesearch.models import SessionEntry

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS_DIRNAME = "sessions"
DEFAULT_CONTENT_LIMIT = 5000


def log_session(
    root: Path | str,
    session_id: str,
    role: str,
    content: str,
    origin: str = "claude-code",
    sessions_dirname: str = DEFAULT_SESSIONS_DIRNAME,
    content_limit: int = DEFAULT_CONTENT_LIMIT,
) -> Path:
    """Append one entry to today's transcript.

    Args:
        root: Source root containing the sessions directory
        session_id: Conversation identifier
        role: Speaker, e.g. "user" or "assistant"
        content: Message text, truncated to ``content_limit`` characters
        origin: Client that produced the entry, e.g. "claude-code" or "telegram"

    Returns:
        Path of the transcript written to
    """
    sessions_dir = Path(root) / sessions_dirname
    sessions_dir.mkdir(parents=True, exist_ok=True)

    now = datetime.now(timezone.utc)
    file_path = sessions_dir / f"{now.strftime('%Y-%m-%d')}.jsonl"

    entry = SessionEntry(
        timestamp=now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        session_id=session_id,
        role=role,
        content=content[:content_limit],
        source=origin,
    )
    with file_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_json_dict(), ensure_ascii=False) + "\n")

    return file_path


def list_sessions(
    root: Path | str, sessions_dirname: str = DEFAULT_SESSIONS_DIRNAME
) -> list[str]:
    """Transcript file names, newest first."""
    sessions_dir = Path(root) / sessions_dirname
    if not sessions_dir.is_dir():
        return []
    return sorted((p.name for p in sessions_dir.glob("*.jsonl")), reverse=True)


def get_session_transcript(
    root: Path | str, date: str, sessions_dirname: str = DEFAULT_SESSIONS_DIRNAME
) -> list[SessionEntry]:
    """Parse the transcript for ``date`` (YYYY-MM-DD); malformed lines are skipped."""
    file_path = Path(root) / sessions_dirname / f"{date}.jsonl"
    if not file_path.is_file():
        return []

    entries = []
    for line_num, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed line {line_num} in {file_path.name}")
            continue
        if isinstance(data, dict):
            entries.append(SessionEntry.from_json_dict(data))
    return entries
