"""Tests for JSONL session transcripts."""

import json
from datetime import datetime, timezone

from conftest import write_note
from notesearch.sessions import get_session_transcript, list_sessions, log_session


def today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class TestLogSession:
    def test_appends_one_json_line_per_entry(self, tmp_path):
        first = log_session(tmp_path, "s1", "user", "hello there")
        second = log_session(tmp_path, "s1", "assistant", "hi!", origin="telegram")

        assert first == second == tmp_path / "sessions" / f"{today()}.jsonl"
        lines = first.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2

        entry = json.loads(lines[1])
        assert entry["sessionId"] == "s1"
        assert entry["role"] == "assistant"
        assert entry["content"] == "hi!"
        assert entry["source"] == "telegram"
        assert entry["timestamp"].endswith("Z")

    def test_content_is_truncated(self, tmp_path):
        path = log_session(tmp_path, "s1", "user", "x" * 100, content_limit=10)

        assert json.loads(path.read_text())["content"] == "x" * 10

    def test_non_ascii_is_kept_verbatim(self, tmp_path):
        path = log_session(tmp_path, "s1", "user", "café ☕")

        assert "café ☕" in path.read_text(encoding="utf-8")


class TestReadTranscripts:
    def test_list_sessions_newest_first(self, tmp_path):
        write_note(tmp_path, "sessions/2026-01-01.jsonl", "")
        write_note(tmp_path, "sessions/2026-03-01.jsonl", "")
        write_note(tmp_path, "sessions/notes.txt", "")

        assert list_sessions(tmp_path) == ["2026-03-01.jsonl", "2026-01-01.jsonl"]
        assert list_sessions(tmp_path / "missing") == []

    def test_transcript_skips_malformed_lines(self, tmp_path):
        write_note(
            tmp_path,
            "sessions/2026-01-01.jsonl",
            '{"sessionId": "a", "role": "user", "content": "one", "channel": 7}\n'
            "not json\n"
            "\n"
            "[1, 2]\n"
            '{"sessionId": "a", "role": "assistant", "content": "two"}\n',
        )

        entries = get_session_transcript(tmp_path, "2026-01-01")

        assert [(e.role, e.content) for e in entries] == [("user", "one"), ("assistant", "two")]
        assert entries[0].extra == {"channel": 7}
        assert entries[0].to_json_dict()["channel"] == 7
        assert get_session_transcript(tmp_path, "1999-01-01") == []


class TestSessionIndexing:
    def test_logged_entries_are_searchable(self, notes):
        path = notes.log_session("s1", "we discussed the narwhal migration")
        notes.log_session("s1", "and the walrus too", role="assistant")

        hits = notes.search("narwhal", source="sessions")
        assert [h.path for h in hits] == [f"sessions/{path.name}"]
        assert notes.search("walrus")[0].source == "sessions"
        assert notes.get_stats().session_chunks >= 1

    def test_logged_transcript_records_the_file_mtime(self, notes):
        path = notes.log_session("s1", "the tapir visit")

        record = notes.store.get_file(f"sessions/{path.name}")
        assert record.mtime == int(path.stat().st_mtime * 1000)

    def test_full_scan_keeps_logged_transcripts(self, notes):
        notes.log_session("s1", "the okapi note")

        result = notes.index()

        assert result.removed == 0
        assert result.skipped == 1
        assert notes.search("okapi")[0].source == "sessions"
