from __future__ import annotations

import json
from pathlib import Path

from meshwire_engine.runs.events import EventWriter


def test_event_writer(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "run-123")
    writer.emit("generation_started", mode="create", model="gemini-2.5-flash-image")
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["type"] == "generation_started"
    assert payload["run_id"] == "run-123"
    assert "ts" in payload
    assert payload["mode"] == "create"


def test_event_writer_strips_raw_bytes(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "run-123")
    writer.emit("video_job_created", image_bytes=b"\x89PNG", extra=b"abc")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["image_bytes"] == "<omitted>"
    assert payload["extra"] == "<bytes:3>"


def test_event_writer_without_path_returns_event(tmp_path: Path) -> None:
    writer = EventWriter(None, "run-123")
    event = writer.emit("history_deleted", entry_id="abc")
    assert event["entry_id"] == "abc"
    assert list(tmp_path.iterdir()) == []
