"""Local archive of generated schematics."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable

from .utils import write_json

logger = logging.getLogger(__name__)

ENTRY_GENERATION = "generation"
ENTRY_EDIT = "edit"


@dataclass
class HistoryEntry:
    id: str
    url: str
    prompt: str
    timestamp: int
    type: str = ENTRY_GENERATION
    model: str | None = None
    video_url: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "HistoryEntry | None":
        entry_id = payload.get("id")
        url = payload.get("url")
        if not entry_id or not url:
            return None
        try:
            timestamp = int(payload.get("timestamp") or 0)
        except (TypeError, ValueError):
            return None
        return cls(
            id=str(entry_id),
            url=str(url),
            prompt=str(payload.get("prompt") or ""),
            timestamp=timestamp,
            type=str(payload.get("type") or ENTRY_GENERATION),
            model=payload.get("model"),
            video_url=payload.get("video_url") or payload.get("videoUrl"),
        )


class HistoryStore:
    """Newest-first list of entries persisted as JSON after every change."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.entries: list[HistoryEntry] = []

    @classmethod
    def load(cls, path: Path) -> "HistoryStore":
        store = cls(path)
        if not path.exists():
            return store
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Failed to load history from %s: %s", path, exc)
            return store
        if not isinstance(payload, list):
            logger.warning("History in %s is not a list, resetting.", path)
            path.unlink(missing_ok=True)
            return store
        for item in payload:
            if not isinstance(item, dict):
                continue
            entry = HistoryEntry.from_dict(item)
            if entry is None:
                logger.warning("Skipping malformed history entry %s in %s.", item.get("id"), path)
                continue
            store.entries.append(entry)
        return store

    def save(self) -> None:
        write_json(self.path, [asdict(entry) for entry in self.entries])

    def list(self) -> list[HistoryEntry]:
        return list(self.entries)

    def get(self, entry_id: str) -> HistoryEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def add(self, url: str, prompt: str, entry_type: str = ENTRY_GENERATION, model: str | None = None) -> HistoryEntry:
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            url=url,
            prompt=prompt,
            timestamp=int(time.time() * 1000),
            type=entry_type,
            model=model,
        )
        self.entries.insert(0, entry)
        self.save()
        return entry

    def attach_video(self, entry_id: str, video_url: str) -> HistoryEntry:
        entry = self.get(entry_id)
        if entry is None:
            raise KeyError(entry_id)
        entry.video_url = video_url
        self.save()
        return entry

    def delete(self, entry_id: str, release: Callable[[str], Any] | None = None) -> bool:
        entry = self.get(entry_id)
        if entry is None:
            return False
        self.entries = [item for item in self.entries if item.id != entry_id]
        if entry.video_url and release is not None:
            release(entry.video_url)
        self.save()
        return True
