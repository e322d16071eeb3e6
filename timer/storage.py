"""Local device storage for the timer client.

Values are strings keyed by name, the same contract as browser
``localStorage``; callers encode JSON themselves.  ``JSONFileStorage``
keeps every key in one file, by default
``~/.studysync/storage.json``.

``SnapshotStore`` owns the ``timerState`` record: written after every
engine mutation, read once when the engine is built, and ignored (not
deleted) once it is older than 24 hours.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = Path.home() / ".studysync" / "storage.json"

SNAPSHOT_KEY = "timerState"
SNAPSHOT_MAX_AGE_MS = 24 * 60 * 60 * 1000


class MemoryStorage:
    """Dict-backed storage, used by tests and throwaway engines."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JSONFileStorage:
    """All keys in a single JSON object on disk.  Last write wins."""

    def __init__(self, path: Path | str = DEFAULT_STORAGE_PATH) -> None:
        self.path = Path(path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.error("Could not read local storage %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(items, indent=2) + "\n", encoding="utf-8")
        tmp.replace(self.path)


@dataclass
class TimerStateRecord:
    """What survives a restart.  Field names follow the stored JSON."""

    mode: str
    state: str
    sessionId: int | str | None
    timeRemaining: int
    completedSessions: int
    progress: float
    elapsedTime: int
    lastUpdateTime: int  # epoch milliseconds

    @classmethod
    def from_dict(cls, data: dict) -> "TimerStateRecord":
        return cls(
            mode=data.get("mode") or "focus",
            state=data.get("state") or "idle",
            sessionId=data.get("sessionId"),
            timeRemaining=_as_int(data.get("timeRemaining")),
            completedSessions=_as_int(data.get("completedSessions")),
            progress=float(data.get("progress") or 100),
            elapsedTime=_as_int(data.get("elapsedTime")),
            lastUpdateTime=_as_int(data.get("lastUpdateTime")),
        )


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class SnapshotStore:
    """Explicit save/restore pair for the engine's ``timerState`` record."""

    def __init__(self, storage, clock=time.time, max_age_ms: int = SNAPSHOT_MAX_AGE_MS) -> None:
        self._storage = storage
        self._clock = clock
        self._max_age_ms = max_age_ms

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def is_fresh(self, record: TimerStateRecord) -> bool:
        return (self.now_ms() - record.lastUpdateTime) < self._max_age_ms

    def save(self, record: TimerStateRecord) -> None:
        self._storage.set_item(SNAPSHOT_KEY, json.dumps(asdict(record)))

    def load(self) -> TimerStateRecord | None:
        """Return the stored record, or None when missing, corrupt or stale."""
        raw = self._storage.get_item(SNAPSHOT_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("timer state is not an object")
            record = TimerStateRecord.from_dict(data)
        except ValueError as exc:
            logger.error("Failed to restore timer state: %s", exc)
            return None

        if not self.is_fresh(record):
            logger.info("Ignoring timer state older than 24 hours")
            return None
        return record
