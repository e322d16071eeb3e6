"""Configured durations for the three timer modes.

The table is an owned value handed to the engine, never a module global,
so two engines in one process cannot see each other's settings.  Changes
are written through to local storage under ``timerDurations``.
"""

from __future__ import annotations

import json
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class TimerMode(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def label(self) -> str:
        return MODE_LABELS[self]


MODE_LABELS: dict[TimerMode, str] = {
    TimerMode.FOCUS: "Focus",
    TimerMode.SHORT_BREAK: "Short Break",
    TimerMode.LONG_BREAK: "Long Break",
}

DEFAULT_DURATIONS: dict[TimerMode, int] = {
    TimerMode.FOCUS: 25 * 60,
    TimerMode.SHORT_BREAK: 5 * 60,
    TimerMode.LONG_BREAK: 15 * 60,
}

MIN_MINUTES = 1
MAX_MINUTES = 60

STORAGE_KEY = "timerDurations"


def clamp_minutes(minutes: int | float) -> int | float:
    """Bound a user-entered value to 1..60 minutes, keeping fractions."""
    return max(MIN_MINUTES, min(MAX_MINUTES, minutes))


class DurationStore:
    """Per-mode durations in seconds, persisted on every change."""

    def __init__(self, storage=None, durations: dict[TimerMode, int] | None = None) -> None:
        self._storage = storage
        self._durations: dict[TimerMode, int] = dict(DEFAULT_DURATIONS)
        if durations:
            self._durations.update(durations)

    @classmethod
    def load(cls, storage) -> "DurationStore":
        """Read ``timerDurations`` once; defaults when absent or unparseable."""
        raw = storage.get_item(STORAGE_KEY)
        if raw is None:
            return cls(storage)
        try:
            durations = _parse_durations(json.loads(raw))
        except ValueError:
            logger.error("Stored timer durations are not valid JSON, using defaults")
            return cls(storage)

        if durations is None:
            return cls(storage)
        return cls(storage, durations)

    def seconds(self, mode: TimerMode | str) -> int:
        return self._durations[TimerMode(mode)]

    def minutes(self, mode: TimerMode | str) -> int:
        return self.seconds(mode) // 60

    def update(self, mode: TimerMode | str, minutes: int | float) -> int:
        """Clamp ``minutes``, store it and return the new duration in seconds."""
        mode = TimerMode(mode)
        seconds = round(clamp_minutes(minutes) * 60)
        self._durations[mode] = seconds
        self.save()
        return seconds

    def as_dict(self) -> dict[str, int]:
        return {mode.value: seconds for mode, seconds in self._durations.items()}

    def save(self) -> None:
        if self._storage is not None:
            self._storage.set_item(STORAGE_KEY, json.dumps(self.as_dict()))


def _parse_durations(raw) -> dict[TimerMode, int] | None:
    if not isinstance(raw, dict):
        return None
    durations: dict[TimerMode, int] = {}
    for mode in TimerMode:
        value = raw.get(mode.value)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        seconds = int(value)
        # Anything outside 1..60 minutes was not written by us
        if not MIN_MINUTES * 60 <= seconds <= MAX_MINUTES * 60:
            return None
        durations[mode] = seconds
    return durations
