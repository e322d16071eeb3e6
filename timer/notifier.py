"""Notifications raised by the timer engine.

The engine only ever calls ``notify(event)``; what happens next (a
desktop toast, a sound, a log line) belongs to whoever built it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

COMPLETED = "completed"
SHARED_ERROR = "shared_error"
SHARED_LEFT = "shared_left"
SHARED_LEAVE_FAILED = "shared_leave_failed"
SHARED_ENDED = "shared_ended"


@dataclass(frozen=True)
class TimerEvent:
    kind: str
    mode: str | None = None
    title: str = ""
    body: str = ""
    message: str | None = None


def completion_event(mode) -> TimerEvent:
    body = "Take a break!" if mode.value == "focus" else "Time to focus!"
    return TimerEvent(COMPLETED, mode=mode.value, title=f"{mode.label} session complete!", body=body)


class LogNotifier:
    """Default notifier: writes every event to the log."""

    def notify(self, event: TimerEvent) -> None:
        if event.kind in (SHARED_ERROR, SHARED_LEAVE_FAILED):
            logger.warning("%s: %s", event.kind, event.message)
        elif event.kind == COMPLETED:
            logger.info("%s %s", event.title, event.body)
        else:
            logger.info("%s %s", event.kind, event.message or "")
