"""Client configuration, read from the environment (and ``.env``).

Usage::

    engine = build_timer(Identity(user_id=user["id"]))
    engine.start()
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from timer.engine import Identity, TimerEngine
from timer.recorder import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, HTTPSessionRecorder
from timer.storage import DEFAULT_STORAGE_PATH, JSONFileStorage


@dataclass
class TimerConfig:
    api_url: str = DEFAULT_BASE_URL
    storage_path: Path = DEFAULT_STORAGE_PATH
    request_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> "TimerConfig":
        load_dotenv()
        return cls(
            api_url=os.environ.get("STUDY_API_URL", DEFAULT_BASE_URL),
            storage_path=Path(os.environ.get("TIMER_STORAGE_PATH", DEFAULT_STORAGE_PATH)).expanduser(),
            request_timeout=float(os.environ.get("STUDY_API_TIMEOUT", DEFAULT_TIMEOUT)),
        )


def build_timer(identity: Identity | None = None, config: TimerConfig | None = None,
                recorder: HTTPSessionRecorder | None = None, **kwargs) -> TimerEngine:
    """Wire a ``TimerEngine`` to file storage and the HTTP recorder."""
    config = config or TimerConfig.from_env()
    if recorder is None:
        recorder = HTTPSessionRecorder(config.api_url, timeout=config.request_timeout)
    return TimerEngine(
        recorder,
        identity=identity,
        storage=JSONFileStorage(config.storage_path),
        **kwargs,
    )
