from timer.durations import DurationStore, TimerMode, DEFAULT_DURATIONS
from timer.engine import TimerEngine, RunState, Identity
from timer.notifier import LogNotifier, TimerEvent
from timer.recorder import HTTPSessionRecorder, RecorderError, InlineExecutor
from timer.scheduler import ManualScheduler, ThreadingScheduler
from timer.shared import SharedSessionSnapshot, SharedSessionSync
from timer.storage import JSONFileStorage, MemoryStorage, SnapshotStore
from timer.config import TimerConfig, build_timer

__all__ = [
    "DurationStore", "TimerMode", "DEFAULT_DURATIONS",
    "TimerEngine", "RunState", "Identity",
    "LogNotifier", "TimerEvent",
    "HTTPSessionRecorder", "RecorderError", "InlineExecutor",
    "ManualScheduler", "ThreadingScheduler",
    "SharedSessionSnapshot", "SharedSessionSync",
    "JSONFileStorage", "MemoryStorage", "SnapshotStore",
    "TimerConfig", "build_timer",
]
