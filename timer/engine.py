"""Pomodoro timer state machine for StudySync.

States
------
IDLE        Waiting for start, countdown at the mode's full duration.
RUNNING     Counting down once per second.
PAUSED      Countdown frozen.
COMPLETED   Countdown hit zero; the next mode is loaded after a short delay.

Transitions
-----------
IDLE | PAUSED → RUNNING      (start)
RUNNING → PAUSED             (pause)
RUNNING → COMPLETED          (last tick)
COMPLETED → IDLE             (3 s later, next mode; focus auto-starts 1.5 s after that)
Any → IDLE                   (reset)

Persistence
-----------
A signed-in, non-guest user gets a solo session record for every focus
period (start / save / end).  While the engine is part of a shared
session that bookkeeping is switched off; the creator's start, stop and
mode changes are mirrored to the server instead and the other
participants follow them by polling.

All recorder calls go through an executor and never block or fail a
state transition.  Every method returns immediately; the ones that talk
to the server hand back a ``Future`` that always resolves (to ``None``
when the call was skipped or failed).
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from timer.durations import DurationStore, TimerMode
from timer.notifier import (
    LogNotifier, TimerEvent, completion_event,
    SHARED_ENDED, SHARED_ERROR, SHARED_LEAVE_FAILED, SHARED_LEFT,
)
from timer.scheduler import ThreadingScheduler
from timer.shared import SharedSessionSnapshot, SharedSessionSync
from timer.storage import MemoryStorage, SnapshotStore, TimerStateRecord

logger = logging.getLogger(__name__)


# ── enums ─────────────────────────────────────────────────────────────────


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


# ── constants ─────────────────────────────────────────────────────────────

TICK_INTERVAL = 1
AUTO_SAVE_INTERVAL = 5 * 60
AUTO_SAVE_MIN_ELAPSED = 60
COMPLETION_DISPLAY_DELAY = 3.0
AUTO_START_DELAY = 1.5
SHARED_POLL_INTERVAL = 5

NEXT_MODE: dict[TimerMode, TimerMode] = {
    TimerMode.FOCUS: TimerMode.SHORT_BREAK,
    TimerMode.SHORT_BREAK: TimerMode.FOCUS,
    TimerMode.LONG_BREAK: TimerMode.FOCUS,
}


@dataclass(frozen=True)
class Identity:
    """Who is using the timer.  Anonymous and guest users never reach the server."""

    user_id: int | None = None
    is_guest: bool = False

    @property
    def can_persist(self) -> bool:
        return self.user_id is not None and not self.is_guest


def _done(value=None) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


# ── engine ────────────────────────────────────────────────────────────────


class TimerEngine:

    def __init__(
        self,
        recorder=None,
        *,
        identity: Identity | None = None,
        storage=None,
        scheduler=None,
        executor=None,
        notifier=None,
        durations: DurationStore | None = None,
        clock=time.time,
    ) -> None:
        self._lock = threading.RLock()

        # ── collaborators ─────────────────────────────────────────────
        self.recorder = recorder
        self.identity = identity or Identity()
        self._storage = storage if storage is not None else MemoryStorage()
        self._snapshots = SnapshotStore(self._storage, clock)
        self._scheduler = scheduler or ThreadingScheduler()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="recorder")
        self._notifier = notifier or LogNotifier()
        self.durations = durations or DurationStore.load(self._storage)
        self._sync = SharedSessionSync(recorder) if recorder is not None else None

        # ── countdown state ───────────────────────────────────────────
        self._mode: TimerMode = TimerMode.FOCUS
        self._state: RunState = RunState.IDLE
        self._remaining: int = self.durations.seconds(TimerMode.FOCUS)
        self._elapsed: int = 0  # seconds since the last save
        self._completed_sessions: int = 0

        # ── persistence state ─────────────────────────────────────────
        self._session_id = None
        self._pending_start: object | None = None
        self._shared: SharedSessionSnapshot | None = None

        # ── scheduled callbacks ───────────────────────────────────────
        self._tick_handle = None
        self._auto_save_handle = None
        self._poll_handle = None
        self._advance_handle = None
        self._auto_start_handle = None

        self._restore()

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def time_remaining(self) -> int:
        return self._remaining

    @property
    def elapsed(self) -> int:
        return self._elapsed

    @property
    def completed_sessions(self) -> int:
        """Focus periods finished in this engine's lifetime (restored on reload)."""
        return self._completed_sessions

    @property
    def session_id(self):
        return self._session_id

    @property
    def shared_session(self) -> SharedSessionSnapshot | None:
        return self._shared

    @property
    def is_shared(self) -> bool:
        return self._shared is not None

    @property
    def is_creator(self) -> bool:
        return self._shared is not None and self._shared.is_creator(self.identity.user_id)

    @property
    def mode_duration(self) -> int:
        """Seconds for the current mode; a joined shared session overrides its own mode."""
        shared = self._shared
        if shared is not None and shared.timer_mode == self._mode.value and shared.duration > 0:
            return shared.duration
        return self.durations.seconds(self._mode)

    @property
    def progress_percent(self) -> float:
        total = self.mode_duration
        if total <= 0:
            return 0.0
        return max(0.0, min(100.0, self._remaining / total * 100))

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Begin or resume the countdown.  No-op while running or completed."""
        with self._lock:
            if self._state in (RunState.RUNNING, RunState.COMPLETED):
                return
            self._cancel_auto_start()
            self._state = RunState.RUNNING
            self._sync_timers()
            if self._should_track():
                self._request_session()
            self._mirror("start")
            self._persist()

    def pause(self) -> None:
        with self._lock:
            if self._state is not RunState.RUNNING:
                return
            self._state = RunState.PAUSED
            self._sync_timers()
            self._mirror("stop")
            self._persist()

    def reset(self) -> None:
        """End any tracked session and go back to the full duration, idle."""
        with self._lock:
            self._cancel_transitions()
            self._end_active_session()
            self._pending_start = None
            self._remaining = self.mode_duration
            self._state = RunState.IDLE
            self._elapsed = 0
            self._sync_timers()
            self._mirror("reset")
            self._persist()

    def save_progress(self) -> Future:
        """Record the whole minutes run since the last save."""
        with self._lock:
            future = self._save_progress()
            self._persist()
            return future

    def end_session(self) -> None:
        """Save what is left, then reset."""
        with self._lock:
            self._save_progress()
            self.reset()

    def switch_mode(self, mode: TimerMode | str) -> None:
        """Load ``mode`` at its full duration without changing run state.

        Time already run in the old mode is closed off first so it is
        never attributed to the new one.
        """
        with self._lock:
            mode = TimerMode(mode)
            self._cancel_transitions()
            self._close_tracking()
            self._mode = mode
            self._remaining = self.mode_duration
            self._elapsed = 0
            if self._state is RunState.COMPLETED:
                self._state = RunState.IDLE
            if self._state is RunState.RUNNING and self._should_track():
                self._request_session()
            self._sync_timers()
            self._mirror("update", timer_mode=mode.value, duration=self.mode_duration)
            self._persist()

    def update_duration(self, mode: TimerMode | str, minutes: int | float) -> int:
        """Change a mode's configured length.  Returns the stored seconds."""
        with self._lock:
            mode = TimerMode(mode)
            seconds = self.durations.update(mode, minutes)
            if mode is self._mode and self._state is RunState.IDLE:
                self._remaining = self.mode_duration
            self._remaining = min(self._remaining, self.mode_duration)
            self._persist()
            return seconds

    def close(self) -> None:
        """Cancel every scheduled callback.  The engine is unusable afterwards."""
        with self._lock:
            for handle in (self._tick_handle, self._auto_save_handle, self._poll_handle,
                           self._advance_handle, self._auto_start_handle):
                if handle is not None:
                    handle.cancel()
            self._tick_handle = self._auto_save_handle = self._poll_handle = None
            self._advance_handle = self._auto_start_handle = None
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # ══════════════════════════════════════════════════════════════════
    #  SHARED SESSIONS
    # ══════════════════════════════════════════════════════════════════

    def create_shared_session(self, name: str) -> Future:
        with self._lock:
            if not self._can_record():
                logger.info("Sign in to create a shared session")
                return _done()
            mode, duration = self._mode.value, self.durations.seconds(self._mode)
        return self._submit("SHARED_CREATE", self._sync.create, name, mode, duration,
                            on_success=self._enter_shared, on_error=self._shared_failed)

    def join_shared_session(self, invite_code: str) -> Future:
        with self._lock:
            if not self._can_record():
                logger.info("Sign in to join a shared session")
                return _done()
        return self._submit("SHARED_JOIN", self._sync.join, invite_code,
                            on_success=self._enter_shared, on_error=self._shared_failed)

    def leave_shared_session(self) -> Future:
        """Leave (or, for the creator, end) the shared session.

        Local state is only cleared once the server confirms; a failure
        raises a ``shared_leave_failed`` notification and keeps the
        session so the user can retry.
        """
        with self._lock:
            shared = self._shared
            if shared is None or self._sync is None:
                return _done()

        def left(_):
            with self._lock:
                if self._shared is None or self._shared.id != shared.id:
                    return
                self._drop_shared()
                self._notify(TimerEvent(SHARED_LEFT, message=shared.name))

        def failed(exc):
            self._notify(TimerEvent(SHARED_LEAVE_FAILED, message=_error_message(exc)))

        return self._submit("SHARED_LEAVE", self._sync.leave, shared.id, on_success=left, on_error=failed)

    def refresh_shared_session(self) -> Future:
        with self._lock:
            shared = self._shared
            if shared is None or self._sync is None:
                return _done()
        return self._submit("SHARED_POLL", self._sync.refresh, shared.id, on_success=self._apply_remote)

    def complete_shared_session(self) -> Future:
        """Creator only: mark the session finished and credit every participant."""
        with self._lock:
            if not self.is_creator or self._sync is None:
                return _done()
            session_id = self._shared.id
        return self._submit("SHARED_COMPLETE", self._sync.complete, session_id,
                            on_success=self._apply_remote, on_error=self._shared_failed)

    def _enter_shared(self, snapshot: SharedSessionSnapshot) -> None:
        with self._lock:
            self._close_tracking()
            self._pending_start = None
            self._shared = snapshot
            try:
                self._mode = TimerMode(snapshot.timer_mode)
            except ValueError:
                logger.error("Shared session %s has unknown mode %r", snapshot.id, snapshot.timer_mode)
            self._remaining = self.mode_duration
            self._elapsed = 0
            if self._state is RunState.COMPLETED:
                self._cancel_transitions()
                self._state = RunState.IDLE
            self._sync_timers()
            self._persist()

    def _apply_remote(self, snapshot: SharedSessionSnapshot) -> None:
        with self._lock:
            previous = self._shared
            if previous is None or previous.id != snapshot.id:
                return
            if not snapshot.is_active or not snapshot.has_participant(self.identity.user_id):
                self._drop_shared()
                self._notify(TimerEvent(SHARED_ENDED, message=snapshot.name))
                return

            self._shared = snapshot
            if not snapshot.is_creator(self.identity.user_id):
                self._follow_creator(previous, snapshot)
            self._sync_timers()
            self._persist()

    def _follow_creator(self, previous: SharedSessionSnapshot, snapshot: SharedSessionSnapshot) -> None:
        if (snapshot.timer_mode, snapshot.duration) != (previous.timer_mode, previous.duration):
            try:
                self._mode = TimerMode(snapshot.timer_mode)
            except ValueError:
                logger.error("Shared session %s has unknown mode %r", snapshot.id, snapshot.timer_mode)
            self._remaining = self.mode_duration
            self._elapsed = 0

        # Creator reset: back to a full countdown
        if previous.start_time is not None and snapshot.start_time is None:
            self._cancel_transitions()
            self._remaining = self.mode_duration
            self._elapsed = 0
            self._state = RunState.IDLE
            return

        if self._state is RunState.COMPLETED:
            return
        if snapshot.is_running and not previous.is_running:
            self._state = RunState.RUNNING
        elif previous.is_running and not snapshot.is_running and self._state is RunState.RUNNING:
            self._state = RunState.PAUSED

    def _drop_shared(self) -> None:
        self._shared = None
        if self._state is RunState.IDLE:
            self._remaining = self.mode_duration
        self._remaining = min(self._remaining, self.mode_duration)
        self._sync_timers()
        self._persist()

    def _shared_failed(self, exc: Exception) -> None:
        self._notify(TimerEvent(SHARED_ERROR, message=_error_message(exc)))

    def _mirror(self, action: str, timer_mode: str | None = None, duration: int | None = None) -> None:
        if not self.is_creator or self._sync is None:
            return
        session_id = self._shared.id

        def accepted(snapshot):
            with self._lock:
                if self._shared is not None and self._shared.id == snapshot.id:
                    self._shared = snapshot

        self._submit("SHARED_UPDATE", self._sync.mirror, session_id, action, timer_mode, duration,
                     on_success=accepted)

    # ══════════════════════════════════════════════════════════════════
    #  SCHEDULED CALLBACKS
    # ══════════════════════════════════════════════════════════════════

    def _on_tick(self) -> None:
        with self._lock:
            if self._state is not RunState.RUNNING:
                return
            self._elapsed += 1
            if self._remaining <= 1:
                self._remaining = 0
                self._complete()
            else:
                self._remaining -= 1
                self._persist()

    def _on_auto_save(self) -> None:
        with self._lock:
            if self._state is not RunState.RUNNING or self._shared is not None:
                return
            if self._elapsed >= AUTO_SAVE_MIN_ELAPSED:
                self._save_progress()
                self._persist()

    def _on_poll(self) -> None:
        self.refresh_shared_session()

    def _on_advance(self) -> None:
        with self._lock:
            self._advance_handle = None
            if self._state is not RunState.COMPLETED:
                return
            self._mode = NEXT_MODE[self._mode]
            self._remaining = self.mode_duration
            self._elapsed = 0
            self._state = RunState.IDLE
            if self._mode is TimerMode.FOCUS and self._shared is None:
                self._auto_start_handle = self._scheduler.call_later(AUTO_START_DELAY, self._on_auto_start)
            self._persist()

    def _on_auto_start(self) -> None:
        with self._lock:
            self._auto_start_handle = None
            if self._state is RunState.IDLE and self._mode is TimerMode.FOCUS:
                self.start()

    def _complete(self) -> None:
        mode = self._mode
        self._state = RunState.COMPLETED
        self._pending_start = None
        self._sync_timers()
        if mode is TimerMode.FOCUS:
            self._completed_sessions += 1
        self._notify(completion_event(mode))
        if mode is TimerMode.FOCUS and self._shared is None:
            self._save_progress()
            self._end_active_session()
        self._cancel_transitions()
        self._advance_handle = self._scheduler.call_later(COMPLETION_DISPLAY_DELAY, self._on_advance)
        self._persist()

    def _sync_timers(self) -> None:
        """Make the repeating callbacks match the current state."""
        running = self._state is RunState.RUNNING
        self._tick_handle = self._keep(self._tick_handle, running, TICK_INTERVAL, self._on_tick)
        auto_save = (running and self._mode is TimerMode.FOCUS
                     and self._shared is None and self._can_record())
        self._auto_save_handle = self._keep(self._auto_save_handle, auto_save,
                                            AUTO_SAVE_INTERVAL, self._on_auto_save)
        polling = self._shared is not None and self._sync is not None
        self._poll_handle = self._keep(self._poll_handle, polling, SHARED_POLL_INTERVAL, self._on_poll)

    def _keep(self, handle, wanted: bool, interval: float, callback):
        if wanted:
            if handle is None or handle.cancelled:
                return self._scheduler.call_every(interval, callback)
            return handle
        if handle is not None:
            handle.cancel()
        return None

    def _cancel_auto_start(self) -> None:
        if self._auto_start_handle is not None:
            self._auto_start_handle.cancel()
            self._auto_start_handle = None

    def _cancel_transitions(self) -> None:
        if self._advance_handle is not None:
            self._advance_handle.cancel()
            self._advance_handle = None
        self._cancel_auto_start()

    # ══════════════════════════════════════════════════════════════════
    #  SOLO SESSION RECORDS
    # ══════════════════════════════════════════════════════════════════

    def _can_record(self) -> bool:
        return self.recorder is not None and self.identity.can_persist

    def _should_track(self) -> bool:
        return (self._mode is TimerMode.FOCUS and self._shared is None and self._can_record()
                and self._session_id is None and self._pending_start is None)

    def _request_session(self) -> None:
        token = object()
        self._pending_start = token
        mode = self._mode

        def adopt(record):
            with self._lock:
                current = self._pending_start is token
                if current:
                    self._pending_start = None
                if (not current or self._state not in (RunState.RUNNING, RunState.PAUSED)
                        or self._mode is not mode or self._shared is not None):
                    logger.info("Closing session %s started for a period that has ended", record.get("id"))
                    self._submit("SESSION_END", self.recorder.end_session, record.get("id"), 0)
                    return
                self._session_id = record.get("id")
                self._persist()

        def failed(_exc):
            with self._lock:
                if self._pending_start is token:
                    self._pending_start = None

        self._submit("SESSION_START", self.recorder.start_session, mode.value,
                     on_success=adopt, on_error=failed)

    def _save_progress(self) -> Future:
        if not self._can_record():
            return _done()
        minutes = self._elapsed // 60
        if minutes <= 0:
            return _done()
        self._elapsed = 0
        return self._submit("SESSION_SAVE", self.recorder.save_progress,
                            self._mode.value, minutes, self._session_id)

    def _end_active_session(self) -> Future:
        session_id = self._session_id
        if session_id is None:
            return _done()
        self._session_id = None
        if not self._can_record():
            return _done()
        return self._submit("SESSION_END", self.recorder.end_session, session_id, self._elapsed // 60)

    def _close_tracking(self) -> None:
        if self._session_id is not None:
            self._end_active_session()
        elif self._mode is TimerMode.FOCUS and self._shared is None:
            self._save_progress()
        self._pending_start = None

    def _submit(self, label: str, fn, *args, on_success=None, on_error=None) -> Future:
        outcome: Future = Future()

        def run():
            try:
                result = fn(*args)
            except Exception as exc:
                logger.error("[%s_ERROR] %s", label, exc)
                if on_error is not None:
                    on_error(exc)
                outcome.set_result(None)
                return
            try:
                if on_success is not None:
                    on_success(result)
            finally:
                outcome.set_result(result)

        self._executor.submit(run)
        return outcome

    # ══════════════════════════════════════════════════════════════════
    #  SNAPSHOT / RESTORE
    # ══════════════════════════════════════════════════════════════════

    def _notify(self, event: TimerEvent) -> None:
        try:
            self._notifier.notify(event)
        except Exception:
            logger.exception("Notifier failed for %s", event.kind)

    def _persist(self) -> None:
        record = TimerStateRecord(
            mode=self._mode.value,
            state=self._state.value,
            sessionId=self._session_id,
            timeRemaining=self._remaining,
            completedSessions=self._completed_sessions,
            progress=self.progress_percent,
            elapsedTime=self._elapsed,
            lastUpdateTime=self._snapshots.now_ms(),
        )
        try:
            self._snapshots.save(record)
        except OSError as exc:
            logger.error("Failed to save timer state: %s", exc)

    def _restore(self) -> None:
        record = self._snapshots.load()
        if record is None:
            return
        try:
            mode = TimerMode(record.mode)
            state = RunState(record.state)
        except ValueError:
            logger.error("Ignoring timer state with mode %r and state %r", record.mode, record.state)
            return

        self._mode = mode
        self._state = state
        self._completed_sessions = max(0, record.completedSessions)
        self._elapsed = max(0, record.elapsedTime)
        self._remaining = max(0, min(record.timeRemaining, self.mode_duration))
        if (record.sessionId is not None and state in (RunState.RUNNING, RunState.PAUSED)
                and mode is TimerMode.FOCUS and self._can_record()):
            self._session_id = record.sessionId

        if state is RunState.COMPLETED:
            self._remaining = 0
            self._advance_handle = self._scheduler.call_later(COMPLETION_DISPLAY_DELAY, self._on_advance)
        self._sync_timers()
        logger.info("Restored timer: %s %s, %ss left", mode.value, state.value, self._remaining)


def _error_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc)
