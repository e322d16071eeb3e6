"""Shared test doubles for the timer package."""

from concurrent.futures import Future

from timer.recorder import RecorderError

EPOCH = 1_700_000_000


def shared_record(session_id=1, creator_id=1, timer_mode="focus", duration=1500, name="Library crew",
                  participant_ids=None, is_active=True, start_time=None, end_time=None):
    participant_ids = participant_ids or [creator_id]
    return {
        "id": session_id,
        "name": name,
        "inviteCode": "abcd1234",
        "creatorId": creator_id,
        "timerMode": timer_mode,
        "duration": duration,
        "isActive": is_active,
        "startTime": start_time,
        "endTime": end_time,
        "participants": [
            {"id": n, "userId": uid, "sessionId": session_id, "joinedAt": None,
             "user": {"id": uid, "name": f"User {uid}", "image": None}}
            for n, uid in enumerate(participant_ids, start=1)
        ],
    }


class FakeRecorder:
    """Records every call; methods listed in ``fail`` raise ``RecorderError``."""

    def __init__(self):
        self.calls = []
        self.fail = set()
        self.shared = None
        self._next_id = 100

    def _call(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise RecorderError(f"{name} failed", 500)

    def names(self):
        return [c[0] for c in self.calls]

    def calls_to(self, name):
        return [c[1:] for c in self.calls if c[0] == name]

    # ── solo ──────────────────────────────────────────────────────────

    def start_session(self, mode):
        self._call("start_session", mode)
        self._next_id += 1
        return {"id": self._next_id, "mode": mode, "duration": 0}

    def save_progress(self, mode, minutes, session_id=None):
        self._call("save_progress", mode, minutes, session_id)
        return {"id": session_id, "mode": mode, "duration": minutes}

    def end_session(self, session_id, duration):
        self._call("end_session", session_id, duration)
        return {"id": session_id, "duration": duration}

    # ── shared ────────────────────────────────────────────────────────

    def create_shared_session(self, name, timer_mode, duration):
        self._call("create_shared_session", name, timer_mode, duration)
        self.shared = shared_record(name=name, timer_mode=timer_mode, duration=duration)
        return self.shared

    def join_shared_session(self, invite_code):
        self._call("join_shared_session", invite_code)
        return self.shared

    def get_shared_session(self, session_id):
        self._call("get_shared_session", session_id)
        return self.shared

    def update_shared_session(self, session_id, action, timer_mode=None, duration=None):
        self._call("update_shared_session", session_id, action, timer_mode, duration)
        record = dict(self.shared)
        if action == "start":
            record.update(startTime="2024-01-01T10:00:00", endTime=None)
        elif action == "stop":
            record["endTime"] = "2024-01-01T10:05:00"
        elif action == "reset":
            record.update(startTime=None, endTime=None)
        elif action == "update":
            record.update(timerMode=timer_mode or record["timerMode"], duration=duration or record["duration"])
        elif action == "complete":
            record.update(isActive=False, endTime="2024-01-01T10:25:00")
        self.shared = record
        return record

    def leave_shared_session(self, session_id):
        self._call("leave_shared_session", session_id)
        return {"message": "Left shared session successfully"}


class CollectingNotifier:

    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def kinds(self):
        return [e.kind for e in self.events]

    @property
    def last(self):
        return self.events[-1] if self.events else None


class QueuedExecutor:
    """Holds submitted work until ``run_all`` so tests can order replies."""

    def __init__(self):
        self.queue = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.queue.append((future, fn, args, kwargs))
        return future

    def run_all(self):
        while self.queue:
            future, fn, args, kwargs = self.queue.pop(0)
            future.set_result(fn(*args, **kwargs))

    def shutdown(self, wait=True):
        pass


def complete_session(engine, scheduler):
    """Fast-forward the running countdown to zero."""
    engine._remaining = 1
    scheduler.advance(1)
