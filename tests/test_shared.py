"""Shared-session behaviour of the timer engine and the sync helper."""

from timer.durations import TimerMode
from timer.engine import SHARED_POLL_INTERVAL, AUTO_SAVE_INTERVAL, Identity, RunState
from timer.notifier import SHARED_ENDED, SHARED_ERROR, SHARED_LEAVE_FAILED, SHARED_LEFT
from timer.shared import SharedSessionSnapshot, SharedSessionSync
from timer.storage import MemoryStorage

from helpers import FakeRecorder, complete_session, shared_record


def join_as_guest_of(engine, recorder, **record):
    """Join a session created by user 2."""
    record.setdefault("creator_id", 2)
    record.setdefault("participant_ids", [2, 1])
    recorder.shared = shared_record(**record)
    return engine.join_shared_session("abcd1234").result()


# ═══════════════════════════════════════════════════════════════════════════
#  SNAPSHOTS
# ═══════════════════════════════════════════════════════════════════════════


class TestSnapshot:

    def test_from_dict(self):
        snapshot = SharedSessionSnapshot.from_dict(shared_record(participant_ids=[1, 3]))
        assert snapshot.invite_code == "abcd1234"
        assert snapshot.duration == 1500
        assert [p.user_id for p in snapshot.participants] == [1, 3]
        assert snapshot.participants[1].name == "User 3"
        assert snapshot.has_participant(3)
        assert not snapshot.has_participant(4)
        assert snapshot.is_creator(1)

    def test_is_running(self):
        idle = SharedSessionSnapshot.from_dict(shared_record())
        running = SharedSessionSnapshot.from_dict(shared_record(start_time="2024-01-01T10:00:00"))
        stopped = SharedSessionSnapshot.from_dict(
            shared_record(start_time="2024-01-01T10:00:00", end_time="2024-01-01T10:01:00"))
        assert not idle.is_running
        assert running.is_running
        assert not stopped.is_running

    def test_sync_returns_snapshots(self):
        recorder = FakeRecorder()
        sync = SharedSessionSync(recorder)
        created = sync.create("Crew", "longBreak", 900)
        assert created.timer_mode == "longBreak"
        completed = sync.complete(created.id)
        assert completed.is_active is False
        assert recorder.calls_to("update_shared_session") == [(1, "complete", None, None)]


# ═══════════════════════════════════════════════════════════════════════════
#  CREATE / JOIN
# ═══════════════════════════════════════════════════════════════════════════


class TestCreateJoin:

    def test_create_uses_current_mode(self, engine, recorder):
        engine.update_duration(TimerMode.FOCUS, 30)
        snapshot = engine.create_shared_session("Library crew").result()
        assert recorder.calls_to("create_shared_session") == [("Library crew", "focus", 1800)]
        assert snapshot.invite_code == "abcd1234"
        assert engine.is_shared
        assert engine.is_creator

    def test_create_closes_solo_session(self, engine, recorder, scheduler):
        engine.start()
        scheduler.advance(120)
        engine.create_shared_session("Crew")
        assert recorder.calls_to("end_session") == [(101, 2)]
        assert engine.session_id is None

        scheduler.advance(AUTO_SAVE_INTERVAL)
        assert recorder.calls_to("save_progress") == []

    def test_create_failure_notifies(self, engine, recorder, notifier):
        recorder.fail.add("create_shared_session")
        assert engine.create_shared_session("Crew").result() is None
        assert not engine.is_shared
        assert notifier.last.kind == SHARED_ERROR
        assert notifier.last.message == "create_shared_session failed"

    def test_guest_cannot_create_or_join(self, make_engine, recorder):
        engine = make_engine(identity=Identity(user_id=1, is_guest=True))
        assert engine.create_shared_session("Crew").result() is None
        assert engine.join_shared_session("abcd1234").result() is None
        assert recorder.calls == []

    def test_join_adopts_mode_and_duration(self, engine, recorder):
        join_as_guest_of(engine, recorder, timer_mode="shortBreak", duration=420)
        assert engine.is_shared
        assert not engine.is_creator
        assert engine.mode is TimerMode.SHORT_BREAK
        assert engine.time_remaining == 420
        assert engine.mode_duration == 420
        # local settings are overridden, not rewritten
        assert engine.durations.seconds(TimerMode.SHORT_BREAK) == 300

    def test_join_failure_notifies_raw_message(self, engine, recorder, notifier):
        recorder.fail.add("join_shared_session")
        engine.join_shared_session("nope")
        assert notifier.kinds() == [SHARED_ERROR]
        assert notifier.last.message == "join_shared_session failed"


# ═══════════════════════════════════════════════════════════════════════════
#  WHILE SHARED
# ═══════════════════════════════════════════════════════════════════════════


class TestWhileShared:

    def test_no_solo_bookkeeping(self, engine, recorder, scheduler):
        engine.create_shared_session("Crew")
        engine.start()
        scheduler.advance(AUTO_SAVE_INTERVAL)
        complete_session(engine, scheduler)
        names = recorder.names()
        assert "start_session" not in names
        assert "save_progress" not in names
        assert "end_session" not in names
        assert engine.completed_sessions == 1

    def test_creator_mirrors_controls(self, engine, recorder):
        engine.create_shared_session("Crew")
        engine.start()
        engine.pause()
        engine.reset()
        engine.switch_mode(TimerMode.SHORT_BREAK)
        assert recorder.calls_to("update_shared_session") == [
            (1, "start", None, None),
            (1, "stop", None, None),
            (1, "reset", None, None),
            (1, "update", "shortBreak", 300),
        ]
        assert engine.shared_session.timer_mode == "shortBreak"

    def test_participant_does_not_mirror(self, engine, recorder):
        join_as_guest_of(engine, recorder)
        engine.start()
        engine.pause()
        assert recorder.calls_to("update_shared_session") == []

    def test_no_auto_start_after_break(self, engine, recorder, scheduler):
        engine.create_shared_session("Crew")
        engine.switch_mode(TimerMode.SHORT_BREAK)
        engine.start()
        complete_session(engine, scheduler)
        scheduler.advance(10)
        assert engine.mode is TimerMode.FOCUS
        assert engine.state is RunState.IDLE


# ═══════════════════════════════════════════════════════════════════════════
#  POLLING
# ═══════════════════════════════════════════════════════════════════════════


class TestPolling:

    def test_participant_follows_start_and_stop(self, engine, recorder, scheduler):
        join_as_guest_of(engine, recorder)
        recorder.shared = shared_record(creator_id=2, participant_ids=[2, 1], start_time="2024-01-01T10:00:00")
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert engine.state is RunState.RUNNING

        recorder.shared = shared_record(creator_id=2, participant_ids=[2, 1], start_time="2024-01-01T10:00:00",
                                        end_time="2024-01-01T10:00:05")
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert engine.state is RunState.PAUSED

    def test_participant_follows_reset(self, engine, recorder, scheduler):
        join_as_guest_of(engine, recorder)
        recorder.shared = shared_record(creator_id=2, participant_ids=[2, 1], start_time="2024-01-01T10:00:00")
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert engine.state is RunState.RUNNING

        recorder.shared = shared_record(creator_id=2, participant_ids=[2, 1])
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert engine.state is RunState.IDLE
        assert engine.time_remaining == 1500
        assert engine.elapsed == 0

    def test_reset_and_restart_keeps_participants_in_step(self, make_engine, recorder, scheduler):
        creator = make_engine(identity=Identity(user_id=1), storage=MemoryStorage())
        creator.create_shared_session("Crew").result()
        recorder.shared = dict(recorder.shared, participants=shared_record(participant_ids=[1, 2])["participants"])
        participant = make_engine(identity=Identity(user_id=2), storage=MemoryStorage())
        participant.join_shared_session("abcd1234").result()

        creator.start()
        scheduler.advance(600)
        creator.reset()
        scheduler.advance(SHARED_POLL_INTERVAL + 1)
        assert participant.state is RunState.IDLE
        assert participant.time_remaining == 1500

        creator.start()
        scheduler.advance(SHARED_POLL_INTERVAL + 1)
        assert participant.state is RunState.RUNNING
        assert abs(creator.time_remaining - participant.time_remaining) <= SHARED_POLL_INTERVAL + 1

    def test_participant_follows_mode_change(self, engine, recorder, scheduler):
        join_as_guest_of(engine, recorder)
        recorder.shared = shared_record(creator_id=2, participant_ids=[2, 1], timer_mode="longBreak", duration=1200)
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert engine.mode is TimerMode.LONG_BREAK
        assert engine.time_remaining == 1200

    def test_session_ended_remotely(self, engine, recorder, scheduler, notifier):
        join_as_guest_of(engine, recorder)
        recorder.shared = shared_record(creator_id=2, participant_ids=[2, 1], is_active=False)
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert not engine.is_shared
        assert notifier.last.kind == SHARED_ENDED

        polls = len(recorder.calls_to("get_shared_session"))
        scheduler.advance(SHARED_POLL_INTERVAL * 3)
        assert len(recorder.calls_to("get_shared_session")) == polls

    def test_removed_from_session(self, engine, recorder, scheduler, notifier):
        join_as_guest_of(engine, recorder)
        recorder.shared = shared_record(creator_id=2, participant_ids=[2])
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert not engine.is_shared
        assert SHARED_ENDED in notifier.kinds()

    def test_poll_failure_keeps_session(self, engine, recorder, scheduler):
        join_as_guest_of(engine, recorder)
        recorder.fail.add("get_shared_session")
        scheduler.advance(SHARED_POLL_INTERVAL)
        assert engine.is_shared


# ═══════════════════════════════════════════════════════════════════════════
#  LEAVE / COMPLETE
# ═══════════════════════════════════════════════════════════════════════════


class TestLeaveComplete:

    def test_leave_clears_after_confirmation(self, engine, recorder, notifier, scheduler):
        join_as_guest_of(engine, recorder, timer_mode="shortBreak", duration=420)
        engine.leave_shared_session().result()
        assert recorder.calls_to("leave_shared_session") == [(1,)]
        assert not engine.is_shared
        assert notifier.last.kind == SHARED_LEFT
        # back on local settings
        assert engine.time_remaining == 300
        assert scheduler.pending == 0

    def test_failed_leave_keeps_session(self, engine, recorder, notifier):
        join_as_guest_of(engine, recorder)
        recorder.fail.add("leave_shared_session")
        engine.leave_shared_session()
        assert engine.is_shared
        assert notifier.last.kind == SHARED_LEAVE_FAILED
        assert notifier.last.message == "leave_shared_session failed"

    def test_leave_without_session_is_noop(self, engine, recorder):
        assert engine.leave_shared_session().result() is None
        assert recorder.calls == []

    def test_creator_completes_session(self, engine, recorder, notifier):
        engine.create_shared_session("Crew")
        engine.complete_shared_session()
        assert recorder.calls_to("update_shared_session") == [(1, "complete", None, None)]
        assert not engine.is_shared
        assert notifier.last.kind == SHARED_ENDED

    def test_participant_cannot_complete(self, engine, recorder):
        join_as_guest_of(engine, recorder)
        assert engine.complete_shared_session().result() is None
        assert recorder.calls_to("update_shared_session") == []
