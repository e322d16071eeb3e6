"""Shared (multi-user) session records and the calls that keep them in sync.

``SharedSessionSync`` is deliberately thin: each method is one blocking
recorder call that returns a fresh ``SharedSessionSnapshot``.  Deciding
what the local timer does with it is the engine's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Participant:
    id: int
    user_id: int
    name: str | None = None
    image: str | None = None
    joined_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        user = data.get("user") or {}
        return cls(
            id=data["id"],
            user_id=data["userId"],
            name=user.get("name"),
            image=user.get("image"),
            joined_at=data.get("joinedAt"),
        )


@dataclass(frozen=True)
class SharedSessionSnapshot:
    id: int
    invite_code: str
    creator_id: int
    timer_mode: str
    duration: int  # seconds
    is_active: bool = True
    name: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    participants: tuple[Participant, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict) -> "SharedSessionSnapshot":
        return cls(
            id=data["id"],
            invite_code=data["inviteCode"],
            creator_id=data["creatorId"],
            timer_mode=data.get("timerMode") or "focus",
            duration=int(data.get("duration") or 0),
            is_active=bool(data.get("isActive", True)),
            name=data.get("name"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            participants=tuple(Participant.from_dict(p) for p in data.get("participants") or ()),
        )

    @property
    def is_running(self) -> bool:
        """The creator last pressed start, and has not stopped since."""
        return self.start_time is not None and self.end_time is None

    def has_participant(self, user_id) -> bool:
        return any(p.user_id == user_id for p in self.participants)

    def is_creator(self, user_id) -> bool:
        return user_id is not None and self.creator_id == user_id


class SharedSessionSync:

    def __init__(self, recorder) -> None:
        self.recorder = recorder

    def create(self, name: str, timer_mode: str, duration: int) -> SharedSessionSnapshot:
        return SharedSessionSnapshot.from_dict(
            self.recorder.create_shared_session(name, timer_mode, duration))

    def join(self, invite_code: str) -> SharedSessionSnapshot:
        return SharedSessionSnapshot.from_dict(self.recorder.join_shared_session(invite_code))

    def refresh(self, session_id) -> SharedSessionSnapshot:
        return SharedSessionSnapshot.from_dict(self.recorder.get_shared_session(session_id))

    def mirror(self, session_id, action: str, timer_mode: str | None = None,
               duration: int | None = None) -> SharedSessionSnapshot:
        """Push a creator action (start, stop, reset, update) to the other participants."""
        return SharedSessionSnapshot.from_dict(
            self.recorder.update_shared_session(session_id, action, timer_mode, duration))

    def complete(self, session_id) -> SharedSessionSnapshot:
        return self.mirror(session_id, "complete")

    def leave(self, session_id) -> None:
        self.recorder.leave_shared_session(session_id)
