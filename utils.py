import secrets
from flask import request
from sqlalchemy import or_
from models import db, User, Friendship, SharedSession

INVITE_CODE_LENGTH = 8

def isoformat(value):
    return value.isoformat() if value else None

def get_payload():
    # JSON bodies from the timer client, form posts from a browser
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data

def parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

def generate_invite_code():
    while True:
        code = secrets.token_urlsafe(6)[:INVITE_CODE_LENGTH]
        if not SharedSession.query.filter_by(invite_code=code).first():
            return code

def user_summary(user):
    return {'id': user.id, 'name': user.name, 'image': user.image}

def user_to_dict(user):
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'image': user.image,
        'totalStudyTime': user.total_study_time or 0,
        'totalTasksDone': user.total_tasks_done or 0,
        'createdAt': isoformat(user.created_at),
    }

def task_to_dict(task):
    return {
        'id': task.id,
        'userId': task.user_id,
        'title': task.title,
        'description': task.description,
        'isCompleted': task.is_completed,
        'createdAt': isoformat(task.created_at),
        'completedAt': isoformat(task.completed_at),
    }

def study_session_to_dict(session):
    return {
        'id': session.id,
        'userId': session.user_id,
        'mode': session.mode,
        'startTime': isoformat(session.start_time),
        'endTime': isoformat(session.end_time),
        'duration': session.duration,
    }

def shared_session_to_dict(shared):
    return {
        'id': shared.id,
        'name': shared.name,
        'creatorId': shared.creator_id,
        'timerMode': shared.timer_mode,
        'duration': shared.duration,
        'startTime': isoformat(shared.start_time),
        'endTime': isoformat(shared.end_time),
        'isActive': shared.is_active,
        'inviteCode': shared.invite_code,
        'createdAt': isoformat(shared.created_at),
        'participants': [{
            'id': p.id,
            'userId': p.user_id,
            'sessionId': p.session_id,
            'joinedAt': isoformat(p.joined_at),
            'user': user_summary(p.user),
        } for p in shared.participants],
        'creator': user_summary(shared.creator),
    }

def friendship_entry(friendship, other, is_requester):
    return {
        'id': friendship.id,
        'name': other.name,
        'email': other.email,
        'image': other.image,
        'status': friendship.status,
        'isRequester': is_requester,
    }

def find_friendship(user_id, other_id):
    return Friendship.query.filter(
        or_(
            (Friendship.requester_id == user_id) & (Friendship.addressee_id == other_id),
            (Friendship.requester_id == other_id) & (Friendship.addressee_id == user_id)
        )
    ).first()

def get_friend_ids(user_id):
    friendships = Friendship.query.filter(
        or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
        Friendship.status == 'ACCEPTED'
    ).all()

    friend_ids = set()
    for f in friendships:
        if f.requester_id == user_id:
            friend_ids.add(f.addressee_id)
        else:
            friend_ids.add(f.requester_id)
    return friend_ids

def get_user(user_id):
    return db.session.get(User, user_id)
