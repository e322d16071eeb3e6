from flask import request, jsonify, current_app
from flask_login import login_required, current_user
from datetime import datetime
from . import study_bp
from models import db, SharedSession, SharedSessionParticipant
from services.study_time_service import credit_participants
from utils import get_payload, parse_int, generate_invite_code, shared_session_to_dict

DEFAULT_SHARED_DURATION = 1500 # seconds

@study_bp.route('', methods=['POST'])
@login_required
def create_shared_session():
    data = get_payload()
    shared = SharedSession(
        name=data.get('name'),
        creator_id=current_user.id,
        timer_mode=data.get('timerMode') or 'focus',
        duration=parse_int(data.get('duration')) or DEFAULT_SHARED_DURATION,
        invite_code=generate_invite_code(),
        is_active=True
    )
    # The creator is always the first participant
    shared.participants.append(SharedSessionParticipant(user_id=current_user.id))
    db.session.add(shared)
    db.session.commit()
    return jsonify(shared_session_to_dict(shared))

@study_bp.route('', methods=['GET'])
@login_required
def list_shared_sessions():
    query = (SharedSession.query
             .join(SharedSessionParticipant, SharedSessionParticipant.session_id == SharedSession.id)
             .filter(SharedSessionParticipant.user_id == current_user.id))
    if request.args.get('active') == 'true':
        query = query.filter(SharedSession.is_active.is_(True))

    sessions = query.order_by(SharedSession.created_at.desc()).all()
    return jsonify([shared_session_to_dict(s) for s in sessions])

@study_bp.route('/join', methods=['POST'])
@login_required
def join_shared_session():
    data = get_payload()
    invite_code = data.get('inviteCode')
    if not invite_code:
        return 'Invite code is required', 400

    shared = SharedSession.query.filter_by(invite_code=invite_code).first()
    if not shared:
        return 'Shared session not found', 404
    if not shared.is_active:
        return 'This shared session has ended', 400
    if shared.has_participant(current_user.id):
        return 'You are already in this session', 409

    shared.participants.append(SharedSessionParticipant(user_id=current_user.id))
    db.session.commit()
    return jsonify(shared_session_to_dict(shared))

@study_bp.route('/<int:session_id>', methods=['GET'])
@login_required
def get_shared_session(session_id):
    shared = db.session.get(SharedSession, session_id)
    if not shared:
        return jsonify({'error': 'Shared session not found'}), 404
    return jsonify(shared_session_to_dict(shared))

@study_bp.route('/<int:session_id>', methods=['PATCH'])
@login_required
def update_shared_session(session_id):
    shared = db.session.get(SharedSession, session_id)
    if not shared:
        return 'Shared session not found', 404

    # Only the creator drives the shared timer
    if shared.creator_id != current_user.id:
        return 'Only the creator can update the session', 403

    data = get_payload()
    action = data.get('action')

    if action == 'start':
        shared.start_time = datetime.utcnow()
        shared.end_time = None

    elif action == 'stop':
        shared.end_time = datetime.utcnow()

    elif action == 'reset':
        shared.start_time = None
        shared.end_time = None

    elif action == 'update':
        shared.timer_mode = data.get('timerMode') or shared.timer_mode
        shared.duration = parse_int(data.get('duration')) or shared.duration

    elif action == 'complete':
        minutes = (shared.duration or DEFAULT_SHARED_DURATION) // 60
        shared.is_active = False
        shared.end_time = datetime.utcnow()
        credit_participants(shared, minutes)
        current_app.logger.info('[SHARED_COMPLETE] session %s credited %s min to %s participants',
                                shared.id, minutes, len(shared.participants))

    else:
        return 'Invalid action', 400

    db.session.commit()
    return jsonify(shared_session_to_dict(shared))

@study_bp.route('/<int:session_id>', methods=['PUT'])
@login_required
def credit_shared_session(session_id):
    shared = db.session.get(SharedSession, session_id)
    if not shared:
        return jsonify({'error': 'Shared session not found'}), 404
    if not shared.has_participant(current_user.id):
        return jsonify({'error': 'You are not a participant in this session'}), 403

    study_time = parse_int(get_payload().get('studyTime'), 0)
    if study_time > 0:
        credit_participants(shared, study_time)
        db.session.commit()

    return jsonify({'message': 'Shared session updated successfully'})

@study_bp.route('/<int:session_id>', methods=['DELETE'])
@login_required
def leave_shared_session(session_id):
    shared = db.session.get(SharedSession, session_id)
    if not shared:
        return jsonify({'error': 'Shared session not found'}), 404
    if not shared.has_participant(current_user.id):
        return jsonify({'error': 'You are not a participant in this session'}), 403

    if shared.creator_id == current_user.id:
        # Creator leaving ends the session for everyone
        shared.is_active = False
        shared.end_time = datetime.utcnow()
        db.session.commit()
        return jsonify({'message': 'Shared session ended successfully'})

    SharedSessionParticipant.query.filter_by(session_id=shared.id, user_id=current_user.id).delete()
    db.session.commit()
    return jsonify({'message': 'Left shared session successfully'})
