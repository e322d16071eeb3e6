from flask import jsonify
from flask_login import login_required, current_user
from datetime import datetime, timedelta
from . import api_bp
from models import db, StudySession
from services.study_time_service import credit_study_time
from utils import get_payload, parse_int, study_session_to_dict

TIMER_MODES = ('focus', 'shortBreak', 'longBreak')

def normalize_mode(mode):
    return mode if mode in TIMER_MODES else 'focus'

@api_bp.route('/start', methods=['POST'])
@login_required
def start_session():
    data = get_payload()
    session = StudySession(user_id=current_user.id, mode=normalize_mode(data.get('mode')),
                           start_time=datetime.utcnow(), duration=0)
    db.session.add(session)
    db.session.commit()
    return jsonify(study_session_to_dict(session))

@api_bp.route('/save', methods=['POST'])
@login_required
def save_progress():
    data = get_payload()
    minutes = parse_int(data.get('minutes'), 0)
    if minutes <= 0:
        return 'Minutes must be positive', 400

    mode = normalize_mode(data.get('mode'))
    now = datetime.utcnow()

    # Fold into the running record when the timer still tracks one
    session = None
    session_id = parse_int(data.get('sessionId'))
    if session_id:
        session = db.session.get(StudySession, session_id)
        if not session or session.user_id != current_user.id or session.end_time is not None:
            session = None

    if session:
        session.duration = (session.duration or 0) + minutes
    else:
        session = StudySession(user_id=current_user.id, mode=mode,
                               start_time=now - timedelta(minutes=minutes), end_time=now, duration=minutes)
        db.session.add(session)

    credit_study_time({current_user.id}, minutes)
    db.session.commit()
    return jsonify(study_session_to_dict(session))

@api_bp.route('/end', methods=['POST'])
@login_required
def end_session():
    data = get_payload()
    session_id = parse_int(data.get('sessionId'))
    if not session_id:
        return 'Missing sessionId', 400

    session = db.session.get(StudySession, session_id)
    if not session:
        return 'Session not found', 404
    if session.user_id != current_user.id:
        return 'Forbidden', 403
    if session.end_time is not None:
        return 'Session already ended', 400

    duration = max(0, parse_int(data.get('duration'), 0))
    session.end_time = datetime.utcnow()
    session.duration = (session.duration or 0) + duration

    credit_study_time({current_user.id}, duration)
    db.session.commit()
    return jsonify(study_session_to_dict(session))
