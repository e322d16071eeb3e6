from flask import request, jsonify
from flask_login import login_required, current_user
from datetime import datetime
from . import main_bp
from models import db, Task, User
from services.study_time_service import adjust_tasks_done
from utils import get_payload, parse_int, task_to_dict, get_friend_ids

LEADERBOARD_SIZE = 50

def owns_user_id(user_id):
    return parse_int(user_id) == current_user.id

@main_bp.route('/tasks', methods=['GET'])
@login_required
def list_tasks():
    if not owns_user_id(request.args.get('userId')):
        return 'Forbidden', 403

    tasks = (Task.query.filter_by(user_id=current_user.id)
             .order_by(Task.is_completed.asc(), Task.created_at.desc(), Task.id.desc())
             .all())
    return jsonify([task_to_dict(t) for t in tasks])

@main_bp.route('/tasks', methods=['POST'])
@login_required
def add_task():
    data = get_payload()
    if not owns_user_id(data.get('userId')):
        return 'Forbidden', 403

    title = (data.get('title') or '').strip()
    if not title:
        return 'Title is required', 400

    task = Task(user_id=current_user.id, title=title, description=data.get('description'), is_completed=False)
    db.session.add(task)
    db.session.commit()
    return jsonify(task_to_dict(task))

@main_bp.route('/tasks/<int:task_id>', methods=['PATCH'])
@login_required
def update_task(task_id):
    data = get_payload()
    if not owns_user_id(data.get('userId')):
        return 'Forbidden', 403

    task = db.session.get(Task, task_id)
    if not task:
        return 'Task not found', 404
    if task.user_id != current_user.id:
        return 'Forbidden', 403

    is_completed = bool(data.get('isCompleted'))
    was_completed = task.is_completed

    task.is_completed = is_completed
    task.completed_at = datetime.utcnow() if is_completed else None

    # Keep the leaderboard counter in step with the flip
    if is_completed and not was_completed:
        adjust_tasks_done(current_user, 1)
    elif not is_completed and was_completed:
        adjust_tasks_done(current_user, -1)

    db.session.commit()
    return jsonify(task_to_dict(task))

@main_bp.route('/tasks/<int:task_id>', methods=['DELETE'])
@login_required
def delete_task(task_id):
    task = db.session.get(Task, task_id)
    if not task:
        return 'Task not found', 404
    if task.user_id != current_user.id:
        return 'Forbidden', 403

    if task.is_completed:
        adjust_tasks_done(current_user, -1)

    db.session.delete(task)
    db.session.commit()
    return jsonify({'deleted': True})

@main_bp.route('/leaderboard', methods=['GET'])
@login_required
def leaderboard():
    if not owns_user_id(request.args.get('userId')):
        return 'Forbidden', 403

    board_type = request.args.get('type', 'studyTime')
    scope = request.args.get('scope', 'global')

    metric = User.total_study_time if board_type == 'studyTime' else User.total_tasks_done
    friend_ids = get_friend_ids(current_user.id)

    query = User.query
    if scope == 'friends':
        query = query.filter(User.id.in_(friend_ids | {current_user.id}))

    users = query.order_by(metric.desc(), User.id.asc()).limit(LEADERBOARD_SIZE).all()

    return jsonify([{
        'id': u.id,
        'name': u.name,
        'image': u.image,
        'totalStudyTime': u.total_study_time or 0,
        'totalTasksDone': u.total_tasks_done or 0,
        'isFriend': u.id in friend_ids,
    } for u in users])
