from flask import request, jsonify
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from . import auth_bp
from models import db, User
from utils import get_payload, user_to_dict

@auth_bp.route('/register', methods=['POST'])
def register():
    data = get_payload()
    email = (data.get('email') or '').strip().lower()
    name = (data.get('name') or '').strip()
    password = data.get('password')

    if not email or not name or not password:
        return 'Missing fields', 400

    if User.query.filter_by(email=email).first():
        return 'Email already in use', 400

    user = User(email=email, name=name, password_hash=generate_password_hash(password, method='scrypt'),
                total_study_time=0, total_tasks_done=0)
    db.session.add(user)
    db.session.commit()
    return jsonify(user_to_dict(user))

@auth_bp.route('/auth/csrf', methods=['GET'])
def csrf_token():
    # Non-browser clients echo this back in the X-CSRFToken header
    return jsonify({'csrfToken': generate_csrf()})

@auth_bp.route('/auth/login', methods=['POST'])
def login():
    data = get_payload()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    user = User.query.filter_by(email=email).first() if email else None
    if user and password and check_password_hash(user.password_hash, password):
        login_user(user)
        return jsonify(user_to_dict(user))
    return 'Invalid email or password', 401

@auth_bp.route('/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Signed out'})

@auth_bp.route('/auth/session', methods=['GET'])
@login_required
def current_session():
    return jsonify(user_to_dict(current_user))
