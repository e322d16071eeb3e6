from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime

db = SQLAlchemy()

class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    image = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Running totals shown on the leaderboard
    total_study_time = db.Column(db.Integer, default=0, nullable=False) # minutes
    total_tasks_done = db.Column(db.Integer, default=0, nullable=False)

    tasks = db.relationship('Task', backref='author', lazy=True, cascade="all, delete-orphan")
    study_sessions = db.relationship('StudySession', backref='user', lazy=True, cascade="all, delete-orphan")

class Task(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)

class Friendship(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    requester_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    addressee_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='PENDING') # PENDING, ACCEPTED
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    requester = db.relationship('User', foreign_keys=[requester_id], lazy=True)
    addressee = db.relationship('User', foreign_keys=[addressee_id], lazy=True)

    __table_args__ = (db.UniqueConstraint('requester_id', 'addressee_id', name='_requester_addressee_uc'),)

class StudySession(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    mode = db.Column(db.String(20), default='focus') # focus, shortBreak, longBreak
    start_time = db.Column(db.DateTime, default=datetime.utcnow)
    end_time = db.Column(db.DateTime, nullable=True) # None while the timer is still running
    duration = db.Column(db.Integer, default=0, nullable=False) # minutes

class SharedSession(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    timer_mode = db.Column(db.String(20), default='focus')
    duration = db.Column(db.Integer, default=1500) # seconds
    start_time = db.Column(db.DateTime, nullable=True)
    end_time = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    invite_code = db.Column(db.String(16), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    creator = db.relationship('User', foreign_keys=[creator_id], backref='created_shared_sessions', lazy=True)
    participants = db.relationship(
        'SharedSessionParticipant', backref='session', lazy=True,
        cascade="all, delete-orphan", order_by="SharedSessionParticipant.id"
    )

    def has_participant(self, user_id):
        return any(p.user_id == user_id for p in self.participants)

class SharedSessionParticipant(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('shared_session.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref='shared_participations', lazy=True)

    __table_args__ = (db.UniqueConstraint('session_id', 'user_id', name='_session_user_uc'),)
