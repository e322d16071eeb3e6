import os
import logging
import click
from flask import Flask, request, jsonify
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFError
from sqlalchemy.exc import SQLAlchemyError
from dotenv import load_dotenv
from models import db, User
from extensions import csrf, login_manager

load_dotenv()

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = Flask(__name__)

app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev_key_change_in_prod')
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('SQLALCHEMY_DATABASE_URI', 'sqlite:///db.sqlite3')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

db.init_app(app)
migrate = Migrate(app, db)
csrf.init_app(app)
login_manager.init_app(app)

GUEST_MESSAGE = 'Using guest mode. Data is saved locally only.'

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))

@login_manager.unauthorized_handler
def unauthorized():
    return 'Unauthorized', 401

def is_guest_request():
    return (request.cookies.get('isGuest') == 'true'
            or request.headers.get('X-Guest-Mode') == 'true')

@app.before_request
def guest_mode():
    # Guests keep everything in local storage, so the API answers without touching the db
    path = request.path
    if not path.startswith('/api/'):
        return None
    if path.startswith('/api/auth/') or path == '/api/register':
        return None
    if is_guest_request():
        return jsonify({'message': GUEST_MESSAGE, 'isGuest': True})
    return None

@app.errorhandler(SQLAlchemyError)
def handle_db_error(error):
    db.session.rollback()
    app.logger.error('[%s %s] database error: %s', request.method, request.path, error)
    return 'Internal Error', 500

@app.errorhandler(CSRFError)
def handle_csrf_error(error):
    app.logger.warning('[%s %s] CSRF check failed: %s', request.method, request.path, error.description)
    return error.description, 400

@app.cli.command('init-db')
def init_db_command():
    """Drop and recreate every table."""
    db.drop_all()
    db.create_all()
    click.echo('Database initialized.')

from routes import auth_bp, main_bp, social_bp, study_bp, api_bp

app.register_blueprint(auth_bp, url_prefix='/api')
app.register_blueprint(main_bp, url_prefix='/api')
app.register_blueprint(social_bp, url_prefix='/api')
app.register_blueprint(api_bp, url_prefix='/api/sessions')
app.register_blueprint(study_bp, url_prefix='/api/shared-sessions')

if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
