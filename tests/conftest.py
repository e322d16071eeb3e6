import os
import pytest

# Must be set before app is imported; the engine is built at init_app
os.environ.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite:///:memory:')

from app import app
from models import db, User
from werkzeug.security import generate_password_hash

@pytest.fixture
def client():
    app.config['TESTING'] = True
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    app.config['WTF_CSRF_ENABLED'] = False # Disable CSRF for easier testing

    with app.test_client() as client:
        with app.app_context():
            db.create_all()
            yield client
            db.session.remove()
            db.drop_all()

@pytest.fixture
def make_user(client):
    def _make_user(email, name=None, password='password', **kwargs):
        user = User(email=email, name=name or email.split('@')[0],
                    password_hash=generate_password_hash(password, method='scrypt'), **kwargs)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user

@pytest.fixture
def auth_client(client, make_user):
    user = make_user('test@example.com', 'Test User')
    client.post('/api/auth/login', json={'email': 'test@example.com', 'password': 'password'})
    return client, user

@pytest.fixture
def scheduler():
    from timer.scheduler import ManualScheduler
    return ManualScheduler()

@pytest.fixture
def recorder():
    from helpers import FakeRecorder
    return FakeRecorder()

@pytest.fixture
def notifier():
    from helpers import CollectingNotifier
    return CollectingNotifier()

@pytest.fixture
def storage():
    from timer.storage import MemoryStorage
    return MemoryStorage()

@pytest.fixture
def make_engine(recorder, scheduler, notifier, storage):
    """Build engines on the virtual clock; every engine is closed afterwards."""
    from helpers import EPOCH
    from timer.engine import Identity, TimerEngine
    from timer.recorder import InlineExecutor
    engines = []

    def _make_engine(identity=Identity(user_id=1), **overrides):
        options = dict(identity=identity, storage=storage, scheduler=scheduler, executor=InlineExecutor(),
                       notifier=notifier, clock=lambda: EPOCH + scheduler.now)
        options.update(overrides)
        engine = TimerEngine(options.pop('recorder', recorder), **options)
        engines.append(engine)
        return engine

    yield _make_engine
    for engine in engines:
        engine.close()

@pytest.fixture
def engine(make_engine):
    return make_engine()

@pytest.fixture
def runner(client):
    return app.test_cli_runner()
