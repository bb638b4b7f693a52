from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from whisperbox import create_app
from whisperbox.completion import CompletionError
from whisperbox.extensions import db
from whisperbox.models import User, Message


class FakeCompletionClient:
    """Stands in for the OpenAI-backed client; replays canned chunks."""

    def __init__(self, chunks=(), error=None, fail_after=None):
        self.chunks = list(chunks)
        self.error = error
        self.fail_after = fail_after
        self.prompts = []

    def stream(self, prompt):
        self.prompts.append(prompt)
        if self.error and self.fail_after is None:
            raise CompletionError(self.error)
        return self._iter()

    def _iter(self):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise CompletionError(self.error)
            yield chunk


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
        'MAIL_SUPPRESS_SEND': True,
    })
    app.extensions['completion'] = FakeCompletionClient()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def completion(app):
    def install(**kwargs):
        fake = FakeCompletionClient(**kwargs)
        app.extensions['completion'] = fake
        return fake
    return install


@pytest.fixture
def make_user(app):
    def factory(username='alice', email=None, password='secret123', verified=True,
                accepting=True, code='123456', expires_in=timedelta(hours=1)):
        with app.app_context():
            user = User(
                username=username,
                email=email or f'{username}@whisperbox.io',
                password_hash=generate_password_hash(password),
                verify_code=code,
                verify_code_expiry=datetime.utcnow() + expires_in,
                is_verified=verified,
                is_accepting_messages=accepting,
            )
            db.session.add(user)
            db.session.commit()
            return user.id
    return factory


@pytest.fixture
def login(client):
    def do_login(user_id, username='alice'):
        with client.session_transaction() as session:
            session['user_id'] = user_id
            session['username'] = username
            session['is_admin'] = False
    return do_login


@pytest.fixture
def stored_messages(app):
    def fetch(user_id):
        with app.app_context():
            return [m.content for m in
                    Message.query.filter_by(user_id=user_id).order_by(Message.id).all()]
    return fetch
