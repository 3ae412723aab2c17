import os
import sys
from datetime import timedelta

import pytest
from flask import g

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from easylearn_app import create_app, db
from easylearn_app.core.config import Config
from easylearn_app.core.error_handlers import ProviderError
from easylearn_app.models import Professor, Role, Room, RoomParticipant, RoomStatus, Student, User
from easylearn_app.modules.rooms.services.video_provider import JoinCredential, VideoProvider
from easylearn_app.utils.time_utils import utcnow


class FakeVideoProvider(VideoProvider):
    """Records every call; set ``fail_on`` to an operation name to make it raise."""

    server_url = 'wss://video.test'

    def __init__(self, config=None):
        self.calls = []
        self.fail_on = set()

    def _record(self, operation, *args):
        self.calls.append((operation,) + args)
        if operation in self.fail_on:
            raise ProviderError(f'{operation} failed', operation=operation)

    def create_room(self, name, max_participants):
        self._record('create_room', name, max_participants)

    def delete_room(self, name):
        self._record('delete_room', name)

    def issue_join_token(self, room_name, identity, display_name, can_publish):
        self._record('issue_join_token', room_name, identity, can_publish)
        return JoinCredential(
            token=f'token-{identity}-{len(self.calls)}',
            identity=identity,
            expires_at=utcnow() + timedelta(hours=1),
        )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    SCHEDULER_ENABLED = False
    LOG_DIR = None
    VIDEO_PROVIDER = FakeVideoProvider


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def video(app):
    return app.extensions['video_provider']


def _login(client, user_id):
    with client.session_transaction() as session:
        session['_user_id'] = str(user_id)
        session['_fresh'] = True
    # Requests reuse the fixture app context, drop the user Flask-Login cached on g
    g.pop('_login_user', None)


@pytest.fixture
def login(client):
    def _do(user):
        _login(client, user.user_id)
        return client
    return _do


def _user(name, role, email=None, password='password'):
    user = User(name=name, email=email, role=role, is_active=True)
    user.set_password(password)
    db.session.add(user)
    return user


@pytest.fixture
def make_admin(app):
    def _make(name='Admin', email=None):
        user = _user(name, Role.ADMIN, email=email or f'{name.lower()}@example.com')
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_professor(app):
    def _make(name='Prof', email=None, languages=None):
        user = _user(name, Role.PROFESSOR, email=email or f'{name.lower()}@example.com')
        profile = Professor(user=user, languages=languages or ['French'])
        db.session.add(profile)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_student(app):
    def _make(name='Student', unique_code=None, level='A1'):
        user = _user(name, Role.STUDENT)
        profile = Student(
            user=user,
            nickname=name.lower(),
            level=level,
            unique_code=unique_code or f'STU-{name.upper()}',
        )
        db.session.add(profile)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_room(app):
    def _make(professor_user=None, students=(), starts_in=timedelta(minutes=5), status=RoomStatus.SCHEDULED,
              max_students=10, name='Conversation club'):
        room = Room(
            name=name,
            language='French',
            level='A1',
            scheduled_at=utcnow() + starts_in,
            duration=60,
            max_students=max_students,
            status=status,
            professor_id=professor_user.professor_profile.professor_id if professor_user else None,
            external_room_name=None,
        )
        db.session.add(room)
        for student_user in students:
            db.session.add(RoomParticipant(
                room=room,
                student_id=student_user.student_profile.student_id,
                invited=True,
            ))
        db.session.commit()
        return room
    return _make
