"""
Shared fixtures: an application on a throw-away SQLite database, its
services and a few signed-in clients.
"""

import pytest

from eventlist import create_app
from eventlist.services.category_service import CategoryService
from eventlist.services.event_service import EventService
from eventlist.services.notification_service import NotificationService
from eventlist.services.user_service import UserService

ADMIN_PASSWORD = 'admin-test'


@pytest.fixture
def app(tmp_path):
    """Application wired to a temporary database, session store and log file."""
    app = create_app(
        'testing',
        DATABASE_URL=f"sqlite:///{tmp_path / 'events.db'}",
        SESSION_FILE_DIR=tmp_path / 'sessions',
        LOG_FILE=tmp_path / 'test.log',
    )
    yield app
    app.database_service.dispose()


@pytest.fixture
def db(app):
    return app.database_service


@pytest.fixture
def user_service(app, db):
    return UserService(db, app.config)


@pytest.fixture
def notification_service(db):
    return NotificationService(db)


@pytest.fixture
def event_service(db, notification_service, user_service):
    return EventService(db, notification_service, user_service)


@pytest.fixture
def category_service(db):
    return CategoryService(db)


@pytest.fixture
def alice(user_service):
    return user_service.register_user('alice', 'secret1')


@pytest.fixture
def bob(user_service):
    return user_service.register_user('bob', 'secret2')


@pytest.fixture
def admin(user_service):
    return user_service.get_user_by_username('admin')


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username, password):
    """Sign a test client in through the JSON API."""
    response = client.post('/api/v1/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def alice_client(app, alice):
    return login(app.test_client(), 'alice', 'secret1')


@pytest.fixture
def bob_client(app, bob):
    return login(app.test_client(), 'bob', 'secret2')


@pytest.fixture
def admin_client(app):
    return login(app.test_client(), 'admin', ADMIN_PASSWORD)
