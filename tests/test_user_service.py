"""
Tests for registration, authentication and the bootstrap administrator.
"""

import pytest

ADMIN_PASSWORD = 'admin-test'


def test_register_and_authenticate(user_service):
    user = user_service.register_user('Alice', 'secret1', 'alice@example.com')

    assert user.password_hash != 'secret1'
    assert user_service.authenticate_user('alice', 'secret1').user_id == user.user_id
    assert user_service.authenticate_user('alice', 'wrong') is None
    assert user_service.authenticate_user('nobody', 'secret1') is None


def test_hash_not_exposed(user_service):
    data = user_service.register_user('alice', 'secret1').to_dict()

    assert 'password' not in data
    assert 'passwordHash' not in data


@pytest.mark.parametrize('username, password, email', [
    ('al', 'secret1', None),
    ('alice', 'abc', None),
    ('alice', 'secret1', 'not-an-email'),
])
def test_register_rejects_invalid_input(user_service, username, password, email):
    with pytest.raises(ValueError):
        user_service.register_user(username, password, email)


def test_username_is_unique_ignoring_case(user_service, alice):
    with pytest.raises(ValueError, match='taken'):
        user_service.register_user('ALICE', 'another')


def test_admin_created_at_startup(admin):
    assert admin is not None
    assert admin.is_admin


def test_check_admin_password(user_service, alice):
    assert user_service.check_admin_password(ADMIN_PASSWORD)
    assert not user_service.check_admin_password('secret1')
    assert not user_service.check_admin_password('')


def test_ensure_admin_exists_is_idempotent(user_service, db):
    assert user_service.ensure_admin_exists()
    assert user_service.ensure_admin_exists()

    assert db.count("SELECT COUNT(*) AS count FROM users WHERE is_admin = :a", {'a': True}) == 1


def test_recreate_admin_restores_password(user_service, admin, db):
    db.execute_update("UPDATE users SET password_hash = 'x', is_admin = :f WHERE id = :id",
                      {'f': False, 'id': admin.user_id})

    assert user_service.recreate_admin()

    restored = user_service.authenticate_user('admin', ADMIN_PASSWORD)
    assert restored.user_id == admin.user_id
    assert restored.is_admin
