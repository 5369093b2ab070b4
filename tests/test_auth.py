"""
Tests for sign-up, login, approvals and role gating.
"""
import pytest
import sys
import os
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from app import authenticate_user, create_user, load_users


@pytest.fixture
def empty_users(tmp_path, monkeypatch):
    """Data directory with no accounts at all."""
    import app as app_module

    users_file = tmp_path / 'users.yaml'
    users_file.write_text(yaml.dump({'users': []}, default_flow_style=False))
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'USERS_FILE', str(users_file))
    return tmp_path


class TestUserCreation:
    """Tests for create_user."""

    def test_player_is_approved_immediately(self, empty_users):
        ok, msg = create_user('alice', 'pass1234', 'Alice', 'player')
        assert ok is True
        assert 'created' in msg.lower()
        user = load_users()[0]
        assert user['approval_status'] == 'approved'
        assert user['name'] == 'Alice'

    def test_first_director_bootstraps(self, empty_users):
        create_user('boss', 'pass1234', 'Boss', 'tournament_director')
        assert load_users()[0]['approval_status'] == 'approved'
        assert load_users()[0]['approved_by'] == 'system'

    def test_second_director_waits(self, empty_users):
        create_user('boss', 'pass1234', 'Boss', 'tournament_director')
        ok, msg = create_user('deputy', 'pass1234', 'Deputy', 'tournament_director')
        assert ok is True
        assert 'approval' in msg.lower()
        assert load_users()[1]['approval_status'] == 'pending'

    def test_other_roles_wait(self, empty_users):
        create_user('vol', 'pass1234', 'Vol', 'volunteer')
        assert load_users()[0]['approval_status'] == 'pending'

    def test_unknown_role(self, empty_users):
        ok, msg = create_user('alice', 'pass1234', 'Alice', 'wizard')
        assert ok is False

    def test_short_username(self, empty_users):
        ok, msg = create_user('a', 'pass1234')
        assert ok is False

    def test_invalid_chars(self, empty_users):
        ok, msg = create_user('al ice', 'pass1234')
        assert ok is False

    def test_short_password(self, empty_users):
        ok, msg = create_user('alice', 'abc')
        assert ok is False

    def test_duplicate_case_insensitive(self, empty_users):
        create_user('Alice', 'pass1234')
        ok, msg = create_user('alice', 'otherpass')
        assert ok is False
        assert 'taken' in msg.lower()

    def test_authenticate(self, empty_users):
        create_user('alice', 'pass1234')
        assert authenticate_user('alice', 'pass1234')
        assert authenticate_user('ALICE', 'pass1234')
        assert not authenticate_user('alice', 'wrong')
        assert not authenticate_user('nobody', 'pass1234')


class TestAuthRoutes:
    """Tests for the /api/auth endpoints."""

    def test_signup(self, client):
        resp = client.post('/api/auth/signup', json={
            'username': 'newfan', 'password': 'pass1234', 'name': 'New Fan', 'role': 'spectator'})
        assert resp.status_code == 201
        assert resp.get_json()['profile']['approval_status'] == 'pending'
        assert 'password_hash' not in resp.get_json()['profile']

    def test_signup_rejects_bad_input(self, client):
        resp = client.post('/api/auth/signup', json={'username': 'x', 'password': 'pass1234'})
        assert resp.status_code == 400
        assert 'error' in resp.get_json()

    def test_login_reaches_ready(self, client):
        resp = client.post('/api/auth/login', json={'username': 'manager', 'password': 'secret'})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['auth']['state'] == 'ready'
        assert data['auth']['profile']['role'] == 'team_manager'
        assert data['approved'] is True
        assert client.get('/api/auth/me').status_code == 200

    def test_signup_with_non_string_fields(self, client):
        resp = client.post('/api/auth/signup', json={'username': 12345, 'password': 'pass1234'})
        assert resp.status_code == 400
        resp = client.post('/api/auth/signup', json={'username': 'newfan', 'password': 'pass1234', 'role': ['coach']})
        assert resp.status_code == 201
        assert resp.get_json()['profile']['role'] == 'player'

    def test_login_with_non_string_fields(self, client):
        assert client.post('/api/auth/login', json={'username': 42, 'password': 'secret'}).status_code == 401
        assert client.post('/api/auth/login', json={'username': 'manager', 'password': None}).status_code == 401

    def test_login_wrong_password(self, client):
        resp = client.post('/api/auth/login', json={'username': 'manager', 'password': 'nope'})
        assert resp.status_code == 401

    def test_me_unauthenticated(self, client):
        resp = client.get('/api/auth/me')
        assert resp.status_code == 401
        assert resp.get_json()['state'] == 'unauthenticated'

    def test_me_for_pending_account(self, pending_client):
        data = pending_client.get('/api/auth/me').get_json()
        assert data['approved'] is False
        assert data['role_label'] == 'Volunteer / Field Official'
        assert data['module'] == 'tournament'

    def test_logout(self, manager_client):
        resp = manager_client.post('/api/auth/logout')
        assert resp.get_json()['state'] == 'unauthenticated'
        assert manager_client.get('/api/auth/me').status_code == 401


class TestAccessControl:
    """Tests for route gating."""

    def test_unauthenticated_gets_401(self, client):
        assert client.get('/api/tournaments').status_code == 401

    def test_pending_gets_403(self, pending_client):
        resp = pending_client.get('/api/tournaments')
        assert resp.status_code == 403
        assert 'approval' in resp.get_json()['error']

    def test_player_needs_no_approval(self, player_client):
        assert player_client.get('/api/tournaments').status_code == 200

    def test_wrong_role_gets_403(self, manager_client):
        assert manager_client.get('/api/admin/users').status_code == 403
        assert manager_client.post('/api/tournaments', json={}).status_code == 403


class TestApprovals:
    """Tests for the director's approval queue."""

    def test_list_pending(self, director_client):
        users = director_client.get('/api/admin/users?status=pending').get_json()['users']
        assert [u['username'] for u in users] == ['waiting']
        assert all('password_hash' not in u for u in users)

    def test_approve_unlocks_access(self, director_client, pending_client):
        resp = director_client.post('/api/admin/users/waiting/approve')
        assert resp.status_code == 200
        user = resp.get_json()['user']
        assert user['approval_status'] == 'approved'
        assert user['approved_by'] == 'director'
        assert user['approved_at']
        assert pending_client.get('/api/tournaments').status_code == 200

    def test_reject(self, director_client, pending_client):
        director_client.post('/api/admin/users/waiting/reject')
        assert pending_client.get('/api/tournaments').status_code == 403

    def test_unknown_user(self, director_client):
        assert director_client.post('/api/admin/users/ghost/approve').status_code == 404
