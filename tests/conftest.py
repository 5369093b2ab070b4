"""
Shared pytest fixtures for tournament manager tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tourney.models import Field, Team

TOURNAMENT_ID = 'summer-open'


@pytest.fixture
def sample_teams():
    """Five teams, enough to exercise byes in every format."""
    return [
        Team(id='t1', name='Alpha', age_division='Open'),
        Team(id='t2', name='Bravo', age_division='Open'),
        Team(id='t3', name='Charlie', age_division='Open'),
        Team(id='t4', name='Delta', age_division='Open'),
        Team(id='t5', name='Echo', age_division='Open'),
    ]


@pytest.fixture
def sample_fields():
    return [Field(id='f1', field_number=1), Field(id='f2', field_number=2)]


def _user(username, role, approval_status='approved'):
    from werkzeug.security import generate_password_hash
    return {
        'username': username,
        'password_hash': generate_password_hash('secret'),
        'name': username.title(),
        'role': role,
        'approval_status': approval_status,
        'created': '2026-01-01T00:00:00',
    }


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Isolated data directory with one open tournament and a user per role."""
    import app as app_module

    users_file = tmp_path / 'users.yaml'
    users_file.write_text(yaml.dump({'users': [
        _user('director', 'tournament_director'),
        _user('manager', 'team_manager'),
        _user('rival', 'team_manager'),
        _user('volunteer', 'volunteer'),
        _user('fan', 'spectator'),
        _user('player', 'player', approval_status=None),
        _user('waiting', 'volunteer', approval_status='pending'),
    ]}, default_flow_style=False))

    tournaments_file = tmp_path / 'tournaments.yaml'
    tournaments_file.write_text(yaml.dump({'tournaments': [{
        'id': TOURNAMENT_ID,
        'name': 'Summer Open',
        'location': 'Riverside Park',
        'start_date': '2099-07-04',
        'end_date': '2099-07-06',
        'registration_deadline': None,
        'max_teams': 8,
        'age_divisions': ['Open', 'Mixed'],
        'format': 'round_robin',
        'status': 'registration_open',
        'created_by': 'director',
        'created_at': '2026-01-01T00:00:00',
    }]}, default_flow_style=False))

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'USERS_FILE', str(users_file))
    monkeypatch.setattr(app_module, 'TOURNAMENTS_FILE', str(tournaments_file))
    monkeypatch.setattr(app_module, 'TOURNAMENTS_DIR', str(tmp_path / 'tournaments'))
    app_module.app.config['PROFILE_RETRY_DELAY'] = 0

    return tmp_path


def _client_for(username):
    from app import app
    app.config['TESTING'] = True
    client = app.test_client()
    if username:
        with client.session_transaction() as sess:
            sess['user'] = username
    return client


@pytest.fixture
def client(temp_data_dir):
    """Unauthenticated test client."""
    return _client_for(None)


@pytest.fixture
def director_client(temp_data_dir):
    return _client_for('director')


@pytest.fixture
def manager_client(temp_data_dir):
    return _client_for('manager')


@pytest.fixture
def rival_client(temp_data_dir):
    return _client_for('rival')


@pytest.fixture
def volunteer_client(temp_data_dir):
    return _client_for('volunteer')


@pytest.fixture
def spectator_client(temp_data_dir):
    return _client_for('fan')


@pytest.fixture
def pending_client(temp_data_dir):
    return _client_for('waiting')


@pytest.fixture
def player_client(temp_data_dir):
    return _client_for('player')
