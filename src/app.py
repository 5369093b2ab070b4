"""
Flask web application for Tournament Manager.

A JSON API over YAML files in the data directory. Every read-modify-write of
those files happens under one file lock.
"""
import os
import re
import yaml
from datetime import datetime, timedelta
from functools import wraps
from filelock import FileLock
from flask import Flask, request, jsonify, session, g, abort

from tourney.allocation import build_schedule, DEFAULT_MATCH_DURATION, DEFAULT_BREAK_DURATION
from tourney.auth_state import AuthSession, AuthState, sign_in
from tourney.dashboard import build_dashboard
from tourney.elimination import advance_winner
from tourney.errors import TourneyError
from tourney.logging_setup import configure_logging
from tourney.models import BracketType, Match, MatchStatus, coerce_int
from tourney.roles import (
    SCORING_ROLES, TournamentRole, can_access, get_module_for_role, get_role_label,
    is_approved, is_valid_role, requires_approval,
)
from tourney.spirit import (
    calculate_spirit_leaderboard, format_spirit_score_for_submission,
    has_spirit_score_been_submitted, validate_spirit_score,
)
from tourney.standings import calculate_leaderboard, calculate_match_stats, summarize_leaderboard
from tourney.tournaments import (
    RegistrationStatus, TournamentFormat, TournamentStatus, can_register_for_tournament,
    format_date_range, get_days_until, get_registration_status_label, get_status_label,
    get_tournament_progress, validate_tournament_data,
)

app = Flask(__name__)


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

configure_logging(os.environ.get('LOG_LEVEL', 'INFO'), os.environ.get('STRUCTURED_LOGGING') == '1')

app.secret_key = _get_or_create_secret_key()
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)
app.config['PROFILE_RETRIES'] = 5
app.config['PROFILE_RETRY_DELAY'] = 1.0

USERS_FILE = os.path.join(DATA_DIR, 'users.yaml')
TOURNAMENTS_FILE = os.path.join(DATA_DIR, 'tournaments.yaml')
TOURNAMENTS_DIR = os.path.join(DATA_DIR, 'tournaments')
os.makedirs(DATA_DIR, exist_ok=True)
_data_lock = FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)

ANNOUNCEMENT_TYPES = ('general', 'schedule_change', 'score_update', 'emergency')
TEAM_STATUS_UPDATES = (RegistrationStatus.APPROVED, RegistrationStatus.REJECTED, RegistrationStatus.WITHDRAWN)
# Registrations that still hold a place in the tournament
ACTIVE_REGISTRATIONS = (RegistrationStatus.PENDING, RegistrationStatus.APPROVED)

DIRECTOR = TournamentRole.TOURNAMENT_DIRECTOR
TEAM_MANAGER = TournamentRole.TEAM_MANAGER
SLUG_PATTERN = r'^[a-z0-9][a-z0-9-]*$'


def get_default_settings():
    """Return default per-tournament settings."""
    return {
        'match_duration_minutes': DEFAULT_MATCH_DURATION,
        'break_duration_minutes': DEFAULT_BREAK_DURATION,
        'bracket_type': BracketType.ROUND_ROBIN,
        'per_field_timeline': False,
    }


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def _load_yaml(path: str, default):
    if not os.path.exists(path):
        return default
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return data if data else default
    except (OSError, yaml.YAMLError) as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return default


def _save_yaml(path: str, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False)


def load_users() -> list:
    """Load user registry from YAML."""
    return _load_yaml(USERS_FILE, {}).get('users', [])


def save_users(users: list):
    """Save user registry to YAML."""
    _save_yaml(USERS_FILE, {'users': users})


def load_tournaments() -> list:
    """Load the tournament registry."""
    return _load_yaml(TOURNAMENTS_FILE, {}).get('tournaments', [])


def save_tournaments(tournaments: list):
    _save_yaml(TOURNAMENTS_FILE, {'tournaments': tournaments})


def _tournament_file(tournament_id: str, kind: str) -> str:
    return os.path.join(TOURNAMENTS_DIR, tournament_id, f'{kind}.yaml')


def load_records(tournament_id: str, kind: str) -> list:
    """Load one per-tournament record list (teams, fields, matches, ...)."""
    return _load_yaml(_tournament_file(tournament_id, kind), {}).get(kind, [])


def save_records(tournament_id: str, kind: str, records: list):
    _save_yaml(_tournament_file(tournament_id, kind), {kind: records})


def load_settings(tournament_id: str) -> dict:
    """Load tournament settings, merging with defaults."""
    settings = get_default_settings()
    data = _load_yaml(_tournament_file(tournament_id, 'settings'), {})
    settings.update(data)
    return settings


def save_settings(tournament_id: str, settings: dict):
    _save_yaml(_tournament_file(tournament_id, 'settings'), settings)


def load_matches(tournament_id: str) -> list:
    return [Match.from_dict(m) for m in load_records(tournament_id, 'matches')]


def save_matches(tournament_id: str, matches: list):
    save_records(tournament_id, 'matches', [m.to_dict() for m in matches])


def _slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def _next_id(records: list, prefix: str) -> str:
    """Next sequential id such as 'team-3' for a record list."""
    highest = 0
    for record in records:
        match = re.match(rf'^{prefix}-(\d+)$', str(record.get('id', '')))
        if match:
            highest = max(highest, int(match.group(1)))
    return f'{prefix}-{highest + 1}'


def _find(records: list, record_id):
    return next((r for r in records if r.get('id') == record_id), None)


def _now() -> str:
    return datetime.now().isoformat()


# ---------------------------------------------------------------------------
# Users and access
# ---------------------------------------------------------------------------

def public_profile(user: dict) -> dict:
    """User record without the password hash."""
    return {k: v for k, v in user.items() if k != 'password_hash'}


def get_profile(username: str):
    for user in load_users():
        if user['username'] == username:
            return public_profile(user)
    return None


def create_user(username: str, password: str, name: str = '', role: str = TournamentRole.PLAYER) -> tuple:
    """Create a new user. Returns (success, message)."""
    from werkzeug.security import generate_password_hash
    username = username.lower().strip()
    if not re.match(r'^[a-z0-9][a-z0-9-]*$', username) or len(username) < 2:
        return False, 'Username must be at least 2 characters: letters, numbers, hyphens.'
    if len(password) < 4:
        return False, 'Password must be at least 4 characters.'
    if not is_valid_role(role):
        return False, f'Unknown role: {role}'
    with _data_lock:
        users = load_users()
        if any(u['username'] == username for u in users):
            return False, 'Username already taken.'
        user = {
            'username': username,
            'password_hash': generate_password_hash(password),
            'name': name.strip() or username,
            'role': role,
            'created': _now(),
        }
        if not requires_approval(role):
            user['approval_status'] = 'approved'
        elif role == DIRECTOR and not any(
                u.get('role') == DIRECTOR and u.get('approval_status') == 'approved' for u in users):
            # Nobody could approve the first director
            user['approval_status'] = 'approved'
            user['approved_by'] = 'system'
            user['approved_at'] = _now()
        else:
            user['approval_status'] = 'pending'
        users.append(user)
        save_users(users)
    app.logger.info(f'Created user {username} ({role}, {user["approval_status"]})')
    if user['approval_status'] == 'pending':
        return True, 'Account created. Waiting for approval.'
    return True, 'Account created successfully.'


def authenticate_user(username: str, password: str) -> bool:
    """Check username/password. Returns True if valid."""
    from werkzeug.security import check_password_hash
    users = load_users()
    for u in users:
        if u['username'] == username.lower().strip():
            return check_password_hash(u['password_hash'], password)
    return False


def current_profile():
    """Profile of the signed-in user, loaded once per request."""
    if 'profile' not in g:
        username = session.get('user')
        g.profile = get_profile(username) if username else None
    return g.profile


def roles_required(*allowed_roles):
    """Require a signed-in, approved user holding one of ``allowed_roles``.

    With no roles given any approved user is let through.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            profile = current_profile()
            if profile is None:
                return jsonify({'error': 'Authentication required'}), 401
            if not is_approved(profile):
                return jsonify({'error': 'Your account is pending approval'}), 403
            if not can_access(profile, allowed_roles):
                return jsonify({'error': 'You do not have permission to do this'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def login_required(f):
    """Require a signed-in, approved user."""
    return roles_required()(f)


def _request_data() -> dict:
    return request.get_json(silent=True) or {}


def _text(data: dict, key: str, strip: bool = True) -> str:
    """A string field of a JSON body; any other type reads as empty."""
    value = data.get(key)
    if not isinstance(value, str):
        return ''
    return value.strip() if strip else value


@app.url_value_preprocessor
def check_tournament_id(endpoint, values):
    """Tournament ids double as directory names; refuse anything else."""
    if values and 'tournament_id' in values and not re.match(SLUG_PATTERN, values['tournament_id']):
        abort(404)


@app.errorhandler(404)
def not_found(e):
    return jsonify({'error': 'Not found'}), 404


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@app.route('/api/auth/signup', methods=['POST'])
def api_signup():
    """Register a new account."""
    data = _request_data()
    username = _text(data, 'username').lower()
    ok, msg = create_user(username, _text(data, 'password', strip=False),
                          _text(data, 'name'), _text(data, 'role') or TournamentRole.PLAYER)
    if not ok:
        return jsonify({'error': msg}), 400
    profile = get_profile(username)
    return jsonify({'success': True, 'message': msg, 'profile': profile}), 201


@app.route('/api/auth/login', methods=['POST'])
def api_login():
    """Check credentials and load the profile into the session."""
    data = _request_data()
    username = _text(data, 'username').lower()
    if not authenticate_user(username, _text(data, 'password', strip=False)):
        return jsonify({'error': 'Invalid username or password.'}), 401

    auth = sign_in(AuthSession(), username, lambda: get_profile(username),
                   retries=app.config['PROFILE_RETRIES'], delay=app.config['PROFILE_RETRY_DELAY'])
    if not auth.is_ready:
        app.logger.warning(f'Login for {username} failed: {auth.error}')
        return jsonify({'error': auth.error, 'auth': auth.to_dict()}), 500

    session['user'] = username
    session.permanent = True
    return jsonify({'success': True, 'auth': auth.to_dict(), 'approved': is_approved(auth.profile)})


@app.route('/api/auth/logout', methods=['POST'])
def api_logout():
    """Clear session."""
    session.clear()
    return jsonify({'success': True, 'state': AuthState.UNAUTHENTICATED})


@app.route('/api/auth/me')
def api_me():
    """Current profile and auth state. Works for accounts awaiting approval."""
    profile = current_profile()
    if profile is None:
        return jsonify({'error': 'Authentication required', 'state': AuthState.UNAUTHENTICATED}), 401
    return jsonify({
        'state': AuthState.READY,
        'profile': profile,
        'approved': is_approved(profile),
        'role_label': get_role_label(profile.get('role')),
        'module': get_module_for_role(profile.get('role')),
    })


# ---------------------------------------------------------------------------
# User approvals
# ---------------------------------------------------------------------------

@app.route('/api/admin/users')
@roles_required(DIRECTOR)
def api_list_users():
    """List accounts, optionally filtered by approval status."""
    status = request.args.get('status')
    users = [public_profile(u) for u in load_users()]
    if status:
        users = [u for u in users if u.get('approval_status') == status]
    return jsonify({'users': users})


def _set_approval(username: str, status: str):
    with _data_lock:
        users = load_users()
        user = next((u for u in users if u['username'] == username), None)
        if user is None:
            return jsonify({'error': 'User not found'}), 404
        user['approval_status'] = status
        user['approved_by'] = session['user']
        user['approved_at'] = _now()
        save_users(users)
    app.logger.info(f'{session["user"]} set {username} to {status}', extra={'user': session['user']})
    return jsonify({'success': True, 'user': public_profile(user)})


@app.route('/api/admin/users/<username>/approve', methods=['POST'])
@roles_required(DIRECTOR)
def api_approve_user(username):
    return _set_approval(username, 'approved')


@app.route('/api/admin/users/<username>/reject', methods=['POST'])
@roles_required(DIRECTOR)
def api_reject_user(username):
    return _set_approval(username, 'rejected')


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@app.route('/api/dashboard')
@login_required
def api_dashboard():
    """Stat widgets and quick actions for the signed-in user's role."""
    profile = current_profile()
    tournaments = load_tournaments()
    snapshot = {'tournaments': tournaments, 'teams': [], 'matches': [], 'spirit_scores': [], 'users': []}
    for t in tournaments:
        snapshot['teams'].extend(load_records(t['id'], 'teams'))
        snapshot['matches'].extend(load_records(t['id'], 'matches'))
        snapshot['spirit_scores'].extend(load_records(t['id'], 'spirit_scores'))
    if profile.get('role') == DIRECTOR:
        snapshot['users'] = load_users()
    return jsonify(build_dashboard(profile, snapshot))


# ---------------------------------------------------------------------------
# Tournaments
# ---------------------------------------------------------------------------

def _tournament_summary(tournament: dict) -> dict:
    summary = dict(tournament)
    summary['status_label'] = get_status_label(tournament.get('status'))
    summary['date_range'] = format_date_range(tournament.get('start_date'), tournament.get('end_date'))
    summary['registration_open'] = can_register_for_tournament(tournament)
    return summary


@app.route('/api/tournaments', methods=['GET'])
@login_required
def api_list_tournaments():
    status = request.args.get('status')
    tournaments = load_tournaments()
    if status:
        tournaments = [t for t in tournaments if t.get('status') == status]
    return jsonify({'tournaments': [_tournament_summary(t) for t in tournaments]})


@app.route('/api/tournaments', methods=['POST'])
@roles_required(DIRECTOR)
def api_create_tournament():
    """Create a tournament from the director's form."""
    data = _request_data()
    errors = validate_tournament_data(data)
    if errors:
        return jsonify({'error': 'Validation failed', 'errors': errors}), 400

    tournament_format = data.get('format') or TournamentFormat.ROUND_ROBIN
    if tournament_format not in TournamentFormat.ALL:
        return jsonify({'error': f'Unknown format: {tournament_format}'}), 400
    status = data.get('status') or TournamentStatus.DRAFT
    if status not in TournamentStatus.ALL:
        return jsonify({'error': f'Unknown status: {status}'}), 400

    divisions = data['age_divisions']
    if isinstance(divisions, str):
        divisions = [divisions]

    with _data_lock:
        tournaments = load_tournaments()
        base = _slugify(_text(data, 'name'))
        tournament_id = base
        suffix = 2
        while _find(tournaments, tournament_id):
            tournament_id = f'{base}-{suffix}'
            suffix += 1
        tournament = {
            'id': tournament_id,
            'name': _text(data, 'name'),
            'description': data.get('description', ''),
            'location': _text(data, 'location'),
            'start_date': str(data['start_date']),
            'end_date': str(data['end_date']),
            'registration_deadline': str(data['registration_deadline']) if data.get('registration_deadline') else None,
            'max_teams': coerce_int(data.get('max_teams'), default=None) if data.get('max_teams') else None,
            'age_divisions': divisions,
            'format': tournament_format,
            'status': status,
            'created_by': session['user'],
            'created_at': _now(),
        }
        tournaments.append(tournament)
        save_tournaments(tournaments)
    app.logger.info(f'Tournament {tournament_id} created by {session["user"]}',
                    extra={'tournament_id': tournament_id, 'user': session['user']})
    return jsonify({'success': True, 'tournament': _tournament_summary(tournament)}), 201


@app.route('/api/tournaments/<tournament_id>')
@login_required
def api_get_tournament(tournament_id):
    tournament = _find(load_tournaments(), tournament_id)
    if tournament is None:
        return jsonify({'error': 'Tournament not found'}), 404
    teams = load_records(tournament_id, 'teams')
    detail = _tournament_summary(tournament)
    detail['progress'] = get_tournament_progress(tournament)
    detail['days_until'] = get_days_until(tournament.get('start_date'))
    detail['team_count'] = sum(1 for t in teams if t.get('status') == RegistrationStatus.APPROVED)
    detail['field_count'] = len(load_records(tournament_id, 'fields'))
    return jsonify({'tournament': detail})


@app.route('/api/tournaments/<tournament_id>/status', methods=['POST'])
@roles_required(DIRECTOR)
def api_set_tournament_status(tournament_id):
    status = _request_data().get('status')
    if status not in TournamentStatus.ALL:
        return jsonify({'error': f'Unknown status: {status}'}), 400
    with _data_lock:
        tournaments = load_tournaments()
        tournament = _find(tournaments, tournament_id)
        if tournament is None:
            return jsonify({'error': 'Tournament not found'}), 404
        tournament['status'] = status
        save_tournaments(tournaments)
    return jsonify({'success': True, 'tournament': _tournament_summary(tournament)})


@app.route('/api/tournaments/<tournament_id>/settings', methods=['GET'])
@login_required
def api_get_settings(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    return jsonify({'settings': load_settings(tournament_id)})


@app.route('/api/tournaments/<tournament_id>/settings', methods=['POST'])
@roles_required(DIRECTOR)
def api_update_settings(tournament_id):
    """Update scheduling defaults for a tournament."""
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    data = _request_data()
    with _data_lock:
        settings = load_settings(tournament_id)
        for key in ('match_duration_minutes', 'break_duration_minutes'):
            if key in data:
                value = coerce_int(data[key], default=-1, minimum=None)
                if value < 0:
                    return jsonify({'error': f'{key} must be a non-negative whole number'}), 400
                settings[key] = value
        if 'bracket_type' in data:
            if not _text(data, 'bracket_type'):
                return jsonify({'error': 'bracket_type must be a format name'}), 400
            settings['bracket_type'] = _text(data, 'bracket_type')
        if 'per_field_timeline' in data:
            settings['per_field_timeline'] = bool(data['per_field_timeline'])
        save_settings(tournament_id, settings)
    return jsonify({'success': True, 'settings': settings})


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

def _team_view(team: dict) -> dict:
    view = dict(team)
    view['status_label'] = get_registration_status_label(team.get('status'))
    return view


@app.route('/api/tournaments/<tournament_id>/teams', methods=['GET'])
@login_required
def api_list_teams(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    status = request.args.get('status')
    teams = load_records(tournament_id, 'teams')
    if status:
        teams = [t for t in teams if t.get('status') == status]
    return jsonify({'teams': [_team_view(t) for t in teams]})


@app.route('/api/tournaments/<tournament_id>/teams', methods=['POST'])
@roles_required(TEAM_MANAGER)
def api_register_team(tournament_id):
    """Register a team; it waits for the director's approval."""
    tournament = _find(load_tournaments(), tournament_id)
    if tournament is None:
        return jsonify({'error': 'Tournament not found'}), 404
    if not can_register_for_tournament(tournament):
        return jsonify({'error': 'Registration is closed for this tournament'}), 400

    data = _request_data()
    name = _text(data, 'name')
    if not name:
        return jsonify({'error': 'Team name is required'}), 400
    age_division = data.get('age_division') or ''
    if age_division and age_division not in tournament.get('age_divisions', []):
        return jsonify({'error': f'Age division {age_division} is not offered by this tournament'}), 400

    with _data_lock:
        teams = load_records(tournament_id, 'teams')
        if any(t['name'].lower() == name.lower() for t in teams):
            return jsonify({'error': f'Team "{name}" is already registered'}), 409
        max_teams = tournament.get('max_teams')
        if max_teams and sum(1 for t in teams if t.get('status') in ACTIVE_REGISTRATIONS) >= max_teams:
            return jsonify({'error': 'Tournament is full'}), 400
        team = {
            'id': _next_id(teams, 'team'),
            'tournament_id': tournament_id,
            'name': name,
            'age_division': age_division,
            'contact_email': data.get('contact_email', ''),
            'manager': session['user'],
            'status': RegistrationStatus.PENDING,
            'registered_at': _now(),
        }
        teams.append(team)
        save_records(tournament_id, 'teams', teams)
    return jsonify({'success': True, 'team': _team_view(team)}), 201


@app.route('/api/tournaments/<tournament_id>/teams/<team_id>/status', methods=['POST'])
@roles_required(DIRECTOR)
def api_set_team_status(tournament_id, team_id):
    status = _request_data().get('status')
    if status not in TEAM_STATUS_UPDATES:
        return jsonify({'error': f'Status must be one of: {", ".join(TEAM_STATUS_UPDATES)}'}), 400
    with _data_lock:
        teams = load_records(tournament_id, 'teams')
        team = _find(teams, team_id)
        if team is None:
            return jsonify({'error': 'Team not found'}), 404
        team['status'] = status
        save_records(tournament_id, 'teams', teams)
    app.logger.info(f'Team {team_id} in {tournament_id} set to {status}', extra={'tournament_id': tournament_id})
    return jsonify({'success': True, 'team': _team_view(team)})


@app.route('/api/tournaments/<tournament_id>/teams/<team_id>', methods=['DELETE'])
@roles_required(DIRECTOR)
def api_delete_team(tournament_id, team_id):
    with _data_lock:
        teams = load_records(tournament_id, 'teams')
        if _find(teams, team_id) is None:
            return jsonify({'error': 'Team not found'}), 404
        save_records(tournament_id, 'teams', [t for t in teams if t['id'] != team_id])
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------

@app.route('/api/tournaments/<tournament_id>/fields', methods=['GET'])
@login_required
def api_list_fields(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    fields = sorted(load_records(tournament_id, 'fields'), key=lambda f: f['field_number'])
    return jsonify({'fields': fields})


@app.route('/api/tournaments/<tournament_id>/fields', methods=['POST'])
@roles_required(DIRECTOR)
def api_add_field(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    data = _request_data()
    field_number = coerce_int(data.get('field_number'), default=0, minimum=None)
    if field_number < 1:
        return jsonify({'error': 'Field number must be a positive whole number'}), 400
    with _data_lock:
        fields = load_records(tournament_id, 'fields')
        if any(f['field_number'] == field_number for f in fields):
            return jsonify({'error': f'Field {field_number} already exists'}), 409
        field = {
            'id': _next_id(fields, 'field'),
            'field_number': field_number,
            'name': _text(data, 'name') or f'Field {field_number}',
        }
        fields.append(field)
        save_records(tournament_id, 'fields', fields)
    return jsonify({'success': True, 'field': field}), 201


@app.route('/api/tournaments/<tournament_id>/fields/<field_id>', methods=['DELETE'])
@roles_required(DIRECTOR)
def api_delete_field(tournament_id, field_id):
    with _data_lock:
        fields = load_records(tournament_id, 'fields')
        if _find(fields, field_id) is None:
            return jsonify({'error': 'Field not found'}), 404
        save_records(tournament_id, 'fields', [f for f in fields if f['id'] != field_id])
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Schedule and matches
# ---------------------------------------------------------------------------

def _start_time(data: dict):
    start_date = _text(data, 'start_date')
    start_time = _text(data, 'start_time')
    if not start_date or not start_time:
        return None
    return f'{start_date}T{start_time}'


@app.route('/api/tournaments/<tournament_id>/schedule', methods=['POST'])
@roles_required(DIRECTOR)
def api_create_schedule(tournament_id):
    """Generate the full match schedule over approved teams and configured fields."""
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    data = _request_data()
    settings = load_settings(tournament_id)
    bracket_type = _text(data, 'bracket_type') or settings['bracket_type']
    match_duration = coerce_int(data.get('match_duration'), default=settings['match_duration_minutes'])
    break_duration = coerce_int(data.get('break_duration'), default=settings['break_duration_minutes'])
    per_field = bool(data.get('per_field_timeline', settings['per_field_timeline']))

    with _data_lock:
        teams = [t for t in load_records(tournament_id, 'teams') if t.get('status') == RegistrationStatus.APPROVED]
        fields = sorted(load_records(tournament_id, 'fields'), key=lambda f: f['field_number'])
        try:
            matches = build_schedule(bracket_type, teams, fields, _start_time(data),
                                     match_duration=match_duration, break_duration=break_duration,
                                     tournament_id=tournament_id, per_field=per_field)
        except TourneyError as e:
            return jsonify({'error': str(e)}), 400

        for index, match in enumerate(matches, start=1):
            match.id = f'match-{index}'
        for match in matches:
            if match.round_number == 1 and match.is_bye:
                advance_winner(matches, match)

        old_scores = load_records(tournament_id, 'spirit_scores')
        if old_scores:
            app.logger.warning(f'Discarding {len(old_scores)} spirit score(s) from the previous '
                               f'schedule of {tournament_id}', extra={'tournament_id': tournament_id})
            save_records(tournament_id, 'spirit_scores', [])
        save_matches(tournament_id, matches)

    app.logger.info(f'Generated {len(matches)} {bracket_type} matches for {tournament_id}',
                    extra={'tournament_id': tournament_id})
    return jsonify({'success': True, 'count': len(matches), 'matches': [m.to_dict() for m in matches]}), 201


def _match_view(match: Match, team_names: dict) -> dict:
    view = match.to_dict()
    view['team1_name'] = team_names.get(match.team1_id)
    view['team2_name'] = team_names.get(match.team2_id)
    return view


@app.route('/api/tournaments/<tournament_id>/matches')
@login_required
def api_list_matches(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    status = request.args.get('status')
    if status and status not in MatchStatus.ALL:
        return jsonify({'error': f'Unknown match status: {status}'}), 400
    matches = load_matches(tournament_id)
    if status:
        matches = [m for m in matches if m.status == status]
    team_names = {t['id']: t['name'] for t in load_records(tournament_id, 'teams')}
    return jsonify({'matches': [_match_view(m, team_names) for m in matches]})


def _parse_score(value):
    """Non-negative whole number, or None when the value is unusable."""
    if isinstance(value, bool):
        return None
    try:
        score = int(value)
    except (TypeError, ValueError):
        return None
    return score if score >= 0 and str(score) == str(value).strip() else None


@app.route('/api/matches/<tournament_id>/<match_id>/start', methods=['POST'])
@roles_required(*SCORING_ROLES)
def api_start_match(tournament_id, match_id):
    with _data_lock:
        matches = load_matches(tournament_id)
        match = next((m for m in matches if m.id == match_id), None)
        if match is None:
            return jsonify({'error': 'Match not found'}), 404
        if match.status != MatchStatus.SCHEDULED:
            return jsonify({'error': f'Match is already {match.status}'}), 409
        if match.team1_id is None or match.team2_id is None:
            return jsonify({'error': 'Both teams must be known before the match starts'}), 400
        match.status = MatchStatus.IN_PROGRESS
        save_matches(tournament_id, matches)
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/matches/<tournament_id>/<match_id>/score', methods=['POST'])
@roles_required(*SCORING_ROLES)
def api_update_score(tournament_id, match_id):
    """Record the live score."""
    data = _request_data()
    team1_score = _parse_score(data.get('team1_score'))
    team2_score = _parse_score(data.get('team2_score'))
    if team1_score is None or team2_score is None:
        return jsonify({'error': 'Scores must be non-negative whole numbers'}), 400
    with _data_lock:
        matches = load_matches(tournament_id)
        match = next((m for m in matches if m.id == match_id), None)
        if match is None:
            return jsonify({'error': 'Match not found'}), 404
        if match.status in (MatchStatus.COMPLETED, MatchStatus.CANCELLED):
            return jsonify({'error': f'Match is already {match.status}'}), 409
        if match.team1_id is None or match.team2_id is None:
            return jsonify({'error': 'Both teams must be known before scoring'}), 400
        match.team1_score = team1_score
        match.team2_score = team2_score
        match.status = MatchStatus.IN_PROGRESS
        save_matches(tournament_id, matches)
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/matches/<tournament_id>/<match_id>/end', methods=['POST'])
@roles_required(*SCORING_ROLES)
def api_end_match(tournament_id, match_id):
    """Complete a match, record the winner and advance it in an elimination bracket."""
    data = _request_data()
    with _data_lock:
        matches = load_matches(tournament_id)
        match = next((m for m in matches if m.id == match_id), None)
        if match is None:
            return jsonify({'error': 'Match not found'}), 404
        if match.status in (MatchStatus.COMPLETED, MatchStatus.CANCELLED):
            return jsonify({'error': f'Match is already {match.status}'}), 409
        if match.team1_id is None or match.team2_id is None:
            return jsonify({'error': 'Both teams must be known before the match ends'}), 400

        for key in ('team1_score', 'team2_score'):
            if key in data:
                score = _parse_score(data[key])
                if score is None:
                    return jsonify({'error': 'Scores must be non-negative whole numbers'}), 400
                setattr(match, key, score)

        if match.team1_score == match.team2_score:
            return jsonify({'error': 'Cannot end match with a tie. Please update the score.'}), 400

        match.winner_id = match.team1_id if match.team1_score > match.team2_score else match.team2_id
        match.status = MatchStatus.COMPLETED
        next_match = advance_winner(matches, match)
        save_matches(tournament_id, matches)

    app.logger.info(f'Match {match_id} in {tournament_id} completed, winner {match.winner_id}',
                    extra={'tournament_id': tournament_id, 'match_id': match_id})
    return jsonify({
        'success': True,
        'match': match.to_dict(),
        'advanced_to': next_match.id if next_match else None,
    })


# ---------------------------------------------------------------------------
# Leaderboards and spirit
# ---------------------------------------------------------------------------

@app.route('/api/tournaments/<tournament_id>/leaderboard')
@login_required
def api_leaderboard(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    teams = [t for t in load_records(tournament_id, 'teams') if t.get('status') == RegistrationStatus.APPROVED]
    matches = load_matches(tournament_id)
    leaderboard = calculate_leaderboard(matches, teams)
    return jsonify({
        'leaderboard': leaderboard,
        'summary': summarize_leaderboard(leaderboard),
        'match_stats': calculate_match_stats(matches),
    })


@app.route('/api/tournaments/<tournament_id>/spirit-leaderboard')
@login_required
def api_spirit_leaderboard(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    teams = load_records(tournament_id, 'teams')
    spirit_scores = load_records(tournament_id, 'spirit_scores')
    return jsonify({'leaderboard': calculate_spirit_leaderboard(spirit_scores, teams)})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/spirit', methods=['POST'])
@roles_required(TEAM_MANAGER)
def api_submit_spirit(tournament_id, match_id):
    """A team manager rates the opponent of their team after a completed match."""
    data = _request_data()
    scores = data.get('scores') or {}
    with _data_lock:
        match = next((m for m in load_matches(tournament_id) if m.id == match_id), None)
        if match is None:
            return jsonify({'error': 'Match not found'}), 404
        if match.status != MatchStatus.COMPLETED:
            return jsonify({'error': 'Spirit scores can only be submitted for completed matches'}), 400

        managed = {t['id'] for t in load_records(tournament_id, 'teams') if t.get('manager') == session['user']}
        own_teams = [tid for tid in (match.team1_id, match.team2_id) if tid in managed]
        scoring_team_id = data.get('scoring_team_id') or (own_teams[0] if len(own_teams) == 1 else None)
        if scoring_team_id not in own_teams:
            return jsonify({'error': 'You do not manage a team in this match'}), 403
        if match.team1_id is None or match.team2_id is None:
            return jsonify({'error': 'Spirit scores cannot be submitted for a bye'}), 400
        opponent_team_id = match.team2_id if scoring_team_id == match.team1_id else match.team1_id

        spirit_scores = load_records(tournament_id, 'spirit_scores')
        if has_spirit_score_been_submitted(spirit_scores, match_id, scoring_team_id):
            return jsonify({'error': 'Spirit score already submitted for this match'}), 409
        errors = validate_spirit_score(scores)
        if errors:
            return jsonify({'error': 'Validation failed', 'errors': errors}), 400

        record = format_spirit_score_for_submission(scores, match_id, scoring_team_id, opponent_team_id,
                                                    session['user'], data.get('comments'))
        spirit_scores.append(record)
        save_records(tournament_id, 'spirit_scores', spirit_scores)
    return jsonify({'success': True, 'spirit_score': record}), 201


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------

def _sort_announcements(announcements: list) -> list:
    newest_first = sorted(announcements, key=lambda a: a.get('created_at', ''), reverse=True)
    return sorted(newest_first, key=lambda a: not a.get('is_pinned'))


@app.route('/api/tournaments/<tournament_id>/announcements', methods=['GET'])
@login_required
def api_list_announcements(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    return jsonify({'announcements': _sort_announcements(load_records(tournament_id, 'announcements'))})


@app.route('/api/tournaments/<tournament_id>/announcements', methods=['POST'])
@roles_required(DIRECTOR)
def api_create_announcement(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    data = _request_data()
    title = _text(data, 'title')
    message = _text(data, 'message')
    if not title or not message:
        return jsonify({'error': 'Title and message are required'}), 400
    announcement_type = data.get('type') or 'general'
    if announcement_type not in ANNOUNCEMENT_TYPES:
        return jsonify({'error': f'Unknown announcement type: {announcement_type}'}), 400
    with _data_lock:
        announcements = load_records(tournament_id, 'announcements')
        announcement = {
            'id': _next_id(announcements, 'announcement'),
            'title': title,
            'message': message,
            'type': announcement_type,
            'is_pinned': bool(data.get('is_pinned', False)),
            'created_by': session['user'],
            'created_at': _now(),
        }
        announcements.append(announcement)
        save_records(tournament_id, 'announcements', announcements)
    return jsonify({'success': True, 'announcement': announcement}), 201


@app.route('/api/tournaments/<tournament_id>/announcements/<announcement_id>/pin', methods=['POST'])
@roles_required(DIRECTOR)
def api_toggle_pin(tournament_id, announcement_id):
    with _data_lock:
        announcements = load_records(tournament_id, 'announcements')
        announcement = _find(announcements, announcement_id)
        if announcement is None:
            return jsonify({'error': 'Announcement not found'}), 404
        announcement['is_pinned'] = not announcement.get('is_pinned', False)
        save_records(tournament_id, 'announcements', announcements)
    return jsonify({'success': True, 'announcement': announcement})


@app.route('/api/tournaments/<tournament_id>/announcements/<announcement_id>', methods=['DELETE'])
@roles_required(DIRECTOR)
def api_delete_announcement(tournament_id, announcement_id):
    with _data_lock:
        announcements = load_records(tournament_id, 'announcements')
        if _find(announcements, announcement_id) is None:
            return jsonify({'error': 'Announcement not found'}), 404
        save_records(tournament_id, 'announcements', [a for a in announcements if a['id'] != announcement_id])
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Sponsors
# ---------------------------------------------------------------------------

SPONSOR_FIELDS = ('name', 'website', 'logo_url', 'description', 'tier')


@app.route('/api/tournaments/<tournament_id>/sponsors', methods=['GET'])
@login_required
def api_list_sponsors(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    sponsors = sorted(load_records(tournament_id, 'sponsors'), key=lambda s: s.get('display_order', 0))
    return jsonify({'sponsors': sponsors})


@app.route('/api/tournaments/<tournament_id>/sponsors', methods=['POST'])
@roles_required(DIRECTOR)
def api_create_sponsor(tournament_id):
    if _find(load_tournaments(), tournament_id) is None:
        return jsonify({'error': 'Tournament not found'}), 404
    data = _request_data()
    if not _text(data, 'name'):
        return jsonify({'error': 'Sponsor name is required'}), 400
    with _data_lock:
        sponsors = load_records(tournament_id, 'sponsors')
        sponsor = {key: _text(data, key) for key in SPONSOR_FIELDS}
        sponsor['id'] = _next_id(sponsors, 'sponsor')
        sponsor['display_order'] = coerce_int(data.get('display_order'), default=len(sponsors))
        sponsors.append(sponsor)
        save_records(tournament_id, 'sponsors', sponsors)
    return jsonify({'success': True, 'sponsor': sponsor}), 201


@app.route('/api/tournaments/<tournament_id>/sponsors/<sponsor_id>', methods=['PUT'])
@roles_required(DIRECTOR)
def api_update_sponsor(tournament_id, sponsor_id):
    data = _request_data()
    if 'name' in data and not _text(data, 'name'):
        return jsonify({'error': 'Sponsor name is required'}), 400
    with _data_lock:
        sponsors = load_records(tournament_id, 'sponsors')
        sponsor = _find(sponsors, sponsor_id)
        if sponsor is None:
            return jsonify({'error': 'Sponsor not found'}), 404
        for key in SPONSOR_FIELDS:
            if key in data:
                sponsor[key] = _text(data, key)
        if 'display_order' in data:
            sponsor['display_order'] = coerce_int(data['display_order'], default=sponsor.get('display_order', 0))
        save_records(tournament_id, 'sponsors', sponsors)
    return jsonify({'success': True, 'sponsor': sponsor})


@app.route('/api/tournaments/<tournament_id>/sponsors/<sponsor_id>', methods=['DELETE'])
@roles_required(DIRECTOR)
def api_delete_sponsor(tournament_id, sponsor_id):
    with _data_lock:
        sponsors = load_records(tournament_id, 'sponsors')
        if _find(sponsors, sponsor_id) is None:
            return jsonify({'error': 'Sponsor not found'}), 404
        save_records(tournament_id, 'sponsors', [s for s in sponsors if s['id'] != sponsor_id])
    return jsonify({'success': True})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
