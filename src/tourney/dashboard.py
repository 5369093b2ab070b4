"""
Role-specific dashboard widgets.

``build_dashboard`` receives a snapshot of stored data and returns the stat
cards and quick actions shown to the signed-in user.
"""
import datetime
from typing import Dict, List, Optional

from tourney.models import MatchStatus, as_match
from tourney.roles import CoachingRole, TournamentRole
from tourney.spirit import calculate_average_spirit_score
from tourney.standings import calculate_leaderboard
from tourney.tournaments import RegistrationStatus, TournamentStatus

UPCOMING_WINDOW_DAYS = 7

WELCOME_MESSAGES = {
    CoachingRole.PROGRAMME_DIRECTOR: "You have full access to all coaching programmes.",
    CoachingRole.PROGRAMME_MANAGER: "Manage your assigned programmes and track progress.",
    CoachingRole.COACH: "Track your sessions and children's progress.",
    CoachingRole.DATA_TEAM: "Validate data and generate insightful reports.",
    CoachingRole.SITE_COORDINATOR: "Monitor your site and support coaches.",
    TournamentRole.TOURNAMENT_DIRECTOR: "Full control over all tournament operations.",
    TournamentRole.TEAM_MANAGER: "Manage your team and register for tournaments.",
    TournamentRole.PLAYER: "View your schedule and team performance.",
    TournamentRole.VOLUNTEER: "Enter match scores for your assigned field.",
    TournamentRole.SCORING_TEAM: "Validate and ensure accurate tournament data.",
    TournamentRole.SPONSOR: "Track your brand visibility and engagement.",
    TournamentRole.SPECTATOR: "Follow live tournaments and match results.",
}
DEFAULT_WELCOME = "Welcome to the tournament platform"


def _stat(title, value, description) -> Dict:
    return {'title': title, 'value': str(value), 'description': description}


def _action(label, link) -> Dict:
    return {'label': label, 'link': link}


def _matches(snapshot) -> List:
    return [m for m in (as_match(r) for r in snapshot.get('matches', [])) if m is not None]


def _upcoming(matches, now, days=UPCOMING_WINDOW_DAYS) -> List:
    horizon = now + datetime.timedelta(days=days)
    return [m for m in matches
            if m.status == MatchStatus.SCHEDULED and m.scheduled_time is not None
            and now < m.scheduled_time.replace(tzinfo=None) <= horizon]


def _today(matches, now) -> List:
    return [m for m in matches
            if m.scheduled_time is not None and m.scheduled_time.date() == now.date()]


def _count_status(items, *statuses) -> int:
    return sum(1 for item in items if item.get('status') in statuses)


def _director(profile, snapshot, now):
    tournaments = snapshot.get('tournaments', [])
    teams = snapshot.get('teams', [])
    pending_users = sum(1 for u in snapshot.get('users', []) if u.get('approval_status') == 'pending')
    pending_teams = _count_status(teams, RegistrationStatus.PENDING)
    stats = [
        _stat("Active Tournaments", _count_status(tournaments, TournamentStatus.IN_PROGRESS,
                                                  TournamentStatus.REGISTRATION_OPEN), "Currently running"),
        _stat("Registered Teams", _count_status(teams, RegistrationStatus.APPROVED), "This season"),
        _stat("Pending Approvals", pending_users + pending_teams, "Awaiting review"),
        _stat("Upcoming Matches", len(_upcoming(_matches(snapshot), now)), "Next 7 days"),
    ]
    actions = [
        _action("Create Tournament", "/tournaments/create"),
        _action("View Tournaments", "/tournaments"),
        _action("Approve Teams", "/tournaments/approvals"),
    ]
    return stats, actions


def _team_manager(profile, snapshot, now):
    my_teams = [t for t in snapshot.get('teams', []) if t.get('manager') == profile.get('username')]
    my_ids = {t.get('id') for t in my_teams}
    matches = _matches(snapshot)
    upcoming = [m for m in _upcoming(matches, now) if m.team1_id in my_ids or m.team2_id in my_ids]
    received = [s for s in snapshot.get('spirit_scores', []) if s.get('opponent_team_id') in my_ids]
    stats = [
        _stat("My Teams", len(my_teams), "Registered"),
        _stat("Upcoming Matches", len(upcoming), "Next 7 days"),
        _stat("Spirit Score Avg", calculate_average_spirit_score(received), "Current tournament"),
    ]
    actions = [
        _action("Manage Teams", "/teams"),
        _action("View Tournaments", "/tournaments"),
        _action("Submit Spirit Score", "/tournaments/spirit-score"),
    ]
    return stats, actions


def _player(profile, snapshot, now):
    team_id = profile.get('team_id')
    matches = _matches(snapshot)
    ranking = "-"
    played = 0
    if team_id is not None:
        played = sum(1 for m in matches if m.has_team(team_id))
        approved = [t for t in snapshot.get('teams', []) if t.get('status') == RegistrationStatus.APPROVED]
        for entry in calculate_leaderboard(matches, approved):
            if entry['team_id'] == team_id:
                ranking = f"#{entry['rank']}"
                break
    stats = [
        _stat("My Matches", played, "This tournament"),
        _stat("Team Ranking", ranking, "Current standing"),
    ]
    actions = [
        _action("My Schedule", "/player/schedule"),
        _action("Leaderboard", "/tournaments/leaderboard"),
    ]
    return stats, actions


def _volunteer(profile, snapshot, now):
    field_number = profile.get('field_number')
    todays = _today(_matches(snapshot), now)
    if field_number is not None:
        todays = [m for m in todays if m.field_number == field_number]
    stats = [
        _stat("My Field", field_number if field_number is not None else "-", "Assigned field"),
        _stat("Today's Matches", len(todays), "On my field"),
    ]
    actions = [
        _action("Enter Scores", "/scoring/live"),
        _action("My Schedule", "/volunteer/schedule"),
    ]
    return stats, actions


def _scoring_team(profile, snapshot, now):
    matches = _matches(snapshot)
    live = sum(1 for m in matches if m.status == MatchStatus.IN_PROGRESS)
    completed_today = sum(1 for m in _today(matches, now) if m.status == MatchStatus.COMPLETED)
    stats = [
        _stat("Pending Validations", live, "Scores to verify"),
        _stat("Validated Today", completed_today, "Scores approved"),
    ]
    actions = [
        _action("Validate Scores", "/scoring/validate"),
        _action("View All Matches", "/tournaments/matches"),
    ]
    return stats, actions


def _sponsor(profile, snapshot, now):
    teams = snapshot.get('teams', [])
    stats = [
        _stat("Tournament Reach", _count_status(teams, RegistrationStatus.APPROVED), "Total participants"),
        _stat("Brand Visibility", len(snapshot.get('tournaments', [])), "Tournaments"),
    ]
    actions = [
        _action("View Dashboard", "/sponsor/dashboard"),
        _action("Analytics", "/sponsor/analytics"),
    ]
    return stats, actions


def _spectator(profile, snapshot, now):
    stats = [
        _stat("Live Tournaments", _count_status(snapshot.get('tournaments', []),
                                                TournamentStatus.IN_PROGRESS), "Currently ongoing"),
        _stat("Matches Today", len(_today(_matches(snapshot), now)), "Across all fields"),
    ]
    actions = [
        _action("Live Scores", "/public/live-scores"),
        _action("View Tournaments", "/public/tournaments"),
    ]
    return stats, actions


BUILDERS = {
    TournamentRole.TOURNAMENT_DIRECTOR: _director,
    TournamentRole.TEAM_MANAGER: _team_manager,
    TournamentRole.PLAYER: _player,
    TournamentRole.VOLUNTEER: _volunteer,
    TournamentRole.SCORING_TEAM: _scoring_team,
    TournamentRole.SPONSOR: _sponsor,
    TournamentRole.SPECTATOR: _spectator,
}


def build_dashboard(profile: Dict, snapshot: Dict, now: Optional[datetime.datetime] = None) -> Dict:
    """
    Args:
        profile: The signed-in user's profile (username, name, role, ...).
        snapshot: Stored data keyed by 'tournaments', 'teams', 'matches',
            'spirit_scores' and 'users'. Missing keys count as empty.
        now: Reference time, defaults to the current local time.

    Returns:
        Dict with 'greeting', 'welcome', 'stats' and 'quick_actions'. Roles outside the
        tournament module get a welcome message only.
    """
    now = now or datetime.datetime.now()
    role = profile.get('role')
    builder = BUILDERS.get(role)
    stats, actions = builder(profile, snapshot, now) if builder else ([], [])
    first_name = (profile.get('name') or '').split(' ')[0] or "User"
    return {
        'greeting': f"Welcome back, {first_name}!",
        'welcome': WELCOME_MESSAGES.get(role, DEFAULT_WELCOME),
        'stats': stats,
        'quick_actions': actions,
    }
