"""
User roles for the coaching and tournament modules, and the access checks that
gate routes on them.
"""
from typing import Dict, Iterable, Optional


class CoachingRole:
    PROGRAMME_DIRECTOR = "programme_director"
    PROGRAMME_MANAGER = "programme_manager"
    COACH = "coach"
    DATA_TEAM = "data_team"
    SITE_COORDINATOR = "site_coordinator"

    ALL = (PROGRAMME_DIRECTOR, PROGRAMME_MANAGER, COACH, DATA_TEAM, SITE_COORDINATOR)


class TournamentRole:
    TOURNAMENT_DIRECTOR = "tournament_director"
    TEAM_MANAGER = "team_manager"
    PLAYER = "player"
    VOLUNTEER = "volunteer"
    SCORING_TEAM = "scoring_team"
    SPONSOR = "sponsor"
    SPECTATOR = "spectator"

    ALL = (TOURNAMENT_DIRECTOR, TEAM_MANAGER, PLAYER, VOLUNTEER, SCORING_TEAM, SPONSOR, SPECTATOR)


ALL_ROLES = CoachingRole.ALL + TournamentRole.ALL

# Roles that may update live scores
SCORING_ROLES = (
    TournamentRole.TOURNAMENT_DIRECTOR,
    TournamentRole.VOLUNTEER,
    TournamentRole.SCORING_TEAM,
)

ROLE_INFO: Dict[str, Dict[str, str]] = {
    # Coaching
    CoachingRole.PROGRAMME_DIRECTOR: {
        'label': 'Programme Director',
        'description': 'Assigns schools and batches to programme managers',
        'module': 'coaching',
        'level': 'admin',
    },
    CoachingRole.PROGRAMME_MANAGER: {
        'label': 'Programme Manager',
        'description': 'Manages child profiles, sessions, and generates reports',
        'module': 'coaching',
        'level': 'manager',
    },
    CoachingRole.COACH: {
        'label': 'Coach / Session Facilitator',
        'description': 'Records attendance, home visits, and assessments',
        'module': 'coaching',
        'level': 'coach',
    },
    CoachingRole.DATA_TEAM: {
        'label': 'Reporting / Data Team',
        'description': 'Validates data and generates reports',
        'module': 'coaching',
        'level': 'sub_admin',
    },
    CoachingRole.SITE_COORDINATOR: {
        'label': 'Site Coordinator',
        'description': 'Monitors site attendance and supports coaches',
        'module': 'coaching',
        'level': 'site',
    },
    # Tournament
    TournamentRole.TOURNAMENT_DIRECTOR: {
        'label': 'Tournament Director',
        'description': 'Full control over tournaments and operations',
        'module': 'tournament',
        'level': 'admin',
    },
    TournamentRole.TEAM_MANAGER: {
        'label': 'Team Manager / Captain',
        'description': 'Manages team registration and roster',
        'module': 'tournament',
        'level': 'team',
    },
    TournamentRole.PLAYER: {
        'label': 'Player',
        'description': 'Views schedules and results',
        'module': 'tournament',
        'level': 'read',
    },
    TournamentRole.VOLUNTEER: {
        'label': 'Volunteer / Field Official',
        'description': 'Inputs live scores and marks attendance',
        'module': 'tournament',
        'level': 'field',
    },
    TournamentRole.SCORING_TEAM: {
        'label': 'Scoring / Tech Team',
        'description': 'Validates data and ensures accuracy',
        'module': 'tournament',
        'level': 'sub_admin',
    },
    TournamentRole.SPONSOR: {
        'label': 'Sponsor / Partner',
        'description': 'Accesses branded dashboards',
        'module': 'tournament',
        'level': 'read',
    },
    TournamentRole.SPECTATOR: {
        'label': 'Spectator / Fan',
        'description': 'Follows teams and checks live scores',
        'module': 'tournament',
        'level': 'public',
    },
}


def is_valid_role(role) -> bool:
    return role in ALL_ROLES


def has_coaching_access(role) -> bool:
    return role in CoachingRole.ALL


def has_tournament_access(role) -> bool:
    return role in TournamentRole.ALL


def get_module_for_role(role) -> Optional[str]:
    if has_coaching_access(role):
        return "coaching"
    if has_tournament_access(role):
        return "tournament"
    return None


def get_role_label(role) -> str:
    info = ROLE_INFO.get(role)
    return info['label'] if info else role


def requires_approval(role) -> bool:
    """Players can use the app straight away; every other role is vetted."""
    return role != TournamentRole.PLAYER


def is_approved(profile) -> bool:
    if not profile:
        return False
    if not requires_approval(profile.get('role')):
        return True
    return profile.get('approval_status') == 'approved'


def can_access(profile, allowed_roles: Iterable[str] = ()) -> bool:
    """
    Decide whether a signed-in profile may open a route.

    The profile must exist, be approved (players excepted) and, when
    ``allowed_roles`` is given, hold one of those roles.
    """
    if not profile:
        return False
    if not is_approved(profile):
        return False
    allowed_roles = tuple(allowed_roles)
    if allowed_roles and profile.get('role') not in allowed_roles:
        return False
    return True
