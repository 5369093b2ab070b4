"""
Tests for role metadata and route access checks.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tourney.roles import (
    ALL_ROLES,
    ROLE_INFO,
    can_access,
    get_module_for_role,
    get_role_label,
    has_coaching_access,
    has_tournament_access,
    is_approved,
    requires_approval,
)


class TestRoleInfo:
    """Tests for role metadata."""

    def test_every_role_described(self):
        assert set(ROLE_INFO) == set(ALL_ROLES)
        assert len(ALL_ROLES) == 12

    def test_modules(self):
        assert has_coaching_access('coach')
        assert not has_coaching_access('player')
        assert has_tournament_access('scoring_team')
        assert get_module_for_role('data_team') == 'coaching'
        assert get_module_for_role('sponsor') == 'tournament'
        assert get_module_for_role('janitor') is None

    def test_labels(self):
        assert get_role_label('tournament_director') == 'Tournament Director'
        assert get_role_label('unknown') == 'unknown'


class TestAccess:
    """Tests for approval and role gating."""

    def test_only_players_skip_approval(self):
        assert not requires_approval('player')
        assert requires_approval('spectator')
        assert requires_approval('coach')

    def test_is_approved(self):
        assert is_approved({'role': 'player'})
        assert is_approved({'role': 'volunteer', 'approval_status': 'approved'})
        assert not is_approved({'role': 'volunteer', 'approval_status': 'pending'})
        assert not is_approved(None)

    def test_must_be_signed_in(self):
        assert not can_access(None)
        assert not can_access({})

    def test_pending_blocked(self):
        profile = {'role': 'tournament_director', 'approval_status': 'pending'}
        assert not can_access(profile, ['tournament_director'])

    def test_rejected_blocked(self):
        assert not can_access({'role': 'volunteer', 'approval_status': 'rejected'})

    def test_role_must_be_allowed(self):
        profile = {'role': 'team_manager', 'approval_status': 'approved'}
        assert can_access(profile, ['team_manager'])
        assert not can_access(profile, ['tournament_director'])

    def test_no_roles_means_any_approved_user(self):
        assert can_access({'role': 'spectator', 'approval_status': 'approved'})
        assert can_access({'role': 'player'})
