"""
Tests for tournament lifecycle helpers.
"""
import pytest
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tourney.tournaments import (
    can_register_for_tournament,
    format_date_range,
    get_days_until,
    get_registration_status_label,
    get_status_label,
    get_tournament_progress,
    validate_tournament_data,
)

NOW = datetime(2026, 6, 1, 12, 0)


def valid_form(**overrides):
    form = {
        'name': 'Summer Open',
        'location': 'Riverside Park',
        'start_date': '2026-07-04',
        'end_date': '2026-07-06',
        'registration_deadline': '2026-06-20',
        'max_teams': 16,
        'age_divisions': ['Open'],
    }
    form.update(overrides)
    return form


class TestValidateTournamentData:
    """Tests for the create/edit form validation."""

    def test_valid(self):
        assert validate_tournament_data(valid_form()) is None

    def test_short_name(self):
        errors = validate_tournament_data(valid_form(name='ab'))
        assert errors == {'name': 'Tournament name must be at least 3 characters'}

    def test_missing_location(self):
        assert 'location' in validate_tournament_data(valid_form(location=''))

    def test_missing_dates(self):
        errors = validate_tournament_data(valid_form(start_date='', end_date=None))
        assert errors['start_date'] == 'Start date is required'
        assert errors['end_date'] == 'End date is required'

    def test_end_before_start(self):
        errors = validate_tournament_data(valid_form(end_date='2026-07-01'))
        assert errors == {'end_date': 'End date must be after start date'}

    def test_deadline_after_start(self):
        errors = validate_tournament_data(valid_form(registration_deadline='2026-07-05'))
        assert errors == {'registration_deadline': 'Registration deadline must be before start date'}

    def test_deadline_with_utc_offset(self):
        assert validate_tournament_data(valid_form(registration_deadline='2026-06-20T00:00:00+00:00')) is None
        errors = validate_tournament_data(valid_form(registration_deadline='2026-07-05T12:00:00+02:00'))
        assert errors == {'registration_deadline': 'Registration deadline must be before start date'}

    def test_max_teams(self):
        assert 'max_teams' in validate_tournament_data(valid_form(max_teams=1))
        assert validate_tournament_data(valid_form(max_teams=None)) is None

    def test_age_divisions_required(self):
        assert 'age_divisions' in validate_tournament_data(valid_form(age_divisions=[]))

    def test_empty_form(self):
        assert len(validate_tournament_data(None)) == 5


class TestRegistration:
    """Tests for registration windows."""

    def test_open_without_deadline(self):
        assert can_register_for_tournament({'status': 'registration_open'}, now=NOW)

    def test_closed_status(self):
        assert not can_register_for_tournament({'status': 'draft'}, now=NOW)

    def test_deadline_passed(self):
        tournament = {'status': 'registration_open', 'registration_deadline': '2026-05-31'}
        assert not can_register_for_tournament(tournament, now=NOW)

    def test_deadline_ahead(self):
        tournament = {'status': 'registration_open', 'registration_deadline': '2026-06-20'}
        assert can_register_for_tournament(tournament, now=NOW)

    def test_deadline_with_utc_offset(self):
        tournament = {'status': 'registration_open', 'registration_deadline': '2026-06-20T00:00:00+00:00'}
        assert can_register_for_tournament(tournament, now=NOW)
        tournament['registration_deadline'] = '2026-05-20T00:00:00-05:00'
        assert not can_register_for_tournament(tournament, now=NOW)

    def test_no_tournament(self):
        assert not can_register_for_tournament(None)


class TestLabelsAndDates:
    """Tests for display helpers."""

    def test_status_label(self):
        assert get_status_label('registration_open') == 'Registration Open'
        assert get_status_label(None) == 'Unknown'

    def test_registration_status_label(self):
        assert get_registration_status_label('approved') == 'Approved'
        assert get_registration_status_label('mystery') == 'Pending Approval'

    def test_date_range(self):
        assert format_date_range('2026-07-04', '2026-07-04') == 'Jul 4, 2026'
        assert format_date_range('2026-07-04', '2026-07-06') == 'Jul 4 - 6, 2026'
        assert format_date_range('2026-12-30', '2027-01-02') == 'Dec 30, 2026 - Jan 2, 2027'
        assert format_date_range(None, '2026-07-06') == 'TBD'

    def test_days_until(self):
        assert get_days_until('2026-06-03', now=NOW) == 2
        assert get_days_until('2026-06-01T18:00', now=NOW) == 1
        assert get_days_until('bad', now=NOW) is None

    def test_progress(self):
        tournament = {'start_date': '2026-06-01', 'end_date': '2026-06-02'}
        assert get_tournament_progress(tournament, now=NOW) == {'label': 'In Progress', 'progress': 50}
        assert get_tournament_progress(tournament, now=datetime(2026, 6, 3))['label'] == 'Completed'
        upcoming = get_tournament_progress(
            dict(tournament, created_at='2026-05-01T00:00'), now=datetime(2026, 5, 16))
        assert upcoming == {'label': 'Upcoming', 'progress': 48}
        assert get_tournament_progress(None)['progress'] == 0
