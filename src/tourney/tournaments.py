"""
Tournament lifecycle constants and helpers used by the registration and
tournament pages.
"""
import datetime
from typing import Dict, Optional

from tourney.models import parse_datetime


class TournamentStatus:
    DRAFT = "draft"
    REGISTRATION_OPEN = "registration_open"
    REGISTRATION_CLOSED = "registration_closed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (DRAFT, REGISTRATION_OPEN, REGISTRATION_CLOSED, IN_PROGRESS, COMPLETED, CANCELLED)


class TournamentFormat:
    ROUND_ROBIN = "round_robin"
    ELIMINATION = "elimination"
    POOL_PLAY = "pool_play"
    SWISS = "swiss"

    ALL = (ROUND_ROBIN, ELIMINATION, POOL_PLAY, SWISS)


class RegistrationStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    ALL = (PENDING, APPROVED, REJECTED, WITHDRAWN)


AGE_DIVISIONS = [
    "U10",
    "U12",
    "U14",
    "U17",
    "U20",
    "Open",
    "Mixed",
    "Women",
    "Masters",
]

REGISTRATION_STATUS_LABELS = {
    RegistrationStatus.PENDING: "Pending Approval",
    RegistrationStatus.APPROVED: "Approved",
    RegistrationStatus.REJECTED: "Rejected",
    RegistrationStatus.WITHDRAWN: "Withdrawn",
}


def _now(reference=None) -> datetime.datetime:
    return reference or datetime.datetime.now()


def _as_datetime(value) -> Optional[datetime.datetime]:
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return datetime.datetime.combine(value, datetime.time())
    return parse_datetime(value)


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ''


def get_status_label(status) -> str:
    """'registration_open' -> 'Registration Open'."""
    if not status:
        return "Unknown"
    return " ".join(word.capitalize() for word in str(status).split("_"))


def get_registration_status_label(status) -> str:
    return REGISTRATION_STATUS_LABELS.get(status, REGISTRATION_STATUS_LABELS[RegistrationStatus.PENDING])


def is_registration_open(tournament, now=None) -> bool:
    """Open status and, when a deadline is set, the deadline still ahead."""
    if not tournament:
        return False
    if tournament.get('status') != TournamentStatus.REGISTRATION_OPEN:
        return False
    deadline = _as_datetime(tournament.get('registration_deadline'))
    if deadline is None:
        return True
    return deadline > _now(now)


def can_register_for_tournament(tournament, now=None) -> bool:
    return is_registration_open(tournament, now)


def validate_tournament_data(data) -> Optional[Dict[str, str]]:
    """
    Validate a tournament create/edit form.

    Returns a dict of field -> message, or None when everything checks out.
    """
    errors = {}
    data = data or {}

    name = _text(data.get('name'))
    if len(name) < 3:
        errors['name'] = "Tournament name must be at least 3 characters"

    location = _text(data.get('location'))
    if len(location) < 3:
        errors['location'] = "Location is required"

    start = _as_datetime(data.get('start_date'))
    end = _as_datetime(data.get('end_date'))
    if not data.get('start_date'):
        errors['start_date'] = "Start date is required"
    elif start is None:
        errors['start_date'] = "Start date is not a valid date"
    if not data.get('end_date'):
        errors['end_date'] = "End date is required"
    elif end is None:
        errors['end_date'] = "End date is not a valid date"

    if start and end and end < start:
        errors['end_date'] = "End date must be after start date"

    deadline = _as_datetime(data.get('registration_deadline'))
    if deadline and start and deadline >= start:
        errors['registration_deadline'] = "Registration deadline must be before start date"

    max_teams = data.get('max_teams')
    if max_teams not in (None, ''):
        try:
            if int(max_teams) < 2:
                errors['max_teams'] = "Tournament must allow at least 2 teams"
        except (TypeError, ValueError):
            errors['max_teams'] = "Tournament must allow at least 2 teams"

    if not data.get('age_divisions'):
        errors['age_divisions'] = "At least one age division is required"

    return errors or None


def format_date_range(start_date, end_date) -> str:
    """'Jul 4, 2026', 'Jul 4 - 6, 2026' or 'Dec 30, 2026 - Jan 2, 2027'."""
    start = _as_datetime(start_date)
    end = _as_datetime(end_date)
    if start is None or end is None:
        return "TBD"

    def long_form(d):
        return f"{d.strftime('%b')} {d.day}, {d.year}"

    if start.date() == end.date():
        return long_form(start)
    if start.month == end.month and start.year == end.year:
        return f"{start.strftime('%b')} {start.day} - {end.day}, {end.year}"
    return f"{long_form(start)} - {long_form(end)}"


def get_days_until(date, now=None) -> Optional[int]:
    target = _as_datetime(date)
    if target is None:
        return None
    diff = target - _now(now)
    # Partial days count as a whole day still to go
    return -((-diff) // datetime.timedelta(days=1))


def get_tournament_progress(tournament, now=None) -> Dict:
    """Label and percentage for the tournament progress bar."""
    if not tournament:
        return {'label': "Unknown", 'progress': 0}

    now = _now(now)
    start = _as_datetime(tournament.get('start_date'))
    end = _as_datetime(tournament.get('end_date'))
    if start is None or end is None:
        return {'label': "Unknown", 'progress': 0}

    if now < start:
        created = _as_datetime(tournament.get('created_at')) or start
        total = (start - created).total_seconds()
        elapsed = (now - created).total_seconds()
        progress = min(max(elapsed / total * 100, 0), 100) if total > 0 else 0
        return {'label': "Upcoming", 'progress': round(progress)}

    if now > end:
        return {'label': "Completed", 'progress': 100}

    total = (end - start).total_seconds()
    elapsed = (now - start).total_seconds()
    progress = elapsed / total * 100 if total > 0 else 100
    return {'label': "In Progress", 'progress': round(progress)}
