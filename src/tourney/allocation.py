"""
Assigning start times and fields to generated matches.
"""
import datetime
import logging
from typing import Dict, List

from tourney.errors import ScheduleValidationError
from tourney.formats import generate_schedule
from tourney.models import Field, MatchStatus, parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_MATCH_DURATION = 90
DEFAULT_BREAK_DURATION = 10


def _slot_length(match_duration, break_duration) -> datetime.timedelta:
    return datetime.timedelta(minutes=int(match_duration) + int(break_duration))


def distribute_matches_across_time(matches, start_time, match_duration=DEFAULT_MATCH_DURATION,
                                   break_duration=DEFAULT_BREAK_DURATION):
    """
    Give each match a ``scheduled_time`` on one global timeline.

    The first match starts at ``start_time`` and every following match starts
    ``match_duration + break_duration`` minutes after the previous one,
    whatever field it is on. Field assignments are left alone.
    """
    if not matches:
        return matches

    current_time = parse_datetime(start_time)
    if current_time is None:
        logger.warning("No usable start time (%r); matches left unscheduled", start_time)
        return list(matches)
    step = _slot_length(match_duration, break_duration)

    scheduled = list(matches)
    for match in scheduled:
        match.scheduled_time = current_time
        current_time = current_time + step
    return scheduled


def distribute_matches_per_field(matches, start_time, match_duration=DEFAULT_MATCH_DURATION,
                                 break_duration=DEFAULT_BREAK_DURATION):
    """Like ``distribute_matches_across_time`` but with one timeline per field."""
    if not matches:
        return matches

    start = parse_datetime(start_time)
    if start is None:
        logger.warning("No usable start time (%r); matches left unscheduled", start_time)
        return list(matches)
    step = _slot_length(match_duration, break_duration)

    next_free: Dict[object, datetime.datetime] = {}
    scheduled = list(matches)
    for match in scheduled:
        slot_time = next_free.get(match.field_number, start)
        match.scheduled_time = slot_time
        next_free[match.field_number] = slot_time + step
    return scheduled


def assign_fields(matches, fields):
    """Attach configured fields to matches round-robin, as the schedule is saved."""
    if not fields:
        return matches
    fields = [f if isinstance(f, Field) else Field.from_dict(f) for f in fields]
    for index, match in enumerate(matches):
        field = fields[index % len(fields)]
        match.field_id = field.id
        match.field_number = field.field_number
        if not match.status:
            match.status = MatchStatus.SCHEDULED
    return matches


def build_schedule(bracket_type: str, teams, fields, start_time,
                   match_duration=DEFAULT_MATCH_DURATION, break_duration=DEFAULT_BREAK_DURATION,
                   tournament_id=None, per_field: bool = False) -> List:
    """
    Generate, time and place every match of a tournament.

    Raises ``ScheduleValidationError`` for fewer than two teams, no fields or
    no start time, and ``UnsupportedFormatError`` for formats with no
    generator.
    """
    if not teams or len(teams) < 2:
        raise ScheduleValidationError("At least 2 approved teams are required")
    if not fields:
        raise ScheduleValidationError("At least 1 field is required. Please add fields first.")
    if not start_time:
        raise ScheduleValidationError("Please select start date and time")
    if parse_datetime(start_time) is None:
        raise ScheduleValidationError(f"Invalid start time: {start_time}")

    matches = generate_schedule(bracket_type, teams, len(fields))
    # Place before timing so a per-field timeline sees the final field numbers.
    assign_fields(matches, fields)
    if per_field:
        distribute_matches_per_field(matches, start_time, match_duration, break_duration)
    else:
        distribute_matches_across_time(matches, start_time, match_duration, break_duration)

    for match in matches:
        match.tournament_id = tournament_id

    logger.info("Built %s schedule: %d matches over %d field(s)", bracket_type, len(matches), len(fields))
    return matches
