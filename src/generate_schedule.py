# Command line entry point: generate and print a tournament schedule

import argparse
import sys
import yaml
from tourney.allocation import build_schedule, DEFAULT_MATCH_DURATION, DEFAULT_BREAK_DURATION
from tourney.elimination import advance_winner
from tourney.errors import TourneyError
from tourney.logging_setup import configure_logging
from tourney.models import BracketType, Field, Team


def load_teams(file_path):
    """Teams file is a YAML list of names or of {id, name, age_division} mappings."""
    teams = []
    with open(file_path, mode='r', encoding='utf-8') as file:
        entries = yaml.safe_load(file) or []
    for entry in entries:
        if isinstance(entry, dict):
            data = dict(entry)
            data.setdefault('id', data.get('name'))
            teams.append(Team.from_dict(data))
        else:
            teams.append(Team(id=str(entry), name=str(entry)))
    return teams


def make_fields(count):
    return [Field(id=n, field_number=n) for n in range(1, count + 1)]


def format_schedule(matches, teams):
    names = {team.id: team.name for team in teams}
    lines = []
    current_round = None
    for match in matches:
        if match.round_number != current_round:
            current_round = match.round_number
            if lines:
                lines.append("")
            lines.append(match.round_name)
        time_label = match.scheduled_time.strftime('%H:%M') if match.scheduled_time else '--:--'
        if match.is_bye:
            pairing = f"{names.get(match.team1_id, match.team1_id)} BYE"
        else:
            team1 = names.get(match.team1_id, match.team1_id) if match.team1_id is not None else 'TBD'
            team2 = names.get(match.team2_id, match.team2_id) if match.team2_id is not None else 'TBD'
            pairing = f"{team1} vs {team2}"
        lines.append(f"{time_label}  Field {match.field_number}  {pairing}")
    return lines


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a tournament schedule.")
    parser.add_argument('teams_file', help="YAML list of team names or team mappings")
    parser.add_argument('--format', dest='bracket_type', default=BracketType.ROUND_ROBIN,
                        help="round_robin or elimination")
    parser.add_argument('--fields', type=int, default=1, help="number of fields")
    parser.add_argument('--start', required=True, help="first match start, e.g. 2026-07-04T09:00")
    parser.add_argument('--duration', type=int, default=DEFAULT_MATCH_DURATION, help="match length in minutes")
    parser.add_argument('--break', dest='break_duration', type=int, default=DEFAULT_BREAK_DURATION,
                        help="break between matches in minutes")
    parser.add_argument('--per-field', action='store_true', help="one timeline per field")
    parser.add_argument('--verbose', action='store_true')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging('DEBUG' if args.verbose else 'WARNING')

    try:
        teams = load_teams(args.teams_file)
    except (OSError, yaml.YAMLError) as e:
        print(f"Cannot read teams file {args.teams_file}: {e}", file=sys.stderr)
        return 2
    if args.fields < 1:
        print("At least 1 field is required.", file=sys.stderr)
        return 2

    try:
        matches = build_schedule(args.bracket_type, teams, make_fields(args.fields), args.start,
                                 match_duration=args.duration, break_duration=args.break_duration,
                                 per_field=args.per_field)
    except TourneyError as e:
        print(str(e), file=sys.stderr)
        return 1

    for match in matches:
        if match.round_number == 1 and match.is_bye:
            advance_winner(matches, match)

    for line in format_schedule(matches, teams):
        print(line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
