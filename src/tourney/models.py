"""
Record types shared by the bracket, scheduling and standings helpers.

Data arriving from storage or HTTP requests is loosely shaped, so every record
has a ``from_dict`` that coerces it at the boundary: missing scores become 0,
unknown statuses fall back to ``scheduled`` and timestamps are parsed.
"""
from datetime import datetime
from typing import Dict, Optional


class MatchStatus:
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (SCHEDULED, IN_PROGRESS, COMPLETED, CANCELLED)


class BracketType:
    ROUND_ROBIN = "round_robin"
    ELIMINATION = "elimination"
    POOL = "pool"
    PLACEMENT = "placement"


SPIRIT_CATEGORY_KEYS = (
    "rules_knowledge",
    "fouls_body_contact",
    "fair_mindedness",
    "positive_attitude",
    "communication",
)


def coerce_int(value, default: int = 0, minimum: Optional[int] = 0) -> int:
    """Convert a loosely typed score to an int, clamping at ``minimum``."""
    if value is None or value == '' or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and number < minimum:
        return minimum
    return number


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse a datetime or ISO-8601 string; anything else becomes None.

    Values carrying a UTC offset are converted to naive local time, the form
    every other timestamp in the system takes.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def team_id_of(team):
    """Return the identifier of a team given as object, dict or bare id."""
    if team is None:
        return None
    if isinstance(team, dict):
        return team.get('id')
    return getattr(team, 'id', team)


class Team:
    def __init__(self, id, name=None, age_division='', attributes=None):
        self.id = id
        self.name = name if name is not None else str(id)
        self.age_division = age_division or ''
        self.attributes = attributes if attributes else {}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Team':
        known = {'id', 'name', 'age_division'}
        return cls(
            id=data.get('id'),
            name=data.get('name'),
            age_division=data.get('age_division'),
            attributes={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict:
        data = dict(self.attributes)
        data.update({'id': self.id, 'name': self.name, 'age_division': self.age_division})
        return data

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, age_division={self.age_division})"


class Field:
    def __init__(self, id, field_number, name=None):
        self.id = id
        self.field_number = field_number
        self.name = name or f"Field {field_number}"

    @classmethod
    def from_dict(cls, data: Dict) -> 'Field':
        number = coerce_int(data.get('field_number'), default=1, minimum=1)
        return cls(id=data.get('id', number), field_number=number, name=data.get('name'))

    def to_dict(self) -> Dict:
        return {'id': self.id, 'field_number': self.field_number, 'name': self.name}

    def __repr__(self):
        return f"Field(id={self.id}, field_number={self.field_number}, name={self.name})"


class Match:
    """One scheduled or completed contest between two (possibly unknown) teams."""

    def __init__(self, round_number, match_number, bracket_type, team1_id=None, team2_id=None,
                 round_name=None, field_number=None, field_id=None, scheduled_time=None,
                 status=MatchStatus.SCHEDULED, team1_score=0, team2_score=0, winner_id=None,
                 is_final=False, id=None, tournament_id=None):
        self.id = id
        self.tournament_id = tournament_id
        self.round_number = round_number
        self.round_name = round_name or f"Round {round_number}"
        self.match_number = match_number
        self.bracket_type = bracket_type
        self.team1_id = team1_id
        self.team2_id = team2_id
        self.field_number = field_number
        self.field_id = field_id
        self.scheduled_time = scheduled_time
        self.status = status
        self.team1_score = team1_score
        self.team2_score = team2_score
        self.winner_id = winner_id
        self.is_final = is_final

    @property
    def is_bye(self) -> bool:
        return self.team1_id is not None and self.team2_id is None and self.winner_id == self.team1_id

    def has_team(self, team_id) -> bool:
        return team_id is not None and team_id in (self.team1_id, self.team2_id)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        status = data.get('status') or MatchStatus.SCHEDULED
        if status not in MatchStatus.ALL:
            status = MatchStatus.SCHEDULED
        return cls(
            id=data.get('id'),
            tournament_id=data.get('tournament_id'),
            round_number=coerce_int(data.get('round_number'), default=1, minimum=1),
            round_name=data.get('round_name'),
            match_number=coerce_int(data.get('match_number'), default=1, minimum=1),
            bracket_type=data.get('bracket_type') or BracketType.ROUND_ROBIN,
            team1_id=data.get('team1_id'),
            team2_id=data.get('team2_id'),
            field_number=data.get('field_number'),
            field_id=data.get('field_id'),
            scheduled_time=parse_datetime(data.get('scheduled_time')),
            status=status,
            team1_score=coerce_int(data.get('team1_score')),
            team2_score=coerce_int(data.get('team2_score')),
            winner_id=data.get('winner_id'),
            is_final=bool(data.get('is_final', False)),
        )

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'round_number': self.round_number,
            'round_name': self.round_name,
            'match_number': self.match_number,
            'bracket_type': self.bracket_type,
            'team1_id': self.team1_id,
            'team2_id': self.team2_id,
            'field_number': self.field_number,
            'field_id': self.field_id,
            'scheduled_time': self.scheduled_time.isoformat() if self.scheduled_time else None,
            'status': self.status,
            'team1_score': self.team1_score,
            'team2_score': self.team2_score,
            'winner_id': self.winner_id,
            'is_final': self.is_final,
        }

    def __repr__(self):
        return (f"Match(round={self.round_number}, number={self.match_number}, "
                f"teams=({self.team1_id}, {self.team2_id}), status={self.status})")


class SpiritScore:
    """One team's Spirit of the Game rating of its opponent for a match."""

    def __init__(self, match_id, scoring_team_id, opponent_team_id, rules_knowledge=0,
                 fouls_body_contact=0, fair_mindedness=0, positive_attitude=0, communication=0,
                 total_score=None, comments=None, submitted_by=None, submitted_at=None):
        self.match_id = match_id
        self.scoring_team_id = scoring_team_id
        self.opponent_team_id = opponent_team_id
        self.rules_knowledge = rules_knowledge
        self.fouls_body_contact = fouls_body_contact
        self.fair_mindedness = fair_mindedness
        self.positive_attitude = positive_attitude
        self.communication = communication
        if total_score is None:
            total_score = sum(self.categories().values())
        self.total_score = total_score
        self.comments = comments
        self.submitted_by = submitted_by
        self.submitted_at = submitted_at

    def categories(self) -> Dict[str, int]:
        return {key: getattr(self, key) for key in SPIRIT_CATEGORY_KEYS}

    @classmethod
    def from_dict(cls, data: Dict) -> 'SpiritScore':
        scores = {key: coerce_int(data.get(key)) for key in SPIRIT_CATEGORY_KEYS}
        total = data.get('total_score')
        return cls(
            match_id=data.get('match_id'),
            scoring_team_id=data.get('scoring_team_id'),
            opponent_team_id=data.get('opponent_team_id'),
            total_score=coerce_int(total) if total not in (None, '') else None,
            comments=data.get('comments'),
            submitted_by=data.get('submitted_by'),
            submitted_at=data.get('submitted_at'),
            **scores,
        )

    def to_dict(self) -> Dict:
        data = {
            'match_id': self.match_id,
            'scoring_team_id': self.scoring_team_id,
            'opponent_team_id': self.opponent_team_id,
        }
        data.update(self.categories())
        data.update({
            'total_score': self.total_score,
            'comments': self.comments,
            'submitted_by': self.submitted_by,
            'submitted_at': self.submitted_at,
        })
        return data

    def __repr__(self):
        return (f"SpiritScore(match_id={self.match_id}, scoring={self.scoring_team_id}, "
                f"opponent={self.opponent_team_id}, total={self.total_score})")


def as_match(record) -> Optional[Match]:
    """Normalise a match given as ``Match`` or dict; anything else is None."""
    if isinstance(record, Match):
        return record
    if isinstance(record, dict):
        return Match.from_dict(record)
    return None


def as_spirit_score(record) -> Optional[SpiritScore]:
    if isinstance(record, SpiritScore):
        return record
    if isinstance(record, dict):
        return SpiritScore.from_dict(record)
    return None
