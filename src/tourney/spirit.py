"""
Spirit of the Game scoring: the five-category rubric, rating bands and the
spirit leaderboard.

Each team rates its opponent after a match, 0-4 in every category, for a
total between 0 and 20. A team's spirit standing is built from the ratings it
*received*, i.e. records whose ``opponent_team_id`` is that team.
"""
import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from tourney.models import SPIRIT_CATEGORY_KEYS, as_spirit_score, coerce_int, team_id_of

SPIRIT_CATEGORIES = [
    {
        'key': 'rules_knowledge',
        'label': 'Rules Knowledge & Use',
        'description': 'Did the opposing team know & apply the rules properly?',
        'help_text': 'Consider: Did they know the rules? Were calls and contests correct?',
    },
    {
        'key': 'fouls_body_contact',
        'label': 'Fouls & Body Contact',
        'description': 'Did the team avoid fouls, play safely, and resolve contact fairly?',
        'help_text': 'Consider: Did they avoid dangerous plays? How did they handle contact situations?',
    },
    {
        'key': 'fair_mindedness',
        'label': 'Fair-Mindedness',
        'description': 'Did the team show respect and fair attitude in contentious situations?',
        'help_text': 'Consider: Were they open to opposing perspectives? Did they show good faith?',
    },
    {
        'key': 'positive_attitude',
        'label': 'Positive Attitude & Self-Control',
        'description': 'Did players stay respectful regardless of scoreline or intensity?',
        'help_text': 'Consider: Did they maintain composure? Was their attitude constructive?',
    },
    {
        'key': 'communication',
        'label': 'Communication',
        'description': 'Did the team communicate clearly and effectively, especially in resolving disputes?',
        'help_text': 'Consider: Were they clear and concise? Did they listen actively?',
    },
]

SPIRIT_SCALE = [
    {'value': 0, 'label': '0 - Very Poor', 'description': 'Serious recurring issues'},
    {'value': 1, 'label': '1 - Poor', 'description': 'Issues in this category'},
    {'value': 2, 'label': '2 - Good (Standard)', 'description': 'Normal expected behavior'},
    {'value': 3, 'label': '3 - Very Good', 'description': 'Exceeded expectations'},
    {'value': 4, 'label': '4 - Excellent', 'description': 'Exceptional spirit beyond normal'},
]

DEFAULT_SPIRIT_VALUE = 2
MIN_CATEGORY_SCORE = 0
MAX_CATEGORY_SCORE = 4
MIN_SPIRIT_SCORE = 0
MAX_SPIRIT_SCORE = 20
CATEGORIES_COUNT = len(SPIRIT_CATEGORIES)

# (lower bound, label, description), highest band first
RATING_BANDS = [
    (18, 'Exceptional', 'Outstanding Spirit of the Game'),
    (15, 'Very Good', 'Excellent Spirit of the Game'),
    (10, 'Good', 'Acceptable Spirit of the Game'),
    (6, 'Below Average', 'Needs Improvement'),
    (MIN_SPIRIT_SCORE, 'Poor', 'Significant Spirit Concerns'),
]


def round_one_decimal(value) -> float:
    """Round half up to one decimal place (12.25 -> 12.3)."""
    return float(Decimal(str(value)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def round_whole(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_spirit_total(scores) -> int:
    """Sum the five categories; missing categories count as 0."""
    if not scores:
        return 0
    return sum(coerce_int(scores.get(key)) for key in SPIRIT_CATEGORY_KEYS)


def get_spirit_rating(total) -> Dict:
    """Map a 0-20 total to its rating band. Lower bounds are inclusive."""
    for lower_bound, label, description in RATING_BANDS:
        if total >= lower_bound:
            return {'label': label, 'description': description}
    _, label, description = RATING_BANDS[-1]
    return {'label': label, 'description': description}


def _received_totals(spirit_scores) -> List[int]:
    scores = (as_spirit_score(s) for s in spirit_scores)
    return [s.total_score for s in scores if s is not None]


def calculate_average_spirit_score(spirit_scores) -> float:
    if not spirit_scores:
        return 0
    totals = _received_totals(spirit_scores)
    if not totals:
        return 0
    return round_one_decimal(sum(totals) / len(totals))


def validate_spirit_score(scores) -> Optional[Dict[str, str]]:
    """
    Check a submission has every category as a whole number from 0 to 4.

    Returns a dict of category key -> message, or None when valid.
    """
    errors = {}
    scores = scores or {}
    for category in SPIRIT_CATEGORIES:
        value = scores.get(category['key'])
        if value is None or value == '':
            errors[category['key']] = f"{category['label']} is required"
            continue
        if isinstance(value, bool):
            errors[category['key']] = 'Value must be between 0 and 4'
            continue
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors[category['key']] = 'Value must be between 0 and 4'
            continue
        if number != value and str(number) != str(value).strip():
            errors[category['key']] = 'Value must be a whole number'
        elif number < MIN_CATEGORY_SCORE or number > MAX_CATEGORY_SCORE:
            errors[category['key']] = 'Value must be between 0 and 4'
    return errors or None


def initialize_spirit_score() -> Dict[str, int]:
    return {category['key']: DEFAULT_SPIRIT_VALUE for category in SPIRIT_CATEGORIES}


def has_spirit_score_been_submitted(spirit_scores, match_id, team_id) -> bool:
    if not spirit_scores or not match_id or not team_id:
        return False
    for record in spirit_scores:
        score = as_spirit_score(record)
        if score is not None and score.match_id == match_id and score.scoring_team_id == team_id:
            return True
    return False


def get_spirit_score_details(spirit_score) -> Optional[Dict]:
    score = as_spirit_score(spirit_score)
    if score is None:
        return None
    scale_by_value = {entry['value']: entry for entry in SPIRIT_SCALE}
    categories = []
    for category in SPIRIT_CATEGORIES:
        value = getattr(score, category['key'])
        categories.append(dict(category, value=value, scale=scale_by_value.get(value)))
    return {
        'total': score.total_score,
        'rating': get_spirit_rating(score.total_score),
        'categories': categories,
        'comments': score.comments,
        'submitted_at': score.submitted_at,
    }


def format_spirit_score_for_submission(scores, match_id, scoring_team_id, opponent_team_id,
                                       submitted_by, comments=None) -> Dict:
    record = {
        'match_id': match_id,
        'scoring_team_id': scoring_team_id,
        'opponent_team_id': opponent_team_id,
    }
    for key in SPIRIT_CATEGORY_KEYS:
        record[key] = coerce_int(scores.get(key))
    record['total_score'] = calculate_spirit_total(scores)
    record['submitted_by'] = submitted_by
    record['comments'] = comments or None
    record['submitted_at'] = datetime.datetime.now(datetime.timezone.utc).isoformat()
    return record


def get_spirit_score_summary(spirit_scores) -> Dict:
    if not spirit_scores:
        return {'average': 0, 'count': 0, 'distribution': {}}

    totals = _received_totals(spirit_scores)
    if not totals:
        return {'average': 0, 'count': 0, 'distribution': {}}
    distribution = {
        'exceptional': sum(1 for t in totals if t >= 18),
        'very_good': sum(1 for t in totals if 15 <= t < 18),
        'good': sum(1 for t in totals if 10 <= t < 15),
        'below_average': sum(1 for t in totals if 6 <= t < 10),
        'poor': sum(1 for t in totals if t < 6),
    }
    return {
        'average': round_one_decimal(sum(totals) / len(totals)),
        'count': len(totals),
        'distribution': distribution,
    }


def get_spirit_score_progress(score) -> int:
    return round_whole(score * 100 / MAX_SPIRIT_SCORE)


def calculate_spirit_leaderboard(spirit_scores, teams=None) -> List[Dict]:
    """
    Average the spirit ratings each team received.

    Teams nobody has rated are left out. Ordering is average total descending,
    then number of ratings received descending, then team id ascending.
    ``teams`` (optional) only supplies display data for the rated teams.
    """
    if not spirit_scores:
        return []

    team_lookup = {}
    for team in teams or []:
        team_lookup[team_id_of(team)] = team

    grouped: Dict[object, List] = {}
    for record in spirit_scores:
        score = as_spirit_score(record)
        if score is None or score.opponent_team_id is None:
            continue
        grouped.setdefault(score.opponent_team_id, []).append(score)

    leaderboard = []
    for team_id, received in grouped.items():
        count = len(received)
        average = round_one_decimal(sum(s.total_score for s in received) / count)
        category_averages = {
            key: round_one_decimal(sum(getattr(s, key) for s in received) / count)
            for key in SPIRIT_CATEGORY_KEYS
        }
        team = team_lookup.get(team_id)
        if isinstance(team, dict):
            name = team.get('name', team_id)
        else:
            name = getattr(team, 'name', team_id)
        leaderboard.append({
            'team_id': team_id,
            'team': {'id': team_id, 'name': name},
            'match_count': count,
            'average': average,
            'category_averages': category_averages,
            'rating': get_spirit_rating(round_whole(average)),
        })

    leaderboard.sort(key=lambda e: (-e['average'], -e['match_count'], str(e['team_id'])))
    return leaderboard
