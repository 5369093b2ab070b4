"""
Match results, team records and the tournament leaderboard.
"""
import datetime
from typing import Dict, List, Optional

from tourney.models import MatchStatus, as_match, team_id_of

WIN_POINTS = 3
TIE_POINTS = 1
LOSS_POINTS = 0


def get_match_result(match, team_id) -> Optional[str]:
    """Return 'win', 'loss' or 'tie' for a completed match, else None."""
    match = as_match(match)
    if match is None or match.status != MatchStatus.COMPLETED:
        return None
    if match.winner_id == team_id:
        return "win"
    if match.winner_id and match.winner_id != team_id:
        return "loss"
    return "tie"


def get_team_score(match, team_id) -> int:
    match = as_match(match)
    if match is None:
        return 0
    if match.team1_id == team_id:
        return match.team1_score
    if match.team2_id == team_id:
        return match.team2_score
    return 0


def get_opponent_score(match, team_id) -> int:
    match = as_match(match)
    if match is None:
        return 0
    if match.team1_id == team_id:
        return match.team2_score
    if match.team2_id == team_id:
        return match.team1_score
    return 0


def is_match_live(match) -> bool:
    match = as_match(match)
    return match is not None and match.status == MatchStatus.IN_PROGRESS


def is_match_completed(match) -> bool:
    match = as_match(match)
    return match is not None and match.status == MatchStatus.COMPLETED


def is_match_upcoming(match, now: Optional[datetime.datetime] = None) -> bool:
    match = as_match(match)
    if match is None or match.scheduled_time is None:
        return False
    now = now or datetime.datetime.now(match.scheduled_time.tzinfo)
    return match.status == MatchStatus.SCHEDULED and match.scheduled_time > now


def _empty_stats() -> Dict:
    return {
        'played': 0,
        'wins': 0,
        'losses': 0,
        'ties': 0,
        'points_for': 0,
        'points_against': 0,
        'point_diff': 0,
        'points': 0,
        'win_rate': 0,
    }


def calculate_team_stats(matches, team_id) -> Dict:
    """
    Aggregate one team's record over the completed matches it took part in.

    A match counts as a win when ``winner_id`` is the team, a loss when some
    other team won, and a tie when no winner is recorded. Scores that are
    missing count as 0.

    Returns: {'played', 'wins', 'losses', 'ties', 'points_for',
              'points_against', 'point_diff', 'points', 'win_rate'}
    """
    stats = _empty_stats()
    if not matches or team_id is None:
        return stats

    for record in matches:
        match = as_match(record)
        if match is None or match.status != MatchStatus.COMPLETED or not match.has_team(team_id):
            continue

        is_team1 = match.team1_id == team_id
        team_score = match.team1_score if is_team1 else match.team2_score
        opp_score = match.team2_score if is_team1 else match.team1_score

        stats['played'] += 1
        stats['points_for'] += team_score
        stats['points_against'] += opp_score

        if match.winner_id == team_id:
            stats['wins'] += 1
        elif match.winner_id:
            stats['losses'] += 1
        else:
            stats['ties'] += 1

    stats['point_diff'] = stats['points_for'] - stats['points_against']
    stats['points'] = stats['wins'] * WIN_POINTS + stats['ties'] * TIE_POINTS + stats['losses'] * LOSS_POINTS
    stats['win_rate'] = _round_half_up(100 * stats['wins'] / stats['played']) if stats['played'] else 0
    return stats


def _round_half_up(value: float) -> int:
    # round() would send 12.5 to 12; percentages round half up
    return int(value + 0.5)


def _team_display(team) -> Dict:
    if isinstance(team, dict):
        return {'id': team.get('id'), 'name': team.get('name'), 'age_division': team.get('age_division', '')}
    if hasattr(team, 'id'):
        return {'id': team.id, 'name': getattr(team, 'name', team.id),
                'age_division': getattr(team, 'age_division', '')}
    return {'id': team, 'name': str(team), 'age_division': ''}


def leaderboard_sort_key(entry: Dict):
    return (-entry['points'], -entry['point_diff'], -entry['points_for'], -entry['wins'])


def calculate_leaderboard(matches, teams) -> List[Dict]:
    """
    Rank teams by their record over ``matches``.

    Ranking: points -> point differential -> points scored -> wins. The sort
    is stable, so teams level on all four keep their input order.
    """
    if not teams:
        return []
    entries = []
    for team in teams:
        team_id = team_id_of(team)
        entry = {'team_id': team_id, 'team': _team_display(team)}
        entry.update(calculate_team_stats(matches, team_id))
        entries.append(entry)
    entries.sort(key=leaderboard_sort_key)
    for position, entry in enumerate(entries, start=1):
        entry['rank'] = position
    return entries


def summarize_leaderboard(leaderboard: List[Dict]) -> Dict:
    """Totals shown under the leaderboard table."""
    if not leaderboard:
        return {'teams': 0, 'total_games': 0, 'total_points': 0}
    return {
        'teams': len(leaderboard),
        'total_games': sum(entry['played'] for entry in leaderboard) // 2,
        'total_points': sum(entry['points_for'] for entry in leaderboard),
    }


MATCH_SUMMARY_KEYS = ('winner', 'loser', 'score', 'margin', 'tie')


def calculate_match_stats(matches) -> Optional[Dict]:
    """Calculate aggregate statistics across all completed matches.

    Args:
        matches: Match records or dicts; byes and placeholders are ignored.

    Returns:
        Dict with total_points, closest_match, biggest_blowout, matches_completed,
        average_margin, or None if no completed matches. A drawn match is
        summarised with tie=True and no winner or loser.
    """
    played = []
    for record in matches or []:
        match = as_match(record)
        if match is None or match.status != MatchStatus.COMPLETED:
            continue
        if match.team1_id is None or match.team2_id is None:
            continue
        margin = abs(match.team1_score - match.team2_score)
        tie = not match.winner_id
        if tie:
            winner, loser = None, None
            score_line = f"{match.team1_score}-{match.team2_score}"
        elif match.winner_id == match.team2_id:
            winner, loser = match.team2_id, match.team1_id
            score_line = f"{match.team2_score}-{match.team1_score}"
        else:
            winner, loser = match.team1_id, match.team2_id
            score_line = f"{match.team1_score}-{match.team2_score}"
        played.append({
            'winner': winner,
            'loser': loser,
            'margin': margin,
            'total_points': match.team1_score + match.team2_score,
            'score': score_line,
            'tie': tie,
        })

    if not played:
        return None

    closest = min(played, key=lambda m: m['margin'])
    biggest = max(played, key=lambda m: m['margin'])
    total_pts = sum(m['total_points'] for m in played)
    avg_margin = sum(m['margin'] for m in played) / len(played)

    return {
        'total_points': total_pts,
        'matches_completed': len(played),
        'average_margin': round(avg_margin, 1),
        'closest_match': {k: closest[k] for k in MATCH_SUMMARY_KEYS},
        'biggest_blowout': {k: biggest[k] for k in MATCH_SUMMARY_KEYS},
    }
