"""
Single elimination bracket generation.
"""
import logging
import math
from typing import List, Optional

from tourney.models import BracketType, Match, MatchStatus, team_id_of

logger = logging.getLogger(__name__)


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    bracket_size = calculate_bracket_size(num_teams)
    return bracket_size - num_teams


def calculate_total_rounds(num_teams: int) -> int:
    bracket_size = calculate_bracket_size(num_teams)
    if bracket_size < 2:
        return 0
    return int(math.log2(bracket_size))


def get_round_name(round_number: int, bracket_size: int) -> str:
    """Name a round by its distance from the final."""
    total_rounds = int(math.log2(bracket_size)) if bracket_size > 0 else 0
    rounds_from_end = total_rounds - round_number + 1

    if rounds_from_end == 1:
        return "Final"
    elif rounds_from_end == 2:
        return "Semifinals"
    elif rounds_from_end == 3:
        return "Quarterfinals"
    return f"Round {round_number}"


def generate_elimination_bracket(teams) -> List[Match]:
    """
    Build the full skeleton of a single elimination bracket.

    Teams are placed in input order and padded with empty slots up to the next
    power of two. A first-round pairing with only one real team is a bye: it is
    created already completed with that team as winner. Later rounds are
    placeholders with no teams; filling them as results come in is the job of
    the caller (see ``advance_winner``).

    Returns an empty list when fewer than 2 teams are supplied.
    """
    if not teams or len(teams) < 2:
        return []

    team_count = len(teams)
    bracket_size = calculate_bracket_size(team_count)
    bye_count = bracket_size - team_count

    slots: List[Optional[object]] = [team_id_of(t) for t in teams]
    slots.extend([None] * bye_count)

    matches: List[Match] = []
    round_number = 1
    current_round: List[Match] = []

    for i in range(0, len(slots), 2):
        team1, team2 = slots[i], slots[i + 1]
        round_name = get_round_name(round_number, bracket_size)
        if team1 is not None and team2 is not None:
            current_round.append(Match(
                round_number=round_number,
                round_name=round_name,
                match_number=len(current_round) + 1,
                bracket_type=BracketType.ELIMINATION,
                team1_id=team1,
                team2_id=team2,
            ))
        elif team1 is not None:
            current_round.append(Match(
                round_number=round_number,
                round_name=round_name,
                match_number=len(current_round) + 1,
                bracket_type=BracketType.ELIMINATION,
                team1_id=team1,
                team2_id=None,
                winner_id=team1,
                status=MatchStatus.COMPLETED,
            ))
        # two empty slots: nobody to seat, no match

    matches.extend(current_round)

    while len(current_round) > 1:
        round_number += 1
        next_round: List[Match] = []
        for _ in range(0, len(current_round), 2):
            next_round.append(Match(
                round_number=round_number,
                round_name=get_round_name(round_number, bracket_size),
                match_number=len(next_round) + 1,
                bracket_type=BracketType.ELIMINATION,
                is_final=len(next_round) == 0 and len(current_round) == 2,
            ))
        matches.extend(next_round)
        current_round = next_round

    logger.debug("Elimination bracket: %d teams, size %d, %d byes, %d matches",
                 team_count, bracket_size, bye_count, len(matches))
    return matches


def find_next_slot(round_number: int, match_number: int):
    """
    Return ``(round_number, match_number, slot)`` fed by a match's winner.

    Match k of round r feeds match ceil(k/2) of round r+1; odd k fills slot 1,
    even k fills slot 2.
    """
    return round_number + 1, (match_number + 1) // 2, 1 if match_number % 2 == 1 else 2


def _find_match(matches: List[Match], round_number: int, match_number: int) -> Optional[Match]:
    for match in matches:
        if (match.bracket_type == BracketType.ELIMINATION and match.round_number == round_number
                and match.match_number == match_number):
            return match
    return None


def advance_winner(matches: List[Match], completed: Match) -> Optional[Match]:
    """
    Seat the winner of a completed elimination match in the next round.

    When the other match feeding that slot was never created (round 1 skips
    pairings of two empty slots), nobody can ever join the winner: the
    next-round match is completed as a bye and the winner moves on again.

    Returns the match that received the winner, or None when there is no
    later match (the final) or the completed match has no winner.
    """
    if completed.bracket_type != BracketType.ELIMINATION or not completed.winner_id:
        return None
    if completed.is_final:
        return None
    next_round, next_number, slot = find_next_slot(completed.round_number, completed.match_number)
    target = _find_match(matches, next_round, next_number)
    if target is None:
        return None
    if slot == 1:
        target.team1_id = completed.winner_id
    else:
        target.team2_id = completed.winner_id
    logger.info("Advanced %s to round %d match %d (slot %d)",
                completed.winner_id, next_round, next_number, slot)

    feeder_number = completed.match_number + 1 if slot == 1 else completed.match_number - 1
    if _find_match(matches, completed.round_number, feeder_number) is None:
        target.winner_id = completed.winner_id
        target.status = MatchStatus.COMPLETED
        logger.info("No opponent can reach round %d match %d; %s advances on a bye",
                    next_round, next_number, completed.winner_id)
        advance_winner(matches, target)
    return target
