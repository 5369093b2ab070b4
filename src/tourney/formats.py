"""
Tournament formats and round-robin pairing.
"""
import logging
from typing import List

from tourney.elimination import generate_elimination_bracket
from tourney.errors import UnsupportedFormatError
from tourney.models import BracketType, Match, team_id_of

logger = logging.getLogger(__name__)


def assign_field_numbers(matches: List[Match], fields_count: int) -> List[Match]:
    """Spread matches over fields in emission order: 1, 2, ..., F, 1, 2, ..."""
    fields_count = max(int(fields_count or 1), 1)
    for index, match in enumerate(matches):
        match.field_number = (index % fields_count) + 1
    return matches


def generate_round_robin_schedule(teams, fields_count: int = 1) -> List[Match]:
    """
    Pair every team with every other team exactly once using the circle method.

    With an odd number of teams an empty slot is added; whoever is drawn
    against it sits the round out and no match is emitted for that pairing.
    After each round the first team stays put and the rest rotate one place
    (the last team moves to position 1).
    """
    if not teams or len(teams) < 2:
        return []

    team_list = [team_id_of(t) for t in teams]
    if len(team_list) % 2 != 0:
        team_list.append(None)

    total = len(team_list)
    rounds = total - 1
    matches: List[Match] = []

    for round_index in range(rounds):
        round_number = round_index + 1
        round_matches: List[Match] = []
        for i in range(total // 2):
            home = team_list[i]
            away = team_list[total - 1 - i]
            if home is None or away is None:
                continue
            round_matches.append(Match(
                round_number=round_number,
                round_name=f"Round {round_number}",
                match_number=len(round_matches) + 1,
                bracket_type=BracketType.ROUND_ROBIN,
                team1_id=home,
                team2_id=away,
            ))
        matches.extend(round_matches)
        team_list = [team_list[0], team_list[-1]] + team_list[1:-1]

    assign_field_numbers(matches, fields_count)
    logger.debug("Round robin: %d teams, %d rounds, %d matches", len(teams), rounds, len(matches))
    return matches


GENERATORS = {
    BracketType.ROUND_ROBIN: lambda teams, fields_count: generate_round_robin_schedule(teams, fields_count),
    BracketType.ELIMINATION: lambda teams, fields_count: generate_elimination_bracket(teams),
}


def generate_schedule(bracket_type: str, teams, fields_count: int = 1) -> List[Match]:
    """Generate unscheduled matches for ``bracket_type``."""
    generator = GENERATORS.get(bracket_type)
    if generator is None:
        raise UnsupportedFormatError(bracket_type)
    return generator(teams, fields_count)
