"""
Tests for Spirit of the Game scoring and the spirit leaderboard.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tourney.models import SPIRIT_CATEGORY_KEYS
from tourney.spirit import (
    calculate_average_spirit_score,
    calculate_spirit_leaderboard,
    calculate_spirit_total,
    format_spirit_score_for_submission,
    get_spirit_rating,
    get_spirit_score_details,
    get_spirit_score_progress,
    get_spirit_score_summary,
    has_spirit_score_been_submitted,
    initialize_spirit_score,
    round_one_decimal,
    validate_spirit_score,
)


def rating(opponent, values, scoring='x', match_id='m1'):
    record = dict(zip(SPIRIT_CATEGORY_KEYS, values))
    record.update({'match_id': match_id, 'scoring_team_id': scoring, 'opponent_team_id': opponent,
                   'total_score': sum(values)})
    return record


class TestTotalsAndRatings:
    """Tests for totals and rating bands."""

    def test_total(self):
        assert calculate_spirit_total({'rules_knowledge': 4, 'communication': '3'}) == 7
        assert calculate_spirit_total(None) == 0

    @pytest.mark.parametrize("total,label", [
        (20, 'Exceptional'), (18, 'Exceptional'), (17, 'Very Good'), (15, 'Very Good'),
        (14, 'Good'), (10, 'Good'), (9, 'Below Average'), (6, 'Below Average'),
        (5, 'Poor'), (0, 'Poor'),
    ])
    def test_rating_bands(self, total, label):
        assert get_spirit_rating(total)['label'] == label

    def test_rating_has_description(self):
        assert get_spirit_rating(18)['description'] == 'Outstanding Spirit of the Game'

    def test_round_one_decimal_half_up(self):
        assert round_one_decimal(12.25) == 12.3
        assert round_one_decimal(32 / 3) == 10.7

    def test_progress(self):
        assert get_spirit_score_progress(15) == 75
        assert get_spirit_score_progress(13.5) == 68

    def test_initial_score_is_standard(self):
        initial = initialize_spirit_score()
        assert set(initial) == set(SPIRIT_CATEGORY_KEYS)
        assert calculate_spirit_total(initial) == 10


class TestValidation:
    """Tests for validate_spirit_score."""

    def test_valid(self):
        assert validate_spirit_score(initialize_spirit_score()) is None
        assert validate_spirit_score({key: '3' for key in SPIRIT_CATEGORY_KEYS}) is None

    def test_missing_categories(self):
        errors = validate_spirit_score({})
        assert len(errors) == 5
        assert errors['rules_knowledge'] == 'Rules Knowledge & Use is required'

    def test_out_of_range(self):
        scores = initialize_spirit_score()
        scores['communication'] = 5
        scores['fair_mindedness'] = -1
        errors = validate_spirit_score(scores)
        assert errors == {
            'communication': 'Value must be between 0 and 4',
            'fair_mindedness': 'Value must be between 0 and 4',
        }

    def test_fractional(self):
        scores = initialize_spirit_score()
        scores['positive_attitude'] = 2.5
        assert validate_spirit_score(scores) == {'positive_attitude': 'Value must be a whole number'}


class TestAggregation:
    """Tests for averages and summaries."""

    def test_average(self):
        assert calculate_average_spirit_score([rating('b', (3, 3, 3, 3, 3)), rating('b', (3, 3, 2, 2, 2))]) == 13.5
        assert calculate_average_spirit_score([]) == 0

    def test_summary_distribution(self):
        scores = [rating('b', (4, 4, 4, 4, 4)), rating('b', (3, 3, 3, 3, 3)), rating('b', (1, 1, 1, 1, 1))]
        summary = get_spirit_score_summary(scores)
        assert summary['count'] == 3
        assert summary['average'] == 13.3
        assert summary['distribution'] == {
            'exceptional': 1, 'very_good': 1, 'good': 0, 'below_average': 0, 'poor': 1,
        }

    def test_summary_empty(self):
        assert get_spirit_score_summary([]) == {'average': 0, 'count': 0, 'distribution': {}}

    def test_already_submitted(self):
        scores = [rating('b', (2, 2, 2, 2, 2), scoring='a', match_id='m7')]
        assert has_spirit_score_been_submitted(scores, 'm7', 'a')
        assert not has_spirit_score_been_submitted(scores, 'm7', 'b')
        assert not has_spirit_score_been_submitted([], 'm7', 'a')

    def test_details(self):
        details = get_spirit_score_details(rating('b', (4, 3, 2, 1, 0)))
        assert details['total'] == 10
        assert details['rating']['label'] == 'Good'
        assert [c['value'] for c in details['categories']] == [4, 3, 2, 1, 0]
        assert details['categories'][0]['scale']['label'] == '4 - Excellent'
        assert get_spirit_score_details(None) is None

    def test_format_for_submission(self):
        record = format_spirit_score_for_submission(
            {key: '3' for key in SPIRIT_CATEGORY_KEYS}, 'm1', 'a', 'b', 'manager', comments='Great game')
        assert record['total_score'] == 15
        assert record['rules_knowledge'] == 3
        assert record['opponent_team_id'] == 'b'
        assert record['comments'] == 'Great game'
        assert record['submitted_at']


class TestSpiritLeaderboard:
    """Tests for calculate_spirit_leaderboard."""

    def scores(self):
        return [
            rating('b', (3, 3, 3, 3, 3)),
            rating('b', (3, 3, 2, 2, 2)),
            rating('a', (4, 4, 4, 3, 3)),
            rating('h', (3, 3, 3, 3, 3)),
            rating('h', (3, 3, 3, 2, 2)),
            rating('g', (3, 3, 3, 3, 2)),
        ]

    def test_order(self):
        board = calculate_spirit_leaderboard(self.scores())
        assert [e['team_id'] for e in board] == ['a', 'h', 'g', 'b']

    def test_entry(self):
        board = calculate_spirit_leaderboard(self.scores(), teams=[{'id': 'b', 'name': 'Bravo'}])
        entry = next(e for e in board if e['team_id'] == 'b')
        assert entry['team'] == {'id': 'b', 'name': 'Bravo'}
        assert entry['match_count'] == 2
        assert entry['average'] == 13.5
        assert entry['category_averages']['rules_knowledge'] == 3.0
        assert entry['category_averages']['fair_mindedness'] == 2.5
        # 13.5 rounds to 14
        assert entry['rating']['label'] == 'Good'

    def test_groups_by_team_rated(self):
        board = calculate_spirit_leaderboard([rating('b', (4, 4, 4, 4, 4), scoring='a')])
        assert [e['team_id'] for e in board] == ['b']

    def test_unrated_teams_left_out(self):
        board = calculate_spirit_leaderboard([rating('b', (2, 2, 2, 2, 2))], teams=['a', 'b'])
        assert len(board) == 1

    def test_full_tie_breaks_on_team_id(self):
        board = calculate_spirit_leaderboard([rating('z', (2, 2, 2, 2, 2)), rating('m', (2, 2, 2, 2, 2))])
        assert [e['team_id'] for e in board] == ['m', 'z']

    def test_empty(self):
        assert calculate_spirit_leaderboard([]) == []
        assert calculate_spirit_leaderboard(None) == []
