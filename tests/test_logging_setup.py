"""
Tests for structured log output.
"""
import json
import logging
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tourney.logging_setup import JsonFormatter


def make_record(**extra):
    record = logging.LogRecord('app', logging.INFO, __file__, 1, 'Match %s completed', ('match-1',), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self):
        payload = json.loads(JsonFormatter().format(make_record()))
        assert payload['level'] == 'INFO'
        assert payload['logger'] == 'app'
        assert payload['message'] == 'Match match-1 completed'
        assert 'tournament_id' not in payload

    def test_tournament_context(self):
        record = make_record(tournament_id='summer-open', match_id='match-1', user='director')
        payload = json.loads(JsonFormatter().format(record))
        assert payload['tournament_id'] == 'summer-open'
        assert payload['match_id'] == 'match-1'
        assert payload['user'] == 'director'

    def test_exception_included(self):
        try:
            raise ValueError('bad score')
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        payload = json.loads(JsonFormatter().format(record))
        assert 'ValueError: bad score' in payload['exception']
