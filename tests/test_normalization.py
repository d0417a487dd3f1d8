"""
Tests for mapping raw upstream rows onto NormalizedResult.
"""

import pytest

from velohub.services.normalization import (
    first_present, normalize_record, normalize_rankable, upstream_user_ids
)
from velohub.utils.leaderboard_exceptions import UnparseableRecord


class TestAliases:
    """Tests for alias resolution."""

    def test_first_alias_wins(self):
        record = {'best_time': '1:00.000', 'lap_time': '0:59.000'}
        assert normalize_record(record).lap_time_ms == 59000

    def test_falls_back_to_later_alias(self):
        record = {'user_id': 1, 'bestlap': '1:01.500'}
        result = normalize_record(record)
        assert result.lap_time == '1:01.500'
        assert result.lap_time_ms == 61500

    def test_null_alias_is_skipped(self):
        assert first_present({'lap_time': None, 'time': '12.000'}, ('lap_time', 'time')) == '12.000'

    def test_descriptive_fields(self):
        record = {
            'user_id': '7', 'name': 'Ana', 'flag': 'AR', 'model': 'Tiny',
            'simversion': '1.16', 'device': 'pc', 'time': '45.100',
        }
        result = normalize_record(record)
        assert result.user_id == 7
        assert result.playername == 'Ana'
        assert result.country == 'AR'
        assert result.model_name == 'Tiny'
        assert result.sim_version == '1.16'
        assert result.device_type == 'pc'
        assert result.lap_time_ms == 45100


class TestUnparseable:
    """Tests for rows that cannot be ranked."""

    def test_missing_time_is_marked_unparseable(self):
        result = normalize_record({'user_id': 3})
        assert result.lap_time == ''
        assert result.lap_time_ms is None
        assert not result.has_time

    def test_garbage_time_keeps_display_text(self):
        result = normalize_record({'user_id': 3, 'lap_time': 'DNF'})
        assert result.lap_time == 'DNF'
        assert result.lap_time_ms is None

    def test_non_numeric_identity_is_rejected(self):
        with pytest.raises(UnparseableRecord):
            normalize_rankable({'user_id': 'abc', 'lap_time': '1:00.000'})

    def test_non_mapping_row_is_rejected(self):
        with pytest.raises(UnparseableRecord):
            normalize_rankable(['not', 'a', 'row'])


def test_upstream_user_ids_are_distinct_and_ordered():
    records = [{'user_id': '5'}, {'user_id': 2}, {'user_id': 5.0}, {'user_id': 'x'}]
    assert upstream_user_ids(records) == [5, 2]
