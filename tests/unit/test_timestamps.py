"""
Unit tests for the tolerant timestamp parser
"""

import pytest

from newsreel_eval.utils.timestamps import parse_date_millis, parse_timestamp


class TestParseTimestamp:
    """Contest date formats"""

    def test_epoch_millis(self):
        assert parse_timestamp("1462060800008") == 1462060800008
        assert parse_timestamp(" 1000 ") == 1000
        assert parse_timestamp(1000) == 1000

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2013-10-20T00:00:00+0200", 1382227200000),
            ("2016-05-01 00:00:00,008", 1462060800000),
            ("2016-5-1 0:0:0", 1462060800000),
            ("2016-05-01_00:00:01", 1462060801000),
        ],
    )
    def test_date_strings(self, value, expected):
        assert parse_timestamp(value) == expected

    def test_milliseconds_are_ignored(self):
        assert parse_date_millis("2016-01-01 00:00:00,016") == parse_date_millis("2016-01-01 00:00:00")

    @pytest.mark.parametrize("value", ["2016-00-01 00:00:00,016", "2016-13-01 00:00:00,016", "yesterday"])
    def test_invalid_dates(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)
