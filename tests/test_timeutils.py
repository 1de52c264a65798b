"""Tests for day boundaries, rounding and timestamp text."""

from datetime import date, datetime

import pytest

from activity_timer.timeutils import (
    end_of_day,
    format_day,
    format_timestamp,
    parse_timestamp,
    round_up_to_minutes,
    start_of_day,
)


class TestDayBounds:
    def test_start_of_day_from_datetime(self):
        assert start_of_day(datetime(2024, 3, 4, 17, 45, 12, 500)) == datetime(2024, 3, 4)

    def test_start_of_day_from_date(self):
        assert start_of_day(date(2024, 3, 4)) == datetime(2024, 3, 4)

    def test_end_of_day_is_last_second(self):
        assert end_of_day(datetime(2024, 3, 4, 8, 0)) == datetime(2024, 3, 4, 23, 59, 59)

    def test_format_day(self):
        assert format_day(datetime(2024, 3, 4, 8, 0)) == "2024-03-04"


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (datetime(2024, 3, 4, 9, 7), datetime(2024, 3, 4, 9, 15)),
            (datetime(2024, 3, 4, 9, 15), datetime(2024, 3, 4, 9, 15)),
            (datetime(2024, 3, 4, 9, 7, 42), datetime(2024, 3, 4, 9, 15)),
            (datetime(2024, 3, 4, 9, 50), datetime(2024, 3, 4, 10, 0)),
            (datetime(2024, 3, 4, 23, 59), datetime(2024, 3, 5, 0, 0)),
        ],
    )
    def test_rounds_up_to_quarter_hour(self, value, expected):
        assert round_up_to_minutes(value, 15) == expected

    @pytest.mark.parametrize("interval", [0, 1])
    def test_small_interval_leaves_value_alone(self, interval):
        value = datetime(2024, 3, 4, 9, 7, 42)
        assert round_up_to_minutes(value, interval) == value


class TestTimestamps:
    def test_format_uses_milliseconds(self):
        assert format_timestamp(datetime(2024, 3, 4, 9, 5, 6, 789000)) == "2024-03-04T09:05:06.789"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("2024-03-04T09:05:06.789", datetime(2024, 3, 4, 9, 5, 6, 789000)),
            ("2024-03-04T09:05:06", datetime(2024, 3, 4, 9, 5, 6)),
            ("2024-03-04T09:05", datetime(2024, 3, 4, 9, 5)),
        ],
    )
    def test_parse_accepted_precisions(self, text, expected):
        assert parse_timestamp(text) == expected

    @pytest.mark.parametrize("text", [None, "", "yesterday", "04/03/2024 09:00"])
    def test_parse_rejects_malformed(self, text):
        assert parse_timestamp(text) is None
