"""Tests for date filter bounds and titles."""

from datetime import date, datetime

import pytest

from activity_timer.filters import DateFilter, FilterKind

NOW = datetime(2024, 3, 4, 15, 30)


class TestBounds:
    def test_today(self):
        assert DateFilter.today().bounds(NOW) == (
            datetime(2024, 3, 4),
            datetime(2024, 3, 4, 23, 59, 59),
        )

    def test_yesterday_crosses_month(self):
        now = datetime(2024, 3, 1, 8, 0)
        assert DateFilter.yesterday().bounds(now) == (
            datetime(2024, 2, 29),
            datetime(2024, 2, 29, 23, 59, 59),
        )

    def test_on_date(self):
        assert DateFilter.on(date(2024, 2, 10)).bounds(NOW) == (
            datetime(2024, 2, 10),
            datetime(2024, 2, 10, 23, 59, 59),
        )

    def test_from_date_ends_now(self):
        assert DateFilter.since(datetime(2024, 3, 1, 12, 0)).bounds(NOW) == (
            datetime(2024, 3, 1),
            NOW,
        )

    def test_from_future_date_is_ordered(self):
        assert DateFilter.since(date(2024, 3, 6)).bounds(NOW) == (NOW, datetime(2024, 3, 6))

    def test_range_swaps_reversed_bounds(self):
        forward = DateFilter.between(date(2024, 3, 1), date(2024, 3, 3)).bounds(NOW)
        backward = DateFilter.between(date(2024, 3, 3), date(2024, 3, 1)).bounds(NOW)
        assert forward == backward == (datetime(2024, 3, 1), datetime(2024, 3, 3, 23, 59, 59))

    def test_all_is_unbounded(self):
        assert DateFilter.all().bounds(NOW) == (None, None)


class TestConstruction:
    @pytest.mark.parametrize("kind", [FilterKind.ON_DATE, FilterKind.FROM_DATE, FilterKind.RANGE])
    def test_missing_dates_rejected(self, kind):
        with pytest.raises(ValueError):
            DateFilter(kind)

    def test_range_needs_both_dates(self):
        with pytest.raises(ValueError):
            DateFilter(FilterKind.RANGE, date(2024, 3, 1))


class TestTitles:
    @pytest.mark.parametrize(
        ("date_filter", "title"),
        [
            (DateFilter.today(), "Today"),
            (DateFilter.yesterday(), "Yesterday"),
            (DateFilter.all(), "All"),
            (DateFilter.on(date(2024, 3, 4)), "On Mar 04, 2024"),
            (DateFilter.since(date(2024, 3, 4)), "From Mar 04, 2024"),
            (DateFilter.between(date(2024, 3, 1), date(2024, 3, 4)), "Mar 01, 2024 - Mar 04, 2024"),
        ],
    )
    def test_title(self, date_filter, title):
        assert date_filter.title == title
