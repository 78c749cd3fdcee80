"""
Tests for calendar date helpers.

Weeks run Sunday to Saturday and day-of-week 0 is Sunday.
"""
from datetime import date, datetime

import pytest

from utils.dates import (
    day_of_week,
    end_of_week,
    is_same_week,
    iter_batches,
    iter_dates,
    overlap_range,
    parse_date,
    start_of_week,
)
from utils.errors import ValidationError


class TestDayOfWeek:
    def test_sunday_is_zero(self):
        assert day_of_week(date(2023, 12, 31)) == 0

    def test_monday_is_one(self):
        assert day_of_week(date(2024, 1, 1)) == 1

    def test_saturday_is_six(self):
        assert day_of_week(date(2024, 1, 6)) == 6


class TestWeekBounds:
    def test_week_of_a_wednesday(self):
        assert start_of_week(date(2024, 1, 3)) == date(2023, 12, 31)
        assert end_of_week(date(2024, 1, 3)) == date(2024, 1, 6)

    def test_sunday_starts_its_own_week(self):
        assert start_of_week(date(2024, 1, 7)) == date(2024, 1, 7)

    def test_same_week(self):
        assert is_same_week(date(2024, 1, 1), date(2024, 1, 3))
        assert is_same_week(date(2023, 12, 31), date(2024, 1, 6))

    def test_next_sunday_is_a_new_week(self):
        assert not is_same_week(date(2024, 1, 6), date(2024, 1, 7))
        assert not is_same_week(date(2024, 1, 1), date(2024, 1, 8))


class TestIteration:
    def test_iter_dates_is_inclusive(self):
        assert list(iter_dates(date(2024, 1, 1), date(2024, 1, 3))) == [
            date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3),
        ]

    def test_iter_dates_single_day(self):
        assert list(iter_dates(date(2024, 1, 1), date(2024, 1, 1))) == [date(2024, 1, 1)]

    def test_iter_dates_empty_when_reversed(self):
        assert list(iter_dates(date(2024, 1, 2), date(2024, 1, 1))) == []

    def test_iter_batches_splits_range(self):
        batches = list(iter_batches(date(2024, 1, 1), date(2024, 1, 10), 4))
        assert batches == [
            (date(2024, 1, 1), date(2024, 1, 4)),
            (date(2024, 1, 5), date(2024, 1, 8)),
            (date(2024, 1, 9), date(2024, 1, 10)),
        ]

    def test_iter_batches_rejects_zero_size(self):
        with pytest.raises(ValidationError):
            list(iter_batches(date(2024, 1, 1), date(2024, 1, 2), 0))


class TestOverlapRange:
    def test_closed_ranges_overlap(self):
        assert overlap_range(date(2024, 1, 1), date(2024, 1, 31), date(2024, 1, 15), date(2024, 2, 15)) == (
            date(2024, 1, 15), date(2024, 1, 31),
        )

    def test_touching_ranges_overlap_on_one_day(self):
        assert overlap_range(date(2024, 1, 1), date(2024, 1, 31), date(2024, 1, 31), date(2024, 2, 5)) == (
            date(2024, 1, 31), date(2024, 1, 31),
        )

    def test_disjoint_ranges(self):
        assert overlap_range(date(2024, 1, 1), date(2024, 1, 31), date(2024, 2, 1), date(2024, 2, 5)) is None

    def test_open_ended_range(self):
        assert overlap_range(date(2024, 1, 1), None, date(2024, 3, 1), date(2024, 3, 5)) == (
            date(2024, 3, 1), date(2024, 3, 5),
        )
        assert overlap_range(date(2024, 3, 10), None, date(2024, 3, 1), date(2024, 3, 5)) is None

    def test_both_open_ended(self):
        assert overlap_range(date(2024, 1, 1), None, date(2024, 2, 1), None) == (date(2024, 2, 1), None)


class TestParseDate:
    def test_iso_string(self):
        assert parse_date("2024-01-03") == date(2024, 1, 3)

    def test_datetime_string_keeps_the_date(self):
        assert parse_date("2024-01-03T18:30:00") == date(2024, 1, 3)

    def test_datetime(self):
        assert parse_date(datetime(2024, 1, 3, 23, 59)) == date(2024, 1, 3)

    def test_invalid(self):
        with pytest.raises(ValidationError):
            parse_date("not-a-date")
