"""Fechas: conversión local→UTC y comparación de días de calendario."""

from datetime import date, datetime, timedelta, timezone

import pytest

import timeutils
from timeutils import (
    is_same_day,
    is_yesterday,
    local_to_utc,
    minutes_between,
    reference_today,
    to_naive_utc,
)


class TestLocalToUtc:
    def test_copies_wall_clock_components(self):
        assert local_to_utc("2024-03-10T09:30") == datetime(2024, 3, 10, 9, 30)

    def test_no_offset_applied_even_with_local_timezone(self, monkeypatch):
        monkeypatch.setattr(timeutils, "STREAK_TIMEZONE", "America/New_York")
        assert local_to_utc("2024-03-10T23:15") == datetime(2024, 3, 10, 23, 15)

    def test_seconds_and_fraction(self):
        assert local_to_utc("2024-03-10 09:30:15.5") == datetime(2024, 3, 10, 9, 30, 15, 500000)

    def test_explicit_utc_marker(self):
        assert local_to_utc("2024-03-10T09:30:00Z") == datetime(2024, 3, 10, 9, 30)

    def test_explicit_offset_is_respected(self):
        assert local_to_utc("2024-03-10T09:30:00+02:00") == datetime(2024, 3, 10, 7, 30)

    def test_result_is_naive(self):
        assert local_to_utc("2024-03-10T09:30").tzinfo is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            local_to_utc("mañana a las diez")


class TestDayPredicates:
    def test_same_day_ignores_time(self):
        assert is_same_day(datetime(2025, 1, 5, 0, 1), datetime(2025, 1, 5, 23, 59))

    def test_same_day_mixed_types(self):
        assert is_same_day(date(2025, 1, 5), datetime(2025, 1, 5, 12))

    def test_different_day(self):
        assert not is_same_day(date(2025, 1, 5), date(2025, 1, 6))

    def test_yesterday(self):
        assert is_yesterday(date(2025, 1, 4), date(2025, 1, 5))

    def test_yesterday_across_month_and_year(self):
        assert is_yesterday(date(2024, 12, 31), datetime(2025, 1, 1, 8))

    def test_yesterday_leap_day(self):
        assert is_yesterday(date(2024, 2, 29), date(2024, 3, 1))

    def test_two_days_ago_is_not_yesterday(self):
        assert not is_yesterday(date(2025, 1, 3), date(2025, 1, 5))

    def test_today_is_not_yesterday(self):
        assert not is_yesterday(date(2025, 1, 5), date(2025, 1, 5))


class TestReferenceToday:
    def test_utc_default(self, monkeypatch):
        monkeypatch.setattr(timeutils, "STREAK_TIMEZONE", "UTC")
        assert reference_today(datetime(2025, 3, 10, 23, 30)) == date(2025, 3, 10)

    def test_other_reference_zone_shifts_the_day(self, monkeypatch):
        monkeypatch.setattr(timeutils, "STREAK_TIMEZONE", "Europe/Madrid")
        assert reference_today(datetime(2025, 3, 10, 23, 30)) == date(2025, 3, 11)

    def test_aware_input(self, monkeypatch):
        monkeypatch.setattr(timeutils, "STREAK_TIMEZONE", "UTC")
        tz = timezone(timedelta(hours=-5))
        assert reference_today(datetime(2025, 3, 10, 21, 0, tzinfo=tz)) == date(2025, 3, 11)


class TestMinutes:
    def test_floors_partial_minutes(self):
        start = datetime(2025, 3, 10, 9, 0)
        assert minutes_between(start, start + timedelta(minutes=42, seconds=59)) == 42

    def test_exact(self):
        start = datetime(2025, 3, 10, 9, 0)
        assert minutes_between(start, start + timedelta(minutes=25)) == 25

    def test_to_naive_utc(self):
        aware = datetime(2025, 3, 10, 11, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_naive_utc(aware) == datetime(2025, 3, 10, 9, 0)
        assert to_naive_utc(None) is None
