"""Rachas: incremento, mismo día, rotura y caducidad al leer."""

from datetime import date, timedelta

import pytest

import streaks
import timeutils
from conftest import T0
from models import Streak

TODAY = T0.date()


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


def make_streak(db, user, current: int, longest: int, last) -> Streak:
    streak = Streak(user_id=user.id, current_streak=current, longest_streak=longest, last_streak_date=last)
    db.add(streak)
    db.commit()
    return streak


def stored(db, user) -> Streak:
    db.expire_all()
    return db.query(Streak).filter(Streak.user_id == user.id).one()


class TestQualifying:
    @pytest.mark.parametrize("completed,duration,expected", [
        (True, 30, True),
        (True, 95, True),
        (True, 29, False),
        (True, None, False),
        (False, 60, False),
    ])
    def test_threshold(self, completed, duration, expected):
        assert streaks.is_qualifying(completed, duration) is expected


class TestEvaluate:
    def test_first_qualifying_completion_creates_row(self, db, user):
        streaks.evaluate(db, user.id, True, 30, now=T0)
        row = stored(db, user)
        assert (row.current_streak, row.longest_streak, row.last_streak_date) == (1, 1, TODAY)

    def test_increment_from_yesterday(self, db, user):
        make_streak(db, user, current=4, longest=4, last=days_ago(1))
        streaks.evaluate(db, user.id, True, 45, now=T0)
        row = stored(db, user)
        assert row.current_streak == 5
        assert row.longest_streak == 5
        assert row.last_streak_date == TODAY

    def test_increment_keeps_higher_longest(self, db, user):
        make_streak(db, user, current=4, longest=12, last=days_ago(1))
        streaks.evaluate(db, user.id, True, 45, now=T0)
        row = stored(db, user)
        assert row.current_streak == 5
        assert row.longest_streak == 12

    def test_same_day_is_noop(self, db, user):
        make_streak(db, user, current=3, longest=3, last=TODAY)
        streaks.evaluate(db, user.id, True, 60, now=T0)
        streaks.evaluate(db, user.id, True, 60, now=T0 + timedelta(hours=5))
        row = stored(db, user)
        assert row.current_streak == 3
        assert row.last_streak_date == TODAY

    def test_broken_streak_restarts_at_one(self, db, user):
        make_streak(db, user, current=8, longest=8, last=days_ago(3))
        streaks.evaluate(db, user.id, True, 30, now=T0)
        row = stored(db, user)
        assert row.current_streak == 1
        assert row.longest_streak == 8
        assert row.last_streak_date == TODAY

    def test_restart_after_decay_to_zero(self, db, user):
        make_streak(db, user, current=0, longest=0, last=days_ago(10))
        streaks.evaluate(db, user.id, True, 30, now=T0)
        row = stored(db, user)
        assert (row.current_streak, row.longest_streak) == (1, 1)

    def test_short_session_with_stale_streak_resets_to_zero(self, db, user):
        make_streak(db, user, current=6, longest=9, last=days_ago(3))
        streaks.evaluate(db, user.id, True, 10, now=T0)
        row = stored(db, user)
        assert row.current_streak == 0
        assert row.longest_streak == 9
        assert row.last_streak_date == days_ago(3)

    def test_short_session_with_live_streak_changes_nothing(self, db, user):
        make_streak(db, user, current=6, longest=9, last=days_ago(1))
        streaks.evaluate(db, user.id, True, 10, now=T0)
        row = stored(db, user)
        assert row.current_streak == 6
        assert row.last_streak_date == days_ago(1)

    def test_short_session_without_row_creates_nothing(self, db, user):
        assert streaks.evaluate(db, user.id, True, 10, now=T0) is None
        assert db.query(Streak).count() == 0

    def test_day_boundary_follows_reference_timezone(self, db, user, monkeypatch):
        # 23:30 UTC del día 10 ya es día 11 en Madrid
        monkeypatch.setattr(timeutils, "STREAK_TIMEZONE", "Europe/Madrid")
        make_streak(db, user, current=2, longest=2, last=TODAY)
        late = T0.replace(hour=23, minute=30)
        streaks.evaluate(db, user.id, True, 30, now=late)
        row = stored(db, user)
        assert row.current_streak == 3
        assert row.last_streak_date == TODAY + timedelta(days=1)


class TestRead:
    def test_no_row_reads_zeros(self, db, user):
        assert streaks.read(db, user.id, now=T0) == {
            "current_streak": 0,
            "longest_streak": 0,
            "last_streak_date": None,
        }
        assert db.query(Streak).count() == 0

    def test_live_streak_unchanged(self, db, user):
        make_streak(db, user, current=4, longest=7, last=days_ago(1))
        result = streaks.read(db, user.id, now=T0)
        assert result["current_streak"] == 4
        assert result["longest_streak"] == 7

    def test_stale_streak_reads_zero_and_persists(self, db, user):
        make_streak(db, user, current=5, longest=5, last=days_ago(3))
        result = streaks.read(db, user.id, now=T0)
        assert result["current_streak"] == 0
        assert result["longest_streak"] == 5
        assert stored(db, user).current_streak == 0

    def test_read_is_idempotent_within_a_day(self, db, user):
        make_streak(db, user, current=5, longest=5, last=days_ago(3))
        first = streaks.read(db, user.id, now=T0)
        second = streaks.read(db, user.id, now=T0 + timedelta(hours=3))
        assert first == second
