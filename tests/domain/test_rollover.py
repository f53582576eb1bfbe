from datetime import datetime

import pytest

from weekboard.domain.entities import ActivityDefinition, Timetable
from weekboard.domain.rollover import RolloverEngine
from weekboard.domain.toggle import ToggleController


@pytest.fixture
def engine() -> RolloverEngine:
    return RolloverEngine()


def test_seed_week_on_a_monday(engine, read_activity):
    week = engine.seed_week([read_activity], datetime(2024, 6, 10))

    assert week.week_start_date == datetime(2024, 6, 10, 0, 0, 0)
    assert week.week_end_date == datetime(2024, 6, 16, 23, 59, 59, 999000)
    assert len(week.activities) == 1
    assert week.activities[0].daily_status == (False,) * 7
    assert week.activities[0].completion_rate == 0


def test_no_rollover_on_the_last_sunday(engine, timetable):
    before = timetable.current_week

    rolled = engine.evaluate_and_roll(timetable, datetime(2024, 6, 16))

    assert rolled is False
    assert timetable.current_week is before
    assert timetable.history == []


def test_no_rollover_at_the_last_millisecond(engine, timetable):
    assert engine.evaluate_and_roll(timetable, datetime(2024, 6, 16, 23, 59, 59, 999000)) is False


def test_rollover_archives_week_unchanged(engine, timetable):
    week = ToggleController().toggle(timetable, "Read", 2)

    rolled = engine.evaluate_and_roll(timetable, datetime(2024, 6, 17, 0, 0, 1))

    assert rolled is True
    assert timetable.history == [week]
    assert timetable.history[0].activities[0].daily_status == (False, False, True, False, False, False, False)
    assert timetable.current_week.week_start_date == datetime(2024, 6, 17)
    assert timetable.current_week.activities[0].daily_status == (False,) * 7
    assert timetable.updated_at == datetime(2024, 6, 17, 0, 0, 1)


def test_rollover_is_idempotent_within_new_week(engine, timetable):
    assert engine.evaluate_and_roll(timetable, datetime(2024, 6, 17, 0, 0, 1))
    current = timetable.current_week

    assert engine.evaluate_and_roll(timetable, datetime(2024, 6, 17, 0, 0, 1)) is False
    assert engine.evaluate_and_roll(timetable, datetime(2024, 6, 20, 8, 0)) is False
    assert timetable.current_week is current
    assert len(timetable.history) == 1


def test_long_absence_rolls_once_to_the_current_week(engine, timetable):
    rolled = engine.evaluate_and_roll(timetable, datetime(2024, 7, 3, 10, 0))

    assert rolled is True
    assert len(timetable.history) == 1
    assert timetable.current_week.week_start_date == datetime(2024, 7, 1)


def test_empty_week_is_not_archived(engine):
    timetable = Timetable.create(user_id="u", name="Empty", now=datetime(2024, 6, 10))

    assert engine.evaluate_and_roll(timetable, datetime(2024, 6, 17, 1, 0))
    assert timetable.history == []
    assert timetable.current_week.week_start_date == datetime(2024, 6, 17)


def test_new_week_uses_current_defaults(engine, timetable):
    timetable.default_activities = (ActivityDefinition(name="Run", category="Health"),)

    engine.evaluate_and_roll(timetable, datetime(2024, 6, 17, 9, 0))

    assert [p.activity.name for p in timetable.history[0].activities] == ["Read"]
    assert [p.activity.name for p in timetable.current_week.activities] == ["Run"]


def test_forced_rollover_ignores_end_date(engine, timetable):
    week = engine.start_new_week(timetable, datetime(2024, 6, 12, 9, 0))

    assert len(timetable.history) == 1
    assert week is timetable.current_week
    assert week.week_start_date == datetime(2024, 6, 10)
