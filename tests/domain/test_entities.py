from datetime import datetime

import pytest

from weekboard.domain.entities import ActivityDefinition, DailyProgress, Timetable, WeekRecord
from weekboard.domain.errors import InvalidArgument, InvariantViolation


def test_activity_requires_name():
    with pytest.raises(InvalidArgument):
        ActivityDefinition(name="  ")


def test_daily_progress_requires_seven_booleans(read_activity):
    with pytest.raises(InvariantViolation):
        DailyProgress(id="p1", activity=read_activity, daily_status=(False,) * 6)
    with pytest.raises(InvariantViolation):
        DailyProgress(id="p1", activity=read_activity, daily_status=(0, 0, 0, 0, 0, 0, 1))


def test_daily_progress_accepts_lists_and_stores_tuple(read_activity):
    progress = DailyProgress(id="p1", activity=read_activity, daily_status=[True] + [False] * 6)

    assert progress.daily_status == (True, False, False, False, False, False, False)
    assert progress.completed_days == 1


def test_completion_rate_is_recomputed_from_marks(read_activity):
    progress = DailyProgress.seed(read_activity)
    assert progress.completion_rate == 0

    for day in range(7):
        progress = progress.toggled(day)

    assert progress.completion_rate == 100


def test_toggled_returns_copy_with_one_flip(read_activity):
    original = DailyProgress.seed(read_activity)
    flipped = original.toggled(3)

    assert original.daily_status == (False,) * 7
    assert flipped.daily_status == (False, False, False, True, False, False, False)
    assert flipped.id == original.id
    assert flipped.activity is original.activity


def test_week_seed_copies_defaults_by_value(read_activity):
    week = WeekRecord.seed([read_activity], datetime(2024, 6, 10))

    assert len(week.activities) == 1
    assert week.activities[0].activity == read_activity
    assert week.activities[0].daily_status == (False,) * 7
    assert week.overall_completion_rate == 0


def test_week_requires_start_before_end():
    with pytest.raises(InvariantViolation):
        WeekRecord(week_start_date=datetime(2024, 6, 16), week_end_date=datetime(2024, 6, 10))


def test_empty_week_has_zero_rate():
    week = WeekRecord.seed([], datetime(2024, 6, 10))

    assert week.overall_completion_rate == 0.0


def test_overall_rate_averages_all_cells():
    run = ActivityDefinition(name="Run", category="Health")
    read = ActivityDefinition(name="Read", category="Learning")
    week = WeekRecord.seed([run, read], datetime(2024, 6, 10))
    run_entry = week.activities[0]
    for day in range(7):
        run_entry = run_entry.toggled(day)
    week = week.replace_entry(run_entry)

    assert week.overall_completion_rate == pytest.approx(50.0)
    assert week.total_marks == 7


def test_find_by_id_then_unique_name():
    read = ActivityDefinition(name="Read")
    week = WeekRecord.seed([read, ActivityDefinition(name="Run")], datetime(2024, 6, 10))
    entry = week.activities[0]

    assert week.find(entry.id) is entry
    assert week.find("Read") is entry
    assert week.find("Swim") is None


def test_find_by_name_refuses_ambiguous_match():
    read = ActivityDefinition(name="Read")
    week = WeekRecord.seed([read, read], datetime(2024, 6, 10))

    assert week.find("Read") is None


def test_timetable_create_strips_name(read_activity):
    timetable = Timetable.create(user_id="u", name="  Habits ", now=datetime(2024, 6, 12), default_activities=[read_activity])

    assert timetable.name == "Habits"
    assert timetable.current_week.week_start_date == datetime(2024, 6, 10)
    assert timetable.history == []
    assert timetable.created_at == timetable.updated_at == datetime(2024, 6, 12)


def test_timetable_create_rejects_blank_name():
    with pytest.raises(InvalidArgument):
        Timetable.create(user_id="u", name=" ", now=datetime(2024, 6, 12))
