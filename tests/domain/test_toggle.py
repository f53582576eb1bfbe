from datetime import datetime

import pytest

from weekboard.domain.errors import InvalidArgument
from weekboard.domain.toggle import ToggleController, toggle_cell, validate_day_index


def test_toggle_wednesday_by_name(timetable):
    week = ToggleController().toggle(timetable, "Read", 2)

    entry = week.activities[0]
    assert entry.daily_status == (False, False, True, False, False, False, False)
    assert round(entry.completion_rate, 2) == 14.29
    assert round(week.overall_completion_rate, 2) == 14.29
    assert timetable.current_week is week


def test_toggle_by_id_twice_restores_marks(timetable):
    entry_id = timetable.current_week.activities[0].id
    controller = ToggleController()

    controller.toggle(timetable, entry_id, 5)
    week = controller.toggle(timetable, entry_id, 5)

    assert week.activities[0].daily_status == (False,) * 7
    assert week.overall_completion_rate == 0


def test_toggle_touches_timetable_when_given_now(timetable):
    ToggleController().toggle(timetable, "Read", 0, now=datetime(2024, 6, 11, 8, 0))

    assert timetable.updated_at == datetime(2024, 6, 11, 8, 0)


@pytest.mark.parametrize("day_index", [-1, 7, 1.0, True, "2", None])
def test_invalid_day_index_is_rejected(timetable, day_index):
    before = timetable.current_week

    with pytest.raises(InvalidArgument):
        ToggleController().toggle(timetable, "Read", day_index)

    assert timetable.current_week is before


def test_unknown_activity_is_rejected(timetable):
    with pytest.raises(InvalidArgument, match="Activity not found"):
        toggle_cell(timetable.current_week, "missing", 1)


def test_toggle_cell_leaves_source_week_untouched(timetable):
    source = timetable.current_week
    updated = toggle_cell(source, "Read", 4)

    assert source.activities[0].daily_status == (False,) * 7
    assert updated.activities[0].daily_status[4] is True


def test_validate_day_index_passes_valid_values():
    assert [validate_day_index(i) for i in range(7)] == list(range(7))
