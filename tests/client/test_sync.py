import threading
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from weekboard.client.cache import SyncState
from weekboard.client.errors import SyncBusyError, SyncError, TimetableApiError
from weekboard.client.sync import TimetableSync
from weekboard.domain.errors import InvalidArgument
from weekboard.domain.rollover import RolloverEngine
from weekboard.domain.toggle import toggle_cell


class _Notifier:
    def __init__(self):
        self.messages = []

    def __call__(self, message, level="INFO"):
        self.messages.append((message, level))


@pytest.fixture
def notifier():
    return _Notifier()


@pytest.fixture
def api(timetable):
    client = MagicMock()
    client.get_active_week.return_value = (timetable.id, timetable.current_week)
    client.get_current_week.return_value = timetable.current_week
    return client


@pytest.fixture
def sync(api, notifier, clock) -> TimetableSync:
    sync = TimetableSync(api, notifier=notifier, clock=clock)
    sync.load()
    return sync


def test_load_selects_active_timetable(sync, api, timetable):
    assert sync.timetable_id == timetable.id
    assert sync.week == timetable.current_week
    api.get_active_week.assert_called_once()


def test_load_specific_timetable_refreshes(api, notifier, timetable):
    sync = TimetableSync(api, notifier=notifier)

    week = sync.load(timetable.id)

    api.get_current_week.assert_called_once_with(timetable.id)
    assert week == timetable.current_week


def test_toggle_confirm_replaces_cache_with_server_week(sync, api, timetable):
    server_week = toggle_cell(timetable.current_week, "Read", 2)
    api.toggle.return_value = server_week

    result = sync.toggle("Read", 2)

    api.toggle.assert_called_once_with(timetable.id, "Read", 2)
    assert result is server_week
    assert sync.week is server_week
    assert sync.cache.state is SyncState.IDLE
    assert not sync.cache.in_flight


def test_optimistic_week_is_visible_before_confirmation(sync, api, timetable):
    seen = []
    sync.on_change = lambda cache: seen.append((cache.state, cache.week.activities[0].daily_status[2]))
    api.toggle.return_value = toggle_cell(timetable.current_week, "Read", 2)

    sync.toggle("Read", 2)

    assert seen[0] == (SyncState.OPTIMISTIC_PENDING, True)
    assert seen[-1] == (SyncState.IDLE, True)


def test_failed_toggle_rolls_back_and_notifies(sync, api, notifier, timetable):
    before = sync.week
    api.toggle.side_effect = TimetableApiError("server down")

    with pytest.raises(SyncError):
        sync.toggle("Read", 2)

    assert sync.week is before
    assert sync.week.activities[0].daily_status == (False,) * 7
    assert sync.cache.state is SyncState.IDLE
    assert not sync.cache.in_flight
    assert ("Failed to update activity status", "ERROR") in notifier.messages


def test_unexpected_toggle_error_rolls_back_and_unblocks(sync, api, notifier, timetable):
    before = sync.week
    api.toggle.side_effect = KeyError("data")

    with pytest.raises(SyncError):
        sync.toggle("Read", 2)

    assert sync.week is before
    assert sync.cache.state is SyncState.IDLE
    assert ("Failed to update activity status", "ERROR") in notifier.messages

    api.toggle.side_effect = None
    api.toggle.return_value = toggle_cell(timetable.current_week, "Read", 3)
    result = sync.toggle("Read", 3)

    assert result.activities[0].daily_status[3] is True
    assert sync.cache.state is SyncState.IDLE


def test_refresh_clears_pending_state(sync, api, timetable):
    sync.cache.state = SyncState.OPTIMISTIC_PENDING

    sync.refresh()

    assert sync.cache.state is SyncState.IDLE
    assert sync.week == timetable.current_week


def test_invalid_toggle_sends_nothing(sync, api):
    with pytest.raises(InvalidArgument):
        sync.toggle("Read", 7)

    api.toggle.assert_not_called()
    assert not sync.cache.in_flight


def test_toggle_while_in_flight_is_refused(sync, api, timetable):
    entered = threading.Event()
    release = threading.Event()

    def slow_toggle(*_args):
        entered.set()
        release.wait(5)
        return toggle_cell(timetable.current_week, "Read", 0)

    api.toggle.side_effect = slow_toggle
    worker = threading.Thread(target=sync.toggle, args=("Read", 0))
    worker.start()
    assert entered.wait(5)

    try:
        with pytest.raises(SyncBusyError):
            sync.toggle("Read", 1)
        with pytest.raises(SyncBusyError):
            sync.refresh()
    finally:
        release.set()
        worker.join(5)

    assert api.toggle.call_count == 1
    assert sync.week.activities[0].daily_status[0] is True


def test_separate_timetables_have_separate_guards(sync, api, timetable):
    other = sync.cache_for("other")

    with sync.cache.flight():
        with other.flight():
            assert sync.cache.in_flight and other.in_flight


def test_refresh_failure_notifies(sync, api, notifier):
    api.get_current_week.side_effect = TimetableApiError("boom")

    with pytest.raises(SyncError):
        sync.refresh()

    assert ("Failed to fetch current week data", "ERROR") in notifier.messages


def test_check_rollover_noop_inside_week(sync, api):
    assert sync.check_rollover(datetime(2024, 6, 16, 22, 0)) is False
    api.evaluate_rollover.assert_not_called()


def test_check_rollover_after_week_end(sync, api, notifier, timetable):
    rolled = RolloverEngine().seed_week(timetable.default_activities, datetime(2024, 6, 17))
    api.evaluate_rollover.return_value = rolled

    assert sync.check_rollover(datetime(2024, 6, 17, 0, 0, 1)) is True

    api.evaluate_rollover.assert_called_once_with(timetable.id)
    assert sync.week is rolled
    assert ("New week started!", "INFO") in notifier.messages


def test_check_rollover_failure_keeps_cache(sync, api):
    before = sync.week
    api.evaluate_rollover.side_effect = TimetableApiError("offline")

    assert sync.check_rollover(datetime(2024, 6, 17, 9, 0)) is False
    assert sync.week is before


def test_check_rollover_skips_while_busy(sync, api):
    with sync.cache.flight():
        assert sync.check_rollover(datetime(2024, 6, 17, 9, 0)) is False

    api.evaluate_rollover.assert_not_called()


def test_check_rollover_uses_clock(sync, api, clock, timetable):
    clock.now = datetime(2024, 6, 18, 9, 0)
    api.evaluate_rollover.return_value = RolloverEngine().seed_week(timetable.default_activities, clock.now)

    assert sync.check_rollover() is True


def test_check_rollover_without_selection():
    assert TimetableSync(MagicMock()).check_rollover() is False


def test_check_rollover_unexpected_error_is_retried_next_poll(sync, api, timetable):
    before = sync.week
    rolled = RolloverEngine().seed_week(timetable.default_activities, datetime(2024, 6, 17))
    api.evaluate_rollover.side_effect = [TypeError("bad payload"), rolled]

    assert sync.check_rollover(datetime(2024, 6, 17, 9, 0)) is False
    assert sync.week is before
    assert not sync.cache.in_flight

    assert sync.check_rollover(datetime(2024, 6, 17, 9, 1)) is True
    assert sync.week is rolled
