from unittest.mock import MagicMock

import pytest
import requests

from weekboard.client.api_client import TimetableApiClient
from weekboard.client.errors import TimetableApiError
from weekboard.domain.entities import ActivityDefinition
from weekboard.infrastructure.mappers import TimetableMapper


def _response(status_code: int, body=None, text: str = ""):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("weekboard.infrastructure.decorators.time.sleep", lambda _: None)


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session) -> TimetableApiClient:
    return TimetableApiClient(
        user_id="user-1",
        base_url="http://api.test/",
        api_key="secret",
        timeout=2,
        session=session,
        max_retries=3,
        backoff_base=0,
    )


@pytest.fixture
def week_payload(timetable):
    return TimetableMapper().week_to_dict(timetable.current_week)


def test_headers_carry_identity_and_no_cache(client, session, week_payload):
    session.request.return_value = _response(200, {"success": True, "data": week_payload})

    client.get_current_week("tt-1")

    kwargs = session.request.call_args.kwargs
    assert kwargs["method"] == "GET"
    assert kwargs["url"] == "http://api.test/timetables/tt-1/current-week"
    assert kwargs["headers"]["X-User-Id"] == "user-1"
    assert kwargs["headers"]["X-API-Key"] == "secret"
    assert kwargs["headers"]["Cache-Control"] == "no-cache, no-store, must-revalidate"
    assert kwargs["timeout"] == 2


def test_get_active_week_returns_id_and_week(client, session, week_payload, timetable):
    session.request.return_value = _response(
        200, {"success": True, "data": week_payload, "timetableId": "tt-9"}
    )

    timetable_id, week = client.get_active_week()

    assert timetable_id == "tt-9"
    assert week == timetable.current_week


def test_reads_are_retried_on_transient_errors(client, session, week_payload):
    session.request.side_effect = [
        _response(503, text="unavailable"),
        requests.exceptions.ConnectionError("reset"),
        _response(200, {"success": True, "data": week_payload}),
    ]

    client.evaluate_rollover("tt-1")

    assert session.request.call_count == 3


def test_toggle_is_sent_exactly_once(client, session):
    session.request.return_value = _response(503, text="unavailable")

    with pytest.raises(TimetableApiError) as excinfo:
        client.toggle("tt-1", "Read", 2)

    assert session.request.call_count == 1
    assert excinfo.value.status_code == 503
    assert session.request.call_args.kwargs["json"] == {"activityId": "Read", "dayIndex": 2}


def test_client_errors_are_not_retried(client, session):
    session.request.return_value = _response(404, {"detail": "Timetable not found: tt-1"})

    with pytest.raises(TimetableApiError, match="Timetable not found"):
        client.get_current_week("tt-1")

    assert session.request.call_count == 1


def test_unsuccessful_envelope_raises(client, session):
    session.request.return_value = _response(200, {"success": False, "message": "nope"})

    with pytest.raises(TimetableApiError, match="nope"):
        client.get_stats("tt-1")


def test_history_page_is_parsed(client, session, week_payload):
    session.request.return_value = _response(
        200,
        {"success": True, "history": [week_payload], "currentPage": 2, "totalPages": 3, "totalWeeks": 21},
    )

    page = client.get_history("tt-1", page=2, limit=10, order="newest")

    assert session.request.call_args.kwargs["params"] == {"page": 2, "limit": 10, "order": "newest"}
    assert page.current_page == 2
    assert page.total_weeks == 21
    assert len(page.items) == 1


def test_replace_activities_sends_definitions(client, session):
    session.request.return_value = _response(
        200,
        {"success": True, "data": {"defaultActivities": [{"name": "Run", "time": "", "category": "Health"}]}},
    )

    saved = client.replace_activities("tt-1", [ActivityDefinition(name="Run", category="Health")])

    assert session.request.call_args.kwargs["method"] == "PUT"
    assert session.request.call_args.kwargs["json"] == {
        "activities": [{"name": "Run", "time": "", "category": "Health"}]
    }
    assert saved == [ActivityDefinition(name="Run", category="Health")]


def test_malformed_week_is_an_api_error(client, session):
    session.request.return_value = _response(200, {"success": True, "data": {"weekStartDate": "bad"}})

    with pytest.raises(TimetableApiError):
        client.get_current_week("tt-1")
