from functools import lru_cache
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import FastAPI, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field, StrictInt

from weekboard.config import settings  # loads .env via BaseSettings
from weekboard.application.exceptions import (
    DataAccessError,
    DuplicateTimetableError,
    RolloverError,
    TimetableConflictError,
    TimetableNotFoundError,
)
from weekboard.application.timetable_service import TimetableService
from weekboard.cli.status import (
    DEFAULT_TIMEOUT_SECONDS,
    check_database,
    render_results,
    run_status_checks,
)
from weekboard.domain.entities import ActivityDefinition
from weekboard.domain.errors import DomainError
from weekboard.infrastructure import log_utils
from weekboard.infrastructure.mappers import TimetableMapper

app = FastAPI(title="Weekboard API")
mapper = TimetableMapper()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class ActivityPayload(BaseModel):
    name: str
    time: str = ""
    category: str = ""


class ToggleRequest(BaseModel):
    activityId: str
    dayIndex: StrictInt


class ActivitiesRequest(BaseModel):
    activities: List[ActivityPayload] = Field(default_factory=list)


class CreateTimetableRequest(BaseModel):
    name: str
    description: Optional[str] = None
    activities: List[ActivityPayload] = Field(default_factory=list)
    isActive: bool = True


class UpdateTimetableRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None


@lru_cache(maxsize=1)
def get_timetable_service() -> TimetableService:
    from weekboard.infrastructure.di_container import get_container

    return get_container().resolve(TimetableService)


@app.middleware("http")
async def no_cache_headers(request: Request, call_next):
    response = await call_next(request)
    for key, value in NO_CACHE_HEADERS.items():
        response.headers[key] = value
    return response


# Helper to validate API key from header OR query string
def validate_api_key(request: Request, x_api_key: str | None) -> None:
    key = x_api_key or request.query_params.get("api_key")
    if key != settings.WEEKBOARD_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def require_user(x_user_id: str | None) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def _raise_http(exc: Exception) -> NoReturn:
    """Map service exceptions onto HTTP responses."""
    if isinstance(exc, TimetableNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, (DuplicateTimetableError, TimetableConflictError)):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, DomainError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, (DataAccessError, RolloverError)):
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    log_utils.error(f"Unhandled error in API request: {exc!r}")
    raise HTTPException(status_code=500, detail="Internal server error") from exc


def _ok(data: Any, **extra: Any) -> Dict[str, Any]:
    return {"success": True, "data": data, **extra}


def _definitions(items: List[ActivityPayload]) -> List[ActivityDefinition]:
    return [ActivityDefinition(name=item.name, time=item.time, category=item.category) for item in items]


# Root endpoint - useful for connector validation
@app.get("/")
def root_get():
    return {"status": "ok", "message": "Weekboard API root"}


# ---------------------------------------------------------------------------
# Timetables
# ---------------------------------------------------------------------------
@app.get("/timetables")
def list_timetables(request: Request, x_api_key: str = Header(None), x_user_id: str = Header(None)):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        timetables = get_timetable_service().list_timetables(user_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok([mapper.summary(timetable) for timetable in timetables])


@app.post("/timetables", status_code=201)
def create_timetable(
    request: Request,
    payload: CreateTimetableRequest,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        timetable = get_timetable_service().create_timetable(
            user_id,
            payload.name,
            description=payload.description,
            activities=_definitions(payload.activities),
            is_active=payload.isActive,
        )
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.to_dict(timetable), message="Timetable created successfully")


@app.get("/timetables/current-week")
def active_week(request: Request, x_api_key: str = Header(None), x_user_id: str = Header(None)):
    """Current week of the caller's active timetable, rolled over if it has ended."""
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        timetable, week = get_timetable_service().get_active_week(user_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.week_to_dict(week), timetableId=timetable.id)


@app.get("/timetables/categories")
def list_categories(request: Request, x_api_key: str = Header(None), x_user_id: str = Header(None)):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        categories = get_timetable_service().list_categories(user_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(categories)


@app.get("/timetables/{timetable_id}")
def get_timetable(
    timetable_id: str,
    request: Request,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        timetable = get_timetable_service().get_timetable(user_id, timetable_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.to_dict(timetable))


@app.put("/timetables/{timetable_id}")
def update_timetable(
    timetable_id: str,
    request: Request,
    payload: UpdateTimetableRequest,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        timetable = get_timetable_service().update_timetable(
            user_id,
            timetable_id,
            name=payload.name,
            description=payload.description,
            is_active=payload.isActive,
        )
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.to_dict(timetable), message="Timetable updated successfully")


@app.delete("/timetables/{timetable_id}")
def delete_timetable(
    timetable_id: str,
    request: Request,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        get_timetable_service().delete_timetable(user_id, timetable_id)
    except Exception as exc:
        _raise_http(exc)
    return {"success": True, "message": "Timetable deleted successfully"}


# ---------------------------------------------------------------------------
# Current week and rollover
# ---------------------------------------------------------------------------
@app.get("/timetables/{timetable_id}/current-week")
def current_week(
    timetable_id: str,
    request: Request,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        week = get_timetable_service().get_current_week(user_id, timetable_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.week_to_dict(week))


@app.post("/timetables/{timetable_id}/toggle")
def toggle_activity(
    timetable_id: str,
    request: Request,
    payload: ToggleRequest,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    """Flip one completion mark. Not idempotent; clients must not retry it."""
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        week = get_timetable_service().toggle(user_id, timetable_id, payload.activityId, payload.dayIndex)
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.week_to_dict(week))


@app.post("/timetables/{timetable_id}/rollover")
def evaluate_rollover(
    timetable_id: str,
    request: Request,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        week = get_timetable_service().evaluate_rollover(user_id, timetable_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.week_to_dict(week))


@app.post("/timetables/{timetable_id}/new-week")
def start_new_week(
    timetable_id: str,
    request: Request,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        week = get_timetable_service().start_new_week(user_id, timetable_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.week_to_dict(week), message="New week started successfully")


# ---------------------------------------------------------------------------
# Definitions, history and stats
# ---------------------------------------------------------------------------
@app.put("/timetables/{timetable_id}/activities")
def replace_activities(
    timetable_id: str,
    request: Request,
    payload: ActivitiesRequest,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    """Replace the definitions used to seed future weeks."""
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        timetable = get_timetable_service().replace_activities(
            user_id, timetable_id, _definitions(payload.activities)
        )
    except Exception as exc:
        _raise_http(exc)
    return _ok(mapper.to_dict(timetable), message="Activities updated successfully")


@app.get("/timetables/{timetable_id}/history")
def history(
    timetable_id: str,
    request: Request,
    page: int = 1,
    limit: Optional[int] = None,
    order: Optional[str] = None,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    """Archived weeks, ``limit`` per page, oldest first unless ``order=newest``."""
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        result = get_timetable_service().get_history(user_id, timetable_id, page=page, limit=limit, order=order)
    except Exception as exc:
        _raise_http(exc)
    return {
        "success": True,
        "history": [mapper.week_to_dict(week) for week in result.items],
        "currentPage": result.current_page,
        "totalPages": result.total_pages,
        "totalWeeks": result.total_weeks,
    }


@app.get("/timetables/{timetable_id}/stats")
def stats(
    timetable_id: str,
    request: Request,
    x_api_key: str = Header(None),
    x_user_id: str = Header(None),
):
    validate_api_key(request, x_api_key)
    user_id = require_user(x_user_id)
    try:
        data = get_timetable_service().get_stats(user_id, timetable_id)
    except Exception as exc:
        _raise_http(exc)
    return _ok(data)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------
@app.get("/status")
def status(
    request: Request,
    x_api_key: str = Header(None),
    timeout: float = Query(
        DEFAULT_TIMEOUT_SECONDS,
        ge=0.1,
        description="Per dependency timeout in seconds.",
    ),
):
    """Expose the CLI health check results via the API."""

    validate_api_key(request, x_api_key)

    results = run_status_checks(timeout=timeout, checks=(lambda: check_database(timeout),))
    checks = [
        {"name": result.name, "ok": result.ok, "detail": result.detail}
        for result in results
    ]
    overall_ok = all(result["ok"] for result in checks)

    return {
        "ok": overall_ok,
        "checks": checks,
        "summary": render_results(results),
    }
