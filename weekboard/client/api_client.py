"""
HTTP client for the timetable REST API.

Reads and rollover requests are idempotent and retried on transient failures.
Toggles are sent exactly once; a replayed toggle would flip the mark back.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from weekboard.config import settings
from weekboard.domain.entities import ActivityDefinition, WeekRecord
from weekboard.domain.stats import HistoryPage
from weekboard.client.errors import TimetableApiError
from weekboard.infrastructure import log_utils
from weekboard.infrastructure.decorators import retry_on_network_error
from weekboard.infrastructure.mappers import TimetableMapper, TimetableMappingError

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class TimetableApiClient:
    def __init__(
        self,
        *,
        user_id: str,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        if not self.base_url:
            raise TimetableApiError("API_BASE_URL must include scheme and host.")
        self.user_id = user_id
        self.api_key = api_key if api_key is not None else settings.WEEKBOARD_API_KEY
        self.timeout = timeout or settings.API_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.API_MAX_RETRIES
        self.backoff_base = backoff_base if backoff_base is not None else settings.API_BACKOFF_BASE
        self.session = session or requests.Session()
        self.mapper = TimetableMapper()

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-User-Id": self.user_id,
            **NO_CACHE_HEADERS,
        }
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _url(self, path: str) -> str:
        normalized = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{normalized}"

    def _should_retry(self, status: int) -> bool:
        return status in (408, 429, 500, 502, 503, 504)

    def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Issue one request and unwrap the ``{"success": ..., "data": ...}`` envelope."""
        url = self._url(path)
        try:
            response = self.session.request(
                method=method.upper(),
                url=url,
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as exc:
            raise TimetableApiError(f"{method} {path} failed: {exc!r}") from exc

        if response.status_code not in (200, 201):
            detail = _error_detail(response)
            raise TimetableApiError(
                f"{method} {path} failed with {response.status_code}: {detail}", response
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TimetableApiError(f"{method} {path} returned invalid JSON", response) from exc

        if not isinstance(body, dict) or not body.get("success", False):
            message = body.get("message") if isinstance(body, dict) else None
            raise TimetableApiError(message or f"{method} {path} was not successful", response)
        return body

    @retry_on_network_error(TimetableApiError)
    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return self._send(method, path, **kwargs)

    def _week(self, payload: Any) -> WeekRecord:
        try:
            return self.mapper.week_from_dict(payload)
        except TimetableMappingError as exc:
            raise TimetableApiError(f"Malformed week in response: {exc}") from exc

    # --- Timetables ---
    def list_timetables(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/timetables")["data"]

    def get_active_week(self) -> Tuple[str, WeekRecord]:
        body = self._request("GET", "/timetables/current-week")
        return str(body["timetableId"]), self._week(body["data"])

    def get_current_week(self, timetable_id: str) -> WeekRecord:
        body = self._request("GET", f"/timetables/{timetable_id}/current-week")
        return self._week(body["data"])

    def toggle(self, timetable_id: str, activity_id: str, day_index: int) -> WeekRecord:
        log_utils.debug(f"POST toggle {activity_id}/{day_index} on {timetable_id}")
        body = self._send(
            "POST",
            f"/timetables/{timetable_id}/toggle",
            json={"activityId": activity_id, "dayIndex": day_index},
        )
        return self._week(body["data"])

    def evaluate_rollover(self, timetable_id: str) -> WeekRecord:
        body = self._request("POST", f"/timetables/{timetable_id}/rollover")
        return self._week(body["data"])

    def start_new_week(self, timetable_id: str) -> WeekRecord:
        # Forced rollover archives every time it runs, so it is not retried.
        body = self._send("POST", f"/timetables/{timetable_id}/new-week")
        return self._week(body["data"])

    def replace_activities(self, timetable_id: str, activities: Iterable[ActivityDefinition]) -> List[ActivityDefinition]:
        payload = {"activities": [self.mapper.activity_to_dict(a) for a in activities]}
        body = self._request("PUT", f"/timetables/{timetable_id}/activities", json=payload)
        return self.mapper.activities_from_list(body["data"]["defaultActivities"])

    def get_history(
        self,
        timetable_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        order: Optional[str] = None,
    ) -> HistoryPage:
        params: Dict[str, Any] = {"page": page}
        if limit is not None:
            params["limit"] = limit
        if order is not None:
            params["order"] = order
        body = self._request("GET", f"/timetables/{timetable_id}/history", params=params)
        return HistoryPage(
            items=[self._week(item) for item in body["history"]],
            current_page=body["currentPage"],
            total_pages=body["totalPages"],
            total_weeks=body["totalWeeks"],
        )

    def get_stats(self, timetable_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/timetables/{timetable_id}/stats")["data"]


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or body)
    return str(body)
