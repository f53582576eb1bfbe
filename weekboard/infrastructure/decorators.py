"""Retry support for idempotent timetable API calls."""

from __future__ import annotations

import functools
import time
from typing import Any, Callable, Dict, Type, TypeVar

from weekboard.infrastructure import log_utils

TFunc = TypeVar("TFunc", bound=Callable[..., Any])


def retry_on_network_error(*exception_types: Type[BaseException]) -> Callable[[TFunc], TFunc]:
    """Retry a ``(self, method, path, **kwargs)`` request method with exponential backoff.

    The owning client supplies ``max_retries``, ``backoff_base`` and
    ``_should_retry(status)``. An error without a ``status_code`` never got an
    answer from the server and is always retried; one with a status is retried
    only when ``_should_retry`` allows it.

    Only idempotent requests may be wrapped. A toggle replayed after a lost
    response would flip the mark back.
    """

    def decorator(func: TFunc) -> TFunc:
        @functools.wraps(func)
        def wrapper(self: Any, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
            attempts = max(1, int(getattr(self, "max_retries", 1)))
            backoff_base = float(getattr(self, "backoff_base", 0.0))
            attempt = 1
            while True:
                try:
                    return func(self, method, path, **kwargs)
                except exception_types as exc:
                    status = getattr(exc, "status_code", None)
                    if attempt >= attempts or (status is not None and not self._should_retry(status)):
                        raise
                    delay = backoff_base * 2 ** (attempt - 1)
                    reason = "no response" if status is None else f"status {status}"
                    log_utils.warn(
                        f"{method} {path} failed ({reason}), attempt {attempt}/{attempts}; "
                        f"retrying in {delay:.2f}s."
                    )
                    if delay > 0:
                        time.sleep(delay)
                    attempt += 1

        return wrapper  # type: ignore[return-value]

    return decorator
