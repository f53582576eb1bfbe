"""Logging for weekboard: one rotating history log shared by every subsystem.

Records carry a short subsystem tag (``ROLL``, ``TOGGLE``, ``SYNC``, ``API``,
``DB``, ``CLI``, ``TT``) so a single file can be filtered per concern.
"""

from __future__ import annotations

import inspect
import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from weekboard.config import get_env, settings

LOGGER_NAME = "weekboard.history"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB per log file
DEFAULT_BACKUP_COUNT = 7
LOG_LEVEL_ENV_VAR = "WEEKBOARD_LOG_LEVEL"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(tag)s] %(message)s"

# First matching keyword wins, so ``api_client`` is tagged SYNC, not API.
TAG_MAP = {
    "rollover": "ROLL",
    "toggle": "TOGGLE",
    "client": "SYNC",
    "sync": "SYNC",
    "poller": "SYNC",
    "api": "API",
    "postgres": "DB",
    "mappers": "DB",
    "cli": "CLI",
    "timetable_service": "TT",
}

_logger: Optional[logging.Logger] = None


class TaggedLogger(logging.LoggerAdapter):
    """Logger adapter that injects a subsystem tag into every record."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("tag", self.extra.get("tag", "GEN"))
        return msg, kwargs


def get_tag_for_module(module_name: str) -> str:
    """Infer a logging tag from the module name."""
    module_name = module_name.lower()
    for key, tag in TAG_MAP.items():
        if key in module_name:
            return tag
    return "GEN"


def _resolve_level(level: Optional[str]) -> int:
    candidate = str(level or get_env(LOG_LEVEL_ENV_VAR, default=settings.WEEKBOARD_LOG_LEVEL)).upper()
    numeric_level = logging.getLevelName(candidate)
    if isinstance(numeric_level, int):
        return numeric_level
    print(f"weekboard: unknown log level '{candidate}', using INFO.", file=sys.stderr)
    return logging.INFO


def _formatter() -> logging.Formatter:
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime
    return formatter


def _file_handler(path: Path, max_bytes: int, backup_count: int) -> Optional[logging.Handler]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    except OSError as exc:
        # Console output only from here on.
        print(f"weekboard: cannot write log file {path}: {exc}", file=sys.stderr)
        return None


def _console_enabled() -> bool:
    flag = get_env("WEEKBOARD_LOG_TO_CONSOLE", default=settings.WEEKBOARD_LOG_TO_CONSOLE)
    return str(flag).lower() in ("true", "1", "yes", "on")


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def configure_logging(
    *,
    log_path: Optional[Path] = None,
    level: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    force: bool = False,
) -> logging.Logger:
    """Attach the rotating file handler (and console handler, if enabled) once.

    Later calls only adjust the level unless ``force`` or a new ``log_path``
    asks for the handlers to be rebuilt.
    """
    global _logger
    logger = logging.getLogger(LOGGER_NAME)

    if _logger is not None and not force and log_path is None:
        if level is not None:
            logger.setLevel(_resolve_level(level))
        return logger

    _drop_handlers(logger)
    logger.setLevel(_resolve_level(level))
    logger.propagate = False

    formatter = _formatter()
    handlers = [
        _file_handler(
            Path(log_path) if log_path is not None else settings.log_path,
            max_bytes or DEFAULT_MAX_BYTES,
            backup_count or DEFAULT_BACKUP_COUNT,
        )
    ]
    if _console_enabled():
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        if handler is not None:
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    _logger = logger
    return logger


def get_logger(tag: str | None = None) -> TaggedLogger:
    """Return a tagged logger, tagged after the calling module when ``tag`` is omitted."""
    if tag is None:
        caller = inspect.currentframe().f_back
        tag = get_tag_for_module(caller.f_globals.get("__name__", "unknown") if caller else "unknown")
    return TaggedLogger(_logger or configure_logging(), {"tag": tag})


def reset_logging() -> None:
    """Tear down handlers so tests can reconfigure the logger cleanly."""
    global _logger
    _drop_handlers(logging.getLogger(LOGGER_NAME))
    _logger = None
