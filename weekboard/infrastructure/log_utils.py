"""Tagged logging helpers used throughout weekboard."""

from __future__ import annotations

import inspect
import logging

from weekboard.logging_setup import get_logger, get_tag_for_module

_ALIASES = {"WARN": "WARNING"}


def _caller_tag() -> str:
    frame = inspect.currentframe()
    while frame is not None and frame.f_globals.get("__name__") == __name__:
        frame = frame.f_back
    module_name = frame.f_globals.get("__name__", "unknown") if frame is not None else "unknown"
    return get_tag_for_module(module_name)


def log_message(msg: str, level: str = "INFO", tag: str | None = None, **kwargs) -> None:
    """Write ``msg`` to the shared log, tagged after the calling module unless ``tag`` is given.

    Extra keyword arguments such as ``exc_info=True`` go straight to ``Logger.log``.
    """
    logger = get_logger(tag or _caller_tag())

    name = str(level).upper()
    numeric_level = logging.getLevelName(_ALIASES.get(name, name))
    if not isinstance(numeric_level, int):
        logger.warning("Unknown log level %r; logging at INFO. Message: %s", level, msg)
        numeric_level = logging.INFO

    logger.log(numeric_level, msg, **kwargs)


def debug(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="DEBUG", tag=tag, **kwargs)


def info(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="INFO", tag=tag, **kwargs)


def warn(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="WARNING", tag=tag, **kwargs)


def error(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="ERROR", tag=tag, **kwargs)
