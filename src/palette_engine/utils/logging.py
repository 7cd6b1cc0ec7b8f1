from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, cast

import structlog
from loguru import logger as loguru_logger
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger
from structlog.typing import EventDict, WrappedLogger

from palette_engine.config.settings import log_dir


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message} | {extra}"
DEFAULT_LOG_FILENAME = "palette-engine.log"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(slots=True)
class LoggingOptions:
    level: LogLevel = "INFO"
    debug: bool = False
    rotation: str = "10 MB"
    retention: str = "14 days"
    log_path: Optional[Path] = None
    console: bool = True


# Loggers are wrapped individually instead of through structlog.configure(),
# and loguru sinks are only added by configure_logging(), so importing the
# package leaves the host's structlog and loguru setup untouched.
_min_level = logging.INFO
_handler_ids: list[int] = []
_configured_log_path: Optional[Path] = None


def set_log_level(level: str) -> None:
    global _min_level

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level {level!r}")
    _min_level = numeric


def current_log_level() -> str:
    return logging.getLevelName(_min_level)


def configure_logging(options: LoggingOptions | None = None) -> Path:
    """Install the palette engine's own loguru sinks.

    Only sinks added by a previous call are replaced; handlers registered by
    the host application stay in place.
    """

    global _configured_log_path

    opts = options or LoggingOptions()

    console_level = "DEBUG" if opts.debug else opts.level
    log_path = opts.log_path or (log_dir() / DEFAULT_LOG_FILENAME)

    for handler_id in _handler_ids:
        loguru_logger.remove(handler_id)
    _handler_ids.clear()

    if opts.console:
        _handler_ids.append(
            loguru_logger.add(
                sys.stderr,
                level=console_level,
                colorize=True,
                enqueue=True,
                backtrace=opts.debug,
                diagnose=opts.debug,
                format=LOG_FORMAT,
            )
        )

    _handler_ids.append(
        loguru_logger.add(
            log_path,
            level="DEBUG",
            rotation=opts.rotation,
            retention=opts.retention,
            enqueue=True,
            encoding="utf-8",
            format=LOG_FORMAT,
        )
    )

    set_log_level("DEBUG" if opts.debug else opts.level)
    _configured_log_path = log_path
    return log_path


def _filter_by_level(
    _: WrappedLogger,
    __: str,
    event_dict: EventDict,
) -> EventDict:
    level = logging.getLevelName(str(event_dict.get("level", "info")).upper())
    if isinstance(level, int) and level < _min_level:
        raise DropEvent
    return event_dict


def _log_to_loguru(
    _: WrappedLogger,
    __: str,
    event_dict: EventDict,
) -> EventDict:
    level = str(event_dict.pop("level", "INFO")).upper()
    event = event_dict.pop("event", "")
    timestamp = event_dict.pop("timestamp", None)
    exception = event_dict.pop("exception", None)
    event_dict.pop("stack", None)
    bind_logger = loguru_logger.bind(**event_dict)
    if timestamp:
        bind_logger = bind_logger.bind(timestamp=timestamp)
    if exception:
        bind_logger = bind_logger.bind(exception=exception)
    bind_logger.opt(depth=4).log(level, event)
    raise DropEvent


_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    _filter_by_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    _log_to_loguru,
]


def get_logger(*initial_values: object, **initial_kw: object) -> BoundLogger:
    if initial_values:
        initial_kw.setdefault("logger", initial_values[0])
    log = structlog.wrap_logger(
        None,
        processors=_PROCESSORS,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )
    return cast(BoundLogger, log.bind(**initial_kw))


def log_file_path() -> Optional[Path]:
    return _configured_log_path


__all__ = [
    "LoggingOptions",
    "configure_logging",
    "current_log_level",
    "get_logger",
    "log_file_path",
    "set_log_level",
]
