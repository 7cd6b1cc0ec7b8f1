"""Shared utility helpers for the palette engine."""

from .asyncio import BackgroundTask, call_later, maybe_await, run_background
from .events import EventHook
from .logging import (
    LoggingOptions,
    configure_logging,
    current_log_level,
    get_logger,
    log_file_path,
    set_log_level,
)

__all__ = [
    "BackgroundTask",
    "call_later",
    "maybe_await",
    "run_background",
    "EventHook",
    "LoggingOptions",
    "configure_logging",
    "get_logger",
    "log_file_path",
    "current_log_level",
    "set_log_level",
]
