"""Configuration helpers for the palette engine."""

from .settings import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_PROVIDER_TIMEOUT,
    DEFAULT_RESULT_LIMIT,
    PaletteSettings,
    SettingsManager,
)

__all__ = [
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_PROVIDER_TIMEOUT",
    "DEFAULT_RESULT_LIMIT",
    "PaletteSettings",
    "SettingsManager",
]
