from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from platformdirs import user_cache_dir, user_config_dir

from palette_engine.errors import ConfigurationError

APP_NAME = "PaletteEngine"
ENV_PREFIX = "PALETTE_ENGINE_"
ENV_FILE_NAME = "settings.env"

DEFAULT_RESULT_LIMIT = 50
DEFAULT_DEBOUNCE_MS = 150
DEFAULT_PROVIDER_TIMEOUT = 2.0

_DISABLED_VALUES = {"", "none", "off", "disabled"}
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _config_dir() -> Path:
    path = Path(user_config_dir(APP_NAME, roaming=True))
    path.mkdir(parents=True, exist_ok=True)
    return path


def _cache_dir() -> Path:
    path = Path(user_cache_dir(APP_NAME))
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_dir() -> Path:
    return _config_dir()


def cache_dir() -> Path:
    return _cache_dir()


def log_dir() -> Path:
    override = os.getenv(f"{ENV_PREFIX}LOG_DIR")
    path = Path(override).expanduser() if override else cache_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _env_file_path(explicit: Path | None) -> Path:
    if explicit is not None:
        return explicit
    return _config_dir() / ENV_FILE_NAME


@dataclass(slots=True)
class PaletteSettings:
    """Tunables for the query engine and the palette controller."""

    result_limit: int = DEFAULT_RESULT_LIMIT
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    provider_timeout: float | None = DEFAULT_PROVIDER_TIMEOUT
    log_level: str = "INFO"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


class SettingsManager:
    """Load and persist palette settings with environment overrides."""

    def __init__(self, env_file: Path | None = None) -> None:
        self._env_file = env_file

    @property
    def env_file(self) -> Path:
        return _env_file_path(self._env_file)

    def load(self) -> PaletteSettings:
        """Load settings from environment, falling back to persisted file."""
        load_dotenv(self.env_file, override=False)

        settings = PaletteSettings()

        result_limit = self._get_int("RESULT_LIMIT", minimum=1)
        if result_limit is not None:
            settings.result_limit = result_limit

        debounce_ms = self._get_int("DEBOUNCE_MS", minimum=0)
        if debounce_ms is not None:
            settings.debounce_ms = debounce_ms

        raw_timeout = self._get_env("PROVIDER_TIMEOUT")
        if raw_timeout is not None:
            settings.provider_timeout = self._parse_timeout(raw_timeout)

        log_level = self._get_env("LOG_LEVEL")
        if log_level:
            level = log_level.strip().upper()
            if level not in _LOG_LEVELS:
                raise ConfigurationError(
                    f"{ENV_PREFIX}LOG_LEVEL",
                    f"expected one of {', '.join(_LOG_LEVELS)}, got {log_level!r}",
                )
            settings.log_level = level

        return settings

    def save(self, settings: PaletteSettings) -> None:
        """Persist settings to the managed env file."""
        path = self.env_file
        path.parent.mkdir(parents=True, exist_ok=True)
        timeout = "" if settings.provider_timeout is None else settings.provider_timeout
        content = [
            f"{ENV_PREFIX}RESULT_LIMIT={settings.result_limit}",
            f"{ENV_PREFIX}DEBOUNCE_MS={settings.debounce_ms}",
            f"{ENV_PREFIX}PROVIDER_TIMEOUT={timeout}",
            f"{ENV_PREFIX}LOG_LEVEL={settings.log_level}",
        ]
        path.write_text("\n".join(content) + "\n", encoding="utf-8")

    def _get_env(self, name: str) -> str | None:
        return os.getenv(f"{ENV_PREFIX}{name}")

    def _get_int(self, name: str, *, minimum: int) -> int | None:
        raw = self._get_env(name)
        if raw is None or not raw.strip():
            return None
        try:
            value = int(raw.strip())
        except ValueError as exc:
            raise ConfigurationError(
                f"{ENV_PREFIX}{name}", f"expected an integer, got {raw!r}"
            ) from exc
        if value < minimum:
            raise ConfigurationError(
                f"{ENV_PREFIX}{name}", f"must be >= {minimum}, got {value}"
            )
        return value

    def _parse_timeout(self, raw: str) -> float | None:
        if raw.strip().lower() in _DISABLED_VALUES:
            return None
        try:
            value = float(raw.strip())
        except ValueError as exc:
            raise ConfigurationError(
                f"{ENV_PREFIX}PROVIDER_TIMEOUT", f"expected seconds, got {raw!r}"
            ) from exc
        if value <= 0:
            raise ConfigurationError(
                f"{ENV_PREFIX}PROVIDER_TIMEOUT", f"must be positive, got {value}"
            )
        return value


__all__ = [
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_PROVIDER_TIMEOUT",
    "DEFAULT_RESULT_LIMIT",
    "PaletteSettings",
    "SettingsManager",
    "cache_dir",
    "config_dir",
    "log_dir",
]
