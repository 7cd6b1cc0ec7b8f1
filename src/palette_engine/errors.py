from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class PaletteError(Exception):
    """Base class for palette engine errors."""


class DuplicateCommandError(PaletteError):
    """Raised when a command id is registered twice."""

    def __init__(self, command_id: str) -> None:
        super().__init__(f"Command with id {command_id!r} already registered")
        self.command_id = command_id


class ConfigurationError(PaletteError):
    """Raised when a settings value cannot be parsed."""

    def __init__(self, variable: str, detail: str) -> None:
        super().__init__(f"Invalid value for {variable}: {detail}")
        self.variable = variable
        self.detail = detail


class ProviderTimeoutError(PaletteError):
    """Stands in for a provider that did not answer within its time budget."""

    def __init__(self, provider_id: str, timeout: float) -> None:
        super().__init__(f"Provider {provider_id!r} timed out after {timeout:g}s")
        self.provider_id = provider_id
        self.timeout = timeout


class QueryPhase(StrEnum):
    SEARCH = "search"
    INITIAL = "initial"


@dataclass(slots=True, frozen=True)
class ProviderFailure:
    """Record of a provider call that was excluded from a merged response."""

    provider_id: str
    phase: QueryPhase
    error: BaseException

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, ProviderTimeoutError)


__all__ = [
    "ConfigurationError",
    "DuplicateCommandError",
    "PaletteError",
    "ProviderFailure",
    "ProviderTimeoutError",
    "QueryPhase",
]
