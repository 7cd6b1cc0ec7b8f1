from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator

import pytest

# Route the file sink away from the user's cache dir before any module logs.
os.environ.setdefault(
    "PALETTE_ENGINE_LOG_DIR", tempfile.mkdtemp(prefix="palette-engine-logs-")
)

from palette_engine.errors import ProviderFailure  # noqa: E402
from palette_engine.palette import (  # noqa: E402
    CommandContext,
    CommandRegistry,
    ProviderRegistry,
    SearchEngine,
)
from palette_engine.utils import LoggingOptions, configure_logging  # noqa: E402
from tests.factories import make_context  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> Iterator[None]:
    """Keep test output readable while still exercising the log pipeline."""

    configure_logging(LoggingOptions(level="WARNING", console=False))
    yield


@pytest.fixture
def context() -> CommandContext:
    return make_context()


@pytest.fixture
def command_registry() -> CommandRegistry:
    return CommandRegistry()


@pytest.fixture
def provider_registry() -> Iterator[ProviderRegistry]:
    registry = ProviderRegistry()
    yield registry
    registry.clear()


@pytest.fixture
def engine(provider_registry: ProviderRegistry) -> SearchEngine:
    return SearchEngine(provider_registry, provider_timeout=0.5)


@pytest.fixture
def failures(engine: SearchEngine) -> Iterator[list[ProviderFailure]]:
    """Collect provider failures reported by the engine's error channel."""

    recorded: list[ProviderFailure] = []
    unsubscribe = engine.failures.subscribe(recorded.append)
    yield recorded
    unsubscribe()
