from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional, Sequence

from palette_engine.utils import get_logger

from .commands import CommandRunHandler

if TYPE_CHECKING:
    from .context import CommandContext


logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class PaletteResult:
    """One row of a palette response.

    ``score`` is assigned by the provider and only compares meaningfully
    against other results from the same query execution.
    """

    id: str
    title: str
    group: str
    score: float
    on_select: CommandRunHandler
    subtitle: str | None = None
    shortcut: str | None = None


ProviderResponse = Sequence[PaletteResult] | Awaitable[Sequence[PaletteResult]]
ProviderSearch = Callable[[str, "CommandContext"], ProviderResponse]
ProviderInitialResults = Callable[["CommandContext"], ProviderResponse]
ProviderAvailability = Callable[["CommandContext"], bool]


@dataclass(slots=True, frozen=True)
class PaletteProvider:
    """A unit of search logic contributing candidate results to the palette."""

    id: str
    label: str
    search: ProviderSearch
    priority: int = 0
    get_initial_results: ProviderInitialResults | None = None
    is_available: ProviderAvailability | None = None

    def available_for(self, context: CommandContext) -> bool:
        if self.is_available is None:
            return True
        return bool(self.is_available(context))


class ProviderRegistry:
    """Catalog of result providers keyed by id.

    Re-registering an id replaces the earlier provider in place, so its
    registration position (the last ranking tie-break) is preserved.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, PaletteProvider] = {}

    def register(self, provider: PaletteProvider) -> Callable[[], None]:
        if provider.id in self._providers:
            logger.debug("Replacing palette provider", provider_id=provider.id)
        self._providers[provider.id] = provider

        def unregister() -> None:
            if self._providers.get(provider.id) is provider:
                del self._providers[provider.id]

        return unregister

    def unregister(self, provider_id: str) -> None:
        self._providers.pop(provider_id, None)

    def clear(self) -> None:
        self._providers.clear()

    def get(self, provider_id: str) -> Optional[PaletteProvider]:
        return self._providers.get(provider_id)

    def providers(self) -> List[PaletteProvider]:
        return list(self._providers.values())

    def available(self, context: CommandContext) -> List[PaletteProvider]:
        return [provider for provider in self._providers.values() if provider.available_for(context)]

    def __iter__(self):
        return iter(self.providers())

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers


__all__ = [
    "PaletteProvider",
    "PaletteResult",
    "ProviderAvailability",
    "ProviderInitialResults",
    "ProviderRegistry",
    "ProviderResponse",
    "ProviderSearch",
]
