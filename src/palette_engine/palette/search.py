from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Iterable, List, Sequence

from palette_engine.config.settings import (
    DEFAULT_PROVIDER_TIMEOUT,
    DEFAULT_RESULT_LIMIT,
    PaletteSettings,
)
from palette_engine.errors import ProviderFailure, ProviderTimeoutError, QueryPhase
from palette_engine.utils import EventHook, get_logger, maybe_await

from .providers import PaletteProvider, PaletteResult, ProviderRegistry, ProviderResponse

if TYPE_CHECKING:
    from .context import CommandContext


logger = get_logger(__name__)

ProviderCall = Callable[[PaletteProvider], ProviderResponse]

_UNSET = object()


@dataclass(slots=True, frozen=True)
class RankedResult:
    """A result paired with the provider attributes used to rank it."""

    result: PaletteResult
    priority: int
    provider_index: int

    def sort_key(self) -> tuple[float, int, str, str, str, int]:
        title = self.result.title
        return (
            -self.result.score,
            -self.priority,
            title.casefold(),
            title,
            self.result.id,
            self.provider_index,
        )


def rank_results(candidates: Iterable[RankedResult], limit: int | None = None) -> List[PaletteResult]:
    """Order candidates by score, provider priority, then title.

    Ties left after title fall back to result id and finally to provider
    registration order. Duplicate ids keep the highest-ranked occurrence.
    Truncation to ``limit`` happens after the global sort.
    """

    ordered = sorted(candidates, key=RankedResult.sort_key)
    seen: set[str] = set()
    merged: List[PaletteResult] = []
    for candidate in ordered:
        if candidate.result.id in seen:
            continue
        seen.add(candidate.result.id)
        merged.append(candidate.result)
        if limit is not None and len(merged) >= limit:
            break
    return merged


class SearchEngine:
    """Fan queries out to every available provider and merge the answers.

    A provider that raises, rejects or exceeds ``provider_timeout`` contributes
    nothing; the failure is logged and emitted on ``failures`` but never
    raised to the caller.
    """

    def __init__(
        self,
        providers: ProviderRegistry,
        *,
        settings: PaletteSettings | None = None,
        default_limit: int | None = None,
        provider_timeout: float | None | object = _UNSET,
    ) -> None:
        self._providers = providers
        if default_limit is None:
            default_limit = settings.result_limit if settings else DEFAULT_RESULT_LIMIT
        if provider_timeout is _UNSET:
            provider_timeout = settings.provider_timeout if settings else DEFAULT_PROVIDER_TIMEOUT
        self._default_limit = _validate_limit(default_limit)
        self._provider_timeout: float | None = provider_timeout  # type: ignore[assignment]
        self.failures: EventHook[ProviderFailure] = EventHook()

    @property
    def providers(self) -> ProviderRegistry:
        return self._providers

    @property
    def default_limit(self) -> int:
        return self._default_limit

    @property
    def provider_timeout(self) -> float | None:
        return self._provider_timeout

    async def run_palette_query(
        self,
        query: str,
        context: CommandContext,
        limit: int | None = None,
    ) -> List[PaletteResult]:
        return await self._fan_out(
            QueryPhase.SEARCH,
            context,
            limit,
            lambda provider: provider.search(query, context),
            self._providers.available(context),
        )

    async def get_initial_palette_results(
        self,
        context: CommandContext,
        limit: int | None = None,
    ) -> List[PaletteResult]:
        providers = [
            provider
            for provider in self._providers.available(context)
            if provider.get_initial_results is not None
        ]
        return await self._fan_out(
            QueryPhase.INITIAL,
            context,
            limit,
            lambda provider: provider.get_initial_results(context),  # type: ignore[misc]
            providers,
        )

    # ----------------------------------------------------------------- Internals

    async def _fan_out(
        self,
        phase: QueryPhase,
        context: CommandContext,
        limit: int | None,
        call: ProviderCall,
        providers: Sequence[PaletteProvider],
    ) -> List[PaletteResult]:
        effective_limit = self._default_limit if limit is None else _validate_limit(limit)
        if not providers or effective_limit == 0:
            return []

        started = time.perf_counter()
        order = {provider.id: index for index, provider in enumerate(self._providers.providers())}
        contributions = await asyncio.gather(
            *(self._invoke(provider, phase, call) for provider in providers)
        )

        candidates = [
            RankedResult(result=result, priority=provider.priority, provider_index=order.get(provider.id, len(order)))
            for provider, results in zip(providers, contributions)
            for result in results
        ]
        merged = rank_results(candidates, effective_limit)
        logger.debug(
            "Palette query merged",
            phase=phase.value,
            route=context.route,
            providers=len(providers),
            candidates=len(candidates),
            returned=len(merged),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return merged

    async def _invoke(
        self,
        provider: PaletteProvider,
        phase: QueryPhase,
        call: ProviderCall,
    ) -> List[PaletteResult]:
        try:
            pending = maybe_await(call(provider))
            if self._provider_timeout is None:
                response = await pending
            else:
                response = await asyncio.wait_for(pending, self._provider_timeout)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            timeout = self._provider_timeout or 0.0
            self._record_failure(provider, phase, ProviderTimeoutError(provider.id, timeout))
            return []
        except Exception as exc:  # noqa: BLE001 - one provider must not sink the query
            self._record_failure(provider, phase, exc)
            return []

        if not isinstance(response, (list, tuple)):
            logger.warning(
                "Palette provider returned a non-list response",
                provider_id=provider.id,
                phase=phase.value,
                response_type=type(response).__name__,
            )
            return []
        return [_finite_score(provider, result) for result in response]

    def _record_failure(self, provider: PaletteProvider, phase: QueryPhase, error: BaseException) -> None:
        if isinstance(error, ProviderTimeoutError):
            logger.warning(
                "Palette provider timed out",
                provider_id=provider.id,
                phase=phase.value,
                timeout=error.timeout,
            )
        else:
            logger.warning(
                "Palette provider failed",
                provider_id=provider.id,
                phase=phase.value,
                exc_info=error,
            )
        self.failures.emit(ProviderFailure(provider_id=provider.id, phase=phase, error=error))


def _finite_score(provider: PaletteProvider, result: PaletteResult) -> PaletteResult:
    if not math.isnan(result.score):
        return result
    logger.warning("Palette result has a NaN score", provider_id=provider.id, result_id=result.id)
    return replace(result, score=float("-inf"))


def _validate_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise TypeError(f"limit must be an integer, got {type(limit).__name__}")
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    return limit


__all__ = ["RankedResult", "SearchEngine", "rank_results"]
