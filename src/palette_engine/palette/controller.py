from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Optional

from palette_engine.config.settings import PaletteSettings
from palette_engine.utils import EventHook, call_later, get_logger, maybe_await, run_background

from .context import CommandContext
from .providers import PaletteResult

if TYPE_CHECKING:
    from .search import SearchEngine


logger = get_logger(__name__)


class PaletteStatus(StrEnum):
    CLOSED = "closed"
    LOADING_INITIAL = "open-loading-initial"
    READY = "open-ready"


@dataclass(slots=True, frozen=True)
class PaletteState:
    context: CommandContext
    is_open: bool = False
    query: str = ""
    results: tuple[PaletteResult, ...] = ()
    is_loading: bool = False
    initial_results_loaded: bool = False

    @property
    def status(self) -> PaletteStatus:
        if not self.is_open:
            return PaletteStatus.CLOSED
        if not self.initial_results_loaded:
            return PaletteStatus.LOADING_INITIAL
        return PaletteStatus.READY


class PaletteController:
    """Drive one palette instance: open state, query text, debounce and staleness.

    Every query execution captures a generation number; a response is only
    applied when no newer execution (or open/close transition) has started
    since. Closing keeps ``results`` and ``initial_results_loaded`` so that
    reopening is instant.
    """

    def __init__(
        self,
        engine: SearchEngine,
        context: CommandContext,
        *,
        settings: PaletteSettings | None = None,
        limit: int | None = None,
        debounce_ms: int | None = None,
    ) -> None:
        settings = settings or PaletteSettings()
        if debounce_ms is not None:
            settings = replace(settings, debounce_ms=debounce_ms)
        if settings.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {settings.debounce_ms}")
        self._engine = engine
        self._limit = limit
        self._debounce_seconds = settings.debounce_seconds
        self._state = PaletteState(context=context)
        self._generation = 0
        self._cancel_debounce: Optional[Callable[[], None]] = None
        self._initial_load: Optional[asyncio.Task[bool]] = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._disposed = False
        self.changed: EventHook[PaletteState] = EventHook()

    # ----------------------------------------------------------------- State

    @property
    def state(self) -> PaletteState:
        return self._state

    @property
    def status(self) -> PaletteStatus:
        return self._state.status

    @property
    def is_open(self) -> bool:
        return self._state.is_open

    @property
    def query(self) -> str:
        return self._state.query

    @property
    def results(self) -> tuple[PaletteResult, ...]:
        return self._state.results

    @property
    def context(self) -> CommandContext:
        return self._state.context

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_pending_debounce(self) -> bool:
        return self._cancel_debounce is not None

    def subscribe(self, callback: Callable[[PaletteState], None]) -> Callable[[], None]:
        return self.changed.subscribe(callback)

    # ----------------------------------------------------------------- Lifecycle

    def open(self) -> None:
        self._ensure_alive()
        if self._state.is_open:
            return
        self._generation += 1
        self._update(is_open=True)
        logger.debug("Palette opened", status=self.status.value)
        if self._state.initial_results_loaded:
            self._spawn(self.execute_query())
        else:
            if not self._initial_load_pending:
                self._initial_load = self._spawn(self._load_initial_results())
            self._spawn(self._open_with_initial_results())

    def close(self) -> None:
        if not self._state.is_open:
            return
        self._clear_debounce()
        self._generation += 1
        self._update(is_open=False, query="", is_loading=False)
        logger.debug("Palette closed", cached_results=len(self._state.results))

    def toggle(self) -> None:
        if self._state.is_open:
            self.close()
        else:
            self.open()

    def set_context(self, context: CommandContext) -> bool:
        if context == self._state.context:
            return False
        self._update(context=context)
        return True

    def set_query(self, query: str) -> None:
        """Record new query text and restart the debounce window.

        Text typed while initial results are loading is picked up by the
        query that runs once they arrive, so no timer is started then.
        """

        self._ensure_alive()
        self._clear_debounce()
        self._update(query=query)
        if not self._state.is_open or self._initial_load_pending:
            return
        self._cancel_debounce = call_later(
            self._debounce_seconds, lambda: self._fire_debounced(query)
        )

    async def select(self, result: PaletteResult) -> None:
        """Run the result's action against the current context, then close."""

        context = self._state.context
        try:
            await maybe_await(result.on_select(context))
        finally:
            self.close()

    async def settle(self) -> None:
        """Wait until no debounce timer or query task is outstanding."""

        while self._tasks or self._cancel_debounce is not None:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self._debounce_seconds)

    def dispose(self) -> None:
        self._clear_debounce()
        self._generation += 1
        self._disposed = True
        self.changed = EventHook()

    # ----------------------------------------------------------------- Queries

    async def load_initial_results(self) -> bool:
        """Fetch initial results once per controller; later calls are no-ops."""

        if self._state.initial_results_loaded:
            return False
        if self._initial_load is None or self._initial_load.done():
            self._initial_load = self._spawn(self._load_initial_results())
        return await asyncio.shield(self._initial_load)

    async def execute_query(self, query: str | None = None) -> bool:
        """Run a search now; returns True when the response was applied."""

        text = self._state.query if query is None else query
        self._generation += 1
        generation = self._generation
        self._update(query=text, is_loading=True)
        try:
            results = await self._engine.run_palette_query(text, self._state.context, self._limit)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - keep the last good results on screen
            logger.exception("Palette query failed", query=text)
            if generation == self._generation:
                self._update(is_loading=False)
            return False
        if generation != self._generation:
            logger.debug("Discarding stale palette response", query=text, generation=generation)
            return False
        self._update(results=tuple(results), is_loading=False)
        return True

    # ----------------------------------------------------------------- Internals

    @property
    def _initial_load_pending(self) -> bool:
        return self._initial_load is not None and not self._initial_load.done()

    async def _open_with_initial_results(self) -> None:
        await self.load_initial_results()
        if self._state.is_open:
            await self.execute_query()

    async def _load_initial_results(self) -> bool:
        self._generation += 1
        generation = self._generation
        self._update(is_loading=True)
        try:
            results = await self._engine.get_initial_palette_results(self._state.context, self._limit)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - palette stays usable without initial results
            logger.exception("Loading initial palette results failed")
            if generation == self._generation:
                self._update(is_loading=False)
            return False
        if generation != self._generation:
            # A newer query or a close owns the visible results.
            self._update(initial_results_loaded=True)
            return False
        self._update(results=tuple(results), is_loading=False, initial_results_loaded=True)
        return True

    def _fire_debounced(self, query: str) -> None:
        self._cancel_debounce = None
        if self._disposed or not self._state.is_open:
            return
        self._spawn(self.execute_query(query))

    def _clear_debounce(self) -> None:
        if self._cancel_debounce is not None:
            self._cancel_debounce()
            self._cancel_debounce = None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = run_background(coro).task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _update(self, **changes: Any) -> None:
        state = replace(self._state, **changes)
        if state == self._state:
            return
        self._state = state
        self.changed.emit(state)

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise RuntimeError("PaletteController has been disposed")


__all__ = ["PaletteController", "PaletteState", "PaletteStatus"]
