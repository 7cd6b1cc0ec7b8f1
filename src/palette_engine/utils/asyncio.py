from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class BackgroundTask:
    task: asyncio.Task[Any]

    def cancel(self) -> None:
        self.task.cancel()

    @property
    def done(self) -> bool:
        return self.task.done()


def run_background(coro: Awaitable[object]) -> BackgroundTask:
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(coro, loop=loop)
    return BackgroundTask(task)


def call_later(delay: float, func: Callable[[], None]) -> Callable[[], None]:
    loop = asyncio.get_running_loop()
    handler = loop.call_later(delay, func)
    return handler.cancel


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Resolve ``value`` whether a callable handed back a plain value or an awaitable."""

    if inspect.isawaitable(value):
        return await value
    return value


__all__ = ["BackgroundTask", "call_later", "maybe_await", "run_background"]
