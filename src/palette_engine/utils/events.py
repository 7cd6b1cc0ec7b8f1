from __future__ import annotations

from typing import Callable, Generic, TypeVar

from .logging import get_logger


logger = get_logger(__name__)

T_co = TypeVar("T_co", covariant=True)


class EventHook(Generic[T_co]):
    """Simple observer pattern helper for UI-friendly bridging."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T_co], None]] = []

    def subscribe(self, callback: Callable[[T_co], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:  # pragma: no cover - best effort cleanup
                pass

        return unsubscribe

    def emit(self, payload: T_co) -> None:
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:  # pragma: no cover - subscribers should not crash the engine
                logger.exception("Event subscriber failed")

    def __len__(self) -> int:
        return len(self._subscribers)


__all__ = ["EventHook"]
