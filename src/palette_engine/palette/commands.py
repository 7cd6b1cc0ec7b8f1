from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    Optional,
    ValuesView,
)

from palette_engine.errors import DuplicateCommandError

if TYPE_CHECKING:
    from .context import CommandContext


CommandRunHandler = Callable[["CommandContext"], Awaitable[None] | None]
CommandGuard = Callable[["CommandContext"], bool]


@dataclass(slots=True, frozen=True)
class Command:
    """Invocable action with metadata for discovery."""

    id: str
    title: str
    run: CommandRunHandler
    keywords: tuple[str, ...] = field(default_factory=tuple)
    shortcut: str | None = None
    description: str | None = None
    category: str | None = None
    guard: CommandGuard | None = None

    def __post_init__(self) -> None:
        # Accept any iterable of keywords but store an immutable tuple.
        object.__setattr__(self, "keywords", tuple(self.keywords))

    def is_enabled(self, context: CommandContext) -> bool:
        if self.guard is None:
            return True
        return bool(self.guard(context))


class CommandRegistry:
    """Register and look up application-level commands.

    Ids are unique: registering an id twice raises ``DuplicateCommandError``.
    The registry never calls ``Command.run`` itself, so errors raised by a
    command reach whoever executes it.
    """

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}

    def register(self, command: Command) -> Callable[[], None]:
        if command.id in self._commands:
            raise DuplicateCommandError(command.id)
        self._commands[command.id] = command

        def unregister() -> None:
            if self._commands.get(command.id) is command:
                del self._commands[command.id]

        return unregister

    def register_all(self, commands: Iterable[Command]) -> None:
        for command in commands:
            self.register(command)

    def unregister(self, command_id: str) -> None:
        self._commands.pop(command_id, None)

    def clear(self) -> None:
        self._commands.clear()

    def get(self, command_id: str) -> Optional[Command]:
        return self._commands.get(command_id)

    def commands(self) -> ValuesView[Command]:
        """Live view of registered commands in registration order."""
        return self._commands.values()

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._commands


__all__ = ["Command", "CommandGuard", "CommandRegistry", "CommandRunHandler"]
