from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from .commands import Command, CommandRegistry
from .providers import PaletteProvider, PaletteResult

if TYPE_CHECKING:
    from .context import CommandContext


COMMANDS_PROVIDER_ID = "commands"
COMMANDS_GROUP_LABEL = "Commands"
COMMANDS_PROVIDER_PRIORITY = 100

EXACT_MATCH_SCORE = 1000
PREFIX_MATCH_SCORE = 800
SUBSTRING_MATCH_SCORE = 600
SUBSEQUENCE_BASE_SCORE = 400


def normalize_query(value: str) -> str:
    return value.strip().lower()


def score_candidate(query: str, candidate: str) -> Optional[int]:
    """Score one candidate string against an already normalized query.

    Returns ``None`` when the query is not even a subsequence of the candidate.
    """

    if not query:
        return 0
    lowered = candidate.lower()
    if lowered == query:
        return EXACT_MATCH_SCORE
    if lowered.startswith(query):
        return PREFIX_MATCH_SCORE - len(lowered)
    index = lowered.find(query)
    if index != -1:
        return SUBSTRING_MATCH_SCORE - index
    penalty = _subsequence_penalty(query, lowered)
    if penalty is None:
        return None
    return max(0, SUBSEQUENCE_BASE_SCORE - penalty)


def _subsequence_penalty(query: str, candidate: str) -> Optional[int]:
    position = 0
    penalty = 0
    for char in query:
        match = candidate.find(char, position)
        if match == -1:
            return None
        penalty += match - position
        position = match + 1
    return penalty


def score_command(query: str, command: Command) -> Optional[int]:
    """Best score across the command title and its keywords."""

    if not query:
        return 0
    best: Optional[int] = None
    for candidate in (command.title, *command.keywords):
        score = score_candidate(query, candidate)
        if score is not None and (best is None or score > best):
            best = score
    return best


def _build_result(command: Command, score: int) -> PaletteResult:
    return PaletteResult(
        id=command.id,
        title=command.title,
        group=COMMANDS_GROUP_LABEL,
        score=score,
        on_select=command.run,
        subtitle=", ".join(command.keywords) or command.description,
        shortcut=command.shortcut,
    )


class CommandsProvider:
    """Expose a ``CommandRegistry`` to the palette as a result provider."""

    def __init__(self, registry: CommandRegistry) -> None:
        self._registry = registry

    def search(self, query: str, context: CommandContext) -> List[PaletteResult]:
        normalized = normalize_query(query)
        scored: list[tuple[Command, int]] = []
        for command in self._registry.commands():
            if not command.is_enabled(context):
                continue
            score = score_command(normalized, command)
            if score is not None:
                scored.append((command, score))
        if normalized:
            scored.sort(key=lambda item: (-item[1], item[0].title.casefold()))
        else:
            scored.sort(key=lambda item: item[0].title.casefold())
        return [_build_result(command, score) for command, score in scored]

    def initial_results(self, context: CommandContext) -> List[PaletteResult]:
        return self.search("", context)

    def as_provider(self) -> PaletteProvider:
        return PaletteProvider(
            id=COMMANDS_PROVIDER_ID,
            label=COMMANDS_GROUP_LABEL,
            priority=COMMANDS_PROVIDER_PRIORITY,
            search=self.search,
            get_initial_results=self.initial_results,
        )


__all__ = [
    "COMMANDS_GROUP_LABEL",
    "COMMANDS_PROVIDER_ID",
    "COMMANDS_PROVIDER_PRIORITY",
    "CommandsProvider",
    "normalize_query",
    "score_candidate",
    "score_command",
]
