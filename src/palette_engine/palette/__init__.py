"""Command palette query engine: registries, search fan-out and query controller."""

from .commands import Command, CommandGuard, CommandRegistry, CommandRunHandler
from .commands_provider import (
    COMMANDS_GROUP_LABEL,
    COMMANDS_PROVIDER_ID,
    CommandsProvider,
    score_candidate,
    score_command,
)
from .context import CommandContext, Selection, UserIdentity
from .controller import PaletteController, PaletteState, PaletteStatus
from .providers import PaletteProvider, PaletteResult, ProviderRegistry
from .search import RankedResult, SearchEngine, rank_results

__all__ = [
    "Command",
    "CommandGuard",
    "CommandRegistry",
    "CommandRunHandler",
    "COMMANDS_GROUP_LABEL",
    "COMMANDS_PROVIDER_ID",
    "CommandsProvider",
    "score_candidate",
    "score_command",
    "CommandContext",
    "Selection",
    "UserIdentity",
    "PaletteController",
    "PaletteState",
    "PaletteStatus",
    "PaletteProvider",
    "PaletteResult",
    "ProviderRegistry",
    "RankedResult",
    "SearchEngine",
    "rank_results",
]
