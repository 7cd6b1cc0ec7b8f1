from __future__ import annotations

from dataclasses import dataclass

from palette_engine.config import PaletteSettings, SettingsManager
from palette_engine.palette import (
    CommandContext,
    CommandRegistry,
    CommandsProvider,
    PaletteController,
    ProviderRegistry,
    SearchEngine,
)
from palette_engine.utils import get_logger, set_log_level


logger = get_logger(__name__)


@dataclass(slots=True)
class PaletteRuntime:
    """Everything one application root needs to host a command palette."""

    settings: PaletteSettings
    commands: CommandRegistry
    providers: ProviderRegistry
    engine: SearchEngine
    controller: PaletteController


def build_palette(
    context: CommandContext,
    settings: PaletteSettings | None = None,
    *,
    commands: CommandRegistry | None = None,
    providers: ProviderRegistry | None = None,
    limit: int | None = None,
) -> PaletteRuntime:
    """Wire registries, search engine and controller for one palette instance.

    The built-in commands provider is registered on ``providers`` here, so
    feature modules only need to register commands or extra providers.
    """

    resolved = settings or SettingsManager().load()
    set_log_level(resolved.log_level)
    command_registry = commands if commands is not None else CommandRegistry()
    provider_registry = providers if providers is not None else ProviderRegistry()
    provider_registry.register(CommandsProvider(command_registry).as_provider())

    engine = SearchEngine(provider_registry, settings=resolved)
    controller = PaletteController(engine, context, settings=resolved, limit=limit)
    logger.debug(
        "Palette runtime initialised",
        providers=len(provider_registry),
        commands=len(command_registry),
        result_limit=engine.default_limit,
        provider_timeout=engine.provider_timeout,
    )
    return PaletteRuntime(
        settings=resolved,
        commands=command_registry,
        providers=provider_registry,
        engine=engine,
        controller=controller,
    )


__all__ = ["PaletteRuntime", "build_palette"]
