from __future__ import annotations

import asyncio

import pytest

from palette_engine.config import DEFAULT_RESULT_LIMIT, PaletteSettings
from palette_engine.errors import ProviderTimeoutError, QueryPhase
from palette_engine.palette import (
    PaletteProvider,
    ProviderRegistry,
    SearchEngine,
    rank_results,
)
from palette_engine.palette.search import RankedResult
from tests.factories import failing_provider, make_context, make_result, static_provider


@pytest.mark.asyncio
async def test_merges_by_score_then_priority_then_title(provider_registry, engine, context) -> None:
    provider_registry.register(
        static_provider(
            "first",
            [make_result("first-high", 400), make_result("first-low", 50)],
            priority=10,
        )
    )
    provider_registry.register(
        static_provider("second", [make_result("second-top", 400)], priority=20)
    )

    results = await engine.run_palette_query("", context)

    assert [result.id for result in results] == ["second-top", "first-high", "first-low"]


@pytest.mark.asyncio
async def test_title_breaks_ties_between_equal_score_and_priority(
    provider_registry, engine, context
) -> None:
    provider_registry.register(
        static_provider(
            "alpha",
            [
                make_result("b", 10, title="beta"),
                make_result("a", 10, title="Alpha"),
                make_result("c", 10, title="gamma"),
            ],
        )
    )

    results = await engine.run_palette_query("x", context)

    assert [result.title for result in results] == ["Alpha", "beta", "gamma"]


@pytest.mark.asyncio
async def test_limit_applies_after_global_sort_and_failures_are_silent(
    provider_registry, engine, context, failures
) -> None:
    provider_registry.register(
        static_provider(
            "okay",
            [make_result("ok-3", 100), make_result("ok-1", 300), make_result("ok-2", 200)],
            priority=5,
        )
    )
    provider_registry.register(failing_provider("fails"))

    results = await engine.run_palette_query("", context, limit=2)

    assert [result.id for result in results] == ["ok-1", "ok-2"]
    assert [failure.provider_id for failure in failures] == ["fails"]
    assert failures[0].phase is QueryPhase.SEARCH
    assert isinstance(failures[0].error, RuntimeError)


@pytest.mark.asyncio
async def test_low_priority_provider_fills_budget_when_others_are_sparse(
    provider_registry, engine, context
) -> None:
    provider_registry.register(
        static_provider("sparse", [make_result("s-1", 10)], priority=50)
    )
    provider_registry.register(
        static_provider(
            "bulk",
            [make_result(f"b-{index}", 500 - index) for index in range(6)],
            priority=1,
        )
    )

    results = await engine.run_palette_query("", context, limit=5)

    assert [result.id for result in results] == ["b-0", "b-1", "b-2", "b-3", "b-4"]


@pytest.mark.asyncio
async def test_length_is_min_of_limit_and_candidates(provider_registry, engine, context) -> None:
    provider_registry.register(
        static_provider("only", [make_result("one", 1), make_result("two", 2)])
    )

    assert len(await engine.run_palette_query("", context, limit=10)) == 2
    assert len(await engine.run_palette_query("", context, limit=1)) == 1
    assert await engine.run_palette_query("", context, limit=0) == []


@pytest.mark.asyncio
async def test_default_limit_is_explicit_constant(provider_registry, context) -> None:
    provider_registry.register(
        static_provider("many", [make_result(f"r-{index}", index) for index in range(80)])
    )
    engine = SearchEngine(provider_registry)

    results = await engine.run_palette_query("", context)

    assert engine.default_limit == DEFAULT_RESULT_LIMIT == 50
    assert len(results) == DEFAULT_RESULT_LIMIT
    assert results[0].id == "r-79"


@pytest.mark.asyncio
async def test_settings_drive_defaults(provider_registry) -> None:
    engine = SearchEngine(
        provider_registry,
        settings=PaletteSettings(result_limit=7, provider_timeout=None),
    )

    assert engine.default_limit == 7
    assert engine.provider_timeout is None


@pytest.mark.asyncio
async def test_providers_run_concurrently(provider_registry, engine, context) -> None:
    for index in range(5):
        provider_registry.register(
            static_provider(f"slow-{index}", [make_result(f"r-{index}", index)], delay=0.1)
        )

    loop = asyncio.get_running_loop()
    started = loop.time()
    results = await engine.run_palette_query("", context)
    elapsed = loop.time() - started

    assert len(results) == 5
    assert elapsed < 0.4


@pytest.mark.asyncio
async def test_order_does_not_depend_on_arrival_order(provider_registry, engine, context) -> None:
    provider_registry.register(
        static_provider("late", [make_result("late", 90)], delay=0.05)
    )
    provider_registry.register(
        static_provider("early", [make_result("early", 10)], delay=0.0)
    )

    results = await engine.run_palette_query("", context)

    assert [result.id for result in results] == ["late", "early"]


@pytest.mark.asyncio
async def test_identical_calls_yield_identical_output(provider_registry, engine, context) -> None:
    provider_registry.register(
        static_provider("a", [make_result("a-1", 5, title="same"), make_result("a-2", 5, title="same")])
    )
    provider_registry.register(
        static_provider("b", [make_result("b-1", 5, title="same")])
    )

    first = await engine.run_palette_query("q", context)
    second = await engine.run_palette_query("q", context)

    assert [result.id for result in first] == [result.id for result in second]
    assert [result.id for result in first] == ["a-1", "a-2", "b-1"]


@pytest.mark.asyncio
async def test_synchronous_raise_and_sync_results_are_supported(
    provider_registry, engine, context, failures
) -> None:
    def explode(_query, _context):
        raise ValueError("sync failure")

    provider_registry.register(PaletteProvider(id="sync-error", label="Sync", search=explode))
    provider_registry.register(
        PaletteProvider(
            id="sync-ok",
            label="Sync OK",
            search=lambda _query, _context: [make_result("plain", 3)],
        )
    )

    results = await engine.run_palette_query("", context)

    assert [result.id for result in results] == ["plain"]
    assert [failure.provider_id for failure in failures] == ["sync-error"]


@pytest.mark.asyncio
async def test_non_list_response_contributes_nothing(provider_registry, engine, context, failures) -> None:
    provider_registry.register(
        PaletteProvider(id="weird", label="Weird", search=lambda _query, _context: None)  # type: ignore[arg-type, return-value]
    )

    assert await engine.run_palette_query("", context) == []
    assert failures == []


@pytest.mark.asyncio
async def test_slow_provider_times_out_like_a_failure(provider_registry, context) -> None:
    engine = SearchEngine(provider_registry, provider_timeout=0.05)
    recorded = []
    engine.failures.subscribe(recorded.append)
    provider_registry.register(static_provider("slow", [make_result("slow", 999)], delay=1.0))
    provider_registry.register(static_provider("fast", [make_result("fast", 1)]))

    results = await engine.run_palette_query("", context)

    assert [result.id for result in results] == ["fast"]
    assert len(recorded) == 1
    assert recorded[0].timed_out
    assert isinstance(recorded[0].error, ProviderTimeoutError)
    assert recorded[0].error.provider_id == "slow"


@pytest.mark.asyncio
async def test_duplicate_ids_keep_highest_ranked_occurrence(provider_registry, engine, context) -> None:
    provider_registry.register(static_provider("low", [make_result("dup", 10, title="low copy")]))
    provider_registry.register(static_provider("high", [make_result("dup", 90, title="high copy")]))

    results = await engine.run_palette_query("", context)

    assert [result.title for result in results] == ["high copy"]


@pytest.mark.asyncio
async def test_unavailable_providers_are_skipped(provider_registry, engine) -> None:
    provider_registry.register(
        PaletteProvider(
            id="admin-only",
            label="Admin",
            search=lambda _query, _context: [make_result("admin", 1)],
            is_available=lambda ctx: ctx.user.role == "admin",
        )
    )

    member = await engine.run_palette_query("", make_context(role="member"))
    admin = await engine.run_palette_query("", make_context(role="admin"))

    assert member == []
    assert [result.id for result in admin] == ["admin"]


@pytest.mark.asyncio
async def test_no_providers_yields_empty_list(engine, context) -> None:
    assert await engine.run_palette_query("anything", context) == []


@pytest.mark.asyncio
async def test_negative_limit_is_rejected(engine, context) -> None:
    with pytest.raises(ValueError):
        await engine.run_palette_query("", context, limit=-1)


@pytest.mark.asyncio
async def test_initial_results_only_call_providers_with_hook(
    provider_registry, engine, context, failures
) -> None:
    searched: list[str] = []

    async def search(query, _context):
        searched.append(query)
        return []

    provider_registry.register(
        static_provider("initial-only", [], priority=5, initial=[make_result("initial", 100)])
    )
    provider_registry.register(PaletteProvider(id="no-hook", label="No hook", search=search))

    results = await engine.get_initial_palette_results(context)

    assert [result.id for result in results] == ["initial"]
    assert searched == []
    assert failures == []


@pytest.mark.asyncio
async def test_initial_results_isolate_failures_and_rank(
    provider_registry, engine, context, failures
) -> None:
    provider_registry.register(failing_provider("broken"))
    provider_registry.register(
        static_provider("a", [], priority=1, initial=[make_result("a", 5), make_result("a2", 7)])
    )
    provider_registry.register(
        static_provider("b", [], priority=9, initial=[make_result("b", 5)])
    )

    results = await engine.get_initial_palette_results(context, limit=2)

    assert [result.id for result in results] == ["a2", "b"]
    assert [(failure.provider_id, failure.phase) for failure in failures] == [
        ("broken", QueryPhase.INITIAL)
    ]


def test_rank_results_falls_back_to_registration_order() -> None:
    first = make_result("same", 1, title="t")
    second = make_result("same", 1, title="t")
    ranked = rank_results(
        [
            RankedResult(result=second, priority=0, provider_index=1),
            RankedResult(result=first, priority=0, provider_index=0),
        ]
    )

    assert len(ranked) == 1
    assert ranked[0] is first


def test_registry_is_passed_by_reference() -> None:
    registry = ProviderRegistry()
    engine = SearchEngine(registry)

    assert engine.providers is registry


@pytest.mark.asyncio
async def test_unsorted_provider_output_still_yields_top_ranked(
    provider_registry, engine, context
) -> None:
    provider_registry.register(
        static_provider(
            "unsorted",
            [make_result("c-100", 100), make_result("c-200", 200), make_result("c-300", 300)],
        )
    )

    results = await engine.run_palette_query("", context, limit=2)

    assert [result.id for result in results] == ["c-300", "c-200"]


@pytest.mark.asyncio
async def test_repeated_ids_do_not_shrink_the_response(provider_registry, engine, context) -> None:
    provider_registry.register(
        static_provider(
            "repeats",
            [make_result("x", 9), make_result("x", 8), make_result("y", 7)],
        )
    )

    results = await engine.run_palette_query("", context, limit=2)

    assert [result.id for result in results] == ["x", "y"]
    assert results[0].score == 9


@pytest.mark.asyncio
async def test_nan_scores_rank_last(provider_registry, engine, context) -> None:
    provider_registry.register(
        static_provider(
            "nan",
            [
                make_result("nan-a", float("nan"), title="a"),
                make_result("low", 1, title="b"),
                make_result("nan-b", float("nan"), title="c"),
                make_result("high", 5, title="d"),
            ],
        )
    )

    first = await engine.run_palette_query("", context)
    second = await engine.run_palette_query("", context)

    assert [result.id for result in first] == ["high", "low", "nan-a", "nan-b"]
    assert [result.id for result in second] == [result.id for result in first]
    assert first[-1].score == float("-inf")
