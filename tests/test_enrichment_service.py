"""Tests for the enrichment cascade, cache policy and backfill."""

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest

from food_enrichment.domain.enrichment import FoodSource
from food_enrichment.errors import InputValidationError, ResolutionExhausted
from food_enrichment.services.cache import InMemoryEnrichmentCache
from food_enrichment.services.deadline import Deadline
from food_enrichment.services.enrichment import EnrichmentService
from food_enrichment.services.normalizer import normalize_query
from tests.conftest import Providers, make_food


class _UnavailableCache:
    def get(self, query_hash: str) -> None:
        raise ConnectionError("cache down")

    def put(self, entry: object) -> None:
        raise ConnectionError("cache down")

    def delete(self, query_hashes: list[str] | None = None) -> int:
        raise ConnectionError("cache down")


def test_multi_word_rich_branded_answer_wins_alone(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 4)
    providers.fdc.result = make_food(FoodSource.FDC)

    result = asyncio.run(service.enrich("Chicken Salad"))

    assert result.cache_hit is False
    assert result.food.source is FoodSource.NUTRITIONIX
    assert providers.nutritionix.calls == ["chicken salad"]
    assert providers.edamam.calls == []
    assert providers.fdc.calls == []
    assert providers.estimator.calls == []


def test_multi_word_thin_branded_answer_consults_label_database(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 1)
    providers.edamam.result = make_food(FoodSource.EDAMAM, 3)

    result = asyncio.run(service.enrich("chicken salad"))

    assert result.food.source is FoodSource.EDAMAM
    assert len(providers.edamam.calls) == 1
    assert providers.fdc.calls == []


def test_multi_word_falls_through_to_fdc_below_floor(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.edamam.result = make_food(FoodSource.EDAMAM, 1)
    providers.fdc.result = make_food(FoodSource.FDC, 1)

    result = asyncio.run(service.enrich("chicken salad"))

    assert result.food.source is FoodSource.FDC
    assert len(providers.nutritionix.calls) == 1
    assert len(providers.edamam.calls) == 1
    assert len(providers.fdc.calls) == 1


def test_non_ascii_query_uses_sequential_branch(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 3)

    asyncio.run(service.enrich("jalapeño"))

    assert providers.fdc.calls == []
    assert providers.edamam.calls == []


def test_single_word_fans_out_to_all_structured_providers(
    service: EnrichmentService, providers: Providers
) -> None:
    for resolver in (providers.fdc, providers.edamam, providers.nutritionix):
        resolver.delay = 0.1
    providers.fdc.result = make_food(FoodSource.FDC, 1)
    providers.edamam.result = make_food(FoodSource.EDAMAM, 3)
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 2)

    async def run() -> float:
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await service.enrich("Broccoli")
        assert result.food.source is FoodSource.EDAMAM
        return loop.time() - started

    elapsed = asyncio.run(run())

    assert providers.fdc.calls == ["broccoli"]
    assert providers.edamam.calls == ["broccoli"]
    assert providers.nutritionix.calls == ["broccoli"]
    assert elapsed < 0.25


def test_single_word_has_no_score_floor(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.fdc.result = make_food(FoodSource.FDC, 1)

    result = asyncio.run(service.enrich("broccoli"))

    assert result.food.source is FoodSource.FDC
    assert result.food.low_value is True
    assert providers.estimator.calls == ["broccoli"]


def test_every_provider_call_gets_a_deadline(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.fdc.result = make_food(FoodSource.FDC, 3)

    asyncio.run(service.enrich("broccoli"))

    for resolver in (providers.fdc, providers.edamam, providers.nutritionix):
        assert isinstance(resolver.deadlines[0], Deadline)


def test_estimator_used_when_no_structured_answer(
    service: EnrichmentService,
    providers: Providers,
    cache: InMemoryEnrichmentCache,
) -> None:
    providers.estimator.result = make_food(FoodSource.ESTIMATED, 1)

    result = asyncio.run(service.enrich("mystery stew"))

    assert result.food.source is FoodSource.ESTIMATED
    assert result.food.low_value is False
    assert providers.estimator.calls == ["mystery stew"]
    entry = cache.get(normalize_query("mystery stew").query_hash)
    assert entry is not None
    assert entry.expires_at is not None
    assert entry.expires_at > datetime.now(tz=UTC) + timedelta(days=89)


def test_exhaustion_raises_and_writes_nothing(
    service: EnrichmentService,
    providers: Providers,
    cache: InMemoryEnrichmentCache,
) -> None:
    with pytest.raises(ResolutionExhausted):
        asyncio.run(service.enrich("chicken salad"))

    assert providers.estimator.calls == ["chicken salad"]
    assert cache.get(normalize_query("chicken salad").query_hash) is None


def test_empty_query_touches_no_provider(
    service: EnrichmentService, providers: Providers
) -> None:
    with pytest.raises(InputValidationError):
        asyncio.run(service.enrich("   "))

    assert providers.total_calls() == 0


def test_cache_hit_returns_identical_payload_without_provider_calls(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 4)

    first = asyncio.run(service.enrich("Chicken Salad", "en"))
    calls_after_first = providers.total_calls()
    second = asyncio.run(service.enrich("  chicken salad ", "en"))

    assert second.cache_hit is True
    assert providers.total_calls() == calls_after_first
    assert json.dumps(second.food.to_payload()) == json.dumps(first.food.to_payload())


def test_locale_is_part_of_cache_key(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 4)

    first = asyncio.run(service.enrich("chicken salad", "en"))
    second = asyncio.run(service.enrich("chicken salad", "fr"))

    assert second.cache_hit is False
    assert first.food.locale == "en"
    assert second.food.locale == "fr"


def test_bypass_cache_resolves_again(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 4)

    asyncio.run(service.enrich("chicken salad"))
    result = asyncio.run(service.enrich("chicken salad", bypass_cache=True))

    assert result.cache_hit is False
    assert len(providers.nutritionix.calls) == 2


def test_ttl_depends_on_low_value(
    providers: Providers, cache: InMemoryEnrichmentCache
) -> None:
    now = datetime.now(tz=UTC)
    service = EnrichmentService(
        cache=cache,
        fdc=providers.fdc,
        edamam=providers.edamam,
        nutritionix=providers.nutritionix,
        estimator=providers.estimator,
        clock=lambda: now,
    )
    providers.fdc.result = make_food(FoodSource.FDC, 1)
    asyncio.run(service.enrich("broccoli"))
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 5)
    asyncio.run(service.enrich("chicken salad"))

    thin = cache.get(normalize_query("broccoli").query_hash)
    rich = cache.get(normalize_query("chicken salad").query_hash)
    assert thin is not None
    assert rich is not None
    assert thin.low_value is True
    assert thin.expires_at == now + timedelta(hours=6)
    assert rich.low_value is False
    assert rich.expires_at == now + timedelta(days=90)
    assert rich.source is FoodSource.NUTRITIONIX
    assert rich.normalized_query == "chicken salad"


def test_backfill_replaces_only_ingredients(
    service: EnrichmentService, providers: Providers
) -> None:
    winner = make_food(FoodSource.FDC, 1, name="club sandwich")
    providers.fdc.result = winner
    providers.estimator.result = make_food(FoodSource.ESTIMATED, 6, name="estimate")

    result = asyncio.run(service.enrich("club sandwich"))

    assert result.food.source is FoodSource.FDC
    assert result.food.per_100g == winner.per_100g
    assert result.food.confidence == winner.confidence
    assert result.food.name == "club sandwich"
    assert len(result.food.ingredients) == 6
    assert result.food.ingredient_source is FoodSource.ESTIMATED
    assert result.food.low_value is False
    assert len(winner.ingredients) == 1


def test_clear_cache_for_queries_and_all(
    service: EnrichmentService, providers: Providers
) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 4)
    asyncio.run(service.enrich("chicken salad"))
    asyncio.run(service.enrich("tuna salad"))

    assert service.clear_cache(["Chicken Salad", "egg salad"]) == 1
    assert service.clear_cache() == 1
    result = asyncio.run(service.enrich("tuna salad"))
    assert result.cache_hit is False


def test_cache_outage_still_returns_resolved_food(providers: Providers) -> None:
    providers.nutritionix.result = make_food(FoodSource.NUTRITIONIX, 4)
    service = EnrichmentService(
        cache=_UnavailableCache(),
        fdc=providers.fdc,
        edamam=providers.edamam,
        nutritionix=providers.nutritionix,
        estimator=providers.estimator,
    )

    first = asyncio.run(service.enrich("chicken salad"))
    second = asyncio.run(service.enrich("chicken salad"))

    assert first.cache_hit is False
    assert first.food.source is FoodSource.NUTRITIONIX
    assert second.cache_hit is False
    assert providers.nutritionix.calls == ["chicken salad", "chicken salad"]
