"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from food_enrichment.adapters.edamam_client import EdamamClient
from food_enrichment.adapters.fdc_client import FdcClient
from food_enrichment.adapters.nutritionix_client import NutritionixClient
from food_enrichment.config import Settings
from food_enrichment.containers import AppContainer
from food_enrichment.domain.enrichment import (
    EnrichedFood,
    FoodSource,
    Ingredient,
    Nutrients,
    is_low_value,
)
from food_enrichment.services.cache import InMemoryEnrichmentCache
from food_enrichment.services.deadline import Deadline
from food_enrichment.services.enrichment import EnrichmentService
from food_enrichment.services.providers import EstimatorClient

_CONFIDENCE = {
    FoodSource.FDC: 0.85,
    FoodSource.EDAMAM: 0.78,
    FoodSource.NUTRITIONIX: 0.75,
    FoodSource.ESTIMATED: 0.6,
}


def make_food(  # noqa: PLR0913
    source: FoodSource,
    ingredients: int = 1,
    *,
    name: str = "food",
    confidence: float | None = None,
    low_value: bool | None = None,
    calories: float = 250,
) -> EnrichedFood:
    """Build an EnrichedFood whose calories roughly match 20p/25c/10f."""
    items = [Ingredient(name=f"{name} part {index}") for index in range(ingredients)]
    return EnrichedFood(
        name=name,
        ingredients=items,
        per_100g=Nutrients(calories=calories, protein=20, fat=10, carbs=25),
        source=source,
        source_id=f"{source.value.lower()}-1",
        confidence=_CONFIDENCE[source] if confidence is None else confidence,
        low_value=is_low_value(source, items) if low_value is None else low_value,
    )


@dataclass
class FakeResolver:
    """Resolver returning a fixed answer and recording calls."""

    source: FoodSource
    result: EnrichedFood | None = None
    timeout_seconds: float = 1.2
    delay: float = 0.0
    calls: list[str] = field(default_factory=list)
    deadlines: list[Deadline | None] = field(default_factory=list)
    active: int = 0
    max_active: int = 0

    async def resolve(
        self, query: str, deadline: Deadline | None = None
    ) -> EnrichedFood | None:
        self.calls.append(query)
        self.deadlines.append(deadline)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return self.result


@dataclass
class Providers:
    """The four fake resolvers used to build a service."""

    fdc: FakeResolver = field(default_factory=lambda: FakeResolver(FoodSource.FDC))
    edamam: FakeResolver = field(
        default_factory=lambda: FakeResolver(FoodSource.EDAMAM)
    )
    nutritionix: FakeResolver = field(
        default_factory=lambda: FakeResolver(FoodSource.NUTRITIONIX)
    )
    estimator: FakeResolver = field(
        default_factory=lambda: FakeResolver(FoodSource.ESTIMATED)
    )

    def total_calls(self) -> int:
        return sum(
            len(resolver.calls)
            for resolver in (self.fdc, self.edamam, self.nutritionix, self.estimator)
        )


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client returning a fixed payload or raising."""

    payload: dict[str, object] = field(default_factory=lambda: {"foods": []})
    error: Exception | None = None
    delay: float = 0.0
    queries: list[str] = field(default_factory=list)

    async def search(self, query: str) -> dict[str, object]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeEdamamClient(EdamamClient):
    """Fake Edamam client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=dict)
    error: Exception | None = None

    async def parse(self, ingredient: str) -> dict[str, object]:
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeNutritionixClient(NutritionixClient):
    """Fake Nutritionix client with per-endpoint payloads."""

    instant: dict[str, object] = field(
        default_factory=lambda: {"branded": [], "common": []}
    )
    items: dict[str, dict[str, object]] = field(default_factory=dict)
    natural: dict[str, object] = field(default_factory=lambda: {"foods": []})
    item_error: Exception | None = None
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def search_instant(self, query: str) -> dict[str, object]:
        self.calls.append(("instant", query))
        return self.instant

    async def search_item(self, nix_item_id: str) -> dict[str, object]:
        self.calls.append(("item", nix_item_id))
        if self.item_error is not None:
            raise self.item_error
        return self.items.get(nix_item_id, {"foods": []})

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        self.calls.append(("natural", query))
        return self.natural


@dataclass
class FakeEstimatorClient(EstimatorClient):
    """Fake structured-output client."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "name": "chicken caesar salad",
            "ingredients": [
                {"name": "romaine lettuce", "amount": "1 cup", "grams": 60},
                {"name": "grilled chicken", "amount": None, "grams": 80},
                {"name": "parmesan (aged)", "amount": None, "grams": None},
            ],
            "per100g": {
                "calories": 150,
                "protein": 12,
                "fat": 9,
                "carbs": 5,
                "fiber": 1.5,
                "sugar": None,
                "sodium": 320,
                "potassium": None,
                "calcium": None,
                "iron": None,
                "saturated_fat": None,
            },
        }
    )
    prompts: list[str] = field(default_factory=list)

    async def estimate(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        return self.payload


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_token="admin-token",
        fdc_api_key="fdc-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def providers() -> Providers:
    return Providers()


@pytest.fixture
def cache() -> InMemoryEnrichmentCache:
    return InMemoryEnrichmentCache()


@pytest.fixture
def service(providers: Providers, cache: InMemoryEnrichmentCache) -> EnrichmentService:
    return EnrichmentService(
        cache=cache,
        fdc=providers.fdc,
        edamam=providers.edamam,
        nutritionix=providers.nutritionix,
        estimator=providers.estimator,
    )


@pytest.fixture
def container(settings: Settings, service: EnrichmentService) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        enrichment_service=service,
        close_resources=close_resources,
    )
