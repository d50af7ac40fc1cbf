"""Provider resolvers turning raw provider data into ``EnrichedFood``.

Every resolver exposes ``resolve(query, deadline)`` and never raises: transport
failures, HTTP errors, malformed payloads and deadline expiry are logged and
reported as ``None`` so one provider outage cannot abort a resolution.
"""

import logging
import random
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import ClassVar, Protocol, TypeVar

import httpx
import openai
from pydantic import BaseModel, ValidationError

from food_enrichment.adapters.edamam_client import EdamamClient
from food_enrichment.adapters.fdc_client import FdcClient
from food_enrichment.adapters.nutritionix_client import NutritionixClient
from food_enrichment.domain.enrichment import (
    EnrichedFood,
    FoodSource,
    Ingredient,
    Nutrients,
    ServingNutrients,
    is_low_value,
)
from food_enrichment.domain.provider_payloads import (
    EdamamParserResponse,
    EstimatorResponse,
    FdcFoodNutrient,
    FdcSearchResponse,
    NutritionixFood,
    NutritionixFoodsResponse,
    NutritionixInstantItem,
    NutritionixInstantResponse,
)
from food_enrichment.errors import (
    ProviderError,
    ProviderHTTPError,
    ProviderParseError,
    ProviderTimeout,
)
from food_enrichment.services.deadline import Deadline
from food_enrichment.services.energy import round_half_up, validate_energy
from food_enrichment.services.ingredients import (
    MAX_INGREDIENTS,
    parse_ingredient_statement,
    strip_asides,
)

DEFAULT_TIMEOUT_SECONDS = 1.2

FDC_CONFIDENCE = 0.85
EDAMAM_CONFIDENCE = 0.78
NUTRITIONIX_CONFIDENCE = 0.75
ESTIMATED_CONFIDENCE_RANGE = (0.55, 0.70)

# (FDC nutrient id, legacy nutrient number) per field.
_FDC_NUTRIENTS: dict[str, tuple[int, str]] = {
    "calories": (1008, "208"),
    "protein": (1003, "203"),
    "fat": (1004, "204"),
    "carbs": (1005, "205"),
    "fiber": (1079, "291"),
    "sugar": (2000, "269"),
    "sodium": (1093, "307"),
    "potassium": (1092, "306"),
    "calcium": (1087, "301"),
    "iron": (1089, "303"),
    "saturated_fat": (1258, "606"),
}

# Edamam nutrient code -> (field, decimal places).
_EDAMAM_NUTRIENTS: dict[str, tuple[str, int]] = {
    "ENERC_KCAL": ("calories", 0),
    "PROCNT": ("protein", 1),
    "FAT": ("fat", 1),
    "CHOCDF": ("carbs", 1),
    "FIBTG": ("fiber", 1),
    "SUGAR": ("sugar", 1),
    "NA": ("sodium", 0),
    "K": ("potassium", 0),
    "CA": ("calcium", 0),
    "FE": ("iron", 1),
    "FASAT": ("saturated_fat", 1),
}

ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "amount": {"anyOf": [{"type": "string"}, {"type": "null"}]},
                    "grams": {
                        "anyOf": [{"type": "number", "minimum": 0}, {"type": "null"}]
                    },
                },
                "required": ["name", "amount", "grams"],
                "additionalProperties": False,
            },
        },
        "per100g": {
            "type": "object",
            "properties": {
                "calories": {"type": "number", "minimum": 0},
                "protein": {"type": "number", "minimum": 0},
                "fat": {"type": "number", "minimum": 0},
                "carbs": {"type": "number", "minimum": 0},
                **{
                    name: {"anyOf": [{"type": "number"}, {"type": "null"}]}
                    for name in (
                        "fiber",
                        "sugar",
                        "sodium",
                        "potassium",
                        "calcium",
                        "iron",
                        "saturated_fat",
                    )
                },
            },
            "required": [
                "calories",
                "protein",
                "fat",
                "carbs",
                "fiber",
                "sugar",
                "sodium",
                "potassium",
                "calcium",
                "iron",
                "saturated_fat",
            ],
            "additionalProperties": False,
        },
    },
    "required": ["name", "ingredients", "per100g"],
    "additionalProperties": False,
}

ESTIMATOR_INSTRUCTIONS = (
    "You are a nutrition expert. Estimate nutrition values per 100 g of the "
    "food as eaten. Sodium, potassium and calcium are in mg, iron in mg, all "
    "other values in g except calories (kcal)."
)

_logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class ProviderResolver(Protocol):
    """A single provider turned into canonical ``EnrichedFood`` answers."""

    source: FoodSource
    timeout_seconds: float

    async def resolve(
        self, query: str, deadline: Deadline | None = None
    ) -> EnrichedFood | None:
        """Return the provider's answer for a query, or None."""


class EstimatorClient(Protocol):
    """Interface for structured-output LLM estimates."""

    async def estimate(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        """Return structured estimate data."""


class _GuardedResolver:
    """Shared boundary: disabled check, deadline and error absorption."""

    source: ClassVar[FoodSource]
    client: object | None
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        """Resolvers built without a client never call out."""
        return self.client is not None

    async def resolve(
        self, query: str, deadline: Deadline | None = None
    ) -> EnrichedFood | None:
        """Resolve a query, absorbing every provider failure into None."""
        if not self.enabled:
            _logger.debug("Provider %s disabled, skipping", self.source)
            return None
        resolved_deadline = deadline or Deadline.after(self.timeout_seconds)
        try:
            result = await self._fetch_within(query, resolved_deadline)
        except ProviderError as exc:
            _logger.warning("Provider %s failed for %r: %s", self.source, query, exc)
            return None
        except Exception:
            _logger.exception("Provider %s crashed for %r", self.source, query)
            return None
        if result is None:
            _logger.info("Provider %s had no match for %r", self.source, query)
        else:
            _logger.info(
                "Provider %s hit for %r: confidence=%.2f ingredients=%s",
                self.source,
                query,
                result.confidence,
                len(result.ingredients),
            )
        return result

    async def _fetch_within(
        self, query: str, deadline: Deadline
    ) -> EnrichedFood | None:
        try:
            return await deadline.run(self._fetch(query))
        except TimeoutError as exc:
            raise ProviderTimeout(
                self.source, f"no answer within {self.timeout_seconds}s"
            ) from exc

    async def _fetch(self, query: str) -> EnrichedFood | None:
        raise NotImplementedError

    async def _call(self, request: Awaitable[dict[str, object]]) -> dict[str, object]:
        """Await a client request, translating library errors."""
        try:
            return await request
        except (httpx.TimeoutException, openai.APITimeoutError) as exc:
            raise ProviderTimeout(self.source, "transport timeout") from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise ProviderHTTPError(
                self.source, f"HTTP {status_code}", status_code=status_code
            ) from exc
        except openai.APIStatusError as exc:
            raise ProviderHTTPError(
                self.source, f"HTTP {exc.status_code}", status_code=exc.status_code
            ) from exc
        except (httpx.HTTPError, openai.APIError) as exc:
            raise ProviderHTTPError(self.source, str(exc)) from exc
        except (KeyError, ValueError) as exc:
            raise ProviderParseError(self.source, f"invalid response: {exc}") from exc

    def _parse(self, model: type[_ModelT], data: object) -> _ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ProviderParseError(
                self.source, f"unexpected payload: {exc.error_count()} errors"
            ) from exc


@dataclass
class FdcResolver(_GuardedResolver):
    """Composition-database resolver (USDA FoodData Central)."""

    client: FdcClient | None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    source: ClassVar[FoodSource] = FoodSource.FDC

    async def _fetch(self, query: str) -> EnrichedFood | None:
        payload = self._parse(
            FdcSearchResponse, await self._call(self.client.search(query))
        )
        if not payload.foods:
            return None
        food = payload.foods[0]
        name = food.description or query
        ingredients = [Ingredient(name=name)]
        return EnrichedFood(
            name=name,
            aliases=_aliases(food.description, food.brand_name),
            ingredients=ingredients,
            per_100g=validate_energy(_fdc_nutrients(food.food_nutrients)),
            source=self.source,
            source_id=str(food.fdc_id) if food.fdc_id is not None else None,
            confidence=FDC_CONFIDENCE,
            low_value=is_low_value(self.source, ingredients),
        )


@dataclass
class EdamamResolver(_GuardedResolver):
    """Generic ingredient-label resolver (Edamam food database)."""

    client: EdamamClient | None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    source: ClassVar[FoodSource] = FoodSource.EDAMAM

    async def _fetch(self, query: str) -> EnrichedFood | None:
        payload = self._parse(
            EdamamParserResponse, await self._call(self.client.parse(query))
        )
        match = next(
            (entry for entry in [*payload.parsed, *payload.hints] if entry.food),
            None,
        )
        if match is None:
            return None
        food = match.food
        name = food.label or query
        ingredients = parse_ingredient_statement(food.food_contents_label) or [
            Ingredient(name=name)
        ]
        values: dict[str, float] = {
            "calories": 0.0,
            "protein": 0.0,
            "fat": 0.0,
            "carbs": 0.0,
        }
        for code, (key, digits) in _EDAMAM_NUTRIENTS.items():
            amount = food.nutrients.get(code)
            if amount is not None:
                values[key] = round_half_up(float(amount), digits)
        return EnrichedFood(
            name=name,
            aliases=_aliases(food.label, food.brand),
            ingredients=ingredients,
            per_100g=validate_energy(Nutrients(**values)),
            source=self.source,
            source_id=food.food_id,
            confidence=EDAMAM_CONFIDENCE,
            low_value=is_low_value(self.source, ingredients),
        )


@dataclass
class NutritionixResolver(_GuardedResolver):
    """Branded-item resolver with instant search then deep item lookup."""

    client: NutritionixClient | None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    source: ClassVar[FoodSource] = FoodSource.NUTRITIONIX

    async def _fetch(self, query: str) -> EnrichedFood | None:
        instant = self._parse(
            NutritionixInstantResponse,
            await self._call(self.client.search_instant(query)),
        )
        branded = pick_candidate(instant.branded, query)
        if branded is not None and branded.nix_item_id:
            try:
                result = await self._branded_item(branded, query)
            except (ProviderHTTPError, ProviderParseError) as exc:
                _logger.warning(
                    "Nutritionix item %s failed, falling back: %s",
                    branded.nix_item_id,
                    exc,
                )
                result = None
            if result is not None:
                return result
        common = pick_candidate(instant.common, query)
        if common is None and branded is None:
            return None
        return await self._natural(common.food_name if common else query)

    async def _branded_item(
        self, candidate: NutritionixInstantItem, query: str
    ) -> EnrichedFood | None:
        payload = self._parse(
            NutritionixFoodsResponse,
            await self._call(self.client.search_item(candidate.nix_item_id)),
        )
        if not payload.foods:
            return None
        food = payload.foods[0]
        name = food.food_name or candidate.food_name or query
        ingredients = parse_ingredient_statement(food.nf_ingredient_statement) or [
            Ingredient(name=name)
        ]
        per_100g, per_serving = _nutritionix_nutrients(food)
        return EnrichedFood(
            name=name,
            aliases=_aliases(food.food_name, food.brand_name, candidate.food_name),
            ingredients=ingredients,
            per_100g=per_100g,
            per_serving=per_serving,
            source=self.source,
            source_id=candidate.nix_item_id,
            confidence=NUTRITIONIX_CONFIDENCE,
            low_value=is_low_value(self.source, ingredients),
        )

    async def _natural(self, name: str) -> EnrichedFood | None:
        payload = self._parse(
            NutritionixFoodsResponse,
            await self._call(self.client.natural_nutrients(name)),
        )
        if not payload.foods:
            return None
        food = payload.foods[0]
        display_name = food.food_name or name
        per_100g, per_serving = _nutritionix_nutrients(food)
        # Common foods carry no ingredient statement.
        return EnrichedFood(
            name=display_name,
            aliases=_aliases(food.food_name, food.brand_name),
            ingredients=[Ingredient(name=display_name)],
            per_100g=per_100g,
            per_serving=per_serving,
            source=self.source,
            source_id=food.nix_item_id,
            confidence=NUTRITIONIX_CONFIDENCE,
            low_value=True,
        )


@dataclass
class EstimatorResolver(_GuardedResolver):
    """Last-resort generative estimate."""

    client: EstimatorClient | None
    model: str = "gpt-4o-mini"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    rng: random.Random = field(default_factory=random.Random)

    source: ClassVar[FoodSource] = FoodSource.ESTIMATED

    async def _fetch(self, query: str) -> EnrichedFood | None:
        prompt = (
            f'Analyze "{query}" and estimate its nutrition per 100 g. '
            "If it is a composed dish, list its ingredients with approximate "
            "amounts; for a single food, list just that food."
        )
        estimate = self._parse(
            EstimatorResponse,
            await self._call(
                self.client.estimate(
                    model=self.model,
                    instructions=ESTIMATOR_INSTRUCTIONS,
                    prompt=prompt,
                    schema=ESTIMATE_SCHEMA,
                )
            ),
        )
        name = estimate.name or query
        ingredients = [
            Ingredient(name=cleaned, amount=item.amount, grams=item.grams)
            for item in estimate.ingredients
            if (cleaned := strip_asides(item.name).strip())
        ][:MAX_INGREDIENTS] or [Ingredient(name=name)]
        low, high = ESTIMATED_CONFIDENCE_RANGE
        return EnrichedFood(
            name=name,
            aliases=_aliases(estimate.name),
            ingredients=ingredients,
            per_100g=validate_energy(Nutrients(**estimate.per100g.model_dump())),
            source=self.source,
            confidence=self.rng.uniform(low, high),
            low_value=False,
        )


def pick_candidate(
    items: list[NutritionixInstantItem], query: str
) -> NutritionixInstantItem | None:
    """Prefer an exact name match, then a prefix match, then the first item."""
    if not items:
        return None
    wanted = query.strip().lower()
    names = [item.food_name.strip().lower() for item in items]
    for item, name in zip(items, names, strict=True):
        if name == wanted:
            return item
    for item, name in zip(items, names, strict=True):
        if name.startswith(wanted):
            return item
    return items[0]


def _fdc_nutrients(food_nutrients: list[FdcFoodNutrient]) -> Nutrients:
    """Map FDC nutrient rows onto canonical nutrients."""
    by_id = {nutrient_id: key for key, (nutrient_id, _) in _FDC_NUTRIENTS.items()}
    by_number = {number: key for key, (_, number) in _FDC_NUTRIENTS.items()}
    values: dict[str, float] = {
        "calories": 0.0,
        "protein": 0.0,
        "fat": 0.0,
        "carbs": 0.0,
    }
    for nutrient in food_nutrients:
        key = by_id.get(nutrient.nutrient_id) or by_number.get(
            nutrient.nutrient_number
        )
        if key and nutrient.value is not None:
            values[key] = float(nutrient.value)
    return Nutrients(**values)


def _nutritionix_nutrients(
    food: NutritionixFood,
) -> tuple[Nutrients, ServingNutrients]:
    """Return (per-100g, per-serving) nutrients for a per-serving food."""
    serving_grams = food.serving_weight_grams or 100.0
    scale = 100 / serving_grams
    per_100g = Nutrients(
        calories=round_half_up((food.nf_calories or 0) * scale),
        protein=round_half_up((food.nf_protein or 0) * scale, 1),
        fat=round_half_up((food.nf_total_fat or 0) * scale, 1),
        carbs=round_half_up((food.nf_total_carbohydrate or 0) * scale, 1),
        fiber=_scaled(food.nf_dietary_fiber, scale, 1),
        sugar=_scaled(food.nf_sugars, scale, 1),
        sodium=_scaled(food.nf_sodium, scale, 0),
        potassium=_scaled(food.nf_potassium, scale, 0),
        saturated_fat=_scaled(food.nf_saturated_fat, scale, 1),
    )
    per_serving = ServingNutrients(
        calories=food.nf_calories or 0,
        protein=food.nf_protein or 0,
        fat=food.nf_total_fat or 0,
        carbs=food.nf_total_carbohydrate or 0,
        fiber=food.nf_dietary_fiber,
        sugar=food.nf_sugars,
        sodium=food.nf_sodium,
        potassium=food.nf_potassium,
        saturated_fat=food.nf_saturated_fat,
        serving_grams=serving_grams,
    )
    return validate_energy(per_100g), validate_energy(per_serving)


def _scaled(value: float | None, scale: float, digits: int) -> float | None:
    if value is None:
        return None
    return round_half_up(value * scale, digits)


def _aliases(*names: str | None) -> list[str]:
    """Return distinct non-empty names in order."""
    aliases: list[str] = []
    for name in names:
        if name and name not in aliases:
            aliases.append(name)
    return aliases
