"""Canonical enrichment models shared by resolvers, scorer and cache."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class FoodSource(StrEnum):
    """Provider that produced a nutrition answer."""

    FDC = "FDC"
    EDAMAM = "EDAMAM"
    NUTRITIONIX = "NUTRITIONIX"
    ESTIMATED = "ESTIMATED"


class Nutrients(BaseModel):
    """Per-100g (or per-serving) nutrient values."""

    calories: float
    protein: float
    fat: float
    carbs: float
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    potassium: float | None = None
    calcium: float | None = None
    iron: float | None = None
    saturated_fat: float | None = None


class ServingNutrients(Nutrients):
    """Nutrients for one serving, with the serving weight."""

    serving_grams: float | None = None


class Ingredient(BaseModel):
    """Single entry of an ingredient breakdown."""

    name: str
    grams: float | None = None
    amount: str | None = None


class EnrichedFood(BaseModel):
    """Normalized nutrition record returned to callers and cached."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    aliases: list[str] = Field(default_factory=list)
    locale: str = "auto"
    ingredients: list[Ingredient] = Field(default_factory=list)
    per_100g: Nutrients = Field(alias="per100g")
    per_serving: ServingNutrients | None = Field(default=None, alias="perServing")
    source: FoodSource
    source_id: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    ingredient_source: FoodSource | None = None
    low_value: bool = False

    def to_payload(self) -> dict[str, object]:
        """Serialize with wire field names, omitting empty optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CacheEntry(BaseModel):
    """Single live cache row for a normalized query hash."""

    query_hash: str
    normalized_query: str
    payload: EnrichedFood
    source: FoodSource
    confidence: float
    expires_at: datetime | None
    low_value: bool


def is_low_value(source: FoodSource, ingredients: list[Ingredient]) -> bool:
    """Return True when a non-estimated answer lacks an ingredient breakdown."""
    return source is not FoodSource.ESTIMATED and len(ingredients) <= 1
