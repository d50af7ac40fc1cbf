"""Raw provider response models.

Each provider answers in its own shape. These models only describe the parts
the resolvers read; they are converted to ``EnrichedFood`` at the resolver
boundary and never travel further.
"""

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class FdcFoodNutrient(_Payload):
    """Nutrient row from a FoodData Central search hit."""

    nutrient_id: int | None = Field(default=None, alias="nutrientId")
    nutrient_number: str | None = Field(default=None, alias="nutrientNumber")
    value: float | None = None


class FdcSearchFood(_Payload):
    """Single food from a FoodData Central search."""

    fdc_id: int | None = Field(default=None, alias="fdcId")
    description: str | None = None
    brand_name: str | None = Field(default=None, alias="brandName")
    brand_owner: str | None = Field(default=None, alias="brandOwner")
    food_nutrients: list[FdcFoodNutrient] = Field(
        default_factory=list, alias="foodNutrients"
    )


class FdcSearchResponse(_Payload):
    """FoodData Central search response."""

    foods: list[FdcSearchFood] = Field(default_factory=list)


class EdamamFood(_Payload):
    """Food entry from the Edamam food-database parser."""

    food_id: str | None = Field(default=None, alias="foodId")
    label: str | None = None
    brand: str | None = None
    food_contents_label: str | None = Field(default=None, alias="foodContentsLabel")
    nutrients: dict[str, float] = Field(default_factory=dict)


class EdamamMatch(_Payload):
    """Wrapper used by both ``parsed`` and ``hints`` lists."""

    food: EdamamFood | None = None


class EdamamParserResponse(_Payload):
    """Edamam food-database parser response."""

    parsed: list[EdamamMatch] = Field(default_factory=list)
    hints: list[EdamamMatch] = Field(default_factory=list)


class NutritionixInstantItem(_Payload):
    """Candidate from a Nutritionix instant search list."""

    food_name: str = ""
    nix_item_id: str | None = None
    tag_id: str | None = None
    brand_name: str | None = None


class NutritionixInstantResponse(_Payload):
    """Nutritionix instant search response."""

    branded: list[NutritionixInstantItem] = Field(default_factory=list)
    common: list[NutritionixInstantItem] = Field(default_factory=list)


class NutritionixFood(_Payload):
    """Per-serving food detail from item lookup or natural-language nutrients."""

    food_name: str | None = None
    brand_name: str | None = None
    nix_item_id: str | None = None
    serving_weight_grams: float | None = None
    nf_calories: float | None = None
    nf_protein: float | None = None
    nf_total_fat: float | None = None
    nf_total_carbohydrate: float | None = None
    nf_dietary_fiber: float | None = None
    nf_sugars: float | None = None
    nf_sodium: float | None = None
    nf_potassium: float | None = None
    nf_saturated_fat: float | None = None
    nf_ingredient_statement: str | None = None


class NutritionixFoodsResponse(_Payload):
    """Response wrapping a list of Nutritionix foods."""

    foods: list[NutritionixFood] = Field(default_factory=list)


class EstimatedIngredient(_Payload):
    """Ingredient proposed by the generative estimator."""

    name: str
    amount: str | None = None
    grams: float | None = Field(default=None, ge=0)


class EstimatedNutrients(_Payload):
    """Per-100g estimate from the generative estimator."""

    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    fat: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    potassium: float | None = None
    calcium: float | None = None
    iron: float | None = None
    saturated_fat: float | None = None


class EstimatorResponse(_Payload):
    """Structured output returned by the generative estimator."""

    name: str | None = None
    ingredients: list[EstimatedIngredient] = Field(default_factory=list)
    per100g: EstimatedNutrients
