"""Candidate scoring for competing provider answers."""

from collections.abc import Iterable
from dataclasses import dataclass

from food_enrichment.domain.enrichment import EnrichedFood, FoodSource

RICH_INGREDIENTS_BONUS = 0.25
PAIR_INGREDIENTS_BONUS = 0.10
THIN_INGREDIENTS_PENALTY = 0.30
BRANDED_DETAIL_BONUS = 0.05


@dataclass(frozen=True)
class ProviderCandidate:
    """A provider answer with its score, compared only while resolving."""

    result: EnrichedFood
    provider_tag: FoodSource
    score: float
    ingredient_count: int
    low_value: bool


def score(result: EnrichedFood) -> float:
    """Score an answer by confidence and structural completeness, in [0, 1]."""
    count = len(result.ingredients)
    value = result.confidence
    if count >= 3:
        value += RICH_INGREDIENTS_BONUS
    elif count == 2:
        value += PAIR_INGREDIENTS_BONUS
    else:
        value -= THIN_INGREDIENTS_PENALTY
    if result.source is FoodSource.NUTRITIONIX and not result.low_value:
        value += BRANDED_DETAIL_BONUS
    return round(min(1.0, max(0.0, value)), 4)


def to_candidate(result: EnrichedFood) -> ProviderCandidate:
    """Wrap an answer for side-by-side comparison."""
    return ProviderCandidate(
        result=result,
        provider_tag=result.source,
        score=score(result),
        ingredient_count=len(result.ingredients),
        low_value=result.low_value,
    )


def best_candidate(
    candidates: Iterable[ProviderCandidate],
) -> ProviderCandidate | None:
    """Return the highest-scoring candidate; ties keep the earliest."""
    best: ProviderCandidate | None = None
    for candidate in candidates:
        if best is None or candidate.score > best.score:
            best = candidate
    return best
