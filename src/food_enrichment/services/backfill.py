"""Ingredient backfill for winners that lack an ingredient breakdown."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from food_enrichment.domain.enrichment import EnrichedFood, FoodSource, is_low_value
from food_enrichment.services.deadline import Deadline
from food_enrichment.services.providers import ProviderResolver

_logger = logging.getLogger(__name__)


def needs_backfill(winner: EnrichedFood) -> bool:
    """Only non-estimated winners with at most one ingredient are repaired."""
    return winner.source is not FoodSource.ESTIMATED and len(winner.ingredients) <= 1


@dataclass
class IngredientBackfill:
    """Borrow an ingredient list from another provider without its nutrients."""

    resolvers: Sequence[ProviderResolver]
    estimator: ProviderResolver

    async def run(
        self,
        query: str,
        winner: EnrichedFood,
        consulted: set[FoodSource],
        obtained: Sequence[EnrichedFood] = (),
    ) -> EnrichedFood:
        """Return the winner with a donor's ingredients, or unchanged."""
        if not needs_backfill(winner):
            return winner
        pending = [
            resolver
            for resolver in self.resolvers
            if resolver.source not in consulted and resolver.source != winner.source
        ]
        pending.append(self.estimator)
        _logger.info(
            "Backfilling ingredients for %r (winner=%s) from %s",
            query,
            winner.source,
            [resolver.source.value for resolver in pending],
        )
        fresh = await asyncio.gather(
            *(
                resolver.resolve(query, Deadline.after(resolver.timeout_seconds))
                for resolver in pending
            )
        )
        donors = [
            result
            for result in [*obtained, *fresh]
            if result is not None
            and result is not winner
            and len(result.ingredients) > 1
        ]
        if not donors:
            _logger.info("Backfill found no donor for %r", query)
            return winner.model_copy(
                update={"low_value": is_low_value(winner.source, winner.ingredients)}
            )
        donor = max(donors, key=lambda result: len(result.ingredients))
        _logger.info(
            "Backfill took %s ingredients from %s for %r",
            len(donor.ingredients),
            donor.source,
            query,
        )
        ingredients = [item.model_copy() for item in donor.ingredients]
        return winner.model_copy(
            update={
                "ingredients": ingredients,
                "ingredient_source": donor.source,
                "low_value": is_low_value(winner.source, ingredients),
            }
        )
