"""Enrichment orchestration: cache, provider cascade, backfill and cache write."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from food_enrichment.domain.enrichment import CacheEntry, EnrichedFood, FoodSource
from food_enrichment.errors import ResolutionExhausted
from food_enrichment.services.backfill import IngredientBackfill
from food_enrichment.services.cache import EnrichmentCache
from food_enrichment.services.deadline import Deadline
from food_enrichment.services.normalizer import (
    DEFAULT_LOCALE,
    NormalizedQuery,
    normalize_query,
)
from food_enrichment.services.providers import ProviderResolver
from food_enrichment.services.scoring import (
    ProviderCandidate,
    best_candidate,
    to_candidate,
)

WINNER_SCORE_FLOOR = 0.6

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class EnrichmentResult:
    """Resolved food plus whether it came from the cache."""

    food: EnrichedFood
    cache_hit: bool


@dataclass
class _Cascade:
    """Provider answers gathered for one request."""

    consulted: set[FoodSource] = field(default_factory=set)
    candidates: list[ProviderCandidate] = field(default_factory=list)

    def add(self, source: FoodSource, result: EnrichedFood | None) -> None:
        self.consulted.add(source)
        if result is not None:
            self.candidates.append(to_candidate(result))

    def best(self) -> ProviderCandidate | None:
        return best_candidate(self.candidates)


@dataclass
class EnrichmentService:
    """Resolve free-text food queries into cached ``EnrichedFood`` records."""

    cache: EnrichmentCache
    fdc: ProviderResolver
    edamam: ProviderResolver
    nutritionix: ProviderResolver
    estimator: ProviderResolver
    low_value_ttl: timedelta = timedelta(hours=6)
    cache_ttl: timedelta = timedelta(days=90)
    clock: Callable[[], datetime] = _utcnow
    backfill: IngredientBackfill = field(init=False)

    def __post_init__(self) -> None:
        self.backfill = IngredientBackfill(
            resolvers=[self.nutritionix, self.edamam, self.fdc],
            estimator=self.estimator,
        )

    async def enrich(
        self,
        query: str | None,
        locale: str | None = DEFAULT_LOCALE,
        *,
        bypass_cache: bool = False,
    ) -> EnrichmentResult:
        """Return the enriched food for a query.

        Raises ``InputValidationError`` for an empty query and
        ``ResolutionExhausted`` when no provider produced an answer.
        """
        normalized = normalize_query(query, locale)
        if not bypass_cache:
            cached = self._read(normalized)
            if cached is not None:
                _logger.info(
                    "Cache hit: q=%r source=%s confidence=%.2f ingredients=%s",
                    normalized.query,
                    cached.source,
                    cached.confidence,
                    len(cached.payload.ingredients),
                )
                return EnrichmentResult(food=cached.payload, cache_hit=True)
        _logger.info(
            "Cache miss: q=%r hash=%s", normalized.query, normalized.query_hash
        )

        food = await self._resolve(normalized)
        self._write(normalized, food)
        return EnrichmentResult(food=food, cache_hit=False)

    def clear_cache(
        self, queries: list[str] | None = None, locale: str | None = DEFAULT_LOCALE
    ) -> int:
        """Delete cached entries for the given queries, or all entries."""
        if queries is None:
            return self.cache.delete()
        hashes = [normalize_query(query, locale).query_hash for query in queries]
        return self.cache.delete(hashes)

    async def _resolve(self, normalized: NormalizedQuery) -> EnrichedFood:
        cascade = _Cascade()
        if normalized.is_multi_word:
            await self._sequential(normalized.query, cascade)
        else:
            await self._fan_out(normalized.query, cascade)

        winner = cascade.best()
        if winner is None:
            estimate = await self._call(self.estimator, normalized.query)
            if estimate is None:
                _logger.info("No nutrition data for %r", normalized.query)
                raise ResolutionExhausted(normalized.query)
            _logger.info(
                "Winner for %r: %s (estimated, confidence=%.2f)",
                normalized.query,
                estimate.source,
                estimate.confidence,
            )
            return estimate.model_copy(update={"locale": normalized.locale})

        _logger.info(
            "Winner for %r: %s score=%.2f ingredients=%s",
            normalized.query,
            winner.provider_tag,
            winner.score,
            winner.ingredient_count,
        )
        food = await self.backfill.run(
            normalized.query,
            winner.result,
            consulted=cascade.consulted,
            obtained=[candidate.result for candidate in cascade.candidates],
        )
        return food.model_copy(update={"locale": normalized.locale})

    async def _sequential(self, query: str, cascade: _Cascade) -> None:
        """Branded first, label database only when needed, FDC as last resort."""
        branded = await self._call(self.nutritionix, query)
        cascade.add(self.nutritionix.source, branded)
        if branded is None or branded.low_value or len(branded.ingredients) <= 1:
            cascade.add(self.edamam.source, await self._call(self.edamam, query))
        best = cascade.best()
        if best is not None and best.score >= WINNER_SCORE_FLOOR:
            return
        cascade.add(self.fdc.source, await self._call(self.fdc, query))

    async def _fan_out(self, query: str, cascade: _Cascade) -> None:
        """Query the three structured providers concurrently and wait for all."""
        resolvers = [self.fdc, self.edamam, self.nutritionix]
        results = await asyncio.gather(
            *(self._call(resolver, query) for resolver in resolvers)
        )
        for resolver, result in zip(resolvers, results, strict=True):
            cascade.add(resolver.source, result)

    async def _call(
        self, resolver: ProviderResolver, query: str
    ) -> EnrichedFood | None:
        return await resolver.resolve(query, Deadline.after(resolver.timeout_seconds))

    def _read(self, normalized: NormalizedQuery) -> CacheEntry | None:
        try:
            return self.cache.get(normalized.query_hash)
        except Exception as exc:
            _logger.warning(
                "Cache read failed for %r, treating as miss: %s", normalized.query, exc
            )
            return None

    def _write(self, normalized: NormalizedQuery, food: EnrichedFood) -> None:
        ttl = self.low_value_ttl if food.low_value else self.cache_ttl
        expires_at = self.clock() + ttl
        entry = CacheEntry(
            query_hash=normalized.query_hash,
            normalized_query=normalized.query,
            payload=food,
            source=food.source,
            confidence=food.confidence,
            expires_at=expires_at,
            low_value=food.low_value,
        )
        try:
            self.cache.put(entry)
        except Exception as exc:
            _logger.warning("Cache write failed for %r: %s", normalized.query, exc)
            return
        _logger.info(
            "Cached %r: source=%s low_value=%s expires=%s",
            normalized.query,
            food.source,
            food.low_value,
            expires_at.date().isoformat(),
        )
