"""Supabase-backed enrichment cache."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from food_enrichment.domain.enrichment import CacheEntry, EnrichedFood
from food_enrichment.services.cache import EnrichmentCache

_TABLE = "food_enrichment_cache"


@dataclass
class SupabaseEnrichmentCache(EnrichmentCache):
    """Enrichment cache stored in the ``food_enrichment_cache`` table."""

    client: Client

    def get(self, query_hash: str) -> CacheEntry | None:
        """Return the live row for a hash, filtering expired rows."""
        now = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("query_hash", query_hash)
            .or_(f"expires_at.is.null,expires_at.gt.{now}")
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        expires_at = row.get("expires_at")
        return CacheEntry(
            query_hash=row["query_hash"],
            normalized_query=row["query"],
            payload=EnrichedFood.model_validate(row["response_data"]),
            source=row["source"],
            confidence=row["confidence"],
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            low_value=bool(row.get("low_value", False)),
        )

    def put(self, entry: CacheEntry) -> None:
        """Upsert the row for the entry's hash."""
        self.client.table(_TABLE).upsert(
            {
                "query_hash": entry.query_hash,
                "query": entry.normalized_query,
                "response_data": entry.payload.to_payload(),
                "source": entry.source.value,
                "confidence": entry.confidence,
                "expires_at": (
                    entry.expires_at.isoformat() if entry.expires_at else None
                ),
                "low_value": entry.low_value,
            },
            on_conflict="query_hash",
        ).execute()

    def delete(self, query_hashes: list[str] | None = None) -> int:
        """Delete rows for the given hashes, or every row when none are given."""
        query = self.client.table(_TABLE).delete()
        if query_hashes is None:
            query = query.neq("query_hash", "")
        else:
            if not query_hashes:
                return 0
            query = query.in_("query_hash", query_hashes)
        response = query.execute()
        return len(response.data or [])
