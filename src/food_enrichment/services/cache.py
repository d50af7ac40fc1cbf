"""Enrichment cache abstractions."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from food_enrichment.domain.enrichment import CacheEntry


class EnrichmentCache(Protocol):
    """Key/value store for resolved foods keyed by query hash."""

    def get(self, query_hash: str) -> CacheEntry | None:
        """Return the live entry for a hash if present and not expired."""

    def put(self, entry: CacheEntry) -> None:
        """Insert or overwrite the entry for its hash."""

    def delete(self, query_hashes: list[str] | None = None) -> int:
        """Delete entries and return how many were removed."""


@dataclass
class InMemoryEnrichmentCache(EnrichmentCache):
    """In-process cache used for local runs and tests."""

    _entries: dict[str, CacheEntry]

    def __init__(self) -> None:
        self._entries = {}

    def get(self, query_hash: str) -> CacheEntry | None:
        """Return a cached entry if it hasn't expired."""
        entry = self._entries.get(query_hash)
        if entry is None:
            return None
        if entry.expires_at is not None and datetime.now(tz=UTC) >= entry.expires_at:
            return None
        return entry

    def put(self, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous one for the hash."""
        self._entries[entry.query_hash] = entry

    def delete(self, query_hashes: list[str] | None = None) -> int:
        """Remove the given hashes, or everything."""
        if query_hashes is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed
        removed = 0
        for query_hash in query_hashes:
            if self._entries.pop(query_hash, None) is not None:
                removed += 1
        return removed
