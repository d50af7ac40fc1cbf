"""Query normalization and cache-key hashing."""

import hashlib
from dataclasses import dataclass

from food_enrichment.errors import InputValidationError

DEFAULT_LOCALE = "auto"


@dataclass(frozen=True)
class NormalizedQuery:
    """A lowercased, trimmed query with its cache key."""

    query: str
    locale: str
    query_hash: str

    @property
    def is_multi_word(self) -> bool:
        """True for dish-like queries: whitespace or any non-ASCII character."""
        return any(char.isspace() for char in self.query) or not self.query.isascii()


def normalize_query(
    raw: str | None, locale: str | None = DEFAULT_LOCALE
) -> NormalizedQuery:
    """Normalize a raw query and derive its cache key."""
    normalized = (raw or "").strip().lower()
    if not normalized:
        raise InputValidationError("Query is required")
    resolved_locale = (locale or "").strip() or DEFAULT_LOCALE
    return NormalizedQuery(
        query=normalized,
        locale=resolved_locale,
        query_hash=query_hash(normalized, resolved_locale),
    )


def query_hash(normalized_query: str, locale: str) -> str:
    """Return the SHA-256 hex digest of ``"{query}|{locale}"``."""
    return hashlib.sha256(f"{normalized_query}|{locale}".encode()).hexdigest()
