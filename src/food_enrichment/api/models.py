"""Request models for the enrichment API."""

from pydantic import BaseModel


class EnrichRequest(BaseModel):
    """Body of ``POST /enrich``."""

    query: str | None = None
    locale: str | None = "auto"


class ClearCacheRequest(BaseModel):
    """Body of ``POST /admin/cache/clear``; no queries clears everything."""

    queries: list[str] | None = None
    locale: str | None = "auto"
