"""Edamam food-database API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class EdamamClient(Protocol):
    """Interface for the Edamam food-database parser."""

    async def parse(self, ingredient: str) -> dict[str, object]:
        """Parse a free-text food and return raw API data."""


@dataclass
class HttpxEdamamClient(EdamamClient):
    """HTTPX-backed Edamam client."""

    app_id: str
    app_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, app_id: str, app_key: str, base_url: str) -> "HttpxEdamamClient":
        """Create an Edamam client with a managed httpx session."""
        return cls(
            app_id=app_id,
            app_key=app_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    async def parse(self, ingredient: str) -> dict[str, object]:
        """Call the parser endpoint for a single food."""
        response = await self.http_client.get(
            f"{self.base_url}/parser",
            params={"ingr": ingredient, "app_id": self.app_id, "app_key": self.app_key},
            timeout=5,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
