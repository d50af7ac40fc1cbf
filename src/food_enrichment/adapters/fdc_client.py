"""USDA FoodData Central search client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

SEARCH_PAGE_SIZE = 5


class FdcClient(Protocol):
    """Interface for the FoodData Central search endpoint."""

    async def search(self, query: str) -> dict[str, object]:
        """Search foods by free text and return raw API data."""


@dataclass
class HttpxFdcClient(FdcClient):
    """HTTPX-backed FoodData Central client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxFdcClient":
        """Create an FDC client with a managed httpx session."""
        return cls(api_key=api_key, base_url=base_url, http_client=httpx.AsyncClient())

    async def search(self, query: str) -> dict[str, object]:
        """Return the top search hits for a query."""
        response = await self.http_client.get(
            f"{self.base_url}/foods/search",
            params={
                "query": query,
                "pageSize": SEARCH_PAGE_SIZE,
                "api_key": self.api_key,
            },
            timeout=5,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
