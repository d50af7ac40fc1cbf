"""Nutritionix track API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class NutritionixClient(Protocol):
    """Interface for Nutritionix search and nutrient endpoints."""

    async def search_instant(self, query: str) -> dict[str, object]:
        """Return branded and common candidates for a query."""

    async def search_item(self, nix_item_id: str) -> dict[str, object]:
        """Return the full detail for a branded item."""

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        """Return natural-language nutrient estimates for a query."""


@dataclass
class HttpxNutritionixClient(NutritionixClient):
    """HTTPX-backed Nutritionix client."""

    app_id: str
    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, app_id: str, api_key: str, base_url: str
    ) -> "HttpxNutritionixClient":
        """Create a Nutritionix client with a managed httpx session."""
        return cls(
            app_id=app_id,
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    def _headers(self) -> dict[str, str]:
        return {"x-app-id": self.app_id, "x-app-key": self.api_key}

    async def search_instant(self, query: str) -> dict[str, object]:
        """Call the instant search endpoint."""
        response = await self.http_client.get(
            f"{self.base_url}/search/instant",
            params={"query": query},
            headers=self._headers(),
            timeout=5,
        )
        response.raise_for_status()
        return response.json()

    async def search_item(self, nix_item_id: str) -> dict[str, object]:
        """Fetch a branded item by its Nutritionix id."""
        response = await self.http_client.get(
            f"{self.base_url}/search/item",
            params={"nix_item_id": nix_item_id},
            headers=self._headers(),
            timeout=5,
        )
        response.raise_for_status()
        return response.json()

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        """Call the natural-language nutrients endpoint."""
        response = await self.http_client.post(
            f"{self.base_url}/natural/nutrients",
            json={"query": query},
            headers=self._headers(),
            timeout=5,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
