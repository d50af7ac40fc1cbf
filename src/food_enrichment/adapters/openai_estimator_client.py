"""OpenAI Responses API client for nutrition estimates."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from food_enrichment.services.providers import EstimatorClient


@dataclass
class OpenAIEstimatorClient(EstimatorClient):
    """Estimator client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIEstimatorClient":
        """Create an OpenAI estimator client."""
        return cls(client=AsyncOpenAI(api_key=api_key, max_retries=0))

    async def estimate(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        response = await self.client.responses.create(
            model=model,
            instructions=instructions,
            input=[
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "nutrition_estimate",
                    "strict": True,
                    "schema": schema,
                }
            },
            store=False,
        )
        output_text = response.output_text
        if not output_text:
            raise ValueError("OpenAI returned an empty response")
        return json.loads(output_text)

    async def close(self) -> None:
        """Close the underlying OpenAI HTTP session."""
        await self.client.close()
