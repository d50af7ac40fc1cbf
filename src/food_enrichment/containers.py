"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from food_enrichment.adapters.edamam_client import HttpxEdamamClient
from food_enrichment.adapters.fdc_client import HttpxFdcClient
from food_enrichment.adapters.nutritionix_client import HttpxNutritionixClient
from food_enrichment.adapters.openai_estimator_client import OpenAIEstimatorClient
from food_enrichment.adapters.supabase_enrichment_cache_repository import (
    SupabaseEnrichmentCache,
)
from food_enrichment.config import Settings, has_credentials
from food_enrichment.services.cache import EnrichmentCache, InMemoryEnrichmentCache
from food_enrichment.services.enrichment import EnrichmentService
from food_enrichment.services.providers import (
    EdamamResolver,
    EstimatorResolver,
    FdcResolver,
    NutritionixResolver,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    enrichment_service: EnrichmentService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    closers: list[Callable[[], Awaitable[None]]] = []
    timeout = resolved_settings.provider_timeout_seconds

    fdc_client = None
    if has_credentials(resolved_settings.fdc_api_key):
        fdc_client = HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
        )
        closers.append(fdc_client.close)
    edamam_client = None
    if has_credentials(
        resolved_settings.edamam_app_id, resolved_settings.edamam_app_key
    ):
        edamam_client = HttpxEdamamClient.create(
            app_id=resolved_settings.edamam_app_id,
            app_key=resolved_settings.edamam_app_key,
            base_url=resolved_settings.edamam_base_url,
        )
        closers.append(edamam_client.close)
    nutritionix_client = None
    if has_credentials(
        resolved_settings.nutritionix_app_id, resolved_settings.nutritionix_api_key
    ):
        nutritionix_client = HttpxNutritionixClient.create(
            app_id=resolved_settings.nutritionix_app_id,
            api_key=resolved_settings.nutritionix_api_key,
            base_url=resolved_settings.nutritionix_base_url,
        )
        closers.append(nutritionix_client.close)
    estimator_client = None
    if has_credentials(resolved_settings.openai_api_key):
        estimator_client = OpenAIEstimatorClient.create(
            resolved_settings.openai_api_key
        )
        closers.append(estimator_client.close)

    enrichment_service = EnrichmentService(
        cache=_build_cache(resolved_settings),
        fdc=FdcResolver(client=fdc_client, timeout_seconds=timeout),
        edamam=EdamamResolver(client=edamam_client, timeout_seconds=timeout),
        nutritionix=NutritionixResolver(
            client=nutritionix_client, timeout_seconds=timeout
        ),
        estimator=EstimatorResolver(
            client=estimator_client,
            model=resolved_settings.openai_model,
            timeout_seconds=resolved_settings.estimator_timeout_seconds,
        ),
        low_value_ttl=timedelta(hours=resolved_settings.low_value_ttl_hours),
        cache_ttl=timedelta(days=resolved_settings.cache_ttl_days),
    )

    async def close_resources() -> None:
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        enrichment_service=enrichment_service,
        close_resources=close_resources,
    )


def _build_cache(settings: Settings) -> EnrichmentCache:
    """Use the Supabase table when configured, else an in-process cache."""
    if has_credentials(settings.supabase_url, settings.supabase_service_key):
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseEnrichmentCache(client)
    return InMemoryEnrichmentCache()
