"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Provider credentials are optional: a provider without credentials is
    disabled rather than failing requests.
    """

    admin_token: str
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    edamam_app_id: str | None = None
    edamam_app_key: str | None = None
    edamam_base_url: str = "https://api.edamam.com/api/food-database/v2"
    nutritionix_app_id: str | None = None
    nutritionix_api_key: str | None = None
    nutritionix_base_url: str = "https://trackapi.nutritionix.com/v2"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    log_level: str = "INFO"
    provider_timeout_seconds: float = 1.2
    estimator_timeout_seconds: float = 1.2
    low_value_ttl_hours: int = 6
    cache_ttl_days: int = 90
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def has_credentials(*values: str | None) -> bool:
    """Return True when every credential value is present and non-blank."""
    return all(value is not None and value.strip() for value in values)
