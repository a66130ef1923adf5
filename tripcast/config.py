# ABOUTME: Environment-driven settings for weather provider selection, model names and retry tuning.
# ABOUTME: Loads .env via python-dotenv and validates the values with a Pydantic model.

import os
from collections.abc import Mapping
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Runtime configuration recognized by the service."""

    weather_provider: Literal["open_meteo", "openweathermap"] = "open_meteo"
    openweather_api_key: str | None = None
    openrouter_api_key: str | None = None
    primary_model: str = "google/gemini-2.5-flash"
    fallback_model: str = "google/gemini-2.0-flash-001"
    app_env: str = "production"
    debug: bool = False
    suggestion_max_attempts: int = Field(default=5, ge=1)
    suggestion_base_delay_ms: int = Field(default=600, ge=0)
    suggestion_max_delay_ms: int = Field(default=8000, ge=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _check_provider_credentials(self) -> "Settings":
        if self.weather_provider == "openweathermap" and not self.openweather_api_key:
            raise ValueError("OPENWEATHER_API_KEY is required when WEATHER_PROVIDER=openweathermap")
        return self

    @property
    def include_error_detail(self) -> bool:
        """Whether failure responses may carry internal error detail."""
        return self.debug or self.app_env.lower() in ("development", "dev")

    @property
    def suggestions_enabled(self) -> bool:
        return bool(self.openrouter_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables, ignoring unset or empty ones."""
        env = os.environ if environ is None else environ
        names = {
            "weather_provider": "WEATHER_PROVIDER",
            "openweather_api_key": "OPENWEATHER_API_KEY",
            "openrouter_api_key": "OPENROUTER_API_KEY",
            "primary_model": "OPENROUTER_MODEL",
            "fallback_model": "OPENROUTER_FALLBACK_MODEL",
            "app_env": "APP_ENV",
            "suggestion_max_attempts": "SUGGESTION_MAX_ATTEMPTS",
            "suggestion_base_delay_ms": "SUGGESTION_BASE_DELAY_MS",
            "suggestion_max_delay_ms": "SUGGESTION_MAX_DELAY_MS",
            "http_timeout_seconds": "HTTP_TIMEOUT_SECONDS",
        }
        values: dict[str, object] = {field: env[var] for field, var in names.items() if env.get(var)}
        if "weather_provider" in values:
            values["weather_provider"] = str(values["weather_provider"]).strip().lower()
        values["debug"] = env.get("DEBUG", "").strip().lower() in _TRUTHY
        return cls.model_validate(values)
