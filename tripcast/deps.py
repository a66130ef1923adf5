# ABOUTME: Dependency container for the web layer using Pydantic BaseModel.
# ABOUTME: Holds settings, the shared httpx.AsyncClient, the weather normalizer and the suggestion pipeline.

import httpx
from pydantic import BaseModel, ConfigDict

from tripcast.config import Settings
from tripcast.suggestion import SuggestionPipeline, build_pipeline
from tripcast.weather_service import WeatherNormalizer, build_weather_source


class AppDeps(BaseModel):
    """Per-process collaborators shared by every request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    http_client: httpx.AsyncClient
    normalizer: WeatherNormalizer
    pipeline: SuggestionPipeline | None = None


def create_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """Create the outbound httpx client.

    Weather calls are not retried: provider failures surface directly as UpstreamError.
    """
    return httpx.AsyncClient(timeout=timeout, headers={"User-Agent": "tripcast/0.1"})


def build_deps(settings: Settings) -> AppDeps:
    client = create_http_client(settings.http_timeout_seconds)
    return AppDeps(
        settings=settings,
        http_client=client,
        normalizer=WeatherNormalizer(build_weather_source(settings, client)),
        pipeline=build_pipeline(settings),
    )
