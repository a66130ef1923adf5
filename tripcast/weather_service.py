# ABOUTME: Service layer for geocoding and forecast calls against Open-Meteo and OpenWeatherMap.
# ABOUTME: Each provider is a WeatherSource; WeatherNormalizer turns a free-text query into a WeatherPayload.

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from tripcast.config import Settings
from tripcast.errors import ConfigurationError, InvalidQueryError, NotFoundError, UpstreamError
from tripcast.models import Location, WeatherPayload
from tripcast.normalize import parse_open_meteo, parse_openweathermap, to_number

logger = logging.getLogger(__name__)

OPEN_METEO_GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

OPENWEATHERMAP_GEOCODING_URL = "https://api.openweathermap.org/geo/1.0/direct"
OPENWEATHERMAP_CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
OPENWEATHERMAP_FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"

OPEN_METEO_CURRENT_PARAMS = "temperature_2m,apparent_temperature,relative_humidity_2m,wind_speed_10m,weather_code"
OPEN_METEO_DAILY_PARAMS = (
    "temperature_2m_max,temperature_2m_min,precipitation_probability_mean,weather_code,sunrise,sunset"
)


async def _get_json(client: httpx.AsyncClient, url: str, params: dict[str, Any], service: str) -> Any:
    """GET a provider endpoint, turning transport failures and non-2xx responses into UpstreamError."""
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as e:
        logger.warning("%s request failed: %s", service, e)
        raise UpstreamError(f"{service} request failed: {e}", detail=str(e)) from e

    if resp.is_error:
        logger.warning("%s returned HTTP %s", service, resp.status_code)
        raise UpstreamError(
            f"{service} returned HTTP {resp.status_code}",
            upstream_status=resp.status_code,
            body=resp.text,
        )
    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError(f"{service} returned invalid JSON", upstream_status=resp.status_code) from e


class WeatherSource(ABC):
    """One upstream provider able to geocode a place and fetch its canonical forecast."""

    name: str

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @abstractmethod
    async def geocode(self, query: str) -> Location | None:
        """Return the first matching location, or None when there are no candidates."""

    @abstractmethod
    async def fetch(self, location: Location) -> WeatherPayload:
        """Fetch current conditions and the daily forecast for a geocoded location."""


class OpenMeteoSource(WeatherSource):
    """Open-Meteo: keyless geocoding plus a single forecast call returning daily columns."""

    name = "open_meteo"

    async def geocode(self, query: str) -> Location | None:
        data = await _get_json(
            self.client,
            OPEN_METEO_GEOCODING_URL,
            {"name": query, "count": 1, "language": "en"},
            "Open-Meteo geocoding",
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            return None

        r = results[0]
        return Location(
            name=r.get("name") or query,
            country=r.get("country") or "",
            state=r.get("admin1"),
            lat=to_number(r.get("latitude")),
            lon=to_number(r.get("longitude")),
        )

    async def fetch(self, location: Location) -> WeatherPayload:
        data = await _get_json(
            self.client,
            OPEN_METEO_FORECAST_URL,
            {
                "latitude": location.lat,
                "longitude": location.lon,
                "current": OPEN_METEO_CURRENT_PARAMS,
                "daily": OPEN_METEO_DAILY_PARAMS,
                "wind_speed_unit": "ms",
                "timezone": "auto",
                "forecast_days": 7,
            },
            "Open-Meteo forecast",
        )
        if not isinstance(data, dict):
            raise UpstreamError("Open-Meteo forecast returned an unexpected shape")
        return parse_open_meteo(location, data)


class OpenWeatherMapSource(WeatherSource):
    """OpenWeatherMap: direct geocoding, then current and 3-hour forecast fetched concurrently."""

    name = "openweathermap"

    def __init__(self, client: httpx.AsyncClient, api_key: str):
        super().__init__(client)
        self.api_key = api_key

    async def geocode(self, query: str) -> Location | None:
        data = await _get_json(
            self.client,
            OPENWEATHERMAP_GEOCODING_URL,
            {"q": query, "limit": 1, "appid": self.api_key},
            "OpenWeatherMap geocoding",
        )
        if not isinstance(data, list) or not data:
            return None

        r = data[0]
        return Location(
            name=r.get("name") or query,
            country=r.get("country") or "",
            state=r.get("state"),
            lat=to_number(r.get("lat")),
            lon=to_number(r.get("lon")),
        )

    async def fetch(self, location: Location) -> WeatherPayload:
        params = {"lat": location.lat, "lon": location.lon, "units": "metric", "appid": self.api_key}
        current, forecast = await asyncio.gather(
            _get_json(self.client, OPENWEATHERMAP_CURRENT_URL, params, "OpenWeatherMap current"),
            _get_json(self.client, OPENWEATHERMAP_FORECAST_URL, params, "OpenWeatherMap forecast"),
        )
        if not isinstance(current, dict) or not isinstance(forecast, dict):
            raise UpstreamError("OpenWeatherMap returned an unexpected shape")
        return parse_openweathermap(location, current, forecast)


def build_weather_source(settings: Settings, client: httpx.AsyncClient) -> WeatherSource:
    """Instantiate the configured provider."""
    if settings.weather_provider == "open_meteo":
        return OpenMeteoSource(client)
    if settings.weather_provider == "openweathermap":
        if not settings.openweather_api_key:
            raise ConfigurationError("OPENWEATHER_API_KEY is not set.")
        return OpenWeatherMapSource(client, settings.openweather_api_key)
    raise ConfigurationError(f"Unsupported weather provider: {settings.weather_provider}")


class WeatherNormalizer:
    """Resolves a free-text place query into one canonical WeatherPayload."""

    def __init__(self, source: WeatherSource):
        self.source = source

    async def resolve(self, query: str | None) -> WeatherPayload:
        if not query or not query.strip():
            raise InvalidQueryError()
        query = query.strip()

        location = await self.source.geocode(query)
        if location is None:
            raise NotFoundError()
        if location.lat is None or location.lon is None:
            raise UpstreamError(f"{self.source.name} geocoding returned no coordinates for '{query}'")

        logger.info("Resolved %r to %s, %s via %s", query, location.name, location.country, self.source.name)
        return await self.source.fetch(location)
