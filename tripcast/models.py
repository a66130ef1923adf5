# ABOUTME: Pydantic BaseModels for the canonical weather payload and parsed suggestion sections.
# ABOUTME: Every upstream provider is normalized into these types before anything downstream sees it.

import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _nan_to_none(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


OptionalNumber = Annotated[float | None, BeforeValidator(_nan_to_none)]


class CanonicalModel(BaseModel):
    """Base for the canonical schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(CanonicalModel):
    """Geocoded place the forecast belongs to."""

    name: str
    country: str = ""
    state: str | None = None
    lat: float | None = None
    lon: float | None = None


class CurrentConditions(CanonicalModel):
    """Current observation. Numeric fields are None when the provider omits them."""

    temp: OptionalNumber = None
    feels_like: OptionalNumber = None
    humidity: OptionalNumber = None
    wind_speed: OptionalNumber = None
    description: str = "Unknown"
    sunrise: int | None = None
    sunset: int | None = None
    timezone_offset_seconds: int = 0
    weather_code: int | None = None


class DailyForecast(CanonicalModel):
    """One calendar day of forecast; dt is UTC midnight of that date in epoch seconds."""

    dt: int
    temp_day: OptionalNumber = None
    temp_max: OptionalNumber = None
    temp_min: OptionalNumber = None
    precipitation_probability: float = Field(default=0.0, ge=0.0, le=1.0)
    description: str = "Unknown"
    weather_code: int | None = None


class WeatherPayload(CanonicalModel):
    """Canonical lookup result shared by every weather source."""

    location: Location
    current: CurrentConditions = Field(default_factory=CurrentConditions)
    daily: list[DailyForecast] = []


class SuggestionSection(BaseModel):
    """One labeled block of the generated travel suggestion."""

    label: str
    content: str
