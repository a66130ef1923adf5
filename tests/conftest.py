# ABOUTME: Shared test fixtures for the tripcast test suite.
# ABOUTME: Blocks real LLM calls and provides a canonical WeatherPayload fixture.

from datetime import date

import pydantic_ai.models
import pytest

from tripcast.models import CurrentConditions, DailyForecast, Location, WeatherPayload
from tripcast.normalize import date_to_epoch

# Prevent accidental LLM calls during testing
pydantic_ai.models.ALLOW_MODEL_REQUESTS = False


def make_day(day: date, temp_min: float | None, temp_max: float | None, rain: float, description: str) -> DailyForecast:
    temp_day = (temp_min + temp_max) / 2 if temp_min is not None and temp_max is not None else None
    return DailyForecast(
        dt=date_to_epoch(day),
        temp_day=temp_day,
        temp_max=temp_max,
        temp_min=temp_min,
        precipitation_probability=rain,
        description=description,
    )


@pytest.fixture
def sample_payload() -> WeatherPayload:
    """A two-day Lisbon forecast in canonical form."""
    return WeatherPayload(
        location=Location(name="Lisbon", country="Portugal", lat=38.72, lon=-9.14),
        current=CurrentConditions(temp=21.5, description="Mainly clear", weather_code=1),
        daily=[
            make_day(date(2025, 1, 15), 12.0, 18.0, 0.5, "Slight rain"),
            make_day(date(2025, 1, 16), 11.0, 20.0, 0.1, "Clear sky"),
        ],
    )
