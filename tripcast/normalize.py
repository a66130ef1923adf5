# ABOUTME: Pure reshaping of provider JSON into the canonical WeatherPayload.
# ABOUTME: Handles daily columns, 3-hour bucketing, probability scales, timestamps and descriptions.

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from typing import Any

from tripcast.models import CurrentConditions, DailyForecast, Location, WeatherPayload
from tripcast.weather_codes import UNKNOWN_DESCRIPTION, code_for_description, describe

MAX_FORECAST_DAYS = 7

PERCENT = 100.0
FRACTION = 1.0

Path = tuple[str | int, ...]

# Ordered extraction strategies per entity: the first path holding a number wins.
OPEN_METEO_CURRENT: dict[str, tuple[Path, ...]] = {
    "temp": (("current", "temperature_2m"), ("current_weather", "temperature")),
    "feels_like": (("current", "apparent_temperature"),),
    "humidity": (("current", "relative_humidity_2m"),),
    "wind_speed": (("current", "wind_speed_10m"), ("current_weather", "windspeed")),
    "weather_code": (("current", "weather_code"), ("current_weather", "weathercode")),
}

OPEN_METEO_DAILY_COLUMNS: dict[str, tuple[str, ...]] = {
    "temp_max": ("temperature_2m_max",),
    "temp_min": ("temperature_2m_min",),
    "precipitation": ("precipitation_probability_mean", "precipitation_probability_max"),
    "weather_code": ("weather_code", "weathercode"),
}

OPENWEATHERMAP_CURRENT: dict[str, tuple[Path, ...]] = {
    "temp": (("main", "temp"),),
    "feels_like": (("main", "feels_like"),),
    "humidity": (("main", "humidity"),),
    "wind_speed": (("wind", "speed"),),
}

OPENWEATHERMAP_SAMPLE: dict[str, tuple[Path, ...]] = {
    "temp": (("main", "temp"),),
    "temp_max": (("main", "temp_max"), ("main", "temp")),
    "temp_min": (("main", "temp_min"), ("main", "temp")),
    "precipitation": (("pop",),),
}


def to_number(value: Any) -> float | None:
    """Coerce numbers and numeric strings to float; anything else (bools, NaN, junk) is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_int(value: Any) -> int | None:
    number = to_number(value)
    return None if number is None else int(number)


def pick(data: Any, path: Path) -> Any:
    """Walk nested dicts and lists, returning None as soon as a step is missing."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, (list, tuple)) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def first_number(data: Any, paths: Iterable[Path]) -> float | None:
    for path in paths:
        number = to_number(pick(data, path))
        if number is not None:
            return number
    return None


def mean(values: Iterable[float | None]) -> float | None:
    """Arithmetic mean of the present values; None when nothing is present."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return round(sum(present) / len(present), 4)


def day_temperature(temp_max: float | None, temp_min: float | None) -> float | None:
    if temp_max is not None and temp_min is not None:
        return mean((temp_max, temp_min))
    return temp_max if temp_max is not None else temp_min


def normalize_probability(value: Any, scale: float | None = None) -> float | None:
    """Bring a precipitation probability into [0, 1].

    ``scale`` is PERCENT or FRACTION when the source's unit is known. Values above 1 from a
    fractional or unknown source are read as percentages.
    """
    number = to_number(value)
    if number is None:
        return None
    if scale != PERCENT:
        scale = PERCENT if number > 1 else FRACTION
    return round(min(1.0, max(0.0, number / scale)), 4)


def to_epoch(value: Any) -> int | None:
    """Epoch seconds pass through; ISO-8601 strings without an offset are read as UTC wall-clock."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return to_int(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    return to_int(value)


def first_epoch(*values: Any) -> int | None:
    """First value that parses as a timestamp; 0 is a real epoch, only None falls through."""
    for value in values:
        epoch = to_epoch(value)
        if epoch is not None:
            return epoch
    return None


def date_to_epoch(day: date) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


def canonical_description(text: Any) -> str:
    """Trim and capitalize the first letter so text descriptions match the code table's casing."""
    if not isinstance(text, str) or not text.strip():
        return UNKNOWN_DESCRIPTION
    text = text.strip()
    return text[0].upper() + text[1:]


def modal_description(descriptions: Sequence[str | None]) -> str:
    """Most frequent description; ties go to the one seen first."""
    counts = Counter(d for d in descriptions if d)
    if not counts:
        return UNKNOWN_DESCRIPTION
    return counts.most_common(1)[0][0]


def _get_at(data: dict, key: str, index: int):
    """Safely get value at index from a column array, returning None if missing."""
    col = data.get(key)
    if not isinstance(col, list) or index >= len(col):
        return None
    return col[index]


def _column_value(raw: dict, keys: tuple[str, ...], index: int) -> Any:
    for key in keys:
        value = _get_at(raw, key, index)
        if value is not None:
            return value
    return None


def parse_open_meteo_daily(raw: dict) -> list[DailyForecast]:
    """Parse Open-Meteo column-oriented daily data (percent probabilities) into DailyForecast rows."""
    dates = raw.get("time") or []
    result = []
    for i, d in enumerate(dates):
        try:
            day = date.fromisoformat(str(d)[:10])
        except ValueError:
            continue
        temp_max = to_number(_column_value(raw, OPEN_METEO_DAILY_COLUMNS["temp_max"], i))
        temp_min = to_number(_column_value(raw, OPEN_METEO_DAILY_COLUMNS["temp_min"], i))
        code = to_int(_column_value(raw, OPEN_METEO_DAILY_COLUMNS["weather_code"], i))
        probability = normalize_probability(
            _column_value(raw, OPEN_METEO_DAILY_COLUMNS["precipitation"], i), PERCENT
        )
        result.append(
            DailyForecast(
                dt=date_to_epoch(day),
                temp_day=day_temperature(temp_max, temp_min),
                temp_max=temp_max,
                temp_min=temp_min,
                precipitation_probability=probability or 0.0,
                description=describe(code),
                weather_code=code,
            )
        )
    return result


def parse_open_meteo(location: Location, data: dict) -> WeatherPayload:
    """Shape an Open-Meteo forecast response; times are already local, so the offset is 0."""
    daily_raw = data.get("daily") or {}
    code = to_int(first_number(data, OPEN_METEO_CURRENT["weather_code"]))
    current = CurrentConditions(
        temp=first_number(data, OPEN_METEO_CURRENT["temp"]),
        feels_like=first_number(data, OPEN_METEO_CURRENT["feels_like"]),
        humidity=first_number(data, OPEN_METEO_CURRENT["humidity"]),
        wind_speed=first_number(data, OPEN_METEO_CURRENT["wind_speed"]),
        description=describe(code),
        sunrise=to_epoch(_get_at(daily_raw, "sunrise", 0)),
        sunset=to_epoch(_get_at(daily_raw, "sunset", 0)),
        timezone_offset_seconds=0,
        weather_code=code,
    )
    return WeatherPayload(location=location, current=current, daily=parse_open_meteo_daily(daily_raw))


def sample_date(sample: dict) -> date | None:
    """Calendar date of a forecast sample: the date portion of dt_txt, else the UTC date of dt."""
    text = sample.get("dt_txt")
    if isinstance(text, str):
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    epoch = to_int(sample.get("dt"))
    if epoch is None:
        return None
    return datetime.fromtimestamp(epoch, tz=timezone.utc).date()


def bucket_by_date(samples: Iterable[dict]) -> dict[date, list[dict]]:
    """Group sub-daily samples by calendar date, keeping sample order within each date."""
    buckets: dict[date, list[dict]] = {}
    for sample in samples:
        if not isinstance(sample, dict):
            continue
        day = sample_date(sample)
        if day is None:
            continue
        buckets.setdefault(day, []).append(sample)
    return buckets


def aggregate_bucket(day: date, samples: list[dict]) -> DailyForecast:
    """Collapse one date's 3-hour samples (fractional probabilities) into a DailyForecast."""
    temps = [first_number(s, OPENWEATHERMAP_SAMPLE["temp"]) for s in samples]
    highs = [v for v in (first_number(s, OPENWEATHERMAP_SAMPLE["temp_max"]) for s in samples) if v is not None]
    lows = [v for v in (first_number(s, OPENWEATHERMAP_SAMPLE["temp_min"]) for s in samples) if v is not None]
    probabilities = [
        normalize_probability(first_number(s, OPENWEATHERMAP_SAMPLE["precipitation"]), FRACTION) for s in samples
    ]
    description = modal_description([_sample_description(s) for s in samples])
    return DailyForecast(
        dt=date_to_epoch(day),
        temp_day=mean(temps),
        temp_max=max(highs) if highs else None,
        temp_min=min(lows) if lows else None,
        precipitation_probability=mean(probabilities) or 0.0,
        description=description,
        weather_code=code_for_description(description),
    )


def _sample_description(sample: dict) -> str | None:
    text = pick(sample, ("weather", 0, "description"))
    if not isinstance(text, str) or not text.strip():
        return None
    return canonical_description(text)


def parse_openweathermap_daily(samples: Iterable[dict]) -> list[DailyForecast]:
    buckets = bucket_by_date(samples)
    days = sorted(buckets)[:MAX_FORECAST_DAYS]
    return [aggregate_bucket(day, buckets[day]) for day in days]


def parse_openweathermap(location: Location, current: dict, forecast: dict) -> WeatherPayload:
    """Shape OpenWeatherMap current + 5-day/3-hour forecast responses; times are UTC epochs."""
    description = canonical_description(pick(current, ("weather", 0, "description")))
    offset = to_int(current.get("timezone"))
    if offset is None:
        offset = to_int(pick(forecast, ("city", "timezone"))) or 0
    conditions = CurrentConditions(
        temp=first_number(current, OPENWEATHERMAP_CURRENT["temp"]),
        feels_like=first_number(current, OPENWEATHERMAP_CURRENT["feels_like"]),
        humidity=first_number(current, OPENWEATHERMAP_CURRENT["humidity"]),
        wind_speed=first_number(current, OPENWEATHERMAP_CURRENT["wind_speed"]),
        description=description,
        sunrise=first_epoch(pick(current, ("sys", "sunrise")), pick(forecast, ("city", "sunrise"))),
        sunset=first_epoch(pick(current, ("sys", "sunset")), pick(forecast, ("city", "sunset"))),
        timezone_offset_seconds=offset,
        weather_code=code_for_description(description),
    )
    return WeatherPayload(
        location=location,
        current=conditions,
        daily=parse_openweathermap_daily(forecast.get("list") or []),
    )
