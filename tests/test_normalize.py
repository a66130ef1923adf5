# ABOUTME: Contract tests for the pure reshaping helpers in tripcast.normalize.
# ABOUTME: Covers number coercion, probability scales, date bucketing, modal descriptions and both provider shapes.

from datetime import date, datetime, timezone

import pytest

from tripcast.models import Location
from tripcast.normalize import (
    FRACTION,
    PERCENT,
    bucket_by_date,
    day_temperature,
    modal_description,
    normalize_probability,
    parse_open_meteo,
    parse_openweathermap,
    parse_openweathermap_daily,
    pick,
    to_epoch,
    to_number,
)


def _epoch(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def _sample(dt_txt: str, temp: float | None, pop: float | None = None, description: str | None = None) -> dict:
    when = datetime.fromisoformat(dt_txt).replace(tzinfo=timezone.utc)
    sample: dict = {"dt": int(when.timestamp()), "dt_txt": dt_txt}
    main: dict = {}
    if temp is not None:
        main = {"temp": temp, "temp_max": temp, "temp_min": temp}
    sample["main"] = main
    if pop is not None:
        sample["pop"] = pop
    if description is not None:
        sample["weather"] = [{"description": description}]
    return sample


class TestToNumber:
    def test_accepts_numbers_and_numeric_strings(self):
        """to_number coerces ints, floats and numeric strings to float.

        Implementation: Feeds an int, a float and a string holding a number.
        Passing implies: Providers that quote numbers still produce numeric fields.
        """
        assert to_number(3) == 3.0
        assert to_number(2.5) == 2.5
        assert to_number(" 12.5 ") == 12.5

    @pytest.mark.parametrize("value", [None, "abc", True, float("nan"), float("inf"), {}, []])
    def test_rejects_everything_else(self, value):
        """to_number returns None for non-numeric input instead of raising.

        Implementation: Parametrized over junk values including booleans and NaN.
        Passing implies: Missing or malformed fields become unknown, never crash.
        """
        assert to_number(value) is None


class TestPick:
    def test_walks_nested_dicts_and_lists(self):
        """pick follows mixed key/index paths and stops at the first missing step.

        Implementation: Looks up a nested description and several missing paths.
        Passing implies: Extraction strategies can probe paths without guarding each level.
        """
        data = {"weather": [{"description": "fog"}], "main": None}
        assert pick(data, ("weather", 0, "description")) == "fog"
        assert pick(data, ("weather", 3, "description")) is None
        assert pick(data, ("main", "temp")) is None
        assert pick([], ("anything",)) is None


class TestNormalizeProbability:
    @pytest.mark.parametrize(
        "value, scale, expected",
        [
            (45, PERCENT, 0.45),
            (100, PERCENT, 1.0),
            (0, PERCENT, 0.0),
            (0.45, FRACTION, 0.45),
            (1, FRACTION, 1.0),
            (80, None, 0.8),
            (0.8, None, 0.8),
            (30, FRACTION, 0.3),
            ("60", PERCENT, 0.6),
        ],
    )
    def test_maps_to_unit_range(self, value, scale, expected):
        """Percentages are divided by 100 and fractions pass through.

        Implementation: Parametrized over percent, fraction and unknown-scale inputs.
        Passing implies: Both provider scales converge on the 0..1 canonical range.
        """
        assert normalize_probability(value, scale) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [0, 0.01, 0.5, 0.99, 1, 1.5, 17, 50, 99.9, 100, 250, -3])
    @pytest.mark.parametrize("scale", [PERCENT, FRACTION, None])
    def test_always_within_bounds(self, value, scale):
        """Normalized probabilities never leave [0, 1].

        Implementation: Crosses a spread of values with every scale, including out-of-range input.
        Passing implies: The canonical payload's probability constraint always holds.
        """
        result = normalize_probability(value, scale)
        assert 0.0 <= result <= 1.0

    def test_missing_is_none(self):
        """Missing values are reported as None so callers can exclude them."""
        assert normalize_probability(None, PERCENT) is None


class TestDayTemperature:
    def test_mean_when_both_present(self):
        assert day_temperature(8.0, 2.0) == 5.0

    def test_whichever_present(self):
        assert day_temperature(None, 2.0) == 2.0
        assert day_temperature(8.0, None) == 8.0

    def test_none_when_both_missing(self):
        assert day_temperature(None, None) is None


class TestModalDescription:
    def test_most_frequent_wins(self):
        """modal_description returns the most frequent string.

        Implementation: Passes a bucket where Rain appears twice.
        Passing implies: Daily descriptions reflect the dominant condition of the day.
        """
        assert modal_description(["Clear sky", "Rain", "Rain"]) == "Rain"

    def test_tie_goes_to_first_seen(self):
        """On a tie the description encountered first wins.

        Implementation: Two descriptions with two occurrences each, Clear seen first.
        Passing implies: Tie-breaking is deterministic by input order.
        """
        assert modal_description(["Clear sky", "Rain", "Rain", "Clear sky"]) == "Clear sky"
        assert modal_description(["Rain", "Clear sky"]) == "Rain"

    def test_ignores_missing_and_defaults_to_unknown(self):
        assert modal_description([None, "Fog", None]) == "Fog"
        assert modal_description([None, None]) == "Unknown"
        assert modal_description([]) == "Unknown"


class TestToEpoch:
    def test_epoch_passes_through(self):
        assert to_epoch(1736930700) == 1736930700

    def test_local_iso_string_read_as_wall_clock(self):
        """Pre-localized ISO strings convert as if UTC so the offset of 0 reproduces local time.

        Implementation: Converts an Open-Meteo style sunrise string without an offset.
        Passing implies: Sunrise renders at 08:45 with timezone offset 0.
        """
        assert to_epoch("2025-01-15T08:45") == _epoch(2025, 1, 15, 8, 45)

    def test_iso_string_with_offset(self):
        assert to_epoch("2025-01-15T08:45:00Z") == _epoch(2025, 1, 15, 8, 45)
        assert to_epoch("2025-01-15T09:45:00+01:00") == _epoch(2025, 1, 15, 8, 45)

    def test_junk_is_none(self):
        assert to_epoch(None) is None
        assert to_epoch("sunrise") is None


class TestBucketByDate:
    def test_groups_by_calendar_date_not_rolling_window(self):
        """Samples three hours apart across midnight land in different buckets.

        Implementation: Buckets a 21:00 sample and the following 00:00 sample.
        Passing implies: Grouping uses the date portion of the timestamp.
        """
        buckets = bucket_by_date([_sample("2025-01-15 21:00:00", 5.0), _sample("2025-01-16 00:00:00", 4.0)])
        assert list(buckets) == [date(2025, 1, 15), date(2025, 1, 16)]

    def test_falls_back_to_utc_date_of_dt(self):
        """Samples without dt_txt are bucketed by the UTC date of dt."""
        buckets = bucket_by_date([{"dt": _epoch(2025, 1, 15, 23, 0)}, {"note": "no time"}])
        assert list(buckets) == [date(2025, 1, 15)]


class TestParseOpenWeatherMapDaily:
    def test_aggregates_each_date(self):
        """A date bucket averages temperatures and probabilities and takes the modal description.

        Implementation: Four samples on one date, one without a pop value.
        Passing implies: Missing probabilities are excluded from the mean rather than counted as zero.
        """
        samples = [
            _sample("2025-01-15 00:00:00", 2.0, 0.2, "light rain"),
            _sample("2025-01-15 03:00:00", 4.0, None, "overcast"),
            _sample("2025-01-15 06:00:00", 6.0, 0.6, "light rain"),
            _sample("2025-01-15 09:00:00", 8.0, 0.4, "overcast"),
        ]
        [day] = parse_openweathermap_daily(samples)

        assert day.dt == _epoch(2025, 1, 15)
        assert day.temp_day == 5.0
        assert day.temp_max == 8.0
        assert day.temp_min == 2.0
        assert day.precipitation_probability == pytest.approx(0.4)
        assert day.description == "Light rain"

    def test_sorts_and_truncates_to_seven_days(self):
        """Buckets are emitted in ascending date order, at most seven of them.

        Implementation: Nine days of samples in reverse order.
        Passing implies: Output is chronological and bounded regardless of input order.
        """
        samples = [_sample(f"2025-01-{d:02d} 12:00:00", float(d), 0.1, "clear sky") for d in range(19, 10, -1)]
        days = parse_openweathermap_daily(samples)

        assert len(days) == 7
        assert [d.temp_day for d in days] == [11.0, 12.0, 13.0, 14.0, 15.0, 16.0, 17.0]

    def test_missing_numbers_are_none(self):
        """A bucket without temperatures or probabilities yields None temps and zero rain.

        Implementation: One sample with only a timestamp.
        Passing implies: Sparse provider data never raises.
        """
        [day] = parse_openweathermap_daily([_sample("2025-01-15 12:00:00", None)])
        assert day.temp_day is None
        assert day.temp_max is None
        assert day.precipitation_probability == 0.0
        assert day.description == "Unknown"
        assert day.weather_code is None


class TestParseOpenMeteo:
    def test_current_block_and_daily_columns(self):
        """parse_open_meteo maps the current block and zips daily columns into rows.

        Implementation: A forecast response with current values, two days and percent probabilities.
        Passing implies: Codes become descriptions, percentages become fractions, sunrise becomes an epoch.
        """
        payload = parse_open_meteo(
            Location(name="Lisbon", lat=38.7, lon=-9.1),
            {
                "current": {"temperature_2m": 17.5, "apparent_temperature": 16.0, "weather_code": 2},
                "daily": {
                    "time": ["2025-01-15", "2025-01-16"],
                    "temperature_2m_max": [18.0, None],
                    "temperature_2m_min": [12.0, 10.0],
                    "precipitation_probability_mean": [45, None],
                    "weather_code": [61, 99],
                    "sunrise": ["2025-01-15T07:50", "2025-01-16T07:50"],
                },
            },
        )

        assert payload.current.temp == 17.5
        assert payload.current.feels_like == 16.0
        assert payload.current.humidity is None
        assert payload.current.description == "Partly cloudy"
        assert payload.current.sunrise == _epoch(2025, 1, 15, 7, 50)
        assert payload.current.sunset is None
        assert payload.current.timezone_offset_seconds == 0

        first, second = payload.daily
        assert first.temp_day == 15.0
        assert first.precipitation_probability == 0.45
        assert first.description == "Slight rain"
        assert second.temp_day == 10.0
        assert second.precipitation_probability == 0.0
        assert second.description == "Thunderstorm with heavy hail"

    def test_legacy_current_weather_block(self):
        """The older current_weather block is used when the current block is absent.

        Implementation: A response with only current_weather and no daily data.
        Passing implies: Both Open-Meteo response styles fill the same fields.
        """
        payload = parse_open_meteo(
            Location(name="Oslo"),
            {"current_weather": {"temperature": -3.0, "windspeed": 4.2, "weathercode": 71}},
        )
        assert payload.current.temp == -3.0
        assert payload.current.wind_speed == 4.2
        assert payload.current.weather_code == 71
        assert payload.current.description == "Slight snow fall"
        assert payload.daily == []

    def test_unmapped_code_is_unknown(self):
        payload = parse_open_meteo(Location(name="X"), {"current": {"weather_code": 42}})
        assert payload.current.description == "Unknown"


class TestParseOpenWeatherMap:
    def test_current_uses_explicit_offset_and_canonical_description(self):
        """OpenWeatherMap current conditions keep UTC epochs and the provider's UTC offset.

        Implementation: A current response for a UTC+1 city with a lowercase description.
        Passing implies: The offset is carried and the description matches the code table casing and code.
        """
        payload = parse_openweathermap(
            Location(name="Paris"),
            {
                "main": {"temp": 9.1, "feels_like": 7.0, "humidity": 70},
                "wind": {"speed": 5.1},
                "weather": [{"description": "overcast"}],
                "sys": {"sunrise": 1736926800, "sunset": 1736958000},
                "timezone": 3600,
            },
            {"list": []},
        )
        current = payload.current
        assert current.temp == 9.1
        assert current.humidity == 70
        assert current.wind_speed == 5.1
        assert current.description == "Overcast"
        assert current.weather_code == 3
        assert current.sunrise == 1736926800
        assert current.timezone_offset_seconds == 3600

    def test_offset_falls_back_to_forecast_city(self):
        payload = parse_openweathermap(
            Location(name="Tokyo"),
            {"weather": [{"description": "scattered clouds"}]},
            {"city": {"timezone": 32400, "sunrise": 1736891000}, "list": []},
        )
        assert payload.current.timezone_offset_seconds == 32400
        assert payload.current.sunrise == 1736891000
        assert payload.current.description == "Scattered clouds"
        assert payload.current.weather_code is None

    def test_zero_epoch_is_kept_over_forecast_city(self):
        """A reported epoch of 0 is a real timestamp and is not replaced by the forecast's value.

        Implementation: Current sys.sunrise/sunset are 0 while the forecast city carries other times.
        Passing implies: Only missing timestamps fall back to the forecast block.
        """
        payload = parse_openweathermap(
            Location(name="Null Island"),
            {"sys": {"sunrise": 0, "sunset": 0}, "timezone": 0},
            {"city": {"sunrise": 1736891000, "sunset": 1736930000}, "list": []},
        )
        assert payload.current.sunrise == 0
        assert payload.current.sunset == 0
