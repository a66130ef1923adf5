# ABOUTME: WMO weather interpretation codes used by Open-Meteo, mapped to short descriptions.
# ABOUTME: Also provides the reverse lookup so text-only providers can report the same code.

UNKNOWN_DESCRIPTION = "Unknown"

WMO_DESCRIPTIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

_CODES_BY_DESCRIPTION = {text.lower(): code for code, text in WMO_DESCRIPTIONS.items()}


def describe(code: int | None) -> str:
    """Return the description for a WMO code, or "Unknown" when absent or unmapped."""
    if code is None:
        return UNKNOWN_DESCRIPTION
    return WMO_DESCRIPTIONS.get(code, UNKNOWN_DESCRIPTION)


def code_for_description(description: str | None) -> int | None:
    """Return the WMO code whose description matches exactly (case-insensitive)."""
    if not description:
        return None
    return _CODES_BY_DESCRIPTION.get(description.strip().lower())
