# ABOUTME: Rule-based weekly weather summary shown alongside the generated suggestion.
# ABOUTME: Derives temperature range, rain risk and overall warmth from the canonical daily forecast.

from tripcast.models import WeatherPayload
from tripcast.normalize import MAX_FORECAST_DAYS

SUMMARY_LABEL = "Weather Summary"

HIGH_RAIN = 0.5
MODERATE_RAIN = 0.3
WARM = 20.0
MILD = 15.0


def summarize_forecast(payload: WeatherPayload, days: int = MAX_FORECAST_DAYS) -> str:
    """One-paragraph summary of the first ``days`` forecast days, or "" when there are none.

    Unknown day temperatures count as 0 in the warmth average, matching how the forecast
    cards treat them.
    """
    week = payload.daily[:days]
    if not week:
        return ""

    highs = [d.temp_max for d in week if d.temp_max is not None]
    lows = [d.temp_min for d in week if d.temp_min is not None]
    avg_temp = sum(d.temp_day or 0.0 for d in week) / len(week)
    avg_rain = sum(d.precipitation_probability for d in week) / len(week)

    summary = f"**{SUMMARY_LABEL}:** "
    if highs and lows:
        summary += f"Expect {round(min(lows))}°C to {round(max(highs))}°C over the next {len(week)} days. "

    if avg_rain > HIGH_RAIN:
        summary += "High chance of rain, pack waterproof gear. "
    elif avg_rain > MODERATE_RAIN:
        summary += "Moderate rain risk, bring a light rain jacket. "
    else:
        summary += "Generally dry, great for outdoor activities. "

    if avg_temp > WARM:
        summary += "Warm and pleasant overall."
    elif avg_temp > MILD:
        summary += "Mild, light layers recommended."
    else:
        summary += "Cooler, pack warm layers."

    return summary
