# ABOUTME: Travel suggestion pipeline: prompt building, retried primary model, single fallback, text extraction.
# ABOUTME: Produces plain suggestion text from a canonical WeatherPayload or raises a typed error.

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from tripcast.agent import AgentTextGenerator, TextGenerator
from tripcast.config import Settings
from tripcast.errors import EmptyGenerationError, MalformedPayloadError, ServiceUnavailableError
from tripcast.models import WeatherPayload
from tripcast.normalize import MAX_FORECAST_DAYS
from tripcast.retry import RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)

SUGGESTION_SECTIONS: tuple[tuple[str, str], ...] = (
    ("Activity Recommendations", "specific indoor/outdoor activities suitable for this week's weather."),
    ("Best Day(s) to Go", "name the day(s)/date(s) and one short reason (weather or comfort)."),
    ("Crowd & Timing", "when to go to avoid crowds or catch the best light (time of day)."),
    ("Local Food", "2 must-try dishes or drinks and where to try them (street/market/cafe)."),
    ("Top Viewpoints & Sights", "3 quick must-sees, include one lesser-known spot if possible."),
    ("Short History / Fun Fact", "one-sentence historical note + one fun fact."),
    ("Packing Tips", "3 concise, practical items to bring this week (weather-specific)."),
    ("Vibe Summary", "1-2 short sentences describing the overall travel mood this week."),
)

MISSING = "n/a"


def _fmt(value: float | None, missing: str = MISSING) -> str:
    if value is None:
        return missing
    return f"{round(value, 1):g}"


def format_day(dt: int) -> str:
    """Short weekday/month/day label, e.g. 'Thu, Jan 15'."""
    d = datetime.fromtimestamp(dt, tz=timezone.utc)
    return f"{d:%a, %b} {d.day}"


def forecast_lines(payload: WeatherPayload) -> list[str]:
    lines = []
    for day in payload.daily[:MAX_FORECAST_DAYS]:
        rain = round(day.precipitation_probability * 100)
        lines.append(
            f"- {format_day(day.dt)}: {_fmt(day.temp_min)}°C to {_fmt(day.temp_max)}°C, "
            f"Rain: {rain}%, {day.description}"
        )
    return lines


def build_prompt(payload: WeatherPayload) -> str:
    """Deterministic prompt for a payload: location, current conditions, the week, and the section list."""
    location = payload.location
    place = f"{location.name}, {location.country}" if location.country else location.name
    sections = "\n".join(f"- **{label}:** {hint}" for label, hint in SUGGESTION_SECTIONS)
    return (
        f"You are an expert travel planner and local guide for {place}.\n"
        "Analyze the 7-day weather data below and produce a concise, easy-to-skim travel suggestion "
        "in **short bullet points**.\n"
        "Keep the whole response brief (aim for ~150-300 words), use simple markdown bullets and bold labels, "
        "and avoid long paragraphs.\n"
        "Do NOT use markdown headings. Keep each bullet line short.\n\n"
        f"Current conditions: {_fmt(payload.current.temp, 'unknown')}°C, {payload.current.description}\n\n"
        "7-day forecast:\n"
        + "\n".join(forecast_lines(payload))
        + "\n\nInclude these labeled sections (each as short bullets prefixed by a bold label). "
        "Use 1-5 bullets per section:\n"
        f"{sections}\n\n"
        "Tone: friendly, local, practical. Make lines short and scannable.\n"
    )


def _field(response: Any, name: str) -> Any:
    if isinstance(response, dict):
        return response.get(name)
    return getattr(response, name, None)


def _plain_string(response: Any) -> str | None:
    return response if isinstance(response, str) else None


def _direct_text(response: Any) -> str | None:
    value = _field(response, "text")
    return value if isinstance(value, str) else None


def _output_text(response: Any) -> str | None:
    for name in ("output_text", "outputText", "output"):
        value = _field(response, name)
        if isinstance(value, str):
            return value
    return None


def _output_parts(response: Any) -> str | None:
    parts = _field(response, "outputs")
    if not isinstance(parts, (list, tuple)) or not parts:
        return None
    texts = []
    for part in parts:
        value = _field(part, "text") or _field(part, "content") or ""
        texts.append(value if isinstance(value, str) else "")
    return "\n".join(texts)


_EXTRACTION_STRATEGIES: tuple[Callable[[Any], str | None], ...] = (
    _plain_string,
    _direct_text,
    _output_text,
    _output_parts,
)


def extract_text(response: Any) -> str:
    """Return the first non-blank text found by the extraction strategies, or an empty string."""
    for strategy in _EXTRACTION_STRATEGIES:
        text = strategy(response)
        if text and text.strip():
            return text.strip()
    return ""


class SuggestionPipeline:
    """Generates travel suggestion text with a retried primary model and a one-shot fallback."""

    def __init__(
        self,
        generator: TextGenerator,
        primary_model: str,
        fallback_model: str,
        policy: RetryPolicy | None = None,
        *,
        include_error_detail: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.generator = generator
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        self.policy = policy or RetryPolicy()
        self.include_error_detail = include_error_detail
        self._sleep = sleep

    async def generate(self, payload: WeatherPayload) -> str:
        if not payload.location.name or not payload.location.name.strip():
            raise MalformedPayloadError()
        prompt = build_prompt(payload)

        async def call_primary() -> Any:
            return await self.generator.generate_text(self.primary_model, prompt)

        try:
            response = await retry_with_backoff(call_primary, self.policy, sleep=self._sleep)
        except Exception as primary_error:
            logger.error("Primary model %s failed after retries: %s", self.primary_model, primary_error)
            logger.info("Attempting fallback model: %s", self.fallback_model)
            try:
                response = await self.generator.generate_text(self.fallback_model, prompt)
            except Exception as fallback_error:
                logger.error("Fallback model %s also failed: %s", self.fallback_model, fallback_error)
                raise ServiceUnavailableError(
                    detail=str(fallback_error) if self.include_error_detail else None
                ) from fallback_error

        text = extract_text(response)
        if not text:
            logger.error("AI returned empty suggestion: %r", response)
            raise EmptyGenerationError()
        return text


def build_pipeline(settings: Settings) -> SuggestionPipeline | None:
    """Pipeline wired to OpenRouter, or None when no generation credential is configured."""
    if not settings.suggestions_enabled:
        return None
    policy = RetryPolicy(
        max_attempts=settings.suggestion_max_attempts,
        base_delay=settings.suggestion_base_delay_ms / 1000,
        max_delay=settings.suggestion_max_delay_ms / 1000,
    )
    return SuggestionPipeline(
        AgentTextGenerator(api_key=settings.openrouter_api_key),
        settings.primary_model,
        settings.fallback_model,
        policy,
        include_error_detail=settings.include_error_detail,
    )
