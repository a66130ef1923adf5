# ABOUTME: ASGI web entry point exposing weather lookup, travel suggestion, sections and summary endpoints.
# ABOUTME: Builds a Starlette app around AppDeps and renders the error taxonomy as JSON responses.

import json
import logging
import time
from contextlib import asynccontextmanager

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from tripcast.config import Settings
from tripcast.deps import AppDeps, build_deps
from tripcast.errors import ConfigurationError, MalformedPayloadError, TripcastError
from tripcast.models import WeatherPayload
from tripcast.sections import parse_sections
from tripcast.summary import summarize_forecast

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """ASGI middleware that logs method, path, status and duration of each HTTP request."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status = 500

        async def send_with_status(message):
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            logger.info(
                "%s %s -> %s (%.0f ms)",
                scope.get("method"),
                scope["path"],
                status,
                (time.perf_counter() - started) * 1000,
            )


async def _read_json(request: Request) -> object:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedPayloadError("Invalid JSON payload.") from e


async def _read_payload(request: Request) -> WeatherPayload:
    """Validate a posted WeatherPayload; location.name and the daily list are required."""
    body = await _read_json(request)
    if not isinstance(body, dict):
        raise MalformedPayloadError()
    location = body.get("location")
    if not isinstance(location, dict) or not location.get("name") or not isinstance(body.get("daily"), list):
        raise MalformedPayloadError()
    try:
        return WeatherPayload.model_validate(body)
    except ValidationError as e:
        raise MalformedPayloadError(detail=str(e)) from e


def create_app(deps: AppDeps | None = None) -> Starlette:
    """Build the ASGI app; deps default to ones built from the environment."""
    if deps is None:
        deps = build_deps(Settings.from_env())
    include_detail = deps.settings.include_error_detail

    async def lookup_weather(request: Request) -> JSONResponse:
        payload = await deps.normalizer.resolve(request.query_params.get("q"))
        return JSONResponse(payload.model_dump(mode="json", by_alias=True))

    async def suggest(request: Request) -> JSONResponse:
        if deps.pipeline is None:
            raise ConfigurationError("OPENROUTER_API_KEY is not set in environment variables.")
        payload = await _read_payload(request)
        suggestion = await deps.pipeline.generate(payload)
        return JSONResponse({"suggestion": suggestion})

    async def sections(request: Request) -> JSONResponse:
        body = await _read_json(request)
        text = body.get("text") if isinstance(body, dict) else None
        if text is not None and not isinstance(text, str):
            raise MalformedPayloadError("Field 'text' must be a string.")
        return JSONResponse({"sections": [s.model_dump() for s in parse_sections(text)]})

    async def summary(request: Request) -> JSONResponse:
        payload = await _read_payload(request)
        return JSONResponse({"summary": summarize_forecast(payload)})

    async def handle_tripcast_error(request: Request, exc: TripcastError) -> JSONResponse:
        body = {"error": str(exc) if exc.expose_message else exc.public_message}
        if include_detail and exc.detail:
            body["details"] = exc.detail
        return JSONResponse(body, status_code=exc.status_code)

    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        body = {"error": "Internal server error."}
        if include_detail:
            body["details"] = str(exc)
        return JSONResponse(body, status_code=500)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        yield
        await deps.http_client.aclose()

    app = Starlette(
        routes=[
            Route("/api/weather", lookup_weather, methods=["GET"]),
            Route("/api/suggestion", suggest, methods=["POST"]),
            Route("/api/sections", sections, methods=["POST"]),
            Route("/api/summary", summary, methods=["POST"]),
        ],
        exception_handlers={TripcastError: handle_tripcast_error, Exception: handle_unexpected_error},
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.add_middleware(RequestLogMiddleware)
    return app


app = create_app()
