# ABOUTME: Error taxonomy shared by the weather normalizer, suggestion pipeline and web layer.
# ABOUTME: Each error carries the HTTP status and the user-safe message the web layer renders.


class TripcastError(Exception):
    """Base error for the service.

    ``public_message`` is what callers see when ``expose_message`` is false; ``detail`` holds
    diagnostic text that is only rendered when error detail is enabled.
    """

    status_code: int = 500
    public_message: str = "Internal server error."
    expose_message: bool = False

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        super().__init__(message or self.public_message)
        self.detail = detail


class InvalidQueryError(TripcastError):
    status_code = 400
    public_message = "Missing q parameter."
    expose_message = True


class NotFoundError(TripcastError):
    status_code = 404
    public_message = "Location not found."
    expose_message = True


class MalformedPayloadError(TripcastError):
    status_code = 400
    public_message = "Payload missing required fields (location.name, daily)."
    expose_message = True


class UpstreamError(TripcastError):
    """A weather or geocoding provider call failed."""

    public_message = "Weather provider request failed."

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        body: str | None = None,
        detail: str | None = None,
    ):
        super().__init__(message, detail=detail or body)
        self.upstream_status = upstream_status
        self.body = body

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.upstream_status is not None and 400 <= self.upstream_status < 600:
            return self.upstream_status
        return 502


class TransientGenerationError(TripcastError):
    """Retryable signal from the generation service (rate limited, temporarily unavailable)."""

    status_code = 503
    public_message = "Suggestion service is busy."


class EmptyGenerationError(TripcastError):
    status_code = 500
    public_message = "AI returned empty suggestion."


class ServiceUnavailableError(TripcastError):
    status_code = 503
    public_message = "Suggestion service temporarily unavailable. Please try again in a few minutes."


class ConfigurationError(TripcastError):
    status_code = 500
    public_message = "Service is not configured."
    expose_message = True
