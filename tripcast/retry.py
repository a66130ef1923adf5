# ABOUTME: Reusable retry executor with exponential backoff and jitter, built on tenacity.
# ABOUTME: RetryPolicy decides which generation errors are transient and how long to wait between attempts.

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from tripcast.errors import TransientGenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 503})
TRANSIENT_SYMBOLIC_CODES = frozenset({"UNAVAILABLE", "RATE_LIMIT_EXCEEDED", "TOO_MANY_REQUESTS"})


def _body_error(exc: BaseException, key: str) -> Any:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get(key)
    return None


# Ordered: the first strategy yielding a value decides the status.
_STATUS_STRATEGIES: tuple[Callable[[BaseException], Any], ...] = (
    lambda e: _body_error(e, "code"),
    lambda e: getattr(e, "status_code", None),
    lambda e: getattr(getattr(e, "response", None), "status_code", None),
    lambda e: getattr(e, "status", None),
    lambda e: getattr(e, "code", None),
    lambda e: _body_error(e, "status"),
)


def error_status(exc: BaseException) -> int | str | None:
    """Pull a numeric or symbolic status out of a generation error."""
    for strategy in _STATUS_STRATEGIES:
        value = strategy(exc)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip():
            value = value.strip()
            return int(value) if value.isdigit() else value.upper()
    return None


def is_transient_error(exc: BaseException) -> bool:
    """Rate limiting and temporary unavailability are worth retrying; nothing else is."""
    if isinstance(exc, TransientGenerationError):
        return True
    status = error_status(exc)
    if isinstance(status, int):
        return status in TRANSIENT_STATUS_CODES
    return status in TRANSIENT_SYMBOLIC_CODES


class RetryPolicy(BaseModel):
    """Attempt budget and backoff shape for a retried call. Delays are in seconds."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = Field(default=0.6, ge=0)
    max_delay: float = Field(default=8.0, ge=0)
    min_delay: float = Field(default=0.1, ge=0)
    max_jitter: float = Field(default=1.0, ge=0)
    is_transient: Callable[[BaseException], bool] = is_transient_error

    def backoff(self, attempt: int) -> float:
        """Un-jittered delay after the given failed attempt (1-indexed)."""
        return min(self.max_delay, self.base_delay * 2**attempt)

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        backoff = self.backoff(attempt)
        jitter = (rng or random).random() * min(self.max_jitter, backoff / 2)
        return max(self.min_delay, backoff - jitter)

    def wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)


def _log_retry(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Model call failed (attempt %d/%d) status=%s, retrying in %.2fs (total backoff %.2fs): %s",
            retry_state.attempt_number,
            policy.max_attempts,
            error_status(exc) if exc else None,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
            retry_state.idle_for,
            exc,
        )

    return before_sleep


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Call ``fn`` until it succeeds, a non-transient error occurs, or attempts run out.

    The last error is re-raised unchanged; non-transient errors are raised on the first attempt.
    ``fn`` may be any callable returning an awaitable (lambdas and partials included).
    """

    async def attempt() -> T:
        return await fn()

    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(policy.max_attempts),
        wait=policy.wait,
        retry=retry_if_exception(policy.is_transient),
        before_sleep=_log_retry(policy),
        reraise=True,
    )
    return await retrying(attempt)
