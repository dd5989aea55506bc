"""Bounded retry of idempotent requests against server errors."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from fetch_helper.constants import (
    DEFAULT_MAX_RETRY,
    DEFAULT_METHOD,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_ENABLED,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
)
from fetch_helper.errors import ServerError
from fetch_helper.metrics import FetchMetrics
from fetch_helper.models import FetchTransport, RequestInit, ResponseLike


logger = structlog.get_logger()

Sleep = Callable[[float], Awaitable[Any]]


def is_server_error(status: int) -> bool:
    """Check whether a status code is in the 5xx class."""
    return HTTP_STATUS_SERVER_ERROR_MIN <= status < HTTP_STATUS_SERVER_ERROR_MAX


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Retries apply to GET requests only. ``max_retry`` counts every attempt,
    including the first. The delay before attempt ``n + 1`` is
    ``retry_delay_ms * backoff_factor ** (n - 1)``; the default factor of 1.0
    keeps the delay constant.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = DEFAULT_RETRY_ENABLED
    max_retry: Annotated[int, Field(ge=1, le=20)] = DEFAULT_MAX_RETRY
    retry_delay_ms: Annotated[int, Field(ge=0, le=60000)] = DEFAULT_RETRY_DELAY_MS
    backoff_factor: Annotated[float, Field(ge=1.0, le=5.0)] = 1.0

    def applies_to(self, method: str | None) -> bool:
        """Check whether requests with this method are retried.

        Args:
            method: HTTP method; None means GET.

        Returns:
            True if retry is enabled and the method is GET.
        """
        return self.enabled and (method or DEFAULT_METHOD).upper() == DEFAULT_METHOD

    def is_retryable(self, outcome: ResponseLike | BaseException) -> bool:
        """Check whether an attempt outcome is a retryable failure.

        Args:
            outcome: Response returned by the transport, or the exception it raised.

        Returns:
            True for transport exceptions and 5xx responses.
        """
        if isinstance(outcome, BaseException):
            return True
        return is_server_error(outcome.status)

    def should_retry(self, outcome: ResponseLike | BaseException, attempt: int) -> bool:
        """Determine if another attempt should be made.

        Args:
            outcome: Outcome of the attempt that just finished.
            attempt: Number of attempts made so far (1-indexed).

        Returns:
            True if the outcome is retryable and attempts remain.
        """
        return attempt < self.max_retry and self.is_retryable(outcome)

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate the delay after a failed attempt.

        Args:
            attempt: Number of attempts made so far (1-indexed).

        Returns:
            Delay in milliseconds.
        """
        return int(self.retry_delay_ms * (self.backoff_factor ** max(attempt - 1, 0)))

    def wrap(
        self,
        transport: FetchTransport,
        metrics: FetchMetrics | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "RetryingTransport":
        """Wrap a transport with this policy."""
        return RetryingTransport(transport, self, metrics=metrics, sleep=sleep)


class RetryingTransport:
    """Transport wrapper that re-issues GET requests on server errors.

    After the last attempt a final 500 response is returned as the answer,
    any other 5xx raises ServerError and a transport exception is re-raised.
    """

    def __init__(
        self,
        transport: FetchTransport,
        policy: RetryPolicy,
        metrics: FetchMetrics | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._policy = policy
        self._metrics = metrics
        self._sleep = sleep
        self._log = logger.bind(component="fetch_helper", subcomponent="retry")

    @property
    def policy(self) -> RetryPolicy:
        """Policy driving this transport."""
        return self._policy

    async def __call__(self, input: str, init: RequestInit) -> ResponseLike:  # noqa: A002
        if not self._policy.applies_to(init.method):
            return await self._transport(input, init)

        attempt = 0
        while True:
            attempt += 1
            outcome = await self._attempt(input, init)

            if not self._policy.should_retry(outcome, attempt):
                break

            delay_ms = self._policy.get_delay_ms(attempt)
            if self._metrics is not None:
                self._metrics.record_retry()
            self._log.debug(
                "retry_attempt",
                url=input,
                attempt=attempt,
                max_retry=self._policy.max_retry,
                delay_ms=delay_ms,
                reason=_describe(outcome),
            )
            await self._sleep(delay_ms / 1000.0)

        return self._settle(outcome, attempt)

    async def _attempt(
        self, input: str, init: RequestInit  # noqa: A002
    ) -> ResponseLike | Exception:
        try:
            return await self._transport(input, init)
        except Exception as exc:  # noqa: BLE001
            return exc

    def _settle(self, outcome: ResponseLike | Exception, attempt: int) -> ResponseLike:
        if isinstance(outcome, Exception):
            self._log.debug("retry_exhausted", attempt=attempt, reason=_describe(outcome))
            raise outcome

        if not is_server_error(outcome.status):
            return outcome

        if outcome.status == HTTP_STATUS_INTERNAL_SERVER_ERROR:
            # A persistent 500 is the server's final answer
            return outcome

        self._log.debug("retry_exhausted", attempt=attempt, status=outcome.status)
        raise ServerError(outcome)


def _describe(outcome: ResponseLike | BaseException) -> str:
    if isinstance(outcome, BaseException):
        return type(outcome).__name__
    return f"status {outcome.status}"
