"""Turns transport outcomes into ``(data, status)`` result tuples."""

import structlog

from fetch_helper.constants import NO_STATUS
from fetch_helper.errors import InterceptorCancelledError
from fetch_helper.interceptors import (
    InterceptorPipeline,
    InterceptorSignal,
    ResponseInterceptor,
)
from fetch_helper.metrics import FetchMetrics
from fetch_helper.models import FetchResult, RequestInit, ResponseLike


logger = structlog.get_logger()


class ResponseNormalizer:
    """Decode responses and run after-response interceptors.

    - Transport failure: ``(error, -1)``.
    - JSON body: ``(parsed, status)``.
    - Non-JSON body: ``(response, status)``, with a warning for non-2xx.
    - Interceptor cancel on a response: ``(InterceptorCancelledError, status)``.
    """

    def __init__(
        self,
        after_response: InterceptorPipeline[ResponseInterceptor],
        metrics: FetchMetrics,
    ) -> None:
        self._after_response = after_response
        self._metrics = metrics
        self._log = logger.bind(component="fetch_helper", subcomponent="normalizer")

    def from_failure(self, url: str, error: Exception) -> FetchResult:
        """Normalize a failure that produced no usable response.

        Interceptors still see the error; their signal does not change the
        result.

        Args:
            url: Requested URL.
            error: Exception raised by the transport or the retry policy.

        Returns:
            ``(error, -1)``.
        """
        self._metrics.record_transport_failure(error)
        self._log.warning(
            "fetch_failed",
            url=url,
            error=str(error),
            error_type=type(error).__name__,
        )
        signal = self._after_response.run(error, None, None)
        if signal == InterceptorSignal.CANCEL:
            self._metrics.record_cancellation(self._after_response.phase)
        return error, NO_STATUS

    async def from_response(
        self,
        url: str,
        response: ResponseLike,
        init: RequestInit,
    ) -> FetchResult:
        """Normalize an HTTP response.

        Args:
            url: Requested URL.
            response: Response returned by the transport.
            init: Request options after header merging.

        Returns:
            Result tuple for the caller.
        """
        status = response.status
        self._metrics.record_response(status)

        try:
            json_data = await response.json()
        except Exception as exc:  # noqa: BLE001
            return self._from_unparsed(url, response, init, exc)

        signal = self._after_response.run(response, json_data, None)
        if signal == InterceptorSignal.CANCEL:
            return self._cancelled(status)
        return json_data, status

    def _from_unparsed(
        self,
        url: str,
        response: ResponseLike,
        init: RequestInit,
        exc: Exception,
    ) -> FetchResult:
        status = response.status
        self._metrics.record_parse_failure()

        signal = self._after_response.run(response, None, init)

        self._log.debug(
            "json_body_absent",
            url=url,
            status_code=status,
            error_type=type(exc).__name__,
        )
        if not str(status).startswith("2"):
            self._log.warning(
                "json_parse_failed",
                url=url,
                status_code=status,
                error=str(exc),
            )

        if signal == InterceptorSignal.CANCEL:
            return self._cancelled(status)
        return response, status

    def _cancelled(self, status: int) -> FetchResult:
        self._metrics.record_cancellation(self._after_response.phase)
        return InterceptorCancelledError("after_response"), status
