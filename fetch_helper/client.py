"""Fetch helper client facade.

Wraps a raw request transport while keeping its call shape, except that
results come back as ``(data, status)`` tuples with JSON decoded implicitly:

- default headers merged into every request,
- before-request and after-response interceptors,
- retry of GET requests on server errors,
- a progress-reporting upload channel,
- form and query-string encoding helpers.

Usage::

    helper = FetchHelper()
    data, status = await helper.fetch(
        "https://api.example.com/items",
        {"method": "POST", "body": json.dumps({"id": 1, "name": "ABC"})},
    )
"""

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

import httpx
import structlog

from fetch_helper.config import FetchHelperConfig
from fetch_helper.constants import FORM_URL_ENCODED, NO_STATUS
from fetch_helper.encoding import json_to_form, json_to_query_string
from fetch_helper.errors import InterceptorCancelledError
from fetch_helper.headers import merge_with_default_headers, redact_headers
from fetch_helper.interceptors import (
    InterceptorHandle,
    InterceptorPipeline,
    InterceptorSignal,
    RequestInterceptor,
    ResponseInterceptor,
)
from fetch_helper.metrics import FetchMetrics
from fetch_helper.models import (
    FetchResult,
    FetchTransport,
    RequestInit,
    UploadOptions,
)
from fetch_helper.normalizer import ResponseNormalizer
from fetch_helper.observability import request_context
from fetch_helper.retry import RetryingTransport, Sleep
from fetch_helper.transport import HttpxTransport, encode_request_body
from fetch_helper.upload import (
    HttpxUploadTransport,
    ProgressCallback,
    UploadChannel,
    UploadTransport,
)


logger = structlog.get_logger()


class FetchHelper:
    """HTTP client returning ``(data, status)`` tuples.

    ``fetch`` never raises: transport failures, exhausted retries and
    interceptor cancellations are all reported through the tuple. Uploads
    raise on transport errors instead.

    Construct one instance and pass it to the code that needs it.
    """

    FORM_URL_ENCODED = FORM_URL_ENCODED

    def __init__(
        self,
        config: FetchHelperConfig | None = None,
        transport: FetchTransport | None = None,
        upload_transport_factory: Callable[[], UploadTransport] | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; defaults apply when omitted.
            transport: Fetch transport; an httpx-backed one is used if omitted.
            upload_transport_factory: Creates one upload transport per upload;
                httpx-backed by default.
            client: httpx client shared by the default transports.
            sleep: Coroutine used for retry delays (asyncio.sleep by default).
        """
        self._config = config or FetchHelperConfig()
        self._metrics = FetchMetrics()
        self._default_init = RequestInit(credentials=self._config.default_credentials)
        self._default_headers: dict[str, str] = dict(self._config.default_headers)
        self._before_request: InterceptorPipeline[RequestInterceptor] = (
            InterceptorPipeline("before_request")
        )
        self._after_response: InterceptorPipeline[ResponseInterceptor] = (
            InterceptorPipeline("after_response")
        )

        self._httpx_transport = HttpxTransport(
            client=client, timeout=self._config.timeout_seconds
        )
        self._transport: FetchTransport = transport or self._httpx_transport

        retry_kwargs: dict[str, Any] = {"metrics": self._metrics}
        if sleep is not None:
            retry_kwargs["sleep"] = sleep
        self._retrying_transport: RetryingTransport = self._config.retry_policy.wrap(
            self._transport, **retry_kwargs
        )

        self._normalizer = ResponseNormalizer(self._after_response, self._metrics)
        self._upload_channel = UploadChannel(
            upload_transport_factory or self._default_upload_transport,
            self._metrics,
        )
        self._log = logger.bind(component="fetch_helper")

    async def __aenter__(self) -> "FetchHelper":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the httpx client if the helper created it."""
        await self._httpx_transport.aclose()

    @property
    def config(self) -> FetchHelperConfig:
        """Configuration the helper was built with."""
        return self._config

    @property
    def metrics(self) -> FetchMetrics:
        """Counters for this helper's requests."""
        return self._metrics

    # Default headers

    def add_default_header(self, key: str, value: str) -> None:
        """Add or replace a header sent with every later request."""
        self._default_headers[key] = value

    def remove_default_header(self, key: str) -> None:
        """Stop sending a default header; unknown names are ignored."""
        self._default_headers.pop(key, None)

    def get_headers(self) -> Mapping[str, str]:
        """Read-only live view of the default headers."""
        return MappingProxyType(self._default_headers)

    # Interceptors

    def add_before_request_interceptor(
        self, interceptor: RequestInterceptor
    ) -> InterceptorHandle:
        """Run ``interceptor()`` before every request.

        Returning ``InterceptorSignal.CANCEL`` (or raising) stops the request
        and ``fetch`` returns ``(InterceptorCancelledError, -1)``.

        Returns:
            Handle that removes this interceptor when called.
        """
        return self._before_request.add(interceptor)

    def add_after_response_interceptor(
        self, interceptor: ResponseInterceptor
    ) -> InterceptorHandle:
        """Run ``interceptor(response, json_data, request_init)`` after every request.

        Returns:
            Handle that removes this interceptor when called.
        """
        return self._after_response.add(interceptor)

    @property
    def before_request_interceptors(self) -> tuple[RequestInterceptor, ...]:
        """Registered before-request interceptors, in order."""
        return self._before_request.interceptors

    @property
    def after_response_interceptors(self) -> tuple[ResponseInterceptor, ...]:
        """Registered after-response interceptors, in order."""
        return self._after_response.interceptors

    # Encoding helpers

    @staticmethod
    def json_to_form(json: Mapping[str, Any] | None = None) -> str:
        """Encode a mapping as an application/x-www-form-urlencoded body."""
        return json_to_form(json)

    @staticmethod
    def json_to_query_string(json: Mapping[str, Any] | None = None) -> str:
        """Encode a mapping as a query string."""
        return json_to_query_string(json)

    # Requests

    async def fetch(
        self,
        input: str = "",  # noqa: A002
        init: RequestInit | Mapping[str, Any] | None = None,
    ) -> FetchResult:
        """Issue a request and return ``(data, status)``.

        Args:
            input: Request URL.
            init: Method, headers, body, credentials and timeout.

        Returns:
            ``(parsed_json, status)`` for JSON bodies, ``(response, status)``
            for other bodies, ``(error, -1)`` when no response was obtained,
            ``(InterceptorCancelledError, status)`` when an interceptor
            cancelled.
        """
        with request_context():
            return await self._fetch(input, init)

    async def _fetch(
        self,
        input: str,  # noqa: A002
        init: RequestInit | Mapping[str, Any] | None,
    ) -> FetchResult:
        try:
            request_init = self._prepare_init(init)
        except (TypeError, ValueError) as exc:
            return self._normalizer.from_failure(input, exc)

        log = self._log.bind(method=request_init.effective_method, url=input)

        if self._before_request.run() == InterceptorSignal.CANCEL:
            self._metrics.record_cancellation(self._before_request.phase)
            log.warning("fetch_cancelled_before_request")
            return InterceptorCancelledError("before_request"), NO_STATUS

        log.debug("fetch_start", headers=redact_headers(request_init.headers or {}))

        try:
            response = await self._retrying_transport(input, request_init)
        except Exception as exc:  # noqa: BLE001
            return self._normalizer.from_failure(input, exc)

        return await self._normalizer.from_response(input, response, request_init)

    async def upload_file(
        self,
        url: str,
        opts: UploadOptions | Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> FetchResult:
        """Upload a body with optional progress reporting.

        Unlike ``fetch``, transport errors are raised to the caller.

        Args:
            url: Target URL.
            opts: ``method`` (default POST), ``headers`` and ``body``.
            on_progress: Receives every ProgressEvent while the body is sent.

        Returns:
            ``(parsed_json, status)`` or ``(response_text, status)``.
        """
        with request_context():
            return await self._upload_channel.upload(url, opts, on_progress)

    def _prepare_init(self, init: RequestInit | Mapping[str, Any] | None) -> RequestInit:
        request_init = RequestInit.from_value(init)
        return request_init.with_changes(
            body=encode_request_body(request_init.body),
            credentials=request_init.credentials or self._default_init.credentials,
            headers=merge_with_default_headers(
                request_init.headers, self._default_headers
            ),
        )

    def _default_upload_transport(self) -> UploadTransport:
        return HttpxUploadTransport(
            self._httpx_transport.client,
            chunk_size=self._config.upload_chunk_size,
        )
