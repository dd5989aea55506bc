"""Progress-reporting upload channel.

Uploads bypass retry and the fetch normalizer. The response text is parsed
locally, and transport errors are raised to the caller instead of being
folded into a result tuple.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any, Protocol

import httpx
import structlog

from fetch_helper.constants import DEFAULT_UPLOAD_CHUNK_SIZE
from fetch_helper.errors import UploadError
from fetch_helper.headers import redact_headers
from fetch_helper.metrics import FetchMetrics
from fetch_helper.models import (
    FetchResult,
    ProgressEvent,
    UploadCompletion,
    UploadOptions,
)


logger = structlog.get_logger()

ProgressCallback = Callable[[ProgressEvent], Any]


class UploadTransport(Protocol):
    """Request object with load, error and upload-progress callbacks."""

    with_credentials: bool
    on_load: Callable[[UploadCompletion], None] | None
    on_error: Callable[[BaseException], None] | None
    on_progress: ProgressCallback | None

    @property
    def supports_upload_progress(self) -> bool:
        """Whether on_progress will be called while the body is sent."""
        ...

    def open(self, method: str, url: str) -> None:
        """Set the request method and URL."""
        ...

    def set_request_header(self, name: str, value: str) -> None:
        """Add a request header."""
        ...

    async def send(self, body: Any = None) -> None:
        """Send the request, then fire on_load or on_error."""
        ...


class HttpxUploadTransport:
    """Upload transport that streams the body through ``httpx.AsyncClient``.

    The body is sent in chunks and a ProgressEvent is reported after each
    chunk has been consumed by the connection.
    """

    supports_upload_progress = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
    ) -> None:
        self._client = client
        self._chunk_size = chunk_size
        self._method: str | None = None
        self._url: str | None = None
        self._headers: list[tuple[str, str]] = []
        self.with_credentials = False
        self.on_load: Callable[[UploadCompletion], None] | None = None
        self.on_error: Callable[[BaseException], None] | None = None
        self.on_progress: ProgressCallback | None = None

    def open(self, method: str, url: str) -> None:
        self._method = method.upper()
        self._url = url
        self._headers = []

    def set_request_header(self, name: str, value: str) -> None:
        if self._url is None:
            msg = "set_request_header() called before open()"
            raise UploadError(msg)
        self._headers.append((name, value))

    async def send(self, body: Any = None) -> None:
        if self._method is None or self._url is None:
            msg = "send() called before open()"
            raise UploadError(msg)

        payload = _read_body(body)
        headers = httpx.Headers(self._headers)
        headers["Content-Length"] = str(len(payload))

        request = self._client.build_request(
            self._method,
            self._url,
            headers=headers,
            content=self._stream(payload),
        )
        if not self.with_credentials:
            request.headers.pop("cookie", None)

        try:
            response = await self._client.send(request)
        except httpx.HTTPError as exc:
            if self.on_error is None:
                raise
            self.on_error(exc)
            return

        if self.on_load is not None:
            self.on_load(UploadCompletion(status=response.status_code, response_text=response.text))

    async def _stream(self, payload: bytes) -> AsyncIterator[bytes]:
        total = len(payload)
        loaded = 0
        for start in range(0, total, self._chunk_size):
            chunk = payload[start : start + self._chunk_size]
            yield chunk
            loaded += len(chunk)
            if self.on_progress is not None:
                self.on_progress(ProgressEvent(loaded=loaded, total=total))


class UploadChannel:
    """Runs uploads on a fresh upload transport per call."""

    def __init__(
        self,
        transport_factory: Callable[[], UploadTransport],
        metrics: FetchMetrics,
    ) -> None:
        """Initialize the channel.

        Args:
            transport_factory: Creates one upload transport per upload.
            metrics: Metrics owned by the client.
        """
        self._transport_factory = transport_factory
        self._metrics = metrics
        self._log = logger.bind(component="fetch_helper", subcomponent="upload")

    async def upload(
        self,
        url: str,
        opts: UploadOptions | Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> FetchResult:
        """Upload a body and parse the response.

        Args:
            url: Target URL.
            opts: Method (default POST), headers and body.
            on_progress: Receives every upload ProgressEvent unmodified.

        Returns:
            ``(parsed_json, status)``, or ``(response_text, status)`` when the
            response is not JSON.

        Raises:
            Exception: Whatever the transport reported through its error
                callback; uploads are not folded into result tuples.
        """
        options = UploadOptions.from_value(opts)
        log = self._log.bind(method=options.method.upper(), url=url)

        transport = self._transport_factory()
        transport.open(options.method, url)
        for name, value in options.headers.items():
            transport.set_request_header(name, value)

        done: asyncio.Future[UploadCompletion] = asyncio.get_running_loop().create_future()

        def on_load(completion: UploadCompletion) -> None:
            if not done.done():
                done.set_result(completion)

        def on_error(error: BaseException) -> None:
            if not done.done():
                done.set_exception(error)

        transport.on_load = on_load
        transport.on_error = on_error
        transport.with_credentials = True
        if on_progress is not None and transport.supports_upload_progress:
            transport.on_progress = on_progress

        log.debug("upload_start", headers=redact_headers(options.headers))

        try:
            await transport.send(options.body)
            if not done.done():
                msg = "Upload transport finished without a completion event"
                raise UploadError(msg)
            completion = await done
        except Exception as exc:
            self._metrics.record_upload(failed=True)
            log.warning("upload_failed", error=str(exc), error_type=type(exc).__name__)
            raise

        self._metrics.record_upload()
        log.debug("upload_complete", status_code=completion.status)

        try:
            return json.loads(completion.response_text), completion.status
        except ValueError:
            return completion.response_text, completion.status


def _read_body(body: Any) -> bytes:
    if body is None:
        return b""
    if hasattr(body, "read"):
        body = body.read()
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, bytes | bytearray | memoryview):
        return bytes(body)
    msg = f"Unsupported upload body type: {type(body).__name__}"
    raise TypeError(msg)
