"""httpx-backed request transport."""

import json
from typing import Any

import httpx
import structlog

from fetch_helper.constants import DEFAULT_CREDENTIALS
from fetch_helper.headers import redact_headers
from fetch_helper.models import RequestInit


logger = structlog.get_logger()

CREDENTIALS_OMIT = "omit"


class HttpResponse:
    """Response returned by HttpxTransport.

    Wraps an ``httpx.Response`` behind the ``status`` / ``await json()``
    surface the normalizer expects. The underlying response stays reachable
    through ``raw`` for callers that receive the object as data.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def raw(self) -> httpx.Response:
        """Underlying httpx response."""
        return self._response

    @property
    def status(self) -> int:
        """HTTP status code."""
        return self._response.status_code

    @property
    def ok(self) -> bool:
        """True for 2xx statuses."""
        return self._response.is_success

    @property
    def headers(self) -> httpx.Headers:
        """Response headers."""
        return self._response.headers

    @property
    def url(self) -> str:
        """Final URL after redirects."""
        return str(self._response.url)

    @property
    def text(self) -> str:
        """Decoded body text."""
        return self._response.text

    @property
    def content(self) -> bytes:
        """Raw body bytes."""
        return self._response.content

    async def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is empty or not valid JSON.
        """
        return json.loads(self._response.content)

    def __repr__(self) -> str:
        return f"<HttpResponse [{self.status}] {self.url}>"


class HttpxTransport:
    """Fetch transport that issues requests through ``httpx.AsyncClient``.

    Credentials follow browser semantics: ``"omit"`` strips the Cookie
    header the client's cookie jar would add, anything else sends it.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Pre-configured client; one is created lazily if omitted.
            timeout: Default timeout in seconds for requests without their own.
        """
        self._client = client
        self._own_client = client is None
        self._timeout = timeout
        self._log = logger.bind(component="fetch_helper", subcomponent="transport")

    @property
    def client(self) -> httpx.AsyncClient:
        """Underlying httpx client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._own_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __call__(self, input: str, init: RequestInit) -> HttpResponse:  # noqa: A002
        method = init.effective_method
        headers = dict(init.headers or {})  # type: ignore[arg-type]
        credentials = init.credentials or DEFAULT_CREDENTIALS

        self._log.debug(
            "request_start",
            method=method,
            url=input,
            headers=redact_headers(headers),
            credentials=credentials,
        )

        request = self.client.build_request(
            method,
            input,
            headers=headers,
            content=encode_request_body(init.body),
            timeout=self._resolve_timeout(init),
        )
        if credentials == CREDENTIALS_OMIT:
            request.headers.pop("cookie", None)

        response = await self.client.send(request)
        await response.aread()

        self._log.debug(
            "request_complete",
            method=method,
            url=input,
            status_code=response.status_code,
        )
        return HttpResponse(response)

    def _resolve_timeout(self, init: RequestInit) -> Any:
        timeout = init.timeout if init.timeout is not None else self._timeout
        if timeout is None:
            return httpx.USE_CLIENT_DEFAULT
        return timeout


def encode_request_body(body: Any) -> bytes | str | None:
    if body is None or isinstance(body, bytes | str):
        return body
    if isinstance(body, bytearray):
        return bytes(body)
    msg = f"Unsupported request body type: {type(body).__name__}"
    raise TypeError(msg)
