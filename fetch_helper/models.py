"""Request and response models for the fetch helper."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, TypeAlias, runtime_checkable

from fetch_helper.constants import DEFAULT_METHOD, DEFAULT_UPLOAD_METHOD


HeadersInput: TypeAlias = Mapping[str, str] | Iterable[tuple[str, str]]

# (data, status); status is NO_STATUS when no HTTP status exists
FetchResult: TypeAlias = tuple[Any, int]


@runtime_checkable
class ResponseLike(Protocol):
    """Minimal response surface the normalizer relies on."""

    @property
    def status(self) -> int:
        """HTTP status code."""
        ...

    async def json(self) -> Any:
        """Decode the body as JSON, raising ValueError when it is not JSON."""
        ...


class FetchTransport(Protocol):
    """Request-capable transport: ``await transport(input, init)``."""

    async def __call__(self, input: str, init: "RequestInit") -> ResponseLike:  # noqa: A002
        """Issue a request and return its response."""
        ...


@dataclass(frozen=True)
class RequestInit:
    """Per-call request options.

    Attributes:
        method: HTTP method; None means GET.
        headers: Caller headers, merged over the client defaults.
        body: Raw request body (str or bytes).
        credentials: "include", "same-origin" or "omit".
        timeout: Optional transport timeout in seconds.
    """

    method: str | None = None
    headers: HeadersInput | None = None
    body: Any = None
    credentials: str | None = None
    timeout: float | None = None

    @classmethod
    def from_value(cls, value: "RequestInit | Mapping[str, Any] | None") -> "RequestInit":
        """Coerce a mapping or None into a RequestInit.

        Args:
            value: Existing RequestInit, mapping of field names, or None.

        Returns:
            RequestInit instance (the same object if one was given).
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls(**dict(value))

    @property
    def effective_method(self) -> str:
        """Upper-cased method, defaulting to GET."""
        return (self.method or DEFAULT_METHOD).upper()

    def with_changes(self, **changes: Any) -> "RequestInit":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class ProgressEvent:
    """Upload progress notification.

    Attributes:
        loaded: Bytes sent so far.
        total: Total bytes to send, 0 when unknown.
    """

    loaded: int
    total: int

    @property
    def length_computable(self) -> bool:
        """Whether the total size is known."""
        return self.total > 0


@dataclass(frozen=True)
class UploadCompletion:
    """Completion event delivered by an upload transport."""

    status: int
    response_text: str


@dataclass(frozen=True)
class UploadOptions:
    """Options for an upload request."""

    method: str = DEFAULT_UPLOAD_METHOD
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    @classmethod
    def from_value(
        cls, value: "UploadOptions | Mapping[str, Any] | None"
    ) -> "UploadOptions":
        """Coerce a mapping or None into UploadOptions."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        data = dict(value)
        return cls(
            method=data.get("method") or DEFAULT_UPLOAD_METHOD,
            headers=dict(data.get("headers") or {}),
            body=data.get("body"),
        )
