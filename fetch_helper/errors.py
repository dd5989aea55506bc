"""Domain-specific error types for the fetch helper."""

from typing import Any, Literal


InterceptorPhase = Literal["before_request", "after_response"]


class FetchHelperError(Exception):
    """Base class for errors raised by the fetch helper."""


class ServerError(FetchHelperError):
    """Retries exhausted against a 5xx response other than 500.

    Attributes:
        response: The last response received from the transport.
        status_code: HTTP status code of that response.
    """

    def __init__(self, response: Any) -> None:
        self.response = response
        self.status_code: int = response.status
        super().__init__(f"Server error ({self.status_code})")


class InterceptorCancelledError(FetchHelperError):
    """An interceptor vetoed the request.

    Attributes:
        phase: Pipeline that issued the cancel signal.
    """

    def __init__(self, phase: InterceptorPhase) -> None:
        self.phase = phase
        when = "before requested" if phase == "before_request" else "after responded"
        super().__init__(f"Fetch was cancelled by interceptor {when}")


class UploadError(FetchHelperError):
    """Upload transport used out of order."""
