"""Metrics collection for the fetch helper."""

from dataclasses import dataclass, field


@dataclass
class FetchMetrics:
    """Counters for fetch and upload operations.

    Owned by a single FetchHelper instance; there is no global registry.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_retry_total: int = 0
    transport_failures_total: dict[str, int] = field(default_factory=dict)
    interceptor_cancellations_total: dict[str, int] = field(default_factory=dict)
    json_parse_failures_total: int = 0
    uploads_total: int = 0
    upload_failures_total: int = 0

    def record_response(self, status_code: int) -> None:
        """Record a response handed to the normalizer.

        Args:
            status_code: HTTP status code.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )

    def record_retry(self) -> None:
        """Record a retry attempt."""
        self.http_retry_total += 1

    def record_transport_failure(self, error: BaseException) -> None:
        """Record a failure that produced no usable response.

        Args:
            error: Exception raised by the transport or retry policy.
        """
        key = type(error).__name__
        self.transport_failures_total[key] = self.transport_failures_total.get(key, 0) + 1

    def record_cancellation(self, phase: str) -> None:
        """Record an interceptor veto.

        Args:
            phase: "before_request" or "after_response".
        """
        self.interceptor_cancellations_total[phase] = (
            self.interceptor_cancellations_total.get(phase, 0) + 1
        )

    def record_parse_failure(self) -> None:
        """Record a response body that was not JSON."""
        self.json_parse_failures_total += 1

    def record_upload(self, *, failed: bool = False) -> None:
        """Record a finished upload."""
        self.uploads_total += 1
        if failed:
            self.upload_failures_total += 1

    def to_dict(self) -> dict[str, int | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "http_requests_total": dict(self.http_requests_total),
            "http_retry_total": self.http_retry_total,
            "transport_failures_total": dict(self.transport_failures_total),
            "interceptor_cancellations_total": dict(
                self.interceptor_cancellations_total
            ),
            "json_parse_failures_total": self.json_parse_failures_total,
            "uploads_total": self.uploads_total,
            "upload_failures_total": self.upload_failures_total,
        }
