"""Async HTTP fetch helper.

Enhances a raw request transport while keeping its call shape:
- Implicit JSON decoding into ``(data, status)`` tuples
- Default headers merged into every request
- Before-request and after-response interceptors
- Retry of GET requests on server errors
- Progress-reporting file uploads
- Form body and query-string encoding helpers
"""

from fetch_helper.client import FetchHelper
from fetch_helper.config import FetchHelperConfig, FetchHelperSettings, get_settings
from fetch_helper.constants import FORM_URL_ENCODED, NO_STATUS
from fetch_helper.encoding import json_to_form, json_to_query_string
from fetch_helper.errors import (
    FetchHelperError,
    InterceptorCancelledError,
    ServerError,
    UploadError,
)
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
    ProgressEvent,
    RequestInit,
    ResponseLike,
    UploadCompletion,
    UploadOptions,
)
from fetch_helper.normalizer import ResponseNormalizer
from fetch_helper.observability import (
    configure_logging,
    current_request_id,
    request_context,
)
from fetch_helper.retry import RetryingTransport, RetryPolicy
from fetch_helper.transport import HttpResponse, HttpxTransport
from fetch_helper.upload import HttpxUploadTransport, UploadChannel, UploadTransport


__all__ = [
    # Client
    "FetchHelper",
    # Config
    "FetchHelperConfig",
    "FetchHelperSettings",
    "get_settings",
    # Constants
    "FORM_URL_ENCODED",
    "NO_STATUS",
    # Encoding
    "json_to_form",
    "json_to_query_string",
    # Errors
    "FetchHelperError",
    "InterceptorCancelledError",
    "ServerError",
    "UploadError",
    # Headers
    "merge_with_default_headers",
    "redact_headers",
    # Interceptors
    "InterceptorHandle",
    "InterceptorPipeline",
    "InterceptorSignal",
    "RequestInterceptor",
    "ResponseInterceptor",
    # Metrics
    "FetchMetrics",
    # Models
    "FetchResult",
    "FetchTransport",
    "ProgressEvent",
    "RequestInit",
    "ResponseLike",
    "UploadCompletion",
    "UploadOptions",
    # Pipeline stages
    "ResponseNormalizer",
    "RetryPolicy",
    "RetryingTransport",
    # Transports
    "HttpResponse",
    "HttpxTransport",
    "HttpxUploadTransport",
    "UploadChannel",
    "UploadTransport",
    # Observability
    "configure_logging",
    "current_request_id",
    "request_context",
]
