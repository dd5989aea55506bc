"""Default-header merging and header redaction for logging."""

from collections.abc import Mapping

from fetch_helper.models import HeadersInput


# Headers that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "x-auth-token",
        "proxy-authorization",
        "set-cookie",
    }
)

REDACTED_VALUE = "[REDACTED]"


def headers_to_dict(headers: HeadersInput | None) -> dict[str, str]:
    """Flatten a header collection into a plain dictionary.

    Accepts mappings, header collections exposing ``items()`` (such as
    ``httpx.Headers``) and iterables of name/value pairs.

    Args:
        headers: Header collection, or None.

    Returns:
        New dictionary of header name to value.
    """
    if headers is None:
        return {}
    if isinstance(headers, Mapping) or hasattr(headers, "items"):
        return {str(key): str(value) for key, value in headers.items()}  # type: ignore[union-attr]
    return {str(key): str(value) for key, value in headers}


def merge_with_default_headers(
    headers: HeadersInput | None,
    default_headers: Mapping[str, str],
) -> dict[str, str]:
    """Merge caller headers over the default headers.

    Header names compare case-insensitively; a caller header replaces any
    default with the same name and keeps the caller's spelling. Neither
    input is mutated.

    Args:
        headers: Caller-supplied headers, or None.
        default_headers: Client-wide default headers.

    Returns:
        New merged dictionary.
    """
    caller = headers_to_dict(headers)
    overridden = {key.lower() for key in caller}

    merged = {
        key: value
        for key, value in default_headers.items()
        if key.lower() not in overridden
    }
    merged.update(caller)
    return merged


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Redact sensitive headers for logging.

    Args:
        headers: Original headers.

    Returns:
        New dictionary with sensitive values replaced by [REDACTED].
    """
    return {
        key: REDACTED_VALUE if is_sensitive_header(key) else value
        for key, value in headers.items()
    }


def is_sensitive_header(header_name: str) -> bool:
    """Check if a header name is sensitive."""
    return header_name.lower() in SENSITIVE_HEADERS
