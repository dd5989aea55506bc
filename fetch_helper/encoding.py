"""URL-encoding helpers for form bodies and query strings."""

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote


# Characters left unescaped besides letters, digits and "-_.~"
_COMPONENT_SAFE = "!*'()"


def encode_component(value: Any) -> str:
    """Percent-encode a single URI component.

    Booleans render as ``true``/``false`` and None as ``null`` so that
    encoded bodies match what browser clients send.

    Args:
        value: Value to encode.

    Returns:
        Percent-encoded string.
    """
    return quote(_stringify(value), safe=_COMPONENT_SAFE)


def json_to_form(json: Mapping[str, Any] | None = None) -> str:
    """Encode a flat mapping as an application/x-www-form-urlencoded body.

    Every key is emitted, including those with falsy values.

    Args:
        json: Flat mapping of field name to value.

    Returns:
        ``key=value`` pairs joined by ``&``.
    """
    if not json:
        return ""
    return "&".join(
        f"{encode_component(key)}={encode_component(value)}"
        for key, value in json.items()
    )


def json_to_query_string(json: Mapping[str, Any] | None = None) -> str:
    """Encode a flat mapping as a query string.

    Lists and tuples explode into repeated ``key=value`` pairs. Other values
    are kept when truthy or exactly ``0``; None, empty strings and False are
    dropped.

    Args:
        json: Flat mapping of parameter name to value.

    Returns:
        Query string without the leading ``?``.
    """
    if not json:
        return ""

    pairs: list[str] = []
    for key, value in json.items():
        if isinstance(value, list | tuple):
            pairs.extend(f"{key}={encode_component(item)}" for item in value)
        elif _is_present(value):
            pairs.append(f"{key}={encode_component(value)}")
    return "&".join(pairs)


def _is_present(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return bool(value) or value == 0


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)
