"""Logging setup and per-call log context for the fetch helper.

Every ``fetch`` and ``upload_file`` call runs inside ``request_context``, so
all events it emits (retry attempts, interceptor vetoes, parse warnings)
carry the same ``request_id`` once ``merge_contextvars`` is in the processor
chain. ``configure_logging`` installs such a chain for applications that do
not configure structlog themselves.
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

import structlog


REQUEST_ID_KEY = "request_id"


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Route structlog events from the helper to ``output``.

    Args:
        level: Minimum level; helper request tracing is emitted at DEBUG.
        output: Output stream (default: stderr).
        json_format: JSON lines when True, plain console text otherwise.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=output, level=level)


def current_request_id() -> str | None:
    """Request id bound for the running call, if any."""
    value = structlog.contextvars.get_contextvars().get(REQUEST_ID_KEY)
    return str(value) if value is not None else None


@contextmanager
def request_context(request_id: str | None = None) -> Iterator[str]:
    """Bind a request id to log events emitted inside the block.

    An id already bound by the caller (for example from an inbound request)
    is kept, so nested helper calls log under the outer id. The previous
    binding is restored on exit.

    Args:
        request_id: Explicit id; a new UUID4 is generated when omitted.

    Yields:
        The request id in effect inside the block.
    """
    existing = current_request_id()
    if request_id is None and existing is not None:
        yield existing
        return

    request_id = request_id or str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(**{REQUEST_ID_KEY: request_id}):
        yield request_id
