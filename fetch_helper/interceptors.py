"""Before-request and after-response interceptor pipelines.

Interceptors run synchronously in registration order. The first one that
returns ``InterceptorSignal.CANCEL``, or raises, stops the pipeline and the
cancel signal is reported to the caller. Returning None means continue.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

import structlog

from fetch_helper.models import RequestInit


logger = structlog.get_logger()


class InterceptorSignal(str, Enum):
    """Outcome of an interceptor or of a whole pipeline run."""

    CONTINUE = "continue"
    CANCEL = "cancel"


class RequestInterceptor(Protocol):
    """Called before a request is issued."""

    def __call__(self) -> InterceptorSignal | None:
        """Return CANCEL to stop the request."""
        ...


class ResponseInterceptor(Protocol):
    """Called after a response, or a transport failure, is obtained."""

    def __call__(
        self,
        response: Any,
        json_data: Any,
        request_init: RequestInit | None,
    ) -> InterceptorSignal | None:
        """Inspect the outcome and return CANCEL to discard it.

        Args:
            response: Response object, or the exception on transport failure.
            json_data: Parsed JSON body, or None when unavailable.
            request_init: Request options when the body was not JSON, else None.
        """
        ...


InterceptorT = TypeVar("InterceptorT")


class _Registration(Generic[InterceptorT]):
    """One registration of an interceptor; identity keys removal."""

    __slots__ = ("interceptor",)

    def __init__(self, interceptor: InterceptorT) -> None:
        self.interceptor = interceptor


class InterceptorHandle:
    """Removes the registration it was issued for when called.

    Calling a handle more than once has no further effect.
    """

    def __init__(self, remove: Callable[[], None]) -> None:
        self._remove: Callable[[], None] | None = remove

    @property
    def active(self) -> bool:
        """Whether the interceptor is still registered through this handle."""
        return self._remove is not None

    def __call__(self) -> None:
        if self._remove is None:
            return
        remove, self._remove = self._remove, None
        remove()


class InterceptorPipeline(Generic[InterceptorT]):
    """Ordered, removable list of interceptors."""

    def __init__(self, phase: str) -> None:
        self._phase = phase
        self._registrations: list[_Registration[InterceptorT]] = []
        self._log = logger.bind(component="fetch_helper", phase=phase)

    @property
    def phase(self) -> str:
        """Pipeline phase name."""
        return self._phase

    def __len__(self) -> int:
        return len(self._registrations)

    @property
    def interceptors(self) -> tuple[InterceptorT, ...]:
        """Snapshot of registered interceptors in order."""
        return tuple(reg.interceptor for reg in self._registrations)

    def add(self, interceptor: InterceptorT) -> InterceptorHandle:
        """Register an interceptor at the end of the pipeline.

        Args:
            interceptor: Callable to register.

        Returns:
            Handle that removes this registration.
        """
        registration = _Registration(interceptor)
        self._registrations.append(registration)
        return InterceptorHandle(lambda: self._discard(registration))

    def _discard(self, registration: _Registration[InterceptorT]) -> None:
        self._registrations = [
            reg for reg in self._registrations if reg is not registration
        ]

    def run(self, *args: Any) -> InterceptorSignal:
        """Invoke interceptors in order until one cancels.

        The registration list is snapshotted first, so handles invoked by an
        interceptor only affect later runs.

        Args:
            *args: Arguments passed to every interceptor.

        Returns:
            CANCEL if an interceptor cancelled or raised, else CONTINUE.
        """
        for registration in list(self._registrations):
            interceptor = registration.interceptor
            try:
                result = interceptor(*args)  # type: ignore[operator]
            except Exception as exc:  # noqa: BLE001
                self._log.error(
                    "interceptor_failed",
                    interceptor=_name_of(interceptor),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return InterceptorSignal.CANCEL

            if result == InterceptorSignal.CANCEL:
                self._log.error(
                    "interceptor_cancelled",
                    interceptor=_name_of(interceptor),
                )
                return InterceptorSignal.CANCEL

            if result is False:
                self._log.warning(
                    "interceptor_returned_bool",
                    interceptor=_name_of(interceptor),
                    hint="return InterceptorSignal.CANCEL to stop the request",
                )

        return InterceptorSignal.CONTINUE


def _name_of(interceptor: object) -> str:
    return getattr(interceptor, "__qualname__", None) or repr(interceptor)
