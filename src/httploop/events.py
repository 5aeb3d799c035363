"""Lifecycle events emitted by the client, and the emitter that dispatches them.

This module provides three core components:

* :class:`EventEmitter` -- Per-event listener lists. Listeners run in
  ascending ``priority`` order, ties in registration order. Exceptions
  raised by a listener propagate to whoever emitted the event.
* :class:`RetryDecision` -- The mutable vote passed to ``error``,
  ``error:<code>`` and ``exception`` listeners. Any listener may call
  :meth:`RetryDecision.retry`; once cast, a vote cannot be withdrawn.
* :class:`DoRequestResult` -- The out-parameter of the ``doRequest`` event.
  A listener that fills in ``response`` replaces the transport for that
  request.

Listener signatures::

    beforeRequest(request)
    afterRequest(request, response)
    error(request, response, decision)
    error:<code>(request, response, decision)
    exception(request, error, decision)
    doRequest(request, result)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from httploop.request import Request
    from httploop.response import Response

BEFORE_REQUEST = "beforeRequest"
AFTER_REQUEST = "afterRequest"
ERROR = "error"
EXCEPTION = "exception"
DO_REQUEST = "doRequest"

DEFAULT_PRIORITY = 100

Listener = Callable[..., Any]


def error_event(status: int) -> str:
    """Name of the status-specific error event, e.g. ``"error:404"``."""
    return f"{ERROR}:{status}"


class RetryDecision:
    """Retry vote shared by every listener of one ``error`` or ``exception`` round.

    Args:
        retry_count: How many times this logical request was already retried.
    """

    __slots__ = ("_retry_count", "_should_retry")

    def __init__(self, retry_count: int = 0) -> None:
        self._retry_count = retry_count
        self._should_retry = False

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def should_retry(self) -> bool:
        """``True`` once any listener voted to retry."""
        return self._should_retry

    def retry(self) -> None:
        self._should_retry = True

    def __repr__(self) -> str:
        return f"RetryDecision(retry_count={self._retry_count}, should_retry={self._should_retry})"


@dataclass
class DoRequestResult:
    """Out-parameter of the ``doRequest`` event.

    Attributes:
        response: Set by a listener to short-circuit the transport.
    """

    response: Optional[Response] = None


class EventEmitter:
    """Minimal synchronous event emitter with listener priorities."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        # event -> [(priority, sequence, listener)]
        self._listeners: dict[str, list[tuple[int, int, Listener]]] = {}
        self._sequence = 0

    def on(self, event: str, listener: Listener, priority: int = DEFAULT_PRIORITY) -> None:
        """Register *listener* for *event*.

        Args:
            event: Event name, e.g. ``"beforeRequest"`` or ``"error:404"``.
            listener: Callable invoked with the event's arguments.
            priority: Lower values run first. Listeners with equal priority
                run in registration order.
        """
        self._sequence += 1
        entries = self._listeners.setdefault(event, [])
        entries.append((priority, self._sequence, listener))
        entries.sort(key=lambda entry: (entry[0], entry[1]))

    def remove_listener(self, event: str, listener: Listener) -> bool:
        """Unregister *listener*. Returns ``False`` if it was not registered."""
        entries = self._listeners.get(event, [])
        for index, (_, _, registered) in enumerate(entries):
            if registered is listener:
                del entries[index]
                return True
        return False

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listeners(self, event: str) -> list[Listener]:
        return [listener for _, _, listener in self._listeners.get(event, [])]

    def emit(self, event: str, *args: Any) -> None:
        """Call every listener of *event* with *args*, in priority order."""
        for listener in self.listeners(event):
            listener(*args)

    def emit_error(self, request: Request, response: Response, decision: RetryDecision) -> None:
        """Emit ``error`` followed by ``error:<status>`` with the same decision."""
        self.emit(ERROR, request, response, decision)
        self.emit(error_event(response.status), request, response, decision)
