"""Asynchronous request execution over a multiplexed transport.

Everything happens on the caller's thread: :meth:`AsyncClient.send_async`
registers a transfer, and transfers only move forward inside
:meth:`AsyncClient.poll` and :meth:`AsyncClient.wait`. Completion order
across requests is whatever order the transport finishes them in.

Failures cannot be raised into the caller here. They are reported through
the ``exception`` / ``error`` events and the per-request error callback;
a failure with no error callback is logged at WARNING level.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from httploop.client.base import BaseClient
from httploop.events import AFTER_REQUEST, BEFORE_REQUEST, EXCEPTION, RetryDecision
from httploop.exceptions import ClientError
from httploop.request import Request
from httploop.response import Response
from httploop.transport.base import MultiTransport, RawResult, TransferHandle, TransportStatus
from httploop.transport.multi import AsyncioMultiTransport

logger = logging.getLogger(__name__)

TRANSPORT_FAILURE = "transport"
HTTP_FAILURE = "http"


@dataclass
class FailedRequest:
    """What an error callback receives.

    Attributes:
        request: The request that failed.
        kind: ``"transport"`` or ``"http"``.
        response: The error response (``kind == "http"`` only).
        http_code: The error status (``kind == "http"`` only), else 0.
        error: The transport error (``kind == "transport"`` only).
    """

    request: Request
    kind: str
    response: Optional[Response] = None
    http_code: int = 0
    error: Optional[ClientError] = None


SuccessCallback = Callable[[Response], None]
ErrorCallback = Callable[[FailedRequest], None]


@dataclass(eq=False)
class PendingRequest:
    """An in-flight request. The same object survives retries; only its handle changes."""

    request: Request
    on_success: Optional[SuccessCallback] = None
    on_error: Optional[ErrorCallback] = None
    retry_count: int = 0
    handle: Optional[TransferHandle] = None


class AsyncClient(BaseClient):
    """Non-blocking client built on a :class:`~httploop.transport.MultiTransport`.

    Args:
        multi_transport: The multiplexed transport. Defaults to an
            :class:`~httploop.transport.AsyncioMultiTransport` built from
            the client config.
        **kwargs: Forwarded to :class:`~httploop.client.base.BaseClient`.

    Example::

        client = AsyncClient()
        client.send_async(Request("GET", url), on_success=handle_response)
        client.wait()
    """

    def __init__(self, *, multi_transport: Optional[MultiTransport] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.multi_transport = multi_transport if multi_transport is not None else AsyncioMultiTransport(
            max_memory_size=self.config.max_memory_size,
            verify=self.config.verify_ssl,
        )
        # handle id -> entry
        self._pending: dict[int, PendingRequest] = {}

    @property
    def pending(self) -> list[PendingRequest]:
        return list(self._pending.values())

    def close(self) -> None:
        for entry in self.pending:
            self.cancel(entry)
        self.multi_transport.close()
        super().close()

    # ------------------------------------------------------------------ #
    # Submission
    # ------------------------------------------------------------------ #

    def send_async(
        self,
        request: Request,
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> PendingRequest:
        """Start sending *request* and return immediately.

        Emits ``beforeRequest``, registers the transfer and polls once, so a
        fast response may already have been delivered on return.

        Args:
            request: The request to send. Redirects are not followed.
            on_success: Called with the :class:`Response` when the final
                status is below 400.
            on_error: Called with a :class:`FailedRequest` on a transport
                failure or HTTP error that no listener retried.

        Returns:
            The pending entry, usable with :meth:`cancel`.
        """
        self.emit(BEFORE_REQUEST, request)
        entry = PendingRequest(request, on_success, on_error)
        self._submit(entry)
        self.poll()
        return entry

    def _submit(self, entry: PendingRequest) -> None:
        entry.handle = self.multi_transport.add(entry.request, self.create_settings(entry.request))
        self._pending[entry.handle.id] = entry

    def cancel(self, entry: PendingRequest) -> bool:
        """Abort *entry* and release its transfer. No callbacks or events fire.

        Returns:
            ``False`` if *entry* was no longer pending.
        """
        handle = entry.handle
        if handle is None or self._pending.get(handle.id) is not entry:
            return False
        del self._pending[handle.id]
        self.multi_transport.remove(handle)
        logger.debug("Cancelled %s %s", entry.request.method, entry.request.url)
        return True

    # ------------------------------------------------------------------ #
    # Driving
    # ------------------------------------------------------------------ #

    def poll(self) -> bool:
        """Advance all transfers without blocking and dispatch completions.

        Returns:
            ``True`` while requests are still pending.
        """
        if not self._pending:
            return False

        multi = self.multi_transport
        while multi.perform():
            pass

        while True:
            handle = multi.info_read()
            if handle is None:
                break
            entry = self._pending.pop(handle.id, None)
            result = handle.result
            if entry is None or result is None:
                multi.remove(handle)
                continue
            response = None if result.status == TransportStatus.TRANSPORT_ERROR else self.parse_result(result)
            multi.remove(handle)
            self._complete(entry, result, response)

        return bool(self._pending)

    def _complete(self, entry: PendingRequest, result: RawResult, response: Optional[Response]) -> None:
        request = entry.request
        decision = RetryDecision(entry.retry_count)

        if response is None:
            error = self.transport_error(result)
            self.emit(EXCEPTION, request, error, decision)
            failure = FailedRequest(request, TRANSPORT_FAILURE, error=error)
        elif response.status >= 400:
            self.emit_error(request, response, decision)
            failure = FailedRequest(request, HTTP_FAILURE, response=response, http_code=response.status)
        else:
            self.emit(AFTER_REQUEST, request, response)
            if entry.on_success is not None:
                entry.on_success(response)
            return

        if decision.should_retry:
            entry.retry_count += 1
            logger.debug("Retrying %s %s (retry %d)", request.method, request.url, entry.retry_count)
            self._submit(entry)
        elif entry.on_error is not None:
            entry.on_error(failure)
        else:
            logger.warning(
                "Unhandled %s failure for %s %s: %s",
                failure.kind, request.method, request.url,
                failure.error.message if failure.error is not None else failure.http_code,
            )

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every pending request has completed.

        Args:
            timeout: Give up after this many seconds. ``None`` waits forever.

        Returns:
            ``True`` if nothing is pending any more, ``False`` on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._pending:
            round_timeout = self.config.select_timeout
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                round_timeout = min(round_timeout, remaining)
            self.multi_transport.select(round_timeout)
            if not self.poll():
                break
        return not self._pending
