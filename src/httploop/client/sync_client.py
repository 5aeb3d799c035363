"""Synchronous request execution: redirects, retries and error events.

:meth:`SyncClient.send` runs one logical request to completion::

    beforeRequest
    loop:
        do_request  --(ClientError)-->  exception  --(no retry)--> raise
        301/302/307/308 with Location, below max_redirects  --> clone, follow
        status >= 400  -->  error, error:<code>
        repeat while a listener voted retry or a redirect was followed
    afterRequest
    raise ClientHttpError if throw_exceptions and status >= 400

Retries re-send the *same* request object; redirects send a clone with the
resolved ``Location``, so the caller's request is never modified. The
engine does not cap retries: a listener that always votes retry loops
forever, which leaves backoff policy entirely to listeners.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from httploop.client.base import BaseClient
from httploop.events import (
    AFTER_REQUEST,
    BEFORE_REQUEST,
    DO_REQUEST,
    EXCEPTION,
    DoRequestResult,
    RetryDecision,
)
from httploop.exceptions import ClientError, ClientHttpError
from httploop.request import Request
from httploop.response import Response
from httploop.status import REDIRECT_CODES
from httploop.transport.base import Transport, TransportStatus
from httploop.transport.httpx_transport import HttpxTransport
from httploop.urlutil import resolve

logger = logging.getLogger(__name__)


class SyncClient(BaseClient):
    """Blocking client.

    Args:
        transport: The single-request transport. Defaults to an
            :class:`~httploop.transport.HttpxTransport` built from the
            client config.
        **kwargs: Forwarded to :class:`~httploop.client.base.BaseClient`.

    Example::

        with SyncClient() as client:
            response = client.send(Request("GET", "https://example.org/"))
    """

    def __init__(self, *, transport: Optional[Transport] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.transport = transport if transport is not None else HttpxTransport(
            max_memory_size=self.config.max_memory_size,
            verify=self.config.verify_ssl,
        )

    def close(self) -> None:
        self.transport.close()
        super().close()

    def send(self, request: Request) -> Response:
        """Send *request*, following redirects and honouring retry votes.

        Args:
            request: The request to send. It is never modified by redirects.

        Returns:
            The final response. HTTP error statuses are returned, not
            raised, unless ``throw_exceptions`` is enabled.

        Raises:
            ClientError: On a transport failure that no ``exception``
                listener retried.
            ClientHttpError: If ``throw_exceptions`` is enabled and the final
                status is >= 400.
        """
        self.emit(BEFORE_REQUEST, request)

        retry_count = 0
        redirects = 0
        max_redirects = self.config.max_redirects

        while True:
            decision = RetryDecision(retry_count)
            do_redirect = False

            try:
                response = self.do_request(request)
                code = response.status

                if code in REDIRECT_CODES and redirects < max_redirects:
                    location = response.get_header("Location")
                    if location is None:
                        logger.warning(
                            "%d response from %s has no Location header; not following",
                            code, request.url,
                        )
                    else:
                        old_url = request.url
                        request = request.clone()
                        request.url = resolve(old_url, location)
                        redirects += 1
                        do_redirect = True
                        logger.debug(
                            "Redirect %d/%d: %d %s -> %s",
                            redirects, max_redirects, code, old_url, request.url,
                        )
                elif code >= 400:
                    self.emit_error(request, response, decision)

            except ClientError as exc:
                self.emit(EXCEPTION, request, exc, decision)
                # No listener dealt with the failure.
                if not decision.should_retry:
                    raise

            if decision.should_retry:
                retry_count += 1
                logger.debug("Retrying %s %s (retry %d)", request.method, request.url, retry_count)
            elif not do_redirect:
                break

        self.emit(AFTER_REQUEST, request, response)

        if self.throw_exceptions and response.status >= 400:
            raise ClientHttpError(response)
        return response

    def do_request(self, request: Request) -> Response:
        """Execute exactly one request, without redirects or events other than ``doRequest``.

        A ``doRequest`` listener that sets ``result.response`` short-circuits
        the transport.

        Raises:
            ClientError: On a transport failure.
        """
        result = DoRequestResult()
        self.emit(DO_REQUEST, request, result)
        if result.response is not None:
            return result.response

        raw = self.transport.execute(request, self.create_settings(request))
        if raw.status == TransportStatus.TRANSPORT_ERROR:
            raise self.transport_error(raw)
        return self.parse_result(raw)
