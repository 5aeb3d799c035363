"""HTTP client engines for httploop.

Classes:
    :class:`SyncClient` -- ``send()``: redirects, retries, error events.
    :class:`AsyncClient` -- ``send_async()`` / ``poll()`` / ``wait()`` over a
    multiplexed transport.
    :class:`Client` -- both engines sharing one set of listeners and settings.

Example::

    from httploop.client import Client
    from httploop.request import Request

    with Client() as client:
        client.on("beforeRequest", lambda request: request.set_header("X-Trace", "1"))
        response = client.send(Request("GET", "https://example.org/"))
"""

from httploop.client.async_client import AsyncClient, FailedRequest, PendingRequest
from httploop.client.base import BaseClient
from httploop.client.sync_client import SyncClient


class Client(SyncClient, AsyncClient):
    """Synchronous and asynchronous engines on one event emitter.

    Accepts every keyword argument of :class:`SyncClient` and
    :class:`AsyncClient` (``config``, ``transport``, ``multi_transport``).
    """


__all__ = ["BaseClient", "Client", "SyncClient", "AsyncClient", "FailedRequest", "PendingRequest"]
