"""httploop -- HTTP messages and a client with event-driven redirect and retry handling.

The package has two halves. The message model (:class:`Request`,
:class:`Response`, their headers and bodies) is plain data. The client
runs requests over a pluggable transport, either one at a time with
:meth:`Client.send` or many at once with :meth:`Client.send_async`, and
lets listeners steer retries through lifecycle events.

Typical use::

    from httploop import Client, Request

    with Client() as client:
        client.on("error:503", lambda request, response, decision: decision.retry())
        response = client.send(Request("GET", "https://example.org/"))

Modules:
    message / request / response: The HTTP message model.
    status: Status code table.
    headers / urlutil: Header and URL helpers.
    events: Event emitter and retry decisions.
    client: Synchronous and asynchronous engines.
    transport: Network adapters over httpx.
    config / models: Configuration loading and the pydantic config model.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"

from httploop.client import AsyncClient, Client, FailedRequest, PendingRequest, SyncClient  # noqa: E402
from httploop.events import DoRequestResult, EventEmitter, RetryDecision  # noqa: E402
from httploop.exceptions import (  # noqa: E402
    ClientError,
    ClientHttpError,
    HttploopError,
    InvalidStatusError,
    MessageParseError,
)
from httploop.models import ClientConfig  # noqa: E402
from httploop.request import Request  # noqa: E402
from httploop.response import Response  # noqa: E402

__all__ = [
    "AsyncClient",
    "Client",
    "ClientConfig",
    "ClientError",
    "ClientHttpError",
    "DoRequestResult",
    "EventEmitter",
    "FailedRequest",
    "HttploopError",
    "InvalidStatusError",
    "MessageParseError",
    "PendingRequest",
    "Request",
    "Response",
    "RetryDecision",
    "SyncClient",
]
