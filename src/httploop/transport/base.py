"""The contract between the client engines and the network.

A :class:`Transport` executes exactly one request and reports a
:class:`RawResult`: either the raw response (status, header lines, body
stream) or a transport failure (numeric code and message). It knows nothing
about redirects, retries or events; those belong to the client.

A :class:`MultiTransport` runs many transfers at once. Work only happens
inside :meth:`MultiTransport.perform` and :meth:`MultiTransport.select`;
finished transfers are reported through :meth:`MultiTransport.info_read`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from httploop.request import Request

HeaderFunction = Callable[[str], None]
"""Called with every raw response header line as it arrives."""

TransportSettings = dict[str, Any]

KNOWN_SETTINGS = frozenset({"user_agent", "timeout", "nobody", "header_function"})


class TransportErrorCode(enum.IntEnum):
    """Transport failure codes, numerically compatible with libcurl's."""

    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    WEIRD_SERVER_REPLY = 8
    OPERATION_TIMEDOUT = 28
    BAD_FUNCTION_ARGUMENT = 43
    SEND_ERROR = 55
    RECV_ERROR = 56
    BAD_CONTENT_ENCODING = 61


class TransportStatus(enum.IntEnum):
    """Outcome category of one transfer."""

    SUCCESS = 0
    TRANSPORT_ERROR = 1
    HTTP_ERROR = 2


@dataclass
class RawResult:
    """Unparsed outcome of one transfer.

    Attributes:
        status: Outcome category.
        http_code: Response status code (0 on transport failure).
        header_lines: Raw header lines, starting with the status line.
        body: Readable binary stream positioned at the start of the body, or
            ``None`` when no body was received.
        error_code: A :class:`TransportErrorCode` value on transport failure.
        error_message: Human-readable transport error.
    """

    status: TransportStatus
    http_code: int = 0
    header_lines: list[str] = field(default_factory=list)
    body: Optional[IO[bytes]] = None
    error_code: int = 0
    error_message: str = ""

    @classmethod
    def from_error(cls, code: int, message: str) -> RawResult:
        return cls(TransportStatus.TRANSPORT_ERROR, error_code=int(code), error_message=message)

    def detach_body(self) -> Optional[IO[bytes]]:
        """Hand the body stream over to the caller; :meth:`close` will not close it."""
        body, self.body = self.body, None
        return body

    def close(self) -> None:
        if self.body is not None:
            self.body.close()


class Transport:
    """Blocking, single-request transport."""

    def execute(self, request: Request, settings: TransportSettings) -> RawResult:
        """Run *request* to completion.

        Args:
            request: Fully resolved request (absolute URL, final headers).
            settings: Per-request settings; see :data:`KNOWN_SETTINGS`.

        Returns:
            The raw outcome. Transport failures are reported, not raised.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release pooled connections."""


class TransferHandle:
    """Identity of one transfer registered with a :class:`MultiTransport`."""

    _next_id = 0

    def __init__(self) -> None:
        TransferHandle._next_id += 1
        self.id = TransferHandle._next_id
        self.result: Optional[RawResult] = None

    @property
    def done(self) -> bool:
        return self.result is not None

    def __repr__(self) -> str:
        return f"<TransferHandle #{self.id} done={self.done}>"


class MultiTransport:
    """Many concurrent transfers driven by repeated non-blocking steps."""

    def add(self, request: Request, settings: TransportSettings) -> TransferHandle:
        """Register a transfer; nothing is sent until :meth:`perform`."""
        raise NotImplementedError

    def perform(self) -> bool:
        """Advance every transfer without blocking.

        Returns:
            ``True`` if another call would make immediate progress.
        """
        raise NotImplementedError

    def info_read(self) -> Optional[TransferHandle]:
        """Pop the next finished transfer, or ``None`` when there is none."""
        raise NotImplementedError

    def select(self, timeout: float) -> int:
        """Block up to *timeout* seconds until some transfer finishes.

        Returns:
            The number of transfers that finished while waiting.
        """
        raise NotImplementedError

    def remove(self, handle: TransferHandle) -> None:
        """Abort *handle* if still running and release its resources."""
        raise NotImplementedError

    @property
    def running(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        """Abort every transfer and release all resources."""
