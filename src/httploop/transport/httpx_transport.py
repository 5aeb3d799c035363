"""Blocking transport over a single persistent :class:`httpx.Client`.

The helpers at module level (request building, error mapping, header line
rendering, body spooling) are shared with the multiplexed transport in
:mod:`httploop.transport.multi`.
"""

from __future__ import annotations

import logging
import tempfile
from typing import IO, TYPE_CHECKING, Any, AsyncIterator, Iterator, Optional, Union

import httpx

from httploop.message import BytesBody, EmptyBody, StreamBody
from httploop.models import DEFAULT_MAX_MEMORY_SIZE
from httploop.transport.base import (
    RawResult,
    Transport,
    TransportErrorCode,
    TransportSettings,
    TransportStatus,
)

if TYPE_CHECKING:
    from httploop.request import Request

logger = logging.getLogger(__name__)

_SUPPORTED_SCHEMES = ("http", "https")
_RESOLVE_MARKERS = ("Name or service not known", "getaddrinfo", "nodename nor servname")
_ENCODED_BODY_HEADERS = ("content-encoding", "content-length")


# ------------------------------------------------------------------ #
# Shared helpers
# ------------------------------------------------------------------ #


def error_code_for(exc: Exception) -> TransportErrorCode:
    """Map an httpx exception onto a :class:`TransportErrorCode`."""
    if isinstance(exc, httpx.UnsupportedProtocol):
        return TransportErrorCode.UNSUPPORTED_PROTOCOL
    if isinstance(exc, httpx.InvalidURL):
        return TransportErrorCode.URL_MALFORMAT
    if isinstance(exc, httpx.ProxyError):
        return TransportErrorCode.COULDNT_RESOLVE_PROXY
    if isinstance(exc, httpx.TimeoutException):
        return TransportErrorCode.OPERATION_TIMEDOUT
    if isinstance(exc, httpx.ConnectError):
        message = str(exc)
        if any(marker in message for marker in _RESOLVE_MARKERS):
            return TransportErrorCode.COULDNT_RESOLVE_HOST
        return TransportErrorCode.COULDNT_CONNECT
    if isinstance(exc, httpx.WriteError):
        return TransportErrorCode.SEND_ERROR
    if isinstance(exc, httpx.ReadError):
        return TransportErrorCode.RECV_ERROR
    if isinstance(exc, httpx.DecodingError):
        return TransportErrorCode.BAD_CONTENT_ENCODING
    if isinstance(exc, httpx.ProtocolError):
        return TransportErrorCode.WEIRD_SERVER_REPLY
    return TransportErrorCode.BAD_FUNCTION_ARGUMENT


def error_result(exc: Exception) -> RawResult:
    code = error_code_for(exc)
    message = str(exc) or exc.__class__.__name__
    logger.debug("Transport error %d (%s): %s", code, code.name, message)
    return RawResult.from_error(code, message)


def check_scheme(url: str) -> Optional[RawResult]:
    """Return an error result if *url* is not an http(s) URL."""
    scheme = url.split(":", 1)[0].lower() if ":" in url else ""
    if scheme in _SUPPORTED_SCHEMES:
        return None
    return RawResult.from_error(
        TransportErrorCode.UNSUPPORTED_PROTOCOL,
        f"Protocol {scheme or url!r} not supported",
    )


def request_headers(request: Request, settings: TransportSettings) -> list[tuple[str, str]]:
    headers = [
        (name, value)
        for name, values in request.headers.items()
        for value in values
    ]
    user_agent = settings.get("user_agent")
    if user_agent and not request.has_header("User-Agent"):
        headers.append(("User-Agent", user_agent))
    return headers


def request_content(request: Request, *, asynchronous: bool = False) -> Any:
    """Return the httpx ``content`` argument for *request*.

    ``GET`` and ``HEAD`` never carry a body. Stream bodies are sent as a
    chunk iterator, so they are never buffered whole; the caller adds
    ``Content-Length`` when the size is known.
    """
    if request.method in ("GET", "HEAD"):
        return None
    body = request.body
    if isinstance(body, EmptyBody):
        return None
    if isinstance(body, BytesBody):
        return body.data
    if isinstance(body, StreamBody):
        if asynchronous:
            return _aiter_chunks(body.iter_chunks())
        return body.iter_chunks()
    return body.read()


async def _aiter_chunks(chunks: Iterator[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def build_request(
    client: Union[httpx.Client, httpx.AsyncClient],
    request: Request,
    settings: TransportSettings,
) -> httpx.Request:
    """Translate *request* into an :class:`httpx.Request` for *client*."""
    headers = request_headers(request, settings)
    content = request_content(request, asynchronous=isinstance(client, httpx.AsyncClient))
    if isinstance(request.body, StreamBody) and content is not None and not request.has_header("Content-Length"):
        size = request.body.size
        if size is not None:
            headers.append(("Content-Length", str(size)))
    return client.build_request(
        request.method,
        request.url,
        headers=headers,
        content=content,
        timeout=settings.get("timeout"),
    )


def header_lines(response: httpx.Response) -> list[str]:
    """Render the status line and headers of *response* as raw lines."""
    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}".rstrip()]
    for name, value in response.headers.raw:
        lines.append(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
    return lines


def notify_headers(lines: list[str], settings: TransportSettings) -> None:
    callback = settings.get("header_function")
    if callback is not None:
        for line in lines:
            callback(line)


def new_sink(max_memory_size: int) -> IO[bytes]:
    """Return a body sink kept in memory up to *max_memory_size* bytes."""
    if max_memory_size <= 0:
        return tempfile.TemporaryFile()
    return tempfile.SpooledTemporaryFile(max_size=max_memory_size)


def decoded_header_lines(lines: list[str]) -> list[str]:
    """Drop the headers that describe an encoded body from *lines*."""
    return lines[:1] + [
        line for line in lines[1:]
        if line.partition(":")[0].strip().lower() not in _ENCODED_BODY_HEADERS
    ]


def success_result(response: httpx.Response, lines: list[str], sink: Optional[IO[bytes]]) -> RawResult:
    """Build the result of a completed transfer.

    When httpx decoded a compressed body, the spooled size differs from the
    bytes received. ``Content-Encoding`` and ``Content-Length`` describe the
    encoded body and are left out of the result.
    """
    if sink is not None:
        if "Content-Encoding" in response.headers and sink.tell() != response.num_bytes_downloaded:
            lines = decoded_header_lines(lines)
        sink.seek(0)
    code = response.status_code
    return RawResult(
        TransportStatus.HTTP_ERROR if code >= 400 else TransportStatus.SUCCESS,
        http_code=code,
        header_lines=lines,
        body=sink,
    )


# ------------------------------------------------------------------ #
# Transport
# ------------------------------------------------------------------ #


class HttpxTransport(Transport):
    """Run requests one at a time over one reused :class:`httpx.Client`.

    The client is created lazily and kept for the life of the transport so
    sequential requests share pooled connections. It never follows
    redirects and does not add ``Accept-Encoding``; every other per-request
    setting is passed explicitly on each call.

    Args:
        max_memory_size: Response bodies up to this size stay in memory;
            larger ones spill to a temporary file.
        verify: Verify TLS certificates.
        http_transport: Optional httpx transport (e.g.
            :class:`httpx.MockTransport`) used instead of the network.
    """

    def __init__(
        self,
        *,
        max_memory_size: int = DEFAULT_MAX_MEMORY_SIZE,
        verify: bool = True,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.max_memory_size = max_memory_size
        self._verify = verify
        self._http_transport = http_transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                verify=self._verify,
                follow_redirects=False,
                transport=self._http_transport,
            )
            del self._client.headers["Accept-Encoding"]
        return self._client

    def execute(self, request: Request, settings: TransportSettings) -> RawResult:
        try:
            return self._execute(request, settings)
        except Exception as exc:
            logger.debug("Transfer of %s %s failed", request.method, request.url, exc_info=True)
            return RawResult.from_error(
                TransportErrorCode.BAD_FUNCTION_ARGUMENT, str(exc) or exc.__class__.__name__
            )

    def _execute(self, request: Request, settings: TransportSettings) -> RawResult:
        unsupported = check_scheme(request.url)
        if unsupported is not None:
            return unsupported

        client = self._get_client()
        try:
            http_request = build_request(client, request, settings)
            response = client.send(http_request, stream=True)
        except (httpx.TransportError, httpx.InvalidURL) as exc:
            return error_result(exc)

        sink: Optional[IO[bytes]] = None
        try:
            lines = header_lines(response)
            notify_headers(lines, settings)
            if not settings.get("nobody"):
                sink = new_sink(self.max_memory_size)
                for chunk in response.iter_bytes():
                    sink.write(chunk)
        except (httpx.TransportError, httpx.DecodingError) as exc:
            if sink is not None:
                sink.close()
            return error_result(exc)
        except Exception:
            if sink is not None:
                sink.close()
            raise
        finally:
            response.close()

        return success_result(response, lines, sink)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
