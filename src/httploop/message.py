"""HTTP message model shared by :class:`~httploop.request.Request` and
:class:`~httploop.response.Response`.

A message carries three things:

* **Headers** -- case-insensitive, multi-valued, insertion ordered. The
  original casing of each name is kept for serialization; lookups go
  through the lowercased name.
* **Body** -- one of the :class:`Body` variants below. Whatever the caller
  passes (``None``, ``str``, ``bytes``, a binary file object or a writer
  callable) is normalized by :func:`make_body` so the rest of the package
  only deals with one uniform interface.
* **Protocol version** -- a plain string, ``"1.1"`` by default.
"""

from __future__ import annotations

import io
import os
import re
from dataclasses import dataclass, field
from typing import IO, Any, BinaryIO, Callable, Iterable, Iterator, Mapping, Optional, Union

from httploop.exceptions import MessageParseError

DEFAULT_CHUNK_SIZE = 64 * 1024

BodyWriter = Callable[[BinaryIO], None]
"""A lazy body producer: called with a writable binary stream."""

HeaderValue = Union[str, Iterable[str]]
HeaderInput = Mapping[str, HeaderValue]


# ------------------------------------------------------------------ #
# Body variants
# ------------------------------------------------------------------ #


class Body:
    """Common interface of every body variant."""

    def read(self, limit: Optional[int] = None) -> bytes:
        """Read the body fully (or at most *limit* bytes)."""
        raise NotImplementedError

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks without buffering it whole where possible."""
        raise NotImplementedError

    def as_stream(self) -> BinaryIO:
        """Return a readable binary stream positioned at the start of the body."""
        return io.BytesIO(self.read())

    @property
    def size(self) -> Optional[int]:
        """Remaining size in bytes, or ``None`` when it cannot be known upfront."""
        return None


@dataclass(frozen=True)
class EmptyBody(Body):
    """No body at all."""

    def read(self, limit: Optional[int] = None) -> bytes:
        return b""

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        return iter(())

    @property
    def size(self) -> Optional[int]:
        return 0


@dataclass(frozen=True)
class BytesBody(Body):
    """An in-memory body."""

    data: bytes

    def read(self, limit: Optional[int] = None) -> bytes:
        return self.data if limit is None else self.data[:limit]

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        for start in range(0, len(self.data), chunk_size):
            yield self.data[start:start + chunk_size]

    @property
    def size(self) -> Optional[int]:
        return len(self.data)


@dataclass
class StreamBody(Body):
    """A body backed by a binary file-like object.

    The stream is consumed as it is read; unless it is seekable and the
    caller rewinds it, it can only be read once.
    """

    stream: IO[Any]

    def read(self, limit: Optional[int] = None) -> bytes:
        data = self.stream.read() if limit is None else self.stream.read(limit)
        return _to_bytes(data)

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        while True:
            chunk = self.stream.read(chunk_size)
            if not chunk:
                return
            yield _to_bytes(chunk)

    def as_stream(self) -> BinaryIO:
        return self.stream  # type: ignore[return-value]

    @property
    def size(self) -> Optional[int]:
        stream = self.stream
        try:
            if stream.seekable():
                position = stream.tell()
                end = stream.seek(0, os.SEEK_END)
                stream.seek(position)
                return end - position
        except (AttributeError, OSError, ValueError):
            pass
        try:
            return os.fstat(stream.fileno()).st_size
        except (AttributeError, OSError, ValueError, io.UnsupportedOperation):
            return None


@dataclass(frozen=True)
class CallbackBody(Body):
    """A lazily produced body: *writer* is called each time the body is read."""

    writer: BodyWriter = field(repr=False)

    def read(self, limit: Optional[int] = None) -> bytes:
        buffer = io.BytesIO()
        self.writer(buffer)
        data = buffer.getvalue()
        return data if limit is None else data[:limit]

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        return BytesBody(self.read()).iter_chunks(chunk_size)


def _to_bytes(data: Union[str, bytes, None]) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def make_body(value: Any) -> Body:
    """Normalize *value* into a :class:`Body` variant.

    Args:
        value: ``None``, ``str`` (encoded as UTF-8), ``bytes``-like, a
            readable file object, a :data:`BodyWriter` callable, or an
            existing :class:`Body`.

    Returns:
        The matching body variant.

    Raises:
        TypeError: If *value* is none of the accepted types.
    """
    if isinstance(value, Body):
        return value
    if value is None:
        return EmptyBody()
    if isinstance(value, str):
        return BytesBody(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if hasattr(value, "read"):
        return StreamBody(value)
    if callable(value):
        return CallbackBody(value)
    raise TypeError(f"Unsupported body type: {type(value).__name__}")


# ------------------------------------------------------------------ #
# Message
# ------------------------------------------------------------------ #


def _as_values(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, bytes):
        return [value.decode("latin-1")]
    if hasattr(value, "__iter__"):
        return [str(v) for v in value]
    return [str(value)]


class Message:
    """Base class for requests and responses.

    Args:
        headers: Initial headers; each value may be a string or a list of
            strings.
        body: Initial body, see :func:`make_body`.
        http_version: Protocol version string.
    """

    def __init__(
        self,
        headers: Optional[HeaderInput] = None,
        body: Any = None,
        http_version: str = "1.1",
    ) -> None:
        # lowercased name -> (original name, values)
        self._headers: dict[str, tuple[str, list[str]]] = {}
        self._body: Body = make_body(body)
        self.http_version = http_version
        if headers:
            self.set_headers(headers)

    # ------------------------------------------------------------------ #
    # Headers
    # ------------------------------------------------------------------ #

    @property
    def headers(self) -> dict[str, list[str]]:
        """All headers as ``{original-name: [values]}`` in insertion order."""
        return {name: list(values) for name, values in self._headers.values()}

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def get_header(self, name: str) -> Optional[str]:
        """Return the header's values joined with ``","``, or ``None``.

        Some headers (``Set-Cookie``) cannot be combined this way; use
        :meth:`get_header_as_list` for those.
        """
        entry = self._headers.get(name.lower())
        if entry is None:
            return None
        return ",".join(entry[1])

    def get_header_as_list(self, name: str) -> list[str]:
        """Return every value the header appeared with, or ``[]``."""
        entry = self._headers.get(name.lower())
        return list(entry[1]) if entry else []

    def set_header(self, name: str, value: HeaderValue) -> None:
        """Set a header, replacing any previous values. *name*'s casing is kept."""
        self._headers[name.lower()] = (name, _as_values(value))

    def set_headers(self, headers: HeaderInput) -> None:
        for name, value in headers.items():
            self.set_header(name, value)

    def add_header(self, name: str, value: HeaderValue) -> None:
        """Append value(s) to a header without overwriting existing ones."""
        key = name.lower()
        entry = self._headers.get(key)
        if entry is None:
            self._headers[key] = (name, _as_values(value))
        else:
            entry[1].extend(_as_values(value))

    def add_headers(self, headers: HeaderInput) -> None:
        for name, value in headers.items():
            self.add_header(name, value)

    def remove_header(self, name: str) -> bool:
        """Remove a header. Returns ``False`` if it was not present."""
        return self._headers.pop(name.lower(), None) is not None

    # ------------------------------------------------------------------ #
    # Body
    # ------------------------------------------------------------------ #

    @property
    def body(self) -> Body:
        return self._body

    @body.setter
    def body(self, value: Any) -> None:
        self._body = make_body(value)

    def get_body_as_bytes(self) -> bytes:
        """Read the body fully.

        Stream bodies honour a numeric ``Content-Length`` header and read at
        most that many bytes. Streams can usually only be read once.
        """
        limit: Optional[int] = None
        if isinstance(self._body, StreamBody):
            length = self.get_header("Content-Length")
            if length is not None and length.strip().isdigit():
                limit = int(length)
        return self._body.read(limit)

    def get_body_as_string(self, encoding: str = "utf-8") -> str:
        return self.get_body_as_bytes().decode(encoding, errors="replace")

    def get_body_as_stream(self) -> BinaryIO:
        return self._body.as_stream()

    # ------------------------------------------------------------------ #
    # Serialization helpers
    # ------------------------------------------------------------------ #

    def _serialize(self, start_line: str) -> str:
        lines = [start_line]
        for name, values in self.headers.items():
            for value in values:
                lines.append(f"{name}: {self._serialize_header_value(name, value)}")
        return "\r\n".join(lines) + "\r\n\r\n" + self.get_body_as_string()

    def _serialize_header_value(self, name: str, value: str) -> str:
        return value


_HEAD_SEPARATOR = re.compile(r"\r?\n\r?\n")
_LINE_SEPARATOR = re.compile(r"\r?\n")


def parse_wire(raw: Union[str, bytes]) -> tuple[str, list[tuple[str, str]], bytes]:
    """Split a serialized HTTP message into start line, headers and body.

    Args:
        raw: The message as produced by ``str(message)``.

    Returns:
        ``(start_line, [(name, value), ...], body)``.

    Raises:
        MessageParseError: If the start line is missing or a header line
            has no colon.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    match = _HEAD_SEPARATOR.search(raw)
    if match is None:
        head, body = raw, ""
    else:
        head, body = raw[:match.start()], raw[match.end():]

    lines = _LINE_SEPARATOR.split(head)
    start_line = lines[0].strip()
    if not start_line:
        raise MessageParseError("HTTP message has no start line")

    headers: list[tuple[str, str]] = []
    for line in lines[1:]:
        if not line.strip():
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise MessageParseError(f"Malformed header line: {line!r}")
        headers.append((name.strip(), value.strip()))
    return start_line, headers, body.encode("utf-8")
