"""The :class:`Request` message."""

from __future__ import annotations

from typing import Any, Optional, Union
from urllib.parse import parse_qsl, urlsplit

from httploop.exceptions import MessageParseError
from httploop.message import HeaderInput, Message, parse_wire


class Request(Message):
    """A single outbound HTTP request.

    The method is case-sensitive and not validated; the URL should be
    absolute. Cookie, body-parameter and attribute maps are plain dicts
    carried along for callers that need them; the client ignores them.

    Example::

        request = Request("PUT", "https://example.org/file.txt", {"Content-Type": "text/plain"}, "hello")
    """

    def __init__(
        self,
        method: str = "GET",
        url: str = "",
        headers: Optional[HeaderInput] = None,
        body: Any = None,
        http_version: str = "1.1",
    ) -> None:
        super().__init__(headers=headers, body=body, http_version=http_version)
        self.method = method
        self.url = url
        self.cookie_params: dict[str, str] = {}
        self.body_params: dict[str, Any] = {}
        self.attributes: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"

    @property
    def query_params(self) -> dict[str, str]:
        """Query string parameters parsed from :attr:`url` (last value wins)."""
        return dict(parse_qsl(urlsplit(self.url).query, keep_blank_values=True))

    def clone(self) -> Request:
        """Return a copy with its own headers and parameter maps.

        The body object is shared, so a consumed stream stays consumed.
        """
        copy = Request(self.method, self.url, body=self._body, http_version=self.http_version)
        copy._headers = {key: (name, list(values)) for key, (name, values) in self._headers.items()}
        copy.cookie_params = dict(self.cookie_params)
        copy.body_params = dict(self.body_params)
        copy.attributes = dict(self.attributes)
        return copy

    def __str__(self) -> str:
        """Serialize to the HTTP wire form, redacting ``Authorization`` values."""
        return self._serialize(f"{self.method} {self.url} HTTP/{self.http_version}")

    def _serialize_header_value(self, name: str, value: str) -> str:
        if name.lower() == "authorization":
            scheme = value.split(" ", 1)[0]
            return f"{scheme} REDACTED"
        return value

    @classmethod
    def from_string(cls, raw: Union[str, bytes]) -> Request:
        """Parse a request from its wire form (the inverse of ``str(request)``).

        Raises:
            MessageParseError: If the request line is not
                ``METHOD URL HTTP/x.y``.
        """
        start_line, headers, body = parse_wire(raw)
        parts = start_line.split(" ")
        if len(parts) != 3 or not parts[2].startswith("HTTP/"):
            raise MessageParseError(f"Malformed request line: {start_line!r}")
        method, url, protocol = parts

        request = cls(method, url, body=body or None, http_version=protocol[len("HTTP/"):])
        for name, value in headers:
            request.add_header(name, value)
        return request
