"""The :class:`Response` message."""

from __future__ import annotations

from typing import Any, Optional, Union

from httploop.exceptions import InvalidStatusError, MessageParseError
from httploop.message import HeaderInput, Message, parse_wire
from httploop.status import reason_phrase


class Response(Message):
    """A single HTTP response.

    Args:
        status: Status code, or a ``"<code> <reason>"`` string.
        headers: Initial headers.
        body: Initial body.
        reason: Explicit reason phrase; defaults to the standard phrase for
            the status code.

    Raises:
        InvalidStatusError: If the status code is outside 100-999.
    """

    def __init__(
        self,
        status: Union[int, str, None] = None,
        headers: Optional[HeaderInput] = None,
        body: Any = None,
        reason: Optional[str] = None,
        http_version: str = "1.1",
    ) -> None:
        super().__init__(headers=headers, body=body, http_version=http_version)
        self._status: int = 0
        self._reason: str = ""
        if status is not None:
            self.set_status(status, reason)

    def __repr__(self) -> str:
        return f"<Response [{self._status} {self._reason}]>"

    @property
    def status(self) -> int:
        return self._status

    @status.setter
    def status(self, value: Union[int, str]) -> None:
        self.set_status(value)

    @property
    def reason_phrase(self) -> str:
        return self._reason

    @reason_phrase.setter
    def reason_phrase(self, value: str) -> None:
        self._reason = value

    def set_status(self, status: Union[int, str], reason: Optional[str] = None) -> None:
        """Set the status code and reason phrase.

        *status* may be an ``int``, a digit string (``"404"``) or a full
        status string such as ``"403 I can't let you do that, Dave"``. When
        no reason is given by either argument, the standard phrase is used.

        Raises:
            InvalidStatusError: If the code is not an integer in 100-999.
        """
        if isinstance(status, str) and not status.strip().isdigit():
            code_text, _, inline_reason = status.strip().partition(" ")
            if reason is None:
                reason = inline_reason
            status = code_text
        try:
            code = int(status)
        except (TypeError, ValueError) as exc:
            raise InvalidStatusError(f"Invalid HTTP status: {status!r}") from exc
        if code < 100 or code > 999:
            raise InvalidStatusError("The HTTP status code must be exactly 3 digits")

        self._status = code
        self._reason = reason if reason is not None else reason_phrase(code)

    def __str__(self) -> str:
        return self._serialize(f"HTTP/{self.http_version} {self._status} {self._reason}")

    @classmethod
    def from_string(cls, raw: Union[str, bytes]) -> Response:
        """Parse a response from its wire form (the inverse of ``str(response)``).

        Raises:
            MessageParseError: If the status line is malformed.
            InvalidStatusError: If the status code is out of range.
        """
        start_line, headers, body = parse_wire(raw)
        protocol, _, rest = start_line.partition(" ")
        if not protocol.startswith("HTTP/") or not rest:
            raise MessageParseError(f"Malformed status line: {start_line!r}")
        code, _, reason = rest.partition(" ")

        response = cls(http_version=protocol[len("HTTP/"):], body=body or None)
        response.set_status(code, reason or None)
        for name, value in headers:
            response.add_header(name, value)
        return response
