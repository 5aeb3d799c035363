"""Exception hierarchy for httploop.

All exceptions inherit from :class:`HttploopError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`httploop.exit_codes`.
The CLI entry point in :func:`httploop.app.main` catches ``HttploopError``
and exits with the appropriate code, while unexpected exceptions produce a
crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    HttploopError (exit 1)
    +-- InvalidUsageError    (exit 2)
    +-- ConfigError          (exit 1)
    +-- InvalidStatusError   (exit 2, also a ValueError)
    +-- MessageParseError    (exit 2, also a ValueError)
    +-- ClientError          (exit 6)
    +-- ClientHttpError      (exit 3 / 4 / 5 / 1 depending on the status)

:class:`ClientError` is the transport-level failure raised by
:meth:`~httploop.client.SyncClient.send` when no ``exception`` listener
asked for a retry. :class:`ClientHttpError` is only raised when the client
runs with ``throw_exceptions`` enabled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from httploop.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)

if TYPE_CHECKING:
    from httploop.response import Response


class HttploopError(Exception):
    """Base exception for all httploop errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`httploop.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(HttploopError):
    """Raised for invalid CLI arguments or unsupported transport settings."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(HttploopError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidStatusError(HttploopError, ValueError):
    """Raised when a response status code falls outside 100-999."""

    exit_code = EXIT_INVALID_USAGE


class MessageParseError(HttploopError, ValueError):
    """Raised when a serialized HTTP message cannot be parsed."""

    exit_code = EXIT_INVALID_USAGE


class ClientError(HttploopError):
    """Raised on transport-level failures (DNS, refused connection, timeout).

    Carries no HTTP semantics. ``code`` is a
    :class:`~httploop.transport.base.TransportErrorCode` compatible integer.

    Args:
        message: The transport's error message.
        code: Numeric transport error code.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={self.message!r})"


class ClientHttpError(HttploopError):
    """An HTTP error status (>= 400) surfaced as an exception.

    Only raised by :meth:`~httploop.client.SyncClient.send` when
    ``throw_exceptions`` is enabled. The exit code follows the status:
    401/403 map to :data:`EXIT_AUTH_FAILURE`, 404 to :data:`EXIT_NOT_FOUND`,
    5xx to :data:`EXIT_SERVER_ERROR`.

    Args:
        response: The final response that carried the error status.
    """

    def __init__(self, response: Response):
        super().__init__(response.reason_phrase, exit_code=_exit_code_for(response.status))
        self.response = response

    @property
    def http_status(self) -> str:
        """The HTTP status code as a string, e.g. ``"404"``."""
        return str(self.response.status)


def _exit_code_for(status: int) -> int:
    if status in (401, 403):
        return EXIT_AUTH_FAILURE
    if status == 404:
        return EXIT_NOT_FOUND
    if status >= 500:
        return EXIT_SERVER_ERROR
    return EXIT_GENERIC_FAILURE
