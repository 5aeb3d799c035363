"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~httploop.exceptions.HttploopError` subclass.
Shell scripts wrapping ``httploop request`` can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ httploop request GET https://example.org/missing --fail
    $ echo $?
    4   # EXIT_NOT_FOUND -- the server answered 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or malformed input."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the request with HTTP 401 or 403."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The server returned an HTTP 5xx error."""

EXIT_CONNECTION_ERROR = 6
"""A transport-level error occurred (timeout, DNS failure, connection refused)."""
