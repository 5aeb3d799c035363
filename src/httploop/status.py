"""Standard HTTP status codes and their canonical reason phrases.

The table is built once at import time and exposed read-only through
:data:`STATUS_CODES`; :func:`reason_phrase` is the lookup used whenever a
numeric status is set without an explicit phrase.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

UNKNOWN_REASON = "Unknown"

STATUS_CODES: Mapping[int, str] = MappingProxyType({
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-Status",  # RFC 4918
    208: "Already Reported",  # RFC 5842
    226: "IM Used",  # RFC 3229
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request-URI Too Long",
    415: "Unsupported Media Type",
    416: "Requested Range Not Satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",  # RFC 2324
    422: "Unprocessable Entity",  # RFC 4918
    423: "Locked",  # RFC 4918
    424: "Failed Dependency",  # RFC 4918
    426: "Upgrade Required",
    428: "Precondition Required",  # RFC 6585
    429: "Too Many Requests",  # RFC 6585
    431: "Request Header Fields Too Large",  # RFC 6585
    451: "Unavailable For Legal Reasons",  # RFC 7725
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",  # RFC 4918
    508: "Loop Detected",  # RFC 5842
    509: "Bandwidth Limit Exceeded",  # non-standard
    510: "Not Extended",
    511: "Network Authentication Required",  # RFC 6585
})

REDIRECT_CODES = frozenset({301, 302, 307, 308})
"""Statuses the sync engine follows by re-issuing the request at ``Location``."""


def reason_phrase(code: int) -> str:
    """Return the canonical reason phrase for *code*, or ``"Unknown"``."""
    return STATUS_CODES.get(code, UNKNOWN_REASON)
