"""URL helpers: percent-encoding of paths and relative reference resolution.

Parentheses are reserved characters without a reserved meaning in a path,
and some WebDAV clients choke on them when encoded, so they are kept as-is.
Escapes are written with lowercase hex digits.
"""

from __future__ import annotations

from urllib.parse import unquote_to_bytes

import httpx

_SEGMENT_SAFE = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-.~():@"
)
_PATH_SAFE = _SEGMENT_SAFE | {ord("/")}


def _encode(value: str, safe: frozenset[int]) -> str:
    return "".join(
        chr(byte) if byte in safe else f"%{byte:02x}"
        for byte in value.encode("utf-8")
    )


def encode_path(path: str) -> str:
    """Percent-encode a URL path, keeping ``/`` as the segment separator."""
    return _encode(path, _PATH_SAFE)


def encode_path_segment(segment: str) -> str:
    """Percent-encode a single path segment; ``/`` becomes ``%2f``."""
    return _encode(segment, _SEGMENT_SAFE)


def decode_path(path: str) -> str:
    return decode_path_segment(path)


def decode_path_segment(segment: str) -> str:
    """Decode a percent-encoded path segment.

    The decoded bytes are read as UTF-8, falling back to ISO-8859-1 for
    clients that still send latin-1 encoded names.
    """
    raw = unquote_to_bytes(segment)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def split_path(path: str) -> tuple[str, str]:
    """Split *path* into ``(dirname, basename)``, ignoring trailing slashes.

    >>> split_path("/foo/bar/")
    ('/foo', 'bar')
    """
    stripped = path.rstrip("/")
    head, sep, tail = stripped.rpartition("/")
    if not sep:
        return "", tail
    return head, tail


def resolve(base: str, reference: str) -> str:
    """Resolve *reference* against the absolute URL *base*, like a browser.

    >>> resolve("http://example.org/foo/bar", "/new")
    'http://example.org/new'
    """
    return str(httpx.URL(base).join(reference))
