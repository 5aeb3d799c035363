"""Helpers for parsing and generating common HTTP header values."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Iterable, Optional, Union

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
_WEEKDAY = r"(?:Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)"
_WKDAY = r"(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)"
_TIME = r"(?:[0-1]\d|2[0-3])(?::[0-5]\d){2}"

# Only the shape is checked here; strptime rejects impossible dates.
_DATE_FORMATS = (
    # IMF-fixdate (RFC 1123)
    (
        re.compile(rf"^{_WKDAY}, (?:0[1-9]|[12]\d|3[01]) {_MONTH} [1-9]\d{{3}} {_TIME} GMT$"),
        "%a, %d %b %Y %H:%M:%S GMT",
    ),
    # obsolete RFC 850 format
    (
        re.compile(rf"^{_WEEKDAY}, (?:0[1-9]|[12]\d|3[01])-{_MONTH}-\d{{2}} {_TIME} GMT$"),
        "%A, %d-%b-%y %H:%M:%S GMT",
    ),
    # ANSI C asctime() format
    (
        re.compile(rf"^{_WKDAY} {_MONTH} (?:[12]\d|3[01]| [1-9]) {_TIME} [1-9]\d{{3}}$"),
        "%a %b %d %H:%M:%S %Y",
    ),
)

_PREFER_RE = re.compile(
    r"""
    ^
    (?P<name>[!#$%&'*+\-.^_`~A-Za-z0-9]+)   # preference name
    \s*
    (?:=\s*(?P<value>[a-zA-Z0-9]+|"[a-zA-Z0-9]*"))?
    (?:\s*;.*)?                             # parameters, ignored
    $
    """,
    re.VERBOSE,
)

# Values from older drafts of RFC 7240 and their current equivalents.
_LEGACY_PREFER = {
    "return-asynch": ("respond-async", True),
    "return-representation": ("return", "representation"),
    "return-minimal": ("return", "minimal"),
    "strict": ("handling", "strict"),
    "lenient": ("handling", "lenient"),
}


def parse_date(value: str) -> Optional[datetime]:
    """Parse an HTTP date string into an aware UTC :class:`datetime`.

    Accepts the three formats allowed by RFC 7231 section 7.1.1.1::

        Sun, 06 Nov 1994 08:49:37 GMT    ; IMF-fixdate
        Sunday, 06-Nov-94 08:49:37 GMT   ; obsolete RFC 850 format
        Sun Nov  6 08:49:37 1994         ; ANSI C's asctime() format

    Surrounding spaces are ignored.

    Returns:
        The parsed datetime, or ``None`` if *value* is not a valid HTTP date.
    """
    value = value.strip(" ")
    for pattern, fmt in _DATE_FORMATS:
        if not pattern.match(value):
            continue
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            return None
        return parsed.replace(tzinfo=timezone.utc)
    return None


def to_date(value: datetime) -> str:
    """Format *value* as an IMF-fixdate, e.g. ``Sun, 06 Nov 1994 08:49:37 GMT``.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def get_header_values(
    values: Union[str, Iterable[str]],
    extra: Union[str, Iterable[str], None] = None,
) -> list[str]:
    """Split one or more header values on commas.

    >>> get_header_values(["a, b", "c", "d,e"])
    ['a', 'b', 'c', 'd', 'e']

    Args:
        values: A single header value or a list of them.
        extra: Optional further values merged in after *values*.
    """
    items = [values] if isinstance(values, str) else list(values)
    if extra:
        items.extend([extra] if isinstance(extra, str) else extra)
    return [part.strip() for item in items for part in item.split(",")]


def parse_prefer(values: Union[str, Iterable[str]]) -> dict[str, Union[str, bool]]:
    """Parse a ``Prefer`` header (RFC 7240).

    ``Prefer: foo, wait=10`` becomes ``{"foo": True, "wait": "10"}``.
    Names are lowercased, preference parameters are discarded and values
    from older drafts (``return-asynch``, ``return-minimal``, ``strict``, ...)
    are mapped to their current form. Malformed entries are skipped.
    """
    result: dict[str, Union[str, bool]] = {}
    for item in get_header_values(values):
        match = _PREFER_RE.match(item)
        if match is None:
            continue
        name = match.group("name")
        if name in _LEGACY_PREFER:
            key, legacy_value = _LEGACY_PREFER[name]
            result[key] = legacy_value
            continue
        raw = match.group("value")
        value = raw.strip('"') if raw is not None else ""
        result[name.lower()] = value or True
    return result
