"""Tests for the header value helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from httploop.headers import get_header_values, parse_date, parse_prefer, to_date

EXPECTED = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)


class TestParseDate:
    @pytest.mark.parametrize("value", [
        "Sun, 06 Nov 1994 08:49:37 GMT",
        "Sunday, 06-Nov-94 08:49:37 GMT",
        "Sun Nov  6 08:49:37 1994",
        "  Sun, 06 Nov 1994 08:49:37 GMT ",
    ])
    def test_accepted_formats(self, value: str) -> None:
        assert parse_date(value) == EXPECTED

    @pytest.mark.parametrize("value", [
        "",
        "yesterday",
        "Sun, 06 Nov 1994 08:49:37 UTC",
        "Sun, 06 Nov 1994 24:49:37 GMT",
        "Mon, 31 Feb 2011 00:00:00 GMT",
        "1994-11-06T08:49:37Z",
    ])
    def test_rejected(self, value: str) -> None:
        assert parse_date(value) is None

    def test_result_is_aware(self) -> None:
        parsed = parse_date("Fri, 01 Jan 2021 00:00:00 GMT")
        assert parsed is not None
        assert parsed.utcoffset() == timedelta(0)


class TestToDate:
    def test_aware(self) -> None:
        assert to_date(EXPECTED) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_naive_is_utc(self) -> None:
        assert to_date(datetime(1994, 11, 6, 8, 49, 37)) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_other_timezone_is_converted(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        assert to_date(datetime(1994, 11, 6, 10, 49, 37, tzinfo=plus_two)) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_parses_back(self) -> None:
        assert parse_date(to_date(EXPECTED)) == EXPECTED


class TestHeaderValues:
    def test_single_value(self) -> None:
        assert get_header_values("a, b ,c") == ["a", "b", "c"]

    def test_list_and_extra(self) -> None:
        assert get_header_values(["a, b", "c"], "d,e") == ["a", "b", "c", "d", "e"]


class TestParsePrefer:
    def test_flags_and_values(self) -> None:
        assert parse_prefer("foo, wait=10") == {"foo": True, "wait": "10"}

    def test_quoted_value_and_parameters(self) -> None:
        assert parse_prefer('return="minimal"; foo=bar') == {"return": "minimal"}

    def test_names_are_lowercased(self) -> None:
        assert parse_prefer("Respond-Async") == {"respond-async": True}

    def test_multiple_headers(self) -> None:
        assert parse_prefer(["handling=strict", "wait=5"]) == {"handling": "strict", "wait": "5"}

    @pytest.mark.parametrize("legacy,expected", [
        ("return-asynch", {"respond-async": True}),
        ("return-representation", {"return": "representation"}),
        ("return-minimal", {"return": "minimal"}),
        ("strict", {"handling": "strict"}),
        ("lenient", {"handling": "lenient"}),
    ])
    def test_legacy_values(self, legacy: str, expected: dict) -> None:
        assert parse_prefer(legacy) == expected

    def test_malformed_entries_are_skipped(self) -> None:
        assert parse_prefer("wait=, foo") == {"foo": True}
