"""Tests for the asynchronous engine: send_async, poll, wait and cancel."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from httploop.client.async_client import HTTP_FAILURE, TRANSPORT_FAILURE, FailedRequest
from httploop.events import AFTER_REQUEST, BEFORE_REQUEST, ERROR, EXCEPTION, error_event
from httploop.models import ClientConfig
from httploop.request import Request
from httploop.response import Response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _poll_until_done(client, limit: int = 1000) -> int:
    """Call poll() until it reports nothing pending; return the number of calls."""
    for calls in range(1, limit + 1):
        if not client.poll():
            return calls
    raise AssertionError("requests never completed")


def _echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=f"{request.method} {request.url.path}".encode())


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------


class TestSendAsync:
    def test_single_success(self, make_client) -> None:
        client = make_client(_echo)
        delivered: list[Response] = []

        entry = client.send_async(Request("GET", "http://example.org/a"), delivered.append)
        _poll_until_done(client)

        assert len(delivered) == 1
        assert delivered[0].status == 200
        assert delivered[0].get_body_as_string() == "GET /a"
        assert client.pending == []
        assert entry.retry_count == 0

    def test_many_requests(self, make_client) -> None:
        client = make_client(_echo)
        bodies = []
        for path in ("a", "b", "c", "d"):
            client.send_async(
                Request("GET", f"http://example.org/{path}"),
                lambda response: bodies.append(response.get_body_as_string()),
            )
        assert client.wait() is True
        # Completion order is up to the transport.
        assert sorted(bodies) == ["GET /a", "GET /b", "GET /c", "GET /d"]
        assert client.pending == []

    def test_events(self, make_client) -> None:
        client = make_client(_echo)
        events = []
        client.on(BEFORE_REQUEST, lambda request: events.append("before"))
        client.on(AFTER_REQUEST, lambda request, response: events.append("after"))
        client.send_async(Request("GET", "http://example.org/"), lambda response: events.append("success"))
        client.wait()
        assert events == ["before", "after", "success"]

    def test_without_callbacks(self, make_client) -> None:
        client = make_client(_echo)
        client.send_async(Request("GET", "http://example.org/"))
        assert client.wait() is True

    def test_poll_with_nothing_pending(self, make_client) -> None:
        assert make_client(_echo).poll() is False

    def test_redirects_are_not_followed(self, make_client) -> None:
        client = make_client(lambda request: httpx.Response(302, headers={"Location": "/x"}))
        delivered = []
        client.send_async(Request("GET", "http://example.org/"), delivered.append)
        client.wait()
        assert [response.status for response in delivered] == [302]

    def test_request_body(self, make_client) -> None:
        seen = []

        async def handler(request: httpx.Request) -> httpx.Response:
            seen.append(await request.aread())
            return httpx.Response(201)

        client = make_client(handler)
        client.send_async(Request("PUT", "http://example.org/f", body="payload"))
        client.wait()
        assert seen == [b"payload"]


# ---------------------------------------------------------------------------
# Failures and retries
# ---------------------------------------------------------------------------


class TestFailures:
    def test_http_error_callback(self, make_client) -> None:
        client = make_client(lambda request: httpx.Response(404, content=b"nope"))
        failures: list[FailedRequest] = []
        successes = []
        seen_events = []
        client.on(ERROR, lambda request, response, decision: seen_events.append(ERROR))
        client.on(error_event(404), lambda request, response, decision: seen_events.append("error:404"))

        request = Request("GET", "http://example.org/missing")
        client.send_async(request, successes.append, failures.append)
        client.wait()

        assert successes == []
        assert seen_events == [ERROR, "error:404"]
        (failure,) = failures
        assert failure.kind == HTTP_FAILURE
        assert failure.request is request
        assert failure.http_code == 404
        assert failure.response.get_body_as_string() == "nope"
        assert failure.error is None

    def test_transport_error_callback(self, make_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        client = make_client(handler)
        failures: list[FailedRequest] = []
        exceptions = []
        client.on(EXCEPTION, lambda request, exc, decision: exceptions.append(exc.code))

        client.send_async(Request("GET", "http://example.org/"), None, failures.append)
        client.wait()

        assert exceptions == [7]
        (failure,) = failures
        assert failure.kind == TRANSPORT_FAILURE
        assert failure.response is None
        assert failure.http_code == 0
        assert failure.error.message == "Connection refused"

    def test_retry_by_resubmission(self, make_client) -> None:
        statuses = iter([503, 503, 200])
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(next(statuses))

        client = make_client(handler)
        counts = []
        before = []

        def on_error(request, response, decision) -> None:
            counts.append(decision.retry_count)
            decision.retry()

        client.on(ERROR, on_error)
        client.on(BEFORE_REQUEST, lambda request: before.append(request))
        delivered = []
        entry = client.send_async(Request("GET", "http://example.org/flaky"), delivered.append)
        client.wait()

        assert [response.status for response in delivered] == [200]
        assert len(calls) == 3
        assert counts == [0, 1]
        assert entry.retry_count == 2
        # beforeRequest is not re-emitted for retries.
        assert len(before) == 1

    def test_retry_after_transport_error(self, make_client) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200)

        client = make_client(handler)
        client.on(EXCEPTION, lambda request, exc, decision: decision.retry())
        delivered = []
        client.send_async(Request("GET", "http://example.org/"), delivered.append)
        client.wait()
        assert len(attempts) == 2
        assert len(delivered) == 1

    def test_unhandled_failure_is_logged(self, make_client, caplog: pytest.LogCaptureFixture) -> None:
        client = make_client(lambda request: httpx.Response(500))
        with caplog.at_level(logging.WARNING, logger="httploop.client.async_client"):
            client.send_async(Request("GET", "http://example.org/boom"))
            client.wait()
        assert "Unhandled http failure for GET http://example.org/boom" in caplog.text

    def test_callback_may_submit_more_work(self, make_client) -> None:
        client = make_client(_echo)
        bodies = []

        def first(response: Response) -> None:
            bodies.append(response.get_body_as_string())
            client.send_async(Request("GET", "http://example.org/second"), second)

        def second(response: Response) -> None:
            bodies.append(response.get_body_as_string())

        client.send_async(Request("GET", "http://example.org/first"), first)
        client.wait()
        assert bodies == ["GET /first", "GET /second"]


# ---------------------------------------------------------------------------
# wait() and cancel()
# ---------------------------------------------------------------------------


async def _slow(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(10)
    return httpx.Response(200)


class TestWaitAndCancel:
    def test_wait_timeout(self, make_client) -> None:
        client = make_client(_slow, ClientConfig(select_timeout=0.05))
        client.send_async(Request("GET", "http://example.org/slow"))
        assert client.wait(timeout=0.1) is False
        assert len(client.pending) == 1

    def test_cancel(self, make_client) -> None:
        client = make_client(_slow)
        called = []
        entry = client.send_async(Request("GET", "http://example.org/slow"), called.append, called.append)

        assert client.cancel(entry) is True
        assert client.pending == []
        assert client.cancel(entry) is False
        assert client.wait() is True
        assert called == []
        assert client.multi_transport.running == 0

    def test_cancel_finished_entry(self, make_client) -> None:
        client = make_client(_echo)
        entry = client.send_async(Request("GET", "http://example.org/"))
        client.wait()
        assert client.cancel(entry) is False

    def test_close_cancels_pending(self, make_client) -> None:
        client = make_client(_slow)
        client.send_async(Request("GET", "http://example.org/slow"))
        client.close()
        assert client.pending == []
