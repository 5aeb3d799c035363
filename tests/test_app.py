"""End-to-end tests for the typer CLI, with mock transports instead of the network."""

from __future__ import annotations

import json
import time
from pathlib import Path

import httpx
import pytest

from httploop import __version__
from httploop.app import app
from httploop.client import Client
from httploop.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)
from httploop.transport import AsyncioMultiTransport, HttpxTransport


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def serve(monkeypatch: pytest.MonkeyPatch, isolated_config: Path):
    """Route every client the CLI builds through *handler*."""

    def install(handler) -> None:
        mock = httpx.MockTransport(handler)

        def factory(**kwargs) -> Client:
            return Client(
                transport=HttpxTransport(http_transport=mock),
                multi_transport=AsyncioMultiTransport(http_transport=mock),
                **kwargs,
            )

        monkeypatch.setattr("httploop.commands.request.Client", factory)

    return install


def _routes(table: dict[str, httpx.Response]):
    def handler(request: httpx.Request) -> httpx.Response:
        template = table[request.url.path]
        return httpx.Response(template.status_code, headers=template.headers, content=template.content)

    return handler


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"httploop {__version__}" in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "request" in result.output
        assert "fetch" in result.output


# ---------------------------------------------------------------------------
# request
# ---------------------------------------------------------------------------


class TestRequestCommand:
    def test_prints_body(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(200, content=b"hello world"))
        result = cli_runner.invoke(app, ["--plain", "request", "GET", "http://example.org/"])
        assert result.exit_code == 0, result.output
        assert "hello world" in result.output

    def test_include_headers(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(200, headers={"X-Served-By": "mock"}, content=b"ok"))
        result = cli_runner.invoke(app, ["--plain", "request", "GET", "http://example.org/", "-i"])
        assert result.exit_code == 0, result.output
        assert "HTTP/1.1 200 OK" in result.output
        assert "X-Served-By: mock" in result.output

    def test_json_output(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(201, content=b"made"))
        result = cli_runner.invoke(app, ["--json", "request", "POST", "http://example.org/", "-d", "x"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == 201
        assert data["reason"] == "Created"
        assert data["body"] == "made"

    def test_headers_and_data(self, cli_runner, serve) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["content-type"] = request.headers.get("content-type")
            seen["body"] = request.read()
            return httpx.Response(204)

        serve(handler)
        result = cli_runner.invoke(app, [
            "request", "PUT", "http://example.org/doc",
            "-H", "Content-Type: text/plain", "-d", "payload",
        ])
        assert result.exit_code == 0, result.output
        assert seen == {"content-type": "text/plain", "body": b"payload"}

    def test_body_from_file(self, cli_runner, serve, isolated_config: Path) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.read()
            return httpx.Response(204)

        serve(handler)
        (isolated_config / "upload.bin").write_bytes(b"\x00file\x01")
        result = cli_runner.invoke(app, ["request", "PUT", "http://example.org/up", "-d", "@upload.bin"])
        assert result.exit_code == 0, result.output
        assert seen["body"] == b"\x00file\x01"

    def test_missing_body_file(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(204))
        result = cli_runner.invoke(app, ["request", "PUT", "http://example.org/", "-d", "@nope.bin"])
        assert result.exit_code == EXIT_INVALID_USAGE

    def test_bad_header(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(200))
        result = cli_runner.invoke(app, ["request", "GET", "http://example.org/", "-H", "no-colon"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Invalid header" in result.output

    def test_follows_redirects(self, cli_runner, serve) -> None:
        serve(_routes({
            "/old": httpx.Response(301, headers={"Location": "/new"}),
            "/new": httpx.Response(200, content=b"arrived"),
        }))
        result = cli_runner.invoke(app, ["--plain", "request", "GET", "http://example.org/old"])
        assert result.exit_code == 0, result.output
        assert "arrived" in result.output

    def test_max_redirects_flag(self, cli_runner, serve) -> None:
        serve(_routes({
            "/old": httpx.Response(301, headers={"Location": "/new"}),
            "/new": httpx.Response(200),
        }))
        result = cli_runner.invoke(app, [
            "--json", "request", "GET", "http://example.org/old", "--max-redirects", "0",
        ])
        assert json.loads(result.output)["status"] == 301

    def test_fail_flag(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(404, content=b"not here"))
        result = cli_runner.invoke(app, ["--plain", "request", "GET", "http://example.org/x", "--fail"])
        assert result.exit_code == EXIT_NOT_FOUND
        assert "not here" in result.output

    def test_error_status_without_fail(self, cli_runner, serve) -> None:
        serve(lambda request: httpx.Response(404))
        result = cli_runner.invoke(app, ["request", "GET", "http://example.org/x"])
        assert result.exit_code == 0

    def test_connection_error(self, cli_runner, serve) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        serve(handler)
        result = cli_runner.invoke(app, ["request", "GET", "http://example.org/"])
        assert result.exit_code == EXIT_CONNECTION_ERROR
        assert "Connection refused" in result.output

    def test_retries(self, cli_runner, serve) -> None:
        statuses = iter([503, 502, 200])
        serve(lambda request: httpx.Response(next(statuses), content=b"done"))
        result = cli_runner.invoke(app, [
            "--plain", "request", "GET", "http://example.org/",
            "--retries", "2", "--retry-delay", "0",
        ])
        assert result.exit_code == 0, result.output
        assert "done" in result.output

    def test_retries_exhausted(self, cli_runner, serve) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(503)

        serve(handler)
        cli_runner.invoke(app, ["request", "GET", "http://example.org/", "--retries", "2", "--retry-delay", "0"])
        assert len(calls) == 3

    def test_client_errors_are_not_retried(self, cli_runner, serve) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(400)

        serve(handler)
        cli_runner.invoke(app, ["request", "GET", "http://example.org/", "--retries", "3", "--retry-delay", "0"])
        assert len(calls) == 1

    def test_config_file_is_honoured(self, cli_runner, serve, isolated_config: Path) -> None:
        serve(lambda request: httpx.Response(500))
        (isolated_config / "httploop.json").write_text('{"throw_exceptions": true}')
        result = cli_runner.invoke(app, ["request", "GET", "http://example.org/"])
        assert result.exit_code == 5


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


class TestFetchCommand:
    def test_table(self, cli_runner, serve) -> None:
        serve(_routes({
            "/a": httpx.Response(200, content=b"aaaa"),
            "/b": httpx.Response(204),
        }))
        result = cli_runner.invoke(app, ["--json", "fetch", "http://example.org/a", "http://example.org/b"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.output)
        assert rows == [
            {"URL": "http://example.org/a", "Status": "200", "Reason": "OK", "Bytes": "4"},
            {"URL": "http://example.org/b", "Status": "204", "Reason": "No Content", "Bytes": "0"},
        ]

    def test_failure_sets_exit_code(self, cli_runner, serve) -> None:
        serve(_routes({
            "/ok": httpx.Response(200),
            "/gone": httpx.Response(410),
        }))
        result = cli_runner.invoke(app, ["--plain", "fetch", "http://example.org/ok", "http://example.org/gone"])
        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "http://example.org/gone\t410\tGone\t-" in result.output

    def test_transport_failure_row(self, cli_runner, serve) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        serve(handler)
        result = cli_runner.invoke(app, ["--plain", "fetch", "http://example.org/"])
        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "Connection refused" in result.output

    def test_retry_delays_run_concurrently(self, cli_runner, serve) -> None:
        seen: dict[str, int] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            seen[path] = seen.get(path, 0) + 1
            return httpx.Response(503 if seen[path] == 1 else 200)

        serve(handler)
        urls = [f"http://example.org/{name}" for name in ("a", "b", "c", "d")]
        started = time.monotonic()
        result = cli_runner.invoke(
            app, ["--json", "fetch", *urls, "--retries", "1", "--retry-delay", "0.3"]
        )
        elapsed = time.monotonic() - started

        assert result.exit_code == 0, result.output
        assert [row["Status"] for row in json.loads(result.output)] == ["200"] * 4
        assert seen == {"/a": 2, "/b": 2, "/c": 2, "/d": 2}
        # One backoff period overall, not one per URL.
        assert 0.3 <= elapsed < 0.9

    def test_retries_exhausted(self, cli_runner, serve) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(500)

        serve(handler)
        result = cli_runner.invoke(
            app, ["--plain", "fetch", "http://example.org/", "--retries", "2", "--retry-delay", "0"]
        )
        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert len(calls) == 3
        assert "http://example.org/\t500\tInternal Server Error\t-" in result.output

    def test_client_errors_are_not_retried(self, cli_runner, serve) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(404)

        serve(handler)
        cli_runner.invoke(app, ["fetch", "http://example.org/", "--retries", "3", "--retry-delay", "0"])
        assert len(calls) == 1


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


class TestStatusCommand:
    def test_known(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--plain", "status", "418"])
        assert result.exit_code == 0
        assert "418 I'm a teapot" in result.output

    def test_json(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "status", "599"])
        assert json.loads(result.output) == {"status": 599, "reason": "Unknown"}

    def test_out_of_range(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["status", "1000"])
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_show(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["-q", "config", "show"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["max_redirects"] == 5
        assert data["throw_exceptions"] is False

    def test_set_and_show(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["-q", "config", "set", "max_redirects", "9"])
        assert result.exit_code == 0, result.output
        result = cli_runner.invoke(app, ["-q", "config", "set", "timeout", "none"])
        assert result.exit_code == 0, result.output
        data = json.loads(cli_runner.invoke(app, ["-q", "config", "show"]).output)
        assert data["max_redirects"] == 9
        assert data["timeout"] is None

    def test_set_bool(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["-q", "config", "set", "throw_exceptions", "true"])
        data = json.loads(cli_runner.invoke(app, ["-q", "config", "show"]).output)
        assert data["throw_exceptions"] is True

    def test_set_unknown_key(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "nope", "1"])
        assert result.exit_code == 2

    def test_set_invalid_value(self, cli_runner, isolated_config: Path) -> None:
        assert cli_runner.invoke(app, ["config", "set", "max_redirects", "many"]).exit_code == 2
        assert cli_runner.invoke(app, ["config", "set", "max_redirects", "-1"]).exit_code == 2

    def test_reset(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["-q", "config", "set", "max_redirects", "9"])
        result = cli_runner.invoke(app, ["-q", "config", "reset", "--force"])
        assert result.exit_code == 0
        data = json.loads(cli_runner.invoke(app, ["-q", "config", "show"]).output)
        assert data["max_redirects"] == 5

    def test_reset_cancelled(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["-q", "config", "set", "max_redirects", "9"])
        result = cli_runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        data = json.loads(cli_runner.invoke(app, ["-q", "config", "show"]).output)
        assert data["max_redirects"] == 9
