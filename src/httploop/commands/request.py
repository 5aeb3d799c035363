"""Request commands -- ``httploop request``, ``httploop fetch`` and ``httploop status``.

``request`` sends one request through :meth:`~httploop.client.Client.send`
and prints the response. ``fetch`` sends every URL concurrently through
:meth:`~httploop.client.Client.send_async` and prints a status table.
Both retry transport errors and 5xx responses up to ``--retries`` times,
backing off exponentially (``--retry-delay``, doubled on every attempt).
``request`` sleeps inside its ``exception``/``error`` listeners; ``fetch``
schedules the resubmission and keeps driving the other transfers.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Optional

import typer

from httploop.client import Client, FailedRequest
from httploop.client.async_client import ErrorCallback, SuccessCallback
from httploop.config import resolve_config
from httploop.events import AFTER_REQUEST, BEFORE_REQUEST, ERROR, EXCEPTION, RetryDecision
from httploop.exceptions import HttploopError, InvalidStatusError, InvalidUsageError
from httploop.exit_codes import EXIT_GENERIC_FAILURE
from httploop.output import OutputFormat, debug, error, get_output, print_table
from httploop.request import Request
from httploop.response import Response
from httploop.status import reason_phrase


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise InvalidUsageError(f"Invalid header {raw!r} (expected 'Name: value')")
    return name.strip(), value.strip()


def _request_body(data: Optional[str]) -> Any:
    """``@path`` streams the file; anything else is sent as text."""
    if data is None or not data.startswith("@"):
        return data
    path = Path(data[1:]).expanduser()
    if not path.is_file():
        raise InvalidUsageError(f"Body file not found: {path}")
    return path.open("rb")


def _attach_debug_listeners(client: Client) -> None:
    """Report the request lifecycle through ``--verbose`` debug lines."""
    client.on(BEFORE_REQUEST, lambda request: debug(f"> {request.method} {request.url}"))
    client.on(
        AFTER_REQUEST,
        lambda request, response: debug(f"< {response.status} {response.reason_phrase} ({request.url})"),
    )
    client.on(
        ERROR,
        lambda request, response, decision: debug(
            f"HTTP {response.status} from {request.url} (retry count {decision.retry_count})"
        ),
    )
    client.on(
        EXCEPTION,
        lambda request, exc, decision: debug(
            f"Transport error {exc.code} for {request.url}: {exc.message}"
        ),
    )


def _install_retries(client: Client, retries: int, delay: float) -> None:
    """Retry transport failures and 5xx responses up to *retries* times."""
    if retries <= 0:
        return

    def backoff(decision: RetryDecision) -> None:
        if decision.retry_count >= retries:
            return
        wait = delay * (2 ** decision.retry_count)
        debug(f"Retry {decision.retry_count + 1}/{retries} in {wait:.1f}s")
        time.sleep(wait)
        decision.retry()

    def on_error(request: Request, response: Response, decision: RetryDecision) -> None:
        if response.status >= 500:
            backoff(decision)

    client.on(ERROR, on_error)
    client.on(EXCEPTION, lambda request, exc, decision: backoff(decision))


def _make_client(overrides: dict[str, Any]) -> Client:
    client = Client(config=resolve_config(overrides))
    _attach_debug_listeners(client)
    return client


def request_command(
    method: str = typer.Argument(help="HTTP method, sent as given (e.g. GET, PROPFIND)."),
    url: str = typer.Argument(help="Absolute http(s) URL."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header 'Name: value' (repeatable)."
    ),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body; '@file' streams a file."
    ),
    max_redirects: Optional[int] = typer.Option(
        None, "--max-redirects", min=0, help="Redirects to follow before returning the 3xx."
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Timeout in seconds."),
    retries: int = typer.Option(0, "--retries", min=0, help="Retry transport errors and 5xx responses."),
    retry_delay: float = typer.Option(1.0, "--retry-delay", min=0, help="Initial retry delay in seconds."),
    fail: bool = typer.Option(False, "--fail", help="Exit non-zero when the final status is >= 400."),
    include: bool = typer.Option(False, "--include", "-i", help="Print the status line and headers."),
) -> None:
    """Send one HTTP request and print the response.

    Example::

        httploop request GET https://example.org/ -i
        httploop request PUT https://dav.example.org/a.txt -d @a.txt -H "Content-Type: text/plain"
    """
    body = None
    try:
        headers = [_parse_header(raw) for raw in header or []]
        body = _request_body(data)
        request = Request(method, url, body=body)
        for name, value in headers:
            request.add_header(name, value)

        overrides = {
            "max_redirects": max_redirects,
            "timeout": timeout,
            "throw_exceptions": True if fail else None,
        }
        with _make_client(overrides) as client:
            _install_retries(client, retries, retry_delay)
            try:
                response = client.send(request)
            except HttploopError as exc:
                response = getattr(exc, "response", None)
                if response is not None:
                    get_output().print_response(response, include_headers=include)
                raise
        get_output().print_response(response, include_headers=include)
    except HttploopError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    finally:
        if hasattr(body, "close"):
            body.close()


def fetch_command(
    urls: list[str] = typer.Argument(help="One or more absolute http(s) URLs."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method for every request."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Timeout in seconds."),
    retries: int = typer.Option(0, "--retries", min=0, help="Retry transport errors and 5xx responses."),
    retry_delay: float = typer.Option(1.0, "--retry-delay", min=0, help="Initial retry delay in seconds."),
) -> None:
    """Fetch several URLs concurrently and print one status row per URL.

    A failed URL is resubmitted once its backoff delay has passed; the
    other transfers keep running in the meantime. Exits with a generic
    failure code if any request failed.

    Example::

        httploop --json fetch https://example.org/ https://example.com/
    """
    rows: dict[int, list[str]] = {}
    attempts: dict[int, int] = {}
    # (due time, index) of resubmissions waiting for their delay
    scheduled: list[tuple[float, int]] = []
    failed = False

    def on_success(index: int, url: str) -> SuccessCallback:
        def callback(response: Response) -> None:
            size = len(response.get_body_as_bytes())
            rows[index] = [url, str(response.status), response.reason_phrase, str(size)]
        return callback

    def on_error(index: int, url: str) -> ErrorCallback:
        def callback(failure: FailedRequest) -> None:
            nonlocal failed
            retryable = failure.response is None or failure.http_code >= 500
            attempt = attempts.get(index, 0)
            if retryable and attempt < retries:
                wait = retry_delay * (2 ** attempt)
                attempts[index] = attempt + 1
                debug(f"Retry {attempt + 1}/{retries} of {url} in {wait:.1f}s")
                scheduled.append((time.monotonic() + wait, index))
                return
            failed = True
            if failure.response is not None:
                rows[index] = [url, str(failure.http_code), failure.response.reason_phrase, "-"]
            else:
                message = failure.error.message if failure.error is not None else "failed"
                rows[index] = [url, "-", message, "-"]
        return callback

    try:
        with _make_client({"timeout": timeout}) as client:

            def submit(index: int) -> None:
                url = urls[index]
                client.send_async(Request(method, url), on_success(index, url), on_error(index, url))

            for index in range(len(urls)):
                submit(index)

            while True:
                now = time.monotonic()
                for item in [item for item in scheduled if item[0] <= now]:
                    scheduled.remove(item)
                    submit(item[1])
                if not scheduled:
                    client.wait()
                    if not scheduled:
                        break
                    continue
                remaining = max(0.0, min(due for due, _ in scheduled) - time.monotonic())
                if client.pending:
                    client.wait(timeout=remaining)
                else:
                    time.sleep(remaining)
    except HttploopError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_table(
        ["URL", "Status", "Reason", "Bytes"],
        [rows[index] for index in sorted(rows)],
        title="Fetch results",
    )
    if failed:
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)


def status_command(
    code: int = typer.Argument(help="HTTP status code."),
) -> None:
    """Print the standard reason phrase for a status code.

    Example::

        httploop status 418
    """
    if code < 100 or code > 999:
        exc = InvalidStatusError("The HTTP status code must be exactly 3 digits")
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    output = get_output()
    phrase = reason_phrase(code)
    if output.format == OutputFormat.JSON:
        output.print_json({"status": code, "reason": phrase})
    else:
        output.print_data(f"{code} {phrase}")
