"""CLI output with strict stdout/stderr discipline.

* **stdout** -- response data only (bodies, status tables, config dumps).
* **stderr** -- diagnostics: progress messages, errors, ``--verbose`` debug lines
  describing redirects and retries as they happen.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and
  ``--no-color``.

:class:`OutputManager` holds the preferences; it is created once in
:func:`~httploop.app.main_callback` and installed with :func:`set_output`.
The module-level helpers delegate to that global instance.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

if TYPE_CHECKING:
    from httploop.response import Response


class OutputFormat(str, Enum):
    """Supported output formats. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


_SYNTAX_BY_TYPE = {
    "application/json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "text/html": "html",
    "application/javascript": "javascript",
    "text/css": "css",
}


class OutputManager:
    """Routes every CLI message to the right stream in the right format.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Show debug messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def print_response(self, response: Response, include_headers: bool = False) -> None:
        """Print *response* to stdout.

        * **JSON mode** -- one object with ``status``, ``reason``,
          ``headers`` and ``body``.
        * **Plain mode** -- the body as-is, preceded by the status line and
          headers when *include_headers* is set.
        * **Rich mode** -- like plain, with a styled status line and syntax
          highlighting chosen from ``Content-Type``.
        """
        body = response.get_body_as_string()

        if self._format == OutputFormat.JSON:
            self.print_json({
                "status": response.status,
                "reason": response.reason_phrase,
                "headers": response.headers,
                "body": body,
            })
            return

        if include_headers:
            status_line = f"HTTP/{response.http_version} {response.status} {response.reason_phrase}"
            if self._format == OutputFormat.RICH:
                style = "green" if response.status < 400 else "red"
                self._stdout.print(f"[bold {style}]{status_line}[/bold {style}]", highlight=False)
                for name, values in response.headers.items():
                    for value in values:
                        self._stdout.print(f"[cyan]{name}[/cyan]: {value}", highlight=False)
                self._stdout.print()
            else:
                self.print_data(status_line)
                for name, values in response.headers.items():
                    for value in values:
                        self.print_data(f"{name}: {value}")
                self.print_data("")

        if not body:
            return
        if self._format == OutputFormat.RICH:
            self._print_rich_body(body, response.get_header("Content-Type") or "")
        else:
            self.print_data(body)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table`.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values, one row per line.
        """
        if self._format == OutputFormat.JSON:
            self.print_json([dict(zip(headers, row)) for row in rows])
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message)

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[green]{message}[/green]")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown with ``--verbose``."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {message}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_rich_body(self, body: str, content_type: str) -> None:
        mime = content_type.split(";", 1)[0].strip().lower()
        lexer = _SYNTAX_BY_TYPE.get(mime)
        if lexer is None and mime.endswith("+json"):
            lexer = "json"
        if lexer == "json":
            try:
                body = json.dumps(json.loads(body), indent=2, ensure_ascii=False)
            except ValueError:
                lexer = None
        if lexer is None:
            self._stdout.print(body, highlight=False, markup=False)
        else:
            self._stdout.print(Syntax(body, lexer, theme="monokai", word_wrap=True))


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager`; mainly for test isolation."""
    global _output
    _output = None


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)


def success(message: str) -> None:
    get_output().success(message)
