"""Shared test fixtures for httploop.

Provides reusable fixtures for isolated config environments, global output
state, mock httpx transports and CLI invocation. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from httploop.client import Client
from httploop.models import ClientConfig
from httploop.output import OutputFormat, OutputManager, reset_output, set_output
from httploop.transport import AsyncioMultiTransport, HttpxTransport

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config. Clears all HTTPLOOP_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("httploop.config._is_xdg_platform", lambda: True)

    for var in [
        "HTTPLOOP_MAX_REDIRECTS",
        "HTTPLOOP_MAX_MEMORY_SIZE",
        "HTTPLOOP_THROW_EXCEPTIONS",
        "HTTPLOOP_TIMEOUT",
        "HTTPLOOP_USER_AGENT",
        "HTTPLOOP_VERIFY_SSL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_client():
    """Factory building a :class:`Client` whose transports are served by *handler*.

    The same handler backs both the blocking and the multiplexed transport.
    Every client built through the factory is closed after the test.
    """
    clients: list[Client] = []

    def factory(handler: Handler, config: ClientConfig | None = None) -> Client:
        mock = httpx.MockTransport(handler)
        config = config or ClientConfig()
        client = Client(
            config=config,
            transport=HttpxTransport(max_memory_size=config.max_memory_size, http_transport=mock),
            multi_transport=AsyncioMultiTransport(
                max_memory_size=config.max_memory_size, http_transport=mock
            ),
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
