"""State and helpers shared by the synchronous and asynchronous engines."""

from __future__ import annotations

import logging
from typing import Any, Optional

from httploop.events import EventEmitter
from httploop.exceptions import ClientError, InvalidUsageError
from httploop.models import ClientConfig
from httploop.request import Request
from httploop.response import Response
from httploop.transport.base import KNOWN_SETTINGS, RawResult, TransportSettings

logger = logging.getLogger(__name__)


class BaseClient(EventEmitter):
    """Configuration, transport settings and result parsing.

    Args:
        config: Client settings. Defaults to :class:`ClientConfig` defaults.

    Raises:
        InvalidUsageError: If ``config.transport_settings`` names an
            unknown setting.
    """

    def __init__(self, *, config: Optional[ClientConfig] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config if config is not None else ClientConfig()
        self._settings: TransportSettings = {}
        for name, value in self.config.transport_settings.items():
            self.add_transport_setting(name, value)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> BaseClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Release transport resources."""

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    @property
    def throw_exceptions(self) -> bool:
        return self.config.throw_exceptions

    def set_throw_exceptions(self, throw_exceptions: bool) -> None:
        """Raise :class:`ClientHttpError` from ``send()`` when the final status is >= 400."""
        self.config = self.config.model_copy(update={"throw_exceptions": throw_exceptions})

    def add_transport_setting(self, name: str, value: Any) -> None:
        """Override a transport setting for every subsequent request.

        Raises:
            InvalidUsageError: If *name* is not a recognized setting.
        """
        if name not in KNOWN_SETTINGS:
            known = ", ".join(sorted(KNOWN_SETTINGS))
            raise InvalidUsageError(f"Unknown transport setting {name!r} (expected one of: {known})")
        self._settings[name] = value

    def create_settings(self, request: Request) -> TransportSettings:
        """Build the transport settings for *request* from scratch.

        Nothing carries over from a previous request except the defaults and
        the overrides registered with :meth:`add_transport_setting`.
        """
        settings: TransportSettings = {
            "user_agent": self.config.user_agent,
            "timeout": self.config.timeout,
            "nobody": False,
        }
        settings.update(self._settings)
        if request.method == "HEAD":
            settings["nobody"] = True
        return settings

    # ------------------------------------------------------------------ #
    # Results
    # ------------------------------------------------------------------ #

    def parse_result(self, result: RawResult) -> Response:
        """Build a :class:`Response` from a successful (or HTTP error) transfer.

        The result's body stream is handed over to the response. Header
        lines without a colon are ignored.
        """
        response = Response(result.http_code)
        for line in result.header_lines:
            if line.startswith("HTTP/"):
                response.http_version = line.split(" ", 1)[0][len("HTTP/"):]
                continue
            name, sep, value = line.partition(":")
            if sep:
                response.add_header(name.strip(), value.strip())
        body = result.detach_body()
        if body is not None:
            response.body = body
        return response

    @staticmethod
    def transport_error(result: RawResult) -> ClientError:
        return ClientError(result.error_message, result.error_code)
