"""Pydantic models for client configuration.

:class:`ClientConfig` is serialised as JSON in the user's config directory
(and optionally in ``./httploop.json``) and is what every
:class:`~httploop.client.Client` is constructed from. Unknown keys in a
config file are rejected so that typos surface as a
:class:`~httploop.exceptions.ConfigError` instead of being ignored.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from httploop import __version__

DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_MEMORY_SIZE = 2 * 1024 * 1024
DEFAULT_USER_AGENT = f"httploop/{__version__}"


class ClientConfig(BaseModel):
    """Settings shared by the synchronous and asynchronous engines.

    Example::

        ClientConfig(max_redirects=2, throw_exceptions=True, timeout=10)
    """

    model_config = ConfigDict(extra="forbid")

    max_redirects: int = Field(
        default=DEFAULT_MAX_REDIRECTS, ge=0,
        description="Redirects followed by send() before the 3xx is returned as-is",
    )
    max_memory_size: int = Field(
        default=DEFAULT_MAX_MEMORY_SIZE, ge=0,
        description="Response bodies larger than this many bytes spill to a temp file",
    )
    throw_exceptions: bool = Field(
        default=False, description="Raise ClientHttpError when the final status is >= 400"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="Default User-Agent header")
    timeout: Optional[float] = Field(
        default=30.0, description="Per-request timeout in seconds (None disables it)"
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    select_timeout: float = Field(
        default=1.0, gt=0, description="Seconds wait() blocks per round before polling again"
    )
    transport_settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Transport setting overrides applied to every request",
    )
