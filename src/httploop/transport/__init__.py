"""Transport adapters: the boundary where requests actually hit the network."""

from httploop.transport.base import (
    KNOWN_SETTINGS,
    MultiTransport,
    RawResult,
    TransferHandle,
    Transport,
    TransportErrorCode,
    TransportSettings,
    TransportStatus,
)
from httploop.transport.httpx_transport import HttpxTransport
from httploop.transport.multi import AsyncioMultiTransport

__all__ = [
    "KNOWN_SETTINGS",
    "AsyncioMultiTransport",
    "HttpxTransport",
    "MultiTransport",
    "RawResult",
    "TransferHandle",
    "Transport",
    "TransportErrorCode",
    "TransportSettings",
    "TransportStatus",
]
