"""Protocol handlers for LAN-controlled lights."""

from __future__ import annotations

from .base import ProtocolHandler
from .yeelight import (
    DEFAULT_PORT,
    LINE_TERMINATOR,
    DeviceResponse,
    YeelightProtocolHandler,
)

__all__ = [
    "ProtocolHandler",
    "YeelightProtocolHandler",
    "DeviceResponse",
    "DEFAULT_PORT",
    "LINE_TERMINATOR",
]
