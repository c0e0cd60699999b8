"""Yeelight LAN protocol handler."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..commands import Command
from ..logging import get_logger
from .base import ProtocolHandler

LINE_TERMINATOR = b"\r\n"
DEFAULT_PORT = 55443


@dataclass(frozen=True)
class DeviceResponse:
    """Decoded reply line.

    Exactly one of ``result``, ``error`` or ``notification`` is populated for
    well-formed replies. ``raw`` always holds the line as received.
    """

    raw: str
    id: Optional[int] = None
    result: Optional[Any] = None
    error: Optional[Mapping[str, Any]] = None
    notification: Optional[Mapping[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None

    @property
    def error_code(self) -> Optional[int]:
        if self.error is None:
            return None
        code = self.error.get("code")
        return code if isinstance(code, int) else None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        message = self.error.get("message")
        return str(message) if message is not None else None


class YeelightProtocolHandler(ProtocolHandler):
    """Protocol handler for Yeelight LAN devices.

    Yeelight uses one JSON object per line over TCP port 55443:
    - request: {"id":1,"method":"set_power","params":["on","smooth",500]}
    - reply:   {"id":1,"result":["ok"]} or {"id":1,"error":{"code":-1,"message":"..."}}
    - notification: {"method":"props","params":{"power":"on"}}
    """

    def __init__(self) -> None:
        self.logger = get_logger("yeelight.protocol")

    @property
    def protocol_name(self) -> str:
        return "yeelight"

    def get_default_port(self) -> int:
        return DEFAULT_PORT

    def get_default_transport(self) -> str:
        """Yeelight accepts control commands over TCP only."""
        return "tcp"

    def wrap_command(self, command: Command) -> bytes:
        """Render ``command`` as compact JSON terminated by CRLF.

        Transforms:
            Command("set_bright", (50, "smooth", 500))
        Into:
            b'{"id":1,"method":"set_bright","params":[50,"smooth",500]}\\r\\n'
        """
        return command.render().encode("utf-8") + LINE_TERMINATOR

    def parse_response(self, line: Union[str, bytes]) -> Optional[DeviceResponse]:
        if isinstance(line, bytes):
            try:
                text = line.decode("utf-8")
            except UnicodeDecodeError:
                self.logger.debug("Ignoring non-UTF8 reply")
                return None
        else:
            text = line
        text = text.strip()
        if not text:
            return None

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            self.logger.debug("Ignoring non-JSON reply", extra={"reply": text})
            return None

        if not isinstance(payload, Mapping):
            self.logger.debug("Ignoring non-object reply", extra={"reply": text})
            return None

        reply_id = payload.get("id")
        if not isinstance(reply_id, int) or isinstance(reply_id, bool):
            reply_id = None

        if "error" in payload:
            error = payload["error"]
            if not isinstance(error, Mapping):
                error = {"message": str(error)}
            return DeviceResponse(raw=text, id=reply_id, error=error)

        if "result" in payload:
            return DeviceResponse(raw=text, id=reply_id, result=payload["result"])

        if payload.get("method") == "props" and isinstance(payload.get("params"), Mapping):
            return DeviceResponse(raw=text, id=reply_id, notification=payload["params"])

        self.logger.debug("Unrecognised reply shape", extra={"reply": text})
        return None
