"""One-shot TCP transport for device commands."""

from __future__ import annotations

import asyncio
import socket
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .commands import Command
from .config import Config
from .logging import get_logger
from .protocol import ProtocolHandler, YeelightProtocolHandler

READ_CHUNK_SIZE = 4096
MAX_REPLY_BYTES = 64 * 1024


class TransportError(OSError):
    """Raised when a device cannot be reached or the exchange breaks mid-way.

    A device that simply does not answer is not an error; ``send`` returns
    None in that case.
    """

    def __init__(self, message: str, device_id: str, ip: str, port: int) -> None:
        super().__init__(message)
        self.device_id = device_id
        self.ip = ip
        self.port = port


@dataclass(frozen=True)
class DeviceTarget:
    """Resolved transport target for a device."""

    id: str
    ip: str
    port: int


def _derive_target(device: Any) -> DeviceTarget:
    if isinstance(device, DeviceTarget):
        return device
    return DeviceTarget(id=str(device.id), ip=str(device.ip), port=int(device.port))


class DeviceSender:
    """Send a command over a fresh connection and read at most one reply line.

    The sender keeps no per-call state, so a single instance can serve any
    number of concurrent calls from threads or asyncio tasks.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        handler: Optional[ProtocolHandler] = None,
    ) -> None:
        self.config = config or Config()
        self.handler = handler or YeelightProtocolHandler()
        self.logger = get_logger("yeelight.sender")

    def send(self, device: Any, command: Command, read_reply: bool = True) -> Optional[str]:
        """Deliver ``command`` to ``device`` and return the reply line, if any.

        Raises:
            TransportError: connecting, writing or reading failed.
        """
        target = _derive_target(device)
        payload = self.handler.wrap_command(command)
        context = {
            "device_id": target.id,
            "ip": target.ip,
            "port": target.port,
            "method": command.method,
        }

        try:
            sock = socket.create_connection(
                (target.ip, target.port), timeout=self.config.device_connect_timeout
            )
        except OSError as exc:
            self.logger.warning(
                "TCP connect failed",
                exc_info=(type(exc), exc, exc.__traceback__),
                extra=context,
            )
            raise TransportError(
                f"Cannot connect to {target.ip}:{target.port}: {exc}",
                target.id,
                target.ip,
                target.port,
            ) from exc

        with sock:
            sock.settimeout(self.config.device_read_timeout)
            self.logger.debug("Sending command", extra={**context, "payload": command.render()})
            try:
                sock.sendall(payload)
            except OSError as exc:
                self.logger.warning(
                    "TCP send failed",
                    exc_info=(type(exc), exc, exc.__traceback__),
                    extra=context,
                )
                raise TransportError(
                    f"Failed to write to {target.ip}:{target.port}: {exc}",
                    target.id,
                    target.ip,
                    target.port,
                ) from exc

            if not read_reply:
                return None

            line = self._read_line(sock, target, context)

        if line is None:
            return None
        reply = line.decode("utf-8", errors="replace").rstrip("\r")
        self.logger.debug("Received reply", extra={**context, "reply": reply})
        return reply

    def _read_line(
        self, sock: socket.socket, target: DeviceTarget, context: Dict[str, Any]
    ) -> Optional[bytes]:
        """Read until the first newline, the read deadline, or the peer closing.

        The deadline bounds the whole read, so a peer trickling bytes cannot
        hold the call open past ``device_read_timeout``.
        """
        deadline = time.monotonic() + self.config.device_read_timeout
        buffer = b""
        while b"\n" not in buffer:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.debug("No reply before timeout", extra=context)
                return None
            sock.settimeout(remaining)
            try:
                chunk = sock.recv(READ_CHUNK_SIZE)
            except socket.timeout:
                self.logger.debug("No reply before timeout", extra=context)
                return None
            except OSError as exc:
                self.logger.warning(
                    "TCP read failed",
                    exc_info=(type(exc), exc, exc.__traceback__),
                    extra=context,
                )
                raise TransportError(
                    f"Failed to read from {target.ip}:{target.port}: {exc}",
                    target.id,
                    target.ip,
                    target.port,
                ) from exc
            if not chunk:
                if not buffer:
                    self.logger.debug("Connection closed without reply", extra=context)
                    return None
                return buffer
            buffer += chunk
            if b"\n" not in buffer and len(buffer) > MAX_REPLY_BYTES:
                self.logger.warning("Reply exceeds size limit", extra=context)
                raise TransportError(
                    f"Reply from {target.ip}:{target.port} exceeds {MAX_REPLY_BYTES} bytes",
                    target.id,
                    target.ip,
                    target.port,
                )
        return buffer.split(b"\n", 1)[0]

    async def send_async(
        self, device: Any, command: Command, read_reply: bool = True
    ) -> Optional[str]:
        """Run :meth:`send` on a worker thread."""

        return await asyncio.to_thread(self.send, device, command, read_reply)

    async def broadcast(
        self, devices: Iterable[Any], command: Command, read_reply: bool = True
    ) -> List[Tuple[DeviceTarget, Union[Optional[str], TransportError]]]:
        """Send ``command`` to every device concurrently.

        Returns one ``(target, outcome)`` pair per input device, in input
        order. The outcome is the reply line (or None), or the TransportError
        raised for that device. Devices sharing an id each get their own entry.
        """
        targets = [_derive_target(device) for device in devices]
        results = await asyncio.gather(
            *(self.send_async(target, command, read_reply) for target in targets),
            return_exceptions=True,
        )
        outcome: List[Tuple[DeviceTarget, Union[Optional[str], TransportError]]] = []
        for target, result in zip(targets, results):
            if isinstance(result, BaseException) and not isinstance(result, TransportError):
                raise result
            outcome.append((target, result))
        return outcome
