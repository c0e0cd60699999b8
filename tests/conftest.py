import logging
import socket
import threading
import time
from typing import Optional

import pytest


class DeviceStub:
    """Loopback TCP peer that accepts one connection and reads one command line."""

    def __init__(
        self,
        reply: Optional[bytes] = None,
        close_without_reply: bool = False,
        trickle_interval: Optional[float] = None,
    ) -> None:
        self.reply = reply
        self.close_without_reply = close_without_reply
        self.trickle_interval = trickle_interval
        self.received = b""
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self._server.settimeout(5.0)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _addr = self._server.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5.0)
            try:
                while not self.received.endswith(b"\r\n"):
                    chunk = conn.recv(1024)
                    if not chunk:
                        return
                    self.received += chunk
                if self.close_without_reply:
                    return
                if self.trickle_interval is not None:
                    # One byte at a time, never a newline, until the client hangs up.
                    while True:
                        conn.sendall(b"x")
                        time.sleep(self.trickle_interval)
                if self.reply is not None:
                    conn.sendall(self.reply)
                # Hold the connection open until the client hangs up.
                conn.recv(1024)
            except OSError:
                return

    def close(self) -> None:
        self._thread.join(timeout=5.0)
        self._server.close()


@pytest.fixture
def device_stub():
    stubs = []

    def _factory(
        reply: Optional[bytes] = None,
        close_without_reply: bool = False,
        trickle_interval: Optional[float] = None,
    ) -> DeviceStub:
        stub = DeviceStub(
            reply=reply,
            close_without_reply=close_without_reply,
            trickle_interval=trickle_interval,
        )
        stubs.append(stub)
        return stub

    yield _factory
    for stub in stubs:
        stub.close()


@pytest.fixture
def closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    for name in ("yeelight", "yeelight.protocol", "yeelight.sender", "yeelight.discovery", "yeelight.cli"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
    root = logging.getLogger()
    for handler in [h for h in root.handlers if type(h) is logging.StreamHandler]:
        root.removeHandler(handler)
