"""Base protocol handler interface for device communication protocols."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from ..commands import Command


class ProtocolHandler(ABC):
    """Abstract base class for device protocol handlers.

    Each protocol handler is responsible for:
    - Framing a :class:`~yeelight_lan.commands.Command` for the wire
    - Providing protocol-specific default configuration (port, transport)
    - Decoding the device's reply into a structured response
    """

    @abstractmethod
    def wrap_command(self, command: Command) -> bytes:
        """Convert a command into the exact bytes written to the device.

        Args:
            command: Encoded command (method plus ordered params)

        Returns:
            Framed payload including the protocol's message terminator.
        """
        pass

    @abstractmethod
    def parse_response(self, line: Union[str, bytes]) -> Optional[Any]:
        """Decode a single reply line.

        Returns:
            Protocol-specific response object, or None when the line is not
            a recognisable reply. Implementations must not raise.
        """
        pass

    @abstractmethod
    def get_default_port(self) -> int:
        """Get default control port for this protocol.

        Returns:
            Port number for sending control commands to devices.
        """
        pass

    @abstractmethod
    def get_default_transport(self) -> str:
        """Get default transport type for this protocol.

        Returns:
            Transport type: 'udp' or 'tcp'
        """
        pass

    @property
    @abstractmethod
    def protocol_name(self) -> str:
        """Get the protocol identifier."""
        pass
