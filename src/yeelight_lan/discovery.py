"""Parsing of Yeelight discovery responses into device records.

A bulb answers an SSDP-style search with a block of ``key: value`` lines::

    HTTP/1.1 200 OK
    Location: yeelight://192.168.1.239:55443
    id: 0x000000000015243f
    model: color
    fw_ver: 18
    support: get_prop set_default set_power toggle set_bright ...
    power: on
    bright: 100
    color_mode: 2
    ct: 4000
    rgb: 16711680
    hue: 100
    sat: 35
    name: my_bulb

Listening for those responses is left to the caller; this module only turns
one response into a :class:`~yeelight_lan.devices.YeelightDevice`.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple, Union

from .devices import YeelightDevice
from .logging import get_logger

REQUIRED_KEYS = (
    "id",
    "model",
    "fw_ver",
    "power",
    "bright",
    "color_mode",
    "ct",
    "rgb",
    "hue",
    "sat",
    "name",
)

logger = get_logger("yeelight.discovery")


class DiscoveryParseError(ValueError):
    """Raised when a discovery response is missing or has malformed fields."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


def _split_headers(response: str) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for line in response.splitlines():
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        headers[key.strip()] = value.strip()
    return headers


def _parse_location(value: Optional[str]) -> Tuple[str, int]:
    if value is None:
        raise DiscoveryParseError("Location", "missing required key")
    if "//" not in value:
        raise DiscoveryParseError("Location", f"expected scheme://ip:port, got {value!r}")
    address = value.split("//", 1)[1]
    parts = address.split(":")
    if len(parts) < 2 or not parts[0]:
        raise DiscoveryParseError("Location", f"expected ip:port, got {address!r}")
    try:
        port = int(parts[1].rstrip("/"))
    except ValueError:
        raise DiscoveryParseError("Location", f"invalid port {parts[1]!r}") from None
    return parts[0], port


def _int_field(headers: Mapping[str, str], key: str) -> int:
    value = headers[key]
    try:
        return int(value)
    except ValueError:
        raise DiscoveryParseError(key, f"expected an integer, got {value!r}") from None


def parse_discovery_response(response: Union[str, bytes]) -> YeelightDevice:
    """Build a device record from one discovery response.

    Raises:
        DiscoveryParseError: a required key is absent or not parseable.
    """
    if isinstance(response, bytes):
        response = response.decode("utf-8", errors="replace")

    headers = _split_headers(response)
    ip, port = _parse_location(headers.get("Location"))
    for key in REQUIRED_KEYS:
        if key not in headers:
            raise DiscoveryParseError(key, "missing required key")

    device = YeelightDevice(
        id=headers["id"],
        ip=ip,
        port=port,
        model=headers["model"],
        fw_ver=_int_field(headers, "fw_ver"),
        support=tuple(headers.get("support", "").split()),
        power=headers["power"] == "on",
        bright=_int_field(headers, "bright"),
        color_mode=_int_field(headers, "color_mode"),
        ct=_int_field(headers, "ct"),
        rgb=_int_field(headers, "rgb"),
        hue=_int_field(headers, "hue"),
        sat=_int_field(headers, "sat"),
        name=headers["name"],
    )
    logger.debug(
        "Parsed discovery response",
        extra={"device_id": device.id, "ip": device.ip, "port": device.port, "model": device.model},
    )
    return device
