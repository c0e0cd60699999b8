"""LAN control client for Yeelight smart lights."""

from .commands import (
    Command,
    CronPowerOff,
    Effect,
    FlowColor,
    FlowEndAction,
    FlowSleep,
    FlowWhiteTemperature,
    SceneAutoDelayOff,
    SceneColorFlow,
    SceneColorHsv,
    SceneColorRgb,
    SceneColorTemperature,
)
from .devices import DeviceClient, YeelightDevice
from .discovery import DiscoveryParseError, parse_discovery_response
from .sender import DeviceSender, DeviceTarget, TransportError

__all__ = [
    "Command",
    "CronPowerOff",
    "DeviceClient",
    "DeviceSender",
    "DeviceTarget",
    "DiscoveryParseError",
    "Effect",
    "FlowColor",
    "FlowEndAction",
    "FlowSleep",
    "FlowWhiteTemperature",
    "SceneAutoDelayOff",
    "SceneColorFlow",
    "SceneColorHsv",
    "SceneColorRgb",
    "SceneColorTemperature",
    "TransportError",
    "YeelightDevice",
    "parse_discovery_response",
]

__version__ = "0.1.0"
