"""Device records and per-device command helpers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Union

from . import commands
from .commands import Command, Cron, Effect, FlowEndAction, FlowTuple, Scene
from .logging import get_logger
from .sender import DeviceSender, DeviceTarget

STATE_PROPERTIES = ("power", "bright", "color_mode", "ct", "rgb", "hue", "sat", "name")

_INT_PROPERTIES = {"bright", "color_mode", "ct", "rgb", "hue", "sat"}


@dataclass(frozen=True)
class YeelightDevice:
    """Identity and last known state of a bulb.

    Records are never updated in place; :meth:`DeviceClient.refresh` returns a
    new record instead.
    """

    id: str
    ip: str
    port: int
    model: str
    fw_ver: int
    support: Tuple[str, ...]
    power: bool
    bright: int
    color_mode: int
    ct: int
    rgb: int
    hue: int
    sat: int
    name: str

    def supports(self, method: str) -> bool:
        return method in self.support

    def target(self) -> DeviceTarget:
        return DeviceTarget(id=self.id, ip=self.ip, port=self.port)


def _coerce_property(name: str, value: Any) -> Any:
    if name == "power":
        return value == "on"
    if name in _INT_PROPERTIES:
        return int(value)
    return str(value)


class DeviceClient:
    """Issue commands to a single device.

    Every call opens its own connection, so one client may be shared between
    threads or tasks. Methods return the raw reply line, or None when the
    device did not answer before the read timeout.
    """

    def __init__(self, device: YeelightDevice, sender: Optional[DeviceSender] = None) -> None:
        self.device = device
        self.sender = sender or DeviceSender()
        self.logger = get_logger("yeelight.devices")

    def send(self, command: Command) -> Optional[str]:
        return self.sender.send(self.device, command)

    async def send_async(self, command: Command) -> Optional[str]:
        return await self.sender.send_async(self.device, command)

    def _transition(
        self, effect: Optional[Union[Effect, str]], duration: Optional[timedelta]
    ) -> Dict[str, Any]:
        config = self.sender.config
        return {
            "effect": effect if effect is not None else config.default_effect,
            "duration": (
                duration
                if duration is not None
                else timedelta(milliseconds=config.default_duration_ms)
            ),
        }

    def get_properties(self, *names: str) -> Optional[str]:
        return self.send(commands.get_properties(names))

    def set_default(self) -> Optional[str]:
        return self.send(commands.set_default())

    def set_power(
        self,
        on: bool = True,
        effect: Optional[Union[Effect, str]] = None,
        duration: Optional[timedelta] = None,
    ) -> Optional[str]:
        return self.send(commands.set_power(on, **self._transition(effect, duration)))

    def toggle(self) -> Optional[str]:
        return self.send(commands.toggle())

    def set_brightness(
        self,
        brightness: int,
        effect: Optional[Union[Effect, str]] = None,
        duration: Optional[timedelta] = None,
    ) -> Optional[str]:
        return self.send(
            commands.set_brightness(brightness, **self._transition(effect, duration))
        )

    def start_color_flow(
        self,
        flow_tuples: Sequence[FlowTuple],
        repeat: int = 1,
        action: FlowEndAction = FlowEndAction.RECOVER,
    ) -> Optional[str]:
        return self.send(commands.start_color_flow(flow_tuples, repeat, action))

    def start_color_flow_raw(
        self, count: int, action: FlowEndAction, expression: str
    ) -> Optional[str]:
        return self.send(commands.start_color_flow_raw(count, action, expression))

    def stop_color_flow(self) -> Optional[str]:
        return self.send(commands.stop_color_flow())

    def set_scene(self, scene: Scene) -> Optional[str]:
        return self.send(commands.set_scene(scene))

    def cron_add(self, cron: Cron) -> Optional[str]:
        return self.send(commands.cron_add(cron))

    def cron_get(self) -> Optional[str]:
        return self.send(commands.cron_get())

    def cron_del(self) -> Optional[str]:
        return self.send(commands.cron_del())

    def set_white_temperature(
        self,
        temperature: int,
        effect: Optional[Union[Effect, str]] = None,
        duration: Optional[timedelta] = None,
    ) -> Optional[str]:
        return self.send(
            commands.set_white_temperature(temperature, **self._transition(effect, duration))
        )

    def set_color_rgb(
        self,
        color: int,
        effect: Optional[Union[Effect, str]] = None,
        duration: Optional[timedelta] = None,
    ) -> Optional[str]:
        return self.send(commands.set_color_rgb(color, **self._transition(effect, duration)))

    def set_color_hsv(
        self,
        hue: int,
        sat: int,
        effect: Optional[Union[Effect, str]] = None,
        duration: Optional[timedelta] = None,
    ) -> Optional[str]:
        return self.send(
            commands.set_color_hsv(hue, sat, **self._transition(effect, duration))
        )

    def refresh(self, names: Iterable[str] = STATE_PROPERTIES) -> YeelightDevice:
        """Query current state and return an updated copy of the device record."""

        names = tuple(names)
        reply = self.get_properties(*names)
        if reply is None:
            return self.device
        response = self.sender.handler.parse_response(reply)
        if response is None or not response.ok or not isinstance(response.result, list):
            self.logger.warning(
                "Property query returned no usable result",
                extra={"device_id": self.device.id, "reply": reply},
            )
            return self.device

        changes: Dict[str, Any] = {}
        for name, value in zip(names, response.result):
            if name not in STATE_PROPERTIES or value == "":
                continue
            try:
                changes[name] = _coerce_property(name, value)
            except (TypeError, ValueError):
                self.logger.debug(
                    "Ignoring unparseable property",
                    extra={"device_id": self.device.id, "property": name, "value": value},
                )
        return replace(self.device, **changes)
