"""Command builders for the Yeelight LAN control protocol.

Every builder returns an immutable :class:`Command`. Numeric arguments are
clamped to the ranges the device accepts rather than rejected, so callers can
pass raw slider or sensor values without pre-validating them.

Reference: Yeelight WiFi Light Inter-Operation Specification.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Optional, Sequence, Tuple, Union

ParamValue = Union[int, str]

DEFAULT_DURATION = timedelta(milliseconds=500)
MIN_FLOW_DURATION = timedelta(milliseconds=50)
MIN_CRON_DURATION = timedelta(minutes=1)

BRIGHTNESS_RANGE = (1, 100)
FLOW_BRIGHTNESS_RANGE = (-1, 100)
TEMPERATURE_RANGE = (1700, 6500)
RGB_RANGE = (0x000000, 0xFFFFFF)
HUE_RANGE = (0, 359)
SATURATION_RANGE = (0, 100)
MINUTES_RANGE = (1, 2**31 - 1)


class Effect(str, Enum):
    """Transition style applied by the device when changing state."""

    SUDDEN = "sudden"
    SMOOTH = "smooth"


class FlowEndAction(int, Enum):
    """What the device does once a color flow finishes."""

    RECOVER = 0
    STAY = 1
    OFF = 2


class FlowMode(int, Enum):
    COLOR_RGB = 1
    COLOR_TEMPERATURE = 2
    SLEEP = 7


def _clamp(value: int, bounds: Tuple[int, int]) -> int:
    minimum, maximum = bounds
    return max(minimum, min(maximum, int(value)))


def _milliseconds(duration: timedelta) -> int:
    return int(duration // timedelta(milliseconds=1))


def _whole_minutes(duration: timedelta) -> int:
    return int(max(duration, MIN_CRON_DURATION) // MIN_CRON_DURATION)


def _coerce_effect(effect: Union[Effect, str]) -> Effect:
    if isinstance(effect, Effect):
        return effect
    try:
        return Effect(str(effect).lower())
    except ValueError:
        raise ValueError(
            f"Unknown effect: {effect}. Supported effects: "
            f"{', '.join(item.value for item in Effect)}"
        ) from None


def _transition(effect: Union[Effect, str], duration: timedelta) -> Tuple[ParamValue, ...]:
    return (_coerce_effect(effect).value, _milliseconds(duration))


@dataclass(frozen=True)
class Command:
    """A single protocol request: method name plus ordered parameters."""

    id: ClassVar[int] = 1

    method: str
    params: Tuple[ParamValue, ...] = ()

    def payload(self) -> Dict[str, Any]:
        return {"id": self.id, "method": self.method, "params": list(self.params)}

    def render(self) -> str:
        """Return the compact JSON text sent on the wire (without terminator)."""

        return json.dumps(self.payload(), separators=(",", ":"), ensure_ascii=False)


# Color flow


@dataclass(frozen=True)
class FlowTuple:
    """One step of a color flow, rendered as ``duration,mode,value,brightness``.

    Values are normalised on construction: the duration is floored at 50 ms,
    ``value`` and ``brightness`` are clamped for the step's mode, and sleep
    steps always carry zeros.
    """

    duration: timedelta
    mode: FlowMode
    value: int
    brightness: int

    def __post_init__(self) -> None:
        mode = FlowMode(self.mode)
        if mode is FlowMode.SLEEP:
            value, brightness = 0, 0
        else:
            bounds = RGB_RANGE if mode is FlowMode.COLOR_RGB else TEMPERATURE_RANGE
            value = _clamp(self.value, bounds)
            brightness = _clamp(self.brightness, FLOW_BRIGHTNESS_RANGE)
        object.__setattr__(self, "duration", max(self.duration, MIN_FLOW_DURATION))
        object.__setattr__(self, "mode", mode)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "brightness", brightness)

    def __str__(self) -> str:
        return f"{_milliseconds(self.duration)},{self.mode.value},{self.value},{self.brightness}"


class FlowColor(FlowTuple):
    """RGB step. A brightness of -1 keeps the current brightness."""

    def __init__(
        self,
        color: int,
        brightness: int = 100,
        duration: timedelta = timedelta(seconds=1),
    ) -> None:
        super().__init__(duration, FlowMode.COLOR_RGB, color, brightness)


class FlowWhiteTemperature(FlowTuple):
    def __init__(
        self,
        temperature: int,
        brightness: int = 100,
        duration: timedelta = timedelta(seconds=1),
    ) -> None:
        super().__init__(duration, FlowMode.COLOR_TEMPERATURE, temperature, brightness)


class FlowSleep(FlowTuple):
    def __init__(self, duration: timedelta = timedelta(seconds=1)) -> None:
        super().__init__(duration, FlowMode.SLEEP, 0, 0)


def _color_flow_params(
    flow_tuples: Sequence[FlowTuple],
    repeat: int,
    action: FlowEndAction,
) -> Tuple[ParamValue, ...]:
    count = max(1, int(repeat)) * len(flow_tuples)
    expression = ",".join(str(step) for step in flow_tuples)
    return (count, FlowEndAction(action).value, expression)


# Scenes

_SCENE_BOUNDS: Dict[str, Optional[Tuple[Tuple[int, int], ...]]] = {
    "hsv": (HUE_RANGE, SATURATION_RANGE, BRIGHTNESS_RANGE),
    "color": (RGB_RANGE, BRIGHTNESS_RANGE),
    "ct": (TEMPERATURE_RANGE, BRIGHTNESS_RANGE),
    "auto_delay_off": (BRIGHTNESS_RANGE, MINUTES_RANGE),
    "cf": None,
}


@dataclass(frozen=True)
class Scene:
    """Device-side preset applied in a single ``set_scene`` call.

    Numeric params of the fixed-layout scenes are clamped on construction.
    ``cf`` params are produced by :class:`SceneColorFlow` and pass through.
    """

    name: str
    params: Tuple[ParamValue, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.name not in _SCENE_BOUNDS:
            raise ValueError(
                f"Unknown scene: {self.name}. Supported scenes: {', '.join(_SCENE_BOUNDS)}"
            )
        params = tuple(self.params)
        bounds = _SCENE_BOUNDS[self.name]
        if bounds is not None:
            if len(params) != len(bounds):
                raise ValueError(
                    f"Scene {self.name} takes {len(bounds)} params; got {len(params)}"
                )
            params = tuple(_clamp(value, limits) for value, limits in zip(params, bounds))
        object.__setattr__(self, "params", params)


class SceneColorHsv(Scene):
    def __init__(self, hue: int, sat: int, brightness: int) -> None:
        super().__init__("hsv", (hue, sat, brightness))


class SceneColorRgb(Scene):
    def __init__(self, color: int, brightness: int) -> None:
        super().__init__("color", (color, brightness))


class SceneColorTemperature(Scene):
    def __init__(self, temperature: int, brightness: int) -> None:
        super().__init__("ct", (temperature, brightness))


class SceneColorFlow(Scene):
    def __init__(
        self,
        flow_tuples: Sequence[FlowTuple],
        repeat: int = 1,
        action: FlowEndAction = FlowEndAction.RECOVER,
    ) -> None:
        super().__init__("cf", _color_flow_params(flow_tuples, repeat, action))


class SceneAutoDelayOff(Scene):
    """Turn on at ``brightness`` and switch off after ``duration`` (whole minutes)."""

    def __init__(self, brightness: int, duration: timedelta = MIN_CRON_DURATION) -> None:
        super().__init__("auto_delay_off", (brightness, _whole_minutes(duration)))


# Cron


@dataclass(frozen=True)
class Cron:
    """Device-side timer. Only power-off timers exist in the protocol today."""

    type: int
    duration: timedelta


class CronPowerOff(Cron):
    def __init__(self, duration: timedelta) -> None:
        super().__init__(type=0, duration=duration)


# Operations


def get_properties(names: Iterable[str]) -> Command:
    return Command("get_prop", tuple(str(name) for name in names))


def set_default() -> Command:
    return Command("set_default")


def set_power(
    on: bool = True,
    effect: Union[Effect, str] = Effect.SMOOTH,
    duration: timedelta = DEFAULT_DURATION,
) -> Command:
    return Command("set_power", ("on" if on else "off",) + _transition(effect, duration))


def toggle() -> Command:
    return Command("toggle")


def set_brightness(
    brightness: int,
    effect: Union[Effect, str] = Effect.SMOOTH,
    duration: timedelta = DEFAULT_DURATION,
) -> Command:
    return Command(
        "set_bright", (_clamp(brightness, BRIGHTNESS_RANGE),) + _transition(effect, duration)
    )


def start_color_flow(
    flow_tuples: Sequence[FlowTuple],
    repeat: int = 1,
    action: FlowEndAction = FlowEndAction.RECOVER,
) -> Command:
    return Command("start_cf", _color_flow_params(flow_tuples, repeat, action))


def start_color_flow_raw(count: int, action: FlowEndAction, expression: str) -> Command:
    """Start a flow from an already rendered expression."""

    return Command("start_cf", (int(count), FlowEndAction(action).value, expression))


def stop_color_flow() -> Command:
    return Command("stop_cf")


def set_scene(scene: Scene) -> Command:
    return Command("set_scene", (scene.name,) + tuple(scene.params))


def cron_add(cron: Cron) -> Command:
    return Command("cron_add", (cron.type, _whole_minutes(cron.duration)))


def cron_get() -> Command:
    return Command("cron_get")


def cron_del() -> Command:
    return Command("cron_del")


def set_white_temperature(
    temperature: int,
    effect: Union[Effect, str] = Effect.SMOOTH,
    duration: timedelta = DEFAULT_DURATION,
) -> Command:
    return Command(
        "set_ct_abx", (_clamp(temperature, TEMPERATURE_RANGE),) + _transition(effect, duration)
    )


def set_color_rgb(
    color: int,
    effect: Union[Effect, str] = Effect.SMOOTH,
    duration: timedelta = DEFAULT_DURATION,
) -> Command:
    return Command("set_rgb", (_clamp(color, RGB_RANGE),) + _transition(effect, duration))


def set_color_hsv(
    hue: int,
    sat: int,
    effect: Union[Effect, str] = Effect.SMOOTH,
    duration: timedelta = DEFAULT_DURATION,
) -> Command:
    return Command(
        "set_hsv",
        (_clamp(hue, HUE_RANGE), _clamp(sat, SATURATION_RANGE)) + _transition(effect, duration),
    )
