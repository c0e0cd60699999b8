"""Command-line client for controlling a single Yeelight device."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from . import commands
from .commands import Command, CronPowerOff
from .config import Config
from .discovery import DiscoveryParseError, parse_discovery_response
from .logging import configure_logging, get_logger
from .protocol import YeelightProtocolHandler
from .sender import DeviceSender, DeviceTarget, TransportError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNREACHABLE = 2


class CliError(Exception):
    """Raised when the CLI encounters an expected error condition."""


def _transition(args: argparse.Namespace, config: Config) -> Dict[str, Any]:
    effect = args.effect or config.default_effect
    duration_ms = args.duration_ms if args.duration_ms is not None else config.default_duration_ms
    return {"effect": effect, "duration": timedelta(milliseconds=duration_ms)}


def _parse_rgb(value: str) -> int:
    text = value.strip().lstrip("#")
    if text.lower().startswith("0x"):
        text = text[2:]
    try:
        return int(text, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid RGB value: {value!r}") from None


def _build_power(args: argparse.Namespace, config: Config) -> Command:
    return commands.set_power(args.state == "on", **_transition(args, config))


def _build_bright(args: argparse.Namespace, config: Config) -> Command:
    return commands.set_brightness(args.value, **_transition(args, config))


def _build_ct(args: argparse.Namespace, config: Config) -> Command:
    return commands.set_white_temperature(args.value, **_transition(args, config))


def _build_rgb(args: argparse.Namespace, config: Config) -> Command:
    return commands.set_color_rgb(args.value, **_transition(args, config))


def _build_hsv(args: argparse.Namespace, config: Config) -> Command:
    return commands.set_color_hsv(args.hue, args.sat, **_transition(args, config))


def _build_props(args: argparse.Namespace, config: Config) -> Command:
    return commands.get_properties(args.names)


def _build_cron_add(args: argparse.Namespace, config: Config) -> Command:
    return commands.cron_add(CronPowerOff(timedelta(minutes=args.minutes)))


def _add_transition_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--effect",
        choices=["sudden", "smooth"],
        help="Transition effect (defaults to the configured default_effect).",
    )
    parser.add_argument(
        "--duration-ms",
        type=int,
        help="Transition duration in milliseconds (defaults to default_duration_ms).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yeelight-lan",
        description=(
            "Send one LAN control command to a Yeelight device and print its reply. "
            "Examples: `yeelight-lan --ip 192.168.1.20 power on`, "
            "`yeelight-lan --ip 192.168.1.20 rgb ff8800 --effect sudden`."
        ),
    )
    parser.add_argument("--config", type=Path, help="Path to TOML config file.")
    parser.add_argument("--ip", help="Device IP address.")
    parser.add_argument("--port", type=int, help="Device control port (default 55443).")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for a reply.")
    parser.add_argument(
        "--output",
        choices=["json", "yaml"],
        default="json",
        help="Output format for replies. Defaults to 'json'.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log verbosity level.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    power = subparsers.add_parser("power", help="Switch the light on or off (set_power)")
    power.add_argument("state", choices=["on", "off"])
    _add_transition_args(power)
    power.set_defaults(build=_build_power)

    toggle = subparsers.add_parser("toggle", help="Toggle power (toggle)")
    toggle.set_defaults(build=lambda args, config: commands.toggle())

    bright = subparsers.add_parser("bright", help="Set brightness 1-100 (set_bright)")
    bright.add_argument("value", type=int)
    _add_transition_args(bright)
    bright.set_defaults(build=_build_bright)

    ct = subparsers.add_parser("ct", help="Set white temperature 1700-6500K (set_ct_abx)")
    ct.add_argument("value", type=int)
    _add_transition_args(ct)
    ct.set_defaults(build=_build_ct)

    rgb = subparsers.add_parser("rgb", help="Set RGB color as hex RRGGBB (set_rgb)")
    rgb.add_argument("value", type=_parse_rgb)
    _add_transition_args(rgb)
    rgb.set_defaults(build=_build_rgb)

    hsv = subparsers.add_parser("hsv", help="Set hue 0-359 and saturation 0-100 (set_hsv)")
    hsv.add_argument("hue", type=int)
    hsv.add_argument("sat", type=int)
    _add_transition_args(hsv)
    hsv.set_defaults(build=_build_hsv)

    props = subparsers.add_parser("props", help="Read device properties (get_prop)")
    props.add_argument("names", nargs="+", help="Property names, e.g. power bright ct")
    props.set_defaults(build=_build_props)

    default = subparsers.add_parser("default", help="Save current state as default (set_default)")
    default.set_defaults(build=lambda args, config: commands.set_default())

    stop_flow = subparsers.add_parser("stop-flow", help="Stop a running color flow (stop_cf)")
    stop_flow.set_defaults(build=lambda args, config: commands.stop_color_flow())

    cron_add = subparsers.add_parser("cron-add", help="Power off after N minutes (cron_add)")
    cron_add.add_argument("minutes", type=int)
    cron_add.set_defaults(build=_build_cron_add)

    cron_get = subparsers.add_parser("cron-get", help="Show the power-off timer (cron_get)")
    cron_get.set_defaults(build=lambda args, config: commands.cron_get())

    cron_del = subparsers.add_parser("cron-del", help="Cancel the power-off timer (cron_del)")
    cron_del.set_defaults(build=lambda args, config: commands.cron_del())

    parse = subparsers.add_parser(
        "parse-discovery",
        help="Parse a saved discovery response ('-' for stdin) and print the device record",
    )
    parse.add_argument("file")
    parse.set_defaults(build=None)

    return parser


def _load_config(args: argparse.Namespace) -> Config:
    overrides: Dict[str, Any] = {
        "device_port": args.port,
        "device_read_timeout": args.timeout,
        "log_level": args.log_level,
    }
    try:
        return Config.from_sources(args.config, overrides)
    except (OSError, ValueError) as exc:
        raise CliError(f"Failed to load configuration: {exc}") from exc


def _print_output(data: Any, output: str) -> None:
    if output == "yaml":
        yaml.safe_dump(data, sys.stdout, sort_keys=False)
    else:
        json.dump(data, sys.stdout, indent=2)
        sys.stdout.write("\n")


def _format_reply(reply: Optional[str]) -> Dict[str, Any]:
    if reply is None:
        return {"response": None}
    response = YeelightProtocolHandler().parse_response(reply)
    if response is None:
        return {"response": reply}
    data: Dict[str, Any] = {"response": reply}
    if response.error is not None:
        data["error"] = dict(response.error)
    elif response.notification is not None:
        data["notification"] = dict(response.notification)
    else:
        data["result"] = response.result
    return data


def _cmd_parse_discovery(args: argparse.Namespace) -> Dict[str, Any]:
    try:
        if args.file == "-":
            text = sys.stdin.read()
        else:
            text = Path(args.file).read_text(encoding="utf-8")
    except OSError as exc:
        raise CliError(f"Cannot read discovery response: {exc}") from exc
    try:
        device = parse_discovery_response(text)
    except DiscoveryParseError as exc:
        raise CliError(f"Invalid discovery response: {exc}") from exc
    return {
        "id": device.id,
        "ip": device.ip,
        "port": device.port,
        "model": device.model,
        "fw_ver": device.fw_ver,
        "support": list(device.support),
        "power": device.power,
        "bright": device.bright,
        "color_mode": device.color_mode,
        "ct": device.ct,
        "rgb": device.rgb,
        "hue": device.hue,
        "sat": device.sat,
        "name": device.name,
    }


def _run(args: argparse.Namespace, config: Config, sender: Optional[DeviceSender] = None) -> Any:
    if args.build is None:
        return _cmd_parse_discovery(args)
    if not args.ip:
        raise CliError("--ip is required for device commands")
    command = args.build(args, config)
    sender = sender or DeviceSender(config)
    target = DeviceTarget(id=args.ip, ip=args.ip, port=config.device_port)
    return _format_reply(sender.send(target, command))


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    logger = get_logger("yeelight.cli")
    try:
        config = _load_config(args)
        try:
            configure_logging(config)
        except ValueError as exc:
            raise CliError(f"Failed to configure logging: {exc}") from exc
        logger.debug("Loaded configuration", extra={"config": config.logging_dict()})
        data = _run(args, config)
    except CliError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except TransportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_UNREACHABLE
    _print_output(data, args.output)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
