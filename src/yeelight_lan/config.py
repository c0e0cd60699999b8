"""Configuration loading for the Yeelight LAN controller."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Union

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    import tomli as tomllib  # type: ignore


CONFIG_ENV_PREFIX = "YEELIGHT_LAN_"
CONFIG_VERSION = 1
MIN_SUPPORTED_CONFIG_VERSION = 1

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_INT_FIELDS = {"device_port", "default_duration_ms", "config_version"}
_FLOAT_FIELDS = {"device_connect_timeout", "device_read_timeout"}
_UPPER_FIELDS = {"log_level", "sender_log_level", "discovery_log_level"}


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    device_port: int = 55443
    device_connect_timeout: float = 5.0
    device_read_timeout: float = 1.0
    default_effect: str = "smooth"
    default_duration_ms: int = 500
    log_format: str = "plain"
    log_level: str = "INFO"
    sender_log_level: Optional[str] = None
    discovery_log_level: Optional[str] = None
    config_version: int = CONFIG_VERSION

    def __post_init__(self) -> None:
        _validate_config(self)

    def logging_dict(self) -> Dict[str, Any]:
        """Return a mapping suitable for structured logging."""

        return {
            "config_version": self.config_version,
            "device_port": self.device_port,
            "device_connect_timeout": self.device_connect_timeout,
            "device_read_timeout": self.device_read_timeout,
            "default_effect": self.default_effect,
            "default_duration_ms": self.default_duration_ms,
            "log_format": self.log_format,
            "log_level": self.log_level,
            "sender_log_level": self.sender_log_level,
            "discovery_log_level": self.discovery_log_level,
        }

    @classmethod
    def from_sources(
        cls,
        path: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "Config":
        """Load configuration from defaults, file, env, and overrides (in that order)."""

        file_path = path or os.environ.get(f"{CONFIG_ENV_PREFIX}CONFIG")
        file_config = _load_file_config(_coerce_path(file_path) if file_path else None)
        env_config = _load_env_config(CONFIG_ENV_PREFIX)

        config = cls()
        config = _apply_mapping(config, file_config)
        config = _apply_mapping(config, env_config)
        config = _apply_mapping(config, overrides or {})
        return config


def _validate_config(config: Config) -> None:
    _validate_version(config.config_version)
    _validate_range("device_port", config.device_port, 1, 65535)
    _validate_range("device_connect_timeout", config.device_connect_timeout, 0.05, 120.0)
    _validate_range("device_read_timeout", config.device_read_timeout, 0.05, 60.0)
    _validate_range("default_duration_ms", config.default_duration_ms, 0, 3600000)
    if config.default_effect not in {"sudden", "smooth"}:
        raise ValueError(
            f"default_effect must be 'sudden' or 'smooth'; got {config.default_effect}."
        )
    if config.log_format not in {"plain", "json"}:
        raise ValueError(f"log_format must be 'plain' or 'json'; got {config.log_format}.")
    for field_name, value in (
        ("log_level", config.log_level),
        ("sender_log_level", config.sender_log_level),
        ("discovery_log_level", config.discovery_log_level),
    ):
        _validate_log_level_value(value, field_name)


def _validate_version(version: int) -> None:
    if version < MIN_SUPPORTED_CONFIG_VERSION:
        raise ValueError(
            f"Config version {version} is too old; minimum supported is {MIN_SUPPORTED_CONFIG_VERSION}."
        )
    if version > CONFIG_VERSION:
        raise ValueError(
            f"Config version {version} is newer than supported ({CONFIG_VERSION}); please upgrade."
        )


def _validate_range(name: str, value: float, minimum: float, maximum: float) -> None:
    if value < minimum or value > maximum:
        raise ValueError(f"{name} must be between {minimum} and {maximum}; got {value}.")


def _validate_log_level_value(value: Optional[str], name: str) -> None:
    if value is None:
        return
    if value.upper() not in _LOG_LEVELS:
        raise ValueError(f"{name} must be one of {sorted(_LOG_LEVELS)}; got {value}.")


def _load_file_config(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("rb") as f:
        parsed = tomllib.load(f)
    if not isinstance(parsed, Mapping):
        raise ValueError("Configuration file must contain a TOML table.")
    return {k.replace("-", "_"): v for k, v in parsed.items()}


def _load_env_config(prefix: str) -> Dict[str, Any]:
    mapping: Dict[str, Any] = {}
    for field in Config.__dataclass_fields__:
        env_key = f"{prefix}{field}".upper()
        if env_key in os.environ:
            mapping[field] = os.environ[env_key]
    return mapping


def _apply_mapping(config: Config, overrides: Mapping[str, Any]) -> Config:
    data: MutableMapping[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in Config.__dataclass_fields__:
            raise ValueError(f"Unknown configuration key: {key}")
        if key in _INT_FIELDS:
            data[key] = int(value)
        elif key in _FLOAT_FIELDS:
            data[key] = float(value)
        elif key in _UPPER_FIELDS:
            data[key] = str(value).upper()
        elif key in {"log_format", "default_effect"}:
            data[key] = str(value).lower()
        else:
            data[key] = value
    return replace(config, **data)


def _coerce_path(value: Any) -> Path:
    return value if isinstance(value, Path) else Path(str(value)).expanduser()
