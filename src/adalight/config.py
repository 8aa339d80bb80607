"""Configuration for Adalight devices."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import AdalightConfigError
from .protocol import DEFAULT_BAUDRATE, RESPONSE_TIMEOUT


class AdalightConfig(BaseModel):
    """Connection and strip settings for one device."""

    # Serial settings
    port: str = ""
    baudrate: int = DEFAULT_BAUDRATE
    read_timeout: float = 0.1  # Reader poll interval
    write_timeout: float = 1.0
    response_timeout: float = RESPONSE_TIMEOUT

    # Strip settings
    led_count: int = Field(default=1, ge=1)
    brightness: Optional[int] = Field(default=None, ge=0, le=255)
    reset_on_disconnect: bool = True  # Blank the strip before closing


def load_config(path: Path) -> AdalightConfig:
    """
    Load configuration from a YAML file.

    Example:
        serial:
          port: /dev/ttyUSB0
          baudrate: 115200
        strip:
          leds: 60
          brightness: 128

    Raises:
        AdalightConfigError: file missing, unreadable or invalid
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise AdalightConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise AdalightConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise AdalightConfigError(f"Config file {path} must contain a mapping")

    config_dict = {}

    if "serial" in data:
        serial = _section(data, "serial", path)
        if "port" in serial:
            config_dict["port"] = serial["port"]
        if "baudrate" in serial:
            config_dict["baudrate"] = serial["baudrate"]
        if "baud" in serial:  # Short form
            config_dict["baudrate"] = serial["baud"]
        if "timeout" in serial:
            config_dict["response_timeout"] = serial["timeout"]
        if "write_timeout" in serial:
            config_dict["write_timeout"] = serial["write_timeout"]

    if "strip" in data:
        strip = _section(data, "strip", path)
        if "leds" in strip:
            config_dict["led_count"] = strip["leds"]
        if "brightness" in strip:
            config_dict["brightness"] = strip["brightness"]
        if "reset_on_disconnect" in strip:
            config_dict["reset_on_disconnect"] = strip["reset_on_disconnect"]

    try:
        return AdalightConfig(**config_dict)
    except ValidationError as e:
        raise AdalightConfigError(f"Invalid configuration in {path}: {e}") from e


def _section(data: dict, name: str, path: Path) -> dict:
    """Return a config section, which must be a mapping if present."""
    section = data[name] or {}
    if not isinstance(section, dict):
        raise AdalightConfigError(f"Section '{name}' in {path} must be a mapping")
    return section
