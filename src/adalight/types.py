"""Common data types for the Adalight protocol."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple


class ConnectionState(str, Enum):
    """Lifecycle state of a device connection.

    IDLE -> OPEN -> CLOSED, and CLOSED -> OPEN again through a fresh connect.
    """

    IDLE = "idle"
    OPEN = "open"
    CLOSED = "closed"


class Color(NamedTuple):
    """An RGB color with 8-bit channels."""

    r: int = 0
    g: int = 0
    b: int = 0


BLACK = Color(0, 0, 0)


def as_rgb(color: Any) -> tuple[int, int, int]:
    """Coerce a color-like value to an (r, g, b) tuple of 8-bit ints.

    Accepts Color, any object exposing r/g/b or red/green/blue attributes,
    and any sequence of three numbers.
    """
    if isinstance(color, tuple) and len(color) == 3:
        r, g, b = color
    elif hasattr(color, "r") and hasattr(color, "g") and hasattr(color, "b"):
        r, g, b = color.r, color.g, color.b
    elif hasattr(color, "red") and hasattr(color, "green") and hasattr(color, "blue"):
        r, g, b = color.red, color.green, color.blue
    else:
        r, g, b = color
    return int(r) & 0xFF, int(g) & 0xFF, int(b) & 0xFF


@dataclass(frozen=True)
class DeviceState:
    """State reported by the controller. Zero means unknown."""

    led_count: int = 0
    brightness: int = 0

    @property
    def is_known(self) -> bool:
        return self.led_count > 0


@dataclass(frozen=True)
class DeviceHint:
    """What discovery knows about a responding endpoint.

    Probing only reads the announce line, so the fields stay zeroed until the
    caller supplies them or asks the device.
    """

    led_count: int = 0
    brightness: int = 0
