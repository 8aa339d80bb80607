"""
Adalight Serial - Protocol Constants and Frame Handling

Pure encoders/decoders for the strip-update frame, the 6-byte command frame
and the ASCII state reply.
"""

import logging
import re
import struct
from enum import Enum
from typing import Any, Iterable

import numpy as np

from .types import DeviceState, as_rgb

logger = logging.getLogger(__name__)

# Protocol constants
MAGIC_WORD = b"Ada"
COMMAND_MAGIC = b"Adb"
CHECKSUM_SEED = 0x55
HEADER_SIZE = 6
COMMAND_SIZE = 6
BYTES_PER_LED = 3

# The length field carries led_count - 1 in 16 bits. Larger strips wrap.
MAX_LED_COUNT = 0x10000

# Serial defaults
DEFAULT_BAUDRATE = 115200
DISCOVERY_TIMEOUT = 1.5  # seconds
RESPONSE_TIMEOUT = 1.0  # seconds

# State reply keys
KEY_LED_COUNT = "N"
KEY_BRIGHTNESS = "B"

_MAGIC_TOKENS = (MAGIC_WORD.decode("ascii"), COMMAND_MAGIC.decode("ascii"))
_LEADING_MAGIC = re.compile(r"^\s*(?:(?:Ada|Adb)\s*)+")

HEADER_FORMAT = ">3sBBB"  # magic(3), count hi(1), count lo(1), checksum(1)
COMMAND_FORMAT = ">3s2sB"  # magic(3), sub-command(2), payload(1)


class CommandKind(str, Enum):
    """Sub-command codes carried in a command frame."""

    BRIGHTNESS = "BR"
    STATE = "ST"


COMMAND_NAMES = {
    CommandKind.BRIGHTNESS: "SET_BRIGHTNESS",
    CommandKind.STATE: "QUERY_STATE",
}


def frame_size(led_count: int) -> int:
    """Size of the strip-update buffer, including the reserved trailing byte."""
    return HEADER_SIZE + led_count * BYTES_PER_LED + 1


def encode_header(led_count: int) -> bytes:
    """Build the 6-byte frame header for a strip of led_count leds."""
    length = led_count - 1
    hi = (length >> 8) & 0xFF
    lo = length & 0xFF
    return struct.pack(HEADER_FORMAT, MAGIC_WORD, hi, lo, hi ^ lo ^ CHECKSUM_SEED)


def create_matrix(led_count: int) -> np.ndarray:
    """Create an all-black led matrix."""
    return np.zeros((led_count, BYTES_PER_LED), dtype=np.uint8)


def encode_frame(matrix: Any) -> bytes:
    """
    Encode a full strip update.

    Args:
        matrix: (led_count, 3) uint8 array, or a sequence of colors

    Returns:
        Header, RGB body in matrix order and one reserved zero byte
    """
    if not isinstance(matrix, np.ndarray):
        matrix = np.array([as_rgb(c) for c in matrix], dtype=np.uint8).reshape(-1, BYTES_PER_LED)

    led_count = matrix.shape[0]
    buffer = bytearray(frame_size(led_count))
    buffer[:HEADER_SIZE] = encode_header(led_count)
    buffer[HEADER_SIZE : HEADER_SIZE + led_count * BYTES_PER_LED] = (
        matrix.astype(np.uint8, copy=False).tobytes()
    )
    return bytes(buffer)


def decode_frame_pixels(frame: bytes, led_count: int) -> np.ndarray:
    """Recover the (led_count, 3) pixel body of an encoded frame."""
    body = frame[HEADER_SIZE : HEADER_SIZE + led_count * BYTES_PER_LED]
    return np.frombuffer(body, dtype=np.uint8).reshape(led_count, BYTES_PER_LED)


def encode_command(kind: CommandKind, payload: int = 0) -> bytes:
    """
    Build a 6-byte command frame.

    Args:
        kind: Sub-command
        payload: Brightness value, or 0 for a query

    Raises:
        ValueError: payload does not fit in one byte
    """
    if not 0 <= payload <= 0xFF:
        raise ValueError(f"Command payload out of range: {payload}")
    code = CommandKind(kind).value.encode("ascii")
    return struct.pack(COMMAND_FORMAT, COMMAND_MAGIC, code, payload)


def is_announce(line: str) -> bool:
    """Check whether a line is the device announce line."""
    return line[:3] == _MAGIC_TOKENS[0]


def has_magic(line: str) -> bool:
    """Check whether a line carries a frame or command magic token."""
    return any(token in line for token in _MAGIC_TOKENS)


def strip_magic(line: str) -> str:
    """Remove leading magic tokens and surrounding whitespace from a line."""
    return _LEADING_MAGIC.sub("", line).strip()


def parse_pairs(line: str) -> dict[str, str]:
    """Split a 'K=V;K=V' line into a dict. Fragments without '=' are skipped."""
    pairs = {}
    for fragment in line.split(";"):
        key, sep, value = fragment.partition("=")
        if not sep:
            continue
        pairs[key.strip()] = value.strip()
    return pairs


def decode_state_line(line: str, previous: DeviceState | None = None) -> DeviceState:
    """
    Decode a state reply such as 'N=30;B=128'.

    Lines without an N= token carry no data and return previous unchanged.
    Fields that are missing or not integers keep their previous value.
    Never raises.
    """
    previous = previous or DeviceState()
    pairs = parse_pairs(strip_magic(line))

    if KEY_LED_COUNT not in pairs:
        logger.debug(f"Ignoring state line without {KEY_LED_COUNT}=: {line!r}")
        return previous

    return DeviceState(
        led_count=_int_or(pairs.get(KEY_LED_COUNT), previous.led_count),
        brightness=_int_or(pairs.get(KEY_BRIGHTNESS), previous.brightness),
    )


def _int_or(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def describe(frame: bytes) -> str:
    """Short human-readable description of an outbound buffer, for debug logs."""
    if frame[:3] == COMMAND_MAGIC and len(frame) == COMMAND_SIZE:
        try:
            kind = CommandKind(frame[3:5].decode("ascii"))
        except ValueError:
            return f"Command(unknown {frame[3:5]!r})"
        return f"Command({COMMAND_NAMES[kind]}, payload={frame[5]})"
    if frame[:3] == MAGIC_WORD and len(frame) >= HEADER_SIZE:
        count = ((frame[3] << 8) | frame[4]) + 1
        preview = frame[HEADER_SIZE : HEADER_SIZE + 12].hex()
        return f"Frame({count} leds, {len(frame)} bytes: {preview}...)"
    return f"Raw({len(frame)} bytes)"


def pad_colors(colors: Iterable[Any], led_count: int) -> np.ndarray:
    """Build a matrix from colors, truncating extras and padding with black."""
    matrix = create_matrix(led_count)
    for i, color in enumerate(colors):
        if i >= led_count:
            break
        matrix[i] = as_rgb(color)
    return matrix
