"""
Adalight Serial - Python Host Implementation

Drive Adalight-compatible LED strip controllers over a serial port.

Example:
    from adalight import AdalightDevice, scan

    for port in scan():
        with AdalightDevice(port, led_count=60) as device:
            device.fill((255, 0, 0))
            device.set_brightness(128)
            print(device.query_state())
"""

from .protocol import (
    MAGIC_WORD,
    COMMAND_MAGIC,
    CommandKind,
    encode_frame,
    encode_header,
    encode_command,
    decode_state_line,
)
from .types import BLACK, Color, ConnectionState, DeviceHint, DeviceState
from .transport import SerialTransport, Transport
from .channel import CommandChannel
from .scanner import DeviceScanner, scan
from .device import AdalightDevice
from .config import AdalightConfig, load_config
from .exceptions import (
    AdalightError,
    AdalightConnectionError,
    AdalightTransportError,
    AdalightTimeoutError,
    AdalightConfigError,
)

__version__ = "1.0.0"
__all__ = [
    # Main class
    "AdalightDevice",
    "DeviceScanner",
    "scan",
    # Protocol
    "MAGIC_WORD",
    "COMMAND_MAGIC",
    "CommandKind",
    "encode_frame",
    "encode_header",
    "encode_command",
    "decode_state_line",
    "CommandChannel",
    # Transport
    "Transport",
    "SerialTransport",
    # Data classes
    "Color",
    "BLACK",
    "ConnectionState",
    "DeviceHint",
    "DeviceState",
    # Configuration
    "AdalightConfig",
    "load_config",
    # Exceptions
    "AdalightError",
    "AdalightConnectionError",
    "AdalightTransportError",
    "AdalightTimeoutError",
    "AdalightConfigError",
]
