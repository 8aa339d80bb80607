"""Command/response exchange with an Adalight controller.

Replies carry no message id: the first line after a command is taken as its
answer. Correctness therefore rests on a single in-flight request per device,
enforced by the lock shared with pixel pushes.
"""

import logging
import threading
from typing import Optional

from .exceptions import AdalightError
from .protocol import (
    RESPONSE_TIMEOUT,
    CommandKind,
    decode_state_line,
    describe,
    encode_command,
    has_magic,
    strip_magic,
)
from .transport import Transport
from .types import DeviceState

logger = logging.getLogger(__name__)


class ResponseSlot:
    """
    Single-slot mailbox between the reader thread and one waiter.

    The waiter arms the slot before sending its command so a reply arriving
    during the write is not lost. Lines published while unarmed are dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._armed = False
        self._line: Optional[str] = None

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        with self._lock:
            self._armed = True
            self._line = None
            self._event.clear()

    def disarm(self) -> None:
        with self._lock:
            self._armed = False
            self._line = None
            self._event.clear()

    def publish(self, line: str) -> bool:
        """Hand a line to the waiter. Returns False if nobody is waiting."""
        with self._lock:
            if not self._armed or self._event.is_set():
                return False
            self._line = line
            self._event.set()
            return True

    def wait(self, timeout: float) -> Optional[str]:
        """Wait for the published line. Returns None on timeout."""
        if not self._event.wait(timeout):
            return None
        with self._lock:
            return self._line


class CommandChannel:
    """
    Serialized brightness/state commands over a transport.

    Args:
        transport: Open transport to write to
        lock: The device's in-flight lock, shared with pixel pushes
    """

    def __init__(self, transport: Transport, lock: Optional[threading.Lock] = None):
        self._transport = transport
        self._lock = lock or threading.Lock()
        self._slot = ResponseSlot()
        self._last_state = DeviceState()

    @property
    def last_state(self) -> DeviceState:
        """Most recent state decoded from the device."""
        return self._last_state

    def handle_line(self, line: str) -> None:
        """Line-arrival hook, called from the transport's reader thread."""
        if not has_magic(line):
            logger.debug(f"Discarding line from {self._transport.port}: {line!r}")
            return

        cleaned = strip_magic(line)
        if not self._slot.publish(cleaned):
            logger.debug(f"No pending request for line {line!r}")

    def set_brightness(self, value: int) -> bool:
        """
        Set global brightness. Fire-and-forget.

        Args:
            value: Brightness 0-255. Anything else is ignored.

        Returns:
            True if the command was written
        """
        if not 0 <= value <= 255:
            logger.warning(f"Ignoring brightness {value}, must be 0-255")
            return False

        with self._lock:
            return self._send(encode_command(CommandKind.BRIGHTNESS, value))

    def query_state(self, timeout: float = RESPONSE_TIMEOUT) -> DeviceState:
        """
        Ask the device for its led count and brightness.

        Returns:
            The decoded state, or the last known state if the write failed or
            no reply arrived within timeout
        """
        with self._lock:
            self._slot.arm()
            try:
                if not self._send(encode_command(CommandKind.STATE)):
                    return self._last_state

                line = self._slot.wait(timeout)
            finally:
                self._slot.disarm()

        if line is None:
            logger.debug(f"No state reply from {self._transport.port} within {timeout}s")
            return self._last_state

        self._last_state = decode_state_line(line, self._last_state)
        return self._last_state

    def _send(self, command: bytes) -> bool:
        """Write one command frame. The caller holds the in-flight lock."""
        try:
            written = self._transport.write(command)
        except (AdalightError, OSError) as e:
            logger.warning(f"Command write to {self._transport.port} failed: {e}")
            return False

        if written != len(command):
            logger.warning(
                f"Short command write to {self._transport.port}: {written}/{len(command)} bytes"
            )
            return False

        logger.debug(f"TX {describe(command)}")
        return True
