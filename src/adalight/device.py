"""
Adalight Serial - High-Level Device Interface

Owns the transport and the led matrix of one strip, and never lets a
transport failure escape: every operation reports success as a bool.
"""

import logging
import threading
from typing import Any, Iterable, Optional

import numpy as np

from .channel import CommandChannel
from .config import AdalightConfig
from .exceptions import AdalightError
from .protocol import (
    DEFAULT_BAUDRATE,
    MAX_LED_COUNT,
    RESPONSE_TIMEOUT,
    create_matrix,
    describe,
    encode_frame,
    pad_colors,
)
from .transport import SerialTransport, Transport
from .types import BLACK, ConnectionState, DeviceState, as_rgb

logger = logging.getLogger(__name__)


class AdalightDevice:
    """
    An Adalight LED strip on a serial port.

    Example:
        device = AdalightDevice('/dev/ttyUSB0', led_count=60)
        if device.connect():
            device.fill((255, 0, 0))
            device.set_brightness(128)
            device.disconnect()  # blanks the strip first
        device.dispose()
    """

    def __init__(
        self,
        port: str,
        led_count: int,
        baudrate: int = DEFAULT_BAUDRATE,
        transport: Optional[Transport] = None,
        response_timeout: float = RESPONSE_TIMEOUT,
        reset_on_disconnect: bool = True,
    ):
        """
        Initialize a device. Nothing is opened until connect().

        Args:
            port: Serial port path (e.g., '/dev/ttyUSB0', 'COM3')
            led_count: Number of leds on the strip, fixed for the device's lifetime
            baudrate: Baud rate (default 115200)
            transport: Transport to use instead of a SerialTransport on port
            response_timeout: Default wait for state replies, in seconds
            reset_on_disconnect: Blank the strip when leaving a with-block
        """
        if led_count < 1:
            raise ValueError(f"led_count must be at least 1, got {led_count}")
        if led_count > MAX_LED_COUNT:
            logger.warning(
                f"led_count {led_count} exceeds {MAX_LED_COUNT}; "
                "the frame length field will wrap"
            )

        self.port = port
        self.baudrate = baudrate
        self.response_timeout = response_timeout
        self.reset_on_disconnect = reset_on_disconnect
        self._led_count = led_count

        self._transport = transport or SerialTransport(port, baudrate=baudrate)
        self._state = ConnectionState.IDLE
        self._disposed = False

        # In-flight lock: one transport operation at a time
        self._io_lock = threading.Lock()
        # Held by a push from snapshot to write; a second push is dropped
        self._push_lock = threading.Lock()
        self._matrix_lock = threading.Lock()
        self._lifecycle_lock = threading.RLock()
        self._matrix = create_matrix(led_count)

        self._channel = CommandChannel(self._transport, self._io_lock)
        self._transport.set_line_handler(self._channel.handle_line)

    @classmethod
    def from_config(
        cls, config: AdalightConfig, transport: Optional[Transport] = None
    ) -> "AdalightDevice":
        """Create a device from an AdalightConfig."""
        if transport is None:
            transport = SerialTransport(
                config.port,
                baudrate=config.baudrate,
                read_timeout=config.read_timeout,
                write_timeout=config.write_timeout,
            )
        return cls(
            config.port,
            config.led_count,
            baudrate=config.baudrate,
            transport=transport,
            response_timeout=config.response_timeout,
            reset_on_disconnect=config.reset_on_disconnect,
        )

    def __repr__(self) -> str:
        return f"AdalightDevice({self.port!r}, led_count={self._led_count}, state={self._state.value})"

    @property
    def led_count(self) -> int:
        return self._led_count

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if device is connected."""
        return self._state is ConnectionState.OPEN

    @property
    def pixels(self) -> np.ndarray:
        """Copy of the led matrix, shape (led_count, 3)."""
        with self._matrix_lock:
            return self._matrix.copy()

    @property
    def last_state(self) -> DeviceState:
        """State from the most recent successful query."""
        return self._channel.last_state

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def connect(self) -> bool:
        """
        Open the serial port.

        Returns:
            True if the device is connected
        """
        with self._lifecycle_lock:
            if self._disposed:
                logger.warning(f"Cannot connect {self.port}: device disposed")
                return False
            if self._state is ConnectionState.OPEN:
                return True

            try:
                self._transport.open()
            except (AdalightError, OSError) as e:
                logger.warning(f"Exception connecting to {self.port}: {e}")
                return False

            self._state = ConnectionState.OPEN
            logger.info(f"Connected to {self.port} ({self._led_count} leds)")
            return True

    def disconnect(self, reset: bool = True) -> bool:
        """
        Close the serial port.

        Args:
            reset: Turn every led off before disconnecting

        Returns:
            True if the port was open and closed cleanly
        """
        with self._lifecycle_lock:
            if self._state is not ConnectionState.OPEN:
                return False

            if reset:
                with self._matrix_lock:
                    self._matrix[:] = 0
                self._push(blocking=True)

            self._state = ConnectionState.CLOSED
            try:
                # Wait for any in-flight operation before closing under it
                with self._io_lock:
                    self._transport.close()
            except (AdalightError, OSError) as e:
                logger.warning(f"Exception closing {self.port}: {e}")
                return False

            logger.info(f"Disconnected from {self.port}")
            return True

    def dispose(self) -> None:
        """Close the port if open and release the transport. Safe to call repeatedly."""
        with self._lifecycle_lock:
            if self._disposed:
                return
            self._disposed = True

            try:
                if self._state is ConnectionState.OPEN:
                    self._state = ConnectionState.CLOSED
                    with self._io_lock:
                        self._transport.close()
            except (AdalightError, OSError) as e:
                logger.warning(f"Exception closing {self.port} during dispose: {e}")
            finally:
                try:
                    self._transport.set_line_handler(None)
                    self._transport.release()
                except (AdalightError, OSError) as e:
                    logger.warning(f"Exception releasing {self.port}: {e}")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect(reset=self.reset_on_disconnect)
        self.dispose()
        return False

    # =========================================================================
    # Pixel Commands
    # =========================================================================

    def update(self) -> bool:
        """
        Send the current matrix to the strip.

        Returns:
            True if the frame was written. False if not connected, if another
            push is in flight (the frame is dropped) or if the write failed.
            A push issued while a command is in flight waits for it.
        """
        return self._push(blocking=False)

    def update_pixel(self, index: int, color: Any, update: bool = True) -> bool:
        """
        Set a single led. Indices outside the strip are ignored.

        Args:
            index: Led index
            color: Color, (r, g, b) tuple or object with r/g/b attributes
            update: Send the frame immediately
        """
        if 0 <= index < self._led_count:
            with self._matrix_lock:
                self._matrix[index] = as_rgb(color)
        return self.update() if update else True

    def update_colors(self, colors: Iterable[Any], update: bool = True) -> bool:
        """
        Replace the whole matrix.

        Args:
            colors: Colors in strip order. Missing trailing leds become black,
                extra colors are dropped.
            update: Send the frame immediately
        """
        matrix = pad_colors(colors, self._led_count)
        with self._matrix_lock:
            self._matrix[:] = matrix
        return self.update() if update else True

    def fill(self, color: Any, update: bool = True) -> bool:
        """Set every led to one color."""
        rgb = as_rgb(color)
        with self._matrix_lock:
            self._matrix[:] = rgb
        return self.update() if update else True

    def clear(self, update: bool = True) -> bool:
        """Turn every led off."""
        return self.fill(BLACK, update)

    # =========================================================================
    # Control Commands
    # =========================================================================

    def set_brightness(self, value: int) -> bool:
        """Set global brightness (0-255). Out-of-range values are ignored."""
        if not self.is_connected:
            return False
        return self._channel.set_brightness(value)

    def query_state(self, timeout: Optional[float] = None) -> DeviceState:
        """
        Ask the device for its led count and brightness.

        Returns:
            The reported state, or the last known state if not connected or
            no reply arrived in time
        """
        if not self.is_connected:
            return self._channel.last_state
        return self._channel.query_state(
            self.response_timeout if timeout is None else timeout
        )

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _push(self, blocking: bool) -> bool:
        if not self.is_connected:
            return False

        if not self._push_lock.acquire(blocking=blocking):
            logger.debug(f"Frame dropped on {self.port}: another push in flight")
            return False

        try:
            # Commands hold the in-flight lock; a push waits behind them
            with self._io_lock:
                return self._write_frame()
        finally:
            self._push_lock.release()

    def _write_frame(self) -> bool:
        """Encode a matrix snapshot and write it. The caller holds the in-flight lock."""
        if not self.is_connected:
            return False

        with self._matrix_lock:
            frame = encode_frame(self._matrix)

        try:
            written = self._transport.write(frame)
        except (AdalightError, OSError) as e:
            logger.warning(f"Frame write to {self.port} failed: {e}")
            return False

        if written != len(frame):
            logger.warning(f"Short frame write to {self.port}: {written}/{len(frame)} bytes")
            return False

        logger.debug(f"TX {describe(frame)}")
        return True
