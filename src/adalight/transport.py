"""Byte-stream transport for Adalight devices.

The protocol layer only needs a narrow interface: open/close, whole-buffer
writes (blocking and queued), and a notification for every complete line the
device sends. SerialTransport provides it over pyserial.
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

import serial

from .exceptions import (
    AdalightConnectionError,
    AdalightTimeoutError,
    AdalightTransportError,
)
from .protocol import DEFAULT_BAUDRATE

logger = logging.getLogger(__name__)

# Called from the reader thread with each decoded line, without line ending
LineHandler = Callable[[str], None]


class Transport(ABC):
    """Abstract byte-stream transport."""

    def __init__(self, port: str, read_timeout: float = 0.1):
        self.port = port
        self.read_timeout = read_timeout
        self._line_handler: Optional[LineHandler] = None

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Check if the transport is open."""

    @abstractmethod
    def open(self) -> None:
        """Open the transport.

        Raises:
            AdalightConnectionError: the endpoint could not be opened
        """

    @abstractmethod
    def close(self) -> None:
        """Close the transport. Closing a closed transport does nothing."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write a whole buffer.

        Returns:
            Number of bytes written

        Raises:
            AdalightConnectionError: transport not open
            AdalightTransportError: write failed
        """

    @abstractmethod
    def write_async(self, data: bytes) -> "Future[int]":
        """Queue a buffer for writing and return immediately."""

    @abstractmethod
    def readline(self) -> str:
        """Read one line, waiting at most read_timeout.

        Raises:
            AdalightTimeoutError: no complete line arrived in time
        """

    def release(self) -> None:
        """Free resources held beyond the open port."""
        self._line_handler = None

    def set_line_handler(self, handler: Optional[LineHandler]) -> None:
        """Register the callback notified of every complete incoming line."""
        self._line_handler = handler

    def _dispatch_line(self, raw: bytes) -> None:
        line = raw.decode("ascii", errors="replace").rstrip("\r")
        handler = self._line_handler
        if handler is not None:
            handler(line)


class SerialTransport(Transport):
    """
    pyserial-backed transport at 8 data bits, no parity, one stop bit.

    When a line handler is registered, open() starts a reader thread that
    splits incoming bytes on newlines and notifies the handler.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float = 0.1,
        write_timeout: float = 1.0,
    ):
        super().__init__(port, read_timeout)
        self.baudrate = baudrate
        self.write_timeout = write_timeout

        self._serial: Optional[serial.Serial] = None
        self._rx_buffer = bytearray()
        self._reader_thread: Optional[threading.Thread] = None
        self._stop_reader = threading.Event()
        self._writer: Optional[ThreadPoolExecutor] = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.read_timeout,
                write_timeout=self.write_timeout,
            )
        except (serial.SerialException, ValueError) as e:
            self._serial = None
            raise AdalightConnectionError(f"Failed to open {self.port}: {e}") from e

        try:
            self._serial.reset_input_buffer()
        except Exception as e:
            # termios.error on Linux is not a SerialException
            port, self._serial = self._serial, None
            try:
                port.close()
            except Exception as close_error:
                logger.debug(f"Closing half-open {self.port} failed: {close_error}")
            raise AdalightConnectionError(f"Failed to reset {self.port}: {e}") from e

        self._rx_buffer.clear()
        logger.info(f"Serial port {self.port} opened at {self.baudrate} baud")

        if self._line_handler is not None:
            self._stop_reader.clear()
            self._reader_thread = threading.Thread(
                target=self._reader_loop,
                name=f"adalight-reader-{self.port}",
                daemon=True,
            )
            self._reader_thread.start()

    def close(self) -> None:
        self._stop_reader.set()
        if self._reader_thread:
            self._reader_thread.join(timeout=1.0)
            self._reader_thread = None

        if self._serial:
            port, self._serial = self._serial, None
            try:
                port.close()
            except serial.SerialException as e:
                raise AdalightTransportError(self.port, f"close failed: {e}") from e
            logger.info(f"Serial port {self.port} closed")

    def release(self) -> None:
        if self._writer:
            self._writer.shutdown(wait=True)
            self._writer = None
        super().release()

    def write(self, data: bytes) -> int:
        if not self._serial:
            raise AdalightConnectionError(f"{self.port} is not open")

        try:
            written = self._serial.write(data)
        except serial.SerialTimeoutException as e:
            raise AdalightTransportError(self.port, "write timeout") from e
        except serial.SerialException as e:
            raise AdalightTransportError(self.port, f"write failed: {e}") from e

        return len(data) if written is None else written

    def write_async(self, data: bytes) -> "Future[int]":
        if self._writer is None:
            self._writer = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"adalight-writer-{self.port}"
            )
        return self._writer.submit(self.write, data)

    def readline(self) -> str:
        if not self._serial:
            raise AdalightConnectionError(f"{self.port} is not open")

        try:
            raw = self._serial.readline()
        except serial.SerialException as e:
            raise AdalightTransportError(self.port, f"read failed: {e}") from e

        if not raw.endswith(b"\n"):
            raise AdalightTimeoutError(f"No line from {self.port} within {self.read_timeout}s")
        return raw[:-1].decode("ascii", errors="replace").rstrip("\r")

    def _reader_loop(self):
        """Background thread splitting incoming bytes into lines."""
        while not self._stop_reader.is_set():
            port = self._serial
            if not port or not port.is_open:
                break

            try:
                data = port.read(256)
            except serial.SerialException as e:
                logger.warning(f"Reader stopped on {self.port}: {e}")
                break

            if not data:
                continue

            self._rx_buffer.extend(data)
            while True:
                end = self._rx_buffer.find(b"\n")
                if end < 0:
                    break
                raw = bytes(self._rx_buffer[:end])
                del self._rx_buffer[: end + 1]
                try:
                    self._dispatch_line(raw)
                except Exception:
                    logger.exception(f"Line handler failed on {self.port}")
