"""Pytest fixtures for tests."""

import threading
import time
from concurrent.futures import Future
from typing import Callable, Optional

import pytest

from adalight import AdalightDevice
from adalight.exceptions import (
    AdalightConnectionError,
    AdalightTimeoutError,
    AdalightTransportError,
)
from adalight.transport import Transport


class FakeTransport(Transport):
    """In-memory transport recording every byte written."""

    def __init__(
        self,
        port: str = "FAKE0",
        responder: Optional[Callable[[bytes], Optional[str]]] = None,
        byte_delay: float = 0.0,
    ):
        super().__init__(port)
        self.responder = responder
        self.byte_delay = byte_delay

        self.fail_open = False
        self.fail_close = False
        self.fail_write = False
        self.short_write = False

        self.stream = bytearray()
        self.write_started = threading.Event()
        self.writes: list[bytes] = []
        self.lines: list[str] = []
        self.open_count = 0
        self.close_count = 0
        self.release_count = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self.fail_open:
            raise AdalightConnectionError(f"Failed to open {self.port}: busy")
        self._open = True
        self.open_count += 1

    def close(self) -> None:
        self.close_count += 1
        if self.fail_close:
            raise AdalightTransportError(self.port, "close failed")
        self._open = False

    def release(self) -> None:
        self.release_count += 1
        super().release()

    def write(self, data: bytes) -> int:
        if not self._open:
            raise AdalightConnectionError(f"{self.port} is not open")
        if self.fail_write:
            raise AdalightTransportError(self.port, "write failed")

        self.write_started.set()
        for byte in data:
            self.stream.append(byte)
            if self.byte_delay:
                time.sleep(self.byte_delay)
        self.writes.append(bytes(data))

        if self.responder:
            reply = self.responder(bytes(data))
            if reply is not None:
                self.emit_line(reply)

        return len(data) - 1 if self.short_write else len(data)

    def write_async(self, data: bytes) -> "Future[int]":
        future: Future = Future()
        future.set_result(self.write(data))
        return future

    def readline(self) -> str:
        if not self.lines:
            raise AdalightTimeoutError(f"No line from {self.port}")
        return self.lines.pop(0)

    def emit_line(self, line: str) -> None:
        """Simulate a line arriving from the device."""
        self._dispatch_line(line.encode("ascii"))


@pytest.fixture
def transport():
    """Create a fake transport."""
    return FakeTransport()


@pytest.fixture
def device(transport):
    """Create a 4-led device on the fake transport."""
    return AdalightDevice("FAKE0", led_count=4, transport=transport)


@pytest.fixture
def connected_device(device):
    """Create a connected 4-led device."""
    assert device.connect()
    return device
