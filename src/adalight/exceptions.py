"""
Adalight Serial - Exceptions
"""


class AdalightError(Exception):
    """Base exception for Adalight errors."""
    pass


class AdalightConnectionError(AdalightError):
    """Failed to open the serial port, or the port is not open."""
    pass


class AdalightTransportError(AdalightError):
    """Write or read failure on an open port."""

    def __init__(self, port: str, message: str = ""):
        self.port = port
        if message:
            super().__init__(f"{port}: {message}")
        else:
            super().__init__(f"Transport error on {port}")


class AdalightTimeoutError(AdalightError):
    """Timeout reading from the device."""
    pass


class AdalightConfigError(AdalightError):
    """Configuration file missing or invalid."""
    pass
