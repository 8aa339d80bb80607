"""Discovery of Adalight controllers by probing serial ports.

A controller prints its announce line ('Ada...') when the port is opened, so
discovery opens every port, reads one line and keeps the ports that answer.
"""

import logging
from typing import Callable, Iterable, Optional

import serial.tools.list_ports

from .protocol import DEFAULT_BAUDRATE, DISCOVERY_TIMEOUT, is_announce
from .transport import SerialTransport
from .types import DeviceHint

logger = logging.getLogger(__name__)

EndpointLister = Callable[[], Iterable[str]]
EndpointProbe = Callable[[str], str]


def list_ports() -> list[dict[str, str]]:
    """List serial ports known to the host."""
    ports = []
    for port in serial.tools.list_ports.comports():
        ports.append({
            "device": port.device,
            "description": port.description,
            "hwid": port.hwid,
        })
    return ports


def list_endpoints() -> list[str]:
    """Device paths of every serial port known to the host."""
    return [port["device"] for port in list_ports()]


def probe_endpoint(port: str, timeout: float = DISCOVERY_TIMEOUT) -> str:
    """
    Open a port at 115200-8-N-1, read one line and close it again.

    Returns:
        The line read

    Raises:
        AdalightError: the port could not be opened, read or closed
    """
    transport = SerialTransport(port, baudrate=DEFAULT_BAUDRATE, read_timeout=timeout)
    try:
        transport.open()
        return transport.readline()
    finally:
        transport.close()
        transport.release()


class DeviceScanner:
    """
    Finds ports with an Adalight controller attached.

    Example:
        scanner = DeviceScanner()
        for port in scanner.scan():
            print(port)
    """

    def __init__(
        self,
        endpoint_lister: Optional[EndpointLister] = None,
        probe: Optional[EndpointProbe] = None,
    ):
        self._list_endpoints = endpoint_lister or list_endpoints
        self._probe = probe or probe_endpoint

    def scan(self) -> dict[str, DeviceHint]:
        """
        Probe every endpoint.

        Returns:
            Responding endpoints mapped to zeroed hints. Empty if none answered.
        """
        found: dict[str, DeviceHint] = {}

        for endpoint in self._list_endpoints():
            try:
                line = self._probe(endpoint)
            except Exception as e:
                # One bad port must not stop the scan
                logger.debug(f"Probe of {endpoint} failed: {e}")
                continue

            if is_announce(line):
                logger.info(f"Found Adalight device on {endpoint}")
                found[endpoint] = DeviceHint()
            else:
                logger.debug(f"Ignoring {endpoint}: unexpected announce {line!r}")

        return found


def scan(
    endpoint_lister: Optional[EndpointLister] = None,
    probe: Optional[EndpointProbe] = None,
) -> dict[str, DeviceHint]:
    """Probe every endpoint and return the ones announcing an Adalight device."""
    return DeviceScanner(endpoint_lister, probe).scan()
