"""
Adalight Serial - Command Line Interface

Usage:
    adalight scan
    adalight -p /dev/ttyUSB0 -n 60 fill 255 0 0
    adalight -p /dev/ttyUSB0 -n 60 brightness 128
    adalight --config strip.yaml state
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from .config import AdalightConfig, load_config
from .device import AdalightDevice
from .exceptions import AdalightError
from .scanner import DeviceScanner, list_ports
from .types import Color

logger = logging.getLogger(__name__)


def cmd_ports(args: argparse.Namespace) -> int:
    """Print available serial ports."""
    ports = list_ports()

    if not ports:
        print("No serial ports found.")
        return 0

    print("Available serial ports:")
    print()
    for port in ports:
        print(f"  {port['device']}")
        if port["description"] and port["description"] != port["device"]:
            print(f"    Description: {port['description']}")
        if port["hwid"] and port["hwid"] != "n/a":
            print(f"    Hardware ID: {port['hwid']}")
        print()
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Probe every port for an Adalight announce line."""
    found = DeviceScanner().scan()

    if not found:
        print("No Adalight devices were found.")
        return 0

    for port in found:
        print(f"Found device at {port}.")
    return 0


def cmd_fill(device: AdalightDevice, args: argparse.Namespace) -> bool:
    """Fill all leds with a color."""
    if not device.fill(Color(args.r, args.g, args.b)):
        return False
    print(f"Filled with RGB({args.r}, {args.g}, {args.b})")
    return True


def cmd_clear(device: AdalightDevice, args: argparse.Namespace) -> bool:
    """Turn all leds off."""
    if not device.clear():
        return False
    print("Cleared")
    return True


def cmd_wipe(device: AdalightDevice, args: argparse.Namespace) -> bool:
    """Color wipe, one led at a time."""
    color = Color(args.r, args.g, args.b)
    for i in range(device.led_count):
        device.update_pixel(i, color)
        time.sleep(args.delay)
    print(f"Wiped {device.led_count} leds with RGB({args.r}, {args.g}, {args.b})")
    return True


def cmd_brightness(device: AdalightDevice, args: argparse.Namespace) -> bool:
    """Set brightness."""
    if not device.set_brightness(args.value):
        return False
    print(f"Brightness set to {args.value}")
    return True


def cmd_state(device: AdalightDevice, args: argparse.Namespace) -> bool:
    """Query led count and brightness."""
    state = device.query_state(args.timeout)
    if not state.is_known:
        print("No state reply from device")
        return False
    print(f"LEDs: {state.led_count}")
    print(f"Brightness: {state.brightness}")
    return True


def cmd_demo(device: AdalightDevice, args: argparse.Namespace) -> bool:
    """Red fill, blue wipe, then a growing bulk update."""
    count = device.led_count

    print(f"Setting strip on {device.port} to red.")
    for i in range(count):
        device.update_pixel(i, Color(255, 0, 0), update=False)
    device.update()
    time.sleep(args.pause)

    print(f"Wiping strip on {device.port} to blue.")
    for i in range(count):
        device.update_pixel(i, Color(0, 0, 255))
        time.sleep(0.001)
    time.sleep(args.pause)

    print(f"Growing green bar on {device.port}.")
    colors = []
    for _ in range(count):
        colors.append(Color(0, 255, 0))
        device.update_colors(colors)
        time.sleep(0.001)
    time.sleep(args.pause)
    return True


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="adalight",
        description="Control Adalight LED strips over a serial port",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to YAML configuration file")
    parser.add_argument("--port", "-p", type=str, help="Serial port (e.g., /dev/ttyUSB0, COM3)")
    parser.add_argument("--leds", "-n", type=int, help="Number of leds on the strip")
    parser.add_argument("--baudrate", "-b", type=int, help="Baud rate (default: 115200)")
    parser.add_argument(
        "--keep-lit",
        action="store_true",
        help="Leave the leds as they are when disconnecting",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default="warning",
        help="Logging level (default: warning)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (same as --log-level debug)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # discovery
    subparsers.add_parser("ports", help="List serial ports")
    subparsers.add_parser("scan", help="Find ports with an Adalight device")

    # fill
    p = subparsers.add_parser("fill", help="Fill all leds with a color")
    p.add_argument("r", type=int, help="Red (0-255)")
    p.add_argument("g", type=int, help="Green (0-255)")
    p.add_argument("b", type=int, help="Blue (0-255)")

    # clear
    subparsers.add_parser("clear", help="Turn all leds off")

    # wipe
    p = subparsers.add_parser("wipe", help="Color wipe one led at a time")
    p.add_argument("r", type=int, help="Red (0-255)")
    p.add_argument("g", type=int, help="Green (0-255)")
    p.add_argument("b", type=int, help="Blue (0-255)")
    p.add_argument("--delay", type=float, default=0.01, help="Delay per led (seconds)")

    # brightness
    p = subparsers.add_parser("brightness", help="Set brightness")
    p.add_argument("value", type=int, help="Brightness (0-255)")

    # state
    p = subparsers.add_parser("state", help="Query led count and brightness")
    p.add_argument(
        "-t", "--timeout", type=float, default=None,
        help="Reply timeout in seconds (default: response_timeout from config, 1.0)",
    )

    # demo
    p = subparsers.add_parser("demo", help="Run the red/blue/green demo")
    p.add_argument("--pause", type=float, default=3.0, help="Pause between steps (seconds)")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AdalightConfig:
    """Merge the config file (if any) with command line overrides."""
    config = load_config(args.config) if args.config else AdalightConfig()

    overrides = {}
    if args.port:
        overrides["port"] = args.port
    if args.leds is not None:
        overrides["led_count"] = args.leds
    if args.baudrate is not None:
        overrides["baudrate"] = args.baudrate
    if args.keep_lit:
        overrides["reset_on_disconnect"] = False

    if overrides:
        config = AdalightConfig(**{**config.model_dump(), **overrides})
    return config


def run_device_command(config: AdalightConfig, args: argparse.Namespace) -> int:
    """Connect, run one device command and disconnect."""
    handlers = {
        "fill": cmd_fill,
        "clear": cmd_clear,
        "wipe": cmd_wipe,
        "brightness": cmd_brightness,
        "state": cmd_state,
        "demo": cmd_demo,
    }

    device = AdalightDevice.from_config(config)
    try:
        if not device.connect():
            print(f"Error: could not connect to {config.port}", file=sys.stderr)
            return 1

        if config.brightness is not None and args.command != "brightness":
            device.set_brightness(config.brightness)

        ok = handlers[args.command](device, args)

        if device.disconnect(reset=config.reset_on_disconnect):
            logger.info(f"Device on {config.port} is disconnected")
        return 0 if ok else 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        device.disconnect(reset=config.reset_on_disconnect)
        return 0
    finally:
        device.dispose()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Set up logging
    log_level_str = "debug" if args.verbose else args.log_level
    log_level = getattr(logging, log_level_str.upper())
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not args.command:
        print("Error: a command is required. Use --help for usage.", file=sys.stderr)
        return 1

    if args.command == "ports":
        return cmd_ports(args)
    if args.command == "scan":
        return cmd_scan(args)

    try:
        config = build_config(args)
    except (AdalightError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not config.port:
        print("Error: Serial port required. Use --port or specify in config file.", file=sys.stderr)
        print("Use 'adalight scan' to find connected devices.", file=sys.stderr)
        return 1

    return run_device_command(config, args)


if __name__ == "__main__":
    sys.exit(main())
