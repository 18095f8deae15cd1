"""
usbmap Command Line Interface.

Provides commands:
- info: List connected devices and their descriptor trees
- read: Capture raw HID reports of a device's keys into a keymap file
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import yaml

from usbmap import __version__
from usbmap.capture.keymap import KeymapStore, PersistenceError
from usbmap.capture.session import CaptureReadError, CaptureSession, Console
from usbmap.capture.transport import InterruptTransport, TransportError
from usbmap.config import LoggingConfig, MapperConfig, load_config, validate_config
from usbmap.descriptor.enumerator import ContextError, DeviceNotFound, enumerate_devices
from usbmap.descriptor.tree import DescriptorReadError, DeviceInfo, parse_identity


logger = logging.getLogger("usbmap")


def identity_arg(text: str) -> str:
    """argparse type for "vvvv:pppp" device identities."""
    try:
        return parse_identity(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def byte_arg(text: str) -> int:
    """argparse type for byte values given in decimal or 0x hex."""
    try:
        value = int(text, 0)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number: {text}") from e
    if not 0 <= value <= 0xFF:
        raise argparse.ArgumentTypeError(f"value out of range 0-255: {text}")
    return value


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="usbmap",
        description="USB descriptor browser and HID key report mapper",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # info command
    info_parser = subparsers.add_parser("info", help="Show device descriptors")
    info_parser.add_argument(
        "-d", "--device",
        type=identity_arg,
        help="Device id vvvv:pppp (as shown by lsusb)",
    )
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    info_parser.set_defaults(func=cmd_info)

    # read command
    read_parser = subparsers.add_parser("read", help="Capture key reports into a keymap")
    read_parser.add_argument(
        "-d", "--device",
        type=identity_arg,
        required=True,
        help="Device id vvvv:pppp (as shown by lsusb)",
    )
    read_parser.add_argument(
        "-C", "--configuration",
        type=byte_arg,
        help="USB configuration value (see info)",
    )
    read_parser.add_argument(
        "-i", "--interface",
        type=byte_arg,
        help="USB interface number (see info)",
    )
    read_parser.add_argument(
        "-e", "--endpoint",
        type=byte_arg,
        help="Interrupt IN endpoint address, e.g. 129 or 0x81 (see info)",
    )
    read_parser.add_argument(
        "-o", "--output",
        metavar="FILE",
        help="Keymap file to write",
    )
    read_parser.set_defaults(func=cmd_read)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except (FileNotFoundError, yaml.YAMLError, TypeError) as e:
        print(f"[Error] Failed to load configuration: {e}")
        return 1

    errors = validate_config(config)
    if errors:
        for error in errors:
            print(f"[Error] {error}")
        return 1

    setup_logging(config.logging, verbose=args.verbose)
    return args.func(args, config)


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Configure logging based on config."""
    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def output(data: Any) -> None:
    """Print data as JSON."""
    print(json.dumps(data, indent=2, default=str))


def render_device(device: DeviceInfo) -> list[str]:
    """Render a device's descriptor tree as indented text lines."""
    lines = [
        f"Device {device.identity}",
        f"  Class:            {device.class_code} "
        f"(subclass 0x{device.subclass_code:02x}, protocol 0x{device.protocol_code:02x})",
        f"  USB version:      {device.usb_version}",
        f"  Max packet size:  {device.max_packet_size}",
        f"  Configurations:   {device.num_configurations}",
    ]
    for cfg in device.configurations:
        lines.append(
            f"  Configuration {cfg.number}: "
            f"max power {cfg.max_power} mA, "
            f"self-powered {'yes' if cfg.self_powered else 'no'}, "
            f"remote wakeup {'yes' if cfg.remote_wakeup else 'no'}, "
            f"interfaces {cfg.num_interfaces}"
        )
        for intf in cfg.interfaces:
            lines.append(
                f"    Interface {intf.interface_number} alt {intf.alternate_setting}: "
                f"{intf.class_code}, subclass {intf.subclass_code}, "
                f"protocol {intf.protocol_code}, endpoints {intf.num_endpoints}"
            )
            for ep in intf.endpoints:
                lines.append(
                    f"      Endpoint 0x{ep.address:02x} ({ep.address}): "
                    f"EP {ep.endpoint_number} {ep.direction.name}, "
                    f"{ep.transfer_type.name.capitalize()}, "
                    f"max packet {ep.max_packet_size}, interval {ep.interval}"
                )
    return lines


def cmd_info(args: argparse.Namespace, config: MapperConfig) -> int:
    """Show descriptors of all devices or of one device."""
    try:
        devices = enumerate_devices(
            backend=config.enumeration.backend,
            skip_unreadable=config.enumeration.skip_unreadable,
        )
    except (ContextError, DescriptorReadError) as e:
        print(f"[Error] {e}")
        return 1

    if args.device:
        device = devices.lookup_by_id(args.device)
        if device is None:
            print(f"[device {args.device} not found.]")
            return 1
        selected = [device]
    else:
        selected = list(devices)

    if args.json:
        output([d.to_dict() for d in selected])
        return 0

    if not selected:
        print("No USB devices found.")
    for i, device in enumerate(selected):
        if i:
            print()
        print("\n".join(render_device(device)))
    return 0


def cmd_read(args: argparse.Namespace, config: MapperConfig) -> int:
    """Run an interactive capture session and persist the keymap."""
    capture = config.capture
    transport = InterruptTransport(
        args.device,
        configuration=args.configuration if args.configuration is not None else capture.configuration,
        interface=args.interface if args.interface is not None else capture.interface,
        endpoint=args.endpoint if args.endpoint is not None else capture.endpoint,
        detach_kernel_driver=capture.detach_kernel_driver,
        reattach_on_close=capture.reattach_on_close,
        backend=config.enumeration.backend,
    )
    store = KeymapStore(args.output or config.keymap.path, indent=config.keymap.indent)

    try:
        transport.open()
    except DeviceNotFound as e:
        print(f"[{e}]")
        return 1
    except (ContextError, TransportError) as e:
        print(f"[Error] {e}")
        return 1

    logger.info(
        "Capturing reports from %s endpoint 0x%02x", transport.identity, transport.endpoint
    )
    status = 0
    try:
        session = CaptureSession(
            transport,
            Console(),
            drain_timeout_ms=capture.drain_timeout_ms,
        )
        try:
            entries = session.run()
        except CaptureReadError as e:
            print(f"[Error] {e}")
            entries = e.entries
            status = 1
        except KeyboardInterrupt:
            print()
            print("[Error] Capture interrupted")
            entries = list(session.entries)
            status = 1
    finally:
        transport.close()

    try:
        store.persist(entries)
    except PersistenceError as e:
        print(f"[Error] {e}")
        return 1

    print(f"Saved {len(entries)} keys to {store.path}")
    return status


if __name__ == "__main__":
    sys.exit(main())
