"""
USB descriptor tree model and builder.

Reads a device's descriptors through PyUSB and assembles an immutable
device -> configurations -> interfaces -> endpoints tree.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import usb.core

from usbmap.descriptor.constants import (
    CONFIG_REMOTE_WAKEUP,
    CONFIG_SELF_POWERED,
    ENDPOINT_NUMBER_MASK,
    ClassCode,
    Direction,
    SyncType,
    TransferType,
    UsageType,
    decode_endpoint_attributes,
    get_endpoint_direction,
    resolve_class,
)


logger = logging.getLogger(__name__)

IDENTITY_PATTERN = re.compile(r"^[0-9a-fA-F]{4}:[0-9a-fA-F]{4}$")


class DescriptorReadError(Exception):
    """A device's descriptor tree could not be read."""

    def __init__(self, identity: str, cause: Exception) -> None:
        super().__init__(f"Failed to read descriptors of {identity}: {cause}")
        self.identity = identity
        self.cause = cause


def format_identity(vendor_id: int, product_id: int) -> str:
    """Format numeric VID/PID as the "vvvv:pppp" identity string."""
    return f"{vendor_id:04x}:{product_id:04x}"


def parse_identity(text: str) -> str:
    """
    Normalize a user-supplied identity string.

    Args:
        text: Identity in "vvvv:pppp" form (hex, any case)

    Returns:
        Lowercase identity string

    Raises:
        ValueError: If the text is not four hex digits, a colon, four hex digits
    """
    text = text.strip()
    if not IDENTITY_PATTERN.match(text):
        raise ValueError(f"Invalid device id {text!r}, expected vvvv:pppp")
    return text.lower()


def _format_bcd(bcd: int) -> str:
    return f"{bcd >> 8:x}.{bcd & 0xFF:02x}"


def _optional_index(index: int) -> int | None:
    # String index 0 means "no string"
    return index or None


@dataclass(frozen=True)
class Endpoint:
    """USB Endpoint Descriptor."""

    address: int
    endpoint_number: int
    direction: Direction
    transfer_type: TransferType
    sync_type: SyncType
    usage_type: UsageType
    max_packet_size: int
    interval: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": self.address,
            "endpoint_number": self.endpoint_number,
            "direction": self.direction.value,
            "transfer_type": self.transfer_type.name.lower(),
            "sync_type": self.sync_type.name.lower(),
            "usage_type": self.usage_type.name.lower(),
            "max_packet_size": self.max_packet_size,
            "interval": self.interval,
        }


@dataclass(frozen=True)
class Interfaces:
    """One interface alternate setting and its endpoints."""

    interface_number: int
    alternate_setting: int
    num_endpoints: int
    class_code: ClassCode
    subclass_code: int
    protocol_code: int
    description_string_index: int | None
    endpoints: tuple[Endpoint, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "interface_number": self.interface_number,
            "alternate_setting": self.alternate_setting,
            "num_endpoints": self.num_endpoints,
            "class_code": self.class_code.value,
            "subclass_code": self.subclass_code,
            "protocol_code": self.protocol_code,
            "description_string_index": self.description_string_index,
            "endpoints": [ep.to_dict() for ep in self.endpoints],
        }


@dataclass(frozen=True)
class ConfigDescriptor:
    """USB Configuration Descriptor."""

    number: int
    max_power: int  # mA
    self_powered: bool
    remote_wakeup: bool
    num_interfaces: int
    interfaces: tuple[Interfaces, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "number": self.number,
            "max_power": self.max_power,
            "self_powered": self.self_powered,
            "remote_wakeup": self.remote_wakeup,
            "num_interfaces": self.num_interfaces,
            "interfaces": [intf.to_dict() for intf in self.interfaces],
        }


@dataclass(frozen=True)
class DeviceInfo:
    """One USB device with its full descriptor hierarchy."""

    vendor_id: str  # 4 lowercase hex digits
    product_id: str  # 4 lowercase hex digits
    class_code: ClassCode
    subclass_code: int
    protocol_code: int
    max_packet_size: int
    num_configurations: int
    usb_version: str
    manufacturer_string_index: int | None = None
    product_string_index: int | None = None
    serial_number_string_index: int | None = None
    configurations: tuple[ConfigDescriptor, ...] = ()

    @property
    def identity(self) -> str:
        """Get the "vvvv:pppp" identity string."""
        return f"{self.vendor_id}:{self.product_id}"

    @property
    def endpoint_count(self) -> int:
        """Total endpoints across every interface of every configuration."""
        return sum(
            len(intf.endpoints)
            for cfg in self.configurations
            for intf in cfg.interfaces
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.identity,
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "class_code": self.class_code.value,
            "subclass_code": self.subclass_code,
            "protocol_code": self.protocol_code,
            "max_packet_size": self.max_packet_size,
            "num_configurations": self.num_configurations,
            "usb_version": self.usb_version,
            "manufacturer_string_index": self.manufacturer_string_index,
            "product_string_index": self.product_string_index,
            "serial_number_string_index": self.serial_number_string_index,
            "configurations": [cfg.to_dict() for cfg in self.configurations],
        }


def build_endpoint(ep: Any) -> Endpoint:
    """Build an Endpoint from a usb.core.Endpoint."""
    address = ep.bEndpointAddress
    transfer_type, sync_type, usage_type = decode_endpoint_attributes(ep.bmAttributes)
    return Endpoint(
        address=address,
        endpoint_number=address & ENDPOINT_NUMBER_MASK,
        direction=get_endpoint_direction(address),
        transfer_type=transfer_type,
        sync_type=sync_type,
        usage_type=usage_type,
        max_packet_size=ep.wMaxPacketSize,
        interval=ep.bInterval,
    )


def build_interface(intf: Any) -> Interfaces:
    """Build an Interfaces entry from a usb.core.Interface alternate setting."""
    return Interfaces(
        interface_number=intf.bInterfaceNumber,
        alternate_setting=intf.bAlternateSetting,
        num_endpoints=intf.bNumEndpoints,
        class_code=resolve_class(intf.bInterfaceClass),
        subclass_code=intf.bInterfaceSubClass,
        protocol_code=intf.bInterfaceProtocol,
        description_string_index=_optional_index(intf.iInterface),
        endpoints=tuple(build_endpoint(ep) for ep in intf),
    )


def build_configuration(cfg: Any) -> ConfigDescriptor:
    """Build a ConfigDescriptor from a usb.core.Configuration."""
    # Iterating a configuration yields every alternate setting of every interface
    interfaces = tuple(build_interface(intf) for intf in cfg)
    if len(interfaces) < cfg.bNumInterfaces:
        logger.debug(
            "Configuration %d declares %d interfaces, exposes %d",
            cfg.bConfigurationValue, cfg.bNumInterfaces, len(interfaces),
        )
    return ConfigDescriptor(
        number=cfg.bConfigurationValue,
        max_power=cfg.bMaxPower * 2,
        self_powered=bool(cfg.bmAttributes & CONFIG_SELF_POWERED),
        remote_wakeup=bool(cfg.bmAttributes & CONFIG_REMOTE_WAKEUP),
        num_interfaces=cfg.bNumInterfaces,
        interfaces=interfaces,
    )


def build_device_info(dev: Any) -> DeviceInfo:
    """
    Build the full descriptor tree of a PyUSB device.

    Configurations, interfaces and endpoints keep the order the transport
    exposes them in.

    Args:
        dev: usb.core.Device object

    Returns:
        DeviceInfo with every configuration populated

    Raises:
        DescriptorReadError: If any descriptor read fails; no partial
            tree is returned
    """
    identity = format_identity(dev.idVendor, dev.idProduct)
    try:
        configurations = tuple(
            build_configuration(dev[index])
            for index in range(dev.bNumConfigurations)
        )
        return DeviceInfo(
            vendor_id=f"{dev.idVendor:04x}",
            product_id=f"{dev.idProduct:04x}",
            class_code=resolve_class(dev.bDeviceClass),
            subclass_code=dev.bDeviceSubClass,
            protocol_code=dev.bDeviceProtocol,
            max_packet_size=dev.bMaxPacketSize0,
            num_configurations=dev.bNumConfigurations,
            usb_version=_format_bcd(dev.bcdUSB),
            manufacturer_string_index=_optional_index(dev.iManufacturer),
            product_string_index=_optional_index(dev.iProduct),
            serial_number_string_index=_optional_index(dev.iSerialNumber),
            configurations=configurations,
        )
    except usb.core.USBError as e:
        raise DescriptorReadError(identity, e) from e
