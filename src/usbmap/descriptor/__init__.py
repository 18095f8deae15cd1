"""
USB descriptor tree and device enumeration.

Turns the raw numeric descriptors of connected devices into typed,
immutable trees.
"""

from usbmap.descriptor.constants import (
    ClassCode,
    Direction,
    SyncType,
    TransferType,
    UsageType,
    resolve_class,
)
from usbmap.descriptor.enumerator import (
    ContextError,
    DeviceList,
    DeviceNotFound,
    USBContext,
    USBEnumerator,
    enumerate_devices,
)
from usbmap.descriptor.tree import (
    ConfigDescriptor,
    DescriptorReadError,
    DeviceInfo,
    Endpoint,
    Interfaces,
    build_device_info,
    format_identity,
    parse_identity,
)

__all__ = [
    # Constants
    "ClassCode",
    "Direction",
    "SyncType",
    "TransferType",
    "UsageType",
    "resolve_class",
    # Tree
    "ConfigDescriptor",
    "DescriptorReadError",
    "DeviceInfo",
    "Endpoint",
    "Interfaces",
    "build_device_info",
    "format_identity",
    "parse_identity",
    # Enumeration
    "ContextError",
    "DeviceList",
    "DeviceNotFound",
    "USBContext",
    "USBEnumerator",
    "enumerate_devices",
]
