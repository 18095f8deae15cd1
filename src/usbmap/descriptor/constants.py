"""
USB Constants and Reference Data.

USB-IF class codes and endpoint attribute fields used when turning raw
descriptor numbers into a typed tree.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class ClassCode(Enum):
    """USB Device/Interface class categories."""

    AUDIO = "Audio"
    CDC_CONTROL = "Communications and CDC Control"
    HID = "HID (Human Interface Device)"
    PHYSICAL = "Physical"
    IMAGE = "Image"
    PRINTER = "Printer"
    MASS_STORAGE = "Mass Storage Device"
    HUB = "Hub"
    CDC_DATA = "CDC-Data"
    SMART_CARD = "Smart Card"
    CONTENT_SECURITY = "Content Security"
    VIDEO = "Video"
    PERSONAL_HEALTHCARE = "Personal Health Care"
    AUDIO_VIDEO = "Audio/Video Devices"
    BILLBOARD = "Billboard Device Class"
    USB_TYPE_C_BRIDGE = "USB Type C Bridge Class"
    BULK_DISPLAY = "USB Bulk Display Protocol Class"
    MCTP = "MCTP Over USB Protocol Device Class"
    I3C = "I3C Device Class"
    DIAGNOSTIC = "Diagnostic Device"
    WIRELESS_CONTROLLER = "Wireless Controller"
    MISCELLANEOUS = "Miscellaneous"
    APPLICATION_SPECIFIC = "Application Specific"
    VENDOR_SPECIFIC = "Vendor Specific"
    UNKNOWN = "Unknown Device Class"

    def __str__(self) -> str:
        return self.value


# Assigned class codes; 0x00 (class defined per interface) is not a category
USB_CLASS_CODES: dict[int, ClassCode] = {
    0x01: ClassCode.AUDIO,
    0x02: ClassCode.CDC_CONTROL,
    0x03: ClassCode.HID,
    0x05: ClassCode.PHYSICAL,
    0x06: ClassCode.IMAGE,
    0x07: ClassCode.PRINTER,
    0x08: ClassCode.MASS_STORAGE,
    0x09: ClassCode.HUB,
    0x0A: ClassCode.CDC_DATA,
    0x0B: ClassCode.SMART_CARD,
    0x0D: ClassCode.CONTENT_SECURITY,
    0x0E: ClassCode.VIDEO,
    0x0F: ClassCode.PERSONAL_HEALTHCARE,
    0x10: ClassCode.AUDIO_VIDEO,
    0x11: ClassCode.BILLBOARD,
    0x12: ClassCode.USB_TYPE_C_BRIDGE,
    0x13: ClassCode.BULK_DISPLAY,
    0x14: ClassCode.MCTP,
    0x3C: ClassCode.I3C,
    0xDC: ClassCode.DIAGNOSTIC,
    0xE0: ClassCode.WIRELESS_CONTROLLER,
    0xEF: ClassCode.MISCELLANEOUS,
    0xFE: ClassCode.APPLICATION_SPECIFIC,
    0xFF: ClassCode.VENDOR_SPECIFIC,
}


class Direction(Enum):
    """USB Endpoint Direction."""

    OUT = "out"  # Host to device
    IN = "in"  # Device to host


class TransferType(IntEnum):
    """USB Transfer Types (bmAttributes bits 0-1)."""

    CONTROL = 0x00
    ISOCHRONOUS = 0x01
    BULK = 0x02
    INTERRUPT = 0x03


class SyncType(IntEnum):
    """Isochronous synchronization type (bmAttributes bits 2-3)."""

    NO_SYNC = 0x00
    ASYNCHRONOUS = 0x01
    ADAPTIVE = 0x02
    SYNCHRONOUS = 0x03


class UsageType(IntEnum):
    """Isochronous usage type (bmAttributes bits 4-5)."""

    DATA = 0x00
    FEEDBACK = 0x01
    FEEDBACK_DATA = 0x02
    RESERVED = 0x03


ENDPOINT_DIRECTION_MASK = 0x80
ENDPOINT_NUMBER_MASK = 0x0F

CONFIG_SELF_POWERED = 0x40
CONFIG_REMOTE_WAKEUP = 0x20


def resolve_class(class_code: int) -> ClassCode:
    """
    Resolve a class code byte to its category.

    Works for both device-level and interface-level class codes.

    Args:
        class_code: bDeviceClass or bInterfaceClass value

    Returns:
        The matching ClassCode, or ClassCode.UNKNOWN for unassigned values
    """
    return USB_CLASS_CODES.get(class_code, ClassCode.UNKNOWN)


def get_endpoint_direction(address: int) -> Direction:
    """
    Get endpoint direction from address.

    Args:
        address: Endpoint address

    Returns:
        Direction.IN or Direction.OUT
    """
    return Direction.IN if address & ENDPOINT_DIRECTION_MASK else Direction.OUT


def decode_endpoint_attributes(
    attributes: int,
) -> tuple[TransferType, SyncType, UsageType]:
    """Split endpoint bmAttributes into transfer, sync and usage types."""
    return (
        TransferType(attributes & 0x03),
        SyncType((attributes >> 2) & 0x03),
        UsageType((attributes >> 4) & 0x03),
    )
