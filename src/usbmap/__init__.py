"""
usbmap - USB descriptor browser and HID key report mapper.

Lists every attached USB device with its descriptor hierarchy and learns
which raw HID report each physical key of a device produces.
"""

__version__ = "0.1.0"
__author__ = "usbmap Contributors"

from usbmap.config import MapperConfig, load_config

__all__ = ["MapperConfig", "load_config", "__version__"]
