"""
Interrupt capture of raw HID reports into a keymap.
"""

from usbmap.capture.keymap import (
    Keymap,
    KeymapStore,
    PersistenceError,
)
from usbmap.capture.session import (
    CaptureReadError,
    CaptureSession,
    CaptureState,
    Console,
)
from usbmap.capture.transport import (
    InterruptTransport,
    TransportError,
)

__all__ = [
    # Keymap
    "Keymap",
    "KeymapStore",
    "PersistenceError",
    # Session
    "CaptureReadError",
    "CaptureSession",
    "CaptureState",
    "Console",
    # Transport
    "InterruptTransport",
    "TransportError",
]
