"""
USB device enumeration.

Lists connected devices through a scoped PyUSB backend context and builds
a descriptor tree for each of them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Iterator

import usb.backend.libusb0
import usb.backend.libusb1
import usb.backend.openusb
import usb.core
import usb.util

from usbmap.descriptor.tree import DescriptorReadError, DeviceInfo, build_device_info


logger = logging.getLogger(__name__)

BACKENDS = {
    "libusb1": usb.backend.libusb1,
    "libusb0": usb.backend.libusb0,
    "openusb": usb.backend.openusb,
}


class ContextError(Exception):
    """USB access could not be initialized."""

    pass


class DeviceNotFound(Exception):
    """No connected device has the requested identity."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"device {identity} not found.")
        self.identity = identity


def get_backend(name: str = "auto") -> Any:
    """
    Resolve a PyUSB backend by name.

    Args:
        name: "auto" to let PyUSB pick, or one of BACKENDS

    Returns:
        Backend object, or None for "auto"

    Raises:
        ContextError: If the named backend's library is not available
    """
    if name == "auto":
        return None
    module = BACKENDS.get(name)
    if module is None:
        raise ContextError(f"Unknown USB backend: {name}")
    backend = module.get_backend()
    if backend is None:
        raise ContextError(f"USB backend {name} is not available. Install libusb.")
    return backend


class USBContext:
    """
    Scoped USB access context.

    Devices listed through the context have their resources released when
    the context exits, whatever the exit path.
    """

    def __init__(self, backend: str = "auto") -> None:
        self.backend_name = backend
        self._backend: Any = None
        self._devices: list[Any] = []

    def __enter__(self) -> USBContext:
        self._backend = get_backend(self.backend_name)
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def devices(self) -> list[Any]:
        """
        List raw usb.core.Device objects for every connected device.

        Raises:
            ContextError: If no backend is available or listing fails
        """
        try:
            found = list(usb.core.find(find_all=True, backend=self._backend))
        except usb.core.NoBackendError as e:
            logger.error("No USB backend available. Install libusb.")
            raise ContextError(f"No USB backend available: {e}") from e
        except usb.core.USBError as e:
            raise ContextError(f"Failed to list USB devices: {e}") from e
        self._devices.extend(found)
        return found

    def close(self) -> None:
        """Release resources of every device listed through this context."""
        for dev in self._devices:
            try:
                usb.util.dispose_resources(dev)
            except usb.core.USBError as e:
                logger.debug("Failed to dispose device resources: %s", e)
        self._devices.clear()


class DeviceList(Sequence):
    """Ordered, immutable collection of enumerated devices."""

    def __init__(self, devices: Sequence[DeviceInfo] = ()) -> None:
        self._devices = tuple(devices)

    def __getitem__(self, index: int) -> DeviceInfo:
        return self._devices[index]

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[DeviceInfo]:
        return iter(self._devices)

    def __repr__(self) -> str:
        return f"DeviceList({[d.identity for d in self._devices]!r})"

    def lookup_by_id(self, identity: str) -> DeviceInfo | None:
        """
        Find a device by its "vvvv:pppp" identity.

        Duplicate identities resolve to the first device in enumeration order.

        Returns:
            The matching DeviceInfo, or None if no device has that identity.
        """
        for device in self._devices:
            if device.identity == identity:
                return device
        return None


class USBEnumerator:
    """
    USB device enumerator using PyUSB.

    Provides static enumeration of currently connected devices.
    """

    def __init__(self, backend: str = "auto", skip_unreadable: bool = True) -> None:
        """
        Initialize the enumerator.

        Args:
            backend: PyUSB backend name ("auto", "libusb1", "libusb0", "openusb")
            skip_unreadable: Skip devices whose descriptors cannot be read
                instead of aborting the whole enumeration
        """
        self.backend = backend
        self.skip_unreadable = skip_unreadable

    def enumerate_all(self) -> DeviceList:
        """
        Enumerate all currently connected USB devices.

        Returns:
            DeviceList with a DeviceInfo for each readable device.

        Raises:
            ContextError: If USB access cannot be initialized
            DescriptorReadError: If a device is unreadable and
                skip_unreadable is off
        """
        devices = []
        with USBContext(self.backend) as ctx:
            for dev in ctx.devices():
                try:
                    devices.append(build_device_info(dev))
                except DescriptorReadError as e:
                    if not self.skip_unreadable:
                        raise
                    logger.warning("Skipping device %s: %s", e.identity, e.cause)
        logger.debug("Enumerated %d devices", len(devices))
        return DeviceList(devices)


def enumerate_devices(backend: str = "auto", skip_unreadable: bool = True) -> DeviceList:
    """Enumerate connected devices with a fresh context."""
    return USBEnumerator(backend=backend, skip_unreadable=skip_unreadable).enumerate_all()
