"""
PyUSB interrupt transport.

Opens one device by identity, prepares it for interrupt reads (kernel
driver detach, configuration, interface claim) and reads reports from a
single endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

import usb.core
import usb.util

from usbmap.descriptor.enumerator import DeviceNotFound, get_backend


logger = logging.getLogger(__name__)

DEFAULT_INTERFACE = 1
DEFAULT_ENDPOINT = 0x81


class TransportError(Exception):
    """A USB operation on an open device failed."""

    pass


class InterruptTransport:
    """
    Interrupt-endpoint access to one claimed device interface.

    Usable as a context manager; the interface is released and any
    detached kernel driver reattached on exit.
    """

    def __init__(
        self,
        identity: str,
        configuration: int | None = None,
        interface: int = DEFAULT_INTERFACE,
        endpoint: int = DEFAULT_ENDPOINT,
        detach_kernel_driver: bool = True,
        reattach_on_close: bool = True,
        backend: str = "auto",
    ) -> None:
        """
        Initialize the transport.

        Args:
            identity: Device identity "vvvv:pppp"
            configuration: bConfigurationValue to activate, None for the first
            interface: Interface number to claim
            endpoint: Interrupt IN endpoint address to read from
            detach_kernel_driver: Detach an active kernel driver before claiming
            reattach_on_close: Give the interface back to the kernel on close
            backend: PyUSB backend name
        """
        self.identity = identity
        self.configuration = configuration
        self.interface = interface
        self.endpoint = endpoint
        self.detach_kernel_driver = detach_kernel_driver
        self.reattach_on_close = reattach_on_close
        self.backend = backend
        self._device: Any = None
        self._detached = False

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def _find(self) -> Any:
        vid, pid = (int(part, 16) for part in self.identity.split(":"))
        try:
            dev = usb.core.find(idVendor=vid, idProduct=pid, backend=get_backend(self.backend))
        except usb.core.NoBackendError as e:
            raise TransportError(f"No USB backend available: {e}") from e
        if dev is None:
            raise DeviceNotFound(self.identity)
        return dev

    def open(self) -> None:
        """
        Find the device and claim the interface.

        Raises:
            DeviceNotFound: If no device has the identity
            ContextError: If the configured backend is unavailable
            TransportError: If configuring or claiming fails
        """
        dev = self._find()
        try:
            if self.detach_kernel_driver and self._kernel_driver_active(dev):
                dev.detach_kernel_driver(self.interface)
                self._detached = True
                logger.info(
                    "Detached kernel driver from %s interface %d",
                    self.identity, self.interface,
                )
            if self.configuration is None:
                dev.set_configuration()
            else:
                dev.set_configuration(self.configuration)
            usb.util.claim_interface(dev, self.interface)
        except usb.core.USBError as e:
            self._device = dev
            self.close()
            raise TransportError(
                f"Failed to prepare {self.identity} interface {self.interface}: {e}"
            ) from e

        self._device = dev
        logger.debug(
            "Claimed %s interface %d, endpoint 0x%02x",
            self.identity, self.interface, self.endpoint,
        )

    def _kernel_driver_active(self, dev: Any) -> bool:
        try:
            return bool(dev.is_kernel_driver_active(self.interface))
        except NotImplementedError:
            # Backends without kernel driver support (non-Linux)
            return False

    def read_interrupt(self, length: int, timeout_ms: int) -> bytes:
        """
        Read one interrupt report.

        Args:
            length: Maximum number of bytes to read
            timeout_ms: Timeout in milliseconds, 0 waits forever

        Returns:
            The bytes read; empty if the read timed out

        Raises:
            TransportError: If the transfer fails
        """
        if self._device is None:
            raise TransportError("Transport not open")
        try:
            data = self._device.read(self.endpoint, length, timeout=timeout_ms)
        except usb.core.USBTimeoutError:
            return b""
        except usb.core.USBError as e:
            raise TransportError(
                f"Interrupt read from {self.identity} endpoint 0x{self.endpoint:02x} failed: {e}"
            ) from e
        return bytes(data)

    def close(self) -> None:
        """Release the interface and device resources."""
        dev = self._device
        if dev is None:
            return
        try:
            usb.util.release_interface(dev, self.interface)
        except usb.core.USBError as e:
            logger.debug("Failed to release interface %d: %s", self.interface, e)
        if self._detached and self.reattach_on_close:
            try:
                dev.attach_kernel_driver(self.interface)
                logger.info(
                    "Reattached kernel driver to %s interface %d",
                    self.identity, self.interface,
                )
            except usb.core.USBError as e:
                logger.warning("Failed to reattach kernel driver: %s", e)
        usb.util.dispose_resources(dev)
        self._device = None
        self._detached = False

    def __enter__(self) -> InterruptTransport:
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
