"""
USB Transport
=============

Raw USB bulk transport via pyusb.

Sequence: find device, make sure it is configured, detach the kernel driver
if one is bound, claim the interface, write to the bulk OUT endpoint, then
release, re-attach and dispose. ``close()`` undoes whatever ``open()`` got
through, so the handle is freed on every failure path.
"""

import logging
from typing import Optional

import usb.core
import usb.util

from ..config import USB_INTERFACE, USB_TIMEOUT_MS
from ..errors import ConfigError, ConnectionFailure, PrintBridgeError, TransportError
from ..models import PrinterRecord
from .base import BaseTransport

logger = logging.getLogger(__name__)


class UsbTransport(BaseTransport):
    """Transport writing to a USB printer's bulk OUT endpoint."""

    name = 'usb'
    default_timeout = USB_TIMEOUT_MS / 1000.0

    def __init__(self, record: PrinterRecord, options=None, interface: int = USB_INTERFACE):
        super().__init__(record, options)
        self.interface = interface
        self._device = None
        self._endpoint = None
        self._claimed = False
        self._detached = False

    @classmethod
    def validate(cls, record: PrinterRecord) -> None:
        if record.vendor_id is None or record.product_id is None:
            raise ConfigError(f'Printer {record.display_name!r} is missing USB vendor/product id')

    @property
    def ids(self) -> str:
        if self.record.vendor_id is None or self.record.product_id is None:
            return 'unknown'
        return f'{self.record.vendor_id:04x}:{self.record.product_id:04x}'

    def _find(self):
        self.validate(self.record)
        device = usb.core.find(idVendor=self.record.vendor_id, idProduct=self.record.product_id)
        if device is None:
            raise ConnectionFailure(f'USB device {self.ids} not found')
        return device

    def open(self) -> None:
        self._device = self._find()
        try:
            self._prepare()
        except Exception as e:
            self.close()
            if isinstance(e, PrintBridgeError):
                raise
            raise ConnectionFailure(f'Cannot open USB device {self.ids}: {e}', cause=e) from e

    def _prepare(self):
        device = self._device
        try:
            device.get_active_configuration()
        except usb.core.USBError:
            device.set_configuration()

        if self._kernel_driver_active():
            device.detach_kernel_driver(self.interface)
            self._detached = True

        usb.util.claim_interface(device, self.interface)
        self._claimed = True

        self._endpoint = self._find_out_endpoint()
        if self._endpoint is None:
            raise TransportError(f'USB device {self.ids} has no bulk OUT endpoint')

    def _kernel_driver_active(self) -> bool:
        try:
            return bool(self._device.is_kernel_driver_active(self.interface))
        except NotImplementedError:
            # Not supported by the Windows and macOS backends
            return False

    def _find_out_endpoint(self):
        config = self._device.get_active_configuration()
        interface = config[(self.interface, 0)]
        return usb.util.find_descriptor(
            interface,
            custom_match=lambda e: (
                usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_OUT
            ),
        )

    def write(self, data: bytes) -> None:
        if self._endpoint is None:
            raise TransportError('USB transport is not open')
        try:
            written = self._endpoint.write(data, timeout=int(self.timeout * 1000))
        except usb.core.USBError as e:
            raise TransportError(f'USB write to {self.ids} failed: {e}', cause=e) from e
        self.bytes_written += written if isinstance(written, int) else len(data)

    def close(self) -> None:
        device, self._device = self._device, None
        if device is None:
            return
        self._endpoint = None
        try:
            if self._claimed:
                try:
                    usb.util.release_interface(device, self.interface)
                except (usb.core.USBError, ValueError) as e:
                    logger.warning('Releasing USB interface on %s failed: %s', self.ids, e)
            if self._detached:
                try:
                    device.attach_kernel_driver(self.interface)
                except (usb.core.USBError, NotImplementedError) as e:
                    logger.warning('Re-attaching kernel driver on %s failed: %s', self.ids, e)
        finally:
            self._claimed = False
            self._detached = False
            usb.util.dispose_resources(device)

    def check(self) -> None:
        """Find the device and read its configuration, then let it go."""
        device = self._find()
        try:
            device.get_active_configuration()
        except usb.core.USBError as e:
            raise ConnectionFailure(f'USB device {self.ids} not accessible: {e}', cause=e) from e
        finally:
            usb.util.dispose_resources(device)

    def describe(self) -> str:
        return f'usb://{self.ids}'
