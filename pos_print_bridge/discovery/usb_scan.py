"""
Raw USB Discovery
=================

Scans the USB bus with pyusb for devices from known receipt printer vendors.
"""

import logging
from typing import Dict, List, Optional

import usb.core
import usb.util

from ..config import USB_PRINTER_VENDORS
from ..models import DiscoverySource, RawCandidate, TransportKind

logger = logging.getLogger(__name__)


def _read_string(device, index) -> Optional[str]:
    """Read a string descriptor; None if absent or unreadable."""
    if not index:
        return None
    try:
        value = usb.util.get_string(device, index)
    except (usb.core.USBError, ValueError, NotImplementedError) as e:
        # Permissions or device quirks; the descriptor is optional
        logger.debug('Cannot read USB string %s from %04x:%04x: %s',
                     index, device.idVendor, device.idProduct, e)
        return None
    return value.strip() if value else None


def scan_usb_printers(vendors: Optional[Dict[int, str]] = None) -> List[RawCandidate]:
    """
    Find USB devices whose vendor id is on the allow-list.

    Args:
        vendors: Vendor id -> vendor name (defaults to USB_PRINTER_VENDORS)

    Returns:
        One RawUsb candidate per matching device
    """
    vendors = USB_PRINTER_VENDORS if vendors is None else vendors
    candidates = []

    for device in usb.core.find(find_all=True):
        if device.idVendor not in vendors:
            continue
        try:
            manufacturer = _read_string(device, device.iManufacturer)
            product = _read_string(device, device.iProduct)
            serial = _read_string(device, device.iSerialNumber)
        finally:
            usb.util.dispose_resources(device)

        label = ' '.join(s for s in (manufacturer or vendors[device.idVendor], product) if s)
        candidates.append(RawCandidate(
            source=DiscoverySource.USB,
            transport_kind=TransportKind.RAW_USB,
            name=f'{label} ({device.idVendor:04X}:{device.idProduct:04X})',
            vendor_id=device.idVendor,
            product_id=device.idProduct,
            serial_number=serial,
            manufacturer=manufacturer,
            product=product,
        ))

    logger.info('USB discovery found %d printer(s)', len(candidates))
    return candidates
