"""
POS Print Bridge Transports
===========================

Transports delivering rendered jobs to printers.
"""

from ..models import TransportKind
from .base import BaseTransport
from .os_queue import OsQueueTransport
from .tcp import TcpTransport
from .usb import UsbTransport
from .virtual import RenderSurface, VirtualPrintTransport

__all__ = [
    'BaseTransport', 'OsQueueTransport', 'TcpTransport', 'UsbTransport',
    'RenderSurface', 'VirtualPrintTransport',
]

# Transport registry
TRANSPORTS = {
    TransportKind.VIRTUAL_OS: VirtualPrintTransport,
    TransportKind.OS_QUEUE_PHYSICAL: OsQueueTransport,
    TransportKind.RAW_USB: UsbTransport,
    TransportKind.MDNS_LAN: TcpTransport,
}


def get_transport(kind: TransportKind) -> type:
    """Get transport class by transport kind."""
    return TRANSPORTS.get(kind)
