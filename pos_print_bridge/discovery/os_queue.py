"""
OS Queue Discovery
==================

Enumerates the operating system's print queues: win32print on Windows,
CUPS (pycups) elsewhere.
"""

import logging
import sys
from typing import Any, Dict, List

from ..config import RAW_PORT
from ..models import DiscoverySource, RawCandidate, TransportKind
from .classify import VIRTUAL, classify_os_printer, ip_from_port_name, parse_device_uri

logger = logging.getLogger(__name__)


def _candidate(name: str, description: str, is_default: bool, port_name: str = '',
               device_uri: str = '', make_model: str = '') -> RawCandidate:
    sub_kind = classify_os_printer(name, f'{description} {make_model}'.strip(), port_name, device_uri)
    is_virtual = sub_kind == VIRTUAL
    address = parse_device_uri(device_uri)
    ip = address['ip'] or ip_from_port_name(port_name)
    port = address['port'] or (RAW_PORT if ip else None)

    return RawCandidate(
        source=DiscoverySource.OS_QUEUE,
        transport_kind=TransportKind.VIRTUAL_OS if is_virtual else TransportKind.OS_QUEUE_PHYSICAL,
        name=name,
        os_queue_name=name,
        description=description,
        is_default=is_default,
        is_virtual=is_virtual,
        sub_kind=sub_kind,
        device_uri=device_uri or None,
        serial_number=address['serial'],
        host=address['host'],
        ip=ip,
        port=port,
    )


def discover_win32() -> List[RawCandidate]:
    """Enumerate local and connected Windows printers."""
    import win32print

    try:
        default = win32print.GetDefaultPrinter()
    except Exception:
        # Raised when no default printer is configured
        default = None

    printers = win32print.EnumPrinters(
        win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS, None, 2
    )
    candidates = []
    for p in printers:
        name = p['pPrinterName']
        description = p.get('pComment') or p.get('pDriverName') or ''
        candidates.append(_candidate(
            name,
            description,
            is_default=(name == default),
            port_name=p.get('pPortName') or '',
        ))
    return candidates


def discover_cups() -> List[RawCandidate]:
    """Enumerate CUPS queues."""
    import cups

    conn = cups.Connection()
    default = conn.getDefault()
    printers: Dict[str, Dict[str, Any]] = conn.getPrinters()

    candidates = []
    for name, attrs in sorted(printers.items()):
        make_model = attrs.get('printer-make-and-model') or ''
        candidates.append(_candidate(
            name,
            attrs.get('printer-info') or make_model,
            is_default=(name == default),
            device_uri=attrs.get('device-uri') or '',
            make_model=make_model,
        ))
    return candidates


def discover_os_printers() -> List[RawCandidate]:
    """
    Enumerate OS print queues for the current platform.

    Raises whatever the platform API raises; the aggregator records it as a
    mechanism failure.
    """
    candidates = discover_win32() if sys.platform == 'win32' else discover_cups()
    logger.info('OS queue discovery found %d printer(s)', len(candidates))
    return candidates
