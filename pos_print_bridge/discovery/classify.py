"""
OS Printer Classification
=========================

Pure helpers deciding whether an OS queue is virtual, and guessing how a
physical queue is attached (usb, lan or local).
"""

import re
from typing import Dict, Optional
from urllib.parse import parse_qs, urlsplit

from ..config import VIRTUAL_PRINTER_KEYWORDS

VIRTUAL = 'virtual'
USB = 'usb'
LAN = 'lan'
LOCAL = 'local'

NETWORK_URI_SCHEMES = ('socket', 'ipp', 'ipps', 'lpd', 'http', 'https', 'dnssd', 'smb')

_IPV4 = re.compile(r'(?<![\d.])(?:\d{1,3}\.){3}\d{1,3}(?![\d.])')
_LAN_WORD = re.compile(r'\b(network|lan|ethernet|wi-?fi)\b')


def is_virtual_printer(name: str, description: str = '') -> bool:
    """True if the queue name or description names a virtual printer."""
    haystack = f'{name or ""} {description or ""}'.lower()
    return any(keyword in haystack for keyword in VIRTUAL_PRINTER_KEYWORDS)


def classify_os_printer(name: str, description: str = '', port_name: str = '',
                        device_uri: str = '') -> str:
    """
    Classify an OS print queue.

    Args:
        name: Queue name
        description: Driver/description text
        port_name: Windows port name (USB001, IP_192.168.1.50, ...)
        device_uri: CUPS device URI

    Returns:
        One of 'virtual', 'usb', 'lan', 'local'
    """
    if is_virtual_printer(name, description):
        return VIRTUAL

    text = ' '.join(s for s in (name, description, port_name) if s).lower()
    scheme = urlsplit(device_uri).scheme.lower() if device_uri else ''

    if scheme == 'usb' or 'usb' in text:
        return USB
    if scheme in NETWORK_URI_SCHEMES:
        return LAN
    if _LAN_WORD.search(text) or (port_name and (_IPV4.search(port_name)
                                                 or 'ip_' in port_name.lower())):
        return LAN
    return LOCAL


def parse_device_uri(device_uri: str) -> Dict[str, Optional[object]]:
    """
    Pull address details out of a CUPS device URI.

    ``socket://192.168.1.50:9100`` gives host/ip/port, and
    ``usb://EPSON/TM-T20?serial=X`` gives the serial number.
    """
    details: Dict[str, Optional[object]] = {'host': None, 'ip': None, 'port': None, 'serial': None}
    if not device_uri:
        return details

    parts = urlsplit(device_uri)
    scheme = parts.scheme.lower()
    if scheme == 'usb':
        serial = parse_qs(parts.query).get('serial')
        details['serial'] = serial[0] if serial else None
        return details

    if scheme in NETWORK_URI_SCHEMES and parts.hostname:
        host = parts.hostname
        if _IPV4.fullmatch(host):
            details['ip'] = host
        else:
            details['host'] = host.rstrip('.').lower()
        try:
            details['port'] = parts.port
        except ValueError:
            details['port'] = None
    return details


def ip_from_port_name(port_name: str) -> Optional[str]:
    """Windows TCP/IP ports are usually named after the address (IP_10.0.0.5)."""
    match = _IPV4.search(port_name or '')
    return match.group(0) if match else None
