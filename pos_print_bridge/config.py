"""
POS Print Bridge Configuration
"""

import os

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('POS_BRIDGE_PORT', 3030))
HOST = os.environ.get('POS_BRIDGE_HOST', '0.0.0.0')
DEBUG = os.environ.get('POS_BRIDGE_DEBUG', 'false').lower() == 'true'

# API key for print/discovery endpoints (unset = open bridge on localhost)
API_KEY = os.environ.get('POS_BRIDGE_API_KEY') or None

LOG_LEVEL = os.environ.get('POS_BRIDGE_LOG_LEVEL', 'INFO').upper()

# =============================================================================
# Discovery
# =============================================================================

# Seconds between background discovery cycles (0 = start-up and on demand only)
DISCOVERY_INTERVAL = float(os.environ.get('POS_BRIDGE_DISCOVERY_INTERVAL', 0))

MDNS_DISCOVERY_WINDOW = float(os.environ.get('POS_BRIDGE_MDNS_WINDOW', 7))
MDNS_INFO_TIMEOUT_MS = 3000

# Service types browsed over mDNS. 'ports' restricts which advertised ports
# are accepted; None accepts any.
MDNS_SERVICE_TYPES = {
    '_pdl-datastream._tcp.local.': {
        'label': 'PDL Stream',
        'ports': (9100, 9101, 9102),
        'priority': 0,
    },
    '_printer._tcp.local.': {
        'label': 'LPD',
        'ports': (515,),
        'priority': 1,
    },
    '_ipp._tcp.local.': {
        'label': 'IPP',
        'ports': None,
        'priority': 2,
    },
    '_ipps._tcp.local.': {
        'label': 'IPPS',
        'ports': None,
        'priority': 3,
    },
}

# USB vendors scanned on the raw bus (receipt and label printer makers)
USB_PRINTER_VENDORS = {
    0x0404: 'NCR',
    0x0416: 'Winbond (generic POS-58/80)',
    0x0493: 'MAG-TEK',
    0x04B8: 'Epson',
    0x04C5: 'Fujitsu',
    0x0519: 'Star Micronics',
    0x06BC: 'Oki Data',
    0x0828: 'Sato',
    0x08BD: 'Citizen',
    0x0922: 'Dymo',
    0x0A5F: 'Zebra',
    0x0AA7: 'Wincor Nixdorf',
    0x0B0B: 'Datamax-O\'Neil',
    0x0DD4: 'Custom Engineering',
    0x0FE6: 'Generic POS',
    0x1203: 'TSC',
    0x1504: 'Bixolon',
    0x154F: 'SNBC',
    0x1A86: 'QinHeng (CH34x POS)',
    0x1D90: 'Citizen',
    0x2730: 'Citizen',
    0x2D84: 'Poskey',
}

# OS queues whose name or description contains one of these are virtual
VIRTUAL_PRINTER_KEYWORDS = (
    'pdf',
    'xps',
    'fax',
    'onenote',
    'send to',
    'microsoft print to',
    'document writer',
)

# =============================================================================
# Transport Timeouts
# =============================================================================

PROBE_TIMEOUT = float(os.environ.get('POS_BRIDGE_PROBE_TIMEOUT', 5))
TCP_TIMEOUT = float(os.environ.get('POS_BRIDGE_TCP_TIMEOUT', 7))
USB_TIMEOUT_MS = int(os.environ.get('POS_BRIDGE_USB_TIMEOUT_MS', 5000))
OS_QUEUE_TIMEOUT = float(os.environ.get('POS_BRIDGE_OS_QUEUE_TIMEOUT', 15))

# Raw socket printer default port
RAW_PORT = 9100

# USB interface claimed for bulk transfers
USB_INTERFACE = int(os.environ.get('POS_BRIDGE_USB_INTERFACE', 0))

# =============================================================================
# Rendering Defaults
# =============================================================================

DEFAULT_LINE_WIDTH = int(os.environ.get('POS_BRIDGE_LINE_WIDTH', 48))
DEFAULT_LINE_CHAR = '-'
DEFAULT_PAGE_SIZE = os.environ.get('POS_BRIDGE_PAGE_SIZE', '80mm')
DEFAULT_MARGINS = '0'

# Worker threads used to load images for HTML documents
IMAGE_LOAD_WORKERS = 4
