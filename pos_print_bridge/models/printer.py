"""
Printer Model
=============

Discovery candidates and the resolved printer records kept in the registry.
"""

import re
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class TransportKind(Enum):
    VIRTUAL_OS = 'VirtualOS'
    OS_QUEUE_PHYSICAL = 'OsQueuePhysical'
    RAW_USB = 'RawUsb'
    MDNS_LAN = 'MdnsLan'

    @property
    def rank(self) -> int:
        """Lower wins when two mechanisms report the same printer."""
        return _RANKS[self]

    @property
    def is_os_queue(self) -> bool:
        return self in (TransportKind.VIRTUAL_OS, TransportKind.OS_QUEUE_PHYSICAL)


_RANKS = {
    TransportKind.VIRTUAL_OS: 0,
    TransportKind.OS_QUEUE_PHYSICAL: 0,
    TransportKind.RAW_USB: 1,
    TransportKind.MDNS_LAN: 2,
}


class PrinterStatus(Enum):
    DISCOVERED = 'Discovered'
    TESTING = 'Testing'
    CONNECTED = 'Connected'
    CONNECTION_FAILED = 'ConnectionFailed'
    CONFIG_ERROR = 'ConfigError'
    READY_VIRTUAL = 'ReadyVirtual'


class DiscoverySource(Enum):
    OS_QUEUE = 'os-queue'
    USB = 'raw-usb'
    MDNS = 'mdns'


@dataclass(frozen=True)
class RawCandidate:
    """A printer as reported by one discovery mechanism."""

    source: DiscoverySource
    transport_kind: TransportKind
    name: str

    # OS queue
    os_queue_name: Optional[str] = None
    description: str = ''
    is_default: bool = False
    is_virtual: bool = False
    sub_kind: Optional[str] = None  # usb, lan, local, virtual
    device_uri: Optional[str] = None

    # USB
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    serial_number: Optional[str] = None
    manufacturer: Optional[str] = None
    product: Optional[str] = None

    # Network
    host: Optional[str] = None
    ip: Optional[str] = None
    port: Optional[int] = None
    service_name: Optional[str] = None
    service_type: Optional[str] = None
    service_priority: int = 0
    txt: Dict[str, str] = field(default_factory=dict)

    @property
    def method(self) -> str:
        """Discovery method label recorded on the resolved record."""
        if self.source is DiscoverySource.MDNS and self.service_type:
            return f'{self.source.value}:{self.service_type}'
        return self.source.value


# Fields a merged record may pick up from a lower-ranked duplicate
ENRICHABLE_FIELDS = (
    'os_queue_name',
    'description',
    'vendor_id',
    'product_id',
    'serial_number',
    'host',
    'ip',
    'port',
    'txt',
)


def record_id_for_key(key: str) -> str:
    """Stable, URL-safe id derived from a canonical identity key."""
    return re.sub(r'[^A-Za-z0-9_.-]+', '_', key.replace(':', '-')).strip('_')


@dataclass(frozen=True)
class PrinterRecord:
    """Resolved printer, immutable once published."""

    id: str
    display_name: str
    transport_kind: TransportKind
    status: PrinterStatus = PrinterStatus.DISCOVERED
    status_message: Optional[str] = None

    os_queue_name: Optional[str] = None
    description: str = ''
    is_virtual: bool = False
    is_default: bool = False

    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    serial_number: Optional[str] = None

    host: Optional[str] = None
    ip: Optional[str] = None
    port: Optional[int] = None
    txt: Dict[str, str] = field(default_factory=dict)

    discovery_methods: Tuple[str, ...] = ()

    @classmethod
    def from_candidate(cls, candidate: RawCandidate, key: str) -> 'PrinterRecord':
        return cls(
            id=record_id_for_key(key),
            display_name=candidate.name,
            transport_kind=candidate.transport_kind,
            status=(PrinterStatus.READY_VIRTUAL if candidate.is_virtual
                    else PrinterStatus.DISCOVERED),
            os_queue_name=candidate.os_queue_name,
            description=candidate.description or '',
            is_virtual=candidate.is_virtual,
            is_default=candidate.is_default,
            vendor_id=candidate.vendor_id,
            product_id=candidate.product_id,
            serial_number=candidate.serial_number,
            host=candidate.host,
            ip=candidate.ip,
            port=candidate.port,
            txt=dict(candidate.txt),
            discovery_methods=(candidate.method,),
        )

    def enriched_with(self, other: 'PrinterRecord') -> 'PrinterRecord':
        """Fill fields this record lacks from ``other`` and append its methods."""
        changes: Dict[str, Any] = {}
        for name in ENRICHABLE_FIELDS:
            if not getattr(self, name) and getattr(other, name):
                changes[name] = getattr(other, name)
        if other.is_default and not self.is_default:
            changes['is_default'] = True
        methods = self.discovery_methods + tuple(
            m for m in other.discovery_methods if m not in self.discovery_methods
        )
        changes['discovery_methods'] = methods
        return replace(self, **changes)

    def with_status(self, status: PrinterStatus, message: Optional[str] = None) -> 'PrinterRecord':
        return replace(self, status=status, status_message=message)

    def matches_name(self, name: str) -> bool:
        """Case-insensitive match on display name, OS queue name or id."""
        wanted = name.strip().casefold()
        return wanted in (
            self.display_name.strip().casefold(),
            (self.os_queue_name or '').strip().casefold(),
            self.id.casefold(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Full record for JSON serialization."""
        data = asdict(self)
        data['transport_kind'] = self.transport_kind.value
        data['status'] = self.status.value
        data['discovery_methods'] = list(self.discovery_methods)
        return data

    def to_api_dict(self) -> Dict[str, Any]:
        """Public projection returned by the printers endpoint."""
        return {
            'id': self.id,
            'name': self.display_name,
            'transportKind': self.transport_kind.value,
            'status': self.status.value,
            'description': self.description,
            'isDefault': self.is_default,
            'isVirtual': self.is_virtual,
            'osQueueName': self.os_queue_name,
        }
