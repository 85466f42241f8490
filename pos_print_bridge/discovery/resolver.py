"""
Identity Resolver
=================

Merges candidates from all discovery mechanisms into one record per
physical printer.

Every candidate gets a canonical key from its transport kind:

    os:<queue name, casefolded>
    usb:<vid>:<pid>
    mdns:<host or ip>:<port>

Two candidates are the same printer when their keys are equal, or when they
come from different kinds of mechanism and share an address, a USB serial,
or a normalized name (an OS queue "Front Desk" and an mDNS host
"frontdesk.local"). OS queues outrank raw USB, which outranks mDNS. The
higher-ranked record survives and takes over whatever fields the other one
knew.

Candidates are processed in a fixed order (rank, then key), so the result
does not depend on the order the mechanisms reported in, and resolving the
same input twice gives identical registries.
"""

import logging
import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set

from ..models import PrinterRecord, RawCandidate, TransportKind

logger = logging.getLogger(__name__)

MIN_NAME_HINT = 3


def normalize_name(value: Optional[str]) -> str:
    """Casefold and drop everything but letters and digits."""
    return re.sub(r'[^0-9a-z]', '', (value or '').casefold())


def identity_key(candidate: RawCandidate) -> str:
    kind = candidate.transport_kind
    if kind.is_os_queue:
        return 'os:' + (candidate.os_queue_name or candidate.name).strip().casefold()
    if kind is TransportKind.RAW_USB:
        if candidate.vendor_id is None or candidate.product_id is None:
            return 'usb:' + normalize_name(candidate.name)
        return f'usb:{candidate.vendor_id:04x}:{candidate.product_id:04x}'
    address = (candidate.host or candidate.ip or '').lower()
    return f'mdns:{address}:{candidate.port}'


def match_hints(candidate: RawCandidate) -> Set[str]:
    """Cross-mechanism identity hints for a candidate."""
    hints = set()

    if candidate.port:
        for address in (candidate.ip, candidate.host):
            if address:
                hints.add(f'addr:{address.lower()}:{candidate.port}')

    if candidate.serial_number:
        hints.add('serial:' + candidate.serial_number.strip().casefold())

    names = []
    if candidate.transport_kind.is_os_queue:
        names += [candidate.name, candidate.os_queue_name]
    elif candidate.transport_kind is TransportKind.MDNS_LAN:
        names.append(candidate.service_name)
        if candidate.host:
            names.append(candidate.host.split('.', 1)[0])
    for name in names:
        normalized = normalize_name(name)
        if len(normalized) >= MIN_NAME_HINT:
            hints.add('name:' + normalized)

    return hints


def _sort_key(candidate: RawCandidate):
    return (
        candidate.transport_kind.rank,
        candidate.service_priority,
        identity_key(candidate),
        candidate.name,
    )


class IdentityResolver:
    """Turns raw candidates into de-duplicated printer records."""

    def resolve(self, candidates: Iterable[RawCandidate]) -> Dict[str, PrinterRecord]:
        """
        Resolve candidates.

        Returns:
            Records keyed by record id, in resolution order
        """
        records: Dict[str, PrinterRecord] = {}
        hints: Dict[str, Set[str]] = {}

        for candidate in sorted(candidates, key=_sort_key):
            key = identity_key(candidate)
            candidate_hints = match_hints(candidate)
            incoming = PrinterRecord.from_candidate(candidate, key)

            existing_key = self._find_existing(records, hints, key, incoming, candidate_hints)
            if existing_key is None:
                records[key] = incoming
                hints[key] = set(candidate_hints)
                continue

            # Sorted by rank, so the record already present never ranks lower
            records[existing_key] = records[existing_key].enriched_with(incoming)
            hints[existing_key] |= candidate_hints
            logger.debug('Merged %s into %s', key, existing_key)

        return self._by_id(records.values())

    @staticmethod
    def _find_existing(records: Dict[str, PrinterRecord], hints: Dict[str, Set[str]],
                       key: str, incoming: PrinterRecord,
                       candidate_hints: Set[str]) -> Optional[str]:
        if key in records:
            return key
        if not candidate_hints:
            return None
        for existing_key, record in records.items():
            if record.transport_kind.rank == incoming.transport_kind.rank:
                continue
            if hints[existing_key] & candidate_hints:
                return existing_key
        return None

    @staticmethod
    def _by_id(records: Iterable[PrinterRecord]) -> Dict[str, PrinterRecord]:
        """Key records by id, suffixing the rare slug collision."""
        by_id: Dict[str, PrinterRecord] = {}
        for record in records:
            record_id = record.id
            suffix = 2
            while record_id in by_id:
                record_id = f'{record.id}-{suffix}'
                suffix += 1
            if record_id != record.id:
                record = replace(record, id=record_id)
            by_id[record_id] = record
        return by_id


def resolve(candidates: List[RawCandidate]) -> Dict[str, PrinterRecord]:
    return IdentityResolver().resolve(candidates)
