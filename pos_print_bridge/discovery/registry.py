"""
Printer Registry
================

Holds the current set of resolved printers. Readers always get a complete,
read-only snapshot; a discovery cycle publishes a new one atomically.
"""

import logging
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from ..errors import PrinterNotFound
from ..models import PrinterRecord, PrinterStatus

logger = logging.getLogger(__name__)

Listener = Callable[[Mapping[str, PrinterRecord]], None]


class PrinterRegistry:
    """Snapshot store for printer records keyed by record id."""

    def __init__(self, records: Optional[Mapping[str, PrinterRecord]] = None):
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, PrinterRecord] = MappingProxyType(dict(records or {}))
        self._listeners: List[Listener] = []
        self.version = 0
        self.updated_at: Optional[datetime] = None

    def snapshot(self) -> Mapping[str, PrinterRecord]:
        return self._snapshot

    def records(self) -> List[PrinterRecord]:
        return list(self._snapshot.values())

    def replace(self, records: Mapping[str, PrinterRecord]) -> Mapping[str, PrinterRecord]:
        """
        Publish a new snapshot.

        Args:
            records: Record id -> record

        Returns:
            The published read-only snapshot
        """
        with self._lock:
            snapshot, listeners = self._publish(dict(records))
        self._notify(snapshot, listeners)
        return snapshot

    def update(self, record: PrinterRecord) -> Mapping[str, PrinterRecord]:
        """Publish a snapshot with one record replaced."""
        with self._lock:
            records = dict(self._snapshot)
            records[record.id] = record
            snapshot, listeners = self._publish(records)
        self._notify(snapshot, listeners)
        return snapshot

    def set_status(self, record_id: str, status: PrinterStatus,
                   message: Optional[str] = None) -> Optional[PrinterRecord]:
        """
        Set the status of the record currently published under ``record_id``.

        Returns:
            The updated record, or None if the id is no longer published
        """
        with self._lock:
            current = self._snapshot.get(record_id)
            if current is None:
                return None
            updated = current.with_status(status, message)
            records = dict(self._snapshot)
            records[record_id] = updated
            snapshot, listeners = self._publish(records)
        self._notify(snapshot, listeners)
        return updated

    def _publish(self, records: Dict[str, PrinterRecord]):
        # Caller holds the lock
        snapshot = MappingProxyType(records)
        self._snapshot = snapshot
        self.version += 1
        self.updated_at = datetime.now()
        return snapshot, list(self._listeners)

    @staticmethod
    def _notify(snapshot: Mapping[str, PrinterRecord], listeners: List[Listener]):
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception('Registry listener failed')

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def get(self, record_id: str) -> Optional[PrinterRecord]:
        return self._snapshot.get(record_id)

    def find(self, name: str) -> PrinterRecord:
        """
        Look a printer up by id, display name or OS queue name.

        Raises:
            PrinterNotFound: If nothing in the current snapshot matches
        """
        snapshot = self._snapshot
        if not name or not name.strip():
            raise PrinterNotFound('Printer name is required')
        if name in snapshot:
            return snapshot[name]
        for record in snapshot.values():
            if record.matches_name(name):
                return record
        raise PrinterNotFound(f'Printer not found: {name}')

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, record_id) -> bool:
        return record_id in self._snapshot
