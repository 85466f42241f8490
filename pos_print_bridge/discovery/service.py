"""
Discovery Service
=================

One discovery cycle: collect candidates, resolve identities, publish,
probe connections, publish again. A background thread repeats the cycle.
"""

import logging
import threading
from typing import Mapping, Optional

from ..config import DISCOVERY_INTERVAL
from ..models import PrinterRecord, PrinterStatus
from .aggregator import DiscoveryAggregator, DiscoveryReport
from .prober import ConnectionProber
from .registry import PrinterRegistry
from .resolver import IdentityResolver

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Runs discovery cycles against a registry."""

    def __init__(self, registry: PrinterRegistry,
                 aggregator: Optional[DiscoveryAggregator] = None,
                 resolver: Optional[IdentityResolver] = None,
                 prober: Optional[ConnectionProber] = None):
        self.registry = registry
        self.aggregator = aggregator or DiscoveryAggregator()
        self.resolver = resolver or IdentityResolver()
        self.prober = prober or ConnectionProber()

        self._cycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.cycles = 0

    @property
    def last_report(self) -> Optional[DiscoveryReport]:
        return self.aggregator.last_report

    @property
    def running(self) -> bool:
        return self._cycle_lock.locked()

    def run_cycle(self) -> Mapping[str, PrinterRecord]:
        """
        Run a full discovery cycle.

        A caller arriving while a cycle is in progress waits for it and gets
        its result instead of starting another one.

        Returns:
            The published registry snapshot
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug('Discovery already running, waiting for it')
            with self._cycle_lock:
                return self.registry.snapshot()

        try:
            candidates = self.aggregator.collect()
            resolved = self.resolver.resolve(candidates)
            self.registry.replace({
                record_id: (record.with_status(PrinterStatus.TESTING)
                            if record.status is PrinterStatus.DISCOVERED else record)
                for record_id, record in resolved.items()
            })
            snapshot = self.registry.replace(self.prober.probe_all(resolved))
            self.cycles += 1
            logger.info('Discovery cycle %d published %d printer(s)', self.cycles, len(snapshot))
            return snapshot
        finally:
            self._cycle_lock.release()

    def test_printer(self, record: PrinterRecord) -> PrinterRecord:
        """Re-probe one printer and publish its new status."""
        probed = self.prober.probe(record)
        # A cycle may have republished the record while the probe ran
        current = self.registry.set_status(record.id, probed.status, probed.status_message)
        return current or probed

    def _loop(self, interval: float):
        while not self._stop.is_set():
            try:
                self.run_cycle()
            except Exception:
                logger.exception('Discovery cycle failed')
            if interval <= 0:
                break
            self._stop.wait(interval)

    def start(self, interval: float = DISCOVERY_INTERVAL) -> threading.Thread:
        """
        Start discovery in a daemon thread.

        Args:
            interval: Seconds between cycles; 0 runs a single cycle
        """
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, args=(interval,),
                                        name='discovery', daemon=True)
        self._thread.start()
        return self._thread

    def stop(self):
        self._stop.set()
