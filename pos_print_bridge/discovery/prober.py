"""
Connection Prober
=================

Checks every resolved printer with its transport's liveness check and
records the outcome as the printer's status.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Dict, Mapping

from ..config import PROBE_TIMEOUT
from ..errors import ConfigError, ConnectionFailure
from ..models import PrinterRecord, PrinterStatus, RenderOptions, TransportKind
from ..transports import get_transport

logger = logging.getLogger(__name__)


class ConnectionProber:
    """Probes printers concurrently, bounded by a per-cycle timeout."""

    def __init__(self, timeout: float = PROBE_TIMEOUT,
                 transport_lookup: Callable[[TransportKind], type] = get_transport,
                 max_workers: int = 8):
        self.timeout = timeout
        self.transport_lookup = transport_lookup
        self.max_workers = max_workers

    def probe(self, record: PrinterRecord) -> PrinterRecord:
        """
        Probe one printer.

        Args:
            record: Resolved printer

        Returns:
            The record with its status set; never raises
        """
        if record.is_virtual or record.transport_kind is TransportKind.VIRTUAL_OS:
            return record.with_status(PrinterStatus.READY_VIRTUAL)

        transport_cls = self.transport_lookup(record.transport_kind)
        if transport_cls is None:
            return record.with_status(PrinterStatus.CONFIG_ERROR,
                                      f'No transport for {record.transport_kind.value}')
        try:
            transport_cls.validate(record)
        except ConfigError as e:
            return record.with_status(PrinterStatus.CONFIG_ERROR, e.message)

        transport = transport_cls(record, RenderOptions(timeout=self.timeout))
        try:
            transport.check()
        except ConfigError as e:
            return record.with_status(PrinterStatus.CONFIG_ERROR, e.message)
        except ConnectionFailure as e:
            logger.info('Probe failed for %s: %s', record.display_name, e.message)
            return record.with_status(PrinterStatus.CONNECTION_FAILED, e.message)
        except Exception as e:
            logger.info('Probe failed for %s: %s', record.display_name, e)
            return record.with_status(PrinterStatus.CONNECTION_FAILED, str(e) or type(e).__name__)

        return record.with_status(PrinterStatus.CONNECTED)

    def probe_all(self, records: Mapping[str, PrinterRecord]) -> Dict[str, PrinterRecord]:
        """
        Probe all records concurrently.

        A probe still running when the timeout expires is reported as a
        connection failure; its thread is left to finish on its own.
        """
        if not records:
            return {}

        pool = ThreadPoolExecutor(max_workers=min(self.max_workers, len(records)),
                                  thread_name_prefix='probe')
        try:
            futures = {record_id: pool.submit(self.probe, record)
                       for record_id, record in records.items()}
            deadline = time.monotonic() + self.timeout
            results = {}
            for record_id, future in futures.items():
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    results[record_id] = future.result(timeout=remaining)
                except FutureTimeout:
                    results[record_id] = records[record_id].with_status(
                        PrinterStatus.CONNECTION_FAILED,
                        f'Probe timed out after {self.timeout:g}s',
                    )
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        connected = sum(1 for r in results.values() if r.status is PrinterStatus.CONNECTED)
        logger.info('Probed %d printer(s), %d connected', len(results), connected)
        return results
