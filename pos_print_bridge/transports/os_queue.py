"""
OS Queue Transport
==================

Submits raw ESC/POS jobs through the operating system's print spooler:
win32print RAW documents on Windows, pycups raw jobs elsewhere.

Bytes are buffered while the job renders and handed to the spooler on
``commit()``, so a job that fails half way never reaches the queue.
"""

import logging
import os
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Optional

from ..config import OS_QUEUE_TIMEOUT
from ..errors import ConfigError, ConnectionFailure, TransportError
from ..models import PrinterRecord
from .base import BaseTransport

logger = logging.getLogger(__name__)

# win32 PRINTER_STATUS_* bits meaning the queue cannot print
WIN32_BAD_STATUS = {
    0x00000001: 'paused',
    0x00000002: 'error',
    0x00000010: 'paper out',
    0x00000080: 'offline',
    0x00001000: 'not available',
}
WIN32_ATTRIBUTE_WORK_OFFLINE = 0x00000400

CUPS_STATE_STOPPED = 5


class OsQueueTransport(BaseTransport):
    """Transport spooling RAW jobs to a named OS print queue."""

    name = 'os-queue'
    default_timeout = OS_QUEUE_TIMEOUT

    def __init__(self, record: PrinterRecord, options=None):
        super().__init__(record, options)
        self._buffer: Optional[bytearray] = None
        self.job_id = None

    @classmethod
    def validate(cls, record: PrinterRecord) -> None:
        if not record.os_queue_name:
            raise ConfigError(f'Printer {record.display_name!r} has no OS queue name')

    @property
    def queue_name(self) -> str:
        return self.record.os_queue_name

    def open(self) -> None:
        self.validate(self.record)
        self._buffer = bytearray()

    def write(self, data: bytes) -> None:
        if self._buffer is None:
            raise TransportError('OS queue transport is not open')
        self._buffer.extend(data)
        self.bytes_written += len(data)

    def commit(self) -> None:
        """Submit the buffered job, bounded by the transport timeout."""
        if self._buffer is None:
            raise TransportError('OS queue transport is not open')
        data = bytes(self._buffer)
        submit = self._submit_win32 if sys.platform == 'win32' else self._submit_cups

        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(submit, data)
        try:
            self.job_id = future.result(timeout=self.timeout)
        except FutureTimeout as e:
            raise TransportError(
                f'Spooling to {self.queue_name!r} timed out after {self.timeout:g}s', cause=e
            ) from e
        finally:
            pool.shutdown(wait=False)
        logger.info('Queued job %s on %s (%d bytes)', self.job_id, self.queue_name, len(data))

    def close(self) -> None:
        self._buffer = None

    def check(self) -> None:
        self.validate(self.record)
        if sys.platform == 'win32':
            self._check_win32()
        else:
            self._check_cups()

    def describe(self) -> str:
        return f'queue:{self.queue_name}'

    # =========================================================================
    # Windows spooler
    # =========================================================================

    def _submit_win32(self, data: bytes):
        import win32print

        try:
            handle = win32print.OpenPrinter(self.queue_name)
        except Exception as e:
            raise ConnectionFailure(f'Cannot open printer {self.queue_name!r}: {e}', cause=e) from e

        try:
            job_id = win32print.StartDocPrinter(handle, 1, (self.options.title, None, 'RAW'))
            try:
                # RAW jobs bypass the driver, so copies are written out here
                for _ in range(self.options.copies):
                    win32print.StartPagePrinter(handle)
                    win32print.WritePrinter(handle, data)
                    win32print.EndPagePrinter(handle)
            finally:
                win32print.EndDocPrinter(handle)
            return job_id
        except ConnectionFailure:
            raise
        except Exception as e:
            raise TransportError(f'Spooler rejected job for {self.queue_name!r}: {e}', cause=e) from e
        finally:
            win32print.ClosePrinter(handle)

    def _check_win32(self):
        import win32print

        try:
            handle = win32print.OpenPrinter(self.queue_name)
        except Exception as e:
            raise ConnectionFailure(f'Printer {self.queue_name!r} not available: {e}', cause=e) from e
        try:
            info = win32print.GetPrinter(handle, 2)
        finally:
            win32print.ClosePrinter(handle)

        status = info.get('Status', 0)
        problems = [label for bit, label in WIN32_BAD_STATUS.items() if status & bit]
        if info.get('Attributes', 0) & WIN32_ATTRIBUTE_WORK_OFFLINE:
            problems.append('working offline')
        if problems:
            raise ConnectionFailure(f'Printer {self.queue_name!r} is {", ".join(problems)}')

    # =========================================================================
    # CUPS
    # =========================================================================

    def _submit_cups(self, data: bytes):
        import cups

        fd, path = tempfile.mkstemp(prefix='os_queue_job_', suffix='.bin')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            conn = cups.Connection()
            return conn.printFile(self.queue_name, path, self.options.title, {
                'raw': 'true',
                'copies': str(self.options.copies),
            })
        except cups.IPPError as e:
            raise TransportError(f'CUPS rejected job for {self.queue_name!r}: {e}', cause=e) from e
        except RuntimeError as e:
            raise ConnectionFailure(f'CUPS not reachable: {e}', cause=e) from e
        finally:
            try:
                os.remove(path)
            except OSError as e:
                logger.warning('Could not remove spool file %s: %s', path, e)

    def _check_cups(self):
        import cups

        try:
            printers = cups.Connection().getPrinters()
        except (RuntimeError, cups.IPPError) as e:
            raise ConnectionFailure(f'CUPS not reachable: {e}', cause=e) from e

        attrs = printers.get(self.queue_name)
        if attrs is None:
            raise ConnectionFailure(f'CUPS queue {self.queue_name!r} not found')
        if attrs.get('printer-state') == CUPS_STATE_STOPPED:
            reason = attrs.get('printer-state-message') or 'stopped'
            raise ConnectionFailure(f'CUPS queue {self.queue_name!r} is stopped: {reason}')
        if attrs.get('printer-is-accepting-jobs') is False:
            raise ConnectionFailure(f'CUPS queue {self.queue_name!r} is not accepting jobs')
