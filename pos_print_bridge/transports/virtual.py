"""
Virtual Print Transport
=======================

Prints an HTML document on a virtual OS queue (Microsoft Print to PDF, XPS
writers, cups-pdf, ...). The document is written to a temporary file, loaded
into a hidden render surface and printed from there.

A surface may be asked to tear down from several paths (load failure, print
error, normal completion); ``close()`` runs its teardown exactly once.
"""

import logging
import os
import sys
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..config import OS_QUEUE_TIMEOUT
from ..errors import ConfigError, ConnectionFailure, TransportError
from ..models import PrinterRecord, RenderOptions
from .base import BaseTransport

logger = logging.getLogger(__name__)


class RenderSurface(ABC):
    """Hidden surface that loads a document and prints it to a queue."""

    # Set when the document may still be read after print() returned
    document_in_use = False

    def __init__(self, record: PrinterRecord, options: RenderOptions):
        self.record = record
        self.options = options
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def load(self, path: str) -> None:
        """Load the document at ``path``."""
        pass

    @abstractmethod
    def print(self) -> None:
        """
        Print the loaded document silently.

        Raises:
            TransportError: If the queue refuses the document
        """
        pass

    def close(self) -> None:
        """Tear the surface down; later calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._teardown()

    def _teardown(self) -> None:
        pass


class ShellSurface(RenderSurface):
    """
    Windows: hand the file to its registered handler with the 'printto' verb.

    The handler reads the file after ``ShellExecuteEx`` returns, so ``print()``
    waits for the handler process to exit before the document may be removed.
    """

    def __init__(self, record: PrinterRecord, options: RenderOptions):
        super().__init__(record, options)
        self.timeout = options.timeout_or(OS_QUEUE_TIMEOUT)

    def load(self, path: str) -> None:
        if not os.path.exists(path):
            raise TransportError(f'Document {path} does not exist')
        self._path = path

    def print(self) -> None:
        import win32api
        import win32event
        from win32com.shell import shell, shellcon

        try:
            result = shell.ShellExecuteEx(
                fMask=shellcon.SEE_MASK_NOCLOSEPROCESS,
                lpVerb='printto',
                lpFile=self._path,
                lpParameters=f'"{self.record.os_queue_name}"',
                lpDirectory='.',
                nShow=0,
            )
        except Exception as e:
            raise TransportError(f'Virtual print to {self.record.os_queue_name!r} failed: {e}',
                                 cause=e) from e

        process = result.get('hProcess')
        if not process:
            # Handed to an already running handler; no process to wait on
            self.document_in_use = True
            return
        try:
            waited = win32event.WaitForSingleObject(process, int(self.timeout * 1000))
        finally:
            win32api.CloseHandle(process)
        if waited == win32event.WAIT_TIMEOUT:
            self.document_in_use = True
            logger.warning('Print handler for %s still running after %gs',
                           self.record.os_queue_name, self.timeout)


class CupsSurface(RenderSurface):
    """CUPS: submit the HTML document and let the queue's filters render it."""

    def load(self, path: str) -> None:
        import cups

        try:
            self._conn = cups.Connection()
        except RuntimeError as e:
            raise ConnectionFailure(f'CUPS not reachable: {e}', cause=e) from e
        self._path = path

    def print(self) -> None:
        import cups

        try:
            self._conn.printFile(self.record.os_queue_name, self._path, self.options.title, {
                'document-format': 'text/html',
                'copies': str(self.options.copies),
            })
        except cups.IPPError as e:
            raise TransportError(f'Virtual print to {self.record.os_queue_name!r} failed: {e}',
                                 cause=e) from e

    def _teardown(self) -> None:
        self._conn = None


def default_surface_factory(record: PrinterRecord, options: RenderOptions) -> RenderSurface:
    if sys.platform == 'win32':
        return ShellSurface(record, options)
    return CupsSurface(record, options)


class VirtualPrintTransport(BaseTransport):
    """Transport printing HTML documents through a render surface."""

    name = 'virtual'
    default_timeout = OS_QUEUE_TIMEOUT

    def __init__(self, record: PrinterRecord, options=None,
                 surface_factory: Optional[Callable[..., RenderSurface]] = None):
        super().__init__(record, options)
        self.surface_factory = surface_factory or default_surface_factory
        self.surface: Optional[RenderSurface] = None
        self._document: Optional[bytearray] = None
        self._path: Optional[str] = None

    @classmethod
    def validate(cls, record: PrinterRecord) -> None:
        if not record.os_queue_name:
            raise ConfigError(f'Printer {record.display_name!r} has no OS queue name')

    def open(self) -> None:
        self.validate(self.record)
        self._document = bytearray()
        self.surface = self.surface_factory(self.record, self.options)

    def write(self, data: bytes) -> None:
        if self._document is None:
            raise TransportError('Virtual print transport is not open')
        self._document.extend(data)
        self.bytes_written += len(data)

    def commit(self) -> None:
        fd, self._path = tempfile.mkstemp(prefix='virtual_print_', suffix='.html')
        with os.fdopen(fd, 'wb') as f:
            f.write(bytes(self._document))

        try:
            self.surface.load(self._path)
        except Exception:
            self.surface.close()
            raise
        try:
            self.surface.print()
        finally:
            self.surface.close()
        logger.info('Virtual print sent to %s', self.record.os_queue_name)

    def close(self) -> None:
        self._document = None
        if self.surface is not None:
            self.surface.close()
        path, self._path = self._path, None
        if path and self.surface is not None and self.surface.document_in_use:
            logger.warning('Leaving %s in place; the print handler may still read it', path)
        elif path:
            try:
                os.remove(path)
            except OSError as e:
                logger.warning('Could not remove temporary document %s: %s', path, e)

    def check(self) -> None:
        """Virtual queues are always ready."""
        self.validate(self.record)

    def describe(self) -> str:
        return f'virtual:{self.record.os_queue_name}'
