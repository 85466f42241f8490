"""
TCP Transport
=============

Raw socket transport for network printers found over mDNS (port 9100 and
friends).
"""

import logging
import socket
from typing import Optional, Tuple

from ..config import RAW_PORT, TCP_TIMEOUT
from ..errors import ConfigError, ConnectionFailure, TransportError
from ..models import PrinterRecord
from .base import BaseTransport

logger = logging.getLogger(__name__)


class TcpTransport(BaseTransport):
    """Transport streaming bytes over a TCP socket."""

    name = 'tcp'
    default_timeout = TCP_TIMEOUT

    # DLE EOT 1: real-time printer status
    STATUS_REQUEST = b'\x10\x04\x01'
    STATUS_READ_TIMEOUT = 1.0

    def __init__(self, record: PrinterRecord, options=None):
        super().__init__(record, options)
        self._sock: Optional[socket.socket] = None
        self.last_status: Optional[int] = None

    @classmethod
    def validate(cls, record: PrinterRecord) -> None:
        if not (record.ip or record.host):
            raise ConfigError(f'Printer {record.display_name!r} has no network address')
        if not record.port:
            raise ConfigError(f'Printer {record.display_name!r} has no port')

    def _get_connection(self) -> Tuple[str, int]:
        """Get host and port for network connection."""
        return self.record.ip or self.record.host, self.record.port or RAW_PORT

    def _connect(self) -> socket.socket:
        self.validate(self.record)
        host, port = self._get_connection()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect((host, port))
        except socket.timeout as e:
            sock.close()
            raise ConnectionFailure(f'Connection timeout to {host}:{port}', cause=e) from e
        except ConnectionRefusedError as e:
            sock.close()
            raise ConnectionFailure(f'Connection refused by {host}:{port}', cause=e) from e
        except OSError as e:
            sock.close()
            raise ConnectionFailure(f'Cannot connect to {host}:{port}: {e}', cause=e) from e
        return sock

    def open(self) -> None:
        if self._sock is None:
            self._sock = self._connect()

    def write(self, data: bytes) -> None:
        if self._sock is None:
            raise TransportError('TCP transport is not open')
        try:
            self._sock.sendall(data)
        except OSError as e:
            host, port = self._get_connection()
            raise TransportError(f'Send to {host}:{port} failed: {e}', cause=e) from e
        self.bytes_written += len(data)

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug('Socket close failed: %s', e)

    def check(self) -> None:
        """Connect and request the printer's real-time status."""
        if self._sock is not None:
            return

        sock = self._connect()
        try:
            sock.sendall(self.STATUS_REQUEST)
            sock.settimeout(min(self.timeout, self.STATUS_READ_TIMEOUT))
            response = sock.recv(1)
            self.last_status = response[0] if response else None
        except socket.timeout:
            # Many printers ignore status requests on the raw port
            self.last_status = None
        except OSError as e:
            raise ConnectionFailure(f'Status query failed: {e}', cause=e) from e
        finally:
            sock.close()

        if self.last_status is not None:
            logger.debug('Printer %s status byte 0x%02x', self.describe(), self.last_status)

    def describe(self) -> str:
        host, port = self._get_connection()
        return f'tcp://{host}:{port}'
