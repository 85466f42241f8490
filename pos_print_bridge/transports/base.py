"""
Base Transport
==============

Abstract base class for printer transports.

Lifecycle: ``open()`` (acquire), ``write()`` any number of times,
``commit()`` once the job rendered completely, ``close()`` always. A
transport closed without ``commit()`` drops whatever it buffered.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import PrinterRecord, RenderOptions


class BaseTransport(ABC):
    """Abstract base class for transports."""

    name = 'base'
    default_timeout = 10.0

    def __init__(self, record: PrinterRecord, options: Optional[RenderOptions] = None):
        """Initialize transport for a resolved printer record."""
        self.record = record
        self.options = options or RenderOptions()
        self.timeout = self.options.timeout_or(self.default_timeout)
        self.bytes_written = 0

    @classmethod
    def validate(cls, record: PrinterRecord) -> None:
        """
        Check the record carries the fields this transport needs.

        Raises:
            ConfigError: If a required field is missing
        """

    @abstractmethod
    def open(self) -> None:
        """Acquire the device or connection."""
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Send (or buffer) bytes."""
        pass

    def commit(self) -> None:
        """Finish a successfully rendered job."""

    @abstractmethod
    def close(self) -> None:
        """Release everything acquired by ``open()``. Safe to call twice."""
        pass

    @abstractmethod
    def check(self) -> None:
        """
        Lightweight liveness check.

        Raises:
            ConnectionFailure: If the printer is unreachable
        """
        pass

    def describe(self) -> str:
        return f'{self.name}:{self.record.display_name}'

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
