"""
POS Print Bridge Models
"""

from .commands import (
    Alignment,
    CommandEntry,
    CommandKind,
    CommandSequence,
    Emphasis,
    TableCell,
    TableColumn,
)
from .options import RenderOptions
from .printer import DiscoverySource, PrinterRecord, PrinterStatus, RawCandidate, TransportKind
from .job import PrintJob

__all__ = [
    'Alignment', 'CommandEntry', 'CommandKind', 'CommandSequence', 'Emphasis',
    'TableCell', 'TableColumn', 'RenderOptions', 'DiscoverySource', 'PrinterRecord',
    'PrinterStatus', 'RawCandidate', 'TransportKind', 'PrintJob',
]
