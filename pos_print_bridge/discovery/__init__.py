"""
POS Print Bridge Discovery
==========================

Printer discovery: OS queues, raw USB and mDNS, merged into one registry.
"""

from .aggregator import DiscoveryAggregator, DiscoveryReport
from .prober import ConnectionProber
from .registry import PrinterRegistry
from .resolver import IdentityResolver, resolve
from .service import DiscoveryService

__all__ = [
    'DiscoveryAggregator', 'DiscoveryReport', 'ConnectionProber', 'PrinterRegistry',
    'IdentityResolver', 'resolve', 'DiscoveryService',
]
