"""
Discovery Aggregator
====================

Runs every discovery mechanism concurrently and concatenates their
candidates. A failing mechanism is logged and contributes nothing; the
others are unaffected.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..errors import DiscoveryMechanismFailure
from ..models import RawCandidate
from .mdns import browse_mdns_printers
from .os_queue import discover_os_printers
from .usb_scan import scan_usb_printers

logger = logging.getLogger(__name__)

Mechanism = Callable[[], List[RawCandidate]]

# Fixed mechanism order; results are concatenated in this order
DEFAULT_MECHANISMS: Dict[str, Mechanism] = {
    'os-queue': discover_os_printers,
    'raw-usb': scan_usb_printers,
    'mdns': browse_mdns_printers,
}


@dataclass
class DiscoveryReport:
    """Outcome of one aggregation pass."""

    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    duration: float = 0.0
    counts: Dict[str, int] = field(default_factory=dict)
    failures: List[DiscoveryMechanismFailure] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'duration': round(self.duration, 3),
            'counts': dict(self.counts),
            'failures': {f.mechanism: f.message for f in self.failures},
        }


class DiscoveryAggregator:
    """Concurrent fan-out over discovery mechanisms."""

    def __init__(self, mechanisms: Optional[Dict[str, Mechanism]] = None):
        self.mechanisms = dict(DEFAULT_MECHANISMS if mechanisms is None else mechanisms)
        self.last_report: Optional[DiscoveryReport] = None

    def _run_one(self, name: str, mechanism: Mechanism) -> List[RawCandidate]:
        try:
            return list(mechanism())
        except Exception as e:
            raise DiscoveryMechanismFailure(name, f'{name} discovery failed: {e}', cause=e) from e

    def collect(self) -> List[RawCandidate]:
        """Run all mechanisms and wait for every one of them."""
        report = DiscoveryReport()
        started = time.monotonic()
        candidates: List[RawCandidate] = []

        if self.mechanisms:
            with ThreadPoolExecutor(max_workers=len(self.mechanisms),
                                    thread_name_prefix='discovery') as pool:
                futures = {name: pool.submit(self._run_one, name, mechanism)
                           for name, mechanism in self.mechanisms.items()}
                for name, future in futures.items():
                    try:
                        found = future.result()
                    except DiscoveryMechanismFailure as failure:
                        logger.warning('%s', failure.message)
                        report.failures.append(failure)
                        found = []
                    report.counts[name] = len(found)
                    candidates.extend(found)

        report.finished_at = datetime.now()
        report.duration = time.monotonic() - started
        self.last_report = report
        logger.info('Discovery collected %d candidate(s) in %.1fs (%d mechanism failure(s))',
                    len(candidates), report.duration, len(report.failures))
        return candidates
