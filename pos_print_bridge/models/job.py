"""
Print Job Model
===============

Tracks one print request through the dispatch stages. Jobs live only as
long as the request; nothing is persisted.
"""

import uuid
from datetime import datetime
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List

from ..errors import PrintBridgeError

STAGES = ('lookup', 'render', 'acquire', 'transmit', 'release', 'report')


@dataclass
class PrintJob:
    """Print request state and terminal result."""

    # Identification
    id: str = field(default_factory=lambda: f"JOB-{str(uuid.uuid4())[:8].upper()}")
    printer_name: str = ""
    printer_id: Optional[str] = None
    transport_kind: Optional[str] = None
    renderer: Optional[str] = None

    # Progress
    stage: str = "lookup"
    stages_completed: List[str] = field(default_factory=list)
    status: str = "pending"  # pending, printing, completed, failed

    # Result
    success: bool = False
    message: Optional[str] = None
    error_type: Optional[str] = None
    http_status: int = 200
    bytes_sent: int = 0
    instructions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Source
    source: str = "api"  # api, client
    source_ip: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        for key in ['created_at', 'started_at', 'completed_at']:
            if data.get(key):
                data[key] = data[key].isoformat()
        return data

    def start(self):
        """Mark job as started."""
        self.status = "printing"
        self.started_at = datetime.now()

    def advance(self, stage: str):
        """Record the current stage as done and move to ``stage``."""
        if stage not in STAGES:
            raise ValueError(f'Unknown stage: {stage}')
        if self.stage not in self.stages_completed:
            self.stages_completed.append(self.stage)
        self.stage = stage

    def complete(self, message: str):
        """Mark job as completed."""
        self.status = "completed"
        self.success = True
        self.message = message
        self.http_status = 200
        self.completed_at = datetime.now()

    def fail(self, error: Exception):
        """Mark job as failed with the status code of its error type."""
        self.status = "failed"
        self.success = False
        self.message = str(error) or type(error).__name__
        self.error_type = type(error).__name__
        self.http_status = error.http_status if isinstance(error, PrintBridgeError) else 500
        self.completed_at = datetime.now()
