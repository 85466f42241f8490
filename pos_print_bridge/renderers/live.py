"""
Live Transport Renderer
=======================

Streams a command sequence straight into an open transport. Each entry is
encoded by python-escpos and written as soon as it is interpreted.
"""

import logging
from typing import List, Optional

from escpos.escpos import Escpos

from ..models import CommandSequence, RenderOptions
from .base import BaseRenderer
from .interpreter import EscposInterpreter

logger = logging.getLogger(__name__)


class TransportPrinter(Escpos):
    """python-escpos printer whose output goes to a bridge transport."""

    def __init__(self, transport, *args, **kwargs):
        Escpos.__init__(self, *args, **kwargs)
        self.transport = transport

    def _raw(self, msg: bytes) -> None:
        self.transport.write(msg)


class LiveTransportRenderer(BaseRenderer):
    """Renderer that talks to the printer while interpreting."""

    name = 'live'

    def __init__(self, options: Optional[RenderOptions] = None):
        super().__init__(options)
        self.instructions: List[str] = []

    def render(self, sequence: CommandSequence, transport) -> int:
        """
        Check the transport is reachable, then stream the sequence into it.

        Args:
            sequence: Parsed command sequence
            transport: An opened transport

        Returns:
            Bytes written to the transport

        Raises:
            ConnectionFailure: If the liveness check fails
        """
        transport.check()
        device = TransportPrinter(transport)
        interpreter = EscposInterpreter(self.options)
        self.instructions = interpreter.run(sequence, device)
        logger.info('Streamed %d command(s) to %s (%d bytes)',
                    len(self.instructions), transport.describe(), transport.bytes_written)
        return transport.bytes_written
