"""
ESC/POS Buffer Renderer
=======================

Renders a command sequence into one ESC/POS byte buffer using the
python-escpos ``Dummy`` printer.
"""

import logging
from typing import Callable, List, Optional

from escpos.printer import Dummy

from ..models import CommandSequence, RenderOptions
from .base import BaseRenderer
from .interpreter import EscposInterpreter

logger = logging.getLogger(__name__)


class EscposBufferRenderer(BaseRenderer):
    """Renderer producing raw ESC/POS bytes."""

    name = 'escpos'

    def __init__(self, options: Optional[RenderOptions] = None,
                 device_factory: Callable[[], Dummy] = Dummy):
        super().__init__(options)
        self.device_factory = device_factory
        self.instructions: List[str] = []

    def render(self, sequence: CommandSequence) -> bytes:
        """
        Render to bytes.

        Raises:
            RenderError: If any entry cannot be encoded; no partial buffer
                is returned.
        """
        device = self.device_factory()
        interpreter = EscposInterpreter(self.options)
        self.instructions = interpreter.run(sequence, device)
        data = device.output
        logger.debug('Rendered %d command(s) into %d bytes', len(sequence), len(data))
        return data
