"""
Base Renderer
=============

Abstract base class for command sequence renderers.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..models import CommandSequence, RenderOptions


class BaseRenderer(ABC):
    """Abstract base class for renderers."""

    name = 'base'

    def __init__(self, options: Optional[RenderOptions] = None):
        """Initialize renderer with job options."""
        self.options = options or RenderOptions()
        self.warnings: List[str] = []

    @abstractmethod
    def render(self, sequence: CommandSequence, *args, **kwargs) -> Any:
        """
        Render a command sequence.

        Args:
            sequence: Parsed command sequence

        Returns:
            Target-specific output (bytes, payload dict, HTML text, or
            the number of bytes streamed for live transports)
        """
        pass
