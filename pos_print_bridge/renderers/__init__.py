"""
POS Print Bridge Renderers
==========================

Renderers turning command sequences into target output.
"""

from .base import BaseRenderer
from .escpos_buffer import EscposBufferRenderer
from .payload import PayloadRenderer
from .html import HtmlRenderer
from .live import LiveTransportRenderer

__all__ = [
    'BaseRenderer', 'EscposBufferRenderer', 'PayloadRenderer', 'HtmlRenderer',
    'LiveTransportRenderer',
]

# Renderer registry
RENDERERS = {
    'escpos': EscposBufferRenderer,
    'payload': PayloadRenderer,
    'html': HtmlRenderer,
    'live': LiveTransportRenderer,
}


def get_renderer(renderer_type: str) -> type:
    """Get renderer class by type."""
    return RENDERERS.get(renderer_type)
