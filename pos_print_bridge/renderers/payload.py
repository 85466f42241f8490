"""
Structured Payload Renderer
===========================

Renders a command sequence as a list of JSON elements for GUI-based print
plugins (text, barCode, qrCode, image, divider, table).

Adjacent ``text`` entries are collected into one line and emitted as a
single element when the line ends.
"""

from typing import Any, Dict, List, Optional

from ..models import CommandEntry, CommandKind, CommandSequence
from .base import BaseRenderer
from .style import StyleState, StyleTracker

RAW_PLACEHOLDER = '[raw printer data omitted]'
EMPTY_MESSAGE = 'Print job contained no printable content.'


def font_size(size) -> str:
    """Map a size multiplier pair to a CSS font size."""
    width, height = size
    if width >= 2 and height >= 2:
        return '22px'
    if height >= 2:
        return '20px'
    if width >= 2:
        return '15px'
    return '12px'


def element_style(style: StyleState) -> Dict[str, str]:
    css = {
        'fontWeight': 'bold' if style.emphasis.bold else 'normal',
        'textDecoration': 'underline' if style.emphasis.underline else 'none',
        'textAlign': style.align.value,
        'fontSize': font_size(style.size),
    }
    if style.emphasis.invert:
        css.update(color='#fff', backgroundColor='#000')
    return css


class PayloadRenderer(BaseRenderer):
    """Renderer producing structured print elements."""

    name = 'payload'

    def render(self, sequence: CommandSequence) -> Dict[str, Any]:
        """
        Render to ``{'data': [elements], 'options': {...}}``.
        """
        tracker = StyleTracker(StyleState(align=self.options.initial_align))
        elements: List[Dict[str, Any]] = []
        line: List[str] = []
        line_style: Optional[StyleState] = None

        def flush() -> bool:
            nonlocal line, line_style
            if not line:
                return False
            elements.append(self._text(''.join(line), line_style))
            line, line_style = [], None
            return True

        for entry in sequence:
            style = tracker.consume(entry)
            if style is None:
                continue
            kind = entry.kind

            if kind is CommandKind.TEXT:
                if not line:
                    line_style = style
                line.append(entry.text)
            elif kind is CommandKind.PRINTLN:
                if line:
                    line.append(entry.text)
                    flush()
                else:
                    elements.append(self._text(entry.text, style))
            elif kind is CommandKind.FEED:
                blanks = entry.lines - 1 if flush() else entry.lines
                elements.extend(self._text(' ', style) for _ in range(max(0, blanks)))
            elif kind in (CommandKind.CUT, CommandKind.BEEP):
                flush()
            else:
                flush()
                elements.append(self._block(entry, style))

        flush()
        if not elements:
            elements.append(self._text(EMPTY_MESSAGE, tracker.default))

        return {'data': elements, 'options': self.print_options()}

    def print_options(self) -> Dict[str, Any]:
        return {
            'preview': False,
            'silent': True,
            'pageSize': self.options.page_size,
            'margin': self.options.margins,
            'copies': self.options.copies,
            'timeOutPerLine': 400,
        }

    @staticmethod
    def _text(value: str, style: StyleState) -> Dict[str, Any]:
        return {'type': 'text', 'value': value, 'style': element_style(style)}

    def _block(self, entry: CommandEntry, style: StyleState) -> Dict[str, Any]:
        kind = entry.kind
        position = style.align.value

        if kind is CommandKind.BARCODE:
            return {
                'type': 'barCode',
                'value': entry.text,
                'height': entry.height or 40,
                'width': entry.width or 2,
                'displayValue': entry.hri_pos != 'OFF',
                'position': position,
            }
        if kind is CommandKind.QR:
            return {
                'type': 'qrCode',
                'value': entry.text,
                'height': entry.cell_size * 20,
                'width': entry.cell_size * 20,
                'position': position,
                'correctionLevel': entry.correction,
            }
        if kind is CommandKind.IMAGE:
            return {'type': 'image', 'path': entry.path, 'position': position}
        if kind is CommandKind.IMAGE_BUFFER:
            return {
                'type': 'image',
                'url': f'data:image/png;base64,{entry.buffer}',
                'position': position,
            }
        if kind is CommandKind.RULE:
            return {'type': 'divider'}
        if kind is CommandKind.TABLE:
            return {
                'type': 'table',
                'style': {'border': '0px', 'textAlign': position},
                'tableBody': [[cell.text for cell in row] for row in entry.rows],
            }
        # RAW
        return self._text(RAW_PLACEHOLDER, style)
