"""
ESC/POS Interpreter
===================

Drives a python-escpos device (``Dummy`` for buffers, a transport-backed
printer for live jobs) from an abstract command sequence.
"""

import base64
import binascii
import logging
from io import BytesIO
from typing import List, Optional

from escpos.constants import (
    QR_ECLEVEL_H,
    QR_ECLEVEL_L,
    QR_ECLEVEL_M,
    QR_ECLEVEL_Q,
    QR_MODEL_1,
    QR_MODEL_2,
)
from PIL import Image

from ..errors import PrintBridgeError, RenderError
from ..models import CommandEntry, CommandKind, CommandSequence, RenderOptions
from .style import StyleState, StyleTracker, layout_table_row

logger = logging.getLogger(__name__)

QR_EC_LEVELS = {
    'L': QR_ECLEVEL_L,
    'M': QR_ECLEVEL_M,
    'Q': QR_ECLEVEL_Q,
    'H': QR_ECLEVEL_H,
}


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def load_image(entry: CommandEntry) -> Image.Image:
    """Open the image of an IMAGE or IMAGE_BUFFER entry, raising RenderError."""
    try:
        if entry.kind is CommandKind.IMAGE:
            image = Image.open(entry.path)
        else:
            image = Image.open(BytesIO(base64.b64decode(entry.buffer, validate=True)))
        image.load()
        return image
    except (OSError, ValueError, binascii.Error) as e:
        source = entry.path if entry.kind is CommandKind.IMAGE else 'inline buffer'
        raise RenderError(f'Cannot read image {source}: {e}', cause=e) from e


class EscposInterpreter:
    """Interprets command entries as python-escpos calls."""

    def __init__(self, options: RenderOptions):
        self.options = options
        self.default_style = StyleState(align=options.initial_align)
        self.auto_cut_applied = False
        self._device_style: Optional[StyleState] = None

    def run(self, sequence: CommandSequence, device) -> List[str]:
        """
        Interpret every entry against ``device``.

        Ends with a style reset and, when the sequence has no cut, a default
        partial cut.

        Returns:
            The kinds of the interpreted entries, in order
        """
        tracker = StyleTracker(self.default_style)
        instructions = []
        self._device_style = None
        self.auto_cut_applied = False

        if self.options.character_set:
            self._call(device.charcode, self.options.character_set)

        for index, entry in enumerate(sequence):
            style = tracker.consume(entry)
            try:
                if style is None:
                    if entry.kind is CommandKind.RESET_STYLE:
                        self._apply_style(device, self.default_style)
                else:
                    self._emit(device, entry, style)
            except PrintBridgeError:
                raise
            except Exception as e:
                raise RenderError(f'Command #{index} ({entry.kind.value}) failed: {e}', cause=e) from e
            instructions.append(entry.kind.value)

        self._apply_style(device, self.default_style)
        if self.options.auto_cut and not sequence.has_cut:
            self._call(device.cut, mode='PART')
            self.auto_cut_applied = True

        logger.debug('Interpreted %d command(s), auto cut: %s', len(instructions), self.auto_cut_applied)
        return instructions

    def _call(self, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PrintBridgeError:
            raise
        except Exception as e:
            raise RenderError(str(e), cause=e) from e

    def _apply_style(self, device, style: StyleState):
        """Send a style change only when the printer's style differs."""
        if style == self._device_style:
            return
        kwargs = {
            'align': style.align.value,
            'bold': style.emphasis.bold,
            'underline': style.emphasis.underline,
            'invert': style.emphasis.invert,
        }
        if style.size == (1, 1):
            kwargs['normal_textsize'] = True
        else:
            kwargs.update(custom_size=True, width=style.size[0], height=style.size[1])
        device.set(**kwargs)
        self._device_style = style

    def _emit(self, device, entry: CommandEntry, style: StyleState):
        self._apply_style(device, style)
        kind = entry.kind

        if kind is CommandKind.TEXT:
            device.text(entry.text)
        elif kind is CommandKind.PRINTLN:
            device.textln(entry.text)
        elif kind is CommandKind.FEED:
            if entry.lines:
                device.ln(entry.lines)
        elif kind is CommandKind.CUT:
            device.cut(mode='FULL' if entry.full_cut else 'PART')
        elif kind is CommandKind.BEEP:
            device.buzzer(_clamp(entry.times, 1, 9), _clamp(entry.duration // 100, 1, 9))
        elif kind is CommandKind.BARCODE:
            self._barcode(device, entry)
        elif kind is CommandKind.QR:
            device.qr(
                entry.text,
                ec=QR_EC_LEVELS[entry.correction],
                size=_clamp(entry.cell_size, 1, 16),
                model=QR_MODEL_1 if entry.model == 1 else QR_MODEL_2,
                native=self.options.native_qr,
            )
        elif kind in (CommandKind.IMAGE, CommandKind.IMAGE_BUFFER):
            device.image(load_image(entry))
        elif kind is CommandKind.RULE:
            device.textln(self.options.line_char * self.options.line_width)
        elif kind is CommandKind.TABLE:
            self._table(device, entry, style)
        elif kind is CommandKind.RAW:
            try:
                data = bytes.fromhex(entry.text.replace(' ', ''))
            except ValueError as e:
                raise RenderError(f'Raw command is not valid hex: {e}', cause=e) from e
            device._raw(data)
        else:
            raise RenderError(f'Unsupported command kind: {kind.value}')

    def _barcode(self, device, entry: CommandEntry):
        code = entry.text
        function_type = None
        if entry.barcode_type == 'CODE128':
            function_type = 'B'
            if not code.startswith('{'):
                code = '{B' + code
        device.barcode(
            code,
            entry.barcode_type,
            height=_clamp(entry.height or 50, 1, 255),
            width=_clamp(entry.width or 2, 2, 6),
            pos=entry.hri_pos,
            font=entry.hri_font,
            align_ct=False,
            function_type=function_type,
        )

    def _table(self, device, entry: CommandEntry, style: StyleState):
        for row in entry.rows:
            for segment in layout_table_row(row, entry.columns, self.options.line_width):
                cell_style = StyleState(
                    align=style.align,
                    emphasis=style.emphasis.merged(segment.emphasis),
                    size=segment.size or style.size,
                )
                self._apply_style(device, cell_style)
                device.text(segment.text)
            device.text('\n')
        self._apply_style(device, style)
