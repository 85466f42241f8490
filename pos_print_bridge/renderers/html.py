"""
HTML Renderer
=============

Renders a command sequence as a self-contained HTML document for virtual
(print-to-PDF and similar) queues. Images are embedded as data URIs;
anything HTML cannot express is shown as a visible placeholder.
"""

import base64
import binascii
import html
import logging
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import Dict, List, Optional

from PIL import Image

from ..config import IMAGE_LOAD_WORKERS
from ..models import CommandEntry, CommandKind, CommandSequence
from .base import BaseRenderer
from .style import StyleState, StyleTracker

logger = logging.getLogger(__name__)

DOCUMENT_CSS = (
    "body{font-family:'Courier New',Courier,monospace;margin:10mm;font-size:10pt}"
    "pre{white-space:pre-wrap;margin:0;padding:0;line-height:1.2}"
    "hr.rule{border:none;border-top:1px dashed #000;margin:4px 0}"
    ".placeholder{color:#555;font-style:italic}"
    ".cut{border-top:1px dashed #999;color:#999;font-size:8pt;text-align:center;margin:6px 0}"
    "table{width:100%;border-collapse:collapse}td{padding:0 2px;white-space:pre}"
    "img{max-width:100%}"
)


def font_size(size) -> str:
    largest = max(size)
    if largest >= 3:
        return '2em'
    if largest >= 2:
        return '1.5em'
    return '1em'


def inline_style(style: StyleState) -> str:
    parts = [
        f'text-align:{style.align.value}',
        f"font-weight:{'bold' if style.emphasis.bold else 'normal'}",
        f'font-size:{font_size(style.size)}',
    ]
    if style.emphasis.underline:
        parts.append('text-decoration:underline')
    if style.emphasis.underline == 2:
        parts.append('text-decoration-thickness:2px')
    if style.emphasis.invert:
        parts.append('color:#fff;background:#000')
    return ';'.join(parts)


def image_data_uri(data: bytes) -> str:
    """Build a data URI, detecting the MIME type with Pillow."""
    with Image.open(BytesIO(data)) as image:
        mime = Image.MIME.get(image.format or '', 'image/png')
    return f'data:{mime};base64,{base64.b64encode(data).decode("ascii")}'


def _read_image_file(path: str) -> str:
    with open(path, 'rb') as f:
        return image_data_uri(f.read())


class HtmlRenderer(BaseRenderer):
    """Renderer producing an HTML document."""

    name = 'html'

    def render(self, sequence: CommandSequence) -> str:
        self.warnings = []
        images = self._load_images(sequence)
        tracker = StyleTracker(StyleState(align=self.options.initial_align))

        blocks = []
        for entry in sequence:
            style = tracker.consume(entry)
            if style is not None:
                blocks.append(self._block(entry, style, images))

        return self._document(blocks)

    def _load_images(self, sequence: CommandSequence) -> Dict[str, Optional[str]]:
        """Read every referenced image file concurrently."""
        paths = sorted({e.path for e in sequence if e.kind is CommandKind.IMAGE})
        if not paths:
            return {}

        images: Dict[str, Optional[str]] = {}
        with ThreadPoolExecutor(max_workers=min(IMAGE_LOAD_WORKERS, len(paths))) as pool:
            futures = {path: pool.submit(_read_image_file, path) for path in paths}
            for path, future in futures.items():
                try:
                    images[path] = future.result()
                except (OSError, ValueError) as e:
                    logger.warning('Image %s could not be loaded: %s', path, e)
                    self.warnings.append(f'Image {path} could not be loaded: {e}')
                    images[path] = None
        return images

    def _block(self, entry: CommandEntry, style: StyleState,
               images: Dict[str, Optional[str]]) -> str:
        kind = entry.kind
        css = inline_style(style)

        if kind in (CommandKind.TEXT, CommandKind.PRINTLN):
            return f'<div style="{css}"><pre>{html.escape(entry.text)}</pre></div>'
        if kind is CommandKind.FEED:
            if not entry.lines:
                return '<div class="feed"></div>'
            return '<br>' * entry.lines
        if kind is CommandKind.RULE:
            return '<hr class="rule">'
        if kind is CommandKind.CUT:
            return '<div class="cut">cut</div>'
        if kind is CommandKind.BEEP:
            return self._placeholder('[BEEP]', css)
        if kind is CommandKind.RAW:
            return self._placeholder('[RAW PRINTER DATA]', css)
        if kind is CommandKind.BARCODE:
            return self._placeholder(f'[BARCODE: {entry.text}]', css)
        if kind is CommandKind.QR:
            return self._placeholder(f'[QR CODE: {entry.text}]', css)
        if kind is CommandKind.IMAGE:
            uri = images.get(entry.path)
            if uri is None:
                return self._placeholder(f'[IMAGE: {entry.path}]', css)
            return f'<div style="{css}"><img src="{uri}" alt=""></div>'
        if kind is CommandKind.IMAGE_BUFFER:
            return self._inline_image(entry, css)
        if kind is CommandKind.TABLE:
            return self._table(entry, css)
        return self._placeholder(f'[{kind.value.upper()}]', css)

    @staticmethod
    def _placeholder(text: str, css: str) -> str:
        return f'<div class="placeholder" style="{css}"><pre>{html.escape(text)}</pre></div>'

    def _inline_image(self, entry: CommandEntry, css: str) -> str:
        try:
            uri = image_data_uri(base64.b64decode(entry.buffer, validate=True))
        except (OSError, ValueError, binascii.Error) as e:
            logger.warning('Inline image could not be decoded: %s', e)
            self.warnings.append(f'Inline image could not be decoded: {e}')
            return self._placeholder('[IMAGE]', css)
        return f'<div style="{css}"><img src="{uri}" alt=""></div>'

    @staticmethod
    def _table(entry: CommandEntry, css: str) -> str:
        rows = []
        for row in entry.rows:
            cells = []
            for index, cell in enumerate(row):
                column = entry.columns[index] if index < len(entry.columns) else None
                align = cell.align or (column.align if column else None)
                bold = cell.emphasis.bold or (column.emphasis.bold if column else False)
                cell_css = []
                if align:
                    cell_css.append(f'text-align:{align.value}')
                if bold:
                    cell_css.append('font-weight:bold')
                width = cell.width if cell.width is not None else (column.width if column else None)
                if width is not None and width <= 1:
                    cell_css.append(f'width:{width * 100:g}%')
                cells.append(f'<td style="{";".join(cell_css)}">{html.escape(cell.text)}</td>')
            rows.append(f'<tr>{"".join(cells)}</tr>')
        return f'<div style="{css}"><table>{"".join(rows)}</table></div>'

    def _document(self, blocks: List[str]) -> str:
        page = (f'@page{{size:{self.options.page_size} auto;'
                f'margin:{self.options.margins}}}')
        return (
            '<!DOCTYPE html><html><head><meta charset="utf-8">'
            f'<title>{html.escape(self.options.title)}</title>'
            f'<style>{page}{DOCUMENT_CSS}</style></head><body>'
            + ''.join(blocks)
            + '</body></html>'
        )
