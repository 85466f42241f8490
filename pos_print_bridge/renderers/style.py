"""
Style Tracking
==============

Shared style policy for all renderers.

``ALIGN`` and ``SET_STYLE`` entries only accumulate a pending style. The next
visible entry prints with that style merged with its own, after which the
style falls back to the default. ``RESET_STYLE`` drops the pending style.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..models.commands import (
    Alignment,
    CommandEntry,
    CommandKind,
    Emphasis,
    TableCell,
    TableColumn,
)


@dataclass(frozen=True)
class StyleState:
    """Effective text style."""

    align: Alignment = Alignment.LEFT
    emphasis: Emphasis = field(default_factory=Emphasis)
    size: Tuple[int, int] = (1, 1)

    def merged(self, entry: CommandEntry) -> 'StyleState':
        return StyleState(
            align=entry.align or self.align,
            emphasis=self.emphasis.merged(entry.emphasis),
            size=entry.size or self.size,
        )


class StyleTracker:
    """Applies the reset-before-each-visible-entry policy."""

    def __init__(self, default: Optional[StyleState] = None):
        self.default = default or StyleState()
        self._pending = self.default

    @property
    def pending(self) -> StyleState:
        return self._pending

    def consume(self, entry: CommandEntry) -> Optional[StyleState]:
        """
        Feed one entry through the tracker.

        Returns:
            The effective style for a visible entry, or None for
            ``ALIGN``/``SET_STYLE``/``RESET_STYLE``.
        """
        if entry.kind is CommandKind.RESET_STYLE:
            self._pending = self.default
            return None
        if entry.is_style_only:
            self._pending = self._pending.merged(entry)
            return None
        style = self._pending.merged(entry)
        self._pending = self.default
        return style


# =============================================================================
# Table layout
# =============================================================================

@dataclass(frozen=True)
class TableSegment:
    """One padded cell of a laid-out table row."""

    text: str
    align: Alignment
    emphasis: Emphasis
    size: Optional[Tuple[int, int]] = None


def _column_widths(cells: Sequence[TableCell], columns: Sequence[TableColumn],
                   line_width: int) -> List[int]:
    requested: List[Optional[int]] = []
    for index, cell in enumerate(cells):
        width = cell.width
        if width is None and index < len(columns):
            width = columns[index].width
        if width is None:
            requested.append(None)
        elif width <= 1:
            requested.append(max(1, int(line_width * width)))
        else:
            requested.append(int(width))

    fixed = sum(w for w in requested if w is not None)
    free = [i for i, w in enumerate(requested) if w is None]
    if free:
        share = max(1, (line_width - fixed) // len(free))
        for i in free:
            requested[i] = share
    return [w for w in requested if w is not None]


def layout_table_row(cells: Sequence[TableCell], columns: Sequence[TableColumn],
                     line_width: int) -> List[TableSegment]:
    """Pad and truncate cells into fixed-width segments that fit ``line_width``."""
    widths = _column_widths(cells, columns, line_width)
    segments = []
    for index, (cell, width) in enumerate(zip(cells, widths)):
        column = columns[index] if index < len(columns) else TableColumn()
        align = cell.align or column.align
        text = cell.text[:width]
        if align is Alignment.RIGHT:
            text = text.rjust(width)
        elif align is Alignment.CENTER:
            text = text.center(width)
        else:
            text = text.ljust(width)
        segments.append(TableSegment(
            text=text,
            align=align,
            emphasis=column.emphasis.merged(cell.emphasis),
            size=column.size,
        ))
    return segments
