"""
Command Model
=============

Abstract print commands shared by every renderer.

A command sequence arrives as a JSON array of objects with a ``type``
discriminator (``text``, ``println``, ``feed``, ``cut``, ...). Each entry is
parsed once into an immutable :class:`CommandEntry`; renderers never look at
the wire dicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..errors import CommandParseError


class CommandKind(Enum):
    """Closed set of command kinds."""

    TEXT = 'text'
    PRINTLN = 'println'
    FEED = 'feed'
    CUT = 'cut'
    BEEP = 'beep'
    ALIGN = 'align'
    SET_STYLE = 'setstyles'
    RESET_STYLE = 'resetstyles'
    BARCODE = 'barcode'
    QR = 'qr'
    IMAGE = 'image'
    IMAGE_BUFFER = 'imagebuffer'
    RULE = 'drawline'
    TABLE = 'tablecustom'
    RAW = 'raw'


# Wire type names (lower-cased) -> kind
WIRE_TYPES = {
    'text': CommandKind.TEXT,
    'print': CommandKind.TEXT,
    'println': CommandKind.PRINTLN,
    'feed': CommandKind.FEED,
    'linebreak': CommandKind.FEED,
    'newline': CommandKind.FEED,
    'cut': CommandKind.CUT,
    'beep': CommandKind.BEEP,
    'align': CommandKind.ALIGN,
    'setstyles': CommandKind.SET_STYLE,
    'setstyle': CommandKind.SET_STYLE,
    'resetstyles': CommandKind.RESET_STYLE,
    'resetstyle': CommandKind.RESET_STYLE,
    'barcode': CommandKind.BARCODE,
    'qr': CommandKind.QR,
    'qrcode': CommandKind.QR,
    'image': CommandKind.IMAGE,
    'imagebuffer': CommandKind.IMAGE_BUFFER,
    'drawline': CommandKind.RULE,
    'rule': CommandKind.RULE,
    'tablecustom': CommandKind.TABLE,
    'table': CommandKind.TABLE,
    'raw': CommandKind.RAW,
}

STYLE_ONLY_KINDS = frozenset({CommandKind.ALIGN, CommandKind.SET_STYLE})

# node-thermal-printer style numeric barcode types (GS k m)
BARCODE_TYPES = {
    65: 'UPC-A',
    66: 'UPC-E',
    67: 'EAN13',
    68: 'EAN8',
    69: 'CODE39',
    70: 'ITF',
    71: 'NW7',
    72: 'CODE93',
    73: 'CODE128',
}

HRI_POSITIONS = {0: 'OFF', 1: 'ABOVE', 2: 'BELOW', 3: 'BOTH'}

MAX_SIZE = 8


class Alignment(Enum):
    LEFT = 'left'
    CENTER = 'center'
    RIGHT = 'right'

    @classmethod
    def parse(cls, value: Any) -> 'Alignment':
        """Parse 'left'/'center'/'right' or the short 'LT'/'CT'/'RT' forms."""
        if isinstance(value, Alignment):
            return value
        text = str(value).strip().lower()
        aliases = {
            'lt': cls.LEFT, 'l': cls.LEFT, 'start': cls.LEFT,
            'ct': cls.CENTER, 'c': cls.CENTER, 'centre': cls.CENTER,
            'rt': cls.RIGHT, 'r': cls.RIGHT, 'end': cls.RIGHT,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise CommandParseError(f'Invalid alignment: {value!r}') from None


@dataclass(frozen=True)
class Emphasis:
    """Text emphasis flags. ``underline`` is 0 (off), 1 (thin) or 2 (thick)."""

    bold: bool = False
    underline: int = 0
    invert: bool = False

    @classmethod
    def from_flags(cls, flags: Optional[str]) -> 'Emphasis':
        """Parse a style string such as 'B', 'BU' or 'U2I'."""
        if not flags:
            return cls()
        text = str(flags).upper()
        underline = 2 if 'U2' in text else (1 if 'U' in text else 0)
        return cls(bold='B' in text, underline=underline, invert='I' in text)

    def merged(self, other: 'Emphasis') -> 'Emphasis':
        return Emphasis(
            bold=self.bold or other.bold,
            underline=max(self.underline, other.underline),
            invert=self.invert or other.invert,
        )


def _parse_size(value: Any) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise CommandParseError(f'size must be [width, height], got {value!r}')
    try:
        width, height = (int(v) for v in value)
    except (TypeError, ValueError):
        raise CommandParseError(f'size must be numeric, got {value!r}') from None
    return (max(1, min(MAX_SIZE, width)), max(1, min(MAX_SIZE, height)))


def _parse_int(data: Dict[str, Any], key: str, default: Optional[int],
               minimum: int = 0) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise CommandParseError(f'{key} must be an integer, got {value!r}') from None
    if number < minimum:
        raise CommandParseError(f'{key} must be >= {minimum}, got {number}')
    return number


@dataclass(frozen=True)
class TableCell:
    text: str
    align: Optional[Alignment] = None
    width: Optional[float] = None
    emphasis: Emphasis = field(default_factory=Emphasis)


@dataclass(frozen=True)
class TableColumn:
    """Column defaults from a table's ``options.columns``."""

    align: Alignment = Alignment.LEFT
    width: Optional[float] = None
    emphasis: Emphasis = field(default_factory=Emphasis)
    size: Optional[Tuple[int, int]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TableColumn':
        return cls(
            align=Alignment.parse(data['align']) if data.get('align') else Alignment.LEFT,
            width=float(data['width']) if data.get('width') is not None else None,
            emphasis=Emphasis.from_flags(data.get('style')),
            size=_parse_size(data.get('size')),
        )


def _parse_cell(value: Any) -> TableCell:
    if isinstance(value, dict):
        text = value.get('text', value.get('value', ''))
        return TableCell(
            text='' if text is None else str(text),
            align=Alignment.parse(value['align']) if value.get('align') else None,
            width=float(value['width']) if value.get('width') is not None else None,
            emphasis=Emphasis.from_flags(value.get('style')),
        )
    return TableCell(text='' if value is None else str(value))


def _parse_rows(data: Any) -> Tuple[Tuple[TableCell, ...], ...]:
    """Accept one row of cells or a list of rows."""
    if not isinstance(data, list):
        raise CommandParseError('table data must be a list')
    if not data:
        return ()
    if all(isinstance(row, (list, tuple)) for row in data):
        return tuple(tuple(_parse_cell(cell) for cell in row) for row in data)
    return (tuple(_parse_cell(cell) for cell in data),)


@dataclass(frozen=True)
class CommandEntry:
    """One abstract print command."""

    kind: CommandKind
    content: Optional[str] = None
    align: Optional[Alignment] = None
    emphasis: Emphasis = field(default_factory=Emphasis)
    size: Optional[Tuple[int, int]] = None

    # feed
    lines: int = 1

    # image / imagebuffer (base64 text, decoded by the renderer)
    path: Optional[str] = None
    buffer: Optional[str] = None

    # table
    rows: Tuple[Tuple[TableCell, ...], ...] = ()
    columns: Tuple[TableColumn, ...] = ()

    # barcode
    barcode_type: str = 'CODE128'
    height: Optional[int] = None
    width: Optional[int] = None
    hri_pos: str = 'BELOW'
    hri_font: str = 'A'

    # qr
    cell_size: int = 3
    correction: str = 'M'
    model: int = 2

    # cut / beep
    full_cut: bool = False
    times: int = 1
    duration: int = 100

    @property
    def is_style_only(self) -> bool:
        return self.kind in STYLE_ONLY_KINDS

    @property
    def text(self) -> str:
        return self.content or ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: Optional[int] = None) -> 'CommandEntry':
        """Parse one wire command object."""
        if not isinstance(data, dict):
            raise CommandParseError(f'expected an object, got {type(data).__name__}', index)

        wire_type = data.get('type')
        if not isinstance(wire_type, str) or not wire_type.strip():
            raise CommandParseError('missing command type', index)
        kind = WIRE_TYPES.get(wire_type.strip().lower())
        if kind is None:
            raise CommandParseError(f'unknown command type {wire_type!r}', index)

        try:
            return cls._build(kind, data)
        except CommandParseError as e:
            if e.index is None and index is not None:
                raise CommandParseError(e.message, index) from None
            raise

    @classmethod
    def _build(cls, kind: CommandKind, data: Dict[str, Any]) -> 'CommandEntry':
        content = data.get('content', data.get('text', data.get('value')))
        kwargs: Dict[str, Any] = {
            'kind': kind,
            'content': None if content is None else str(content),
            'align': Alignment.parse(data['align']) if data.get('align') else None,
            'emphasis': Emphasis.from_flags(data.get('style')),
            'size': _parse_size(data.get('size')),
        }

        if kind is CommandKind.FEED:
            kwargs['lines'] = _parse_int(data, 'lines', 1)
        elif kind is CommandKind.CUT:
            kwargs['full_cut'] = str(data.get('mode', 'PART')).upper() == 'FULL'
        elif kind is CommandKind.BEEP:
            kwargs['times'] = _parse_int(data, 'n', 1, minimum=1)
            kwargs['duration'] = _parse_int(data, 't', 100, minimum=1)
        elif kind is CommandKind.IMAGE:
            if not data.get('path'):
                raise CommandParseError('image requires a path')
            kwargs['path'] = str(data['path'])
        elif kind is CommandKind.IMAGE_BUFFER:
            buffer = data.get('buffer', content)
            if not buffer:
                raise CommandParseError('imagebuffer requires a base64 buffer')
            kwargs['buffer'] = str(buffer)
        elif kind is CommandKind.BARCODE:
            kwargs.update(cls._barcode_fields(data))
        elif kind is CommandKind.QR:
            kwargs['cell_size'] = _parse_int(data, 'cellSize', 3, minimum=1)
            kwargs['correction'] = str(data.get('correction', 'M')).upper()
            kwargs['model'] = _parse_int(data, 'model', 2, minimum=1)
            if kwargs['correction'] not in ('L', 'M', 'Q', 'H'):
                raise CommandParseError(f"invalid QR correction {data.get('correction')!r}")
        elif kind is CommandKind.TABLE:
            kwargs['rows'] = _parse_rows(data.get('data', []))
            columns = (data.get('options') or {}).get('columns') or []
            kwargs['columns'] = tuple(TableColumn.from_dict(c) for c in columns if isinstance(c, dict))

        return cls(**kwargs)

    @staticmethod
    def _barcode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
        raw_type = data.get('barcodeType', 73)
        if isinstance(raw_type, int) or str(raw_type).isdigit():
            barcode_type = BARCODE_TYPES.get(int(raw_type))
            if barcode_type is None:
                raise CommandParseError(f'unknown barcode type {raw_type!r}')
        else:
            barcode_type = str(raw_type).upper()
        hri_pos = data.get('hriPos', 2)
        if isinstance(hri_pos, int) or str(hri_pos).isdigit():
            hri_pos = HRI_POSITIONS.get(int(hri_pos), 'BELOW')
        return {
            'barcode_type': barcode_type,
            'height': _parse_int(data, 'height', 50, minimum=1),
            'width': _parse_int(data, 'width', 2, minimum=1),
            'hri_pos': str(hri_pos).upper(),
            'hri_font': 'B' if str(data.get('hriFont', 0)).upper() in ('1', 'B') else 'A',
        }


class CommandSequence:
    """Ordered, immutable list of command entries."""

    def __init__(self, entries=()):
        self._entries: Tuple[CommandEntry, ...] = tuple(entries)

    @classmethod
    def from_list(cls, data: Any) -> 'CommandSequence':
        """Parse a wire command array."""
        if not isinstance(data, list):
            raise CommandParseError('commandSequence must be an array')
        return cls(CommandEntry.from_dict(item, index) for index, item in enumerate(data))

    @property
    def entries(self) -> Tuple[CommandEntry, ...]:
        return self._entries

    @property
    def has_cut(self) -> bool:
        return any(e.kind is CommandKind.CUT for e in self._entries)

    def kinds(self) -> List[CommandKind]:
        return [e.kind for e in self._entries]

    def __iter__(self) -> Iterator[CommandEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __eq__(self, other) -> bool:
        return isinstance(other, CommandSequence) and self._entries == other._entries

    def __repr__(self) -> str:
        return f'CommandSequence({len(self._entries)} entries)'
