"""
Render Options
==============

Per-job knobs passed alongside a command sequence.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..config import DEFAULT_LINE_CHAR, DEFAULT_LINE_WIDTH, DEFAULT_MARGINS, DEFAULT_PAGE_SIZE
from ..errors import CommandParseError
from .commands import Alignment

# camelCase wire key -> attribute
_KNOWN_KEYS = {
    'characterSet': 'character_set',
    'initialAlign': 'initial_align',
    'lineChar': 'line_char',
    'lineWidth': 'line_width',
    'autoCut': 'auto_cut',
    'nativeQr': 'native_qr',
    'pageSize': 'page_size',
    'margins': 'margins',
    'title': 'title',
    'copies': 'copies',
    'timeout': 'timeout',
}

_TRUE_WORDS = ('true', '1', 'yes', 'on')
_FALSE_WORDS = ('false', '0', 'no', 'off')


def _parse_flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise CommandParseError(f'Invalid renderOptions: {name} must be a boolean, got {value!r}')


@dataclass(frozen=True)
class RenderOptions:
    """Rendering and transport options for one job."""

    character_set: Optional[str] = None
    initial_align: Alignment = Alignment.LEFT
    line_char: str = DEFAULT_LINE_CHAR
    line_width: int = DEFAULT_LINE_WIDTH
    auto_cut: bool = True
    native_qr: bool = True
    page_size: str = DEFAULT_PAGE_SIZE
    margins: str = DEFAULT_MARGINS
    title: str = 'POS Print Job'
    copies: int = 1
    timeout: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RenderOptions':
        """Parse the wire ``renderOptions`` object. Unknown keys land in ``extra``."""
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise CommandParseError('renderOptions must be an object')

        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            attr = _KNOWN_KEYS.get(key)
            if attr is None:
                extra[key] = value
            elif value is not None:
                kwargs[attr] = value

        try:
            if 'initial_align' in kwargs:
                kwargs['initial_align'] = Alignment.parse(kwargs['initial_align'])
            if 'line_width' in kwargs:
                kwargs['line_width'] = max(1, int(kwargs['line_width']))
            if 'copies' in kwargs:
                kwargs['copies'] = max(1, int(kwargs['copies']))
            if 'timeout' in kwargs:
                kwargs['timeout'] = float(kwargs['timeout'])
            if 'line_char' in kwargs:
                kwargs['line_char'] = str(kwargs['line_char'])[:1] or DEFAULT_LINE_CHAR
        except (TypeError, ValueError) as e:
            raise CommandParseError(f'Invalid renderOptions: {e}') from e

        for flag in ('auto_cut', 'native_qr'):
            if flag in kwargs:
                kwargs[flag] = _parse_flag(flag, kwargs[flag])
        for text in ('page_size', 'margins', 'title', 'character_set'):
            if text in kwargs:
                kwargs[text] = str(kwargs[text])

        return cls(extra=extra, **kwargs)

    def timeout_or(self, default: float) -> float:
        return self.timeout if self.timeout else default
