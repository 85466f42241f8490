"""
Print Templates
===============

Named generators turning template data into wire command lists.

A template is a plain function ``fn(data: dict) -> list``. Templates are
looked up case-insensitively by type:

    register_template('KOT', kitchen_ticket)
    sequence = render_template('kot', {'orderNumber': 42, 'items': [...]})
"""

import logging
import platform
import socket
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from . import __version__
from .errors import CommandParseError, TemplateError
from .models import CommandSequence

logger = logging.getLogger(__name__)

TemplateFunction = Callable[[Dict[str, Any]], List[Dict[str, Any]]]

TEMPLATES: Dict[str, TemplateFunction] = {}


def register_template(template_type: str, fn: Optional[TemplateFunction] = None):
    """
    Register a template function. Usable as a decorator.

    Args:
        template_type: Template identifier (stored upper-cased)
        fn: Template function
    """
    def decorator(func: TemplateFunction) -> TemplateFunction:
        TEMPLATES[template_type.strip().upper()] = func
        return func

    if fn is not None:
        return decorator(fn)
    return decorator


def get_template_function(template_type: str) -> TemplateFunction:
    """
    Get template function by type.

    Raises:
        TemplateError: If no template is registered under that type
    """
    if not isinstance(template_type, str) or not template_type.strip():
        raise TemplateError('Template type is required')
    fn = TEMPLATES.get(template_type.strip().upper())
    if fn is None:
        raise TemplateError(f"Template type '{template_type}' not found.")
    return fn


def render_template(template_type: str, data: Optional[Dict[str, Any]]) -> CommandSequence:
    """
    Run a template and parse its output.

    Raises:
        TemplateError: Unknown template, template raised, or produced
            something that is not a valid command list
    """
    fn = get_template_function(template_type)
    try:
        commands = fn(data or {})
    except Exception as e:
        logger.error('Template %s failed: %s', template_type, e)
        raise TemplateError(f"Template '{template_type}' failed: {e}", cause=e) from e

    if not isinstance(commands, list):
        raise TemplateError(
            f"Template '{template_type}' returned {type(commands).__name__}, expected a list"
        )
    try:
        return CommandSequence.from_list(commands)
    except CommandParseError as e:
        raise TemplateError(f"Template '{template_type}' produced an invalid command: {e.message}",
                            cause=e) from e


def _text(value: Any, default: str = '') -> str:
    return default if value is None else str(value)


def _amount(value: Any) -> str:
    try:
        return f'{float(value):.2f}'
    except (TypeError, ValueError):
        return _text(value)


# =============================================================================
# Built-in Templates
# =============================================================================

@register_template('TEST')
def test_page(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Connection test page."""
    printer = _text(data.get('printerName'), 'Unknown printer')
    return [
        {'type': 'setStyles', 'align': 'CT', 'style': 'B', 'size': [2, 2]},
        {'type': 'println', 'content': 'PRINT TEST'},
        {'type': 'resetStyles'},
        {'type': 'drawLine'},
        {'type': 'tableCustom', 'data': [
            [{'text': 'Printer'}, {'text': printer, 'align': 'RIGHT'}],
            [{'text': 'Host'}, {'text': socket.gethostname(), 'align': 'RIGHT'}],
            [{'text': 'Platform'}, {'text': platform.system(), 'align': 'RIGHT'}],
            [{'text': 'Bridge'}, {'text': __version__, 'align': 'RIGHT'}],
            [{'text': 'Time'}, {'text': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
                                'align': 'RIGHT'}],
        ]},
        {'type': 'drawLine'},
        {'type': 'align', 'align': 'CT'},
        {'type': 'qr', 'content': _text(data.get('qrContent'), 'pos-print-bridge test')},
        {'type': 'feed', 'lines': 3},
        {'type': 'cut'},
    ]


@register_template('KOT')
def kitchen_ticket(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Kitchen order ticket: order header and item quantities, no prices."""
    commands = [
        {'type': 'setStyles', 'align': 'CT', 'style': 'B', 'size': [2, 2]},
        {'type': 'println', 'content': _text(data.get('orderType'), 'Takeaway').upper()},
        {'type': 'resetStyles'},
        {'type': 'println', 'content': f"Order #{_text(data.get('orderNumber'), '-')}"},
        {'type': 'println', 'content': _text(data.get('orderDate'),
                                             datetime.now().strftime('%d-%b-%Y %H:%M'))},
        {'type': 'drawLine'},
    ]
    for item in data.get('items') or []:
        commands.append({'type': 'tableCustom', 'data': [
            {'text': f"{_text(item.get('qty'), '1')} x", 'width': 0.15, 'style': 'B'},
            {'text': _text(item.get('name')), 'width': 0.85},
        ]})
        if item.get('note'):
            commands.append({'type': 'println', 'content': f"   * {item['note']}"})
    if data.get('notes'):
        commands += [
            {'type': 'drawLine'},
            {'type': 'println', 'content': _text(data['notes']), 'style': 'B'},
        ]
    commands += [{'type': 'feed', 'lines': 3}, {'type': 'cut'}]
    return commands


@register_template('RECEIPT')
def sales_receipt(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Customer receipt with line items and total."""
    commands = []
    if data.get('logoPath'):
        commands += [
            {'type': 'align', 'align': 'CT'},
            {'type': 'image', 'path': data['logoPath']},
        ]
    commands += [
        {'type': 'setStyles', 'align': 'CT', 'style': 'B', 'size': [1, 2]},
        {'type': 'println', 'content': _text(data.get('storeName'), 'RECEIPT')},
        {'type': 'resetStyles'},
    ]
    for line in data.get('headerLines') or []:
        commands.append({'type': 'println', 'content': _text(line), 'align': 'CT'})
    commands.append({'type': 'drawLine'})

    for item in data.get('items') or []:
        commands.append({'type': 'tableCustom', 'data': [
            {'text': _text(item.get('qty'), '1'), 'width': 0.1},
            {'text': _text(item.get('name')), 'width': 0.6},
            {'text': _amount(item.get('amount')), 'width': 0.3, 'align': 'RIGHT'},
        ]})

    commands += [
        {'type': 'drawLine'},
        {'type': 'tableCustom', 'data': [
            {'text': 'TOTAL', 'width': 0.5, 'style': 'B'},
            {'text': _amount(data.get('totalAmount', 0)), 'width': 0.5, 'align': 'RIGHT',
             'style': 'B'},
        ]},
    ]
    if data.get('orderNumber') is not None:
        commands += [
            {'type': 'feed', 'lines': 1},
            {'type': 'barcode', 'content': _text(data['orderNumber']), 'align': 'CT'},
        ]
    if data.get('footer'):
        commands.append({'type': 'println', 'content': _text(data['footer']), 'align': 'CT'})
    commands += [{'type': 'feed', 'lines': 3}, {'type': 'cut'}]
    return commands
