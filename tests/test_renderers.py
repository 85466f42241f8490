"""Tests for the renderers and the shared style policy."""

import base64
from unittest.mock import MagicMock, call

import pytest
from PIL import Image

from pos_print_bridge.errors import ConnectionFailure, RenderError
from pos_print_bridge.models import Alignment, CommandEntry, CommandKind, RenderOptions, TableCell
from pos_print_bridge.renderers import (
    EscposBufferRenderer,
    HtmlRenderer,
    LiveTransportRenderer,
    PayloadRenderer,
    get_renderer,
)
from pos_print_bridge.renderers.interpreter import EscposInterpreter
from pos_print_bridge.renderers.payload import EMPTY_MESSAGE
from pos_print_bridge.renderers.style import StyleTracker, layout_table_row


def _set(align='left', bold=False, underline=0, invert=False, size=None):
    kwargs = {'align': align, 'bold': bold, 'underline': underline, 'invert': invert}
    if size:
        kwargs.update(custom_size=True, width=size[0], height=size[1])
    else:
        kwargs['normal_textsize'] = True
    return call.set(**kwargs)


class TestStyleTracker:

    def test_style_applies_to_next_visible_entry_only(self):
        tracker = StyleTracker()
        assert tracker.consume(CommandEntry.from_dict({'type': 'align', 'align': 'CT'})) is None
        first = tracker.consume(CommandEntry.from_dict({'type': 'text', 'content': 'a'}))
        second = tracker.consume(CommandEntry.from_dict({'type': 'text', 'content': 'b'}))
        assert first.align is Alignment.CENTER
        assert second.align is Alignment.LEFT

    def test_styles_accumulate_until_reset(self):
        tracker = StyleTracker()
        tracker.consume(CommandEntry.from_dict({'type': 'setStyles', 'style': 'B'}))
        tracker.consume(CommandEntry.from_dict({'type': 'setStyles', 'style': 'U'}))
        style = tracker.consume(CommandEntry.from_dict({'type': 'text'}))
        assert style.emphasis.bold and style.emphasis.underline == 1

        tracker.consume(CommandEntry.from_dict({'type': 'setStyles', 'style': 'B'}))
        tracker.consume(CommandEntry.from_dict({'type': 'resetStyles'}))
        assert not tracker.consume(CommandEntry.from_dict({'type': 'text'})).emphasis.bold

    def test_table_layout_fits_line(self):
        cells = (TableCell('Coffee'), TableCell('3.50', align=Alignment.RIGHT))
        segments = layout_table_row(cells, (), 20)
        assert ''.join(s.text for s in segments) == 'Coffee' + ' ' * 4 + ' ' * 6 + '3.50'


class TestEscposInterpreter:
    """Interpreter calls against a mock python-escpos device."""

    def test_style_reset_and_default_cut(self, sequence):
        device = MagicMock()
        seq = sequence(
            {'type': 'setStyles', 'align': 'CT', 'style': 'B'},
            {'type': 'println', 'content': 'Total'},
            {'type': 'text', 'content': 'next'},
        )
        interpreter = EscposInterpreter(RenderOptions())
        instructions = interpreter.run(seq, device)

        assert device.mock_calls == [
            _set(align='center', bold=True),
            call.textln('Total'),
            _set(),
            call.text('next'),
            call.cut(mode='PART'),
        ]
        assert interpreter.auto_cut_applied
        assert instructions == ['setstyles', 'println', 'text']

    def test_explicit_cut_suppresses_default(self, sequence):
        device = MagicMock()
        EscposInterpreter(RenderOptions()).run(
            sequence({'type': 'text', 'content': 'x'}, {'type': 'cut', 'mode': 'FULL'}), device)
        assert device.cut.call_args_list == [call(mode='FULL')]

    def test_auto_cut_disabled(self, sequence):
        device = MagicMock()
        EscposInterpreter(RenderOptions(auto_cut=False)).run(
            sequence({'type': 'text', 'content': 'x'}), device)
        device.cut.assert_not_called()

    def test_size_and_final_reset(self, sequence):
        device = MagicMock()
        EscposInterpreter(RenderOptions()).run(
            sequence({'type': 'println', 'content': 'BIG', 'size': [2, 2]}), device)
        assert device.mock_calls[0] == _set(size=(2, 2))
        assert device.mock_calls[2] == _set()

    def test_rule_uses_line_width(self, sequence):
        device = MagicMock()
        EscposInterpreter(RenderOptions(line_width=10, line_char='=')).run(
            sequence({'type': 'drawLine'}), device)
        device.textln.assert_called_once_with('=' * 10)

    def test_code128_gets_code_set_prefix(self, sequence):
        device = MagicMock()
        EscposInterpreter(RenderOptions()).run(
            sequence({'type': 'barcode', 'content': 'A-1'}), device)
        args, kwargs = device.barcode.call_args
        assert args == ('{BA-1', 'CODE128')
        assert kwargs['function_type'] == 'B'

    def test_raw_hex(self, sequence):
        device = MagicMock()
        EscposInterpreter(RenderOptions()).run(sequence({'type': 'raw', 'content': '1B 40'}), device)
        device._raw.assert_called_once_with(b'\x1b\x40')

    def test_device_errors_become_render_errors(self, sequence):
        device = MagicMock()
        device.qr.side_effect = ValueError('too long')
        with pytest.raises(RenderError) as exc:
            EscposInterpreter(RenderOptions()).run(sequence({'type': 'qr', 'content': 'x'}), device)
        assert 'Command #0' in exc.value.message


class TestEscposBufferRenderer:

    def test_renders_bytes(self, sequence):
        data = EscposBufferRenderer().render(sequence({'type': 'println', 'content': 'Hello'}))
        assert isinstance(data, bytes)
        assert b'Hello' in data

    def test_missing_image_aborts(self, sequence, tmp_path):
        with pytest.raises(RenderError):
            EscposBufferRenderer().render(
                sequence({'type': 'image', 'path': str(tmp_path / 'missing.png')}))

    def test_bad_raw_hex_aborts(self, sequence):
        with pytest.raises(RenderError):
            EscposBufferRenderer().render(sequence({'type': 'raw', 'content': 'zz'}))

    def test_registry(self):
        assert get_renderer('escpos') is EscposBufferRenderer
        assert get_renderer('nope') is None


class TestLiveTransportRenderer:

    def test_checks_before_streaming(self, sequence):
        transport = MagicMock(bytes_written=12)
        written = LiveTransportRenderer().render(sequence({'type': 'text', 'content': 'x'}), transport)
        assert transport.mock_calls[0] == call.check()
        assert transport.write.called
        assert written == 12

    def test_unreachable_transport(self, sequence):
        transport = MagicMock()
        transport.check.side_effect = ConnectionFailure('offline')
        with pytest.raises(ConnectionFailure):
            LiveTransportRenderer().render(sequence({'type': 'text', 'content': 'x'}), transport)
        transport.write.assert_not_called()


class TestPayloadRenderer:

    def _values(self, payload):
        return [e.get('value') for e in payload['data']]

    def test_text_coalesced_until_println(self, sequence):
        payload = PayloadRenderer().render(sequence(
            {'type': 'text', 'content': 'Qty '},
            {'type': 'text', 'content': '2 '},
            {'type': 'println', 'content': 'Coffee'},
        ))
        assert self._values(payload) == ['Qty 2 Coffee']

    def test_feed_after_line_emits_one_less_blank(self, sequence):
        payload = PayloadRenderer().render(sequence(
            {'type': 'text', 'content': 'a'},
            {'type': 'feed', 'lines': 2},
            {'type': 'feed', 'lines': 2},
        ))
        assert self._values(payload) == ['a', ' ', ' ', ' ']

    def test_line_keeps_first_fragment_style(self, sequence):
        payload = PayloadRenderer().render(sequence(
            {'type': 'setStyles', 'style': 'B', 'size': [2, 2]},
            {'type': 'text', 'content': 'Big'},
            {'type': 'text', 'content': ' tail'},
        ))
        [element] = payload['data']
        assert element['value'] == 'Big tail'
        assert element['style']['fontWeight'] == 'bold'
        assert element['style']['fontSize'] == '22px'

    def test_font_size_buckets(self, sequence):
        payload = PayloadRenderer().render(sequence(
            {'type': 'println', 'content': 'a', 'size': [1, 2]},
            {'type': 'println', 'content': 'b', 'size': [2, 1]},
            {'type': 'println', 'content': 'c'},
        ))
        assert [e['style']['fontSize'] for e in payload['data']] == ['20px', '15px', '12px']

    def test_blocks(self, sequence):
        payload = PayloadRenderer().render(sequence(
            {'type': 'align', 'align': 'CT'},
            {'type': 'qr', 'content': 'https://example.com', 'cellSize': 4},
            {'type': 'beep'},
            {'type': 'drawLine'},
            {'type': 'tableCustom', 'data': [{'text': 'a'}, {'text': 'b'}]},
            {'type': 'cut'},
        ))
        types = [e['type'] for e in payload['data']]
        assert types == ['qrCode', 'divider', 'table']
        qr = payload['data'][0]
        assert qr['position'] == 'center'
        assert qr['width'] == 80
        assert payload['data'][2]['tableBody'] == [['a', 'b']]

    def test_empty_sequence(self, sequence):
        payload = PayloadRenderer().render(sequence({'type': 'cut'}))
        assert self._values(payload) == [EMPTY_MESSAGE]

    def test_options(self, sequence):
        payload = PayloadRenderer(RenderOptions(page_size='58mm', copies=2)).render(sequence())
        assert payload['options']['pageSize'] == '58mm'
        assert payload['options']['copies'] == 2


class TestHtmlRenderer:

    def test_text_is_escaped(self, sequence):
        document = HtmlRenderer().render(sequence({'type': 'println', 'content': '<b>&'}))
        assert '&lt;b&gt;&amp;' in document
        assert '<b>&' not in document

    def test_placeholders(self, sequence):
        document = HtmlRenderer().render(sequence(
            {'type': 'barcode', 'content': '12345'},
            {'type': 'qr', 'content': 'hello'},
            {'type': 'beep'},
            {'type': 'raw', 'content': '1b40'},
            {'type': 'cut'},
        ))
        for text in ('[BARCODE: 12345]', '[QR CODE: hello]', '[BEEP]', '[RAW PRINTER DATA]'):
            assert text in document
        assert '<div class="cut">cut</div>' in document

    def test_feed_lines(self, sequence):
        document = HtmlRenderer().render(sequence(
            {'type': 'feed', 'lines': 2},
            {'type': 'feed', 'lines': 0},
        ))
        assert '<br><br>' in document
        assert '<div class="feed"></div>' in document

    def test_font_size_and_alignment(self, sequence):
        document = HtmlRenderer().render(sequence(
            {'type': 'setStyles', 'align': 'RT', 'size': [3, 3]},
            {'type': 'println', 'content': 'x'},
        ))
        assert 'text-align:right' in document
        assert 'font-size:2em' in document

    def test_missing_image_degrades(self, sequence, tmp_path):
        missing = str(tmp_path / 'logo.png')
        renderer = HtmlRenderer()
        document = renderer.render(sequence({'type': 'image', 'path': missing}))
        assert f'[IMAGE: {missing}]' in document
        assert len(renderer.warnings) == 1

    def test_image_embedded_with_detected_mime(self, sequence, tmp_path):
        path = tmp_path / 'logo.jpg'
        Image.new('RGB', (4, 4), 'white').save(path, format='JPEG')
        renderer = HtmlRenderer()
        document = renderer.render(sequence({'type': 'image', 'path': str(path)}))
        assert 'src="data:image/jpeg;base64,' in document
        assert renderer.warnings == []

    def test_bad_inline_image_degrades(self, sequence):
        renderer = HtmlRenderer()
        document = renderer.render(sequence(
            {'type': 'imageBuffer', 'buffer': base64.b64encode(b'not an image').decode()}))
        assert '[IMAGE]' in document
        assert len(renderer.warnings) == 1

    def test_title_and_page(self, sequence):
        document = HtmlRenderer(RenderOptions(title='Order 7', page_size='58mm')).render(sequence())
        assert '<title>Order 7</title>' in document
        assert '@page{size:58mm auto' in document


def test_every_kind_handled_by_html(sequence):
    """No command kind falls through to the generic placeholder."""
    document = HtmlRenderer().render(sequence(
        *[{'type': kind.value, 'content': 'x', 'path': '/nonexistent.png', 'buffer': 'eA==',
           'data': []} for kind in CommandKind]
    ))
    assert '[TEXT]' not in document and '[TABLECUSTOM]' not in document
