"""Tests for command and render option parsing."""

import pytest

from pos_print_bridge.errors import CommandParseError
from pos_print_bridge.models import (
    Alignment,
    CommandEntry,
    CommandKind,
    CommandSequence,
    Emphasis,
    RenderOptions,
)


class TestCommandEntry:
    """Tests for CommandEntry.from_dict."""

    def test_wire_type_aliases(self):
        """Wire names are case-insensitive and have aliases."""
        assert CommandEntry.from_dict({'type': 'setStyles'}).kind is CommandKind.SET_STYLE
        assert CommandEntry.from_dict({'type': 'PRINT', 'content': 'x'}).kind is CommandKind.TEXT
        assert CommandEntry.from_dict({'type': 'drawLine'}).kind is CommandKind.RULE
        assert CommandEntry.from_dict({'type': 'tableCustom', 'data': []}).kind is CommandKind.TABLE

    def test_unknown_type_reports_index(self):
        with pytest.raises(CommandParseError) as exc:
            CommandEntry.from_dict({'type': 'hologram'}, index=3)
        assert exc.value.index == 3
        assert 'Command #3' in exc.value.message
        assert exc.value.http_status == 400

    def test_missing_type(self):
        with pytest.raises(CommandParseError):
            CommandEntry.from_dict({'content': 'hi'})

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            CommandEntry.from_dict('not a dict')

    def test_style_flags_and_size(self):
        entry = CommandEntry.from_dict({
            'type': 'setStyles', 'align': 'CT', 'style': 'BU2', 'size': [2, 3],
        })
        assert entry.align is Alignment.CENTER
        assert entry.emphasis == Emphasis(bold=True, underline=2, invert=False)
        assert entry.size == (2, 3)
        assert entry.is_style_only

    def test_size_is_clamped(self):
        entry = CommandEntry.from_dict({'type': 'text', 'content': 'x', 'size': [0, 20]})
        assert entry.size == (1, 8)

    def test_bad_size(self):
        with pytest.raises(CommandParseError):
            CommandEntry.from_dict({'type': 'text', 'size': 'big'})

    def test_feed_lines(self):
        assert CommandEntry.from_dict({'type': 'feed', 'lines': 4}).lines == 4
        assert CommandEntry.from_dict({'type': 'feed'}).lines == 1

    def test_cut_mode(self):
        assert CommandEntry.from_dict({'type': 'cut', 'mode': 'full'}).full_cut is True
        assert CommandEntry.from_dict({'type': 'cut'}).full_cut is False

    def test_numeric_barcode_type(self):
        entry = CommandEntry.from_dict({'type': 'barcode', 'content': '123', 'barcodeType': 67})
        assert entry.barcode_type == 'EAN13'

    def test_unknown_numeric_barcode_type(self):
        with pytest.raises(CommandParseError):
            CommandEntry.from_dict({'type': 'barcode', 'content': '123', 'barcodeType': 99})

    def test_qr_correction_validated(self):
        with pytest.raises(CommandParseError):
            CommandEntry.from_dict({'type': 'qr', 'content': 'x', 'correction': 'Z'})

    def test_image_requires_path(self):
        with pytest.raises(CommandParseError):
            CommandEntry.from_dict({'type': 'image'})

    def test_table_single_row_and_rows(self):
        single = CommandEntry.from_dict({'type': 'tableCustom', 'data': [
            {'text': 'Item'}, {'text': '9.00', 'align': 'RIGHT'},
        ]})
        assert len(single.rows) == 1
        assert single.rows[0][1].align is Alignment.RIGHT

        many = CommandEntry.from_dict({'type': 'table', 'data': [['a', 'b'], ['c', 'd']]})
        assert [[c.text for c in row] for row in many.rows] == [['a', 'b'], ['c', 'd']]


class TestCommandSequence:
    """Tests for CommandSequence."""

    def test_from_list_requires_array(self):
        with pytest.raises(CommandParseError):
            CommandSequence.from_list({'type': 'text'})

    def test_has_cut(self, sequence):
        assert sequence({'type': 'cut'}).has_cut
        assert not sequence({'type': 'text', 'content': 'x'}).has_cut

    def test_kinds_preserve_order(self, sequence):
        seq = sequence({'type': 'text', 'content': 'a'}, {'type': 'feed'}, {'type': 'cut'})
        assert seq.kinds() == [CommandKind.TEXT, CommandKind.FEED, CommandKind.CUT]
        assert len(seq) == 3

    def test_error_carries_position(self):
        with pytest.raises(CommandParseError) as exc:
            CommandSequence.from_list([{'type': 'text'}, {'type': 'nope'}])
        assert exc.value.index == 1


class TestRenderOptions:
    """Tests for RenderOptions.from_dict."""

    def test_defaults(self):
        options = RenderOptions.from_dict(None)
        assert options.line_width == 48
        assert options.auto_cut is True
        assert options.initial_align is Alignment.LEFT

    def test_camel_case_keys(self):
        options = RenderOptions.from_dict({
            'lineWidth': '32', 'autoCut': False, 'initialAlign': 'center', 'copies': 2,
        })
        assert options.line_width == 32
        assert options.auto_cut is False
        assert options.initial_align is Alignment.CENTER
        assert options.copies == 2

    @pytest.mark.parametrize('value, expected', [
        ('false', False), ('0', False), ('No', False), (0, False),
        ('true', True), ('1', True), (1, True),
    ])
    def test_string_flags(self, value, expected):
        options = RenderOptions.from_dict({'autoCut': value, 'nativeQr': value})
        assert options.auto_cut is expected
        assert options.native_qr is expected

    def test_unparseable_flag(self):
        with pytest.raises(CommandParseError):
            RenderOptions.from_dict({'autoCut': 'sometimes'})

    def test_unknown_keys_kept_in_extra(self):
        assert RenderOptions.from_dict({'printBackground': True}).extra == {'printBackground': True}

    def test_invalid_value(self):
        with pytest.raises(CommandParseError):
            RenderOptions.from_dict({'lineWidth': 'wide'})

    def test_timeout_or(self):
        assert RenderOptions().timeout_or(7) == 7
        assert RenderOptions(timeout=2.5).timeout_or(7) == 2.5
