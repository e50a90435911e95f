"""Unit tests for output printers."""

import io
import json

import pytest

from mailsearch.models import OutputFormat
from mailsearch.printers import (
    JsonPrinter,
    SexpPrinter,
    Sprinter,
    Text0Printer,
    TextPrinter,
    create_printer,
)


def _emit_records(printer: Sprinter) -> None:
    """Two map records inside a list, the way search renderers write them."""
    printer.begin_list()
    for name, count in (("alpha", 1), ("beta", 2)):
        printer.begin_map()
        printer.map_key("name")
        printer.string(name)
        printer.map_key("count")
        printer.integer(count)
        printer.map_key("query")
        printer.begin_list()
        printer.string(f'id:"{name}"')
        printer.null()
        printer.end()
        printer.end()
        printer.separator()
    printer.end()


class TestCreatePrinter:
    @pytest.mark.parametrize(
        ("fmt", "cls"),
        [
            (OutputFormat.TEXT, TextPrinter),
            (OutputFormat.TEXT0, Text0Printer),
            (OutputFormat.JSON, JsonPrinter),
            (OutputFormat.SEXP, SexpPrinter),
        ],
    )
    def test_create_printer(self, fmt: OutputFormat, cls: type) -> None:
        """Test that each format maps to its printer."""
        printer = create_printer(fmt, io.StringIO())
        assert type(printer) is cls

    def test_only_text_printers_are_flagged(self) -> None:
        """Test only text printers are flagged."""
        assert TextPrinter(io.StringIO()).is_text_printer is True
        assert Text0Printer(io.StringIO()).is_text_printer is True
        assert JsonPrinter(io.StringIO()).is_text_printer is False
        assert SexpPrinter(io.StringIO()).is_text_printer is False


class TestTextPrinter:
    """Test suite for the text printers."""

    def test_prefix_applies_to_next_value_only(self) -> None:
        """Test prefix applies to next value only."""
        out = io.StringIO()
        printer = TextPrinter(out)
        printer.begin_list()
        printer.set_prefix("id")
        printer.string("m1@example.com")
        printer.separator()
        printer.string("/mail/a/1")
        printer.separator()
        printer.end()

        assert out.getvalue() == "id:m1@example.com\n/mail/a/1\n"

    def test_structure_is_dropped(self) -> None:
        """Test structure is dropped."""
        out = io.StringIO()
        printer = TextPrinter(out)
        printer.begin_map()
        printer.map_key("count")
        printer.integer(42)
        printer.null()
        printer.end()
        printer.separator()

        assert out.getvalue() == "42\n"

    def test_text0_uses_nul_separator(self) -> None:
        """Test text0 uses nul separator."""
        out = io.StringIO()
        printer = Text0Printer(out)
        printer.string("inbox")
        printer.separator()
        printer.string("work")
        printer.separator()

        assert out.getvalue() == "inbox\0work\0"


class TestJsonPrinter:
    """Test suite for the JSON printer."""

    def test_records_one_per_line(self) -> None:
        """Test records one per line."""
        out = io.StringIO()
        _emit_records(JsonPrinter(out))

        assert out.getvalue() == (
            '[{"name": "alpha", "count": 1, "query": ["id:\\"alpha\\"", null]},\n'
            '{"name": "beta", "count": 2, "query": ["id:\\"beta\\"", null]}]\n'
        )
        assert json.loads(out.getvalue())[1]["query"] == ['id:"beta"', None]

    def test_empty_list(self) -> None:
        """Test an empty JSON list."""
        out = io.StringIO()
        printer = JsonPrinter(out)
        printer.begin_list()
        printer.end()

        assert out.getvalue() == "[]\n"

    def test_non_ascii_is_kept(self) -> None:
        """Test that non-ASCII text is written unescaped."""
        out = io.StringIO()
        printer = JsonPrinter(out)
        printer.begin_list()
        printer.string("Zoë")
        printer.end()

        assert out.getvalue() == '["Zoë"]\n'


class TestSexpPrinter:
    """Test suite for the S-expression printer."""

    def test_records_one_per_line(self) -> None:
        """Test records one per line."""
        out = io.StringIO()
        _emit_records(SexpPrinter(out))

        assert out.getvalue() == (
            '((:name "alpha" :count 1 :query ("id:\\"alpha\\"" nil))\n'
            '(:name "beta" :count 2 :query ("id:\\"beta\\"" nil)))\n'
        )

    def test_backslashes_are_escaped(self) -> None:
        """Test backslashes are escaped."""
        out = io.StringIO()
        printer = SexpPrinter(out)
        printer.begin_list()
        printer.string("C:\\mail")
        printer.end()

        assert out.getvalue() == '("C:\\\\mail")\n'
