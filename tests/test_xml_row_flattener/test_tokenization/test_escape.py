"""Tests for entity unescaping."""

import pytest

from xml_row_flattener.tokenization import EscapeError, unescape


class TestUnescape:
    """Tests for the unescape primitive."""

    def test_plain_text_passes_through(self):
        """Text without references is only decoded."""
        assert unescape(b"hello world") == "hello world"

    def test_predefined_entities(self):
        """All five predefined entities are resolved."""
        assert unescape(b"&lt;a&gt; &amp; &apos;b&apos; &quot;c&quot;") == "<a> & 'b' \"c\""

    def test_decimal_and_hex_references(self):
        """Numeric character references are resolved."""
        assert unescape(b"&#65;&#x42;&#X43;") == "ABC"

    def test_utf8_content(self):
        """Multi-byte UTF-8 content is decoded."""
        assert unescape("Homo sapiens – Ångström".encode("utf-8")) == "Homo sapiens – Ångström"

    def test_unknown_entity(self):
        """Unknown named entities are rejected."""
        with pytest.raises(EscapeError, match="unknown entity &nbsp;"):
            unescape(b"a&nbsp;b")

    def test_bare_ampersand(self):
        """An ampersand without a terminating semicolon is rejected."""
        with pytest.raises(EscapeError, match="unterminated entity reference") as excinfo:
            unescape(b"salt & pepper")
        assert excinfo.value.position == 5

    def test_bare_ampersand_before_later_semicolon(self):
        """An ampersand followed later by a semicolon is an unknown entity."""
        with pytest.raises(EscapeError, match="unknown entity"):
            unescape(b"A & B; C")

    @pytest.mark.parametrize("raw", [b"&#;", b"&#xZZ;", b"&#0;", b"&#xD800;", b"&#x110000;"])
    def test_invalid_character_references(self, raw):
        """Malformed or out-of-range character references are rejected."""
        with pytest.raises(EscapeError):
            unescape(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            b"&#-1;",
            b"&#x-41;",
            b"&#+65;",
            b"&#x+41;",
            b"&#6_5;",
            b"&#x4_1;",
            b"&# 65;",
            b"&#65 ;",
            b"&#x 41;",
            b"&#x;",
            "&#٥;".encode("utf-8"),
        ],
    )
    def test_non_digit_character_references(self, raw):
        """Only plain ASCII digits are accepted inside a character reference."""
        with pytest.raises(EscapeError, match="invalid character reference") as excinfo:
            unescape(b"a" + raw)
        assert excinfo.value.position == 1

    def test_leading_zeros_are_accepted(self):
        """Zero-padded references resolve normally."""
        assert unescape(b"&#0065;&#x0041;") == "AA"

    def test_invalid_utf8(self):
        """Bytes that are not UTF-8 are rejected with their position."""
        with pytest.raises(EscapeError, match="invalid UTF-8") as excinfo:
            unescape(b"ab\xffcd")
        assert excinfo.value.position == 2

    def test_escape_error_is_value_error(self):
        """EscapeError can be handled as a ValueError."""
        assert issubclass(EscapeError, ValueError)
