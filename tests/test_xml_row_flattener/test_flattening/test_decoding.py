"""Tests for the value decoding policy."""

import pytest

from xml_row_flattener.flattening import (
    decode_attribute,
    decode_cdata,
    decode_text,
    fallback_attribute_value,
)
from xml_row_flattener.shared.errors import AttributeDecodeError, TextDecodeError


class TestDecodeText:
    """Tests for text content decoding."""

    @pytest.mark.parametrize("raw", [b"", b" ", b"\n\t  \r\n"])
    def test_whitespace_only_contributes_nothing(self, raw):
        """Whitespace-only text is structural, not a value."""
        assert decode_text(raw) is None

    def test_trims_and_unescapes(self):
        """Values are trimmed on both ends and entities resolved."""
        assert decode_text(b"\n   A &amp; B  \n") == "A & B"

    def test_inner_whitespace_is_kept(self):
        """Whitespace inside the value is preserved."""
        assert decode_text(b" a  b ") == "a  b"

    def test_undecodable_text_is_fatal(self):
        """Text that cannot be unescaped raises TextDecodeError."""
        with pytest.raises(TextDecodeError) as excinfo:
            decode_text(b"salt & pepper", offset=42)
        assert excinfo.value.offset == 42
        assert excinfo.value.event_kind == "text"

    def test_invalid_utf8_text_is_fatal(self):
        """Text that is not UTF-8 raises TextDecodeError."""
        with pytest.raises(TextDecodeError):
            decode_text(b"caf\xe9")


class TestDecodeCData:
    """Tests for CDATA decoding."""

    def test_entities_are_not_resolved(self):
        """CDATA content is taken literally."""
        assert decode_cdata(b" a &amp; <b> ") == "a &amp; <b>"

    def test_whitespace_only(self):
        """Whitespace-only CDATA contributes nothing."""
        assert decode_cdata(b"  \n") is None

    def test_invalid_utf8(self):
        """Non-UTF-8 CDATA raises TextDecodeError."""
        with pytest.raises(TextDecodeError) as excinfo:
            decode_cdata(b"\xff", offset=3)
        assert excinfo.value.event_kind == "cdata"


class TestDecodeAttribute:
    """Tests for attribute decoding and its fallback."""

    def test_standard_unescape(self):
        """Well-formed values are unescaped normally."""
        decoded = decode_attribute(b"a", b"x &amp; y")
        assert decoded.value == "x & y"
        assert decoded.used_fallback is False
        assert decoded.error is None

    def test_bare_ampersand_falls_back(self):
        """A literal ampersand triggers the fallback instead of failing."""
        decoded = decode_attribute(b"title", b"Salt & Pepper &amp; more")
        assert decoded.used_fallback is True
        assert decoded.value == "Salt & Pepper & more"
        assert "unknown entity" in decoded.error or "unterminated" in decoded.error

    def test_invalid_utf8_falls_back(self):
        """Invalid UTF-8 is replaced rather than dropped."""
        decoded = decode_attribute(b"a", b"caf\xe9")
        assert decoded.used_fallback is True
        assert decoded.value == "caf�"

    def test_values_are_not_trimmed(self):
        """Attribute values are data; whitespace is kept."""
        assert decode_attribute(b"a", b"  x ").value == "  x "
        assert decode_attribute(b"a", b"").value == ""

    def test_strict_mode_raises(self):
        """In strict mode an undecodable attribute is an error."""
        with pytest.raises(AttributeDecodeError) as excinfo:
            decode_attribute(b"title", b"a & b", offset=7, strict=True)
        assert excinfo.value.attribute == b"title"
        assert excinfo.value.offset == 7

    def test_fallback_value(self):
        """The fallback decodes lossily and replaces &amp; with &."""
        assert fallback_attribute_value(b"A &amp; B & C &lt;") == "A & B & C &lt;"
