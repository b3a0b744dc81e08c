"""Tests for the byte-level XML pull reader."""

import pytest

from xml_row_flattener.shared.errors import TokenizeError
from xml_row_flattener.tokenization import (
    EventPosition,
    EventType,
    XMLEvent,
    XMLEventReader,
)


def read_all(data: bytes):
    return list(XMLEventReader(data))


class TestEventPosition:
    """Tests for EventPosition."""

    def test_position_creation(self):
        """Test EventPosition creation with valid values."""
        pos = EventPosition(line=5, column=10, offset=50)
        assert (pos.line, pos.column, pos.offset) == (5, 10, 50)
        assert str(pos) == "line 5, column 10 (byte 50)"

    def test_position_validation(self):
        """Test EventPosition validation for invalid values."""
        with pytest.raises(ValueError, match="Line number must be >= 1"):
            EventPosition(line=0, column=1, offset=0)
        with pytest.raises(ValueError, match="Column number must be >= 1"):
            EventPosition(line=1, column=0, offset=0)
        with pytest.raises(ValueError, match="Offset must be >= 0"):
            EventPosition(line=1, column=1, offset=-1)


class TestXMLEventReader:
    """Tests for well-formed input."""

    def test_simple_document(self):
        """Start, text and end events are produced in order."""
        events = read_all(b"<a>hi</a>")
        assert [e.type for e in events] == [EventType.START, EventType.TEXT, EventType.END]
        assert events[0].name == b"a"
        assert events[1].content == b"hi"
        assert events[2].name == b"a"

    def test_event_offsets(self):
        """Each event carries the byte offset where it starts."""
        events = read_all(b"<a>hi</a>")
        assert [e.offset for e in events] == [0, 3, 5]

    def test_attributes_are_raw_and_ordered(self):
        """Attribute values are returned undecoded in document order."""
        events = read_all(b"<row b='2' a=\"x &amp; y\" c = \"3\">")
        assert events[0].attributes == [(b"b", b"2"), (b"a", b"x &amp; y"), (b"c", b"3")]

    def test_attribute_value_may_contain_gt(self):
        """A '>' inside a quoted value does not end the tag."""
        events = read_all(b'<a expr="x > 1">t</a>')
        assert events[0].attributes == [(b"expr", b"x > 1")]
        assert events[1].content == b"t"

    def test_self_closing_tag_expands(self):
        """Self-closing tags produce a start and an end event."""
        events = read_all(b'<a><b k="v"/></a>')
        assert [(e.type, e.name) for e in events] == [
            (EventType.START, b"a"),
            (EventType.START, b"b"),
            (EventType.END, b"b"),
            (EventType.END, b"a"),
        ]
        assert events[1].attributes == [(b"k", b"v")]

    def test_self_closing_with_space(self):
        """'<b />' is a self-closing tag without attributes."""
        events = read_all(b"<b />")
        assert [(e.type, e.name) for e in events] == [(EventType.START, b"b"), (EventType.END, b"b")]
        assert events[0].attributes == []

    def test_end_tag_trailing_whitespace(self):
        """Whitespace after an end tag name is allowed."""
        events = read_all(b"<a></a  >")
        assert events[1].name == b"a"

    def test_other_events(self):
        """Declarations, comments, PIs and doctypes are OTHER events."""
        data = (
            b'<?xml version="1.0" encoding="UTF-8"?>\n'
            b"<!DOCTYPE root [<!ENTITY e \"x\">]>"
            b"<!-- a > comment --><?pi data?><root/>"
        )
        kinds = [e.type for e in read_all(data)]
        assert kinds == [
            EventType.OTHER,
            EventType.TEXT,
            EventType.OTHER,
            EventType.OTHER,
            EventType.OTHER,
            EventType.START,
            EventType.END,
        ]

    def test_cdata_content(self):
        """CDATA sections expose their raw content."""
        events = read_all(b"<a><![CDATA[<b> & c]]></a>")
        assert events[1].type is EventType.CDATA
        assert events[1].content == b"<b> & c"

    def test_utf8_bom_is_skipped(self):
        """A leading byte order mark does not become text."""
        events = read_all(b"\xef\xbb\xbf<a/>")
        assert events[0].type is EventType.START
        assert events[0].offset == 3

    def test_names_are_opaque_bytes(self):
        """Element names are not decoded."""
        events = read_all(b"<ns:\xc3\xa9l>x</ns:\xc3\xa9l>")
        assert events[0].name == b"ns:\xc3\xa9l"

    def test_end_names_are_not_checked(self):
        """Mismatched end tags are passed through for the consumer to judge."""
        events = read_all(b"<a></b>")
        assert events[1].name == b"b"

    def test_position_tracking(self):
        """position reports the next unread byte."""
        reader = XMLEventReader(b"<a>x</a>")
        assert reader.position == 0
        reader.read_event()
        assert reader.position == 3
        assert reader.events_read == 1

    def test_read_event_returns_none_at_end(self):
        """read_event signals end of input with None."""
        reader = XMLEventReader(b"<a/>")
        assert reader.read_event() is not None
        assert reader.read_event() is not None
        assert reader.read_event() is None

    def test_position_of(self):
        """Byte offsets convert to line and column."""
        reader = XMLEventReader(b"<a>\n  <b/>\n</a>")
        pos = reader.position_of(6)
        assert (pos.line, pos.column, pos.offset) == (2, 3, 6)

    def test_from_file(self, tmp_path):
        """Readers can be created from a file path."""
        path = tmp_path / "doc.xml"
        path.write_bytes(b"<a>1</a>")
        assert len(list(XMLEventReader.from_file(path))) == 3

    def test_event_kind(self):
        """kind is the lowercase event type name."""
        assert XMLEvent(EventType.START, 0, name=b"a").kind == "start"


class TestXMLEventReaderErrors:
    """Tests for markup the reader rejects."""

    @pytest.mark.parametrize(
        "data, kind",
        [
            (b"<a", "start"),
            (b'<a x="1>', "start"),
            (b"<a></a", "end"),
            (b"<!-- never closed", "comment"),
            (b"<![CDATA[ never closed", "cdata"),
            (b"<?pi never closed", "pi"),
            (b"<!DOCTYPE a [", "doctype"),
            (b"<!ELEMENT a>", "other"),
        ],
    )
    def test_unterminated_markup(self, data, kind):
        """Markup cut off by end of input raises TokenizeError."""
        with pytest.raises(TokenizeError) as excinfo:
            read_all(data)
        assert excinfo.value.event_kind == kind

    @pytest.mark.parametrize("data", [b"<>", b"< a>", b"</>", b"</a b>"])
    def test_malformed_names(self, data):
        """Empty names and garbage in end tags are rejected."""
        with pytest.raises(TokenizeError):
            read_all(data)

    @pytest.mark.parametrize(
        "data",
        [b"<a x>", b"<a x=1>", b'<a x="1"y="2">', b'<a x="1" x="2">', b"<a/b>"],
    )
    def test_malformed_attributes(self, data):
        """Attributes without quoted values, separators or unique names are rejected."""
        with pytest.raises(TokenizeError):
            read_all(data)

    def test_error_offset_points_at_markup(self):
        """The error offset is where the unreadable markup starts."""
        reader = XMLEventReader(b"<a>ok</a><b")
        with pytest.raises(TokenizeError) as excinfo:
            list(reader)
        assert excinfo.value.offset == 9
        assert reader.position == 9

    def test_events_before_error_are_delivered(self):
        """Iteration yields every event before the malformed markup."""
        reader = XMLEventReader(b"<a>ok</a><<")
        received = []
        with pytest.raises(TokenizeError):
            for event in reader:
                received.append(event.type)
        assert received == [EventType.START, EventType.TEXT, EventType.END]
