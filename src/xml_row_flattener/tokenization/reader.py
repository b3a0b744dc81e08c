"""Byte-level XML pull reader.

This module turns an XML document held in memory into a lazy stream of
low-level events. Names, attribute values and text are handed out as raw
bytes; decoding and entity resolution are left to the consumer so that it can
apply its own failure policy per value.

The reader only rejects markup it cannot delimit (unterminated tags, comments
and sections, malformed attributes). It deliberately does not check that end
tags match start tags.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, NoReturn, Optional, Set, Tuple, Union

from xml_row_flattener.shared.errors import TokenizeError

UTF8_BOM = b"\xef\xbb\xbf"
XML_WHITESPACE = b" \t\r\n"
LESS_THAN = ord("<")

# One byte at a time keeps the scan linear when the closing ">" is missing.
_START_TAG_BODY = re.compile(rb"""(?:[^>"']|"[^"]*"|'[^']*')*>""")
_ELEMENT_NAME = re.compile(rb"[^ \t\r\n/>]+")
_WHITESPACE_RUN = re.compile(rb"[ \t\r\n]*")
_ATTRIBUTE = re.compile(
    rb"""([^ \t\r\n="'/>]+)[ \t\r\n]*=[ \t\r\n]*(?:"([^"]*)"|'([^']*)')"""
)
_DOCTYPE_BODY = re.compile(rb"""(?:[^\[\]>"']|"[^"]*"|'[^']*'|\[(?:[^\]"']|"[^"]*"|'[^']*')*\])*>""")

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of events produced by the reader."""

    START = "start"   # Element opened, with attributes
    END = "end"       # Element closed
    TEXT = "text"     # Character data between markup
    CDATA = "cdata"   # Content of a CDATA section
    OTHER = "other"   # Comment, DOCTYPE or processing instruction


@dataclass
class EventPosition:
    """Human-readable position of an event."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column} (byte {self.offset})"


@dataclass
class XMLEvent:
    """A single low-level parse event.

    ``name`` is set for START and END events, ``attributes`` for START events
    and ``content`` for TEXT, CDATA and OTHER events.
    """

    type: EventType
    offset: int
    name: bytes = b""
    attributes: List[Tuple[bytes, bytes]] = field(default_factory=list)
    content: bytes = b""

    @property
    def kind(self) -> str:
        """Event kind as used in diagnostics."""
        return self.type.value


class XMLEventReader:
    """Pull reader producing ``XMLEvent`` objects from a byte buffer.

    Self-closing tags are expanded into a START event followed by an END
    event. A leading UTF-8 byte order mark is skipped.

    Example:
        >>> reader = XMLEventReader(b"<a x='1'>hi</a>")
        >>> [event.kind for event in reader]
        ['start', 'text', 'end']
    """

    def __init__(self, data: bytes, correlation_id: Optional[str] = None) -> None:
        """Initialize the reader.

        Args:
            data: Complete XML document
            correlation_id: Optional correlation ID for log records
        """
        self.data = data
        self.correlation_id = correlation_id
        self._pos = len(UTF8_BOM) if data.startswith(UTF8_BOM) else 0
        self._pending_end: Optional[XMLEvent] = None
        self.events_read = 0

    @classmethod
    def from_file(
        cls, path: Union[str, Path], correlation_id: Optional[str] = None
    ) -> "XMLEventReader":
        """Create a reader over the contents of a file."""
        return cls(Path(path).read_bytes(), correlation_id=correlation_id)

    @property
    def position(self) -> int:
        """Byte offset of the next unread byte."""
        return self._pos

    def position_of(self, offset: int) -> EventPosition:
        """Convert a byte offset into a line/column position."""
        offset = max(0, min(offset, len(self.data)))
        line = self.data.count(b"\n", 0, offset) + 1
        line_start = self.data.rfind(b"\n", 0, offset) + 1
        return EventPosition(line=line, column=offset - line_start + 1, offset=offset)

    def __iter__(self) -> Iterator[XMLEvent]:
        return self

    def __next__(self) -> XMLEvent:
        event = self.read_event()
        if event is None:
            raise StopIteration
        return event

    def read_event(self) -> Optional[XMLEvent]:
        """Read the next event.

        Returns:
            The next event, or None at end of input

        Raises:
            TokenizeError: If the markup at the current position is malformed
        """
        if self._pending_end is not None:
            event, self._pending_end = self._pending_end, None
        else:
            event = self._read_next()
        if event is not None:
            self.events_read += 1
        return event

    def _read_next(self) -> Optional[XMLEvent]:
        data = self.data
        pos = self._pos
        if pos >= len(data):
            return None

        if data[pos] != LESS_THAN:
            end = data.find(b"<", pos)
            if end == -1:
                end = len(data)
            self._pos = end
            return XMLEvent(EventType.TEXT, pos, content=data[pos:end])

        if data.startswith(b"<!--", pos):
            return self._read_delimited(pos, 4, b"-->", EventType.OTHER, "comment")
        if data.startswith(b"<![CDATA[", pos):
            return self._read_delimited(pos, 9, b"]]>", EventType.CDATA, "cdata")
        if data[pos:pos + 9].upper() == b"<!DOCTYPE":
            return self._read_doctype(pos)
        if data.startswith(b"<!", pos):
            self._fail("unrecognized markup declaration", pos, "other")
        if data.startswith(b"<?", pos):
            return self._read_delimited(pos, 2, b"?>", EventType.OTHER, "pi")
        if data.startswith(b"</", pos):
            return self._read_end_tag(pos)
        return self._read_start_tag(pos)

    def _fail(self, message: str, offset: int, event_kind: str) -> NoReturn:
        logger.debug(
            "Tokenizer rejected markup",
            extra={
                "component": "xml_event_reader",
                "correlation_id": self.correlation_id,
                "offset": offset,
                "event_kind": event_kind,
                "reason": message,
            }
        )
        raise TokenizeError(message, offset=offset, event_kind=event_kind)

    def _read_delimited(
        self,
        pos: int,
        opener_length: int,
        terminator: bytes,
        event_type: EventType,
        event_kind: str
    ) -> XMLEvent:
        content_start = pos + opener_length
        end = self.data.find(terminator, content_start)
        if end == -1:
            self._fail(f"unexpected end of input inside {event_kind}", pos, event_kind)
        self._pos = end + len(terminator)
        if event_type is EventType.CDATA:
            return XMLEvent(event_type, pos, content=self.data[content_start:end])
        return XMLEvent(event_type, pos, content=self.data[pos:self._pos])

    def _read_doctype(self, pos: int) -> XMLEvent:
        match = _DOCTYPE_BODY.match(self.data, pos + 9)
        if match is None:
            self._fail("unexpected end of input inside doctype", pos, "doctype")
        self._pos = match.end()
        return XMLEvent(EventType.OTHER, pos, content=self.data[pos:self._pos])

    def _read_end_tag(self, pos: int) -> XMLEvent:
        end = self.data.find(b">", pos + 2)
        if end == -1:
            self._fail("unexpected end of input inside end tag", pos, "end")
        body = self.data[pos + 2:end]
        name = body.rstrip(XML_WHITESPACE)
        if not name or _ELEMENT_NAME.fullmatch(name) is None:
            self._fail(f"malformed end tag {body!r}", pos, "end")
        self._pos = end + 1
        return XMLEvent(EventType.END, pos, name=name)

    def _read_start_tag(self, pos: int) -> XMLEvent:
        match = _START_TAG_BODY.match(self.data, pos + 1)
        if match is None:
            self._fail("unexpected end of input inside start tag", pos, "start")
        body = self.data[pos + 1:match.end() - 1]
        self_closing = body.endswith(b"/")
        if self_closing:
            body = body[:-1]

        name_match = _ELEMENT_NAME.match(body)
        if name_match is None:
            self._fail("element name expected after '<'", pos, "start")
        name = name_match.group(0)
        attributes = self._parse_attributes(body, name_match.end(), pos)

        self._pos = match.end()
        if self_closing:
            self._pending_end = XMLEvent(EventType.END, pos, name=name)
        return XMLEvent(EventType.START, pos, name=name, attributes=attributes)

    def _parse_attributes(
        self, body: bytes, start: int, tag_offset: int
    ) -> List[Tuple[bytes, bytes]]:
        attributes: List[Tuple[bytes, bytes]] = []
        seen: Set[bytes] = set()
        index = start
        length = len(body)

        while True:
            gap = _WHITESPACE_RUN.match(body, index)
            separated = gap.end() > index
            index = gap.end()
            if index >= length:
                return attributes
            if not separated:
                self._fail(
                    "attributes must be separated by whitespace",
                    tag_offset + 1 + index,
                    "start",
                )

            match = _ATTRIBUTE.match(body, index)
            if match is None:
                self._fail("malformed attribute", tag_offset + 1 + index, "start")
            attr_name = match.group(1)
            if attr_name in seen:
                self._fail(
                    f"duplicate attribute {attr_name!r}", tag_offset + 1 + index, "start"
                )
            seen.add(attr_name)
            value = match.group(2) if match.group(2) is not None else match.group(3)
            attributes.append((attr_name, value))
            index = match.end()
