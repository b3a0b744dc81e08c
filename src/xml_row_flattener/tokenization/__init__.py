"""Tokenization layer for the row flattener.

Key Components:
    XMLEventReader: Lazy pull reader turning document bytes into events
    XMLEvent: A single START, END, TEXT, CDATA or OTHER event
    EventType: Enumeration of event kinds
    EventPosition: Line/column position used in diagnostics
    unescape: Entity resolution primitive for text and attribute values
"""

from .escape import PREDEFINED_ENTITIES, EscapeError, unescape
from .reader import EventPosition, EventType, XMLEvent, XMLEventReader

__all__ = [
    "PREDEFINED_ENTITIES",
    "EscapeError",
    "EventPosition",
    "EventType",
    "XMLEvent",
    "XMLEventReader",
    "unescape",
]
