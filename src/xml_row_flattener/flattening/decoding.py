"""Value decoding policy for text, CDATA and attribute values.

Text is the primary payload of a record, so a text value that cannot be
decoded is fatal. Attribute values fall back to a lossy decode instead: some
exports carry attribute values with partially encoded ampersands that entity
resolution rejects, and dropping them would lose data.
"""

from dataclasses import dataclass
from typing import Optional

from xml_row_flattener.shared.errors import AttributeDecodeError, TextDecodeError
from xml_row_flattener.tokenization import EscapeError, unescape
from xml_row_flattener.tokenization.reader import XML_WHITESPACE


@dataclass
class DecodedAttribute:
    """An attribute value after decoding.

    Attributes:
        value: Decoded text
        used_fallback: Whether standard unescaping failed and the fallback ran
        error: Why standard unescaping failed, when it did
    """

    value: str
    used_fallback: bool = False
    error: Optional[str] = None


def trim_whitespace(raw: bytes) -> bytes:
    """Strip XML whitespace from both ends of a raw value."""
    return raw.strip(XML_WHITESPACE)


def decode_text(raw: bytes, offset: Optional[int] = None) -> Optional[str]:
    """Decode the raw content of a text event.

    Args:
        raw: Text bytes as they appear in the document
        offset: Byte offset of the event, for error reporting

    Returns:
        Trimmed, unescaped text, or None for whitespace-only content

    Raises:
        TextDecodeError: If the text cannot be unescaped or is not UTF-8
    """
    trimmed = trim_whitespace(raw)
    if not trimmed:
        return None
    try:
        return unescape(trimmed)
    except EscapeError as e:
        raise TextDecodeError(
            f"cannot decode text content: {e}", offset=offset, event_kind="text"
        ) from e


def decode_cdata(raw: bytes, offset: Optional[int] = None) -> Optional[str]:
    """Decode the content of a CDATA section; entities are not resolved."""
    trimmed = trim_whitespace(raw)
    if not trimmed:
        return None
    try:
        return trimmed.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TextDecodeError(
            f"cannot decode CDATA content: invalid UTF-8 sequence at byte {e.start}",
            offset=offset,
            event_kind="cdata",
        ) from e


def fallback_attribute_value(raw: bytes) -> str:
    """Lossy decode used when an attribute value cannot be unescaped."""
    return raw.decode("utf-8", errors="replace").replace("&amp;", "&")


def decode_attribute(
    name: bytes,
    raw: bytes,
    offset: Optional[int] = None,
    strict: bool = False
) -> DecodedAttribute:
    """Decode an attribute value, falling back rather than failing.

    Args:
        name: Attribute name, for error reporting
        raw: Attribute value bytes without the surrounding quotes
        offset: Byte offset of the start tag, for error reporting
        strict: Raise instead of falling back

    Returns:
        DecodedAttribute describing the value and how it was obtained

    Raises:
        AttributeDecodeError: If ``strict`` is set and unescaping fails
    """
    try:
        return DecodedAttribute(unescape(raw))
    except EscapeError as e:
        if strict:
            raise AttributeDecodeError(
                f"cannot decode attribute {name.decode('utf-8', errors='replace')!r}: {e}",
                attribute=name,
                offset=offset,
            ) from e
        return DecodedAttribute(
            fallback_attribute_value(raw), used_fallback=True, error=str(e)
        )
