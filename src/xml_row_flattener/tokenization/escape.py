"""XML entity unescaping for text and attribute values.

Only the five predefined XML entities and numeric character references are
resolved. Anything else is an error so that callers can decide whether to
abort or fall back.
"""

import re
from typing import Dict, Optional

PREDEFINED_ENTITIES: Dict[str, str] = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "apos": "'",
    "quot": '"',
}

MAX_CODE_POINT = 0x10FFFF
SURROGATE_RANGE_START = 0xD800
SURROGATE_RANGE_END = 0xDFFF

_DECIMAL_DIGITS = re.compile(r"[0-9]+")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


class EscapeError(ValueError):
    """Raised when a raw value cannot be unescaped.

    Attributes:
        position: Index within the value where the problem starts, if known
    """

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position


def _resolve_char_reference(reference: str, position: int) -> str:
    digits = reference[1:]
    # ASCII digits only; int() also takes signs, underscores and padding
    if digits[:1] in ("x", "X"):
        match = _HEX_DIGITS.fullmatch(digits, 1)
        base = 16
    else:
        match = _DECIMAL_DIGITS.fullmatch(digits)
        base = 10
    if match is None:
        raise EscapeError(f"invalid character reference &{reference};", position)
    code_point = int(match.group(0), base)

    if (
        code_point <= 0
        or code_point > MAX_CODE_POINT
        or SURROGATE_RANGE_START <= code_point <= SURROGATE_RANGE_END
    ):
        raise EscapeError(
            f"character reference &{reference}; is not a valid character", position
        )
    return chr(code_point)


def _resolve_entity(name: str, position: int) -> str:
    if name.startswith("#"):
        return _resolve_char_reference(name, position)
    try:
        return PREDEFINED_ENTITIES[name]
    except KeyError:
        raise EscapeError(f"unknown entity &{name};", position) from None


def unescape(raw: bytes) -> str:
    """Decode a raw value as UTF-8 and resolve entity references.

    Args:
        raw: Value bytes exactly as they appear in the document

    Returns:
        Unescaped text

    Raises:
        EscapeError: On invalid UTF-8, an unknown entity, a ``&`` without a
            terminating ``;`` or an invalid character reference
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EscapeError(f"invalid UTF-8 sequence at byte {e.start}", e.start) from e

    if "&" not in text:
        return text

    parts = []
    pos = 0
    while True:
        amp = text.find("&", pos)
        if amp == -1:
            parts.append(text[pos:])
            break
        parts.append(text[pos:amp])
        semicolon = text.find(";", amp + 1)
        if semicolon == -1:
            raise EscapeError("unterminated entity reference", amp)
        parts.append(_resolve_entity(text[amp + 1:semicolon], amp))
        pos = semicolon + 1

    return "".join(parts)
