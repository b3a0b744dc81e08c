"""Exception taxonomy for flattening runs.

Severity ranking, highest first:

* ``StructuralMismatchError`` and ``TextDecodeError`` mean the flattener's own
  bookkeeping can no longer be trusted; they always abort the run.
* ``TokenizeError`` means the remaining input cannot be read; in best-effort
  mode it truncates the run but keeps every row completed so far.
* ``AttributeDecodeError`` is absorbed by the attribute fallback decoder in
  best-effort mode and only escapes in strict mode.
"""

from typing import Optional


class FlattenError(Exception):
    """Base exception for failures while flattening a document.

    Attributes:
        offset: Byte offset into the input where the failure was detected
        event_kind: Kind of event being processed (``start``, ``end``, ``text``...)
    """

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        event_kind: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.event_kind = event_kind

    def __str__(self) -> str:
        details = []
        if self.event_kind:
            details.append(f"event={self.event_kind}")
        if self.offset is not None:
            details.append(f"offset={self.offset}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class StructuralMismatchError(FlattenError):
    """An end tag does not match the element that is currently open."""

    def __init__(
        self,
        message: str,
        expected: Optional[bytes] = None,
        actual: Optional[bytes] = None,
        offset: Optional[int] = None
    ) -> None:
        super().__init__(message, offset=offset, event_kind="end")
        self.expected = expected
        self.actual = actual


class TokenizeError(FlattenError):
    """The tokenizer found markup it cannot read."""


class TextDecodeError(FlattenError):
    """Text content could not be unescaped or decoded."""


class AttributeDecodeError(FlattenError):
    """An attribute value could not be unescaped or decoded."""

    def __init__(
        self,
        message: str,
        attribute: Optional[bytes] = None,
        offset: Optional[int] = None
    ) -> None:
        super().__init__(message, offset=offset, event_kind="start")
        self.attribute = attribute
