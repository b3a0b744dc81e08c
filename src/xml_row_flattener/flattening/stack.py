"""Path stack tracking the chain of open elements.

Paths always start at the document root, so rows nested under ``<ROOT>``
produce keys such as ``ROOT.ROW.a`` rather than ``ROW.a``.
"""

from typing import Iterable, List, Optional, Tuple

from xml_row_flattener.shared.errors import StructuralMismatchError

Path = Tuple[bytes, ...]


def render_path(path: Iterable[bytes], separator: str) -> str:
    """Join path segments into a single record key.

    Segments are decoded as UTF-8 with invalid sequences replaced. The join is
    lossy when a segment itself contains the separator.

    Args:
        path: Segment names, outermost first
        separator: String placed between segments

    Returns:
        Rendered key
    """
    return separator.join(segment.decode("utf-8", errors="replace") for segment in path)


class PathStack:
    """LIFO stack of open element names.

    Every ``pop`` must name the element on top of the stack; anything else
    means the event stream is not well nested.
    """

    def __init__(self) -> None:
        self._segments: List[bytes] = []

    def __len__(self) -> int:
        return len(self._segments)

    def __bool__(self) -> bool:
        return bool(self._segments)

    def __repr__(self) -> str:
        return f"PathStack({render_path(self._segments, '/')!r})"

    @property
    def depth(self) -> int:
        """Number of open elements."""
        return len(self._segments)

    def is_empty(self) -> bool:
        """Check whether no element is open."""
        return not self._segments

    def push(self, name: bytes) -> None:
        """Open an element."""
        self._segments.append(name)

    def pop(self, name: bytes, offset: Optional[int] = None) -> bytes:
        """Close the innermost element.

        Args:
            name: Name carried by the end event
            offset: Byte offset of the end event, for error reporting

        Returns:
            The popped segment

        Raises:
            StructuralMismatchError: If the stack is empty or its top differs
                from ``name``; the stack is left unchanged
        """
        if not self._segments:
            raise StructuralMismatchError(
                f"end tag {render_path([name], '')!r} without matching start tag",
                expected=None,
                actual=name,
                offset=offset,
            )
        top = self._segments[-1]
        if top != name:
            raise StructuralMismatchError(
                f"end tag {render_path([name], '')!r} does not match open element "
                f"{render_path([top], '')!r}",
                expected=top,
                actual=name,
                offset=offset,
            )
        return self._segments.pop()

    def current_path(self) -> Path:
        """Snapshot of the open element names, outermost first."""
        return tuple(self._segments)

    def render(self, separator: str, path: Optional[Iterable[bytes]] = None) -> str:
        """Render ``path`` (default: the live path) into a record key."""
        return render_path(self._segments if path is None else path, separator)

    def rendered_segments(self) -> List[str]:
        """Decoded open element names, used when reporting leftover state."""
        return [render_path([segment], "") for segment in self._segments]

    def clear(self) -> None:
        """Drop all open elements."""
        self._segments.clear()
