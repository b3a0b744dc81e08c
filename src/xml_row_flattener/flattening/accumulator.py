"""Accumulator for the in-progress flat record."""

from typing import Dict, Iterable, List

from xml_row_flattener.shared.result import Record

from .stack import render_path


class RecordAccumulator:
    """Collects (path, value) pairs for the current row.

    Values recorded under the same rendered key are kept in arrival order,
    duplicates included.
    """

    def __init__(self, separator: str) -> None:
        self.separator = separator
        self._values: Dict[str, List[str]] = {}
        self._value_count = 0

    def record_value(self, path: Iterable[bytes], value: str) -> str:
        """Append ``value`` under the key rendered from ``path``.

        Returns:
            The rendered key
        """
        key = render_path(path, self.separator)
        self._values.setdefault(key, []).append(value)
        self._value_count += 1
        return key

    def flush(self) -> Record:
        """Hand over the current record and start a fresh one."""
        record = self._values
        self._values = {}
        self._value_count = 0
        return record

    def is_empty(self) -> bool:
        return not self._values

    @property
    def key_count(self) -> int:
        return len(self._values)

    @property
    def value_count(self) -> int:
        return self._value_count
