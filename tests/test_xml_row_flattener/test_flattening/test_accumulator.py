"""Tests for the record accumulator."""

from xml_row_flattener.flattening import RecordAccumulator


class TestRecordAccumulator:
    """Tests for value accumulation and flushing."""

    def test_record_value_creates_key(self):
        """The first value for a path creates a one-element list."""
        acc = RecordAccumulator(".")
        key = acc.record_value((b"ROW", b"X"), "hi")
        assert key == "ROW.X"
        assert acc.flush() == {"ROW.X": ["hi"]}

    def test_duplicate_values_accumulate_in_order(self):
        """Values under the same key keep arrival order and duplicates."""
        acc = RecordAccumulator(".")
        for value in ["b", "a", "b"]:
            acc.record_value((b"ROW", b"X"), value)
        assert acc.value_count == 3
        assert acc.key_count == 1
        assert acc.flush() == {"ROW.X": ["b", "a", "b"]}

    def test_keys_keep_first_seen_order(self):
        """Keys appear in the order they were first recorded."""
        acc = RecordAccumulator(".")
        acc.record_value((b"R", b"b"), "1")
        acc.record_value((b"R", b"a"), "2")
        acc.record_value((b"R", b"b"), "3")
        assert list(acc.flush()) == ["R.b", "R.a"]

    def test_flush_returns_record_and_resets(self):
        """flush hands over the record and leaves the accumulator empty."""
        acc = RecordAccumulator(".")
        acc.record_value((b"R",), "1")
        record = acc.flush()
        assert record == {"R": ["1"]}
        assert acc.is_empty()
        assert acc.value_count == 0

    def test_no_leak_between_rows(self):
        """Values recorded after a flush never show up in the flushed record."""
        acc = RecordAccumulator(".")
        acc.record_value((b"R", b"X"), "first")
        first = acc.flush()
        acc.record_value((b"R", b"X"), "second")
        second = acc.flush()
        assert first == {"R.X": ["first"]}
        assert second == {"R.X": ["second"]}

    def test_separator_is_used_for_keys(self):
        """Keys are rendered with the configured separator."""
        acc = RecordAccumulator("__")
        acc.record_value((b"a", b"b"), "v")
        assert acc.flush() == {"a__b": ["v"]}

    def test_empty_accumulator(self):
        """A fresh accumulator is empty and flushes an empty record."""
        acc = RecordAccumulator(".")
        assert acc.is_empty()
        assert acc.flush() == {}
