"""Streaming hierarchical flattener.

This module consumes the event stream of one XML document and produces flat
records keyed by element path, one per closed row-boundary element.

Error handling follows the configured ``ErrorPolicy``:

* structural mismatches and undecodable text always abort the pass;
* a tokenizer failure aborts in strict mode, and in best-effort mode stops
  consumption while keeping every row completed before it;
* an undecodable attribute value aborts in strict mode, and in best-effort
  mode is recorded through the fallback decoder.

Whatever was recorded after the last row boundary, and any elements still open
at the end, are reported on the result instead of being silently dropped.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, Optional, Union

from xml_row_flattener.shared.config import FlattenConfig
from xml_row_flattener.shared.errors import FlattenError, TokenizeError
from xml_row_flattener.shared.logging import get_logger
from xml_row_flattener.shared.result import (
    DiagnosticKind,
    DiagnosticSeverity,
    FlattenResult,
)
from xml_row_flattener.tokenization import EventType, XMLEvent, XMLEventReader

from .accumulator import RecordAccumulator
from .decoding import decode_attribute, decode_cdata, decode_text
from .stack import PathStack

COMPONENT = "streaming_flattener"


class StreamingFlattener:
    """Flattens an XML event stream into row records.

    The path stack and the record accumulator are owned by the flattener and
    reset at the start of every pass, so one instance can flatten several
    documents one after another but must not be shared between threads.
    """

    def __init__(self, config: Optional[FlattenConfig] = None) -> None:
        """Initialize the flattener.

        Args:
            config: Flatten configuration (defaults to best-effort, ``.``
                separator, ``EXPERIMENT_PACKAGE`` rows)
        """
        self.config = config or FlattenConfig()
        self.logger = get_logger(__name__, self.config.correlation_id, COMPONENT)
        self._row_element = self.config.row_element_bytes
        self._strict = self.config.is_strict
        self._stack = PathStack()
        self._accumulator = RecordAccumulator(self.config.separator)
        self._result = FlattenResult(correlation_id=self.config.correlation_id)

    @property
    def stack(self) -> PathStack:
        return self._stack

    @property
    def accumulator(self) -> RecordAccumulator:
        return self._accumulator

    def _reset_state(self) -> None:
        self._stack.clear()
        self._accumulator.flush()
        self._result = FlattenResult(correlation_id=self.config.correlation_id)

    def flatten(self, events: Iterable[XMLEvent]) -> FlattenResult:
        """Run one flattening pass over an event stream.

        Args:
            events: Event stream, usually an ``XMLEventReader``

        Returns:
            FlattenResult with completed records, leftover state and diagnostics

        Raises:
            StructuralMismatchError: An end tag did not match the open element
            TextDecodeError: Text content could not be decoded
            TokenizeError: The input was malformed (strict mode only)
            AttributeDecodeError: An attribute could not be decoded (strict mode only)
        """
        self._reset_state()
        result = self._result
        start_time = time.time()
        last_offset = 0

        self.logger.info(
            "Starting flattening pass",
            extra={
                "row_element": self.config.row_element,
                "separator": self.config.separator,
                "policy": self.config.policy.name,
            }
        )

        try:
            for event in events:
                last_offset = event.offset
                self.process_event(event)
        except TokenizeError as e:
            if self._strict:
                self._log_fatal(e)
                raise
            self._record_truncation(e)
            last_offset = e.offset if e.offset is not None else last_offset
        except FlattenError as e:
            self._log_fatal(e)
            raise

        if result.truncated_by is None and isinstance(events, XMLEventReader):
            last_offset = events.position
        result.end_offset = last_offset
        if isinstance(events, XMLEventReader):
            result.metrics.bytes_processed = min(last_offset, len(events.data))

        self.finalize()
        result.metrics.processing_time_ms = (time.time() - start_time) * 1000
        result.metrics.capture_memory()

        self.logger.info(
            "Flattening pass completed",
            extra={
                "records": result.record_count,
                "complete": result.is_complete,
                "processing_time_ms": result.metrics.processing_time_ms,
            }
        )
        return result

    def process_event(self, event: XMLEvent) -> None:
        """Apply a single event to the path stack and the current record."""
        self._result.metrics.events_processed += 1

        if event.type is EventType.START:
            self._handle_start(event)
        elif event.type is EventType.END:
            self._handle_end(event)
        elif event.type is EventType.TEXT:
            self._record(decode_text(event.content, event.offset))
        elif event.type is EventType.CDATA:
            self._record(decode_cdata(event.content, event.offset))
        # OTHER events (comments, doctype, processing instructions) carry no values

    def _record(self, value: Optional[str]) -> None:
        if value is None:
            return
        self._accumulator.record_value(self._stack.current_path(), value)
        self._result.metrics.values_recorded += 1

    def _handle_start(self, event: XMLEvent) -> None:
        self._stack.push(event.name)
        if not event.attributes:
            return

        element_path = self._stack.current_path()
        for attr_name, raw_value in event.attributes:
            decoded = decode_attribute(attr_name, raw_value, event.offset, self._strict)
            if decoded.used_fallback:
                self._record_attribute_fallback(attr_name, event.offset, decoded.error)
            self._accumulator.record_value(element_path + (attr_name,), decoded.value)
            self._result.metrics.values_recorded += 1

    def _handle_end(self, event: XMLEvent) -> None:
        popped = self._stack.pop(event.name, event.offset)
        if popped != self._row_element:
            return

        if self.logger.is_enabled_for(logging.DEBUG):
            self.logger.debug(
                "Row completed",
                extra={
                    "row": self._result.record_count + 1,
                    "keys": self._accumulator.key_count,
                    "values": self._accumulator.value_count,
                    "offset": event.offset,
                }
            )
        self._result.records.append(self._accumulator.flush())
        self._result.metrics.records_emitted += 1

    def _record_attribute_fallback(
        self, attr_name: bytes, offset: int, error: Optional[str]
    ) -> None:
        name = attr_name.decode("utf-8", errors="replace")
        self._result.metrics.attribute_fallbacks += 1
        self._result.add_diagnostic(
            DiagnosticSeverity.WARNING,
            DiagnosticKind.ATTRIBUTE_DECODE_FAILURE,
            f"Attribute {name!r} decoded with fallback: {error}",
            COMPONENT,
            offset=offset,
            event_kind=EventType.START.value,
            details={"attribute": name, "path": self._stack.render(self.config.separator)},
        )
        self.logger.warning(
            "Attribute value decoded with fallback",
            extra={"attribute": name, "offset": offset, "reason": error}
        )

    def _record_truncation(self, error: TokenizeError) -> None:
        self._result.truncated_by = str(error)
        self._result.add_diagnostic(
            DiagnosticSeverity.ERROR,
            DiagnosticKind.TOKENIZE_FAILURE,
            f"Input truncated: {error.message}",
            COMPONENT,
            offset=error.offset,
            event_kind=error.event_kind,
            details={"records_kept": self._result.record_count},
        )
        self.logger.warning(
            "Tokenizer failure, keeping completed rows",
            extra={
                "offset": error.offset,
                "event_kind": error.event_kind,
                "reason": error.message,
                "records_kept": self._result.record_count,
            }
        )

    def _log_fatal(self, error: FlattenError) -> None:
        self.logger.error(
            "Flattening aborted",
            extra={
                "error_type": type(error).__name__,
                "offset": error.offset,
                "event_kind": error.event_kind,
                "reason": error.message,
                "records_discarded": self._result.record_count,
                "depth": self._stack.depth,
            }
        )

    def finalize(self) -> FlattenResult:
        """Move leftover state into the result and report it.

        Elements still open and values recorded after the last row boundary
        mean the document ended early; both are reported, and the leftover
        values are handed over on ``FlattenResult.leftover_record``.
        """
        result = self._result

        if not self._stack.is_empty():
            result.open_elements = self._stack.rendered_segments()
            result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                DiagnosticKind.INCOMPLETE_DOCUMENT,
                "Document ended with open elements: "
                + self._stack.render(self.config.separator),
                COMPONENT,
                offset=result.end_offset,
                details={"open_elements": list(result.open_elements)},
            )
            self.logger.warning(
                "Document ended with open elements",
                extra={"open_elements": result.open_elements, "offset": result.end_offset}
            )

        if not self._accumulator.is_empty():
            value_count = self._accumulator.value_count
            result.leftover_record = self._accumulator.flush()
            result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                DiagnosticKind.INCOMPLETE_DOCUMENT,
                f"{value_count} values were recorded after the last "
                f"{self.config.row_element!r} row closed",
                COMPONENT,
                offset=result.end_offset,
                details={"keys": sorted(result.leftover_record)},
            )
            self.logger.warning(
                "Values recorded after the last row boundary",
                extra={"keys": len(result.leftover_record), "values": value_count}
            )

        return result


def flatten_bytes(data: bytes, config: Optional[FlattenConfig] = None) -> FlattenResult:
    """Flatten an XML document held in memory.

    Args:
        data: Document bytes
        config: Optional flatten configuration

    Returns:
        FlattenResult for the document
    """
    config = config or FlattenConfig()
    reader = XMLEventReader(data, correlation_id=config.correlation_id)
    return StreamingFlattener(config).flatten(reader)


def flatten_string(text: str, config: Optional[FlattenConfig] = None) -> FlattenResult:
    """Flatten an XML document given as text (encoded as UTF-8)."""
    return flatten_bytes(text.encode("utf-8"), config)


def flatten_file(
    path: Union[str, Path], config: Optional[FlattenConfig] = None
) -> FlattenResult:
    """Flatten the XML document stored at ``path``."""
    return flatten_bytes(Path(path).read_bytes(), config)
