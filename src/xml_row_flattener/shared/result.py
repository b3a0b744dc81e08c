"""Result objects and diagnostic types for flattening runs.

A ``FlattenResult`` carries the primary output (completed records) together
with everything an operator needs to judge a partial run: diagnostics, the
leftover in-progress record, the element path that was still open, and
performance metrics.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional

import psutil

Record = Dict[str, List[str]]


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # Debug-level information
    INFO = auto()       # Informational messages
    WARNING = auto()    # Data was recovered or may be missing
    ERROR = auto()      # Input was truncated; completed rows were kept
    CRITICAL = auto()   # The run was aborted


class DiagnosticKind(Enum):
    """What a diagnostic entry is about."""

    STRUCTURAL_MISMATCH = "structural_mismatch"
    TOKENIZE_FAILURE = "tokenize_failure"
    TEXT_DECODE_FAILURE = "text_decode_failure"
    ATTRIBUTE_DECODE_FAILURE = "attribute_decode_failure"
    INCOMPLETE_DOCUMENT = "incomplete_document"


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    kind: DiagnosticKind
    message: str
    component: str
    offset: Optional[int] = None
    event_kind: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible mapping."""
        return {
            "severity": self.severity.name,
            "kind": self.kind.value,
            "message": self.message,
            "component": self.component,
            "offset": self.offset,
            "event_kind": self.event_kind,
            "details": self.details,
        }


@dataclass
class PerformanceMetrics:
    """Performance metrics for a flattening pass."""

    processing_time_ms: float = 0.0
    memory_used_bytes: int = 0
    bytes_processed: int = 0
    events_processed: int = 0
    records_emitted: int = 0
    values_recorded: int = 0
    attribute_fallbacks: int = 0

    @property
    def bytes_per_second(self) -> float:
        """Calculate input bytes consumed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.bytes_processed * 1000.0) / self.processing_time_ms

    @property
    def events_per_second(self) -> float:
        """Calculate parse events consumed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.events_processed * 1000.0) / self.processing_time_ms

    def capture_memory(self) -> None:
        """Record the resident set size of the current process.

        The output sequence is buffered until the end of the pass, so the RSS
        sampled here approximates the peak cost of the run.
        """
        self.memory_used_bytes = psutil.Process().memory_info().rss


@dataclass
class FlattenResult:
    """Outcome of one flattening pass.

    Attributes:
        records: Completed records in document order (the primary output)
        diagnostics: Diagnostics collected during the pass
        leftover_record: Values recorded after the last row boundary closed
        open_elements: Rendered element names still open at end of input
        truncated_by: Tokenizer error message that stopped consumption, if any
        end_offset: Byte offset where consumption stopped
        metrics: Performance metrics
    """

    records: List[Record] = field(default_factory=list)
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    leftover_record: Record = field(default_factory=dict)
    open_elements: List[str] = field(default_factory=list)
    truncated_by: Optional[str] = None
    end_offset: int = 0
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    correlation_id: Optional[str] = None

    @property
    def record_count(self) -> int:
        """Number of completed records."""
        return len(self.records)

    @property
    def has_leftover(self) -> bool:
        """Whether state was left over that never reached the primary output."""
        return bool(self.leftover_record) or bool(self.open_elements)

    @property
    def is_complete(self) -> bool:
        """Whether the whole input was consumed and nothing was left over."""
        return self.truncated_by is None and not self.has_leftover

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        kind: DiagnosticKind,
        message: str,
        component: str,
        offset: Optional[int] = None,
        event_kind: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add diagnostic entry to result."""
        self.diagnostics.append(DiagnosticEntry(
            severity=severity,
            kind=kind,
            message=message,
            component=component,
            offset=offset,
            event_kind=event_kind,
            details=details,
            correlation_id=self.correlation_id,
        ))

    def get_diagnostics_by_kind(self, kind: DiagnosticKind) -> List[DiagnosticEntry]:
        """Get diagnostics of a specific kind."""
        return [diag for diag in self.diagnostics if diag.kind == kind]

    def has_errors(self) -> bool:
        """Check if result contains any error diagnostics."""
        return any(
            diag.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
            for diag in self.diagnostics
        )

    def leftover_payload(self) -> Dict[str, Any]:
        """Build the diagnostic side-channel line for leftover state."""
        return {
            "kind": DiagnosticKind.INCOMPLETE_DOCUMENT.value,
            "offset": self.end_offset,
            "error": self.truncated_by,
            "open_elements": list(self.open_elements),
            "record": self.leftover_record,
        }

    def summary(self) -> Dict[str, Any]:
        """Get a compact summary of the run for reporting."""
        return {
            "records": self.record_count,
            "complete": self.is_complete,
            "truncated_by": self.truncated_by,
            "open_elements": list(self.open_elements),
            "leftover_keys": len(self.leftover_record),
            "diagnostics": len(self.diagnostics),
            "attribute_fallbacks": self.metrics.attribute_fallbacks,
            "bytes_processed": self.metrics.bytes_processed,
            "events_processed": self.metrics.events_processed,
            "processing_time_ms": round(self.metrics.processing_time_ms, 3),
            "bytes_per_second": round(self.metrics.bytes_per_second, 1),
            "events_per_second": round(self.metrics.events_per_second, 1),
            "memory_used_bytes": self.metrics.memory_used_bytes,
        }
