"""Shared utilities for the row flattener.

This module provides configuration objects, the exception taxonomy, result
types and logging helpers used across the tokenization, flattening and output
layers.
"""

from .config import (
    DEFAULT_ROW_ELEMENT,
    DEFAULT_SEPARATOR,
    ConfigError,
    ConfigValidationError,
    ErrorPolicy,
    FlattenConfig,
)
from .errors import (
    AttributeDecodeError,
    FlattenError,
    StructuralMismatchError,
    TextDecodeError,
    TokenizeError,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)
from .result import (
    DiagnosticEntry,
    DiagnosticKind,
    DiagnosticSeverity,
    FlattenResult,
    PerformanceMetrics,
    Record,
)

__all__ = [
    "DEFAULT_ROW_ELEMENT",
    "DEFAULT_SEPARATOR",
    "AttributeDecodeError",
    "ConfigError",
    "ConfigValidationError",
    "CorrelationLogger",
    "DiagnosticEntry",
    "DiagnosticKind",
    "DiagnosticSeverity",
    "ErrorPolicy",
    "FlattenConfig",
    "FlattenError",
    "FlattenResult",
    "PerformanceMetrics",
    "Record",
    "StructuralMismatchError",
    "TextDecodeError",
    "TokenizeError",
    "configure_logging",
    "get_logger",
]
