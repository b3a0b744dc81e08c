"""Output layer: line-delimited JSON writers."""

from .ndjson import (
    DIAGNOSTICS_SUFFIX,
    default_diagnostics_path,
    dumps_record,
    write_diagnostics,
    write_ndjson,
)

__all__ = [
    "DIAGNOSTICS_SUFFIX",
    "default_diagnostics_path",
    "dumps_record",
    "write_diagnostics",
    "write_ndjson",
]
