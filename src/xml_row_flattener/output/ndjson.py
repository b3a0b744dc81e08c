"""NDJSON writers for the primary output and the diagnostic side-channel."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from xml_row_flattener.shared.result import FlattenResult

DIAGNOSTICS_SUFFIX = ".diagnostics.ndjson"


def dumps_record(record: Dict[str, Any]) -> str:
    """Serialize one record as a single JSON line (without the newline)."""
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


def write_ndjson(records: Iterable[Dict[str, Any]], output_file: Union[str, Path]) -> int:
    """Write records to ``output_file``, one JSON object per line.

    The lines go to a temporary file in the target directory which then
    replaces the target, so readers never see a partially written file.

    Args:
        records: JSON-compatible mappings
        output_file: Destination path

    Returns:
        Number of lines written
    """
    output_path = Path(output_file)
    directory = output_path.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{output_path.name}.", suffix=".tmp", dir=directory
    )
    count = 0
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as output:
            for record in records:
                output.write(dumps_record(record) + "\n")
                count += 1
        os.replace(tmp_name, output_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return count


def default_diagnostics_path(output_file: Union[str, Path]) -> Path:
    """Diagnostic side-channel path derived from the primary output path."""
    output_path = Path(output_file)
    return output_path.with_name(output_path.name + DIAGNOSTICS_SUFFIX)


def write_diagnostics(result: FlattenResult, diagnostics_file: Union[str, Path]) -> bool:
    """Write leftover state of a partial run to the diagnostic side-channel.

    Nothing is written for a run without leftover state; a stale file from a
    previous run at the same path is removed so it cannot be mistaken for
    this run's diagnostics.

    Returns:
        True if a diagnostic file was written
    """
    diagnostics_path = Path(diagnostics_file)
    if not result.has_leftover:
        diagnostics_path.unlink(missing_ok=True)
        return False
    write_ndjson([result.leftover_payload()], diagnostics_path)
    return True
