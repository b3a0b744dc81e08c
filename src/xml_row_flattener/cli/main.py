"""Main CLI entry point for the xml-row-flattener command-line tool.

Reads one XML export, flattens every row-boundary element into a JSON object
and writes the objects as line-delimited JSON. Leftover state of a partial run
goes to a separate diagnostic file.

Exit codes:
    0: the whole document was flattened
    1: the run was aborted; no primary output was written
    2: invalid command line
    3: partial run; completed rows were written, see the diagnostics
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from xml_row_flattener import __version__
from xml_row_flattener.flattening import StreamingFlattener
from xml_row_flattener.output import default_diagnostics_path, write_diagnostics, write_ndjson
from xml_row_flattener.shared.config import (
    DEFAULT_ROW_ELEMENT,
    DEFAULT_SEPARATOR,
    ConfigValidationError,
    ErrorPolicy,
    FlattenConfig,
)
from xml_row_flattener.shared.errors import FlattenError
from xml_row_flattener.shared.logging import configure_logging, get_logger
from xml_row_flattener.shared.result import DiagnosticKind, DiagnosticSeverity, FlattenResult
from xml_row_flattener.tokenization import XMLEventReader

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 3


class CLIConfig:
    """Configuration management for CLI runs."""

    def __init__(self):
        self.input_file: Optional[Path] = None
        self.output: Optional[Path] = None
        self.diagnostics: Optional[Path] = None
        self.flatten = FlattenConfig()
        self.summary_format = "text"
        self.verbose = False
        self.quiet = False

    @property
    def diagnostics_path(self) -> Path:
        """Diagnostic side-channel path, derived from the output when unset."""
        if self.diagnostics is not None:
            return self.diagnostics
        if self.output is None:
            raise ConfigValidationError("output path is required", field_name="output")
        return default_diagnostics_path(self.output)

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        Raises:
            ConfigValidationError: If the file is not a JSON object or holds
                invalid values
        """
        try:
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError(f"{config_path} must contain a JSON object")

        config = cls()
        config.flatten = FlattenConfig.from_dict(data)
        if "input_file" in data:
            config.input_file = Path(data["input_file"])
        if "output" in data:
            config.output = Path(data["output"])
        if "diagnostics" in data:
            config.diagnostics = Path(data["diagnostics"])
        config.summary_format = data.get("summary_format", config.summary_format)
        return config

    def apply_arguments(self, args: argparse.Namespace) -> None:
        """Apply command-line overrides on top of file configuration."""
        if args.input_file is not None:
            self.input_file = args.input_file
        if args.output is not None:
            self.output = args.output
        if args.diagnostics is not None:
            self.diagnostics = args.diagnostics
        if args.separator is not None:
            self.flatten = replace(self.flatten, separator=args.separator)
        if args.row_element is not None:
            self.flatten = replace(self.flatten, row_element=args.row_element)
        if args.strict:
            self.flatten = replace(self.flatten, policy=ErrorPolicy.STRICT)
        if args.summary_format is not None:
            self.summary_format = args.summary_format
        self.verbose = args.verbose
        self.quiet = args.quiet

    def validate(self) -> None:
        """Check that everything needed for a run is present."""
        if self.input_file is None:
            raise ConfigValidationError("input file is required", field_name="input_file")
        if self.output is None:
            raise ConfigValidationError("output path is required", field_name="output")
        if self.summary_format not in ("text", "json"):
            raise ConfigValidationError(
                "summary_format must be 'text' or 'json'", field_name="summary_format"
            )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="xml-row-flattener",
        description=(
            "Flatten a nested XML export into line-delimited JSON, "
            "one object per row element"
        )
    )

    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--input-file", "-i",
        type=Path,
        help="XML document to flatten"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="NDJSON file to write"
    )
    parser.add_argument(
        "--separator", "-s",
        help=f"String joining path segments into keys (default: {DEFAULT_SEPARATOR!r})"
    )
    parser.add_argument(
        "--row-element", "-r",
        help=f"Element whose close emits a row (default: {DEFAULT_ROW_ELEMENT})"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on any parse or decode failure instead of keeping completed rows"
    )
    parser.add_argument(
        "--diagnostics",
        type=Path,
        help="Where leftover state of a partial run is written "
             "(default: <output>.diagnostics.ndjson)"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON configuration file; command-line options take precedence"
    )
    parser.add_argument(
        "--summary-format",
        choices=["text", "json"],
        help="Format of the run summary printed to stderr (default: text)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def format_summary(
    result: FlattenResult,
    format_type: str,
    output: Path,
    diagnostics: Optional[Path] = None
) -> str:
    """Format the outcome of a run for the terminal."""
    if format_type == "json":
        summary: Dict[str, Any] = result.summary()
        summary["output"] = str(output)
        summary["diagnostics_file"] = str(diagnostics) if diagnostics else None
        summary["diagnostic_entries"] = [diag.to_dict() for diag in result.diagnostics]
        return json.dumps(summary, indent=2)

    lines: List[str] = []
    status = "✓" if result.is_complete else "✗"
    lines.append(f"{status} Wrote {result.record_count} records to {output}")
    lines.append(
        f"   Events: {result.metrics.events_processed}, "
        f"Time: {result.metrics.processing_time_ms:.1f}ms, "
        f"Throughput: {result.metrics.bytes_per_second / 1024:.1f}KB/s, "
        f"Memory: {result.metrics.memory_used_bytes / (1024 * 1024):.1f}MB"
    )
    if result.metrics.attribute_fallbacks:
        lines.append(
            f"   Attribute values decoded with fallback: {result.metrics.attribute_fallbacks}"
        )
    if result.truncated_by:
        lines.append(f"   Input truncated: {result.truncated_by}")
    if result.open_elements:
        lines.append(f"   Open elements at end: {'/'.join(result.open_elements)}")
    for warning in result.get_diagnostics_by_kind(DiagnosticKind.INCOMPLETE_DOCUMENT):
        lines.append(f"   Warning: {warning.message}")
    if diagnostics:
        lines.append(f"   Leftover state written to {diagnostics}")

    if not result.has_errors():
        return "\n".join(lines)

    errors = [
        diag for diag in result.diagnostics
        if diag.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
    ]
    for error in errors[:3]:
        lines.append(f"   Error: {error.message}")
    if len(errors) > 3:
        lines.append(f"   ... and {len(errors) - 3} more errors")

    return "\n".join(lines)


def describe_failure(error: FlattenError, reader: XMLEventReader) -> str:
    """Build the user-facing message for an aborted run."""
    location = ""
    if error.offset is not None:
        location = f" at {reader.position_of(error.offset)}"
    kind = f" while reading {error.event_kind} event" if error.event_kind else ""
    return f"{type(error).__name__}{kind}{location}: {error.message}"


def cmd_flatten(config: CLIConfig) -> int:
    """Run one flattening pass and write its outputs."""
    logger = get_logger(__name__, config.flatten.correlation_id, "cli")
    config.validate()

    try:
        data = config.input_file.read_bytes()
    except OSError as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return EXIT_FAILURE

    logger.info("Read input file", extra={"input_file": str(config.input_file), "size": len(data)})

    reader = XMLEventReader(data, correlation_id=config.flatten.correlation_id)
    try:
        result = StreamingFlattener(config.flatten).flatten(reader)
    except FlattenError as e:
        print(f"Error: {describe_failure(e, reader)}", file=sys.stderr)
        print("No output written", file=sys.stderr)
        return EXIT_FAILURE

    try:
        write_ndjson(result.records, config.output)
        wrote_diagnostics = write_diagnostics(result, config.diagnostics_path)
    except OSError as e:
        logger.exception("Failed to write output", extra={"output": str(config.output)})
        print(f"Error writing output: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if not config.quiet:
        print(
            format_summary(
                result,
                config.summary_format,
                config.output,
                config.diagnostics_path if wrote_diagnostics else None,
            ),
            file=sys.stderr,
        )

    return EXIT_SUCCESS if result.is_complete else EXIT_PARTIAL


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging(logging.DEBUG)
    elif args.quiet:
        configure_logging(logging.ERROR)
    else:
        configure_logging(logging.WARNING)

    try:
        config = CLIConfig()
        if args.config is not None:
            if not args.config.exists():
                print(f"Config file not found: {args.config}", file=sys.stderr)
                return EXIT_FAILURE
            config = CLIConfig.from_file(args.config)
        config.apply_arguments(args)
        return cmd_flatten(config)

    except ConfigValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
