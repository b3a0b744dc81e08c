"""Flattening layer: turns an XML event stream into flat row records.

Key Components:
    StreamingFlattener: Single-pass flattener with row-boundary detection
    PathStack: Stack of open element names with mismatch detection
    RecordAccumulator: In-progress record, a mapping of keys to value lists
    decode_text / decode_cdata / decode_attribute: Value decoding policy
"""

from .accumulator import RecordAccumulator
from .decoding import (
    DecodedAttribute,
    decode_attribute,
    decode_cdata,
    decode_text,
    fallback_attribute_value,
)
from .flattener import StreamingFlattener, flatten_bytes, flatten_file, flatten_string
from .stack import PathStack, render_path

__all__ = [
    "DecodedAttribute",
    "PathStack",
    "RecordAccumulator",
    "StreamingFlattener",
    "decode_attribute",
    "decode_cdata",
    "decode_text",
    "fallback_attribute_value",
    "flatten_bytes",
    "flatten_file",
    "flatten_string",
    "render_path",
]
