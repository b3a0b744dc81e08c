"""XML Row Flattener.

Streams a deeply nested, record-oriented XML export into flat records, one per
closed row-boundary element, keyed by element path.

Progressive API Disclosure:
- Level 1: Simple functions - flatten_bytes(), flatten_string(), flatten_file()
- Level 2: Configured flattener - StreamingFlattener with FlattenConfig
- Level 3: Building blocks - XMLEventReader, PathStack, RecordAccumulator
"""

__version__ = "0.1.0"
__author__ = "XML Row Flattener Team"

from .flattening import (
    PathStack,
    RecordAccumulator,
    StreamingFlattener,
    flatten_bytes,
    flatten_file,
    flatten_string,
)
from .shared.config import ErrorPolicy, FlattenConfig
from .shared.errors import (
    AttributeDecodeError,
    FlattenError,
    StructuralMismatchError,
    TextDecodeError,
    TokenizeError,
)
from .shared.result import FlattenResult
from .tokenization import XMLEventReader

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple flattening functions
    "flatten_bytes",
    "flatten_file",
    "flatten_string",

    # Level 2: Configured flattener
    "ErrorPolicy",
    "FlattenConfig",
    "FlattenResult",
    "StreamingFlattener",

    # Level 3: Building blocks
    "PathStack",
    "RecordAccumulator",
    "XMLEventReader",

    # Errors
    "AttributeDecodeError",
    "FlattenError",
    "StructuralMismatchError",
    "TextDecodeError",
    "TokenizeError",
]
