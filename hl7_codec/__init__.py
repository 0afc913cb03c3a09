"""
HL7 v2 Codec

A Python module for reading and writing HL7 v2.x messages, with an
incremental reader for input that arrives in chunks and helpers to find,
group and edit segments.

Example usage:
    import hl7_codec

    result = hl7_codec.read(buffer, input_format="wire")
    if isinstance(result, hl7_codec.Incomplete):
        result = result.resume(more_bytes)

    message = result.message
    pr1, aut = hl7_codec.paired_segments(message, ["PR1", "AUT"], 0)
    data = hl7_codec.write(message, output_format="text")
"""

import logging
from typing import Optional

from .codec import (
    DEFAULT_SEPARATORS,
    Separators,
    compile_separators,
    trim,
)
from .codec import escape as _escape
from .codec import unescape as _unescape
from .config import ReaderOptions, WriterOptions
from .models import Segment, Message
from .message import (
    at,
    segment,
    segments,
    segment_id,
    segment_count,
    paired_segments,
    delete,
    insert_before,
    insert_after,
    replace,
)
from .reader import (
    Reader,
    ReaderState,
    Complete,
    Incomplete,
    ReadError,
    read,
)
from .writer import Writer, write, iter_write
from .parser import (
    parse_message,
    parse_batch,
    parse_hl7_file,
    parse_hl7_file_with_errors,
    parse_hl7_file_streaming,
    messages_to_json,
)
from .exceptions import (
    HL7CodecError,
    InvalidSeparatorsError,
    MalformedSegmentError,
    UnknownSegmentError,
    SegmentNotFoundError,
    ReaderStateError,
)

# Silent unless the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())


def escape(
    value: str,
    separators: Optional[Separators] = None,
    escape_char: Optional[str] = None,
) -> str:
    """
    Escape a string that may contain separators using the HL7 escaping rules.

    Separators may be a Separators instance or any specification accepted
    by compile_separators().

    Example:
        escape("ABC|DEF|GHI")   # Returns "ABC\\F\\DEF\\F\\GHI"
    """
    return _escape(value, compile_separators(separators), escape_char)


def unescape(
    value: str,
    separators: Optional[Separators] = None,
    escape_char: Optional[str] = None,
) -> str:
    """
    Convert an escaped string into its original value.

    Example:
        unescape("ABC\\F\\DEF\\F\\GHI")   # Returns "ABC|DEF|GHI"
    """
    return _unescape(value, compile_separators(separators), escape_char)


__all__ = [
    # Reading and writing
    "read",
    "write",
    "iter_write",
    "Reader",
    "ReaderState",
    "Complete",
    "Incomplete",
    "ReadError",
    "Writer",
    "ReaderOptions",
    "WriterOptions",
    # Codec
    "escape",
    "unescape",
    "trim",
    "compile_separators",
    "Separators",
    "DEFAULT_SEPARATORS",
    # Models
    "Segment",
    "Message",
    # Index and mutator
    "at",
    "segment",
    "segments",
    "segment_id",
    "segment_count",
    "paired_segments",
    "delete",
    "insert_before",
    "insert_after",
    "replace",
    # Files and batches
    "parse_message",
    "parse_batch",
    "parse_hl7_file",
    "parse_hl7_file_with_errors",
    "parse_hl7_file_streaming",
    "messages_to_json",
    # Exceptions
    "HL7CodecError",
    "InvalidSeparatorsError",
    "MalformedSegmentError",
    "UnknownSegmentError",
    "SegmentNotFoundError",
    "ReaderStateError",
]

__version__ = "1.0.0"
