"""
Custom Exceptions for the HL7 Codec

This module defines specific exceptions for the error scenarios that can
occur while reading, writing or editing HL7 messages. Incomplete input is
not an error: the reader reports it as an ``Incomplete`` result instead.
"""

from typing import Optional


class HL7CodecError(Exception):
    """
    Base exception for all HL7 codec errors.
    All other exceptions inherit from this one.
    """

    pass


class InvalidSeparatorsError(HL7CodecError, ValueError):
    """
    Raised when a separator specification cannot be used.

    Example: "|^~^&" repeats the component separator, so components and
    escape sequences could not be told apart.
    """

    def __init__(self, separators, reason: str):
        self.separators = separators
        self.reason = reason
        message = f"Invalid separators {separators!r}: {reason}"
        super().__init__(message)


class MalformedSegmentError(HL7CodecError):
    """
    Raised when a segment cannot be parsed properly.

    Example: A segment without an ID, or with an ID like "pid" that is not
    three uppercase letters or digits.
    """

    def __init__(self, segment_id: str, reason: str):
        self.segment_id = segment_id
        self.reason = reason
        message = f"Malformed segment '{segment_id}': {reason}"
        super().__init__(message)


class UnknownSegmentError(MalformedSegmentError):
    """
    Raised in strict mode when a segment ID is not in the known catalogue.
    """

    def __init__(self, segment_id: str):
        super().__init__(segment_id, "unknown segment ID")


class SegmentNotFoundError(HL7CodecError):
    """
    Raised when a segment insertion cannot find its anchor segment.
    """

    def __init__(self, segment_id: str, repetition: int):
        self.segment_id = segment_id
        self.repetition = repetition
        message = (
            f"Segment '{segment_id}' (repetition {repetition}) "
            "is not present in the message"
        )
        super().__init__(message)


class ReaderStateError(HL7CodecError):
    """
    Raised when a reader that already finished is asked to read again, or
    when an Incomplete result is resumed after its reader has moved on.
    """

    def __init__(self, state, reason: Optional[str] = None):
        self.state = state
        if reason is None:
            reason = f"Reader cannot be resumed from state '{state.value}'"
        super().__init__(reason)
