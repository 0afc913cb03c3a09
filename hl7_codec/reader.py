"""
HL7 Incremental Reader

The reader turns a byte buffer into a Message. Buffers may hold a partial
message: HL7 usually arrives over a transport in arbitrary chunks, so when
the buffer ends in the middle of a segment the reader hands back an
Incomplete result instead of failing.

The flow is:
1. Find the next segment terminator (\\r for wire, \\n for text format)
2. If there is none, return Incomplete with the unconsumed tail
3. The first segment (MSH) declares the separators for the whole message
4. Split the segment into fields, repetitions, components and
   subcomponents, unescaping leaf text last
5. When the buffer ends on a segment boundary, return Complete

Usage:
    from hl7_codec.reader import Reader, Complete, Incomplete

    result = Reader.new(input_format="wire").read(first_chunk)
    while isinstance(result, Incomplete):
        result = result.resume(next_chunk())
    if isinstance(result, Complete):
        message = result.message
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .codec import Separators, decode_value, separators_from_header, trim
from .config import TEXT, ReaderOptions
from .exceptions import (
    HL7CodecError,
    MalformedSegmentError,
    ReaderStateError,
    UnknownSegmentError,
)
from .logger import get_logger
from .models import HEADER_SEGMENT_IDS, Message, Segment, is_valid_segment_id

logger = get_logger(__name__)

LINE_BREAKS = b"\r\n"


class ReaderState(Enum):
    SCANNING_HEADER = "scanning_header"
    SCANNING_SEGMENTS = "scanning_segments"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Complete:
    """The buffer held a whole message."""

    message: Message


@dataclass
class Incomplete:
    """
    The buffer ended in the middle of a segment.

    Attributes:
        continuation: Reader holding everything parsed so far
        rest: Unconsumed tail of the buffer; append more bytes to it and
            pass the result to continuation.read()
        generation: Number of reads the continuation had done when this
            result was produced
    """

    continuation: "Reader"
    rest: bytes
    generation: int = 0

    def resume(self, more: bytes) -> "ReadResult":
        """
        Continue reading with the next chunk of input.

        Raises:
            ReaderStateError: If the continuation was already resumed, since
                reading the same tail twice would duplicate segments
        """
        if self.continuation.generation != self.generation:
            raise ReaderStateError(
                self.continuation.state,
                "Incomplete result is stale: its reader was already resumed",
            )
        return self.continuation.read(self.rest + bytes(more))


@dataclass
class ReadError:
    """The buffer could not be parsed."""

    error: HL7CodecError

    @property
    def reason(self) -> str:
        return str(self.error)


ReadResult = Union[Complete, Incomplete, ReadError]


def decode_segment(
    text: str, separators: Separators, trim_values: bool = True
) -> Segment:
    """
    Parse the text of one segment (without terminator) into a Segment.

    Header segments are special: field 1 is the field separator itself and
    field 2 holds the encoding characters, which are kept verbatim.

    Args:
        text: Segment text, e.g. "PID|1||P12345||Doe^John"
        separators: Separator set of the message
        trim_values: Reduce values to their optimal layout and skip
            empty fields

    Raises:
        MalformedSegmentError: If the segment ID is missing or invalid
    """
    segment_id = text[:3]
    if segment_id in HEADER_SEGMENT_IDS and text[3:4] == separators.field:
        slices = text[4:].split(separators.field)
        fields = {1: separators.field, 2: slices[0]}
        first_sequence = 3
        slices = slices[1:]
    else:
        slices = text.split(separators.field)
        segment_id = slices[0]
        fields = {}
        first_sequence = 1
        slices = slices[1:]

    if not segment_id:
        raise MalformedSegmentError(segment_id, "missing segment ID")
    if not is_valid_segment_id(segment_id):
        raise MalformedSegmentError(
            segment_id, "segment ID must be three uppercase letters or digits"
        )

    for sequence, field_text in enumerate(slices, start=first_sequence):
        value = decode_value(field_text, separators)
        if trim_values:
            value = trim(value)
            if value == "":
                continue
        fields[sequence] = value

    return Segment(segment_id, fields)


@dataclass
class Reader:
    """
    Incremental HL7 reader.

    A Reader is the continuation of a partial read: it carries the learned
    separators and the segments parsed so far, and it is a plain dataclass
    so it can be inspected, logged or pickled between chunks. generation
    counts the calls to read(); Incomplete.resume() refuses a result from
    an earlier generation. A reader must not be resumed by two callers at
    once.
    """

    options: ReaderOptions = field(default_factory=ReaderOptions)
    state: ReaderState = ReaderState.SCANNING_HEADER
    separators: Optional[Separators] = None
    segments: List[Segment] = field(default_factory=list)
    generation: int = 0

    @classmethod
    def new(cls, **options) -> "Reader":
        """Create a reader from keyword options (see ReaderOptions)."""
        return cls(ReaderOptions(**options))

    @property
    def message(self) -> Message:
        """The segments parsed so far."""
        return Message(self.segments)

    def read(self, buffer) -> ReadResult:
        """
        Consume a buffer.

        Args:
            buffer: bytes (str is encoded with the configured encoding)

        Returns:
            Complete, Incomplete or ReadError

        Raises:
            ReaderStateError: If the reader already completed or failed
        """
        if self.state in (ReaderState.DONE, ReaderState.FAILED):
            raise ReaderStateError(self.state)
        self.generation += 1

        if isinstance(buffer, str):
            buffer = buffer.encode(self.options.encoding)
        else:
            buffer = bytes(buffer)

        terminator = self.options.terminator
        length = len(buffer)
        position = 0

        while True:
            # Blank lines and the \n of CR LF line ends
            while position < length and buffer[position] in LINE_BREAKS:
                position += 1

            if position >= length:
                self.state = ReaderState.DONE
                logger.debug("hl7.reader.complete", segment_count=len(self.segments))
                return Complete(self.message)

            end = buffer.find(terminator, position)
            if end < 0:
                rest = buffer[position:]
                logger.debug(
                    "hl7.reader.incomplete",
                    state=self.state.value,
                    segment_count=len(self.segments),
                    rest_size=len(rest),
                )
                return Incomplete(self, rest, self.generation)

            try:
                self._read_segment(buffer[position:end])
            except HL7CodecError as e:
                self.state = ReaderState.FAILED
                logger.warning(
                    "hl7.reader.error",
                    error=str(e),
                    segment_index=len(self.segments),
                )
                return ReadError(e)

            position = end + len(terminator)

    def _read_segment(self, raw: bytes) -> None:
        if self.options.input_format == TEXT:
            raw = raw.rstrip(b"\r")
        text = raw.decode(self.options.encoding)

        if self.state is ReaderState.SCANNING_HEADER:
            self.separators = self._learn_separators(text)
            self.state = ReaderState.SCANNING_SEGMENTS
            logger.debug("hl7.reader.separators", separators=str(self.separators))

        segment = decode_segment(text, self.separators, self.options.trim)
        if self.options.strict and not self.options.is_known_segment(segment.id):
            raise UnknownSegmentError(segment.id)
        self.segments.append(segment)

    def _learn_separators(self, text: str) -> Separators:
        """
        Take the separators from the header segment, or fall back to the
        configured ones when the message does not start with a header.
        """
        if text[:3] not in HEADER_SEGMENT_IDS or len(text) < 4:
            return self.options.separators

        field_separator = text[3]
        end = text.find(field_separator, 4)
        encoding_characters = text[4:] if end < 0 else text[4:end]
        return separators_from_header(field_separator, encoding_characters)


def read(buffer, **options) -> ReadResult:
    """
    Read a buffer with a fresh reader.

    Example:
        result = read(b"MSH|^~\\\\&|A|B|C|D||MSG^T|1|P|2.4\\rPID|1\\r")
        result.message.segment_ids   # Returns ["MSH", "PID"]
    """
    return Reader.new(**options).read(buffer)
