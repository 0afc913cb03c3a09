"""Reader and writer options."""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .codec import Separators, compile_separators, with_escape_char


WIRE = "wire"
TEXT = "text"
FORMATS = (WIRE, TEXT)

# Segment terminators per format
TERMINATORS = {
    WIRE: b"\r",
    TEXT: b"\n",
}

# Latin-1 maps every byte to one character, so raw bytes round-trip
DEFAULT_ENCODING = "latin-1"

# Standard segment IDs accepted in strict mode. Z segments are always
# accepted since they are site-defined.
KNOWN_SEGMENT_IDS = frozenset(
    {
        "ACC", "ADD", "AIG", "AIL", "AIP", "AIS", "AL1", "APR", "ARQ", "AUT",
        "BHS", "BLG", "BTS", "CTD", "CTI", "DG1", "DRG", "DSC", "DSP", "ERR",
        "EVN", "FHS", "FT1", "FTS", "GT1", "IN1", "IN2", "IN3", "MFE", "MFI",
        "MRG", "MSA", "MSH", "NK1", "NTE", "OBR", "OBX", "ORC", "PD1", "PID",
        "PR1", "PRD", "PV1", "PV2", "QAK", "QPD", "QRD", "QRF", "RCP", "RGS",
        "RXA", "RXC", "RXD", "RXE", "RXO", "RXR", "SCH", "SFT", "SPM", "TQ1",
        "TXA", "UB1", "UB2",
    }
)


def _check_format(name: str, value: str) -> str:
    if value not in FORMATS:
        raise ValueError(f"{name} must be one of {', '.join(FORMATS)}, got {value!r}")
    return value


@dataclass
class ReaderOptions:
    """
    Options recognized by the reader.

    Attributes:
        input_format: "wire" (carriage-return terminators) or "text"
            (line-feed terminators)
        trim: Reduce values to their optimal layout and drop empty fields
        separators: Separators used when the first segment is not a header
        escape_char: Escape character overriding the one in separators
        strict: Reject segment IDs that are not in known_segments
        known_segments: Segment IDs accepted in strict mode
        encoding: Text encoding of the byte buffer
    """

    input_format: str = WIRE
    trim: bool = True
    separators: Optional[Separators] = None
    escape_char: Optional[str] = None
    strict: bool = False
    known_segments: FrozenSet[str] = field(default=KNOWN_SEGMENT_IDS)
    encoding: str = DEFAULT_ENCODING

    def __post_init__(self):
        _check_format("input_format", self.input_format)
        self.separators = with_escape_char(
            compile_separators(self.separators), self.escape_char
        )
        self.known_segments = frozenset(self.known_segments)

    @property
    def terminator(self) -> bytes:
        return TERMINATORS[self.input_format]

    def is_known_segment(self, segment_id: str) -> bool:
        return segment_id in self.known_segments or segment_id.startswith("Z")


@dataclass
class WriterOptions:
    """
    Options recognized by the writer.

    Attributes:
        output_format: "wire" (carriage-return terminators) or "text"
            (line-feed terminators)
        trim: Write values in their optimal layout
        separators: Separators to write the message with
        escape_char: Escape character overriding the one in separators
        encoding: Text encoding of the produced bytes
    """

    output_format: str = WIRE
    trim: bool = True
    separators: Optional[Separators] = None
    escape_char: Optional[str] = None
    encoding: str = DEFAULT_ENCODING

    def __post_init__(self):
        _check_format("output_format", self.output_format)
        self.separators = with_escape_char(
            compile_separators(self.separators), self.escape_char
        )

    @property
    def terminator(self) -> bytes:
        return TERMINATORS[self.output_format]
