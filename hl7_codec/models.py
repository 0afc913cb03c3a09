"""
Data Models for the HL7 Codec

The module contains the two data classes every other module works with:
a Segment (ID plus ordered field mapping) and a Message (ordered list of
segments). These models also define the shape of our JSON output.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional
import json
import re

from .codec import Value, trim
from .exceptions import MalformedSegmentError


# Segments that declare the separators in their first two fields
HEADER_SEGMENT_IDS = frozenset({"MSH", "BHS", "FHS"})

SEGMENT_ID_PATTERN = re.compile(r"[A-Z0-9]{3}")


def is_valid_segment_id(segment_id: str) -> bool:
    """Check that a segment ID is three uppercase letters or digits."""
    return isinstance(segment_id, str) and SEGMENT_ID_PATTERN.fullmatch(segment_id) is not None


def _as_tuple(item) -> tuple:
    return item if isinstance(item, tuple) else (item,)


@dataclass
class Segment:
    """
    Represents one segment of an HL7 message.

    Attributes:
        id: Segment identifier (e.g. "PID")
        fields: Mapping from 1-based field sequence number to value, kept in
            ascending order. For header segments (MSH, BHS, FHS) field 1 is
            the field separator and field 2 the encoding characters.
    """

    id: str
    fields: Dict[int, Value] = field(default_factory=dict)

    def __post_init__(self):
        if not is_valid_segment_id(self.id):
            raise MalformedSegmentError(
                str(self.id), "segment ID must be three uppercase letters or digits"
            )
        for sequence in self.fields:
            if not isinstance(sequence, int) or sequence < 1:
                raise MalformedSegmentError(
                    self.id, f"invalid field sequence number {sequence!r}"
                )
        self.fields = dict(sorted(self.fields.items()))

    @property
    def is_header(self) -> bool:
        return self.id in HEADER_SEGMENT_IDS

    def get(
        self,
        sequence: int,
        repetition: Optional[int] = None,
        component: Optional[int] = None,
        subcomponent: Optional[int] = None,
        default=None,
    ):
        """
        Safely get a value, or part of it, from the segment.

        HL7 segments often omit trailing fields and components. This method
        returns the default instead of raising when any level is missing or
        empty.

        Args:
            sequence: 1-based field number (PID-5 is 5)
            repetition: 0-based repetition index; None returns the whole field
                unless a component is requested, in which case 0 is used
            component: 1-based component number (PID-5.1 is 1)
            subcomponent: 1-based subcomponent number
            default: Value to return if the item is missing or empty

        Example:
            pid = Segment("PID", {5: ("Doe", "John")})
            pid.get(5)                  # Returns ("Doe", "John")
            pid.get(5, component=2)     # Returns "John"
            pid.get(5, component=9)     # Returns None
        """
        value = self.fields.get(sequence)
        if value is None:
            return default

        if repetition is None and component is None:
            return value if value != "" else default

        repetitions = value if isinstance(value, list) else [value]
        index = repetition or 0
        if not 0 <= index < len(repetitions):
            return default
        value = repetitions[index]

        if component is not None:
            components = _as_tuple(value)
            if not 1 <= component <= len(components):
                return default
            value = components[component - 1]

            if subcomponent is not None:
                subcomponents = _as_tuple(value)
                if not 1 <= subcomponent <= len(subcomponents):
                    return default
                value = subcomponents[subcomponent - 1]

        return value if value != "" else default

    def with_field(self, sequence: int, value: Value) -> "Segment":
        """Return a copy of the segment with one field set."""
        fields = dict(self.fields)
        fields[sequence] = value
        return Segment(self.id, fields)

    def trimmed(self) -> "Segment":
        """
        Return the segment in its optimal layout: every value trimmed and
        empty fields dropped. Header fields 1 and 2 are always kept.
        """
        fields = {}
        for sequence, value in self.fields.items():
            if self.is_header and sequence in (1, 2):
                fields[sequence] = value
                continue
            value = trim(value)
            if value != "":
                fields[sequence] = value
        return replace(self, fields=fields)

    def to_dict(self) -> dict:
        """Convert segment to dictionary, tuples become lists in JSON."""
        return {
            "id": self.id,
            "fields": {str(sequence): value for sequence, value in self.fields.items()},
        }


@dataclass
class Message:
    """
    Represents an HL7 message as an ordered list of segments.

    Order is significant: it encodes segment groups and repetitions.
    The functions in hl7_codec.message never modify a Message; they return
    a new one that shares the unchanged Segment objects.
    """

    segments: List[Segment] = field(default_factory=list)

    def __post_init__(self):
        self.segments = list(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Message(self.segments[index])
        return self.segments[index]

    @property
    def segment_ids(self) -> List[str]:
        return [segment.id for segment in self.segments]

    def trimmed(self) -> "Message":
        return Message([segment.trimmed() for segment in self.segments])

    def to_dict(self) -> dict:
        return {"segments": [segment.to_dict() for segment in self.segments]}

    def to_json(self, indent: int = 2) -> str:
        """Convert message to formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
