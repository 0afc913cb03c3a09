"""
HL7 Writer

Serializes a Message back to bytes. Header fields 1 and 2 are always
regenerated from the separators the writer uses, so a message read with
one separator set can be written with another.
"""

from typing import Iterator, Optional

from .codec import Separators, encode_value, trim
from .config import WriterOptions
from .models import Message, Segment


def encode_segment(
    segment: Segment, separators: Separators, trim_values: bool = True
) -> str:
    """
    Join one segment into its text form (without terminator).

    Missing field numbers are written as empty fields. With trim_values,
    values are reduced to their optimal layout and trailing empty fields
    are dropped.

    Example:
        encode_segment(Segment("PID", {1: "1", 5: ("Doe", "John")}), Separators())
        # Returns "PID|1||||Doe^John"
    """
    parts = [segment.id]
    if segment.is_header:
        parts.append(separators.encoding_characters)
        first_sequence = 3
    else:
        first_sequence = 1

    last_sequence = max(segment.fields, default=0)
    values = []
    for sequence in range(first_sequence, last_sequence + 1):
        value = segment.fields.get(sequence, "")
        if trim_values:
            value = trim(value)
        values.append(encode_value(value, separators))

    if trim_values:
        while values and values[-1] == "":
            values.pop()

    return separators.field.join(parts + values)


class Writer:
    """
    HL7 message writer.

    Usage:
        writer = Writer(WriterOptions(output_format="text"))
        data = writer.write(message)
    """

    def __init__(self, options: Optional[WriterOptions] = None):
        self.options = options or WriterOptions()

    @classmethod
    def new(cls, **options) -> "Writer":
        """Create a writer from keyword options (see WriterOptions)."""
        return cls(WriterOptions(**options))

    def iter_write(self, message: Message) -> Iterator[bytes]:
        """Yield one terminated segment at a time."""
        terminator = self.options.terminator
        for segment in message:
            text = encode_segment(segment, self.options.separators, self.options.trim)
            yield text.encode(self.options.encoding) + terminator

    def write(self, message: Message) -> bytes:
        """Serialize the whole message. An empty message gives b""."""
        return b"".join(self.iter_write(message))


def write(message: Message, **options) -> bytes:
    """
    Write a message with the given options.

    Args:
        message: Message to serialize
        **options: output_format ("wire" or "text"), separators, trim,
            escape_char, encoding

    Returns:
        The serialized message
    """
    return Writer.new(**options).write(message)


def iter_write(message: Message, **options) -> Iterator[bytes]:
    """Like write(), but yields the output one segment at a time."""
    return Writer.new(**options).iter_write(message)
