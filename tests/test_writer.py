"""
Unit Tests for the HL7 Writer

Tests cover:
- Writing wire and text format
- Regenerating the header with the writer's separators
- Escaping, trimming and gaps between fields
- Reading back what was written

Run tests with: python -m pytest tests/test_writer.py -v
"""

import unittest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from hl7_codec.codec import DEFAULT_SEPARATORS, compile_separators
from hl7_codec.exceptions import InvalidSeparatorsError
from hl7_codec.models import Message, Segment
from hl7_codec.reader import read
from hl7_codec.writer import Writer, encode_segment, iter_write, write


SIMPLE_MESSAGE = b"MSH|^~\\&|A|B|C|D||MSG^T|1|P|2.4\rPID|1\r"


def strip_declaration(message: Message) -> Message:
    """Drop header fields 1 and 2, which always follow the writer's separators."""
    return Message(
        [
            Segment(
                item.id,
                {
                    sequence: value
                    for sequence, value in item.fields.items()
                    if not (item.is_header and sequence in (1, 2))
                },
            )
            for item in message
        ]
    )


def build_message() -> Message:
    return Message(
        [
            Segment("MSH", {3: "APP", 9: ("ADT", "A01"), 10: "42", 12: "2.5"}),
            Segment("PID", {1: "1", 3: ["P1", ("P2", "", "", ("", "HOSP"))], 5: ("Doe", "John")}),
            Segment("NTE", {3: "Take 1|2 tablets ^ with water & food ~ daily \\ AM"}),
        ]
    )


class TestWriteMessage(unittest.TestCase):
    """Tests for writing whole messages."""

    def test_write_read_message_back(self):
        """Test that a parsed message is written back byte for byte."""
        message = read(SIMPLE_MESSAGE).message
        self.assertEqual(write(message, trim=True), SIMPLE_MESSAGE)

    def test_write_text_format(self):
        """Test that text format uses line feeds."""
        message = read(SIMPLE_MESSAGE).message
        self.assertEqual(
            write(message, output_format="text"),
            b"MSH|^~\\&|A|B|C|D||MSG^T|1|P|2.4\nPID|1\n",
        )

    def test_write_empty_message(self):
        """Test that an empty message gives empty output."""
        self.assertEqual(write(Message([])), b"")

    def test_write_built_message(self):
        """Test writing a message built in code."""
        output = write(build_message())

        self.assertEqual(
            output,
            b"MSH|^~\\&|APP||||||ADT^A01|42||2.5\r"
            b"PID|1||P1~P2^^^&HOSP||Doe^John\r"
            b"NTE|||Take 1\\F\\2 tablets \\S\\ with water \\T\\ food \\R\\ daily \\E\\ AM\r",
        )

    def test_write_with_alternate_separators(self):
        """Test that the header declares the separators used to write."""
        message = read(b"MSH|^~\\&|A\rPID|1||X^Y~Z\r").message
        output = write(message, separators="#$*!%")

        self.assertEqual(output, b"MSH#$*!%#A\rPID#1##X$Y*Z\r")

    def test_alternate_separators_read_back(self):
        """Test that output with other separators reads back to the same message."""
        message = build_message()
        output = write(message, separators="#$*!%")

        self.assertEqual(
            strip_declaration(read(output).message),
            strip_declaration(message.trimmed()),
        )

    def test_invalid_separators(self):
        """Test that writing with invalid separators fails."""
        with self.assertRaises(InvalidSeparatorsError):
            write(build_message(), separators="||||")

    def test_invalid_output_format(self):
        """Test that unknown output formats are rejected."""
        with self.assertRaises(ValueError):
            write(build_message(), output_format="xml")

    def test_iter_write_yields_segments(self):
        """Test the chunked variant of write."""
        chunks = list(iter_write(read(SIMPLE_MESSAGE).message))

        self.assertEqual(chunks, [b"MSH|^~\\&|A|B|C|D||MSG^T|1|P|2.4\r", b"PID|1\r"])

    def test_writer_class(self):
        """Test reusing a Writer for several messages."""
        writer = Writer.new(output_format="text")
        message = read(SIMPLE_MESSAGE).message
        self.assertEqual(writer.write(message), writer.write(message))


class TestTrimOnWrite(unittest.TestCase):
    """Tests for trimming while writing."""

    def test_trim_removes_trailing_items(self):
        """Test that trailing empty items and fields are not written."""
        segment = Segment("PID", {1: "1", 3: ("A", "", ""), 4: ["B", ""], 5: "", 6: ("", "")})
        self.assertEqual(encode_segment(segment, DEFAULT_SEPARATORS), "PID|1||A|B")

    def test_no_trim_keeps_trailing_items(self):
        """Test that trim=False writes every item."""
        segment = Segment("PID", {1: "1", 3: ("A", "", ""), 4: ["B", ""], 5: ""})
        self.assertEqual(
            encode_segment(segment, DEFAULT_SEPARATORS, trim_values=False),
            "PID|1||A^^|B~|",
        )

    def test_no_trim_round_trip(self):
        """Test that untrimmed reading and writing keeps every separator."""
        data = b"MSH|^~\\&|A||\rPID|1||Doe^John^^|||\r"
        message = read(data, trim=False).message
        self.assertEqual(write(message, trim=False), data)

    def test_header_without_declared_fields(self):
        """Test that header fields 1 and 2 come from the writer."""
        segment = Segment("MSH", {1: "#", 2: "bogus", 3: "A"})
        self.assertEqual(encode_segment(segment, DEFAULT_SEPARATORS), "MSH|^~\\&|A")

    def test_non_string_leaves(self):
        """Test that numbers are written as text and None as empty."""
        segment = Segment("OBX", {1: 1, 5: (7.5, None, "mg")})
        self.assertEqual(encode_segment(segment, DEFAULT_SEPARATORS), "OBX|1||||7.5^^mg")


class TestRoundTrip(unittest.TestCase):
    """Tests for reading back written messages."""

    def test_round_trip_with_every_separator_set(self):
        """Test that read(write(m)) equals the trimmed message."""
        message = build_message()
        for spec in ("|^~\\&", "#$*!%", "|^~!&", "@:;?="):
            with self.subTest(separators=spec):
                separators = compile_separators(spec)
                output = write(message, separators=separators)
                self.assertEqual(
                    strip_declaration(read(output).message),
                    strip_declaration(message.trimmed()),
                )

    def test_round_trip_text_format(self):
        """Test the round trip through text format."""
        message = build_message()
        output = write(message, output_format="text")
        self.assertEqual(
            strip_declaration(read(output, input_format="text").message),
            strip_declaration(message.trimmed()),
        )


if __name__ == "__main__":
    unittest.main()
