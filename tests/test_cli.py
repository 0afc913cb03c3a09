"""
Unit Tests for the Command Line Interface

Run tests with: python -m pytest tests/test_cli.py -v
"""

import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from hl7_codec_cli import main


MESSAGES = (
    "MSH|^~\\&|A|B|C|D||ADT^A01|1|P|2.5\n"
    "PID|1||P1||Doe^John\n"
    "\n"
    "MSH|^~\\&|A|B|C|D||ADT^A01|2|P|2.5\n"
    "PID|1||P2||Smith^Jane\n"
)

BAD_MESSAGE = "MSH|^~\\&|A|B|C|D||ADT^A01|3|P|2.5\nbad segment\n"


class TestCommandLine(unittest.TestCase):
    """Tests for hl7_codec_cli.main."""

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.input_path = os.path.join(self.directory, "messages.hl7")
        self.output_path = os.path.join(self.directory, "out")
        with open(self.input_path, "w") as f:
            f.write(MESSAGES)

    def tearDown(self):
        shutil.rmtree(self.directory)

    def read_output(self) -> bytes:
        with open(self.output_path, "rb") as f:
            return f.read()

    def test_json_output(self):
        """Test the default JSON output."""
        exit_code = main([self.input_path, "-o", self.output_path])

        self.assertEqual(exit_code, 0)
        data = json.loads(self.read_output())
        self.assertEqual(len(data), 2)
        self.assertEqual(data[1]["segments"][1]["fields"]["5"], ["Smith", "Jane"])

    def test_wire_output(self):
        """Test re-encoding the messages in wire format."""
        exit_code = main([self.input_path, "-f", "wire", "-o", self.output_path])

        self.assertEqual(exit_code, 0)
        self.assertEqual(
            self.read_output(),
            b"MSH|^~\\&|A|B|C|D||ADT^A01|1|P|2.5\rPID|1||P1||Doe^John\r"
            b"MSH|^~\\&|A|B|C|D||ADT^A01|2|P|2.5\rPID|1||P2||Smith^Jane\r",
        )

    def test_output_with_other_separators(self):
        exit_code = main(
            [self.input_path, "-f", "text", "--separators", "#$*!%", "-o", self.output_path]
        )

        self.assertEqual(exit_code, 0)
        first_line = self.read_output().split(b"\n")[0]
        self.assertEqual(first_line, b"MSH#$*!%#A#B#C#D##ADT$A01#1#P#2.5")

    def test_streaming_json_lines(self):
        """Test that streaming mode writes one JSON document per line."""
        exit_code = main([self.input_path, "-s", "-o", self.output_path])

        self.assertEqual(exit_code, 0)
        lines = self.read_output().decode().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertEqual(json.loads(lines[0])["segments"][0]["id"], "MSH")

    def test_missing_input(self):
        exit_code = main([os.path.join(self.directory, "missing.hl7")])
        self.assertEqual(exit_code, 1)

    def test_parse_error(self):
        """Test that a malformed message fails the run."""
        with open(self.input_path, "a") as f:
            f.write("\n" + BAD_MESSAGE)

        exit_code = main([self.input_path, "-o", self.output_path])
        self.assertEqual(exit_code, 1)

    def test_continue_on_error(self):
        """Test that -e skips the malformed message."""
        with open(self.input_path, "a") as f:
            f.write("\n" + BAD_MESSAGE)

        exit_code = main([self.input_path, "-e", "-o", self.output_path])

        self.assertEqual(exit_code, 0)
        self.assertEqual(len(json.loads(self.read_output())), 2)


if __name__ == "__main__":
    unittest.main()
