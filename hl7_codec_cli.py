#!/usr/bin/env python3
"""
HL7 v2 Codec - Command Line Interface

This script parses HL7 files and writes the messages back out as JSON or
as re-encoded HL7 (wire or text format).

Usage:
    python hl7_codec_cli.py input.hl7
    python hl7_codec_cli.py input.hl7 -o output.json
    python hl7_codec_cli.py input.hl7 -f text
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path for imports when running as script
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))

from hl7_codec import (
    HL7CodecError,
    messages_to_json,
    parse_hl7_file,
    parse_hl7_file_streaming,
    parse_hl7_file_with_errors,
    write,
)
from hl7_codec.logger import configure_logging, get_logger

logger = get_logger(__name__)

OUTPUT_FORMATS = ("json", "wire", "text")


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser object
    """
    parser = argparse.ArgumentParser(
        description="Parse HL7 v2 messages and convert them to JSON or HL7",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s messages.hl7
      Parse file and print JSON to stdout

  %(prog)s messages.hl7 -f text -o messages.txt
      Re-encode the messages with one segment per line

  %(prog)s messages.hl7 -e
      Continue parsing even if some messages fail

  %(prog)s messages.hl7 -s
      Memory-efficient streaming for large files (JSON Lines format)
        """,
    )

    parser.add_argument("input_file", type=str, help="Path to the HL7 file to parse")

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        dest="output_file",
        help="Path to save the output (default: print to stdout)",
    )

    parser.add_argument(
        "-f",
        "--format",
        choices=OUTPUT_FORMATS,
        default="json",
        dest="output_format",
        help="Output format (default: json)",
    )

    parser.add_argument(
        "-c",
        "--compact",
        action="store_true",
        help="Output compact JSON without indentation",
    )

    parser.add_argument(
        "--no-trim",
        action="store_false",
        dest="trim",
        help="Keep trailing empty items instead of reducing values to their optimal layout",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject segments with unknown IDs",
    )

    parser.add_argument(
        "--separators",
        type=str,
        help="Separators for HL7 output, e.g. '|^~\\&' (default: standard set)",
    )

    parser.add_argument(
        "-e",
        "--continue-on-error",
        action="store_true",
        dest="continue_on_error",
        help="Continue parsing remaining messages if one fails",
    )

    parser.add_argument(
        "-s",
        "--streaming",
        action="store_true",
        help="Use streaming mode for memory-efficient parsing of large files",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log parsing details to stderr",
    )

    return parser


def render_message(message, args) -> bytes:
    """Render one message in the requested output format."""
    if args.output_format == "json":
        indent = None if args.compact else 2
        return (json.dumps(message.to_dict(), indent=indent) + "\n").encode("utf-8")

    return write(
        message,
        output_format=args.output_format,
        trim=args.trim,
        separators=args.separators,
    )


def render_all(messages, args) -> bytes:
    """Render a list of messages in the requested output format."""
    if args.output_format == "json":
        indent = None if args.compact else 2
        return (messages_to_json(messages, indent=indent) + "\n").encode("utf-8")

    rendered = [render_message(message, args) for message in messages]
    if args.output_format == "text":
        # Blank line between messages keeps text files readable
        return b"\n".join(rendered)
    return b"".join(rendered)


def main(argv=None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    configure_logging(log_level="DEBUG" if args.verbose else "WARNING")

    input_path = Path(args.input_file)
    if not input_path.is_file():
        logger.error("cli.input_missing", path=args.input_file)
        return 1

    read_options = {"trim": args.trim, "strict": args.strict}
    output = None

    try:
        output = open(args.output_file, "wb") if args.output_file else sys.stdout.buffer

        if args.streaming:
            count = 0
            for message in parse_hl7_file_streaming(
                str(input_path),
                continue_on_error=args.continue_on_error,
                **read_options,
            ):
                if args.output_format == "json":
                    # JSON Lines: one compact document per message
                    output.write((json.dumps(message.to_dict()) + "\n").encode("utf-8"))
                else:
                    output.write(render_message(message, args))
                count += 1
            logger.info("cli.streamed", message_count=count)

        else:
            if args.continue_on_error:
                messages, errors = parse_hl7_file_with_errors(str(input_path), **read_options)
                for error in errors:
                    logger.error("cli.message_failed", error=error)
                if not messages:
                    logger.error("cli.no_messages", path=str(input_path))
                    return 1
            else:
                messages = parse_hl7_file(str(input_path), **read_options)

            output.write(render_all(messages, args))
            logger.info("cli.written", message_count=len(messages))

    except HL7CodecError as e:
        logger.error("cli.parse_failed", error=str(e))
        return 1

    except OSError as e:
        logger.error("cli.io_failed", error=str(e))
        return 1

    finally:
        if output is not None and args.output_file:
            output.close()
        elif output is not None:
            output.flush()

    return 0


if __name__ == "__main__":
    sys.exit(main())
