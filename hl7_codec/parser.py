"""
HL7 File and Batch Parsing

Helpers that read whole messages, batch buffers and files on top of the
incremental reader.

The flow is:
1. Read the input in chunks (files can be large)
2. Split the bytes into messages: every MSH segment starts a new one
3. Feed each message to an incremental Reader chunk by chunk
4. Drop batch envelope segments (FHS, BHS, BTS, FTS)
5. Return or yield the messages

Usage:
    from hl7_codec.parser import parse_hl7_file, parse_message

    # Parse a file with one or more messages
    messages = parse_hl7_file("admissions.hl7")

    # Parse a single message
    message = parse_message("MSH|^~\\\\&|A|B|C|D||ADT^A01|1|P|2.5\\nPID|1")
"""

import io
import json
from typing import BinaryIO, Iterator, List, Optional, Tuple

from .config import DEFAULT_ENCODING, TERMINATORS, TEXT, WIRE, ReaderOptions
from .exceptions import HL7CodecError
from .logger import get_logger
from .models import Message
from .reader import LINE_BREAKS, Complete, Incomplete, ReadError, Reader

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

MESSAGE_HEADER = b"MSH"

# Batch and file envelope segments
BATCH_SEGMENT_IDS = frozenset({"FHS", "BHS", "BTS", "FTS"})


def detect_input_format(data: bytes) -> str:
    """
    Guess the input format of a buffer.

    Wire format uses carriage returns between segments; files edited by
    hand usually only have line feeds.
    """
    return WIRE if b"\r" in data else TEXT


def _read_first_line(stream: BinaryIO, chunk_size: int) -> bytes:
    # Whole chunks, up to and including the one with the first line break
    head = b""
    while True:
        chunk = stream.read(chunk_size)
        head += chunk
        if not chunk or b"\r" in head or b"\n" in head:
            return head


def _strip_envelope(message: Message) -> Message:
    return Message([item for item in message if item.id not in BATCH_SEGMENT_IDS])


class BatchReader:
    """
    Split a stream of bytes into messages and read each one incrementally.

    Bytes are pushed with feed(); completed messages come out as soon as the
    header of the next message is seen, and close() flushes the last one.

    Usage:
        batch = BatchReader(ReaderOptions(input_format="text"))
        for chunk in chunks:
            for message in batch.feed(chunk):
                handle(message)
        for message in batch.close():
            handle(message)
    """

    def __init__(self, options: Optional[ReaderOptions] = None, continue_on_error: bool = False):
        self.options = options or ReaderOptions()
        self.continue_on_error = continue_on_error
        self.errors: List[str] = []
        self.message_count = 0
        self._pending = b""
        self._reset()

    def _reset(self) -> None:
        self._reader = Reader(self.options)
        self._started = False
        self._failed = False

    def feed(self, chunk: bytes) -> Iterator[Message]:
        """Push more bytes; yields the messages they complete."""
        data = self._pending + bytes(chunk)
        self._pending = b""

        start = self._next_message_start(data)
        while start is not None:
            message = self._finish(data[:start])
            if message is not None:
                yield message
            data = data[start:]
            self._reset()
            start = self._next_message_start(data)

        self._consume(data)

    def close(self) -> Iterator[Message]:
        """Flush the last message. The end of input ends the last segment."""
        data = self._pending
        self._pending = b""
        if not self._started and not data.strip(LINE_BREAKS):
            return

        if not data.endswith(self.options.terminator):
            data = data.rstrip(LINE_BREAKS) + self.options.terminator
        message = self._finish(data)
        if message is not None:
            yield message

    def _next_message_start(self, data: bytes) -> Optional[int]:
        # A header at offset 0 belongs to the current message unless that
        # message already has segments.
        index = data.find(MESSAGE_HEADER, 0 if self._started else 1)
        while index >= 0:
            if index == 0 or data[index - 1] in LINE_BREAKS:
                return index
            index = data.find(MESSAGE_HEADER, index + 1)
        return None

    def _consume(self, data: bytes) -> None:
        if self._failed:
            # Skip the rest of a failed message, keeping the last partial
            # line in case it is the start of the next header
            cut = max(data.rfind(b"\r"), data.rfind(b"\n")) + 1
            self._pending = data[cut:]
            return

        # Never hand the reader a buffer that ends on a segment boundary:
        # that would complete the message before the next chunk arrives.
        body = data.rstrip(LINE_BREAKS)
        if not body:
            self._pending = data
            return

        result = self._reader.read(body)
        if isinstance(result, Incomplete):
            self._reader = result.continuation
            self._started = bool(self._reader.segments)
            self._pending = result.rest + data[len(body) :]
        elif isinstance(result, ReadError):
            self._started = True
            self._fail(result.error)
            cut = max(data.rfind(b"\r"), data.rfind(b"\n")) + 1
            self._pending = data[cut:]

    def _finish(self, data: bytes) -> Optional[Message]:
        if self._failed:
            return None

        result = self._reader.read(data)
        if isinstance(result, ReadError):
            self._fail(result.error)
            return None
        if not isinstance(result, Complete):
            # The boundary is always preceded by a line break
            self._fail(HL7CodecError(f"Unterminated segment: {result.rest[:20]!r}"))
            return None

        message = _strip_envelope(result.message)
        if not len(message):
            return None

        self.message_count += 1
        logger.debug(
            "hl7.parser.message",
            message_number=self.message_count,
            segment_count=len(message),
        )
        return message

    def _fail(self, error: HL7CodecError) -> None:
        self.message_count += 1
        self._failed = True
        description = f"Message {self.message_count}: {error}"
        if not self.continue_on_error:
            raise HL7CodecError(description) from error

        logger.warning(
            "hl7.parser.message_skipped",
            message_number=self.message_count,
            error=str(error),
        )
        self.errors.append(description)


def iter_messages(
    stream: BinaryIO,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    continue_on_error: bool = False,
    errors: Optional[List[str]] = None,
    **options,
) -> Iterator[Message]:
    """
    Read messages from a binary stream, one chunk at a time.

    Args:
        stream: Binary file-like object
        chunk_size: Number of bytes read per call
        continue_on_error: If True, skip messages that fail to parse
        errors: Optional list that receives a description of every
            skipped message
        **options: Reader options; input_format is detected from the first
            line when not given

    Yields:
        Message objects in input order

    Raises:
        HL7CodecError: If a message fails and continue_on_error is False
    """
    if "input_format" in options:
        chunk = stream.read(chunk_size)
    else:
        chunk = _read_first_line(stream, chunk_size)
        options["input_format"] = detect_input_format(chunk)

    batch = BatchReader(ReaderOptions(**options), continue_on_error=continue_on_error)
    try:
        while chunk:
            yield from batch.feed(chunk)
            chunk = stream.read(chunk_size)
        yield from batch.close()
    finally:
        if errors is not None:
            errors.extend(batch.errors)


def parse_message(data, **options) -> Message:
    """
    Parse one complete message.

    The end of the data ends the last segment, so a trailing terminator is
    optional. Batch splitting is not performed: every segment in the data
    belongs to the returned message.

    Args:
        data: bytes or str
        **options: Reader options; input_format is detected when not given

    Returns:
        Message

    Raises:
        HL7CodecError: (or a subclass) if the message is malformed

    Example:
        message = parse_message("MSH|^~\\\\&|A|B|C|D||ADT^A01|1|P|2.5\\rPID|1")
        message.segment_ids   # Returns ["MSH", "PID"]
    """
    if isinstance(data, str):
        data = data.encode(options.get("encoding", DEFAULT_ENCODING))
    else:
        data = bytes(data)

    if "input_format" not in options:
        options["input_format"] = detect_input_format(data)
    terminator = TERMINATORS[options["input_format"]]

    stripped = data.strip(LINE_BREAKS)
    if stripped:
        data = stripped + terminator

    result = Reader.new(**options).read(data)
    if isinstance(result, ReadError):
        raise result.error
    return result.message


def parse_batch(data, **options) -> List[Message]:
    """Parse a buffer holding any number of messages."""
    if isinstance(data, str):
        data = data.encode(options.get("encoding", DEFAULT_ENCODING))
    return list(iter_messages(io.BytesIO(data), **options))


def parse_hl7_file(file_path: str, **options) -> List[Message]:
    """
    Parse an HL7 file containing one or more messages.

    Raises:
        FileNotFoundError: If file doesn't exist
        HL7CodecError: On the first message that fails to parse
    """
    with open(file_path, "rb") as f:
        messages = list(iter_messages(f, **options))

    logger.info("hl7.parser.file_parsed", path=str(file_path), message_count=len(messages))
    return messages


def parse_hl7_file_with_errors(file_path: str, **options) -> Tuple[List[Message], List[str]]:
    """
    Parse an HL7 file and return both successes and errors.

    Unlike parse_hl7_file, this function doesn't raise an error if some
    messages fail to parse.

    Returns:
        Tuple of (messages, errors)

    Example:
        messages, errors = parse_hl7_file_with_errors("data.hl7")
        print(f"Parsed {len(messages)} messages")
    """
    errors: List[str] = []
    with open(file_path, "rb") as f:
        messages = list(iter_messages(f, continue_on_error=True, errors=errors, **options))

    logger.info(
        "hl7.parser.file_parsed",
        path=str(file_path),
        message_count=len(messages),
        error_count=len(errors),
    )
    return messages, errors


def parse_hl7_file_streaming(
    file_path: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    continue_on_error: bool = False,
    **options,
) -> Iterator[Message]:
    """
    Parse an HL7 file using streaming (memory-efficient for large files).

    The file is read in chunks and every message is yielded as soon as the
    next one starts.

    Example:
        for message in parse_hl7_file_streaming("large_file.hl7"):
            print(message.to_json())
    """
    with open(file_path, "rb") as f:
        yield from iter_messages(
            f, chunk_size=chunk_size, continue_on_error=continue_on_error, **options
        )


def messages_to_json(messages: List[Message], indent: Optional[int] = 2) -> str:
    """Convert a list of messages to a JSON string."""
    return json.dumps([message.to_dict() for message in messages], indent=indent)
