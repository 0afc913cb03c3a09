"""
Message Index & Mutator

Functions to find segments by position, ID and repetition, to find groups
of consecutive segments, and to edit the segment list.

Repetition indexes are 0-based: repetition 1 of "PR1" is the second PR1
segment in the message. None of these functions modify their input; edits
return a new Message that shares the unchanged Segment objects.
"""

from typing import Iterable, List, Optional, Sequence, Union

from .exceptions import SegmentNotFoundError
from .models import Message, Segment


def _find_index(message: Message, segment_id: str, repetition: int = 0) -> Optional[int]:
    if repetition < 0:
        return None
    count = 0
    for index, segment in enumerate(message.segments):
        if segment.id == segment_id:
            if count == repetition:
                return index
            count += 1
    return None


def _as_segment_list(segments: Union[Segment, Iterable[Segment]]) -> List[Segment]:
    if isinstance(segments, Segment):
        return [segments]
    segments = list(segments)
    for segment in segments:
        if not isinstance(segment, Segment):
            raise TypeError(f"Expected Segment, got {type(segment).__name__}")
    return segments


def segment_id(segment) -> Optional[str]:
    """Return the ID of a segment, or None for anything that is not one."""
    if isinstance(segment, Segment):
        return segment.id
    return None


def at(message: Message, index: int, default=None):
    """
    Return the segment at a 0-based position.

    Out-of-bounds indexes, negative ones included, return the default.
    """
    if 0 <= index < len(message.segments):
        return message.segments[index]
    return default


def segment(message: Message, segment_id: str, repetition: int = 0) -> Optional[Segment]:
    """
    Return the nth (0-based) segment with the given ID, or None.

    Example:
        pr1 = segment(message, "PR1", 1)    # second PR1 segment
    """
    index = _find_index(message, segment_id, repetition)
    if index is None:
        return None
    return message.segments[index]


def segments(message: Message, segment_id: str) -> List[Segment]:
    """Return every segment with the given ID, in message order."""
    return [item for item in message.segments if item.id == segment_id]


def segment_count(message: Message, segment_id: str) -> int:
    """Return the number of segments with the given ID."""
    return sum(1 for item in message.segments if item.id == segment_id)


def paired_segments(
    message: Message, segment_ids: Sequence[str], repetition: int = 0
) -> List[Segment]:
    """
    Return the nth (0-based) group of consecutive segments with the given IDs.

    Some segments are immediately followed by related ones, e.g. a PR1
    procedure followed by its AUT authorization. The group starts at the
    nth segment whose ID is segment_ids[0] and takes the following segments
    while they match segment_ids[1], segment_ids[2], ... in order. It stops
    at the first segment that does not match, so the result may be shorter
    than segment_ids. An unexpected ID is a group boundary, not an error.

    Example:
        # message: PR1(1) AUT(1) PR1(2) AUT(2)
        paired_segments(message, ["PR1", "AUT"], 1)   # [PR1(2), AUT(2)]
        paired_segments(message, ["AUT", "PR1"], 1)   # [AUT(2)]
    """
    if not segment_ids:
        return []

    start = _find_index(message, segment_ids[0], repetition)
    if start is None:
        return []

    group = []
    for expected_id, item in zip(segment_ids, message.segments[start:]):
        if item.id != expected_id:
            break
        group.append(item)
    return group


def delete(message: Message, segment_id: str, repetition: int = 0) -> Message:
    """
    Remove the nth (0-based) segment with the given ID.

    Deleting a segment that is not present returns the message unchanged.
    """
    index = _find_index(message, segment_id, repetition)
    if index is None:
        return message
    return Message(message.segments[:index] + message.segments[index + 1 :])


def _shift_repetition(repetition, segments, argument: str):
    # The three-argument form, e.g. insert_before(message, "PID", segment),
    # leaves out the repetition
    if segments is None:
        if isinstance(repetition, int):
            raise TypeError(f"missing required argument: '{argument}'")
        return 0, repetition
    return repetition, segments


def insert_before(message: Message, segment_id: str, repetition=0, segments=None) -> Message:
    """
    Insert one or more segments right before the nth (0-based) segment
    with the given ID.

    The repetition may be left out, so insert_before(message, "PID", nte)
    is insert_before(message, "PID", 0, nte).

    Raises:
        SegmentNotFoundError: If the anchor segment is not present
    """
    repetition, segments = _shift_repetition(repetition, segments, "segments")
    index = _find_index(message, segment_id, repetition)
    if index is None:
        raise SegmentNotFoundError(segment_id, repetition)
    new_segments = _as_segment_list(segments)
    return Message(message.segments[:index] + new_segments + message.segments[index:])


def insert_after(message: Message, segment_id: str, repetition=0, segments=None) -> Message:
    """
    Insert one or more segments right after the nth (0-based) segment
    with the given ID. The repetition may be left out, as in insert_before().

    Raises:
        SegmentNotFoundError: If the anchor segment is not present
    """
    repetition, segments = _shift_repetition(repetition, segments, "segments")
    index = _find_index(message, segment_id, repetition)
    if index is None:
        raise SegmentNotFoundError(segment_id, repetition)
    new_segments = _as_segment_list(segments)
    return Message(
        message.segments[: index + 1] + new_segments + message.segments[index + 1 :]
    )


def replace(message: Message, segment_id: str, repetition=0, new_segment=None) -> Message:
    """
    Replace the nth (0-based) segment with the given ID, keeping its position.
    The repetition may be left out, as in insert_before().

    Like delete(), replacing a segment that is not present returns the
    message unchanged.
    """
    repetition, new_segment = _shift_repetition(repetition, new_segment, "new_segment")
    if not isinstance(new_segment, Segment):
        raise TypeError(f"Expected Segment, got {type(new_segment).__name__}")
    index = _find_index(message, segment_id, repetition)
    if index is None:
        return message
    updated = list(message.segments)
    updated[index] = new_segment
    return Message(updated)
