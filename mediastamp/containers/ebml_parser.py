"""
Pure Python EBML/MKV parser for creation date probing.

Only the parts of a Matroska file that carry dates are decoded:

- EBML Header: validated, DocType must be "matroska" or "webm".
- Segment Info: DateUTC plus a few descriptive strings.
- Tags: every Tag and its top-level SimpleTag entries, in stored order.

Segment children are walked by seeking over element headers, so Clusters are
never read. When the walk cannot continue (unknown-size element, truncated
file) the SeekHead is consulted to locate Info and Tags directly.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import BinaryIO

logger = logging.getLogger(__name__)

# =============================================================================
# EBML Element IDs (Matroska spec)
# =============================================================================

# Top-level
EBML_HEADER = 0x1A45DFA3
DOC_TYPE = 0x4282
SEGMENT = 0x18538067

# SeekHead
SEEK_HEAD = 0x114D9B74
SEEK = 0x4DBB
SEEK_ID = 0x53AB
SEEK_POSITION = 0x53AC

# Info
INFO = 0x1549A966
TITLE = 0x7BA9
MUXING_APP = 0x4D80
WRITING_APP = 0x5741
DATE_UTC = 0x4461

# Tags
TAGS = 0x1254C367
TAG = 0x7373
SIMPLE_TAG = 0x67C8
TAG_NAME = 0x45A3
TAG_STRING = 0x4487
TAG_BINARY = 0x4485

CLUSTER = 0x1F43B675

# Unknown/indeterminate size sentinel
UNKNOWN_SIZE = -1

SUPPORTED_DOC_TYPES = frozenset({"matroska", "webm"})

# DateUTC counts nanoseconds from this instant
MATROSKA_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

# How much of the file to read for the EBML header + Segment header
_HEADER_PROBE_SIZE = 4 * 1024

# Longest possible element header: 4-byte ID + 8-byte size
_MAX_ELEMENT_HEADER = 12

# Info and Tags are metadata; anything larger than this is not a sane file
_MAX_METADATA_SIZE = 16 * 1024 * 1024  # 16 MB


# =============================================================================
# Low-level EBML parsing
# =============================================================================


def read_vint(data: bytes, pos: int) -> tuple[int, int, int]:
    """
    Read a variable-length integer (VINT) from EBML data.

    Returns:
        (raw_value, value_without_marker, new_pos)
        raw_value includes the VINT marker bit.
        value_without_marker has the marker bit masked off (for element sizes).
    """
    if pos >= len(data):
        raise ValueError(f"EBML VINT: position {pos} beyond data length {len(data)}")

    first = data[pos]
    if first == 0:
        raise ValueError(f"EBML VINT: invalid leading byte 0x00 at pos {pos}")

    # Determine length from leading byte
    length = 1
    mask = 0x80
    while mask and not (first & mask):
        length += 1
        mask >>= 1

    if pos + length > len(data):
        raise ValueError(f"EBML VINT: need {length} bytes at pos {pos}, only {len(data) - pos} available")

    raw = 0
    for i in range(length):
        raw = (raw << 8) | data[pos + i]

    # Mask off the leading marker bit for size values
    value = raw & ~(1 << (7 * length))

    # All value bits set means unknown/indeterminate size
    all_ones = (1 << (7 * length)) - 1
    if value == all_ones:
        value = UNKNOWN_SIZE

    return raw, value, pos + length


def read_element_id(data: bytes, pos: int) -> tuple[int, int]:
    """
    Read an EBML element ID.

    Returns:
        (element_id, new_pos)
    """
    raw, _, new_pos = read_vint(data, pos)
    return raw, new_pos


def read_element_size(data: bytes, pos: int) -> tuple[int, int]:
    """
    Read an EBML element data size.

    Returns:
        (size, new_pos)  where size may be UNKNOWN_SIZE (-1)
    """
    _, value, new_pos = read_vint(data, pos)
    return value, new_pos


def read_uint(data: bytes, pos: int, length: int) -> int:
    """Read an unsigned integer of N bytes (big-endian)."""
    if pos + length > len(data):
        raise ValueError(f"EBML integer: need {length} bytes at pos {pos}, only {len(data) - pos} available")
    return int.from_bytes(data[pos : pos + length], "big")


def read_int(data: bytes, pos: int, length: int) -> int:
    """Read a signed two's complement integer of N bytes (big-endian)."""
    if length > 8:
        raise ValueError(f"EBML signed integer too long: {length} bytes")
    if pos + length > len(data):
        raise ValueError(f"EBML integer: need {length} bytes at pos {pos}, only {len(data) - pos} available")
    return int.from_bytes(data[pos : pos + length], "big", signed=True)


def read_string(data: bytes, pos: int, length: int) -> str:
    """Read a UTF-8 string of N bytes, stripping null terminators."""
    raw = data[pos : pos + length]
    return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


# =============================================================================
# Element iteration
# =============================================================================


def iter_elements(data: bytes, start: int, end: int):
    """
    Iterate over EBML elements within a range.

    Yields:
        (element_id, data_offset, data_size, element_start)
        element_start is the byte position of the element ID.
        data_offset is where the element's data begins (after ID + size).
        data_size is the declared size (may be UNKNOWN_SIZE).
    """
    pos = start
    while pos < end:
        try:
            element_start = pos
            eid, pos2 = read_element_id(data, pos)
            size, pos3 = read_element_size(data, pos2)
        except (ValueError, IndexError):
            break

        yield eid, pos3, size, element_start
        if size == UNKNOWN_SIZE:
            break
        pos = pos3 + size


# =============================================================================
# Document model
# =============================================================================


@dataclass
class SimpleTag:
    """A SimpleTag entry: TagString values are str, TagBinary values are bytes."""

    name: str = ""
    value: str | bytes | None = None


@dataclass
class Tag:
    """One Tag element with its top-level SimpleTag entries in stored order."""

    simple: list[SimpleTag] = field(default_factory=list)


@dataclass
class SegmentInfo:
    """Fields of the Segment Info element relevant to dating a file."""

    date_utc: datetime | None = None
    title: str = ""
    muxing_app: str = ""
    writing_app: str = ""


@dataclass
class MatroskaDocument:
    """Parsed date-bearing metadata of a Matroska/WebM file."""

    doc_type: str = ""
    info: SegmentInfo = field(default_factory=SegmentInfo)
    tags: list[Tag] = field(default_factory=list)


# =============================================================================
# Element body parsers
# =============================================================================


def parse_ebml_header(data: bytes) -> tuple[str, int, int]:
    """
    Validate EBML header and find the Segment element.

    Returns:
        (doc_type, segment_data_offset, segment_size)
        segment_size may be UNKNOWN_SIZE.
    """
    pos = 0

    eid, pos = read_element_id(data, pos)
    if eid != EBML_HEADER:
        raise ValueError(f"Not an EBML file: expected 0x{EBML_HEADER:X}, got 0x{eid:X}")
    size, pos = read_element_size(data, pos)
    if size == UNKNOWN_SIZE:
        raise ValueError("EBML header has unknown size")

    doc_type = "matroska"  # default per EBML spec
    for child_eid, child_off, child_size, _ in iter_elements(data, pos, pos + size):
        if child_eid == DOC_TYPE:
            doc_type = read_string(data, child_off, child_size)

    if doc_type not in SUPPORTED_DOC_TYPES:
        raise ValueError(f"Unsupported EBML DocType: {doc_type!r}")

    pos += size

    eid, pos = read_element_id(data, pos)
    if eid != SEGMENT:
        raise ValueError(f"Expected Segment element 0x{SEGMENT:X}, got 0x{eid:X}")
    segment_size, pos = read_element_size(data, pos)

    return doc_type, pos, segment_size


def parse_seek_head(data: bytes, start: int, end: int) -> dict[int, list[int]]:
    """
    Parse SeekHead children into element_id -> [positions].

    Positions are relative to the Segment data start. An element ID may be
    listed more than once (e.g. several Tags elements).
    """
    positions: dict[int, list[int]] = {}

    for seek_eid, seek_off, seek_size, _ in iter_elements(data, start, end):
        if seek_eid != SEEK:
            continue
        seek_id_value = None
        seek_position = None
        seek_end = seek_off + seek_size
        for child_eid, child_off, child_size, _ in iter_elements(data, seek_off, seek_end):
            if child_eid == SEEK_ID:
                # SeekID is stored as the raw element ID bytes
                seek_id_value = read_uint(data, child_off, child_size)
            elif child_eid == SEEK_POSITION:
                seek_position = read_uint(data, child_off, child_size)
        if seek_id_value is not None and seek_position is not None:
            positions.setdefault(seek_id_value, []).append(seek_position)

    return positions


def parse_date_utc(data: bytes, pos: int, length: int) -> datetime:
    """Decode DateUTC: signed nanoseconds since 2001-01-01T00:00:00Z."""
    nanoseconds = read_int(data, pos, length)
    return MATROSKA_EPOCH + timedelta(microseconds=nanoseconds // 1000)


def parse_info(data: bytes, start: int, end: int) -> SegmentInfo:
    """Parse the Info element children."""
    info = SegmentInfo()

    for child_eid, child_off, child_size, _ in iter_elements(data, start, end):
        if child_eid == DATE_UTC:
            try:
                info.date_utc = parse_date_utc(data, child_off, child_size)
            except OverflowError:
                logger.debug("[ebml_parser] DateUTC out of range, ignoring")
        elif child_eid == TITLE:
            info.title = read_string(data, child_off, child_size)
        elif child_eid == MUXING_APP:
            info.muxing_app = read_string(data, child_off, child_size)
        elif child_eid == WRITING_APP:
            info.writing_app = read_string(data, child_off, child_size)

    return info


def _parse_simple_tag(data: bytes, start: int, end: int) -> SimpleTag:
    simple = SimpleTag()
    for child_eid, child_off, child_size, _ in iter_elements(data, start, end):
        if child_eid == TAG_NAME:
            simple.name = read_string(data, child_off, child_size)
        elif child_eid == TAG_STRING:
            simple.value = read_string(data, child_off, child_size)
        elif child_eid == TAG_BINARY:
            simple.value = bytes(data[child_off : child_off + child_size])
    return simple


def parse_tags(data: bytes, start: int, end: int) -> list[Tag]:
    """
    Parse the Tags element children.

    Nested SimpleTags (a SimpleTag inside a SimpleTag) are not flattened:
    only the direct children of each Tag are returned.
    """
    tags = []

    for eid, data_off, size, _ in iter_elements(data, start, end):
        if eid != TAG:
            continue
        tag = Tag()
        for child_eid, child_off, child_size, _ in iter_elements(data, data_off, data_off + size):
            if child_eid == SIMPLE_TAG:
                tag.simple.append(_parse_simple_tag(data, child_off, child_off + child_size))
        tags.append(tag)

    return tags


# =============================================================================
# File-level reader
# =============================================================================


def _read_element_header(f: BinaryIO, offset: int) -> tuple[int, int, int] | None:
    """
    Read an element header at an absolute file offset.

    Returns:
        (element_id, data_offset, data_size) or None at end of file.
    """
    f.seek(offset)
    head = f.read(_MAX_ELEMENT_HEADER)
    if not head:
        return None
    eid, pos = read_element_id(head, 0)
    size, pos = read_element_size(head, pos)
    return eid, offset + pos, size


def _read_body(f: BinaryIO, offset: int, size: int, file_size: int) -> bytes:
    if size == UNKNOWN_SIZE:
        raise ValueError(f"Metadata element at {offset} has unknown size")
    if size > _MAX_METADATA_SIZE:
        raise ValueError(f"Metadata element at {offset} too large: {size} bytes")
    if offset + size > file_size:
        raise ValueError(f"Element at {offset} extends past end of file")
    f.seek(offset)
    return f.read(size)


def read_matroska(f: BinaryIO, file_size: int) -> MatroskaDocument:
    """
    Read the date-bearing metadata from an open Matroska/WebM file.

    Raises:
        ValueError: if the file is not a well-formed EBML/Matroska document.
    """
    header = f.read(_HEADER_PROBE_SIZE)
    doc_type, segment_data_offset, segment_size = parse_ebml_header(header)

    if segment_size == UNKNOWN_SIZE:
        segment_end = file_size
    else:
        segment_end = min(segment_data_offset + segment_size, file_size)

    doc = MatroskaDocument(doc_type=doc_type)
    info_seen = False
    tags_seen: set[int] = set()
    seek_positions: dict[int, list[int]] = {}
    complete = False

    pos = segment_data_offset
    while True:
        if pos >= segment_end:
            complete = True
            break
        try:
            element = _read_element_header(f, pos)
        except ValueError as e:
            logger.debug("[ebml_parser] Bad element header at %d: %s", pos, e)
            break
        if element is None:
            break
        eid, data_off, size = element

        if eid == INFO and not info_seen:
            body = _read_body(f, data_off, size, file_size)
            doc.info = parse_info(body, 0, len(body))
            info_seen = True
        elif eid == TAGS:
            body = _read_body(f, data_off, size, file_size)
            doc.tags.extend(parse_tags(body, 0, len(body)))
            tags_seen.add(pos - segment_data_offset)
        elif eid == SEEK_HEAD and not seek_positions:
            body = _read_body(f, data_off, size, file_size)
            seek_positions = parse_seek_head(body, 0, len(body))

        if size == UNKNOWN_SIZE:
            logger.debug("[ebml_parser] Unknown-size element 0x%X at %d, stopping walk", eid, pos)
            break
        pos = data_off + size

    if not complete:
        # Walk ended early; fall back to the SeekHead for anything we missed
        if not info_seen:
            for rel in seek_positions.get(INFO, [])[:1]:
                element = _read_element_header(f, segment_data_offset + rel)
                if element is not None and element[0] == INFO:
                    body = _read_body(f, element[1], element[2], file_size)
                    doc.info = parse_info(body, 0, len(body))
        for rel in seek_positions.get(TAGS, []):
            if rel in tags_seen:
                continue
            element = _read_element_header(f, segment_data_offset + rel)
            if element is not None and element[0] == TAGS:
                body = _read_body(f, element[1], element[2], file_size)
                doc.tags.extend(parse_tags(body, 0, len(body)))

    logger.debug(
        "[ebml_parser] %s: date_utc=%s, %d tag block(s), title=%r, muxing_app=%r, writing_app=%r",
        doc_type,
        doc.info.date_utc,
        len(doc.tags),
        doc.info.title,
        doc.info.muxing_app,
        doc.info.writing_app,
    )
    return doc


def open_matroska(path: str | os.PathLike) -> MatroskaDocument:
    """Open a file and read its Matroska date metadata."""
    with open(path, "rb") as f:
        file_size = os.fstat(f.fileno()).st_size
        return read_matroska(f, file_size)
