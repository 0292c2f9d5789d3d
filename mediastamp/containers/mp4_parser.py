"""
MP4/MOV container parser for movie header probing.

Provides:
- Box header reading (32-bit, 64-bit and to-end-of-file sizes)
- Top-level box walking over a seekable file, reading only headers
- Movie header (mvhd) parsing, versions 0 and 1

Only the moov box is entered; mdat is skipped by seeking.
"""

import logging
import os
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

logger = logging.getLogger(__name__)

# =============================================================================
# MP4 Box Utilities
# =============================================================================

# Minimum bytes needed to read a standard box header
_BOX_HEADER_SIZE = 8

# Standard header plus 64-bit largesize
_LARGE_BOX_HEADER_SIZE = 16

# Upper bound for ftyp and mvhd bodies read into memory
_MAX_SMALL_BOX_SIZE = 4 * 1024


def read_box_header(data: bytes, offset: int, available: int | None = None) -> tuple[bytes, int, int] | None:
    """
    Read a box header at the given offset.

    Args:
        data: Buffer holding at least the box header.
        offset: Start of the box within data.
        available: Bytes remaining in the enclosing container from offset,
            used when size == 0 (box extends to the end). Defaults to the
            rest of data.

    Returns:
        (box_type, header_size, total_box_size) or None if not enough data.
    """
    if offset + _BOX_HEADER_SIZE > len(data):
        return None

    size, box_type = struct.unpack_from(">I4s", data, offset)
    header_size = _BOX_HEADER_SIZE

    if size == 1:  # Extended size (64-bit)
        if offset + _LARGE_BOX_HEADER_SIZE > len(data):
            return None
        size = struct.unpack_from(">Q", data, offset + 8)[0]
        header_size = _LARGE_BOX_HEADER_SIZE
    elif size == 0:  # Box extends to end of data
        size = available if available is not None else len(data) - offset

    if size < header_size:
        raise ValueError(f"Invalid size {size} for box {box_type!r} at offset {offset}")

    return box_type, header_size, size


def iter_file_boxes(f: BinaryIO, start: int, end: int):
    """
    Iterate over box headers in [start, end) of a seekable file.

    Yields:
        (box_type, header_size, total_size, box_offset)
    """
    offset = start
    while offset + _BOX_HEADER_SIZE <= end:
        f.seek(offset)
        head = f.read(_LARGE_BOX_HEADER_SIZE)
        result = read_box_header(head, 0, available=end - offset)
        if result is None:
            break
        box_type, header_size, total_size = result
        if offset + total_size > end:
            raise ValueError(f"Box {box_type!r} at offset {offset} extends past its container")
        yield box_type, header_size, total_size, offset
        offset += total_size


# =============================================================================
# Movie Header
# =============================================================================


@dataclass
class MovieHeader:
    """Fields of the Movie Header box (mvhd). Times count seconds since 1904."""

    version: int = 0
    creation_time: int = 0
    modification_time: int = 0
    timescale: int = 0
    duration: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.timescale > 0:
            return self.duration / self.timescale
        return 0.0


@dataclass
class MP4Header:
    """Parsed header of an ISO-BMFF file."""

    major_brand: bytes = b""
    compatible_brands: list[bytes] = field(default_factory=list)
    mvhd: MovieHeader = field(default_factory=MovieHeader)


def parse_full_box_header(data: bytes) -> tuple[int, int, int]:
    """
    Parse a full box header (version + flags).

    Returns:
        (version, flags, header_size) where header_size is 4 bytes.
    """
    if len(data) < 4:
        return 0, 0, 0
    version = data[0]
    flags = (data[1] << 16) | (data[2] << 8) | data[3]
    return version, flags, 4


def parse_mvhd(data: bytes) -> MovieHeader:
    """
    Parse Movie Header box (mvhd) body.

    Layout v0: version(1) + flags(3) + creation(4) + modification(4) + timescale(4) + duration(4)
    Layout v1: version(1) + flags(3) + creation(8) + modification(8) + timescale(4) + duration(8)
    """
    version, _, pos = parse_full_box_header(data)
    if pos == 0:
        raise ValueError("mvhd box too short")

    if version == 1:
        if len(data) < 32:
            raise ValueError(f"mvhd v1 box too short: {len(data)} bytes")
        creation, modification, timescale, duration = struct.unpack_from(">QQIQ", data, pos)
    elif version == 0:
        if len(data) < 20:
            raise ValueError(f"mvhd v0 box too short: {len(data)} bytes")
        creation, modification, timescale, duration = struct.unpack_from(">IIII", data, pos)
    else:
        raise ValueError(f"Unsupported mvhd version {version}")

    return MovieHeader(
        version=version,
        creation_time=creation,
        modification_time=modification,
        timescale=timescale,
        duration=duration,
    )


def parse_ftyp(data: bytes) -> tuple[bytes, list[bytes]]:
    """Parse File Type box body into (major_brand, compatible_brands)."""
    if len(data) < 8:
        raise ValueError("ftyp box too short")
    major_brand = data[0:4]
    compatible = [data[i : i + 4] for i in range(8, len(data) - 3, 4)]
    return major_brand, compatible


# =============================================================================
# File-level reader
# =============================================================================


def read_mp4_header(f: BinaryIO, file_size: int) -> MP4Header:
    """
    Read ftyp and moov/mvhd from an open MP4/MOV file.

    Raises:
        ValueError: if no moov or mvhd box can be found, or boxes are malformed.
    """
    header = MP4Header()
    mvhd = None

    for box_type, header_size, total_size, offset in iter_file_boxes(f, 0, file_size):
        if box_type == b"ftyp":
            f.seek(offset + header_size)
            body = f.read(min(total_size - header_size, _MAX_SMALL_BOX_SIZE))
            header.major_brand, header.compatible_brands = parse_ftyp(body)
        elif box_type == b"moov":
            moov_end = offset + total_size
            for child_type, child_header, child_size, child_offset in iter_file_boxes(
                f, offset + header_size, moov_end
            ):
                if child_type == b"mvhd":
                    body_size = child_size - child_header
                    if body_size > _MAX_SMALL_BOX_SIZE:
                        raise ValueError(f"mvhd box too large: {body_size} bytes")
                    f.seek(child_offset + child_header)
                    mvhd = parse_mvhd(f.read(body_size))
                    break
            if mvhd is None:
                raise ValueError("mvhd box not found in moov")
            break

    if mvhd is None:
        raise ValueError("moov box not found")
    if not header.major_brand:
        logger.debug("[mp4_parser] No ftyp box before moov")

    header.mvhd = mvhd
    logger.debug(
        "[mp4_parser] brand=%r compatible=%r mvhd v%d creation_time=%d duration=%.3fs",
        header.major_brand,
        header.compatible_brands,
        mvhd.version,
        mvhd.creation_time,
        mvhd.duration_seconds,
    )
    return header


def open_mp4(path: str | os.PathLike) -> MP4Header:
    """Open a file and read its MP4 header."""
    with open(path, "rb") as f:
        file_size = os.fstat(f.fileno()).st_size
        return read_mp4_header(f, file_size)
