"""
Capture timestamp extraction from embedded EXIF metadata.

Reads the APP1 segment of a JPEG directly instead of going through a metadata
library: find the 0xFF 0xE1 marker, check the "Exif\\0\\0" header, then walk
the TIFF tag directories (IFD0 and the Exif sub-IFD) for a date/time tag.

Every offset handled here is an absolute offset into the file buffer, and
every read is bounds-checked against the end of the segment. Anything that
does not add up raises MalformedSegmentError internally, which
extract_capture_instant() turns into the filesystem-timestamp fallback.
"""
from pathlib import Path
from typing import Optional
import logging
import os
import struct

from gallery.lib.errors import MalformedSegmentError
from gallery.lib.timestamp import parse_exif_datetime, from_epoch_seconds
from gallery.models import CaptureTimestamp, FailureReason

logger = logging.getLogger(__name__)

APP1_MARKER = b'\xff\xe1'
EXIF_HEADER = b'Exif\x00\x00'
TIFF_MAGIC = 42

# Byte-order marks at the start of the TIFF structure
BYTE_ORDERS = {
    b'II': '<',  # Intel, little-endian
    b'MM': '>',  # Motorola, big-endian
}

TAG_EXIF_IFD_POINTER = 0x8769
TYPE_ASCII = 2
IFD_ENTRY_SIZE = 12

# Tags to check for the capture time, in priority order
DATETIME_TAGS = [
    (0x9003, 'DateTimeOriginal'),   # Best: original capture time
    (0x0132, 'DateTime'),           # Generic image date/time (IFD0)
    (0x9004, 'DateTimeDigitized'),  # When digitized
]

FILESYSTEM_SOURCE = 'filesystem'


def find_app1_segment(buffer: bytes) -> Optional[tuple[int, int]]:
    """
    Locate the first APP1 segment payload.

    The two bytes after the marker are the big-endian segment length,
    which counts those two bytes as well.

    Args:
        buffer: Raw file bytes (or the leading part of them)

    Returns:
        (start, end) absolute offsets of the payload, or None if the
        buffer contains no APP1 marker

    Raises:
        MalformedSegmentError: Length field is truncated, too small, or
            declares more bytes than the buffer holds
    """
    index = buffer.find(APP1_MARKER)
    if index < 0:
        return None

    length_offset = index + len(APP1_MARKER)
    if length_offset + 2 > len(buffer):
        raise MalformedSegmentError(f"APP1 length truncated at offset {length_offset}")

    (length,) = struct.unpack_from('>H', buffer, length_offset)
    if length < 2:
        raise MalformedSegmentError(f"APP1 length {length} is below the minimum of 2")

    start = length_offset + 2
    end = length_offset + length
    if end > len(buffer):
        raise MalformedSegmentError(
            f"APP1 declares {length - 2} payload bytes, only {len(buffer) - start} available"
        )

    return start, end


def has_exif_header(buffer: bytes, segment: tuple[int, int]) -> bool:
    start, end = segment
    return end - start >= len(EXIF_HEADER) and buffer[start:start + len(EXIF_HEADER)] == EXIF_HEADER


class TiffReader:
    """Bounds-checked reader for the TIFF structure inside an APP1 payload.

    TIFF offsets are relative to the byte-order mark; the reader converts
    them to absolute buffer offsets and refuses any read that would leave
    the segment.
    """

    def __init__(self, buffer: bytes, tiff_start: int, end: int):
        self.buffer = buffer
        self.base = tiff_start
        self.end = end

        if tiff_start + 8 > end:
            raise MalformedSegmentError("TIFF header truncated")

        order = buffer[tiff_start:tiff_start + 2]
        if order not in BYTE_ORDERS:
            raise MalformedSegmentError(f"Unknown TIFF byte order {order!r}")
        self.endian = BYTE_ORDERS[order]

        (magic,) = self.unpack('H', tiff_start + 2)
        if magic != TIFF_MAGIC:
            raise MalformedSegmentError(f"Bad TIFF magic {magic}")

    def unpack(self, fmt: str, offset: int) -> tuple:
        """Unpack fmt (without byte-order prefix) at an absolute offset."""
        fmt = self.endian + fmt
        size = struct.calcsize(fmt)
        if offset < self.base or offset + size > self.end:
            raise MalformedSegmentError(f"Read of {size} bytes at {offset} leaves segment")
        return struct.unpack_from(fmt, self.buffer, offset)

    def absolute(self, relative: int) -> int:
        return self.base + relative

    def first_ifd_offset(self) -> int:
        (relative,) = self.unpack('I', self.base + 4)
        return self.absolute(relative)

    def read_ifd(self, offset: int) -> dict[int, tuple[int, int, int]]:
        """
        Read one image file directory.

        Returns:
            Mapping of tag ID to (type, count, absolute offset of the
            4-byte value field)
        """
        (count,) = self.unpack('H', offset)
        if offset + 2 + count * IFD_ENTRY_SIZE > self.end:
            raise MalformedSegmentError(f"IFD at {offset} declares {count} entries past segment end")

        entries = {}
        for i in range(count):
            entry = offset + 2 + i * IFD_ENTRY_SIZE
            tag, tag_type, value_count = self.unpack('HHI', entry)
            entries.setdefault(tag, (tag_type, value_count, entry + 8))
        return entries

    def read_ascii(self, value_count: int, value_field: int) -> str:
        """Read an ASCII value, inline when it fits in four bytes."""
        if value_count <= 4:
            offset = value_field
        else:
            (relative,) = self.unpack('I', value_field)
            offset = self.absolute(relative)

        if offset < self.base or offset + value_count > self.end:
            raise MalformedSegmentError(f"ASCII value of {value_count} bytes at {offset} leaves segment")

        raw = self.buffer[offset:offset + value_count]
        return raw.split(b'\x00', 1)[0].decode('latin-1')

    def read_long(self, value_field: int) -> int:
        (value,) = self.unpack('I', value_field)
        return value


def read_exif_datetime(buffer: bytes, segment: tuple[int, int]) -> tuple[Optional[str], Optional[str]]:
    """
    Find the capture date/time string inside an APP1 payload.

    Args:
        buffer: The buffer find_app1_segment() was called on
        segment: (start, end) returned by find_app1_segment()

    Returns:
        (value, tag_name) for the highest-priority tag with a non-blank
        ASCII value, or (None, None) when the payload is not EXIF or holds
        no date/time tag

    Raises:
        MalformedSegmentError: The tag directory cannot be decoded
    """
    if not has_exif_header(buffer, segment):
        return None, None

    start, end = segment
    reader = TiffReader(buffer, start + len(EXIF_HEADER), end)

    tags = reader.read_ifd(reader.first_ifd_offset())

    pointer = tags.get(TAG_EXIF_IFD_POINTER)
    if pointer is not None:
        exif_ifd = reader.absolute(reader.read_long(pointer[2]))
        # Sub-IFD entries take precedence over stray copies in IFD0
        tags = {**tags, **reader.read_ifd(exif_ifd)}

    for tag_id, tag_name in DATETIME_TAGS:
        entry = tags.get(tag_id)
        if entry is None:
            continue
        tag_type, value_count, value_field = entry
        if tag_type != TYPE_ASCII:
            logger.debug(f"Ignoring {tag_name} with non-ASCII type {tag_type}")
            continue
        value = reader.read_ascii(value_count, value_field).strip()
        if value:
            return value, tag_name

    return None, None


def read_header(file_path: Path, max_bytes: Optional[int] = None) -> bytes:
    """Read the whole file, or only its first max_bytes bytes."""
    with open(file_path, 'rb') as f:
        return f.read(max_bytes) if max_bytes else f.read()


def filesystem_timestamp(file_path: Path | str) -> CaptureTimestamp:
    """
    Untrusted timestamp from the file's modification time.

    Falls back to the Unix epoch if the file cannot even be stat'ed, or if
    its mtime is outside the range datetime can represent, so every
    candidate still ends up with a timestamp.
    """
    try:
        instant = from_epoch_seconds(os.stat(file_path).st_mtime)
    except (OSError, OverflowError, ValueError) as e:
        logger.debug(f"No usable mtime for {file_path}, using epoch: {e}")
        instant = from_epoch_seconds(0)
    return CaptureTimestamp(instant=instant, trusted=False, source=FILESYSTEM_SOURCE)


def _fallback(path: Path, reason: Optional[FailureReason], detail) -> CaptureTimestamp:
    label = reason.value if reason else 'no metadata'
    logger.debug(f"{path.name}: {label} ({detail}), using filesystem timestamp")
    return filesystem_timestamp(path)


def extract_capture_instant(
    file_path: Path | str,
    default_tz: str = 'UTC',
    max_bytes: Optional[int] = None
) -> CaptureTimestamp:
    """
    Get the capture instant of an image.

    Embedded EXIF date/time is preferred (trusted). Files without an
    APP1 segment (PNG, GIF, SVG, WebP), segments that are not EXIF,
    malformed segments and unparseable values all fall back to the
    filesystem modification time (untrusted).

    This function does not raise for unreadable or malformed files.

    Args:
        file_path: Path to the image
        default_tz: IANA timezone name for EXIF values (they carry no zone)
        max_bytes: Read only this many leading bytes; None reads the whole file

    Returns:
        CaptureTimestamp with the instant in UTC
    """
    path = Path(file_path)

    try:
        buffer = read_header(path, max_bytes)
    except OSError as e:
        return _fallback(path, FailureReason.FILE_UNREADABLE, e)

    try:
        segment = find_app1_segment(buffer)
        if segment is None:
            return _fallback(path, None, 'no APP1 segment')
        value, tag_name = read_exif_datetime(buffer, segment)
    except MalformedSegmentError as e:
        return _fallback(path, e.reason, e)

    if value is None:
        return _fallback(path, None, 'no EXIF date/time tag')

    instant = parse_exif_datetime(value, default_tz)
    if instant is None:
        return _fallback(path, FailureReason.TIMESTAMP_PARSE_FAILURE, repr(value))

    return CaptureTimestamp(instant=instant, trusted=True, source=tag_name)
