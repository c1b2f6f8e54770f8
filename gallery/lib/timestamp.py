"""
Capture timestamp parsing.

EXIF stores date/time as the fixed 19-character text "YYYY:MM:DD HH:MM:SS"
with no timezone. Values are interpreted in a configurable zone and converted
to UTC so they compare correctly with filesystem timestamps.
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from typing import Optional
import re

EXIF_DATETIME_REGEX = r'^\d{4}:\d{2}:\d{2}[ T]\d{2}:\d{2}:\d{2}$'
EXIF_DATETIME_LENGTH = 19


def normalize_exif_datetime(value: str) -> Optional[str]:
    """
    Turn "YYYY:MM:DD HH:MM:SS" into "YYYY-MM-DD HH:MM:SS".

    Only the two date-separator colons are replaced; the time keeps its
    colons. Trailing NULs and whitespace (common padding) are stripped.

    Returns:
        Normalized string, or None if the value does not match the pattern
    """
    if not isinstance(value, str):
        return None

    stripped = value.strip('\x00 \t\r\n')[:EXIF_DATETIME_LENGTH]
    if not re.match(EXIF_DATETIME_REGEX, stripped):
        return None

    return stripped.replace(':', '-', 2)


def parse_exif_datetime(
    value: str,
    default_tz: str = 'UTC'
) -> Optional[datetime]:
    """
    Parse an EXIF date/time string.

    Args:
        value: Raw tag value, e.g. "2023:05:10 14:22:01"
        default_tz: IANA timezone name the camera clock is assumed to use

    Returns:
        Timezone-aware datetime converted to UTC, or None if parsing fails
        (including the all-zero "0000:00:00 00:00:00" placeholder)
    """
    normalized = normalize_exif_datetime(value)
    if normalized is None:
        return None

    try:
        dt = datetime.strptime(normalized.replace('T', ' '), '%Y-%m-%d %H:%M:%S')
        return dt.replace(tzinfo=ZoneInfo(default_tz)).astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def from_epoch_seconds(seconds: float) -> datetime:
    """Convert a POSIX timestamp (e.g. st_mtime) to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
