"""Exceptions raised inside the gallery library layer.

Each one is caught at a component boundary and turned into a fallback value;
none of them reach an HTTP client.
"""
from pathlib import Path

from gallery.models import FailureReason


class GalleryError(Exception):
    """Base class for gallery library errors."""

    reason = FailureReason.INTERNAL_ERROR


class DirectoryUnreadableError(GalleryError):
    """A directory exists but cannot be listed (usually permissions)."""

    reason = FailureReason.DIRECTORY_UNREADABLE

    def __init__(self, path: Path | str, cause: Exception | None = None):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Cannot read directory {self.path}: {cause}")


class MalformedSegmentError(GalleryError):
    """An APP1 segment or its tag directory is truncated or inconsistent."""

    reason = FailureReason.MALFORMED_METADATA_SEGMENT
