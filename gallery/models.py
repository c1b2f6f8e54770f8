"""Data model for the image manifest.

Everything here lives for the duration of one request: candidates are created
by a directory scan, stamped with a capture timestamp, ordered, and dropped
once the manifest is serialized. Nothing is persisted or cached.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum as PyEnum
from pathlib import Path
from typing import Optional


# ============================================================================
# Enums
# ============================================================================

class ChosenDirectory(str, PyEnum):
    """Which directory a manifest was built from."""
    ALTERNATE = "alternate"  # Pre-converted WebP siblings
    ORIGINAL = "original"    # The photographs as uploaded
    NONE = "none"            # Nothing to serve


class SelectionReason(str, PyEnum):
    """Why the format negotiator picked the directory it did."""
    ALTERNATE_NONEMPTY = "alternate_nonempty"  # Alternate has at least one image
    ALTERNATE_ABSENT = "alternate_absent"      # Alternate missing or empty, original exists
    ORIGINAL_EMPTY = "original_empty"          # Original directory missing too


class OrderingBasis(str, PyEnum):
    """Which kind of timestamp drove the ordering."""
    METADATA_TIMESTAMP = "metadata"      # At least one embedded capture time
    FILESYSTEM_TIMESTAMP = "filesystem"  # Modification times only
    NONE = "none"                        # Empty manifest


class FailureReason(str, PyEnum):
    """Error taxonomy.

    Per-file reasons only ever show up in logs. A manifest carries a failure
    only for request-level problems (unreadable directory, internal error).
    """
    DIRECTORY_MISSING = "directory_missing"
    DIRECTORY_UNREADABLE = "directory_unreadable"
    FILE_UNREADABLE = "file_unreadable"
    MALFORMED_METADATA_SEGMENT = "malformed_metadata_segment"
    TIMESTAMP_PARSE_FAILURE = "timestamp_parse_failure"
    INTERNAL_ERROR = "internal_error"  # Anything unexpected while building


# Public names used in the JSON payload
FORMAT_NAMES = {
    ChosenDirectory.ALTERNATE: 'webp',
    ChosenDirectory.ORIGINAL: 'original',
    ChosenDirectory.NONE: 'none',
}

DIRECTORY_NAMES = {
    ChosenDirectory.ALTERNATE: 'webp',
    ChosenDirectory.ORIGINAL: 'images',
    ChosenDirectory.NONE: 'none',
}

SORT_BY_EXIF_DATETIME = 'exif-datetime'


# ============================================================================
# Records
# ============================================================================

@dataclass(frozen=True)
class ImageCandidate:
    """An image file found by a directory scan."""
    filename: str
    source_path: Path
    extension: str


@dataclass(frozen=True)
class CaptureTimestamp:
    """Capture instant of a candidate.

    trusted is True only when the instant came from embedded metadata;
    filesystem modification times are always untrusted.
    """
    instant: datetime
    trusted: bool
    source: str = 'filesystem'


@dataclass(frozen=True)
class DirectorySelection:
    """Result of format negotiation, computed once per request."""
    chosen_directory: ChosenDirectory
    reason: SelectionReason
    path: Optional[Path] = None

    @property
    def format_name(self) -> str:
        return FORMAT_NAMES[self.chosen_directory]

    @property
    def directory_name(self) -> str:
        """Directory label for the payload ('webp', 'images' or 'none')."""
        return DIRECTORY_NAMES[self.chosen_directory]


@dataclass
class Manifest:
    """Ordered list of image filenames plus provenance."""
    ordered_filenames: list[str] = field(default_factory=list)
    directory_selection: DirectorySelection = field(
        default_factory=lambda: DirectorySelection(ChosenDirectory.NONE, SelectionReason.ORIGINAL_EMPTY)
    )
    ordering_basis: OrderingBasis = OrderingBasis.NONE
    failure: Optional[FailureReason] = None

    @property
    def degraded(self) -> bool:
        """True when the service should signal an error status to its caller."""
        return self.failure is not None and self.failure != FailureReason.DIRECTORY_MISSING

    def to_dict(self) -> dict:
        """Serialize to the JSON shape returned by /api/images."""
        payload = {
            'images': list(self.ordered_filenames),
            'format': self.directory_selection.format_name,
            'directory': self.directory_selection.directory_name,
        }
        if self.ordered_filenames:
            payload['sortBy'] = SORT_BY_EXIF_DATETIME
        payload['orderingBasis'] = self.ordering_basis.value
        if self.failure is not None:
            payload['error'] = self.failure.value
        return payload
