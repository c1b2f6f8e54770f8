"""
Ordering policy for gallery images.

Most recent first, with metadata confidence ranked above recency:

1. Trusted timestamps (embedded EXIF) sort before untrusted ones
   (filesystem modification time), whatever their values.
2. Within equal trust, newer instants come first.
3. Remaining ties break by filename ascending.

So an untrusted 2020 photo sorts after a trusted 2019 photo. The key is a
pure function of (trusted, instant, filename), which makes the order total
and independent of the input order.
"""
from typing import Callable, Iterable, Mapping, Union

from gallery.models import CaptureTimestamp, ImageCandidate

TimestampLookup = Union[Mapping[str, CaptureTimestamp], Callable[[ImageCandidate], CaptureTimestamp]]


def sort_key(filename: str, timestamp: CaptureTimestamp) -> tuple:
    """Ascending sort key implementing the descending comparator."""
    return (not timestamp.trusted, -timestamp.instant.timestamp(), filename)


def _resolver(timestamp_of: TimestampLookup) -> Callable[[ImageCandidate], CaptureTimestamp]:
    if callable(timestamp_of):
        return timestamp_of
    return lambda candidate: timestamp_of[candidate.filename]


def order(
    candidates: Iterable[ImageCandidate],
    timestamp_of: TimestampLookup
) -> list[str]:
    """
    Order candidates for display.

    Args:
        candidates: Image candidates from a single directory
        timestamp_of: Mapping of filename to CaptureTimestamp, or a
            callable taking a candidate and returning its CaptureTimestamp

    Returns:
        Filenames, most recent trusted first
    """
    lookup = _resolver(timestamp_of)
    keyed = [(sort_key(c.filename, lookup(c)), c.filename) for c in candidates]
    keyed.sort()
    return [filename for _, filename in keyed]
