"""
Format negotiation between the WebP directory and the originals.

One directory is picked per request and every filename in the manifest comes
from it; the two trees are never mixed. The conversion job may be writing
into the alternate directory while we look at it. That is accepted: each
directory is listed once, so the worst case is a manifest one generation
stale, never a partial mix.
"""
from pathlib import Path
import logging

from gallery.lib.errors import DirectoryUnreadableError
from gallery.lib.scanner import scan_alternate, scan_original
from gallery.models import (
    ChosenDirectory,
    DirectorySelection,
    ImageCandidate,
    SelectionReason,
)

logger = logging.getLogger(__name__)


def negotiate(
    alternate_dir: Path | str,
    original_dir: Path | str,
    alternate_name: str | None = None
) -> tuple[DirectorySelection, list[ImageCandidate]]:
    """
    Choose the authoritative directory and return its candidates.

    The candidates come from the same listing the decision was made on,
    so the chosen directory is read exactly once.

    Args:
        alternate_dir: Directory of pre-converted WebP files
        original_dir: Directory of original images
        alternate_name: Entry name to exclude from the original scan
            (defaults to the alternate directory's own name)

    Returns:
        Tuple of (selection, candidates of the chosen directory)

    Raises:
        DirectoryUnreadableError: The original directory exists but
            cannot be listed
    """
    alternate_dir = Path(alternate_dir)
    original_dir = Path(original_dir)
    if alternate_name is None:
        alternate_name = alternate_dir.name

    try:
        alternate = scan_alternate(alternate_dir)
    except DirectoryUnreadableError as e:
        # Originals are still servable; only the originals tree is request-fatal
        logger.warning(f"Ignoring unreadable alternate directory: {e}")
        alternate = []

    if alternate:
        selection = DirectorySelection(
            chosen_directory=ChosenDirectory.ALTERNATE,
            reason=SelectionReason.ALTERNATE_NONEMPTY,
            path=alternate_dir,
        )
        return selection, alternate

    # If the directory disappears after this check the scan comes back empty
    if not original_dir.is_dir():
        return DirectorySelection(ChosenDirectory.NONE, SelectionReason.ORIGINAL_EMPTY), []

    originals = scan_original(original_dir, alternate_name)
    selection = DirectorySelection(
        chosen_directory=ChosenDirectory.ORIGINAL,
        reason=SelectionReason.ALTERNATE_ABSENT,
        path=original_dir,
    )
    return selection, originals


def select(alternate_dir: Path | str, original_dir: Path | str) -> DirectorySelection:
    """Choose the authoritative directory for a request."""
    selection, _ = negotiate(alternate_dir, original_dir)
    return selection
