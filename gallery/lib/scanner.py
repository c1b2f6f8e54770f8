"""
Directory scanning for gallery images.

Lists a directory once and keeps the entries that look like images. The
listing itself is the existence check: a directory that vanishes between
negotiation and scanning simply scans as empty.
"""
from pathlib import Path
from typing import Iterable
import logging
import os

from gallery.lib.errors import DirectoryUnreadableError
from gallery.models import ImageCandidate

logger = logging.getLogger(__name__)

# Extensions served from the original tree
IMAGE_EXTENSIONS = frozenset({'jpg', 'jpeg', 'png', 'gif', 'webp', 'bmp', 'svg'})

# The conversion job only ever writes WebP
ALTERNATE_EXTENSIONS = frozenset({'webp'})


def normalize_extension(filename: str) -> str:
    """Return the lowercase extension without its dot ('' if none)."""
    return Path(filename).suffix.lower().lstrip('.')


def is_hidden(filename: str) -> bool:
    return filename.startswith('.')


def scan(
    directory: Path | str,
    extensions: Iterable[str] = IMAGE_EXTENSIONS,
    exclude_names: Iterable[str] = ()
) -> list[ImageCandidate]:
    """
    List image files in a directory.

    Args:
        directory: Directory to list
        extensions: Accepted lowercase extensions, without dots
        exclude_names: Entry names to skip regardless of type

    Returns:
        Candidates in directory-listing order. A missing directory
        yields an empty list.

    Raises:
        DirectoryUnreadableError: The directory exists but cannot be listed
    """
    path = Path(directory).absolute()
    accepted = {ext.lower() for ext in extensions}
    excluded = set(exclude_names)

    try:
        with os.scandir(path) as entries:
            listing = list(entries)
    except (FileNotFoundError, NotADirectoryError):
        logger.debug(f"Directory not found: {path}")
        return []
    except OSError as e:
        raise DirectoryUnreadableError(path, e) from e

    candidates = []
    for entry in listing:
        name = entry.name
        if is_hidden(name) or name in excluded:
            continue

        extension = normalize_extension(name)
        if extension not in accepted:
            continue

        try:
            if not entry.is_file():
                continue
        except OSError as e:
            logger.debug(f"Skipping {name}, cannot stat entry: {e}")
            continue

        candidates.append(ImageCandidate(
            filename=name,
            source_path=path / name,
            extension=extension,
        ))

    logger.debug(f"Scanned {path}: {len(candidates)} of {len(listing)} entries are images")
    return candidates


def scan_original(original_dir: Path | str, alternate_name: str = 'webp') -> list[ImageCandidate]:
    """Scan the original tree, skipping the alternate-format subdirectory."""
    return scan(original_dir, IMAGE_EXTENSIONS, exclude_names=(alternate_name,))


def scan_alternate(alternate_dir: Path | str) -> list[ImageCandidate]:
    """Scan the alternate tree for WebP files only."""
    return scan(alternate_dir, ALTERNATE_EXTENSIONS)
