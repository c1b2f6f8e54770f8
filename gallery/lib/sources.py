"""
Optimized source resolution for a single image.

Given an original filename, point the client at the WebP sibling written by
the conversion job when the client accepts WebP and the sibling exists,
otherwise at the original. Also reports file size and, when Pillow can
decode the chosen file, its pixel dimensions.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

from PIL import Image

from gallery.lib.capabilities import WEBP_DECODE
from gallery.lib.scanner import IMAGE_EXTENSIONS, is_hidden, normalize_extension

logger = logging.getLogger(__name__)

# Extensions the conversion job turns into WebP
CONVERTIBLE_EXTENSIONS = frozenset({'jpg', 'jpeg', 'png', 'gif', 'bmp'})


@dataclass(frozen=True)
class ResolvedSource:
    """Where to fetch an image from, plus what we know about the file."""
    src: str
    path: Path
    format: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> dict:
        payload = {'src': self.src, 'format': self.format, 'size': self.size}
        if self.width is not None and self.height is not None:
            payload['width'] = self.width
            payload['height'] = self.height
        return payload


def is_safe_filename(filename: str) -> bool:
    """Reject hidden names and anything that could escape the directory."""
    if not filename or is_hidden(filename):
        return False
    return Path(filename).name == filename and '\\' not in filename


def webp_sibling(original_dir: Path, filename: str, alternate_name: str = 'webp') -> Path:
    """Path the conversion job writes the WebP version of filename to."""
    return original_dir / alternate_name / f"{Path(filename).stem}.webp"


def get_image_dimensions(path: Path) -> tuple[Optional[int], Optional[int]]:
    """Pixel size via Pillow, or (None, None) if it cannot be decoded."""
    if normalize_extension(path.name) == 'webp' and not WEBP_DECODE.get():
        return None, None
    try:
        with Image.open(path) as img:
            return img.size
    except Exception as e:
        logger.debug(f"Could not read dimensions of {path.name}: {e}")
        return None, None


def resolve_source(
    original_dir: Path | str,
    filename: str,
    accepts_webp: bool,
    alternate_name: str = 'webp',
    url_prefix: str = '/images'
) -> Optional[ResolvedSource]:
    """
    Resolve the best file to serve for an original image.

    Args:
        original_dir: Directory holding the originals
        filename: Original filename as listed in the manifest
        accepts_webp: Whether the client advertised WebP support
        alternate_name: Name of the WebP subdirectory
        url_prefix: Public URL prefix of original_dir

    Returns:
        ResolvedSource, or None if filename is unsafe or does not exist
    """
    original_dir = Path(original_dir)
    if not is_safe_filename(filename):
        return None

    extension = normalize_extension(filename)
    if extension not in IMAGE_EXTENSIONS:
        return None

    original = original_dir / filename
    path, src, fmt = original, f"{url_prefix}/{filename}", extension

    if accepts_webp and extension in CONVERTIBLE_EXTENSIONS:
        sibling = webp_sibling(original_dir, filename, alternate_name)
        if sibling.is_file():
            path, src, fmt = sibling, f"{url_prefix}/{alternate_name}/{sibling.name}", 'webp'
        else:
            logger.debug(f"No WebP sibling for {filename}, serving original")

    try:
        size = path.stat().st_size
    except OSError:
        return None
    if not path.is_file():
        return None

    width, height = get_image_dimensions(path)
    return ResolvedSource(src=src, path=path, format=fmt, size=size, width=width, height=height)
