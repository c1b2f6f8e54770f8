"""
Library modules for the gallery manifest service.

Scanning, EXIF timestamp extraction, ordering and format negotiation, kept
free of Flask so they can be used from scripts and tests directly.
"""
from gallery.lib.scanner import scan, scan_original, scan_alternate, IMAGE_EXTENSIONS, ALTERNATE_EXTENSIONS
from gallery.lib.exif import extract_capture_instant, find_app1_segment, read_exif_datetime
from gallery.lib.timestamp import parse_exif_datetime
from gallery.lib.ordering import order
from gallery.lib.negotiator import negotiate, select
from gallery.lib.manifest import ManifestBuilder, build_manifest
from gallery.lib.sources import resolve_source

__all__ = [
    # Directory scanning
    'scan',
    'scan_original',
    'scan_alternate',
    'IMAGE_EXTENSIONS',
    'ALTERNATE_EXTENSIONS',
    # Metadata extraction
    'extract_capture_instant',
    'find_app1_segment',
    'read_exif_datetime',
    'parse_exif_datetime',
    # Ordering and negotiation
    'order',
    'negotiate',
    'select',
    # Manifest
    'ManifestBuilder',
    'build_manifest',
    # Source resolution
    'resolve_source',
]
