"""Shared fixtures for the gallery test suite."""
import os
import struct
from datetime import datetime, timezone
from pathlib import Path

import pytest
from PIL import Image, features


TAG_DATETIME = 0x0132
TAG_EXIF_IFD = 0x8769
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004


def _ifd_bytes(tags, endian, data_offset, data):
    """Serialize one IFD; long ASCII values are appended to data."""
    out = struct.pack(endian + 'H', len(tags))
    for tag, value in tags:
        if isinstance(value, int):
            out += struct.pack(endian + 'HHII', tag, 4, 1, value)
        else:
            out += struct.pack(endian + 'HHI', tag, 2, len(value))
            if len(value) <= 4:
                out += value.ljust(4, b'\x00')
            else:
                out += struct.pack(endian + 'I', data_offset + len(data))
                data += value
    return out + struct.pack(endian + 'I', 0), data


def build_exif_payload(datetime_original=None, datetime_=None, digitized=None, byte_order='II'):
    """Build an APP1 payload ("Exif\\0\\0" + TIFF) with the given date tags."""
    endian = '<' if byte_order == 'II' else '>'

    def ascii_value(text):
        return text.encode('ascii') + b'\x00'

    exif_tags = []
    if datetime_original is not None:
        exif_tags.append((TAG_DATETIME_ORIGINAL, ascii_value(datetime_original)))
    if digitized is not None:
        exif_tags.append((TAG_DATETIME_DIGITIZED, ascii_value(digitized)))

    ifd0_count = (1 if datetime_ is not None else 0) + (1 if exif_tags else 0)
    ifd0_size = 2 + 12 * ifd0_count + 4
    exif_offset = 8 + ifd0_size
    exif_size = 2 + 12 * len(exif_tags) + 4 if exif_tags else 0
    data_offset = exif_offset + exif_size

    ifd0_tags = []
    if datetime_ is not None:
        ifd0_tags.append((TAG_DATETIME, ascii_value(datetime_)))
    if exif_tags:
        ifd0_tags.append((TAG_EXIF_IFD, exif_offset))

    data = b''
    ifd0, data = _ifd_bytes(ifd0_tags, endian, data_offset, data)
    exif_ifd = b''
    if exif_tags:
        exif_ifd, data = _ifd_bytes(exif_tags, endian, data_offset, data)

    header = byte_order.encode('ascii') + struct.pack(endian + 'HI', 42, 8)
    return b'Exif\x00\x00' + header + ifd0 + exif_ifd + data


def build_jpeg(payload=None, declared_length=None):
    """Minimal JPEG-shaped byte string, optionally carrying an APP1 segment."""
    body = b'\xff\xd8'
    if payload is not None:
        length = declared_length if declared_length is not None else len(payload) + 2
        body += b'\xff\xe1' + struct.pack('>H', length) + payload
    return body + b'\xff\xda\x00\x08' + b'\x10\x20\x30\x40\x50\x60' + b'\xff\xd9'


def set_mtime(path, when):
    ts = when.timestamp()
    os.utime(path, (ts, ts))


@pytest.fixture
def exif_payload():
    """Factory for APP1 EXIF payloads."""
    return build_exif_payload


@pytest.fixture
def jpeg_bytes():
    """Factory for JPEG byte strings."""
    return build_jpeg


@pytest.fixture
def images_dir(tmp_path):
    """Empty originals directory."""
    path = tmp_path / 'images'
    path.mkdir()
    return path


@pytest.fixture
def make_jpeg(images_dir):
    """Write a JPEG with optional EXIF date tags and a fixed mtime."""
    def _make(name, datetime_original=None, datetime_=None, digitized=None,
              mtime=datetime(2020, 1, 1, tzinfo=timezone.utc), directory=None):
        target = Path(directory or images_dir) / name
        payload = None
        if any(v is not None for v in (datetime_original, datetime_, digitized)):
            payload = build_exif_payload(datetime_original, datetime_, digitized)
        target.write_bytes(build_jpeg(payload))
        set_mtime(target, mtime)
        return target
    return _make


@pytest.fixture
def make_png(images_dir):
    """Write a small real PNG via Pillow."""
    def _make(name, mtime=datetime(2020, 1, 1, tzinfo=timezone.utc), directory=None):
        target = Path(directory or images_dir) / name
        Image.new('RGB', (8, 6), color='red').save(target, 'PNG')
        set_mtime(target, mtime)
        return target
    return _make


@pytest.fixture
def make_webp(images_dir):
    """Write a small real WebP via Pillow into images/webp."""
    if not features.check('webp'):
        pytest.skip('Pillow built without WebP support')

    def _make(name, mtime=datetime(2020, 1, 1, tzinfo=timezone.utc), size=(8, 6)):
        webp_dir = images_dir / 'webp'
        webp_dir.mkdir(exist_ok=True)
        target = webp_dir / name
        Image.new('RGB', size, color='blue').save(target, 'WEBP')
        set_mtime(target, mtime)
        return target
    return _make


@pytest.fixture
def app(images_dir):
    """Create application for testing."""
    from gallery import create_app

    app = create_app('testing', overrides={'IMAGES_DIR': images_dir})
    return app


@pytest.fixture
def client(app):
    """Test client for HTTP requests."""
    return app.test_client()
