"""Application configuration module.

Provides configuration classes for different environments with pathlib-based
paths. Every setting can be overridden through the environment so the same
build can point at a different photo directory without code changes.
"""
import os
from pathlib import Path
from zoneinfo import ZoneInfo


# Base directories using pathlib
BASE_DIR = Path(__file__).parent.absolute()
PUBLIC_DIR = BASE_DIR / 'public'


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value else default


def _env_float(name, default):
    value = os.environ.get(name)
    return float(value) if value else default


class Config:
    """Base configuration with common settings."""

    # Photo directories (originals plus the pre-converted WebP siblings)
    IMAGES_DIR = Path(os.environ['IMAGES_DIR']) if os.environ.get('IMAGES_DIR') else PUBLIC_DIR / 'images'
    ALTERNATE_DIR_NAME = os.environ.get('ALTERNATE_DIR_NAME', 'webp')

    # EXIF timestamps carry no zone; interpret them in this one
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')

    # Metadata extraction
    WORKER_THREADS = _env_int('WORKER_THREADS', 8)
    EXTRACT_TIMEOUT = _env_float('EXTRACT_TIMEOUT', 0.5)  # Seconds per file
    EXIF_SCAN_BYTES = _env_int('EXIF_SCAN_BYTES', None)  # None = read whole file

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    @classmethod
    def validate_timezone(cls, name=None):
        """Validate timezone configuration using zoneinfo."""
        name = name or cls.TIMEZONE
        try:
            ZoneInfo(name)
            return True
        except Exception as e:
            raise ValueError(f"Invalid TIMEZONE '{name}': {e}")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False


class TestingConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    WORKER_THREADS = 2
    EXTRACT_TIMEOUT = 5.0


# Configuration dictionary for easy lookup
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
