"""
Image manifest builder.

Ties the pipeline together for one request:

1. Negotiate the authoritative directory (WebP siblings or originals)
2. Extract a capture timestamp for every candidate, fanned out over a
   ThreadPoolExecutor with a per-file timeout
3. Order the candidates
4. Return a Manifest describing what was served and how it was sorted

build() never raises. Request-level problems produce an empty manifest with
a failure reason; per-file problems only ever downgrade that file to its
filesystem timestamp.
"""
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Mapping, Optional
import logging
import time

from gallery.lib.errors import DirectoryUnreadableError
from gallery.lib.exif import extract_capture_instant, filesystem_timestamp
from gallery.lib.negotiator import negotiate
from gallery.lib.ordering import order
from gallery.models import (
    CaptureTimestamp,
    ChosenDirectory,
    DirectorySelection,
    FailureReason,
    ImageCandidate,
    Manifest,
    OrderingBasis,
    SelectionReason,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
DEFAULT_PER_FILE_TIMEOUT = 0.5  # Seconds


def ordering_basis_for(timestamps: Mapping[str, CaptureTimestamp]) -> OrderingBasis:
    """Describe which kind of timestamp drove the ordering."""
    if not timestamps:
        return OrderingBasis.NONE
    if any(ts.trusted for ts in timestamps.values()):
        return OrderingBasis.METADATA_TIMESTAMP
    return OrderingBasis.FILESYSTEM_TIMESTAMP


def _dedupe(filenames: list[str]) -> list[str]:
    seen = set()
    unique = []
    for name in filenames:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


class ManifestBuilder:
    """Builds a fresh Manifest from the filesystem on every call."""

    def __init__(
        self,
        original_dir: Path | str,
        alternate_name: str = 'webp',
        max_workers: int = DEFAULT_MAX_WORKERS,
        per_file_timeout: Optional[float] = DEFAULT_PER_FILE_TIMEOUT,
        default_tz: str = 'UTC',
        max_header_bytes: Optional[int] = None
    ):
        self.original_dir = Path(original_dir)
        self.alternate_name = alternate_name
        self.max_workers = max(1, max_workers or 1)
        self.per_file_timeout = per_file_timeout
        self.default_tz = default_tz
        self.max_header_bytes = max_header_bytes

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'ManifestBuilder':
        """Create a builder from Flask-style configuration keys."""
        return cls(
            original_dir=config['IMAGES_DIR'],
            alternate_name=config.get('ALTERNATE_DIR_NAME', 'webp'),
            max_workers=config.get('WORKER_THREADS') or DEFAULT_MAX_WORKERS,
            per_file_timeout=config.get('EXTRACT_TIMEOUT', DEFAULT_PER_FILE_TIMEOUT),
            default_tz=config.get('TIMEZONE', 'UTC'),
            max_header_bytes=config.get('EXIF_SCAN_BYTES'),
        )

    @property
    def alternate_dir(self) -> Path:
        return self.original_dir / self.alternate_name

    def _extract(self, candidate: ImageCandidate) -> CaptureTimestamp:
        return extract_capture_instant(candidate.source_path, self.default_tz, self.max_header_bytes)

    def _overran(self, started_at: Optional[float]) -> bool:
        if self.per_file_timeout is None or started_at is None:
            return False
        return time.monotonic() - started_at >= self.per_file_timeout

    def _wait_timeout(self, in_flight: Mapping, started: Mapping[str, float]) -> Optional[float]:
        """Seconds until the earliest running extraction hits its timeout."""
        if self.per_file_timeout is None:
            return None
        now = time.monotonic()
        remaining = [
            started[c.filename] + self.per_file_timeout - now
            for c in in_flight.values() if c.filename in started
        ]
        if len(remaining) < len(in_flight):
            # Some extractions have not reported their start yet; check back soon
            remaining.append(self.per_file_timeout)
        return max(0.0, min(remaining))

    def extract_all(self, candidates: list[ImageCandidate]) -> dict[str, CaptureTimestamp]:
        """
        Attach a capture timestamp to every candidate.

        Extraction for one file depends only on that file, so it runs in
        a thread pool with at most max_workers extractions in flight. Each
        file's per_file_timeout is measured from the moment its own
        extraction starts; time spent queued does not count. A file that
        overruns gets its filesystem timestamp instead, and its thread is
        abandoned so it no longer holds up the files queued behind it.

        Without a per_file_timeout, a single candidate or a single worker
        is extracted inline.

        Returns:
            Mapping of filename to CaptureTimestamp, one entry per candidate
        """
        if not candidates:
            return {}
        if self.per_file_timeout is None and (len(candidates) == 1 or self.max_workers == 1):
            return {c.filename: self._extract(c) for c in candidates}

        timestamps = {}
        started = {}  # Filename -> monotonic start time, set by the worker
        remaining = iter(candidates)
        in_flight = {}  # Future -> candidate

        def run(candidate):
            started[candidate.filename] = time.monotonic()
            return self._extract(candidate)

        # Room for one thread per file in case every extraction hangs;
        # threads are created on demand, so normally only max_workers exist
        executor = ThreadPoolExecutor(
            max_workers=len(candidates),
            thread_name_prefix='manifest-exif',
        )
        try:
            while True:
                while len(in_flight) < self.max_workers:
                    candidate = next(remaining, None)
                    if candidate is None:
                        break
                    in_flight[executor.submit(run, candidate)] = candidate

                if not in_flight:
                    break

                done, _ = wait(in_flight, timeout=self._wait_timeout(in_flight, started),
                               return_when=FIRST_COMPLETED)
                for future in done:
                    candidate = in_flight.pop(future)
                    timestamps[candidate.filename] = future.result()

                for future, candidate in list(in_flight.items()):
                    if future.done() or not self._overran(started.get(candidate.filename)):
                        continue
                    logger.warning(
                        f"Metadata extraction for {candidate.filename} exceeded "
                        f"{self.per_file_timeout}s, using filesystem timestamp"
                    )
                    del in_flight[future]
                    timestamps[candidate.filename] = filesystem_timestamp(candidate.source_path)
        finally:
            # Do not wait for stragglers; their results are discarded
            executor.shutdown(wait=False, cancel_futures=True)

        return timestamps

    def build(self) -> Manifest:
        """
        Build the manifest for the current state of the filesystem.

        Returns:
            Manifest; empty with failure set if the request could not be served
        """
        start = time.time()
        try:
            selection, candidates = negotiate(self.alternate_dir, self.original_dir, self.alternate_name)
        except DirectoryUnreadableError as e:
            logger.error(f"Manifest degraded: {e}")
            return Manifest(
                directory_selection=DirectorySelection(
                    ChosenDirectory.NONE, SelectionReason.ORIGINAL_EMPTY
                ),
                failure=FailureReason.DIRECTORY_UNREADABLE,
            )
        except Exception as e:
            logger.error(f"Manifest build failed during negotiation: {e}", exc_info=True)
            return Manifest(failure=FailureReason.INTERNAL_ERROR)

        try:
            timestamps = self.extract_all(candidates)
            filenames = _dedupe(order(candidates, timestamps))
            basis = ordering_basis_for(timestamps)
        except Exception as e:
            logger.error(f"Manifest build failed for {selection.path}: {e}", exc_info=True)
            return Manifest(directory_selection=selection, failure=FailureReason.INTERNAL_ERROR)

        if selection.chosen_directory == ChosenDirectory.NONE:
            logger.info(f"No image directory at {self.original_dir}")

        logger.info(
            f"Manifest built from {selection.chosen_directory.value} directory "
            f"({selection.reason.value}): {len(filenames)} images, "
            f"basis={basis.value}, {time.time() - start:.3f}s"
        )
        return Manifest(
            ordered_filenames=filenames,
            directory_selection=selection,
            ordering_basis=basis,
        )


def build_manifest(original_dir: Path | str, **kwargs) -> Manifest:
    """Build a manifest for original_dir with a one-off ManifestBuilder."""
    return ManifestBuilder(original_dir, **kwargs).build()
