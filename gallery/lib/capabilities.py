"""
Process-wide capability probes.

A capability is computed once, on first use, and then shared by every
request. The probe runs under a lock so concurrent first requests do not
race; reset() exists for tests.
"""
from typing import Callable, Optional
import logging
import threading

from PIL import features

logger = logging.getLogger(__name__)


class Capability:
    """Lazily computed boolean capability with explicit one-time initialization."""

    def __init__(self, name: str, probe: Callable[[], bool]):
        self.name = name
        self._probe = probe
        self._value: Optional[bool] = None
        self._lock = threading.Lock()

    def get(self) -> bool:
        if self._value is not None:
            return self._value
        with self._lock:
            if self._value is None:
                try:
                    self._value = bool(self._probe())
                except Exception as e:
                    logger.warning(f"Capability probe '{self.name}' failed, assuming unsupported: {e}")
                    self._value = False
                logger.debug(f"Capability '{self.name}' = {self._value}")
        return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = None

    def __bool__(self) -> bool:
        return self.get()


def _probe_webp_decode() -> bool:
    return features.check('webp')


# Pillow built with libwebp can read the converted siblings
WEBP_DECODE = Capability('webp_decode', _probe_webp_decode)
