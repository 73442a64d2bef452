"""
Cache buffer for degraded-mode ingestion.

When storage is known to be down, the host switches the collector into
BUFFERING mode. Accepted records are held in arrival order and replayed,
once, when the host switches back to LIVE.
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum

from models import Record

log = logging.getLogger(__name__)


class Mode(Enum):
    LIVE = "live"
    BUFFERING = "buffering"


class CacheBuffer:
    def __init__(self):
        self._mode = Mode.LIVE
        self._pending: list[Record] = []
        self._lock = threading.Lock()

    @property
    def mode(self) -> Mode:
        return self._mode

    def __len__(self) -> int:
        return len(self._pending)

    def submit(self, record: Record, sink: Callable[[Record], object]):
        """Hold the record while buffering, otherwise hand it straight to sink."""
        with self._lock:
            if self._mode is Mode.BUFFERING:
                self._pending.append(record)
                return
        sink(record)

    def enable(self):
        with self._lock:
            self._mode = Mode.BUFFERING

    def disable(self) -> list[Record]:
        """
        Switch back to LIVE and take everything buffered so far.
        The returned list is in arrival order; the buffer is empty afterwards.
        """
        with self._lock:
            self._mode = Mode.LIVE
            pending, self._pending = self._pending, []
        return pending
