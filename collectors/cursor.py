"""
Progress cursor for the Detik collector.

The cursor is the highest contribution id fully processed. It is read once
from storage at startup and only ever moves forward, at the end of a cycle.
Each cycle scans with its own high-water mark (Cycle) so overlapping cycles
never race on a shared accumulator.
"""

import logging
import sqlite3
import threading

from models import Record
from storage.db import Storage

log = logging.getLogger(__name__)


class Cycle:
    """High-water mark for one polling cycle. Seeded from the cursor."""

    def __init__(self, start: int):
        self.high_water = start
        self.accepted: list[Record] = []
        self.pages = 0

    def observe(self, record: Record):
        self.accepted.append(record)
        if record.contribution_id > self.high_water:
            self.high_water = record.contribution_id


class CursorStore:
    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def initialize(self, storage: Storage) -> int:
        """
        Load the cursor from the highest stored contribution id.
        On an empty table or a storage error the cursor stays where it is
        and the whole retention window of the feed is re-read.
        """
        try:
            stored = storage.max_contribution_id()
        except sqlite3.Error as e:
            log.warning(f"Could not read last contribution id, starting from {self._value}: {e}")
            return self._value

        if stored is None:
            log.warning(f"No stored reports, starting from contribution id {self._value}")
            return self._value

        with self._lock:
            self._value = max(self._value, stored)
        log.info(f"Cursor initialized at contribution id {self._value}")
        return self._value

    def begin_cycle(self) -> Cycle:
        return Cycle(self._value)

    def commit_cycle(self, cycle: Cycle) -> int:
        """Advance to the cycle's high-water mark. Never moves backwards."""
        with self._lock:
            if cycle.high_water > self._value:
                log.debug(f"Cursor advanced {self._value} -> {cycle.high_water}")
                self._value = cycle.high_water
            return self._value
