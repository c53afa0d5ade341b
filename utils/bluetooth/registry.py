"""
Device registry.

Keeps the latest record per radio address and answers time-windowed
queries. Entries are never evicted; stale ones are filtered at read time.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional

from .errors import InvalidQueryParameter
from .models import DetectedDevice

DEFAULT_WINDOW_SECONDS = 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadWriteLock:
    """
    Shared/exclusive lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so a steady stream of queries
    cannot starve the scan thread.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class DeviceRegistry:
    """
    Concurrency-safe store of the most recent DetectedDevice per address.

    The scan thread writes under the exclusive lock, request handlers read
    under the shared lock. Records are immutable, so a reader gets either
    the old or the new record for an address, never a mix.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._devices: dict[str, DetectedDevice] = {}
        self._lock = ReadWriteLock()
        self._clock = clock or utc_now

    def upsert(self, address: str, record: DetectedDevice) -> None:
        """Insert or replace the record for an address."""
        with self._lock.write_locked():
            self._devices[address] = record

    def get(self, address: str) -> Optional[DetectedDevice]:
        with self._lock.read_locked():
            return self._devices.get(address)

    def list_live(self, window_seconds: int = DEFAULT_WINDOW_SECONDS) -> list[DetectedDevice]:
        """
        Get records seen within the trailing window, strongest signal first.

        Equal RSSI values keep registry order.

        Args:
            window_seconds: Staleness window in seconds.

        Returns:
            List of DetectedDevice sorted by descending RSSI.
        """
        live = self._filter_live(window_seconds)
        return sorted(live, key=lambda d: d.rssi, reverse=True)

    def list_since(self, window_seconds: int = DEFAULT_WINDOW_SECONDS) -> list[DetectedDevice]:
        """Get records seen within the trailing window, in insertion order."""
        return self._filter_live(window_seconds)

    def _filter_live(self, window_seconds: int) -> list[DetectedDevice]:
        if window_seconds < 0:
            raise InvalidQueryParameter('last', window_seconds, 'must not be negative')
        try:
            cutoff = self._clock() - timedelta(seconds=window_seconds)
        except OverflowError:
            # Window reaches past datetime.min: everything is live
            cutoff = None
        with self._lock.read_locked():
            records = list(self._devices.values())
        if cutoff is None:
            return records
        return [d for d in records if d.detected_at > cutoff]

    def clear(self) -> None:
        with self._lock.write_locked():
            self._devices.clear()

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._devices)
