"""
Scan controller.

Owns the Stopped/Scanning state machine and the background scan loop that
feeds advertisements through the decoder into the device registry.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from typing import Callable, Optional

from utils.logging import scan_logger as logger

from .decoder import decode_advertisement
from .errors import (
    AlreadyScanning,
    AlreadyStopped,
    MalformedPayload,
    RadioFatalFailure,
    RadioSessionCanceled,
    RadioSessionTimeout,
)
from .models import AdvertisementEvent, DetectedDevice, ScanState, ScanStatus
from .radio import Radio
from .registry import DeviceRegistry, utc_now

DEFAULT_SESSION_DURATION = 5.0


def terminate_process(error: RadioFatalFailure) -> None:
    """Default fatal handler: flush logs and exit with status 1."""
    logging.shutdown()
    os._exit(1)


class ScanController:
    """
    Start/stop state machine around a repeating radio scan session.

    start() and stop() are called from request threads while the loop runs
    on its own thread; state changes go through a lock and each run gets its
    own cancel event.
    """

    def __init__(
        self,
        radio: Radio,
        registry: DeviceRegistry,
        session_duration: float = DEFAULT_SESSION_DURATION,
        base_station: str = '',
        retries: int = 0,
        retry_backoff: float = 1.0,
        on_fatal: Optional[Callable[[RadioFatalFailure], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize scan controller.

        Args:
            radio: Radio layer running bounded scan sessions.
            registry: Registry receiving decoded records.
            session_duration: Seconds per radio session.
            base_station: Station name stamped on records.
            retries: Radio failures tolerated in a row before giving up.
            retry_backoff: Base delay in seconds, doubled on each retry.
            on_fatal: Called once retries are exhausted. Exits the process by default.
            clock: Source of sighting timestamps.
        """
        self._radio = radio
        self._registry = registry
        self._session_duration = session_duration
        self._base_station = base_station
        self._retries = max(0, retries)
        self._retry_backoff = retry_backoff
        self._on_fatal = on_fatal or terminate_process
        self._clock = clock or utc_now

        self._lock = threading.Lock()
        self._state = ScanState.STOPPED
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._started_at: Optional[datetime] = None
        self._sessions_completed = 0
        self._last_error: Optional[str] = None

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    @property
    def is_scanning(self) -> bool:
        return self.state is ScanState.SCANNING

    @property
    def session_duration(self) -> float:
        return self._session_duration

    def start(self) -> None:
        """
        Start scanning in a background thread.

        Raises:
            AlreadyScanning: If a scan is already running.
        """
        with self._lock:
            if self._state is ScanState.SCANNING:
                raise AlreadyScanning()

            self._state = ScanState.SCANNING
            self._cancel = threading.Event()
            self._started_at = self._clock()
            self._last_error = None

            previous = self._thread
            self._thread = threading.Thread(
                target=self._scan_loop,
                args=(self._cancel, previous),
                name='blueblue-scan',
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """
        Ask the scan loop to stop. The current session is cancelled right away.

        Raises:
            AlreadyStopped: If no scan is running.
        """
        with self._lock:
            if self._state is ScanState.STOPPED:
                raise AlreadyStopped()
            self._state = ScanState.STOPPED
            self._cancel.set()
        logger.info("Stop requested")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the scan thread to exit. Returns True if it has."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def dispatch(self, event: AdvertisementEvent) -> Optional[DetectedDevice]:
        """
        Decode one advertisement and store the result.

        Never raises: a bad advertisement is logged and skipped.

        Returns:
            The stored record, or None if the advertisement was skipped.
        """
        try:
            device = decode_advertisement(
                event,
                detected_at=self._clock(),
                base_station=self._base_station,
            )
        except MalformedPayload as e:
            # Tags often list 0x1803 (Link Loss) without beacon data; too common to warn on
            logger.debug(f"Skipping advertisement from {event.address}: {e}")
            return None
        except Exception as e:
            logger.error(f"Error decoding advertisement from {event.address}: {e}")
            return None

        self._registry.upsert(device.address, device)
        return device

    def status(self) -> ScanStatus:
        with self._lock:
            return ScanStatus(
                state=self._state,
                session_duration=self._session_duration,
                started_at=self._started_at,
                sessions_completed=self._sessions_completed,
                devices_tracked=len(self._registry),
                last_error=self._last_error,
                adapter=getattr(self._radio, 'adapter', None),
            )

    def _scan_loop(self, cancel: threading.Event,
                   previous: Optional[threading.Thread]) -> None:
        # The radio belongs to one loop at a time
        if previous is not None:
            previous.join()

        logger.info(f"Started scanning every {self._session_duration}s")
        failures = 0

        while not cancel.is_set():
            try:
                self._radio.scan(self.dispatch, self._session_duration, cancel)
            except RadioSessionTimeout:
                logger.info("Scan complete.")
                failures = 0
                with self._lock:
                    self._sessions_completed += 1
            except RadioSessionCanceled:
                logger.info("Scan canceled.")
                break
            except Exception as e:
                error = e if isinstance(e, RadioFatalFailure) else RadioFatalFailure(str(e))
                failures += 1
                logger.error(f"{error} (attempt {failures} of {self._retries + 1})")
                with self._lock:
                    self._last_error = str(error)

                if failures > self._retries:
                    self._mark_stopped(cancel)
                    logger.critical("Radio failure is not recoverable, shutting down")
                    self._on_fatal(error)
                    return

                delay = self._retry_backoff * (2 ** (failures - 1))
                if cancel.wait(delay):
                    break
            else:
                # Session returned without saying why; treat like a timeout
                with self._lock:
                    self._sessions_completed += 1

        self._mark_stopped(cancel)
        logger.info("Stopped scanning.")

    def _mark_stopped(self, cancel: threading.Event) -> None:
        with self._lock:
            # Only the current run may flip the state; a newer run owns it otherwise
            if self._cancel is cancel:
                self._state = ScanState.STOPPED
                cancel.set()
