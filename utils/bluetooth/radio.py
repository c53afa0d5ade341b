"""
Radio layer backed by bleak.

A scan session runs one BleakScanner on a private asyncio loop inside the
calling thread, so detection callbacks reach the handler on the scan thread.
Sessions always end with an exception describing why they ended.
"""

from __future__ import annotations

import asyncio
import struct
import threading
import time
import uuid as uuid_mod
from typing import Callable, Optional, Protocol

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from utils.logging import radio_logger as logger

from .errors import RadioFatalFailure, RadioSessionCanceled, RadioSessionTimeout
from .models import AdvertisementEvent, ServiceData

AdvertisementHandler = Callable[[AdvertisementEvent], None]

# Bluetooth SIG base UUID: 0000xxxx-0000-1000-8000-00805f9b34fb
_SIG_BASE_SUFFIX = '-0000-1000-8000-00805f9b34fb'

# AD structure types
AD_TYPE_UUID16_COMPLETE = 0x03
AD_TYPE_UUID128_COMPLETE = 0x07
AD_TYPE_NAME_COMPLETE = 0x09
AD_TYPE_TX_POWER = 0x0A
AD_TYPE_SERVICE_DATA16 = 0x16
AD_TYPE_SERVICE_DATA128 = 0x21
AD_TYPE_MANUFACTURER = 0xFF

DEFAULT_POLL_INTERVAL = 0.1


class Radio(Protocol):
    """Anything that can run one bounded scan session."""

    def scan(self, handler: AdvertisementHandler, duration: float,
             cancel: threading.Event) -> None:
        """
        Run a session, calling handler for every advertisement.

        Raises:
            RadioSessionTimeout: Duration elapsed.
            RadioSessionCanceled: Cancel event was set.
            RadioFatalFailure: Anything else went wrong.
        """
        ...


def uuid_to_bytes(value: str) -> bytes:
    """
    Convert a UUID string to its on-air (little-endian) byte form.

    SIG base UUIDs shrink to 2 bytes, e.g. "00001803-..." becomes 03 18.
    """
    value = value.lower()
    if value.endswith(_SIG_BASE_SUFFIX) and value.startswith('0000'):
        return bytes.fromhex(value[4:8])[::-1]
    if len(value) == 4:
        return bytes.fromhex(value)[::-1]
    return uuid_mod.UUID(value).bytes[::-1]


def manufacturer_payload(manufacturer_data: dict[int, bytes]) -> bytes:
    """Rebuild the first manufacturer entry as company id (LE) + payload."""
    for company_id, data in manufacturer_data.items():
        return struct.pack('<H', company_id & 0xFFFF) + bytes(data)
    return b''


def _ad_structure(ad_type: int, data: bytes) -> bytes:
    # Length byte covers type + data and cannot exceed 255
    data = data[:254]
    return bytes((len(data) + 1, ad_type)) + data


def encode_ad_structures(advertisement: AdvertisementData,
                         service_uuids: list[bytes],
                         service_data: list[ServiceData],
                         manufacturer: bytes) -> bytes:
    """
    Re-encode parsed advertisement fields as AD structures.

    Host stacks hand over parsed fields only. Flags are not exposed and are
    left out.
    """
    raw = b''
    if advertisement.local_name:
        raw += _ad_structure(AD_TYPE_NAME_COMPLETE, advertisement.local_name.encode('utf-8'))
    if advertisement.tx_power is not None:
        raw += _ad_structure(AD_TYPE_TX_POWER, struct.pack('<b', advertisement.tx_power))

    uuid16 = b''.join(u for u in service_uuids if len(u) == 2)
    if uuid16:
        raw += _ad_structure(AD_TYPE_UUID16_COMPLETE, uuid16)
    uuid128 = b''.join(u for u in service_uuids if len(u) == 16)
    if uuid128:
        raw += _ad_structure(AD_TYPE_UUID128_COMPLETE, uuid128)

    for entry in service_data:
        ad_type = AD_TYPE_SERVICE_DATA16 if len(entry.uuid) == 2 else AD_TYPE_SERVICE_DATA128
        raw += _ad_structure(ad_type, entry.uuid + entry.data)

    if manufacturer:
        raw += _ad_structure(AD_TYPE_MANUFACTURER, manufacturer)
    return raw


def event_from_bleak(device: BLEDevice, advertisement: AdvertisementData) -> AdvertisementEvent:
    """Convert a bleak detection callback into an AdvertisementEvent."""
    service_uuids = [uuid_to_bytes(u) for u in advertisement.service_uuids or []]
    service_data = [
        ServiceData(uuid=uuid_to_bytes(u), data=bytes(d))
        for u, d in (advertisement.service_data or {}).items()
    ]
    manufacturer = manufacturer_payload(advertisement.manufacturer_data or {})

    return AdvertisementEvent(
        address=device.address,
        rssi=advertisement.rssi,
        name=advertisement.local_name or device.name,
        manufacturer_data=manufacturer,
        service_data=tuple(service_data),
        service_uuids=tuple(service_uuids),
        raw_advertisement=encode_ad_structures(
            advertisement, service_uuids, service_data, manufacturer
        ),
    )


class BleakRadio:
    """Radio backed by bleak's BleakScanner."""

    def __init__(self, adapter: Optional[str] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._adapter = adapter or None
        self._poll_interval = poll_interval

    @property
    def adapter(self) -> Optional[str]:
        return self._adapter

    def scan(self, handler: AdvertisementHandler, duration: float,
             cancel: threading.Event) -> None:
        try:
            asyncio.run(self._session(handler, duration, cancel))
        except (RadioSessionTimeout, RadioSessionCanceled):
            raise
        except (BleakError, OSError) as e:
            raise RadioFatalFailure(str(e)) from e

    async def _session(self, handler: AdvertisementHandler, duration: float,
                       cancel: threading.Event) -> None:
        def detection_callback(device: BLEDevice, advertisement: AdvertisementData) -> None:
            try:
                event = event_from_bleak(device, advertisement)
            except Exception as e:
                logger.warning(f"Skipping unreadable advertisement from {device.address}: {e}")
                return
            handler(event)

        scanner_kwargs: dict = {'detection_callback': detection_callback}
        if self._adapter:
            scanner_kwargs['adapter'] = self._adapter
        scanner = BleakScanner(**scanner_kwargs)

        await scanner.start()
        deadline = time.monotonic() + duration
        try:
            while True:
                if cancel.is_set():
                    raise RadioSessionCanceled()
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RadioSessionTimeout(duration)
                await asyncio.sleep(min(self._poll_interval, remaining))
        finally:
            await scanner.stop()
            logger.debug("Scanner session closed")
