"""
Advertisement payload decoding.

Pure functions: raw advertisement bytes in, structured fields out. Nothing
here touches the registry or the radio.

Proximity beacon manufacturer data layout (0-indexed):

    [0, 4)    company identifier + beacon type/length prefix
    [4, 20)   identifier UUID
    [21, 23)  major
    [24, 26)  minor
    [-1]      battery level
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from .errors import MalformedPayload
from .models import AdvertisementEvent, BeaconFields, DetectedDevice, ServiceData

# Beacon service UUID 0x1803, as transmitted (little-endian)
BEACON_SERVICE_UUID = bytes((0x03, 0x18))

BEACON_MIN_LENGTH = 27

UUID_SLICE = slice(4, 20)
MAJOR_SLICE = slice(21, 23)
MINOR_SLICE = slice(24, 26)


def decode_proximity_beacon(manufacturer_data: bytes) -> BeaconFields:
    """
    Decode the beacon fields of a manufacturer data payload.

    Args:
        manufacturer_data: Full manufacturer payload, company identifier included.

    Returns:
        BeaconFields with uuid, major, minor and battery set.

    Raises:
        MalformedPayload: If the payload is shorter than 27 bytes.
    """
    length = len(manufacturer_data)
    if length < BEACON_MIN_LENGTH:
        raise MalformedPayload(length, BEACON_MIN_LENGTH)

    return BeaconFields(
        uuid=manufacturer_data[UUID_SLICE].hex(),
        major=manufacturer_data[MAJOR_SLICE].hex(),
        minor=manufacturer_data[MINOR_SLICE].hex(),
        # Un-padded on purpose: the dashboard expects "5", not "05"
        battery=f"{manufacturer_data[-1]:x}",
    )


def is_proximity_beacon_service(service_uuid: bytes) -> bool:
    """Check whether a service UUID is the beacon signature 0x03 0x18."""
    return bytes(service_uuid) == BEACON_SERVICE_UUID


def format_raw_bytes(raw: bytes) -> str:
    """Render bytes as lowercase hex pairs, each followed by a space ("aa bb ")."""
    return ''.join(f"{b:02x} " for b in raw)


def sanitize_name(name: Optional[str]) -> str:
    """Strip leading and trailing non-printable code points from a broadcast name."""
    if not name:
        return ''
    start = 0
    end = len(name)
    while start < end and not name[start].isprintable():
        start += 1
    while end > start and not name[end - 1].isprintable():
        end -= 1
    return name[start:end]


def find_beacon_service(event: AdvertisementEvent) -> Optional[ServiceData]:
    """
    Find the beacon service among the services an advertisement carries.

    Service data entries are checked first; a bare entry in the advertised
    service UUID list matches with empty service data.
    """
    for entry in event.service_data:
        if is_proximity_beacon_service(entry.uuid):
            return entry
    for uuid in event.service_uuids:
        if is_proximity_beacon_service(uuid):
            return ServiceData(uuid=bytes(uuid))
    return None


def decode_advertisement(
    event: AdvertisementEvent,
    detected_at: datetime,
    base_station: str = '',
) -> DetectedDevice:
    """
    Turn one advertisement into a registry record.

    Args:
        event: Advertisement from the radio layer.
        detected_at: Sighting time, taken from the local clock by the caller.
        base_station: Name of this scanning station.

    Raises:
        MalformedPayload: If the beacon service is advertised but the
            manufacturer data is too short to decode.
    """
    beacon = None
    service = find_beacon_service(event)
    if service is not None:
        beacon = replace(
            decode_proximity_beacon(event.manufacturer_data),
            service_uuid=service.uuid.hex(),
            service_data=service.data.hex(),
        )

    return DetectedDevice(
        address=event.address,
        detected_at=detected_at,
        name=sanitize_name(event.name),
        rssi=int(event.rssi),
        raw_advertisement=format_raw_bytes(event.raw_advertisement),
        raw_scan_response=format_raw_bytes(event.raw_scan_response),
        manufacturer_data=event.manufacturer_data.hex(),
        base_station=base_station,
        beacon=beacon,
    )
