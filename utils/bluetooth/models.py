"""Data models for the beacon scanner."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ScanState(Enum):
    """Scan controller states."""
    STOPPED = 'stopped'
    SCANNING = 'scanning'


@dataclass(frozen=True)
class ServiceData:
    """One service data entry. UUID bytes are in on-air (little-endian) order."""
    uuid: bytes
    data: bytes = b''


@dataclass(frozen=True)
class AdvertisementEvent:
    """One received advertisement as handed over by the radio layer."""
    address: str
    rssi: int
    name: Optional[str] = None
    manufacturer_data: bytes = b''
    service_data: tuple[ServiceData, ...] = ()
    service_uuids: tuple[bytes, ...] = ()
    raw_advertisement: bytes = b''
    raw_scan_response: bytes = b''


@dataclass(frozen=True)
class BeaconFields:
    """Decoded proximity beacon fields, all lowercase hex."""
    uuid: str
    major: str
    minor: str
    battery: str
    service_uuid: str = ''
    service_data: str = ''
    # Not carried by the beacon format; kept for the dashboard
    temperature: str = '0'


@dataclass(frozen=True)
class DetectedDevice:
    """
    Most recent sighting of one radio address.

    Records are immutable: a new sighting replaces the whole object in the
    registry, so readers always see a complete record.
    """
    address: str
    detected_at: datetime
    name: str
    rssi: int
    raw_advertisement: str = ''
    raw_scan_response: str = ''
    manufacturer_data: str = ''
    base_station: str = ''
    beacon: Optional[BeaconFields] = None

    @property
    def is_beacon(self) -> bool:
        return self.beacon is not None

    def to_dict(self) -> dict:
        result = {
            'mac': self.address,
            'detected': self.detected_at.isoformat(),
            'name': self.name,
            'rssi': self.rssi,
            'manufacturer_data': self.manufacturer_data,
            'raw_advertisement': self.raw_advertisement,
            'raw_scan_response': self.raw_scan_response,
            'base_station': self.base_station,
            'beacon': self.is_beacon,
        }
        if self.beacon is not None:
            result.update({
                'uuid': self.beacon.uuid,
                'major': self.beacon.major,
                'minor': self.beacon.minor,
                'battery': self.beacon.battery,
                'service_uuid': self.beacon.service_uuid,
                'service_data': self.beacon.service_data,
                'temperature': self.beacon.temperature,
            })
        return result


@dataclass
class ScanStatus:
    """Snapshot of the scan controller."""
    state: ScanState = ScanState.STOPPED
    session_duration: float = 0.0
    started_at: Optional[datetime] = None
    sessions_completed: int = 0
    devices_tracked: int = 0
    last_error: Optional[str] = None
    adapter: Optional[str] = None

    @property
    def is_scanning(self) -> bool:
        return self.state is ScanState.SCANNING

    def to_dict(self) -> dict:
        return {
            'state': self.state.value,
            'is_scanning': self.is_scanning,
            'session_duration': self.session_duration,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'sessions_completed': self.sessions_completed,
            'devices_tracked': self.devices_tracked,
            'last_error': self.last_error,
            'adapter': self.adapter,
        }
