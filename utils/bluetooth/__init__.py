"""
Bluetooth LE beacon scanning package for blueblue.

Provides advertisement decoding, the live device registry, and the scan
controller driving a bleak-backed radio.
"""

from .context import ScanContext, create_scan_context
from .decoder import (
    BEACON_SERVICE_UUID,
    decode_advertisement,
    decode_proximity_beacon,
    format_raw_bytes,
    is_proximity_beacon_service,
    sanitize_name,
)
from .errors import (
    AlreadyScanning,
    AlreadyStopped,
    BlueblueError,
    InvalidQueryParameter,
    MalformedPayload,
    RadioError,
    RadioFatalFailure,
    RadioSessionCanceled,
    RadioSessionTimeout,
    ScanStateError,
)
from .models import AdvertisementEvent, BeaconFields, DetectedDevice, ScanState, ScanStatus, ServiceData
from .radio import BleakRadio, event_from_bleak
from .registry import DEFAULT_WINDOW_SECONDS, DeviceRegistry, ReadWriteLock
from .scanner import ScanController

__all__ = [
    # Context
    'ScanContext',
    'create_scan_context',

    # Controller and radio
    'ScanController',
    'BleakRadio',
    'event_from_bleak',

    # Registry
    'DeviceRegistry',
    'ReadWriteLock',
    'DEFAULT_WINDOW_SECONDS',

    # Models
    'AdvertisementEvent',
    'BeaconFields',
    'DetectedDevice',
    'ScanState',
    'ScanStatus',
    'ServiceData',

    # Decoder
    'BEACON_SERVICE_UUID',
    'decode_advertisement',
    'decode_proximity_beacon',
    'format_raw_bytes',
    'is_proximity_beacon_service',
    'sanitize_name',

    # Errors
    'BlueblueError',
    'MalformedPayload',
    'ScanStateError',
    'AlreadyScanning',
    'AlreadyStopped',
    'InvalidQueryParameter',
    'RadioError',
    'RadioSessionTimeout',
    'RadioSessionCanceled',
    'RadioFatalFailure',
]
