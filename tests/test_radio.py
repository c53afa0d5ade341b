"""Tests for the bleak-backed radio layer."""

from __future__ import annotations

import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bleak.exc import BleakError

from utils.bluetooth.errors import RadioFatalFailure, RadioSessionCanceled, RadioSessionTimeout
from utils.bluetooth.models import ServiceData
from utils.bluetooth.radio import (
    BleakRadio,
    encode_ad_structures,
    event_from_bleak,
    manufacturer_payload,
    uuid_to_bytes,
)


def _advertisement(**overrides) -> MagicMock:
    adv = MagicMock()
    adv.local_name = 'Tag-7'
    adv.rssi = -58
    adv.tx_power = None
    adv.manufacturer_data = {0x004C: bytes.fromhex('0215')}
    adv.service_data = {'00001803-0000-1000-8000-00805f9b34fb': b'\x01\x02'}
    adv.service_uuids = ['00001803-0000-1000-8000-00805f9b34fb']
    for key, value in overrides.items():
        setattr(adv, key, value)
    return adv


def _device(address='D4:36:39:00:00:01', name='fallback') -> MagicMock:
    device = MagicMock()
    device.address = address
    device.name = name
    return device


# ============================================
# Conversion tests
# ============================================

def test_uuid_to_bytes_sig_base_uuid():
    """16-bit SIG UUIDs should come out as 2 little-endian bytes."""
    assert uuid_to_bytes('00001803-0000-1000-8000-00805f9b34fb') == b'\x03\x18'
    assert uuid_to_bytes('0000180F-0000-1000-8000-00805F9B34FB') == b'\x0f\x18'


def test_uuid_to_bytes_short_form():
    assert uuid_to_bytes('1803') == b'\x03\x18'


def test_uuid_to_bytes_vendor_uuid():
    value = 'e2c56db5-dffb-48d2-b060-d0f5a71096e0'
    assert uuid_to_bytes(value) == bytes.fromhex('e2c56db5dffb48d2b060d0f5a71096e0')[::-1]


def test_manufacturer_payload_prepends_company_id():
    assert manufacturer_payload({0x004C: b'\x02\x15'}) == b'\x4c\x00\x02\x15'


def test_manufacturer_payload_empty():
    assert manufacturer_payload({}) == b''


def test_encode_ad_structures():
    adv = _advertisement(local_name='AB', tx_power=-4)
    raw = encode_ad_structures(
        adv,
        service_uuids=[b'\x03\x18'],
        service_data=[ServiceData(b'\x03\x18', b'\x01')],
        manufacturer=b'\x4c\x00',
    )
    assert raw == (
        b'\x03\x09AB'
        + b'\x02\x0a\xfc'
        + b'\x03\x03\x03\x18'
        + b'\x04\x16\x03\x18\x01'
        + b'\x03\xff\x4c\x00'
    )


def test_event_from_bleak():
    event = event_from_bleak(_device(), _advertisement())

    assert event.address == 'D4:36:39:00:00:01'
    assert event.rssi == -58
    assert event.name == 'Tag-7'
    assert event.manufacturer_data == b'\x4c\x00\x02\x15'
    assert event.service_data == (ServiceData(b'\x03\x18', b'\x01\x02'),)
    assert event.service_uuids == (b'\x03\x18',)
    assert event.raw_advertisement.startswith(b'\x06\x09Tag-7')
    assert event.raw_scan_response == b''


def test_event_from_bleak_uses_device_name_when_unadvertised():
    event = event_from_bleak(_device(name='Cached'), _advertisement(local_name=None))
    assert event.name == 'Cached'


# ============================================
# Session tests
# ============================================

class TestBleakRadioSession:

    def _scanner_patch(self, on_start=None):
        """Patch BleakScanner, optionally firing callbacks when started."""
        captured = {}

        def factory(**kwargs):
            captured.update(kwargs)
            scanner = MagicMock()

            async def start():
                if on_start:
                    on_start(kwargs['detection_callback'])

            scanner.start = AsyncMock(side_effect=start)
            scanner.stop = AsyncMock()
            captured['scanner'] = scanner
            return scanner

        return patch('utils.bluetooth.radio.BleakScanner', side_effect=factory), captured

    def test_session_times_out(self):
        scanner_patch, captured = self._scanner_patch()
        with scanner_patch:
            with pytest.raises(RadioSessionTimeout):
                BleakRadio(poll_interval=0.01).scan(lambda e: None, 0.05, threading.Event())
        captured['scanner'].stop.assert_awaited_once()

    def test_session_canceled(self):
        cancel = threading.Event()
        cancel.set()
        scanner_patch, captured = self._scanner_patch()
        with scanner_patch:
            with pytest.raises(RadioSessionCanceled):
                BleakRadio(poll_interval=0.01).scan(lambda e: None, 30, cancel)
        captured['scanner'].stop.assert_awaited_once()

    def test_bleak_error_is_fatal(self):
        with patch('utils.bluetooth.radio.BleakScanner') as scanner_cls:
            scanner_cls.return_value.start = AsyncMock(side_effect=BleakError('No adapter'))
            with pytest.raises(RadioFatalFailure) as exc_info:
                BleakRadio().scan(lambda e: None, 1, threading.Event())
        assert 'No adapter' in str(exc_info.value)

    def test_detections_reach_handler(self):
        received = []
        scanner_patch, _ = self._scanner_patch(
            on_start=lambda callback: callback(_device(), _advertisement())
        )
        with scanner_patch:
            with pytest.raises(RadioSessionTimeout):
                BleakRadio(poll_interval=0.01).scan(received.append, 0.02, threading.Event())

        assert len(received) == 1
        assert received[0].address == 'D4:36:39:00:00:01'

    def test_unreadable_advertisement_is_skipped(self):
        """A malformed service UUID should drop that advertisement only."""
        received = []

        def fire(callback):
            callback(_device('BA:D0:00:00:00:01'), _advertisement(service_uuids=['not-a-uuid']))
            callback(_device('60:0D:00:00:00:01'), _advertisement())

        scanner_patch, _ = self._scanner_patch(on_start=fire)
        with scanner_patch, patch('utils.bluetooth.radio.logger') as mock_logger:
            with pytest.raises(RadioSessionTimeout):
                BleakRadio(poll_interval=0.01).scan(received.append, 0.02, threading.Event())

        assert [e.address for e in received] == ['60:0D:00:00:00:01']
        mock_logger.warning.assert_called_once()
        assert 'BA:D0:00:00:00:01' in mock_logger.warning.call_args.args[0]

    def test_adapter_passed_to_scanner(self):
        scanner_patch, captured = self._scanner_patch()
        with scanner_patch:
            with pytest.raises(RadioSessionTimeout):
                BleakRadio(adapter='hci1', poll_interval=0.01).scan(lambda e: None, 0.01, threading.Event())
        assert captured['adapter'] == 'hci1'
