"""Scan context: the registry and controller shared by the scan loop and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import config

from .radio import BleakRadio, Radio
from .registry import DeviceRegistry
from .scanner import ScanController


@dataclass
class ScanContext:
    registry: DeviceRegistry
    controller: ScanController


def create_scan_context(radio: Optional[Radio] = None, **controller_kwargs) -> ScanContext:
    """
    Build a registry and controller wired to a radio.

    Args:
        radio: Radio layer. Defaults to BleakRadio on the configured adapter.
        **controller_kwargs: Overrides for ScanController arguments.

    Returns:
        ScanContext with a stopped controller.
    """
    if radio is None:
        radio = BleakRadio(adapter=config.ADAPTER or None)

    registry = DeviceRegistry(clock=controller_kwargs.get('clock'))
    options = {
        'session_duration': config.SCAN_DURATION,
        'base_station': config.BASE_STATION,
        'retries': config.RADIO_RETRIES,
        'retry_backoff': config.RADIO_RETRY_BACKOFF,
    }
    options.update(controller_kwargs)
    controller = ScanController(radio, registry, **options)
    return ScanContext(registry=registry, controller=controller)
