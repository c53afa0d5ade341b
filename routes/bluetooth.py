"""Bluetooth beacon scanning routes.

Provides endpoints for starting and stopping the scan loop and for reading
the live device and beacon sets from the registry.
"""

from __future__ import annotations

import re

from flask import Blueprint, current_app, jsonify, request

import config
from utils.bluetooth import InvalidQueryParameter, ScanContext, ScanStateError
from utils.logging import http_logger as logger

bluetooth_bp = Blueprint('bluetooth', __name__)

# Plain ASCII digits only; int() alone would take '+60', ' 60 ', '6_0'
_WINDOW_RE = re.compile(r'[0-9]+')


def _context() -> ScanContext:
    return current_app.extensions['blueblue']


def _parse_window() -> int:
    """
    Read the staleness window from the 'last' query parameter.

    Missing means the default window; anything but a non-negative integer
    is rejected.
    """
    raw = request.args.get('last')
    if raw is None or raw == '':
        return config.DEFAULT_WINDOW
    if not _WINDOW_RE.fullmatch(raw):
        raise InvalidQueryParameter('last', raw, 'expected whole seconds')
    try:
        return int(raw)
    except ValueError:
        # Beyond the interpreter's integer string conversion limit
        raise InvalidQueryParameter('last', raw[:20] + '...', 'too large') from None


@bluetooth_bp.errorhandler(InvalidQueryParameter)
def _invalid_query(error: InvalidQueryParameter):
    return jsonify({
        'status': 'error',
        'message': str(error),
    }), 400


@bluetooth_bp.errorhandler(ScanStateError)
def _state_conflict(error: ScanStateError):
    return jsonify({
        'status': 'error',
        'message': str(error),
    }), 409


@bluetooth_bp.route('/devices')
def list_devices():
    """
    List devices seen within the window, strongest signal first.

    Query params:
        last: Window in seconds (default 60).

    Returns:
        JSON with device records.
    """
    window = _parse_window()
    devices = _context().registry.list_live(window)
    return jsonify({
        'status': 'ok',
        'window': window,
        'count': len(devices),
        'devices': [d.to_dict() for d in devices],
    })


@bluetooth_bp.route('/beacons')
def list_beacons():
    """List proximity beacons seen within the window, in first-seen order."""
    window = _parse_window()
    beacons = [d for d in _context().registry.list_since(window) if d.is_beacon]
    return jsonify({
        'status': 'ok',
        'window': window,
        'count': len(beacons),
        'beacons': [b.to_dict() for b in beacons],
    })


@bluetooth_bp.route('/start', methods=['POST'])
def start_scan():
    """Start the scan loop. 409 if already scanning."""
    controller = _context().controller
    controller.start()
    logger.info("Scan start requested")
    return jsonify({
        'status': 'started',
        'message': 'Request to start scanning accepted.',
        'session_duration': controller.session_duration,
    })


@bluetooth_bp.route('/stop', methods=['POST'])
def stop_scan():
    """Stop the scan loop. 409 if already stopped."""
    _context().controller.stop()
    return jsonify({
        'status': 'stopped',
        'message': 'Request to stop scanning accepted.',
    })


@bluetooth_bp.route('/status')
def scan_status():
    """Get scan controller status."""
    return jsonify(_context().controller.status().to_dict())
