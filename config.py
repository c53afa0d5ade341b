"""Configuration settings for blueblue application."""

from __future__ import annotations

import logging
import os
import sys

# Application version
VERSION = "1.2.0"


def _get_env(key: str, default: str) -> str:
    """Get environment variable with default."""
    return os.environ.get(f'BLUEBLUE_{key}', default)


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer with default."""
    try:
        return int(os.environ.get(f'BLUEBLUE_{key}', str(default)))
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float with default."""
    try:
        return float(os.environ.get(f'BLUEBLUE_{key}', str(default)))
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean with default."""
    val = os.environ.get(f'BLUEBLUE_{key}', '').lower()
    if val in ('true', '1', 'yes', 'on'):
        return True
    if val in ('false', '0', 'no', 'off'):
        return False
    return default


# Logging configuration
_log_level_str = _get_env('LOG_LEVEL', 'INFO').upper()
LOG_LEVEL = getattr(logging, _log_level_str, logging.INFO)
LOG_FORMAT = _get_env('LOG_FORMAT', '%(asctime)s - %(levelname)s - %(message)s')
LOG_FILE = _get_env('LOG_FILE', 'blueblue.log')

# Server settings
HOST = _get_env('HOST', '0.0.0.0')
PORT = _get_env_int('PORT', 23232)
DEBUG = _get_env_bool('DEBUG', False)
THREADED = _get_env_bool('THREADED', True)

# Scan settings
SCAN_DURATION = _get_env_float('SCAN_DURATION', 5.0)
DEFAULT_WINDOW = _get_env_int('DEFAULT_WINDOW', 60)
BASE_STATION = _get_env('BASE_STATION', 'Pi4')
ADAPTER = _get_env('ADAPTER', '')
AUTO_START = _get_env_bool('AUTO_START', False)

# Radio failure handling (0 retries: first fatal radio error stops the process)
RADIO_RETRIES = _get_env_int('RADIO_RETRIES', 0)
RADIO_RETRY_BACKOFF = _get_env_float('RADIO_RETRY_BACKOFF', 1.0)


def configure_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format=LOG_FORMAT,
        stream=sys.stderr
    )
    # Suppress Flask development server warning
    logging.getLogger('werkzeug').setLevel(LOG_LEVEL)

    if LOG_FILE:
        from utils.logging import attach_file_handler
        attach_file_handler('blueblue.scan', LOG_FILE)
