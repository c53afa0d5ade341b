"""Logging utilities for blueblue application."""

from __future__ import annotations

import logging
import os
import sys

from config import LOG_LEVEL, LOG_FORMAT


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for a module."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL)
        logger.propagate = False  # Prevent duplicate logs from parent handlers
    return logger


def attach_file_handler(name: str, path: str) -> logging.Handler:
    """Append records of a logger to a file (scan lifecycle log)."""
    logger = get_logger(name)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(path):
            return handler
    handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return handler


# Pre-configured loggers for each module
app_logger = get_logger('blueblue')
scan_logger = get_logger('blueblue.scan')
radio_logger = get_logger('blueblue.radio')
http_logger = get_logger('blueblue.http')
