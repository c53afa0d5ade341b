"""Pytest configuration and fixtures."""

from __future__ import annotations

import threading

import pytest

from app import create_app
from utils.bluetooth import RadioSessionCanceled, RadioSessionTimeout, create_scan_context


class FakeRadio:
    """Radio stand-in: replays queued advertisements, then waits out the session."""

    def __init__(self, events=None, failures=None):
        self.events = list(events or [])
        self.failures = list(failures or [])
        self.sessions = 0
        self.session_started = threading.Event()
        self.adapter = 'fake0'

    def scan(self, handler, duration, cancel):
        self.sessions += 1
        self.session_started.set()
        if self.failures:
            raise self.failures.pop(0)
        while self.events:
            handler(self.events.pop(0))
        if cancel.wait(duration):
            raise RadioSessionCanceled()
        raise RadioSessionTimeout(duration)


@pytest.fixture
def fake_radio():
    return FakeRadio()


@pytest.fixture
def scan_context(fake_radio):
    """Registry and controller wired to a fake radio; never exits the process."""
    context = create_scan_context(
        radio=fake_radio,
        session_duration=0.05,
        base_station='test-station',
        retries=0,
        on_fatal=lambda error: None,
    )
    yield context
    if context.controller.is_scanning:
        context.controller.stop()
    context.controller.join(timeout=2)


@pytest.fixture
def app(scan_context):
    """Create application for testing."""
    flask_app = create_app(scan_context)
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
