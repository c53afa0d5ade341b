"""Error classes for beacon scanning.

Decode errors stay inside the single advertisement being processed, state
errors surface to the HTTP layer as 409, query errors as 400. Radio errors
describe how a scan session ended.
"""

from __future__ import annotations

from typing import Optional


class BlueblueError(Exception):
    """Base exception for the scanning core."""


class MalformedPayload(BlueblueError):
    """Raised when advertisement bytes are shorter than the layout requires."""

    def __init__(self, length: int, required: int, field: str = 'manufacturer data'):
        super().__init__(f"{field} is {length} bytes, need at least {required}")
        self.length = length
        self.required = required
        self.field = field


class ScanStateError(BlueblueError):
    """Raised when a start/stop request does not match the scan state."""


class AlreadyScanning(ScanStateError):
    def __init__(self):
        super().__init__("Already scanning.")


class AlreadyStopped(ScanStateError):
    def __init__(self):
        super().__init__("Already stopped.")


class InvalidQueryParameter(BlueblueError):
    """Raised when a query parameter cannot be used as given."""

    def __init__(self, name: str, value: object, reason: Optional[str] = None):
        msg = f"Invalid value for '{name}': {value!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.name = name
        self.value = value


class RadioError(BlueblueError):
    """Base class for scan session outcomes reported by the radio layer."""


class RadioSessionTimeout(RadioError):
    """The session ran for its full duration. Expected; scanning resumes."""

    def __init__(self, duration: float):
        super().__init__(f"Scan session of {duration}s complete")
        self.duration = duration


class RadioSessionCanceled(RadioError):
    """The session was cut short by a stop request."""

    def __init__(self):
        super().__init__("Scan session canceled")


class RadioFatalFailure(RadioError):
    """Any other radio failure."""

    def __init__(self, reason: str):
        super().__init__(f"Radio failure: {reason}")
        self.reason = reason
