"""Exception types raised by disector."""

from __future__ import annotations


class DisectorError(Exception):
    """Base class for disector failures."""


class UnknownDeviceError(DisectorError):
    """Raised when a device name is not present in any device registry."""

    def __init__(self, name: str):
        super().__init__(f"Unknown device: {name!r}")
        self.name = name


class BaselineError(DisectorError):
    """Raised when a session's baseline is missing or captured twice."""
