"""Custom exception hierarchy for pyzmon."""

from __future__ import annotations


class MonitorError(Exception):
    """Base exception for all pyzmon errors."""


class MonitorConfigError(MonitorError):
    """Invalid or missing configuration."""


class MonitorStateError(MonitorError):
    """Monitor used in the wrong lifecycle state (e.g. started twice)."""


class StorageError(MonitorError):
    """Persisted state could not be read or written.

    A missing file is *not* an error (it means "no prior state"); this is
    raised for every other I/O or decode failure.
    """

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class PacketDecodeError(MonitorError):
    """A transport payload could not be turned into a packet event."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)
