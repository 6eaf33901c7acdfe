"""
Exception hierarchy for the grid-assist daemon.

Only the boundary raises these: events that fail parsing and startup
files that cannot be used. The control core itself never raises; every
failure there degrades to holding the last known value.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations


class GridAssistError(Exception):
    """Base exception for all grid-assist errors."""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(GridAssistError):
    """Startup configuration or priming file could not be used."""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        super().__init__(f"Config Error: {message}", recoverable)


class EventRejectedError(GridAssistError):
    """An inbound telemetry event was malformed and has been dropped."""

    def __init__(self, message: str, kind: str | None = None) -> None:
        self.kind = kind
        super().__init__(f"Event rejected: {message}", recoverable=True)
