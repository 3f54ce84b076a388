"""Exception types for Parley."""

from __future__ import annotations


class ParleyError(Exception):
    """Base exception for Parley."""


class SessionError(ParleyError):
    """Raised when a runtime session cannot be opened or used."""


class TurnTimeoutError(ParleyError):
    """Raised when a turn does not finish within the configured timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"No response from the assistant after {timeout:g}s")
        self.timeout = timeout
