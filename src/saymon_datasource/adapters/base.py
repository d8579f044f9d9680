"""
Error types shared by the datasource and its transport.

The datasource performs no recovery of its own: every error raised here reaches
the caller as-is, which is responsible for reporting it.
"""

from __future__ import annotations

from typing import Optional


class AdapterError(RuntimeError):
    """Raised when the datasource encounters a non-recoverable error."""


class MultipleQueriesUnsupported(AdapterError):
    """Raised when a query batch holds more than one eligible target."""

    def __init__(self, count: int) -> None:
        super().__init__(f"Multiple queries are not supported yet ({count} eligible targets).")
        self.count = count


class APIError(AdapterError):
    """Raised when a call to the monitoring backend fails."""


class TransportError(APIError):
    """Network failure or error status reported by the HTTP transport."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedPayload(APIError):
    """Raised when a backend response does not have the documented shape."""


class InvalidTimeRange(AdapterError):
    """Raised when a requested time range cannot be interpreted."""
