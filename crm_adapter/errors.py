"""Error types surfaced by the adapter.

Hooks and callers may return or receive any ``Exception``; these classes
cover the failures the adapter itself produces.
"""

from __future__ import annotations

from typing import Any


class AdapterError(Exception):
    """Base class for adapter errors."""


class ConfigurationError(AdapterError):
    """Connection configuration is missing or malformed."""


class RequestNotBuiltError(AdapterError):
    """No before-hook established an endpoint for the request."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"No endpoint resolved for '{operation}'. "
            "The first before-hook must set config['endpoint'] or bind the request."
        )
        self.operation = operation


class RemoteCallError(AdapterError):
    """Transport or protocol failure talking to the remote API."""


class RemoteStatusError(RemoteCallError):
    """Remote API answered with an HTTP error status."""

    def __init__(self, status_code: int, body: Any = None) -> None:
        super().__init__(f"Remote API returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class RemoteApplicationError(AdapterError):
    """Remote call succeeded but the API reported a logical failure."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code
