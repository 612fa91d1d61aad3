"""logrouter: Exception hierarchy.

All exceptions raised by the service inherit from LogRouterError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    LogRouterError
    ├── ConfigurationError
    │   └── AdapterConfigError
    ├── AdapterError
    │   ├── InvalidAdapterTypeError
    │   └── MandatoryAdapterError
    ├── BusError
    │   ├── BusTimeoutError
    │   └── BusNoRespondersError
    ├── RedactionError
    │   └── DirectoryUnavailableError
    └── StreamAuthError

None of these are meant to cross the bus transport boundary: control-plane
handlers turn them into ``{"error": ...}`` replies and delivery paths log
them.
"""

from __future__ import annotations

from typing import Any


class LogRouterError(Exception):
    """Base exception for all logrouter errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(LogRouterError):
    """Service or adapter configuration is unusable."""


class AdapterConfigError(ConfigurationError):
    """An adapter could not be built from the supplied raw configuration."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(reason, context={"kind": kind})
        self.kind = kind


# ---------------------------------------------------------------------------
# Adapter registry
# ---------------------------------------------------------------------------


class AdapterError(LogRouterError):
    """Base for registry-level adapter errors."""


class InvalidAdapterTypeError(AdapterError):
    """The kind is unknown, or has no active adapter to act upon."""

    def __init__(self, kind: str) -> None:
        super().__init__("Invalid logger type", context={"kind": kind})
        self.kind = kind


class MandatoryAdapterError(AdapterError):
    """The mandatory basic adapter cannot be removed through the public path."""

    def __init__(self, kind: str) -> None:
        super().__init__("Basic logger is not optional", context={"kind": kind})
        self.kind = kind


# ---------------------------------------------------------------------------
# Bus transport
# ---------------------------------------------------------------------------


class BusError(LogRouterError):
    """A publish / subscribe / request call on the bus failed."""


class BusTimeoutError(BusError):
    """A request did not receive a reply within its timeout."""

    def __init__(self, subject: str, timeout: float) -> None:
        super().__init__(
            f"Request on '{subject}' timed out after {timeout}s",
            context={"subject": subject, "timeout": timeout},
        )
        self.subject = subject
        self.timeout = timeout


class BusNoRespondersError(BusError):
    """A request was published but nobody is subscribed to answer it."""

    def __init__(self, subject: str) -> None:
        super().__init__(
            f"No responders available for '{subject}'",
            context={"subject": subject},
        )
        self.subject = subject


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------


class RedactionError(LogRouterError):
    """Base for redaction failures."""


class DirectoryUnavailableError(RedactionError):
    """The secret directory could not be queried or returned garbage."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Secret directory unavailable: {reason}", context={"reason": reason})
        self.reason = reason


# ---------------------------------------------------------------------------
# Live stream
# ---------------------------------------------------------------------------


class StreamAuthError(LogRouterError):
    """A live-stream viewer presented a missing, invalid or non-admin token."""
