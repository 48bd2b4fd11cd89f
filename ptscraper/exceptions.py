"""Custom exception hierarchy for PtScraper.

Three failure classes reach callers of the engine, and each maps to a
different remedy in the orchestration layer:

    - ConfigError: the service configuration cannot be resolved ("fix
      configuration"). Fatal, never retried.
    - NetworkError: the transport failed or the server answered with an
      error status ("retry or report outage").
    - AuthenticationError: the transport succeeded but the response looks
      like a login page ("re-authenticate").

A field that cannot be extracted is not an error at all: it resolves to its
zero value and is only logged.
"""

from datetime import UTC, datetime
from typing import Any


class PtScraperError(Exception):
    """Base exception for all PtScraper errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class ConfigError(PtScraperError):
    """Raised when an effective service configuration cannot be resolved.

    Covers a missing base URL, schema violations in the declarative data and
    references to filters that are not registered.
    """

    def __init__(self, field: str, reason: str, value: Any = None) -> None:
        super().__init__(
            message=f"Configuration invalid for '{field}': {reason}",
            context={"field": field, "value": value, "reason": reason},
        )
        self.field = field


class NetworkError(PtScraperError):
    """Raised when a request fails at the transport layer.

    Either the server answered with a status above 400 or no response was
    received at all (timeouts, DNS and connection failures).
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Request to '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )
        self.url = url
        self.status_code = status_code


class AuthenticationError(PtScraperError):
    """Raised when a successful response is classified as unauthenticated.

    The session cookies for the site are missing or expired; callers should
    trigger their re-authentication flow rather than retry.
    """

    def __init__(self, url: str, site: str) -> None:
        super().__init__(
            message=f"Session for '{site}' is not authenticated",
            context={"url": url, "site": site},
        )
        self.url = url
        self.site = site


class LoggingInitializationError(PtScraperError):
    """Raised when the logging system fails to initialize."""

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
