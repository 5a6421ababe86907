"""
Error taxonomy for the IndiePitcher SDK.

Every error raised by this package derives from IndiePitcherError, so callers
can catch one base class or a specific subclass.
"""

from typing import Any


class IndiePitcherError(Exception):
    """Base error class for SDK errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for logging or JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class RequestError(IndiePitcherError):
    """
    The API answered with a non-2xx status.

    Two request errors are equal when both the status code and the reason match.
    """

    def __init__(self, status_code: int, reason: str):
        super().__init__(f"Request failed with status {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RequestError):
            return NotImplemented
        return self.status_code == other.status_code and self.reason == other.reason

    def __hash__(self) -> int:
        return hash((self.status_code, self.reason))

    def __repr__(self) -> str:
        return f"RequestError(status_code={self.status_code!r}, reason={self.reason!r})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for logging or JSON output."""
        result = super().to_dict()
        result["status"] = self.status_code
        result["reason"] = self.reason
        return result


class DecodeError(IndiePitcherError):
    """A successful response or a custom property value could not be decoded."""


class ValidationError(IndiePitcherError):
    """Validation error for local input issues (nothing was sent)."""


class TransportError(IndiePitcherError):
    """The request never produced an HTTP response."""


class RequestTimeoutError(TransportError):
    """The request did not complete within the configured timeout."""


class ResponseTooLargeError(TransportError):
    """The response body exceeded the maximum allowed size."""
