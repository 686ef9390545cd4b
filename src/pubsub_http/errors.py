"""
Error types shared by the REST transport.

ErrorInfo is the single error shape handed back to callers, whether the
failure came from the network, from a non-2xx response, or from a body that
could not be decoded.
"""

from collections.abc import Mapping
from typing import Any

# Network error codes that mean "this host is unreachable right now"
RETRYABLE_ERROR_CODES = frozenset(
    {
        "ENETUNREACH",
        "EHOSTUNREACH",
        "EHOSTDOWN",
        "ETIMEDOUT",
        "ESOCKETTIMEDOUT",
        "ENOTFOUND",
        "ECONNRESET",
        "ECONNREFUSED",
    }
)

# Inclusive range of server status codes worth trying another host for
RETRYABLE_STATUS_MIN = 500
RETRYABLE_STATUS_MAX = 504


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


class ErrorInfo(Exception):
    """
    Structured error returned for a failed request.

    Attributes:
        message: Human readable description
        code: Service error code (int), network error code (str) or None
        status_code: HTTP status code, None when no response was received
        cause: Underlying transport exception, if any
    """

    def __init__(
        self,
        message: str,
        code: str | int | None = None,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.cause = cause

    @classmethod
    def from_values(
        cls, values: Mapping[str, Any], default_status_code: int | None = None
    ) -> "ErrorInfo":
        """
        Build an ErrorInfo from a server error payload.

        Accepts both camelCase (wire) and snake_case keys for the status code.

        Args:
            values: Error payload
            default_status_code: Used when the payload has no usable status code

        Returns:
            ErrorInfo instance
        """
        status_code = _parse_status_code(values.get("statusCode", values.get("status_code")))
        return cls(
            message=str(values.get("message", "")),
            code=values.get("code"),
            status_code=status_code if status_code is not None else default_status_code,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "message": self.message,
            "code": self.code,
            "statusCode": self.status_code,
        }

    def __str__(self) -> str:
        result = f"[ErrorInfo: {self.message}"
        if self.status_code is not None:
            result += f"; statusCode={self.status_code}"
        if self.code is not None:
            result += f"; code={self.code}"
        return result + "]"

    def __repr__(self) -> str:
        return (
            f"ErrorInfo(message={self.message!r}, code={self.code!r}, "
            f"status_code={self.status_code!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorInfo):
            return NotImplemented
        return (
            self.message == other.message
            and self.code == other.code
            and self.status_code == other.status_code
        )

    __hash__ = Exception.__hash__


def _parse_status_code(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _is_retryable_status(status_code: int | None) -> bool:
    return status_code is not None and RETRYABLE_STATUS_MIN <= status_code <= RETRYABLE_STATUS_MAX


def should_fallback(error: ErrorInfo | None, status_code: int | None = None) -> bool:
    """
    Check if a failed request should be retried against another host.

    Args:
        error: Error from the failed attempt
        status_code: HTTP status of the response, when one was received; takes
            precedence over the status code carried by the error

    Returns:
        True for recognized network failures and 500-504 responses
    """
    if error is None:
        return False

    if isinstance(error.code, str) and error.code in RETRYABLE_ERROR_CODES:
        return True

    if status_code is not None:
        return _is_retryable_status(status_code)
    return _is_retryable_status(error.status_code)
