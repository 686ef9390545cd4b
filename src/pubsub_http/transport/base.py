"""
Request and response types for the REST transport.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pubsub_http.errors import ErrorInfo

UriBuilder = Callable[[str], str]


class HttpMethod(str, Enum):
    """HTTP methods used by REST operations."""

    GET = "get"
    DELETE = "delete"
    POST = "post"
    PUT = "put"
    PATCH = "patch"

    @classmethod
    def parse(cls, value: "str | HttpMethod") -> "HttpMethod":
        """
        Normalize a method name.

        Raises:
            ValueError: If the method is not supported
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from None


METHODS_WITHOUT_BODY = frozenset({HttpMethod.GET, HttpMethod.DELETE})
METHODS_WITH_BODY = frozenset(set(HttpMethod) - METHODS_WITHOUT_BODY)


@dataclass(frozen=True)
class RequestDescriptor:
    """
    One logical REST request, independent of the host it is sent to.

    uri_builder maps a host to the full URI, so the same descriptor yields a
    different URI on each retry.
    """

    method: HttpMethod
    uri_builder: UriBuilder
    headers: Mapping[str, str] | None = None
    body: Any = None
    params: Mapping[str, Any] | None = None

    def uri_for(self, host: str) -> str:
        """Get the full URI for a host."""
        return self.uri_builder(host)


@dataclass
class ResponseOutcome:
    """
    Result of a request: either a success or a failure with an ErrorInfo.

    Failures without a response (network errors) have status_code None.
    """

    error: ErrorInfo | None = None
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None
    is_network_or_server_error: bool = False
    host: str | None = None
    hosts_tried: list[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        """Check if the request failed."""
        return self.error is not None

    @property
    def is_success(self) -> bool:
        """Check if the request succeeded."""
        return self.error is None

    def as_tuple(self) -> tuple[ErrorInfo | None, Any, dict[str, str], bool, int | None]:
        """Get (error, body, headers, is_error, status_code)."""
        return self.error, self.body, self.headers, self.is_error, self.status_code

    def raise_for_error(self) -> "ResponseOutcome":
        """
        Raise the ErrorInfo if the request failed.

        Returns:
            self, for chaining on success
        """
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.is_success,
            "status_code": self.status_code,
            "host": self.host,
            "hosts_tried": list(self.hosts_tried),
            "error": self.error.to_dict() if self.error else None,
        }
