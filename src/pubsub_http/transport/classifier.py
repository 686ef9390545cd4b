"""
Response classification.

Turns a raw status code, headers and body into a ResponseOutcome, decoding
the body according to its declared content type. Transport exceptions are
mapped onto the network error codes the dispatcher knows how to retry.
"""

import errno
import json
import logging
import socket
from collections.abc import Iterator, Mapping
from typing import Any

import httpx
import msgpack

from pubsub_http.errors import ErrorInfo, should_fallback
from pubsub_http.transport.base import ResponseOutcome

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
MSGPACK_CONTENT_TYPE = "application/x-msgpack"

ERROR_MESSAGE_HEADER = "x-ably-errormessage"
ERROR_CODE_HEADER = "x-ably-errorcode"

# Longest body rendering embedded in a synthesized error message
MAX_BODY_RENDER_LENGTH = 1000


class DecodeError(ValueError):
    """Raised when a body does not match its declared content type."""

    pass


def media_type(headers: Mapping[str, str]) -> str | None:
    """Get the media type from a Content-Type header, without parameters."""
    content_type = _header(headers, "content-type")
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower()


def decode_body(headers: Mapping[str, str], body: bytes) -> Any:
    """
    Decode a body according to its declared content type.

    Unrecognized content types are returned unchanged.

    Raises:
        DecodeError: If the body is malformed for its declared type
    """
    kind = media_type(headers)
    if not body or kind not in (JSON_CONTENT_TYPE, MSGPACK_CONTENT_TYPE):
        return body

    try:
        if kind == JSON_CONTENT_TYPE:
            return json.loads(body)
        return msgpack.unpackb(body, raw=False)
    except (ValueError, TypeError, msgpack.UnpackException) as e:
        raise DecodeError(f"Unable to decode {kind} response body: {e}") from e


def render_body(body: Any) -> str:
    """Render a body as text for inclusion in an error message."""
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
    elif isinstance(body, str):
        text = body
    else:
        try:
            text = json.dumps(body, default=repr)
        except (TypeError, ValueError):
            text = repr(body)
    if len(text) > MAX_BODY_RENDER_LENGTH:
        text = text[:MAX_BODY_RENDER_LENGTH] + "..."
    return text


def classify_response(
    status_code: int,
    headers: Mapping[str, str],
    body: bytes,
) -> ResponseOutcome:
    """
    Classify a received response.

    Args:
        status_code: HTTP status code
        headers: Response headers
        body: Raw response body

    Returns:
        Success for status < 300, failure otherwise
    """
    headers = {k.lower(): v for k, v in headers.items()}

    if status_code < 300:
        try:
            decoded = decode_body(headers, body)
        except DecodeError as e:
            logger.debug(f"Malformed success body: {e}")
            return ResponseOutcome(
                error=ErrorInfo(str(e), cause=e.__cause__),
                body=body,
                headers=headers,
                status_code=status_code,
            )
        return ResponseOutcome(body=decoded, headers=headers, status_code=status_code)

    try:
        decoded = decode_body(headers, body)
    except DecodeError as e:
        logger.debug(f"Malformed error body for status {status_code}: {e}")
        decoded = body

    error_payload = decoded.get("error") if isinstance(decoded, Mapping) else None
    if isinstance(error_payload, Mapping):
        error = ErrorInfo.from_values(error_payload, status_code)
    else:
        error = ErrorInfo(
            _header(headers, ERROR_MESSAGE_HEADER)
            or f"Error response received from server: {status_code} body was: {render_body(decoded)}",
            _parse_error_code(_header(headers, ERROR_CODE_HEADER)),
            status_code,
        )

    return ResponseOutcome(
        error=error,
        body=decoded,
        headers=headers,
        status_code=status_code,
        is_network_or_server_error=should_fallback(error, status_code),
    )


def classify_network_error(exc: Exception) -> ResponseOutcome:
    """
    Wrap a transport exception raised before any response was received.

    The body is never decoded; the exception is kept as the error's cause.
    """
    code = network_error_code(exc)
    error = ErrorInfo(
        f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__,
        code,
        None,
        cause=exc,
    )
    error.__cause__ = exc
    return ResponseOutcome(error=error, is_network_or_server_error=should_fallback(error))


def network_error_code(exc: Exception) -> str:
    """
    Map a transport exception to a network error code.

    Returns:
        Errno-style code such as ETIMEDOUT, or the exception class name when
        the failure is not a network condition (e.g. an invalid URL)
    """
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return "ETIMEDOUT"

    for cause in _iter_causes(exc):
        if isinstance(cause, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(cause, ConnectionRefusedError):
            return "ECONNREFUSED"
        if isinstance(cause, ConnectionResetError):
            return "ECONNRESET"
        if isinstance(cause, TimeoutError):
            return "ETIMEDOUT"
        if isinstance(cause, OSError) and cause.errno in errno.errorcode:
            return errno.errorcode[cause.errno]

    if isinstance(exc, httpx.ConnectError):
        return "ECONNREFUSED"
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return "ECONNRESET"
    return type(exc).__name__


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc.__cause__ or exc.__context__
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return value


def _parse_error_code(value: str | None) -> int | str | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return value
