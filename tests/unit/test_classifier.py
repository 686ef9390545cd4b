"""
Tests for response classification and body decoding.
"""

import errno
import json
import socket

import httpx
import msgpack
import pytest

from pubsub_http.errors import ErrorInfo
from pubsub_http.transport.classifier import (
    DecodeError,
    classify_network_error,
    classify_response,
    decode_body,
    media_type,
    network_error_code,
    render_body,
)

JSON = {"content-type": "application/json"}
MSGPACK = {"content-type": "application/x-msgpack"}


def _with_cause(exc: Exception, cause: BaseException) -> Exception:
    exc.__cause__ = cause
    return exc


class TestDecodeBody:
    """Tests for content-type based decoding."""

    def test_decode_json(self):
        """Should decode JSON bodies."""
        assert decode_body(JSON, b'{"ok": true}') == {"ok": True}

    def test_decode_json_with_charset(self):
        """Should ignore content-type parameters."""
        headers = {"content-type": "application/json; charset=utf-8"}
        assert decode_body(headers, b"[1, 2]") == [1, 2]

    def test_decode_msgpack(self):
        """Should decode msgpack bodies."""
        body = msgpack.packb({"name": "chan", "count": 3})
        assert decode_body(MSGPACK, body) == {"name": "chan", "count": 3}

    def test_unknown_type_passes_through(self):
        """Should return unrecognized bodies unchanged."""
        assert decode_body({"content-type": "text/plain"}, b"yes") == b"yes"

    def test_missing_content_type_passes_through(self):
        """Should return bodies with no content type unchanged."""
        assert decode_body({}, b"\x00\x01") == b"\x00\x01"

    def test_empty_body(self):
        """Should not try to decode an empty body."""
        assert decode_body(JSON, b"") == b""

    def test_malformed_json_raises(self):
        """Should raise DecodeError for malformed JSON."""
        with pytest.raises(DecodeError, match="application/json"):
            decode_body(JSON, b"{not json")

    def test_malformed_msgpack_raises(self):
        """Should raise DecodeError for truncated msgpack."""
        body = msgpack.packb({"a": "b" * 20})[:-5]
        with pytest.raises(DecodeError):
            decode_body(MSGPACK, body)

    def test_media_type(self):
        """Should lowercase and strip parameters."""
        assert media_type({"content-type": "Application/JSON; charset=utf-8"}) == "application/json"
        assert media_type({}) is None


class TestClassifySuccess:
    """Tests for responses below 300."""

    def test_success_json(self):
        """Should return decoded body with no error."""
        outcome = classify_response(200, JSON, b'{"ok": true}')

        assert outcome.is_success is True
        assert outcome.error is None
        assert outcome.body == {"ok": True}
        assert outcome.status_code == 200
        assert outcome.is_network_or_server_error is False

    def test_success_headers_lowercased(self):
        """Should expose headers with lowercase names."""
        outcome = classify_response(201, {"Content-Type": "application/json", "X-Id": "1"}, b"{}")

        assert outcome.headers["content-type"] == "application/json"
        assert outcome.headers["x-id"] == "1"

    def test_success_no_content(self):
        """Should handle 204 with empty body."""
        outcome = classify_response(204, {}, b"")

        assert outcome.is_success is True
        assert outcome.body == b""

    def test_success_malformed_body_is_error(self):
        """Should turn an undecodable success body into a non-retryable error."""
        outcome = classify_response(200, JSON, b"{oops")

        assert outcome.is_error is True
        assert "Unable to decode" in outcome.error.message
        assert outcome.status_code == 200
        assert outcome.is_network_or_server_error is False
        assert outcome.body == b"{oops"

    def test_as_tuple(self):
        """Should unpack into (error, body, headers, is_error, status_code)."""
        outcome = classify_response(200, JSON, b'{"ok": true}')

        error, body, headers, is_error, status_code = outcome.as_tuple()
        assert error is None
        assert body == {"ok": True}
        assert headers == {"content-type": "application/json"}
        assert is_error is False
        assert status_code == 200


class TestClassifyError:
    """Tests for responses at or above 300."""

    def test_json_error_payload(self):
        """Should surface the server's error payload exactly."""
        body = json.dumps({"error": {"message": "m", "code": 40100, "statusCode": 401}}).encode()

        outcome = classify_response(401, JSON, body)

        assert outcome.is_error is True
        assert outcome.error == ErrorInfo("m", 40100, 401)
        assert outcome.error.message == "m"
        assert outcome.error.code == 40100
        assert outcome.error.status_code == 401
        assert outcome.status_code == 401
        assert outcome.is_network_or_server_error is False

    def test_msgpack_error_payload(self):
        """Should decode msgpack error payloads."""
        body = msgpack.packb({"error": {"message": "gone", "code": 40400, "statusCode": 404}})

        outcome = classify_response(404, MSGPACK, body)

        assert outcome.error == ErrorInfo("gone", 40400, 404)
        assert outcome.body["error"]["code"] == 40400

    def test_server_error_payload_is_retryable(self):
        """Should tag 500-504 as network or server errors."""
        body = json.dumps({"error": {"message": "down", "code": 50003, "statusCode": 503}}).encode()

        outcome = classify_response(503, JSON, body)

        assert outcome.error.status_code == 503
        assert outcome.is_network_or_server_error is True

    def test_payload_without_status_code_uses_response_status(self):
        """Should fill the status code from the response and keep 503 retryable."""
        body = json.dumps({"error": {"message": "busy", "code": 50300}}).encode()

        outcome = classify_response(503, JSON, body)

        assert outcome.error.status_code == 503
        assert outcome.is_network_or_server_error is True

    def test_retryability_follows_response_status(self):
        """Should judge retryability by the response status, not the payload."""
        body = json.dumps({"error": {"message": "odd", "statusCode": 400}}).encode()

        outcome = classify_response(503, JSON, body)

        assert outcome.error.status_code == 400
        assert outcome.is_network_or_server_error is True

    def test_malformed_payload_status_code(self):
        """Should not fail on a non-numeric statusCode in the payload."""
        body = json.dumps({"error": {"message": "m", "statusCode": "bad"}}).encode()

        outcome = classify_response(400, JSON, body)

        assert outcome.is_error is True
        assert outcome.error.message == "m"
        assert outcome.error.status_code == 400
        assert outcome.is_network_or_server_error is False

    def test_error_from_headers(self):
        """Should synthesize an error from error headers."""
        headers = {"x-ably-errormessage": "Channel denied", "x-ably-errorcode": "40160"}

        outcome = classify_response(403, headers, b"")

        assert outcome.error.message == "Channel denied"
        assert outcome.error.code == 40160
        assert outcome.error.status_code == 403

    def test_error_header_non_numeric_code(self):
        """Should keep non-numeric error codes as strings."""
        headers = {"x-ably-errormessage": "odd", "x-ably-errorcode": "E42"}

        outcome = classify_response(400, headers, b"")

        assert outcome.error.code == "E42"

    def test_generic_error_message(self):
        """Should fall back to a generic message with status and body."""
        outcome = classify_response(502, {"content-type": "text/html"}, b"<h1>Bad gateway</h1>")

        assert outcome.error.message == (
            "Error response received from server: 502 body was: <h1>Bad gateway</h1>"
        )
        assert outcome.error.code is None
        assert outcome.error.status_code == 502
        assert outcome.is_network_or_server_error is True

    def test_generic_error_json_without_error_key(self):
        """Should render decoded bodies lacking an error key."""
        outcome = classify_response(400, JSON, b'{"detail": "nope"}')

        assert outcome.error.message == (
            'Error response received from server: 400 body was: {"detail": "nope"}'
        )
        assert outcome.body == {"detail": "nope"}

    def test_malformed_error_body(self):
        """Should keep an undecodable error body raw."""
        outcome = classify_response(500, JSON, b"<html>")

        assert outcome.body == b"<html>"
        assert outcome.error.status_code == 500
        assert "<html>" in outcome.error.message

    def test_redirect_is_error(self):
        """Should treat 3xx as failure."""
        outcome = classify_response(302, {"location": "/elsewhere"}, b"")

        assert outcome.is_error is True
        assert outcome.is_network_or_server_error is False

    def test_raise_for_error(self):
        """Should raise the ErrorInfo on failure."""
        outcome = classify_response(404, {}, b"")

        with pytest.raises(ErrorInfo):
            outcome.raise_for_error()

    def test_render_body_truncates(self):
        """Should truncate long renderings."""
        text = render_body(b"x" * 5000)

        assert len(text) == 1003
        assert text.endswith("...")


class TestNetworkErrors:
    """Tests for transport exception mapping."""

    def test_timeout(self):
        """Should map timeouts to ETIMEDOUT."""
        assert network_error_code(httpx.ConnectTimeout("t")) == "ETIMEDOUT"
        assert network_error_code(httpx.ReadTimeout("t")) == "ETIMEDOUT"
        assert network_error_code(httpx.PoolTimeout("t")) == "ETIMEDOUT"
        assert network_error_code(TimeoutError()) == "ETIMEDOUT"

    def test_dns_failure(self):
        """Should map resolver failures to ENOTFOUND."""
        exc = _with_cause(httpx.ConnectError("dns"), socket.gaierror(-2, "Name or service not known"))

        assert network_error_code(exc) == "ENOTFOUND"

    def test_connection_refused(self):
        """Should map refused connections to ECONNREFUSED."""
        exc = _with_cause(httpx.ConnectError("refused"), ConnectionRefusedError(errno.ECONNREFUSED, "x"))

        assert network_error_code(exc) == "ECONNREFUSED"

    def test_connection_reset(self):
        """Should map resets to ECONNRESET."""
        exc = _with_cause(httpx.ReadError("reset"), ConnectionResetError(errno.ECONNRESET, "x"))

        assert network_error_code(exc) == "ECONNRESET"

    def test_oserror_errno(self):
        """Should use the errno name of other OS errors."""
        exc = _with_cause(httpx.ConnectError("unreachable"), OSError(errno.EHOSTUNREACH, "x"))

        assert network_error_code(exc) == "EHOSTUNREACH"

    def test_connect_error_without_cause(self):
        """Should treat unexplained connect failures as refused."""
        assert network_error_code(httpx.ConnectError("failed")) == "ECONNREFUSED"

    def test_disconnect(self):
        """Should treat a dropped connection as a reset."""
        assert network_error_code(httpx.RemoteProtocolError("disconnected")) == "ECONNRESET"

    def test_non_network_failure(self):
        """Should use the class name for non-network failures."""
        assert network_error_code(httpx.UnsupportedProtocol("ftp")) == "UnsupportedProtocol"

    def test_classify_network_error(self):
        """Should wrap the exception without a status code."""
        exc = httpx.ConnectTimeout("timed out")

        outcome = classify_network_error(exc)

        assert outcome.is_error is True
        assert outcome.status_code is None
        assert outcome.body is None
        assert outcome.error.code == "ETIMEDOUT"
        assert outcome.error.status_code is None
        assert outcome.error.cause is exc
        assert outcome.is_network_or_server_error is True

    def test_classify_non_retryable_network_error(self):
        """Should not tag non-network failures as retryable."""
        outcome = classify_network_error(httpx.UnsupportedProtocol("ftp"))

        assert outcome.is_network_or_server_error is False
