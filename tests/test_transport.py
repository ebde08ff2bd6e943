"""
Tests for response classification and the request executor.
"""

import json

import httpx
import pytest
import respx

from cosmetica_api import (
    ApplicationError,
    FatalError,
    FatalServerError,
    HandshakeError,
    RecoverableError,
    RequestExecutor,
    SafeURL,
    TransportError,
    ValidationError,
    Value,
    classify_response,
    is_cosmetica_error,
    is_retryable_error,
)


SOURCE = "https://svc.example/get/info?timestamp=1&token="


# =============================================================================
# Classification
# =============================================================================

class TestClassifyResponse:
    """Tests for classify_response."""

    def test_json_value(self):
        outcome = classify_response(200, '{"x": 1}', SOURCE)
        assert outcome == Value({"x": 1}, SOURCE)

    def test_embedded_error(self):
        outcome = classify_response(200, '{"error": "bad token"}', SOURCE)
        assert isinstance(outcome, RecoverableError)
        assert outcome.kind == "application"
        assert outcome.message == "bad token"

    def test_html_gateway_error_is_fatal(self):
        outcome = classify_response(503, "<html>502 Bad Gateway</html>", SOURCE)
        assert outcome == FatalError(503, SOURCE)

    def test_json_500_is_application_error(self):
        outcome = classify_response(500, '{"error": "oops"}', SOURCE)
        assert isinstance(outcome, RecoverableError)
        assert outcome.kind == "application"
        assert outcome.message == "oops"
        assert outcome.status_code == 500

    def test_json_500_without_error_is_value(self):
        assert isinstance(classify_response(500, '{"status": "degraded"}', SOURCE), Value)

    def test_json_array_value(self):
        assert classify_response(200, '["a", "b"]', SOURCE) == Value(["a", "b"], SOURCE)

    def test_non_json_client_error(self):
        outcome = classify_response(404, "Not Found", SOURCE)
        assert isinstance(outcome, RecoverableError)
        assert outcome.kind == "application"

    def test_empty_5xx_is_fatal(self):
        assert classify_response(502, "", SOURCE) == FatalError(502, SOURCE)


class TestOutcomeUnwrap:
    """Tests for Outcome.unwrap."""

    def test_value(self):
        assert Value(3, SOURCE).unwrap() == 3

    def test_transport(self):
        with pytest.raises(TransportError):
            RecoverableError("transport", "timed out", SOURCE).unwrap()

    def test_application(self):
        with pytest.raises(ApplicationError) as exc_info:
            RecoverableError("application", "bad token", SOURCE).unwrap()
        assert exc_info.value.reason == "bad token"
        assert exc_info.value.source_url == SOURCE

    def test_fatal(self):
        with pytest.raises(FatalServerError) as exc_info:
            FatalError(503, SOURCE).unwrap()
        assert exc_info.value.status_code == 503


# =============================================================================
# Executor
# =============================================================================

class TestRequestExecutor:
    """Tests for RequestExecutor."""

    @respx.mock
    def test_get_sends_request_url_and_reports_display_url(self):
        route = respx.get(host="svc.example", path="/get/info").mock(
            return_value=httpx.Response(200, json={"x": 1})
        )
        seen = []
        url = SafeURL.of("https://svc.example/get/info?timestamp=1", "s3cret")

        with RequestExecutor(url_logger=seen.append) as executor:
            outcome = executor.execute(url)

        assert outcome == Value({"x": 1}, url.display_url)
        assert route.calls.last.request.url.params["token"] == "s3cret"
        assert seen == [url.display_url]

    @respx.mock
    def test_post_sends_json(self):
        route = respx.post(host="svc.example", path="/client/upload").mock(
            return_value=httpx.Response(200, json={"success": True})
        )
        url = SafeURL.of("https://svc.example/client/upload?timestamp=1", "m1")

        with RequestExecutor() as executor:
            outcome = executor.execute(url, "POST", {"name": "cape"})

        assert outcome.ok
        assert json.loads(route.calls.last.request.content) == {"name": "cape"}

    @respx.mock
    def test_timeout_is_transport_error(self):
        respx.get(host="svc.example", path="/slow").mock(side_effect=httpx.ReadTimeout)
        url = SafeURL.of("https://svc.example/slow?timestamp=1", "s3cret")

        with RequestExecutor(timeout=0.5) as executor:
            outcome = executor.execute(url)

        assert isinstance(outcome, RecoverableError)
        assert outcome.kind == "transport"
        assert outcome.source_url == url.display_url
        assert "s3cret" not in outcome.message

    @respx.mock
    def test_connect_error_is_transport_error(self):
        respx.get(host="svc.example", path="/down").mock(side_effect=httpx.ConnectError)

        with RequestExecutor() as executor:
            outcome = executor.execute(SafeURL.of("https://svc.example/down", "s3cret"))

        assert isinstance(outcome, RecoverableError)
        assert outcome.kind == "transport"

    @respx.mock
    def test_fatal_server_error(self):
        respx.get(host="svc.example", path="/get/info").mock(
            return_value=httpx.Response(503, text="<html>502 Bad Gateway</html>")
        )
        url = SafeURL.of("https://svc.example/get/info", "s3cret")

        with RequestExecutor() as executor:
            outcome = executor.execute(url)

        assert outcome == FatalError(503, url.display_url)

    @respx.mock
    def test_raw_body(self):
        respx.get("https://id.example/key").mock(
            return_value=httpx.Response(200, content=b"\x30\x82\x01")
        )

        with RequestExecutor() as executor:
            outcome = executor.execute_raw(SafeURL.direct("https://id.example/key"))

        assert outcome == Value(b"\x30\x82\x01", "https://id.example/key")

    @respx.mock
    def test_raw_no_content_is_success(self):
        respx.post("https://session.example/join").mock(return_value=httpx.Response(204))

        with RequestExecutor() as executor:
            outcome = executor.execute_raw(SafeURL.direct("https://session.example/join"), "POST", {})

        assert outcome.ok

    @respx.mock
    def test_raw_client_error(self):
        respx.post("https://session.example/join").mock(
            return_value=httpx.Response(403, json={"path": "/join"})
        )

        with RequestExecutor() as executor:
            outcome = executor.execute_raw(SafeURL.direct("https://session.example/join"), "POST", {})

        assert isinstance(outcome, RecoverableError)
        assert outcome.status_code == 403

    def test_unsupported_method(self):
        with RequestExecutor() as executor:
            with pytest.raises(ValidationError):
                executor.execute(SafeURL.direct("https://svc.example/x"), "DELETE")


# =============================================================================
# Error helpers
# =============================================================================

class TestErrorHelpers:
    """Tests for is_cosmetica_error, is_retryable_error and to_dict."""

    def test_transport_is_retryable(self):
        assert is_retryable_error(TransportError("timed out", SOURCE))

    def test_non_retryable_transport(self):
        assert not is_retryable_error(TransportError("bad certificate", SOURCE, retryable=False))

    def test_fatal_is_retryable(self):
        assert is_retryable_error(FatalServerError(502, SOURCE))

    def test_application_is_not_retryable(self):
        assert not is_retryable_error(ApplicationError("Invalid token", SOURCE))

    def test_handshake_follows_cause(self):
        try:
            try:
                raise TransportError("connection refused", SOURCE)
            except TransportError as e:
                raise HandshakeError("fetch_public_key", str(e)) from e
        except HandshakeError as wrapped:
            assert is_retryable_error(wrapped)

    def test_handshake_without_cause(self):
        assert not is_retryable_error(HandshakeError("verify", "missing token"))

    def test_foreign_errors(self):
        assert not is_retryable_error(ValueError("nope"))
        assert not is_cosmetica_error(ValueError("nope"))
        assert is_cosmetica_error(ValidationError("bad input"))

    def test_to_dict(self):
        data = ApplicationError("Invalid token", SOURCE).to_dict()

        assert set(data) == {
            "name", "code", "message", "status_code", "details", "source_url", "timestamp",
        }
        assert data["name"] == "ApplicationError"
        assert data["code"] == "APPLICATION_ERROR"
        assert data["status_code"] == 200
        assert data["source_url"] == SOURCE
        assert data["timestamp"].endswith("Z")
