"""Tests for the backend HTTP client."""

import asyncio
import json

import httpx
import pytest

from urgentsales.services.api_client import (
    TIMEOUT_MESSAGE,
    ApiError,
    ApiTimeoutError,
    ApiTransportError,
    UrgentSalesClient,
    error_message,
)


def run_with(handler, call):
    """Run call(client) against a MockTransport and close the client."""

    async def scenario():
        client = UrgentSalesClient("http://backend.test", transport=httpx.MockTransport(handler))
        try:
            return await call(client)
        finally:
            await client.aclose()

    return asyncio.run(scenario())


class TestErrorMessage:
    """Extracting user-facing messages from error bodies."""

    def test_message_and_details(self) -> None:
        """Details are appended after a colon."""
        data = {"message": "Validation failed", "details": "title too short"}
        assert error_message(data, "fallback") == "Validation failed: title too short"

    def test_key_preference(self) -> None:
        """The first present key wins."""
        data = {"message": "m", "error": "e"}
        assert error_message(data, "f", ("error", "message")) == "e"

    def test_fallback(self) -> None:
        """Non-dict bodies use the fallback."""
        assert error_message(None, "Failed to send OTP") == "Failed to send OTP"


class TestOtpEndpoints:
    """send-email-otp and verify-otp."""

    def test_send_posts_email(self) -> None:
        """The email goes in a JSON body."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "message": "sent"})

        data = run_with(handler, lambda c: c.send_email_otp("asha@example.com"))
        assert data["success"] is True
        assert seen[0].url.path == "/api/auth/send-email-otp"
        assert json.loads(seen[0].content) == {"email": "asha@example.com"}

    def test_error_status(self) -> None:
        """The server message and status are carried on ApiError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "Invalid OTP"})

        with pytest.raises(ApiError) as exc_info:
            run_with(handler, lambda c: c.verify_otp("asha@example.com", "000000"))
        assert exc_info.value.message == "Invalid OTP"
        assert exc_info.value.status_code == 400

    def test_error_without_body(self) -> None:
        """An empty error body uses the endpoint fallback."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(ApiError, match="Failed to send OTP"):
            run_with(handler, lambda c: c.send_email_otp("asha@example.com"))

    def test_timeout(self) -> None:
        """Timeouts become ApiTimeoutError with the standard message."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ApiTimeoutError) as exc_info:
            run_with(handler, lambda c: c.send_email_otp("asha@example.com"))
        assert exc_info.value.message == TIMEOUT_MESSAGE

    def test_unreachable(self) -> None:
        """Connection failures become ApiTransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ApiTransportError, match="Could not reach the server"):
            run_with(handler, lambda c: c.send_email_otp("asha@example.com"))

    def test_non_json_success(self) -> None:
        """A 200 with an HTML body is not accepted."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html></html>")

        with pytest.raises(ApiError, match="Invalid server response"):
            run_with(handler, lambda c: c.send_email_otp("asha@example.com"))


class TestSubmitProperty:
    """Multipart listing submission."""

    def test_multipart_body(self) -> None:
        """Text fields and files share one multipart request."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": 42})

        parts = [
            ("title", "Spacious 3BHK near Metro"),
            ("exterior_0", ("front.jpg", b"\xff\xd8", "image/jpeg")),
        ]
        data = run_with(handler, lambda c: c.submit_property(parts))

        assert data == {"id": 42}
        request = seen[0]
        assert request.url.path == "/api/properties/free"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'name="title"' in request.content
        assert b'filename="front.jpg"' in request.content


class TestListings:
    """Cached listing views."""

    def test_cached_until_invalidated(self) -> None:
        """The second read is served from the cache."""
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, json=[{"id": 1}])

        async def call(client: UrgentSalesClient) -> None:
            await client.get_listings("featured")
            await client.get_listings("featured")
            client.cache.invalidate("/api/properties/featured")
            await client.get_listings("featured")

        run_with(handler, call)
        assert calls == ["/api/properties/featured", "/api/properties/featured"]

    def test_unknown_kind(self) -> None:
        """Only the four public views exist."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        with pytest.raises(ValueError):
            run_with(handler, lambda c: c.get_listings("secret"))
