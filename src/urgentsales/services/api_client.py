"""
Async client for the UrgentSales REST backend.

Wraps the endpoints the listing flows need:
  - POST /api/auth/send-email-otp   {email}        → {success, message}
  - POST /api/auth/verify-otp       {email, otp}   → {verified, message}
  - POST /api/properties/free       multipart      → {id, ...}
  - POST /api/projects              multipart|JSON → {project: {id}} | {id}
  - GET  /api/properties/<kind>     listing views (cached)

Every failure is raised as ApiError (or a subclass) carrying a message
that can be shown to the user as-is.
"""

import logging
from typing import Any

import httpx

from urgentsales.config import settings
from urgentsales.services.list_cache import ListViewCache

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out. Server might be busy or unavailable."
LISTING_KINDS = ("free", "featured", "premium", "urgent")

# A multipart part: plain text value, or (filename, bytes, mime type)
Part = tuple[str, str | tuple[str, bytes, str]]


# ── Errors ───────────────────────────────────────────────────


class ApiError(Exception):
    """Backend call failed; str(error) is safe to show to the user."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiTimeoutError(ApiError):
    """The request was aborted after the client-side timeout."""

    def __init__(self, message: str = TIMEOUT_MESSAGE) -> None:
        super().__init__(message)


class ApiTransportError(ApiError):
    """The server could not be reached (DNS, refused connection, reset)."""


def error_message(data: Any, fallback: str, keys: tuple[str, ...] = ("message", "error")) -> str:
    """Pick the server's message/error text, with ': details' appended when present."""
    if not isinstance(data, dict):
        return fallback
    message = next((data[k] for k in keys if data.get(k)), fallback)
    details = data.get("details")
    if details:
        message = f"{message}: {details}"
    return str(message)


# ── Client ───────────────────────────────────────────────────


class UrgentSalesClient:
    """
    Thin async wrapper over httpx.AsyncClient.

    Pass transport=httpx.MockTransport(...) in tests.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: ListViewCache | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.cache = cache if cache is not None else ListViewCache(ttl=settings.list_cache_ttl)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
            transport=transport,
        )

    # ── OTP ───────────────────────────────────────────────────

    async def send_email_otp(self, email: str, *, timeout: float | None = None) -> dict[str, Any]:
        """Ask the backend to email a one-time code."""
        return await self._request(
            "POST",
            "/api/auth/send-email-otp",
            json={"email": email},
            timeout=timeout or settings.otp_timeout_seconds,
            fallback="Failed to send OTP",
        )

    async def verify_otp(
        self, email: str, otp: str, *, timeout: float | None = None
    ) -> dict[str, Any]:
        """Check a code. The response carries verified: bool."""
        return await self._request(
            "POST",
            "/api/auth/verify-otp",
            json={"email": email, "otp": otp},
            timeout=timeout or settings.otp_timeout_seconds,
            fallback="Failed to verify OTP",
        )

    # ── Submissions ───────────────────────────────────────────

    async def submit_property(self, parts: list[Part]) -> dict[str, Any]:
        """POST a property listing as multipart/form-data."""
        return await self._request(
            "POST",
            "/api/properties/free",
            files=_multipart(parts),
            fallback="Failed to submit property",
        )

    async def submit_project_multipart(self, parts: list[Part]) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/projects",
            files=_multipart(parts),
            fallback="Failed to submit project",
            error_keys=("error", "message"),
        )

    async def submit_project_json(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/projects",
            json=payload,
            fallback="Failed to submit project",
            error_keys=("error", "message"),
        )

    # ── Listing views ─────────────────────────────────────────

    async def get_listings(self, kind: str) -> Any:
        """
        Fetch one of the public listing views through the cache.

        Args:
            kind: "free", "featured", "premium" or "urgent"
        """
        if kind not in LISTING_KINDS:
            raise ValueError(f"Unknown listing kind {kind!r}")
        path = f"/api/properties/{kind}"
        cached = self.cache.get(path)
        if cached is not None:
            return cached
        data = await self._request("GET", path, fallback="Failed to load listings")
        self.cache.set(path, data)
        return data

    # ── Lifecycle ─────────────────────────────────────────────

    async def aclose(self) -> None:
        """Shut down the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "UrgentSalesClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ── Internals ─────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        error_keys: tuple[str, ...] = ("message", "error"),
        timeout: float | None = None,
        **kwargs: Any,
    ) -> Any:
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out: %s", method, path, e)
            raise ApiTimeoutError() from e
        except httpx.TransportError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiTransportError(f"Could not reach the server: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.is_error:
            message = error_message(data, fallback, error_keys)
            logger.error("%s %s → %d: %s", method, path, resp.status_code, message)
            raise ApiError(message, status_code=resp.status_code)

        if data is None:
            logger.error("%s %s returned a non-JSON body", method, path)
            raise ApiError("Invalid server response", status_code=resp.status_code)

        logger.debug("%s %s → %d", method, path, resp.status_code)
        return data


def _multipart(parts: list[Part]) -> list[tuple[str, tuple[Any, ...]]]:
    """
    httpx 'files' list that keeps part order. Text parts get filename None
    so they are sent as plain form fields.
    """
    files: list[tuple[str, tuple[Any, ...]]] = []
    for name, value in parts:
        if isinstance(value, tuple):
            files.append((name, value))
        else:
            files.append((name, (None, str(value))))
    return files
