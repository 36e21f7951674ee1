"""Pytest configuration and fixtures."""

from typing import Any

import pytest

from urgentsales.config import Settings
from urgentsales.core.uploads import IncomingFile
from urgentsales.core.wizard import PropertyWizard
from urgentsales.services.api_client import ApiError
from urgentsales.services.list_cache import ListViewCache


class FakeBackend:
    """In-memory stand-in for UrgentSalesClient that records every call."""

    def __init__(self) -> None:
        self.cache = ListViewCache(ttl=300)
        self.sent: list[str] = []
        self.verified: list[tuple[str, str]] = []
        self.submitted: list[list[tuple[str, Any]]] = []

        self.send_error: ApiError | None = None
        self.verify_response: dict[str, Any] = {"verified": True, "message": "OTP verified"}
        self.verify_error: ApiError | None = None
        self.submit_response: dict[str, Any] = {"id": 42}
        self.submit_error: ApiError | None = None

    async def send_email_otp(self, email: str, *, timeout: float | None = None) -> dict[str, Any]:
        self.sent.append(email)
        if self.send_error is not None:
            raise self.send_error
        return {"success": True, "message": "OTP sent"}

    async def verify_otp(self, email: str, otp: str, *, timeout: float | None = None) -> dict[str, Any]:
        self.verified.append((email, otp))
        if self.verify_error is not None:
            raise self.verify_error
        return self.verify_response

    async def submit_property(self, parts: list[tuple[str, Any]]) -> dict[str, Any]:
        self.submitted.append(parts)
        if self.submit_error is not None:
            raise self.submit_error
        return self.submit_response


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh fake backend."""
    return FakeBackend()


@pytest.fixture
def dev_settings() -> Settings:
    """Development build: bypass code allowed, no redirect delay."""
    return Settings(
        _env_file=None,
        app_env="development",
        redirect_delay_seconds=0,
        upload_progress_step=50,
        upload_progress_interval=0.001,
    )


@pytest.fixture
def prod_settings() -> Settings:
    """Production build: bypass code never accepted."""
    return Settings(
        _env_file=None,
        app_env="production",
        redirect_delay_seconds=0,
        upload_progress_step=50,
        upload_progress_interval=0.001,
    )


@pytest.fixture
def jpeg():
    """Factory for small JPEG uploads."""

    def make(name: str = "front.jpg", size: int = 2048) -> IncomingFile:
        return IncomingFile(name=name, mime_type="image/jpeg", content=b"\xff" * size)

    return make


@pytest.fixture
def valid_details() -> list[tuple[str, str]]:
    """Step 1 answers for a residential flat."""
    return [
        ("user_type", "owner"),
        ("property_category", "residential"),
        ("property_type", "flat-apartment"),
        ("transaction_type", "resale"),
        ("title", "Spacious 3BHK near Metro"),
        ("area", "1200"),
        ("price_per_unit", "5000"),
    ]


@pytest.fixture
def valid_location() -> list[tuple[str, str]]:
    return [("city", "Mumbai"), ("location", "Andheri West, Link Road"), ("pincode", "400053")]


@pytest.fixture
def valid_contact() -> list[tuple[str, str]]:
    return [
        ("contact_name", "Asha Rao"),
        ("contact_phone", "9876543210"),
        ("contact_email", "asha@example.com"),
    ]


@pytest.fixture
def wizard_at_contact(backend, dev_settings, jpeg, valid_details, valid_location, valid_contact):
    """Wizard walked through all steps with valid data, sitting on the contact step."""
    wizard = PropertyWizard(backend, settings=dev_settings)
    for name, value in valid_details:
        assert wizard.set_field(name, value) is None
    assert wizard.advance().ok
    for name, value in valid_location:
        assert wizard.set_field(name, value) is None
    assert wizard.advance().ok
    wizard.upload([jpeg()], "exterior")
    assert wizard.advance().ok
    for name, value in valid_contact:
        assert wizard.set_field(name, value) is None
    return wizard
