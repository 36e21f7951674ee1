"""
Email OTP gate in front of the final listing submission.

    Idle → Sending → Sent → Verifying → Verified
                      ↑        │
                      └─ Failed┘

Network failures never leave the gate half-way: a failed send restores
the state it started from, a failed verification lands back on Sent so
the seller can re-enter the code or ask for a new one. While a request is
in flight further calls are ignored.

Outside production a fixed bypass code is accepted without a network
call; the backend must enforce the same rule on its side.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from urgentsales.config import Settings
from urgentsales.config import settings as default_settings
from urgentsales.core.notices import NoticeLog
from urgentsales.core.states import OtpState
from urgentsales.services.api_client import ApiError, ApiTimeoutError

logger = logging.getLogger(__name__)

# Reply for an email with no account; the code is still issued for guest listings
NO_USER_MARKER = "No user found"


class OtpApi(Protocol):
    async def send_email_otp(self, email: str, *, timeout: float | None = None) -> dict[str, Any]: ...

    async def verify_otp(self, email: str, otp: str, *, timeout: float | None = None) -> dict[str, Any]: ...


@dataclass(frozen=True)
class OtpChallenge:
    """Read-only view of the current verification attempt."""

    email: str
    sent: bool
    verified: bool
    in_flight: bool


class OtpGate:
    def __init__(
        self,
        api: OtpApi,
        *,
        settings: Settings | None = None,
        notices: NoticeLog | None = None,
    ) -> None:
        self.api = api
        self.settings = settings or default_settings
        self.notices = notices or NoticeLog()
        self.state = OtpState.IDLE
        self.transitions: list[tuple[OtpState, OtpState]] = []
        self.failed_attempts = 0
        self._email: str | None = None

    # ── State ─────────────────────────────────────────────────

    @property
    def challenge(self) -> OtpChallenge | None:
        if self._email is None:
            return None
        return OtpChallenge(
            email=self._email,
            sent=self.state in (OtpState.SENT, OtpState.VERIFYING, OtpState.FAILED, OtpState.VERIFIED),
            verified=self.state is OtpState.VERIFIED,
            in_flight=self.in_flight,
        )

    @property
    def verified(self) -> bool:
        return self.state is OtpState.VERIFIED

    @property
    def in_flight(self) -> bool:
        return self.state in (OtpState.SENDING, OtpState.VERIFYING)

    def _transition(self, new_state: OtpState) -> None:
        if new_state is self.state:
            return
        logger.debug("OTP %s → %s", self.state.value, new_state.value)
        self.transitions.append((self.state, new_state))
        self.state = new_state

    # ── Operations ────────────────────────────────────────────

    async def request_code(self, email: str) -> tuple[bool, str]:
        """
        Send (or resend) a code to the email.

        Returns (ok, message). On any failure the gate is back in the
        state it was in before the call.
        """
        email = (email or "").strip()
        if not email:
            message = "Please provide a contact email to continue"
            self.notices.error("Email Required", message)
            return False, message

        if self.in_flight:
            logger.debug("Ignoring OTP request while %s", self.state.value)
            return False, "A verification request is already in progress"

        previous = self.state
        self._transition(OtpState.SENDING)
        self.notices.info(
            "Sending Verification Code",
            "Please wait while we send a verification code to your email...",
        )

        try:
            await self.api.send_email_otp(email, timeout=self.settings.otp_timeout_seconds)
        except ApiTimeoutError as e:
            self._transition(previous)
            logger.warning("OTP send to %s timed out", email)
            self.notices.error("Error", e.message)
            return False, e.message
        except ApiError as e:
            if NO_USER_MARKER not in e.message:
                self._transition(previous)
                logger.error("OTP send to %s failed: %s", email, e.message)
                self.notices.error("Error", e.message)
                return False, e.message
            logger.info("No account for %s, continuing with guest verification", email)

        self._email = email
        self._transition(OtpState.SENT)
        message = f"We've sent a 6-digit code to {email}. Please check your inbox and spam folder."
        self.notices.success("Verification Code Sent", message)
        logger.info("OTP sent to %s", email)
        return True, message

    async def verify_code(self, email: str, code: str) -> tuple[bool, str]:
        """
        Check a code for the email the challenge was sent to.

        Returns (ok, message). A wrong code moves Verifying → Failed → Sent.
        """
        if self.state is OtpState.VERIFYING:
            logger.debug("Ignoring OTP verification while one is in flight")
            return False, "Verification already in progress"
        if self.state is OtpState.VERIFIED:
            return True, "Your email has already been verified."
        if self.state not in (OtpState.SENT, OtpState.FAILED):
            return False, "Please request a verification code first"

        email = (email or self._email or "").strip()
        code = (code or "").strip()
        if not code:
            return False, "Please enter the verification code"

        self._transition(OtpState.VERIFYING)

        if self.settings.otp_bypass_enabled and code == self.settings.otp_bypass_code:
            logger.info("Development bypass code accepted for %s", email)
            self._email = email
            self._transition(OtpState.VERIFIED)
            message = "Test OTP accepted. Submitting your property..."
            self.notices.success("Verification Successful (Dev Mode)", message)
            return True, message

        try:
            data = await self.api.verify_otp(email, code, timeout=self.settings.otp_timeout_seconds)
        except ApiError as e:
            return self._fail(e.message)

        if not isinstance(data, dict):
            logger.error("Unexpected verify-otp response type: %s", type(data).__name__)
            return self._fail("Invalid server response")

        if data.get("verified") is True:
            self._email = email
            self._transition(OtpState.VERIFIED)
            message = "Your email has been verified. Submitting your property..."
            self.notices.success("Verification Successful", message)
            logger.info("OTP verified for %s", email)
            return True, message

        return self._fail(data.get("message") or "Invalid OTP. Please try again.")

    def dismiss(self) -> None:
        """Code entry closed without verifying; the next submit starts over."""
        if self.state is not OtpState.VERIFIED:
            self._email = None
            self._transition(OtpState.IDLE)

    def reset(self) -> None:
        """Discard the challenge after a successful dispatch."""
        self._email = None
        self.failed_attempts = 0
        self._transition(OtpState.IDLE)

    def _fail(self, reason: str) -> tuple[bool, str]:
        self.failed_attempts += 1
        self._transition(OtpState.FAILED)
        self._transition(OtpState.SENT)
        if self.settings.otp_bypass_enabled:
            reason = (
                f"{reason} In development mode, you can use "
                f"'{self.settings.otp_bypass_code}' as a test OTP."
            )
        logger.info("OTP verification failed (attempt %d)", self.failed_attempts)
        self.notices.error("Verification Failed", reason)
        return False, reason
