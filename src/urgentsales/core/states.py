"""
Platform-agnostic state identifiers for the listing flows.

WizardStep is the step the property wizard is on; OtpState is the
email-verification sub-state that gates the final submission. Adapters
map these onto their own state storage (e.g. aiogram FSMContext).
"""

import enum


class WizardStep(enum.IntEnum):
    """
    Steps of the property listing wizard.

    Flow: details → location → media → contact → (OTP) → submit
    """

    PROPERTY_DETAILS = 1   # classification, title, area, price
    LOCATION = 2           # city, locality, pincode
    MEDIA = 3              # photos / videos per category
    CONTACT = 4            # name, phone, email; final submit


FIRST_STEP = WizardStep.PROPERTY_DETAILS
LAST_STEP = WizardStep.CONTACT


class OtpState(str, enum.Enum):
    """
    Email verification states.

    Idle → Sending → Sent → Verifying → Verified
    Verifying → Failed → Sent (re-enter or resend)
    """

    IDLE = "idle"
    SENDING = "sending"
    SENT = "sent"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"
