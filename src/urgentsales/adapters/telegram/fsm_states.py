"""
Telegram-specific FSM state definitions using aiogram's StatesGroup.

Each state mirrors a WizardStep from urgentsales.core.states. Only
Telegram handlers import from this module; core logic never does.

FSM data keys used:
  field     — draft field currently being asked for
  category  — upload category selected on the media step
"""

from aiogram.fsm.state import State, StatesGroup

from urgentsales.core.states import WizardStep


class ListingSubmission(StatesGroup):
    """
    States for /postproperty.

    Flow: details → location → media → contact → otp
    """

    details = State()      # Step 1: classification, title, area, price
    location = State()     # Step 2: city, locality, pincode
    media = State()        # Step 3: photos / videos per category
    contact = State()      # Step 4: name, phone, email, confirm
    otp = State()          # Emailed code entry


STEP_STATES: dict[WizardStep, State] = {
    WizardStep.PROPERTY_DETAILS: ListingSubmission.details,
    WizardStep.LOCATION: ListingSubmission.location,
    WizardStep.MEDIA: ListingSubmission.media,
    WizardStep.CONTACT: ListingSubmission.contact,
}
