"""
Declarative field rules for the property listing form.

Each rule pairs a pydantic TypeAdapter (the constraint) with the message
shown to the seller. Rules are evaluated per field, so a step can
validate only its own subset and a single field can be checked on blur.
"""

import enum
import logging
from typing import Annotated, Any

from pydantic import Field, StringConstraints, TypeAdapter, ValidationError

from urgentsales.core.draft import ENUM_FIELDS, PropertyDraft
from urgentsales.core.options import (
    PROPERTY_TYPE_LABELS,
    is_type_in_category,
    transaction_types_for,
)
from urgentsales.core.states import WizardStep

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

Required = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _min_text(length: int) -> Any:
    return Annotated[str, StringConstraints(strip_whitespace=True, min_length=length)]


class Rule:
    """One field constraint and the message shown when it fails."""

    def __init__(self, annotation: Any, message: str) -> None:
        self.adapter: TypeAdapter = TypeAdapter(annotation)
        self.message = message

    def check(self, value: Any) -> str | None:
        try:
            self.adapter.validate_python(value)
        except ValidationError:
            return self.message
        return None


# ── Field rules ──────────────────────────────────────────────

FIELD_RULES: dict[str, Rule] = {
    "user_type": Rule(Required, "Please tell us whether you are an owner, agent or builder"),
    "property_category": Rule(Required, "Property category is required"),
    "property_type": Rule(Required, "Property type is required"),
    "transaction_type": Rule(Required, "Transaction type is required"),
    "title": Rule(_min_text(10), "Title must be at least 10 characters"),
    "price": Rule(Annotated[float, Field(ge=100000)], "Minimum price is ₹1,00,000"),
    "price_per_unit": Rule(
        Annotated[float, Field(ge=0)] | None,
        "Price per unit must be a positive number",
    ),
    "total_price": Rule(
        Annotated[float, Field(ge=0)] | None,
        "Total price must be a positive number",
    ),
    "area": Rule(Annotated[float, Field(ge=100)], "Minimum area is 100 sqft"),
    "location": Rule(_min_text(5), "Location must be at least 5 characters"),
    "city": Rule(_min_text(3), "City is required"),
    "pincode": Rule(
        Annotated[str, StringConstraints(pattern=r"^[0-9]{6}$")],
        "Invalid pincode",
    ),
    "contact_name": Rule(_min_text(2), "Contact name is required"),
    "contact_phone": Rule(_min_text(10), "Valid 10-digit phone number required"),
    "contact_email": Rule(
        Annotated[str, StringConstraints(strip_whitespace=True, pattern=EMAIL_PATTERN)],
        "Please enter a valid email address",
    ),
}

# Fields checked before leaving each step. The media step is gated by the
# upload count instead of the schema.
STEP_FIELDS: dict[WizardStep, tuple[str, ...]] = {
    WizardStep.PROPERTY_DETAILS: (
        "user_type",
        "property_category",
        "property_type",
        "transaction_type",
        "title",
        "area",
        "price_per_unit",
        "total_price",
    ),
    WizardStep.LOCATION: ("city", "location", "pincode"),
    WizardStep.MEDIA: (),
    WizardStep.CONTACT: ("contact_name", "contact_phone", "contact_email"),
}

# Everything that must hold before the listing may be sent
SUBMIT_FIELDS: tuple[str, ...] = (
    STEP_FIELDS[WizardStep.PROPERTY_DETAILS]
    + STEP_FIELDS[WizardStep.LOCATION]
    + STEP_FIELDS[WizardStep.CONTACT]
    + ("price",)
)


def _raw_value(draft: PropertyDraft, name: str) -> Any:
    value = getattr(draft, name)
    if isinstance(value, enum.Enum):
        return value.value
    if value is None and name in ENUM_FIELDS:
        return ""
    return value


def validate_field(draft: PropertyDraft, name: str) -> str | None:
    """
    Validate one field of the draft.

    Returns the error message, or None if the field is valid.
    Raises KeyError for a field that has no rule and no cross-field check.
    """
    rule = FIELD_RULES.get(name)
    if rule is None:
        raise KeyError(f"No validation rule for field {name!r}")

    if name == "contact_email" and not (draft.contact_email or "").strip():
        return "Email is required for OTP verification"

    error = rule.check(_raw_value(draft, name))
    if error:
        return error

    # Cross-field checks on the closed option sets
    if name == "property_type" and not is_type_in_category(
        draft.property_type, draft.property_category
    ):
        return "Property type does not match the selected category"

    if name == "transaction_type":
        allowed = transaction_types_for(draft.user_type, draft.property_type)
        if draft.transaction_type not in allowed:
            type_label = PROPERTY_TYPE_LABELS.get(
                draft.property_type.value if draft.property_type else "", "this property"
            )
            return f"This transaction type is not available for {type_label}"

    return None


def validate_fields(draft: PropertyDraft, names: tuple[str, ...] | list[str]) -> dict[str, str]:
    """
    Validate a subset of fields.

    Returns {field_name: message} for every failing field (empty if all pass).
    """
    errors: dict[str, str] = {}
    for name in names:
        message = validate_field(draft, name)
        if message:
            errors[name] = message
    if errors:
        logger.debug("Validation failed for %s", ", ".join(errors))
    return errors


def validate_step(draft: PropertyDraft, step: WizardStep) -> dict[str, str]:
    """Validate the fields that belong to one wizard step."""
    return validate_fields(draft, STEP_FIELDS[step])
