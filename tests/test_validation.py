"""Tests for field and step validation."""

import pytest

from urgentsales.core.draft import PropertyDraft
from urgentsales.core.states import WizardStep
from urgentsales.core.validation import (
    SUBMIT_FIELDS,
    validate_field,
    validate_fields,
    validate_step,
)


@pytest.fixture
def details_draft() -> PropertyDraft:
    """Draft with a valid first step."""
    return PropertyDraft(
        property_category="residential",
        property_type="flat-apartment",
        transaction_type="resale",
        title="Spacious 3BHK near Metro",
        area=1200,
        price_per_unit=5000,
        total_price=6_000_000,
        price=6_000_000,
    )


class TestFieldRules:
    """Single field checks."""

    def test_short_title(self) -> None:
        """Titles need ten characters."""
        draft = PropertyDraft(title="Nice flat")
        assert validate_field(draft, "title") == "Title must be at least 10 characters"

    def test_minimum_price(self) -> None:
        """Below one lakh is rejected."""
        draft = PropertyDraft(price=99_999)
        assert validate_field(draft, "price") == "Minimum price is ₹1,00,000"

    def test_minimum_area(self) -> None:
        """Below 100 sqft is rejected, missing area too."""
        assert validate_field(PropertyDraft(area=50), "area") == "Minimum area is 100 sqft"
        assert validate_field(PropertyDraft(), "area") == "Minimum area is 100 sqft"

    def test_pincode(self) -> None:
        """Exactly six digits."""
        assert validate_field(PropertyDraft(pincode="40005"), "pincode") == "Invalid pincode"
        assert validate_field(PropertyDraft(pincode="400053"), "pincode") is None

    def test_missing_email_names_otp(self) -> None:
        """A blank email explains why it is needed."""
        assert validate_field(PropertyDraft(), "contact_email") == "Email is required for OTP verification"

    def test_malformed_email(self) -> None:
        """A value without a domain is rejected."""
        draft = PropertyDraft(contact_email="asha@")
        assert validate_field(draft, "contact_email") == "Please enter a valid email address"

    def test_type_must_match_category(self) -> None:
        """A commercial type under a residential category fails."""
        draft = PropertyDraft(property_category="residential", property_type="warehouse")
        assert validate_field(draft, "property_type") == "Property type does not match the selected category"

    def test_land_cannot_be_new(self) -> None:
        """The transaction check names the property type."""
        draft = PropertyDraft(
            property_category="residential",
            property_type="residential-land",
            transaction_type="new",
        )
        message = validate_field(draft, "transaction_type")
        assert message == "This transaction type is not available for Residential Land/Plot"

    def test_unknown_field(self) -> None:
        """Fields without a rule raise KeyError."""
        with pytest.raises(KeyError):
            validate_field(PropertyDraft(), "landmarks")


class TestStepValidation:
    """Per-step subsets."""

    def test_valid_first_step(self, details_draft: PropertyDraft) -> None:
        """A complete first step has no errors."""
        assert validate_step(details_draft, WizardStep.PROPERTY_DETAILS) == {}

    def test_empty_first_step(self) -> None:
        """An empty draft reports each required classification field."""
        errors = validate_step(PropertyDraft(), WizardStep.PROPERTY_DETAILS)
        assert {"property_category", "property_type", "transaction_type", "title", "area"} <= set(errors)

    def test_step_only_checks_its_fields(self, details_draft: PropertyDraft) -> None:
        """Step 1 passing says nothing about the location."""
        assert validate_step(details_draft, WizardStep.LOCATION)
        assert validate_step(details_draft, WizardStep.MEDIA) == {}

    def test_submit_needs_price(self, details_draft: PropertyDraft) -> None:
        """The full check includes the minimum price."""
        details_draft.price = 1000
        errors = validate_fields(details_draft, SUBMIT_FIELDS)
        assert errors["price"] == "Minimum price is ₹1,00,000"
