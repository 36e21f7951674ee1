"""
The in-progress property listing (PropertyDraft).

Attribute names are snake_case; the backend expects camelCase, which the
alias generator produces on dump. Assignment is validated, so enum fields
can only ever hold a member of their closed option set.
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from urgentsales.core.options import (
    AreaUnit,
    PropertyCategory,
    PropertyType,
    TransactionType,
    UserType,
)

PriceSource = Literal["price_per_unit", "total_price"]


@dataclass(frozen=True)
class AuthenticatedUser:
    """The signed-in user, passed explicitly into the wizard."""

    id: int | None = None
    name: str = ""
    phone: str = ""
    email: str = ""


class PropertyDraft(BaseModel):
    """Everything the seller has entered so far."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    # ── Classification ────────────────────────────────────────
    user_type: UserType = UserType.OWNER
    property_category: PropertyCategory | None = None
    property_type: PropertyType | None = None
    transaction_type: TransactionType | None = None
    available_from_month: str = ""
    available_from_year: str = ""
    construction_age: str = ""

    # ── Description ───────────────────────────────────────────
    title: str = ""
    description: str = ""
    project_name: str = ""

    # ── Price & area ──────────────────────────────────────────
    area: float | None = None
    area_unit: AreaUnit = AreaUnit.SQFT
    price_per_unit: float | None = None
    total_price: float | None = None
    price: float = 0
    is_urgent_sale: bool = False
    brokerage: str = "0"
    # Which price field the seller typed into last; never sent to the server
    price_source: PriceSource = Field(default="price_per_unit", exclude=True)

    # ── Location ──────────────────────────────────────────────
    location: str = ""
    city: str = ""
    pincode: str = ""
    landmarks: str = ""

    # ── Structure ─────────────────────────────────────────────
    bedrooms: str = ""
    bathrooms: str = ""
    balconies: str = ""
    floor_no: str = ""
    total_floors: str = ""
    floors_allowed_for_construction: str = ""
    furnished_status: str = ""
    road_width: str = ""
    open_sides: str = ""
    parking: str = ""
    facing: str = ""
    amenities: list[str] = Field(default_factory=list)

    # ── Legal / status ────────────────────────────────────────
    possession_status: str = ""
    ownership_type: str = ""
    boundary_wall: str = ""
    electricity_status: str = ""
    water_availability: str = ""
    flooring_type: str = ""
    overlooking: str = ""
    preferred_tenant: str = ""
    property_age: str = ""
    project_status: str = ""
    launch_date: str = ""
    rera_registered: str = ""
    rera_number: str = ""

    # ── Contact ───────────────────────────────────────────────
    contact_name: str = ""
    contact_phone: str = ""
    contact_email: str = ""
    whatsapp_enabled: bool = True
    no_broker_responses: bool = False

    @classmethod
    def for_user(cls, user: AuthenticatedUser | None) -> "PropertyDraft":
        """Empty draft with contact name/phone pre-filled from the signed-in user."""
        if user is None:
            return cls()
        return cls(contact_name=user.name or "", contact_phone=user.phone or "")


# Fields holding an enum member; an empty string means "not chosen"
ENUM_FIELDS: frozenset[str] = frozenset({
    "user_type",
    "property_category",
    "property_type",
    "transaction_type",
    "area_unit",
})

PRICE_FIELDS: frozenset[str] = frozenset({"area", "price_per_unit", "total_price"})


def field_names() -> frozenset[str]:
    """All editable draft attributes."""
    return frozenset(name for name in PropertyDraft.model_fields if name != "price_source")
