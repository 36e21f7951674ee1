"""
Closed option sets for the property listing form.

Category → property type, (user type, property type) → transaction type
and property type → area unit are explicit mapping functions, so an
invalid combination can be detected before it reaches the draft.

Labels live next to the enums; adapters decide how to render them.
"""

import enum


class UserType(str, enum.Enum):
    OWNER = "owner"
    AGENT = "agent"
    BUILDER = "builder"


class PropertyCategory(str, enum.Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    AGRICULTURAL = "agricultural"


class PropertyType(str, enum.Enum):
    # Residential
    FLAT_APARTMENT = "flat-apartment"
    RESIDENTIAL_HOUSE = "residential-house"
    VILLA = "villa"
    BUILDER_FLOOR = "builder-floor"
    RESIDENTIAL_LAND = "residential-land"
    PENTHOUSE = "penthouse"
    STUDIO_APARTMENT = "studio-apartment"
    # Commercial
    COMMERCIAL_OFFICE = "commercial-office"
    IT_PARK_OFFICE = "it-park-office"
    COMMERCIAL_SHOP = "commercial-shop"
    COMMERCIAL_SHOWROOM = "commercial-showroom"
    COMMERCIAL_LAND = "commercial-land"
    WAREHOUSE = "warehouse"
    INDUSTRIAL_LAND = "industrial-land"
    INDUSTRIAL_BUILDING = "industrial-building"
    INDUSTRIAL_SHED = "industrial-shed"
    # Agricultural
    AGRICULTURAL_LAND = "agricultural-land"
    FARM_HOUSE = "farm-house"


class TransactionType(str, enum.Enum):
    NEW = "new"
    RESALE = "resale"
    UNDER_CONSTRUCTION = "under-construction"
    READY_TO_MOVE = "ready-to-move"


class AreaUnit(str, enum.Enum):
    SQFT = "sqft"
    SQYD = "sqyd"
    ACRES = "acres"
    GUNTA = "gunta"
    HECTARE = "hectare"
    MARLA = "marla"
    KANAL = "kanal"


# ── Labels ───────────────────────────────────────────────────

USER_TYPE_LABELS: dict[str, str] = {
    UserType.OWNER.value: "Owner",
    UserType.AGENT.value: "Agent",
    UserType.BUILDER.value: "Builder",
}

CATEGORY_LABELS: dict[str, str] = {
    PropertyCategory.RESIDENTIAL.value: "Residential",
    PropertyCategory.COMMERCIAL.value: "Commercial",
    PropertyCategory.AGRICULTURAL.value: "Agricultural",
}

PROPERTY_TYPE_LABELS: dict[str, str] = {
    PropertyType.FLAT_APARTMENT.value: "Flat/Apartment",
    PropertyType.RESIDENTIAL_HOUSE.value: "Residential House",
    PropertyType.VILLA.value: "Villa",
    PropertyType.BUILDER_FLOOR.value: "Builder Floor Apartment",
    PropertyType.RESIDENTIAL_LAND.value: "Residential Land/Plot",
    PropertyType.PENTHOUSE.value: "Penthouse",
    PropertyType.STUDIO_APARTMENT.value: "Studio Apartment",
    PropertyType.COMMERCIAL_OFFICE.value: "Commercial Office Space",
    PropertyType.IT_PARK_OFFICE.value: "Office in IT Park/SEZ",
    PropertyType.COMMERCIAL_SHOP.value: "Commercial Shop",
    PropertyType.COMMERCIAL_SHOWROOM.value: "Commercial Showroom",
    PropertyType.COMMERCIAL_LAND.value: "Commercial Land",
    PropertyType.WAREHOUSE.value: "Warehouse/Godown",
    PropertyType.INDUSTRIAL_LAND.value: "Industrial Land",
    PropertyType.INDUSTRIAL_BUILDING.value: "Industrial Building",
    PropertyType.INDUSTRIAL_SHED.value: "Industrial Shed",
    PropertyType.AGRICULTURAL_LAND.value: "Agricultural/Farm Land",
    PropertyType.FARM_HOUSE.value: "Farm House",
}

TRANSACTION_TYPE_LABELS: dict[str, str] = {
    TransactionType.NEW.value: "New Property",
    TransactionType.RESALE.value: "Resale",
    TransactionType.UNDER_CONSTRUCTION.value: "Under Construction",
    TransactionType.READY_TO_MOVE.value: "Ready to Move",
}

AREA_UNIT_LABELS: dict[str, str] = {
    AreaUnit.SQFT.value: "sq.ft",
    AreaUnit.SQYD.value: "sq.yd",
    AreaUnit.ACRES.value: "acres",
    AreaUnit.GUNTA.value: "gunta",
    AreaUnit.HECTARE.value: "hectare",
    AreaUnit.MARLA.value: "marla",
    AreaUnit.KANAL.value: "kanal",
}

AMENITIES: tuple[str, ...] = (
    "power-backup",
    "lift",
    "security",
    "water-supply",
    "parking",
    "swimming-pool",
    "gym",
    "club-house",
    "play-area",
    "garden",
    "wifi",
    "modular-kitchen",
    "wardrobes",
    "furniture",
)


# ── Mappings ─────────────────────────────────────────────────

PROPERTY_TYPES_BY_CATEGORY: dict[PropertyCategory, tuple[PropertyType, ...]] = {
    PropertyCategory.RESIDENTIAL: (
        PropertyType.FLAT_APARTMENT,
        PropertyType.RESIDENTIAL_HOUSE,
        PropertyType.VILLA,
        PropertyType.BUILDER_FLOOR,
        PropertyType.RESIDENTIAL_LAND,
        PropertyType.PENTHOUSE,
        PropertyType.STUDIO_APARTMENT,
    ),
    PropertyCategory.COMMERCIAL: (
        PropertyType.COMMERCIAL_OFFICE,
        PropertyType.IT_PARK_OFFICE,
        PropertyType.COMMERCIAL_SHOP,
        PropertyType.COMMERCIAL_SHOWROOM,
        PropertyType.COMMERCIAL_LAND,
        PropertyType.WAREHOUSE,
        PropertyType.INDUSTRIAL_LAND,
        PropertyType.INDUSTRIAL_BUILDING,
        PropertyType.INDUSTRIAL_SHED,
    ),
    PropertyCategory.AGRICULTURAL: (
        PropertyType.AGRICULTURAL_LAND,
        PropertyType.FARM_HOUSE,
    ),
}

# Plot types. industrial-land is listed like any other commercial type.
LAND_TYPES: frozenset[PropertyType] = frozenset({
    PropertyType.RESIDENTIAL_LAND,
    PropertyType.COMMERCIAL_LAND,
    PropertyType.AGRICULTURAL_LAND,
})


def property_types_for(category: PropertyCategory | str | None) -> tuple[PropertyType, ...]:
    """Allowed property types for a category (empty when no category is chosen)."""
    if not category:
        return ()
    return PROPERTY_TYPES_BY_CATEGORY[PropertyCategory(category)]


def is_type_in_category(
    property_type: PropertyType | str | None,
    category: PropertyCategory | str | None,
) -> bool:
    """Check whether property_type belongs to the category's option set."""
    if not property_type or not category:
        return False
    try:
        return PropertyType(property_type) in property_types_for(category)
    except ValueError:
        return False


def transaction_types_for(
    user_type: UserType | str | None,
    property_type: PropertyType | str | None,
) -> tuple[TransactionType, ...]:
    """
    Transaction types offered for a user type / property type pair.

    Builders may also list under-construction and ready-to-move stock.
    Plots can only be resold, never listed as "new".
    """
    base = (TransactionType.NEW, TransactionType.RESALE)

    if user_type and UserType(user_type) is UserType.BUILDER:
        return base + (TransactionType.UNDER_CONSTRUCTION, TransactionType.READY_TO_MOVE)

    if property_type and PropertyType(property_type) in LAND_TYPES:
        return (TransactionType.RESALE,)

    return base


def area_units_for(property_type: PropertyType | str | None) -> tuple[AreaUnit, ...]:
    """Area units offered for a property type."""
    base = (AreaUnit.SQFT, AreaUnit.SQYD)
    if property_type and PropertyType(property_type) in LAND_TYPES:
        return base + (
            AreaUnit.ACRES,
            AreaUnit.GUNTA,
            AreaUnit.HECTARE,
            AreaUnit.MARLA,
            AreaUnit.KANAL,
        )
    return base


def has_room_fields(
    category: PropertyCategory | str | None,
    property_type: PropertyType | str | None,
) -> bool:
    """Bedrooms/bathrooms/balconies apply to built residential types except studios."""
    if not category or not property_type:
        return False
    if PropertyCategory(category) is not PropertyCategory.RESIDENTIAL:
        return False
    return PropertyType(property_type) not in (
        PropertyType.RESIDENTIAL_LAND,
        PropertyType.STUDIO_APARTMENT,
    )


def visible_fields(
    *,
    category: PropertyCategory | str | None,
    property_type: PropertyType | str | None,
    transaction_type: TransactionType | str | None,
) -> set[str]:
    """
    Names of the conditional fields that should be shown for the current
    classification. Always-visible fields are not included.
    """
    fields: set[str] = set()

    if category:
        fields.add("property_type")
    if property_type:
        fields.add("transaction_type")

    if has_room_fields(category, property_type):
        fields.update({"bedrooms", "bathrooms", "balconies"})

    if property_type and PropertyType(property_type) not in LAND_TYPES:
        fields.update({"floor_no", "total_floors", "furnished_status"})
    elif property_type:
        fields.update({"road_width", "open_sides", "boundary_wall"})

    if transaction_type:
        tx = TransactionType(transaction_type)
        if tx is TransactionType.UNDER_CONSTRUCTION:
            fields.update({"available_from_month", "available_from_year"})
        elif tx is TransactionType.READY_TO_MOVE:
            fields.add("construction_age")

    return fields
