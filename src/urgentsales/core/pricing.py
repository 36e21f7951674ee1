"""
Derived price fields and Indian price formatting.

area, price_per_unit and total_price stay mutually consistent:

  - editing price_per_unit (or area) → total_price = round(price_per_unit × area)
  - editing total_price             → price_per_unit = round(total_price / area)

price always mirrors total_price after a derivation.

Tie-break when area changes with both prices filled: price_per_unit is
primary unless total_price was the last price field the seller edited.
Nothing is recomputed while area is empty or zero.
"""

import logging
import math
from typing import Any

from urgentsales.core.draft import PRICE_FIELDS, PropertyDraft

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 → 3, not 2)."""
    return math.floor(value + 0.5)


def apply_price_edit(draft: PropertyDraft, field: str, value: Any) -> None:
    """
    Apply a seller edit to one of the price/area fields and recompute the
    derived field.

    Args:
        draft: the draft to mutate
        field: "area", "price_per_unit" or "total_price"
        value: the new value (None or "" clears the field)
    """
    if field not in PRICE_FIELDS:
        raise KeyError(f"{field!r} is not a price field")

    if value == "":
        value = None
    setattr(draft, field, value)

    if field == "price_per_unit":
        draft.price_source = "price_per_unit"
    elif field == "total_price":
        draft.price_source = "total_price"

    recompute_prices(draft)


def recompute_prices(draft: PropertyDraft) -> None:
    """Re-derive the non-primary price field from the primary one."""
    area = draft.area
    if not area or area <= 0:
        return

    if draft.price_source == "total_price":
        # A cleared total stays cleared
        if draft.total_price:
            per_unit = round_half_up(draft.total_price / area)
            draft.price_per_unit = per_unit
            draft.price = draft.total_price
            logger.debug("Derived price_per_unit=%d from total=%s", per_unit, draft.total_price)
        return

    if draft.price_per_unit:
        total = round_half_up(draft.price_per_unit * area)
        draft.total_price = total
        draft.price = total
        logger.debug("Derived total_price=%d from per_unit=%s", total, draft.price_per_unit)


# ── Formatting ───────────────────────────────────────────────


def format_indian_number(value: float) -> str:
    """
    Group digits the Indian way: 12,34,56,789.

    Up to three fraction digits are kept, trailing zeros dropped.
    """
    negative = value < 0
    rounded = round(abs(value), 3)
    whole = int(rounded)
    fraction = f"{rounded - whole:.3f}"[2:].rstrip("0")

    digits = str(whole)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])

    text = f"{digits}.{fraction}" if fraction else digits
    return f"-{text}" if negative else text


def format_indian_price(price: float) -> str:
    """Short rupee label: ₹1.20 Cr, ₹45.00 Lac, or ₹75,000 below a lakh."""
    if price >= 10_000_000:
        return f"₹{price / 10_000_000:.2f} Cr"
    if price >= 100_000:
        return f"₹{price / 100_000:.2f} Lac"
    return f"₹{format_indian_number(price)}"
