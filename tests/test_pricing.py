"""Tests for derived prices and Indian price formatting."""

import pytest

from urgentsales.core.draft import PropertyDraft
from urgentsales.core.pricing import (
    apply_price_edit,
    format_indian_number,
    format_indian_price,
    round_half_up,
)


class TestRoundHalfUp:
    """Half-up rounding."""

    def test_half_rounds_up(self) -> None:
        """2.5 becomes 3, unlike banker's rounding."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_below_half_rounds_down(self) -> None:
        """3.333 becomes 3."""
        assert round_half_up(10 / 3) == 3


class TestPriceDerivation:
    """area, price_per_unit and total_price stay consistent."""

    def test_per_unit_derives_total(self) -> None:
        """1200 sqft at 5000 per sqft totals 60 lakh."""
        draft = PropertyDraft()
        apply_price_edit(draft, "area", 1200)
        apply_price_edit(draft, "price_per_unit", 5000)
        assert draft.total_price == 6_000_000
        assert draft.price == 6_000_000

    def test_total_derives_per_unit(self) -> None:
        """Typing the total fills in the per-unit price."""
        draft = PropertyDraft()
        apply_price_edit(draft, "area", 1200)
        apply_price_edit(draft, "total_price", 6_000_000)
        assert draft.price_per_unit == 5000
        assert draft.price == 6_000_000

    def test_area_change_keeps_total_when_total_edited_last(self) -> None:
        """Total stays fixed and per-unit is re-derived."""
        draft = PropertyDraft()
        apply_price_edit(draft, "area", 1200)
        apply_price_edit(draft, "total_price", 6_000_000)
        apply_price_edit(draft, "area", 1500)
        assert draft.total_price == 6_000_000
        assert draft.price_per_unit == 4000

    def test_cleared_total_stays_cleared(self) -> None:
        """Emptying the total does not refill it from the per-unit price."""
        draft = PropertyDraft()
        apply_price_edit(draft, "area", 1200)
        apply_price_edit(draft, "total_price", 6_000_000)
        apply_price_edit(draft, "total_price", None)
        assert draft.total_price is None
        assert draft.price_per_unit == 5000

    def test_area_change_keeps_per_unit_by_default(self) -> None:
        """Per-unit stays fixed and the total is re-derived."""
        draft = PropertyDraft()
        apply_price_edit(draft, "area", 1200)
        apply_price_edit(draft, "price_per_unit", 5000)
        apply_price_edit(draft, "area", 1500)
        assert draft.price_per_unit == 5000
        assert draft.total_price == 7_500_000

    def test_no_derivation_without_area(self) -> None:
        """An empty or zero area leaves the other price untouched."""
        draft = PropertyDraft()
        apply_price_edit(draft, "price_per_unit", 5000)
        assert draft.total_price is None
        apply_price_edit(draft, "area", 0)
        assert draft.total_price is None
        assert draft.price == 0

    def test_blank_clears_field(self) -> None:
        """An empty string clears the field."""
        draft = PropertyDraft()
        apply_price_edit(draft, "area", 1200)
        apply_price_edit(draft, "area", "")
        assert draft.area is None

    def test_rejects_non_price_field(self) -> None:
        """Only the three price fields go through this path."""
        with pytest.raises(KeyError):
            apply_price_edit(PropertyDraft(), "title", "x")


class TestIndianFormatting:
    """Lakh/crore digit grouping."""

    def test_grouping(self) -> None:
        """Groups of two above the thousands."""
        assert format_indian_number(43391) == "43,391"
        assert format_indian_number(6_000_000) == "60,00,000"
        assert format_indian_number(12_345_678) == "1,23,45,678"

    def test_small_numbers_untouched(self) -> None:
        """Three digits or fewer need no separator."""
        assert format_indian_number(999) == "999"

    def test_fraction_kept(self) -> None:
        """Up to three fraction digits, trailing zeros dropped."""
        assert format_indian_number(1234.5) == "1,234.5"

    def test_price_labels(self) -> None:
        """Crore, lakh and plain rupee labels."""
        assert format_indian_price(12_000_000) == "₹1.20 Cr"
        assert format_indian_price(6_000_000) == "₹60.00 Lac"
        assert format_indian_price(75_000) == "₹75,000"
