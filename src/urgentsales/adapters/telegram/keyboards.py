"""
Telegram inline keyboard builders for the listing wizard.

These helpers produce aiogram InlineKeyboardMarkup objects.
They are Telegram-specific and belong in the adapter layer.
"""

from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from urgentsales.core.uploads import CATEGORY_LABELS, UploadCategory


def options_keyboard(
    field: str,
    items: Sequence[tuple[str, str]],
    columns: int = 2,
) -> InlineKeyboardMarkup:
    """
    One button per (value, label); callback data is "set:<field>:<value>".
    """
    rows: list[list[InlineKeyboardButton]] = []
    for i in range(0, len(items), columns):
        rows.append([
            InlineKeyboardButton(text=label, callback_data=f"set:{field}:{value}")
            for value, label in items[i:i + columns]
        ])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def keep_keyboard(field: str, current: str) -> InlineKeyboardMarkup:
    """Offer to keep a pre-filled value."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=f"✅ Keep «{current}»", callback_data=f"keep:{field}")],
    ])


def upload_category_keyboard(selected: str, counts: dict[str, int] | None = None) -> InlineKeyboardMarkup:
    """
    Category picker for the media step plus a Done button.

    The selected category gets a ▶️ prefix, non-empty ones show their count.
    """
    counts = counts or {}
    buttons = []
    for category in UploadCategory:
        prefix = "▶️ " if category.value == selected else ""
        count = counts.get(category.value)
        suffix = f" ({count})" if count else ""
        buttons.append(InlineKeyboardButton(
            text=f"{prefix}{CATEGORY_LABELS[category]}{suffix}",
            callback_data=f"ucat:{category.value}",
        ))

    rows = [buttons[i:i + 2] for i in range(0, len(buttons), 2)]
    rows.append([InlineKeyboardButton(text="✅ Done with photos", callback_data="media:done")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def submit_keyboard() -> InlineKeyboardMarkup:
    """Final confirmation: Submit | Cancel."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="📤 Submit", callback_data="submit:yes"),
            InlineKeyboardButton(text="❌ Cancel", callback_data="submit:cancel"),
        ],
    ])


def otp_keyboard() -> InlineKeyboardMarkup:
    """Shown with the code prompt."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="🔁 Resend code", callback_data="otp:resend"),
            InlineKeyboardButton(text="✖️ Close", callback_data="otp:dismiss"),
        ],
    ])
