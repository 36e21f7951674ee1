"""
Telegram handlers for the small calculator tools.

/emi [amount] [rate] [years] — home-loan EMI with the project page
defaults for anything left out.
"""

import logging

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from urgentsales.adapters.telegram.formatters import format_loan_breakdown
from urgentsales.core.emi import (
    DEFAULT_PRINCIPAL,
    DEFAULT_RATE,
    DEFAULT_TENURE_YEARS,
    loan_breakdown,
)

logger = logging.getLogger(__name__)
router = Router(name="tools")

EMI_USAGE = (
    "Usage: <code>/emi [amount] [rate %] [years]</code>\n"
    "Example: <code>/emi 5000000 8.5 20</code>"
)


def parse_emi_args(args: str | None) -> tuple[float, float, float]:
    """
    Parse "/emi" arguments; missing values fall back to the defaults.

    Raises:
        ValueError: non-numeric input or more than three values
    """
    values = (args or "").replace(",", "").split()
    if len(values) > 3:
        raise ValueError("Too many arguments")
    defaults = [DEFAULT_PRINCIPAL, DEFAULT_RATE, DEFAULT_TENURE_YEARS]
    numbers = [float(v) for v in values] + defaults[len(values):]
    return numbers[0], numbers[1], numbers[2]


@router.message(Command("emi"))
async def cmd_emi(message: Message) -> None:
    """/emi — reply with monthly EMI, total interest and total amount."""
    parts = (message.text or "").split(maxsplit=1)
    args = parts[1] if len(parts) > 1 else None
    try:
        principal, rate, years = parse_emi_args(args)
        breakdown = loan_breakdown(principal, rate, years)
    except ValueError as e:
        logger.debug("Bad /emi input %r: %s", args, e)
        await message.answer(f"⚠️ {e}\n\n{EMI_USAGE}")
        return

    await message.answer(format_loan_breakdown(breakdown, principal, rate, years))
