"""
Telegram-specific message formatters — HTML output.

Core code returns raw data and plain-text messages. All HTML formatting
belongs here, never in core/.
"""

from html import escape

from urgentsales.core.draft import PropertyDraft
from urgentsales.core.emi import LoanBreakdown
from urgentsales.core.options import (
    AREA_UNIT_LABELS,
    CATEGORY_LABELS,
    PROPERTY_TYPE_LABELS,
    TRANSACTION_TYPE_LABELS,
    USER_TYPE_LABELS,
)
from urgentsales.core.pricing import format_indian_number, format_indian_price
from urgentsales.core.states import LAST_STEP, WizardStep
from urgentsales.core.uploads import CATEGORY_LABELS as UPLOAD_LABELS
from urgentsales.core.uploads import UploadTracker

STEP_TITLES: dict[WizardStep, str] = {
    WizardStep.PROPERTY_DETAILS: "Property Details",
    WizardStep.LOCATION: "Location",
    WizardStep.MEDIA: "Photos & Videos",
    WizardStep.CONTACT: "Contact Information",
}


def _label(labels: dict[str, str], value: object) -> str:
    if value is None:
        return "—"
    key = getattr(value, "value", value)
    return labels.get(str(key), str(key))


def format_step_header(step: WizardStep) -> str:
    """'Step 2 of 4 · Location' in bold."""
    return f"<b>Step {int(step)} of {int(LAST_STEP)} · {STEP_TITLES[step]}</b>"


def format_draft_summary(draft: PropertyDraft, tracker: UploadTracker | None = None) -> str:
    """
    Listing summary shown before the final submit.
    """
    unit = _label(AREA_UNIT_LABELS, draft.area_unit)
    lines = [
        f"🏠 <b>{escape(draft.title or 'Untitled listing')}</b>",
        "",
        f"👤 {_label(USER_TYPE_LABELS, draft.user_type)}"
        f" · {_label(CATEGORY_LABELS, draft.property_category)}"
        f" · {_label(PROPERTY_TYPE_LABELS, draft.property_type)}",
        f"🔁 {_label(TRANSACTION_TYPE_LABELS, draft.transaction_type)}",
    ]

    if draft.area:
        lines.append(f"📐 {format_indian_number(draft.area)} {unit}")
    if draft.price_per_unit:
        lines.append(f"💵 ₹{format_indian_number(draft.price_per_unit)} / {unit}")
    if draft.price:
        lines.append(f"💰 <b>{format_indian_price(draft.price)}</b>")

    place = ", ".join(p for p in (draft.location, draft.city) if p)
    if place:
        pin = f" – {escape(draft.pincode)}" if draft.pincode else ""
        lines.append(f"📍 {escape(place)}{pin}")

    if draft.bedrooms or draft.bathrooms:
        lines.append(f"🛏 {escape(draft.bedrooms or '—')} bed · 🛁 {escape(draft.bathrooms or '—')} bath")

    if tracker is not None:
        lines.append(f"🖼 {tracker.total_images()} photo(s), {tracker.count('video')} video(s)")

    if draft.contact_name or draft.contact_email:
        lines.append("")
        lines.append(f"📞 {escape(draft.contact_name)} · {escape(draft.contact_phone)}")
        lines.append(f"✉️ {escape(draft.contact_email)}")

    return "\n".join(lines)


def format_errors(errors: dict[str, str], message: str = "") -> str:
    """Bulleted list of field messages, with an optional lead line."""
    lines = [f"⚠️ {escape(message)}"] if message else []
    lines.extend(f"• {escape(text)}" for text in errors.values())
    return "\n".join(lines) or "⚠️ Something is not right, please check your input."


def format_upload_status(tracker: UploadTracker) -> str:
    """Per-category counts for the media step."""
    parts = [
        f"{UPLOAD_LABELS[category]}: {len(records)}"
        for category, records in _grouped(tracker)
        if records
    ]
    if not parts:
        return "No files yet."
    return "📎 " + ", ".join(parts)


def _grouped(tracker: UploadTracker):
    grouped: dict = {}
    for category, record in tracker.all_records():
        grouped.setdefault(category, []).append(record)
    return grouped.items()


def format_loan_breakdown(
    breakdown: LoanBreakdown,
    principal: float,
    annual_rate_pct: float,
    tenure_years: float,
) -> str:
    """EMI calculator reply."""
    return (
        "🧮 <b>EMI Calculator</b>\n\n"
        f"Loan amount: ₹{format_indian_number(principal)}\n"
        f"Interest rate: {annual_rate_pct:g}% p.a.\n"
        f"Tenure: {tenure_years:g} years ({breakdown.months} months)\n\n"
        f"📅 Monthly EMI: <b>₹{format_indian_number(breakdown.monthly_emi)}</b>\n"
        f"💸 Total interest: ₹{format_indian_number(breakdown.total_interest)}\n"
        f"💰 Total amount: ₹{format_indian_number(breakdown.total_amount)}"
    )
