"""
Telegram handlers for the property listing wizard.

Each chat user gets one PropertyWizard. Handlers turn messages and
button presses into wizard transitions and render the results; every
rule (validation, pricing, upload limits, OTP) lives in core/.

Flow:
  /postproperty → details → location → media → contact → submit
  → emailed code → published
  /back steps back, /cancel throws the draft away.
"""

import logging

from aiogram import Bot, F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from urgentsales.adapters.telegram.formatters import (
    format_draft_summary,
    format_errors,
    format_step_header,
    format_upload_status,
)
from urgentsales.adapters.telegram.fsm_states import STEP_STATES, ListingSubmission
from urgentsales.adapters.telegram.keyboards import (
    keep_keyboard,
    options_keyboard,
    otp_keyboard,
    submit_keyboard,
    upload_category_keyboard,
)
from urgentsales.config import settings
from urgentsales.core.draft import AuthenticatedUser
from urgentsales.core.options import (
    AREA_UNIT_LABELS,
    CATEGORY_LABELS,
    PROPERTY_TYPE_LABELS,
    TRANSACTION_TYPE_LABELS,
    USER_TYPE_LABELS,
    PropertyCategory,
    UserType,
)
from urgentsales.core.pricing import format_indian_number
from urgentsales.core.states import WizardStep
from urgentsales.core.uploads import IncomingFile, UploadCategory
from urgentsales.core.wizard import PropertyWizard, SubmitResult, SubmitStatus
from urgentsales.services.api_client import UrgentSalesClient

logger = logging.getLogger(__name__)
router = Router(name="listing_wizard")

# Wizard per Telegram user (lives as long as the process)
_wizards: dict[int, PropertyWizard] = {}
_sessions: dict[int, dict] = {}

# Module-level client (lazy-initialized)
_client: UrgentSalesClient | None = None


def get_client() -> UrgentSalesClient:
    global _client
    if _client is None:
        _client = UrgentSalesClient(settings.api_base_url)
    return _client


async def close_client() -> None:
    """Dispose every open wizard and shut down the HTTP client."""
    global _client
    for wizard in _wizards.values():
        wizard.dispose()
    _wizards.clear()
    _sessions.clear()
    if _client is not None:
        await _client.aclose()
        _client = None


def _drop_wizard(user_id: int) -> None:
    """Dispose the user's wizard and forget its staged-file session data."""
    _sessions.pop(user_id, None)
    wizard = _wizards.pop(user_id, None)
    if wizard is not None:
        wizard.dispose()


# ── Field prompts ────────────────────────────────────────────

# Fields asked per step, in order. Conditional ones are skipped when hidden.
STEP_PROMPT_FIELDS: dict[WizardStep, tuple[str, ...]] = {
    WizardStep.PROPERTY_DETAILS: (
        "user_type",
        "property_category",
        "property_type",
        "transaction_type",
        "title",
        "bedrooms",
        "bathrooms",
        "area",
        "area_unit",
        "price",
    ),
    WizardStep.LOCATION: ("city", "location", "pincode"),
    WizardStep.MEDIA: (),
    WizardStep.CONTACT: ("contact_name", "contact_phone", "contact_email"),
}

CONDITIONAL_FIELDS = frozenset({"bedrooms", "bathrooms"})

PROMPTS: dict[str, str] = {
    "user_type": "Who is listing this property?",
    "property_category": "Choose the <b>property category</b>:",
    "property_type": "Choose the <b>property type</b>:",
    "transaction_type": "Choose the <b>transaction type</b>:",
    "title": "Enter a <b>listing title</b> (at least 10 characters), e.g. «Spacious 3BHK near Metro»:",
    "bedrooms": "How many <b>bedrooms</b>?",
    "bathrooms": "How many <b>bathrooms</b>?",
    "area": "Enter the <b>area</b> (number, minimum 100):",
    "area_unit": "Choose the <b>area unit</b>:",
    "price": (
        "Enter the <b>price per unit</b> (e.g. 5000),\n"
        "or the total price as «total 6000000»:"
    ),
    "city": "Enter the <b>city</b>:",
    "location": "Enter the <b>locality / address</b> (at least 5 characters):",
    "pincode": "Enter the 6-digit <b>pincode</b>:",
    "contact_name": "Enter the <b>contact name</b>:",
    "contact_phone": "Enter the <b>contact phone</b> (10 digits):",
    "contact_email": "Enter the <b>contact email</b>; we will send a verification code there:",
}

ROOM_CHOICES = [(str(n), str(n)) for n in range(1, 6)] + [("10+", "10+")]


def _choices(wizard: PropertyWizard, field: str) -> InlineKeyboardMarkup | None:
    if field == "user_type":
        return options_keyboard(field, [(u.value, USER_TYPE_LABELS[u.value]) for u in UserType], columns=3)
    if field == "property_category":
        return options_keyboard(
            field, [(c.value, CATEGORY_LABELS[c.value]) for c in PropertyCategory], columns=3
        )
    if field == "property_type":
        return options_keyboard(
            field, [(t.value, PROPERTY_TYPE_LABELS[t.value]) for t in wizard.property_type_options]
        )
    if field == "transaction_type":
        return options_keyboard(
            field, [(t.value, TRANSACTION_TYPE_LABELS[t.value]) for t in wizard.transaction_type_options]
        )
    if field == "area_unit":
        return options_keyboard(
            field, [(u.value, AREA_UNIT_LABELS[u.value]) for u in wizard.area_unit_options], columns=4
        )
    if field in CONDITIONAL_FIELDS:
        return options_keyboard(field, ROOM_CHOICES, columns=6)
    if field in ("contact_name", "contact_phone"):
        current = getattr(wizard.draft, field)
        if current:
            return keep_keyboard(field, current)
    return None


def _fields_for(wizard: PropertyWizard, step: WizardStep) -> list[str]:
    visible = wizard.visible_fields
    return [
        f for f in STEP_PROMPT_FIELDS[step]
        if f not in CONDITIONAL_FIELDS or f in visible
    ]


async def _ask(message: Message, state: FSMContext, wizard: PropertyWizard, field: str) -> None:
    await state.update_data(field=field)
    await message.answer(PROMPTS[field], reply_markup=_choices(wizard, field))


async def _enter_step(message: Message, state: FSMContext, wizard: PropertyWizard) -> None:
    """Switch FSM state to the wizard's current step and ask its first question."""
    step = wizard.step
    await state.set_state(STEP_STATES[step])
    await message.answer(format_step_header(step))

    if step is WizardStep.MEDIA:
        data = await state.get_data()
        category = data.get("category", UploadCategory.EXTERIOR.value)
        await state.update_data(field=None, category=category)
        await message.answer(
            "📸 Send photos (or videos) of the property. Pick a category first;\n"
            f"{format_upload_status(wizard.tracker)}",
            reply_markup=upload_category_keyboard(category, _counts(wizard)),
        )
        return

    fields = _fields_for(wizard, step)
    await _ask(message, state, wizard, fields[0])


async def _after_field(message: Message, state: FSMContext, wizard: PropertyWizard, field: str) -> None:
    """Ask the next field of the step, or try to leave the step."""
    fields = _fields_for(wizard, wizard.step)
    index = fields.index(field) if field in fields else -1
    if 0 <= index < len(fields) - 1:
        await _ask(message, state, wizard, fields[index + 1])
        return

    if wizard.step is WizardStep.CONTACT:
        await state.update_data(field=None)
        await message.answer(
            format_draft_summary(wizard.draft, wizard.tracker),
            reply_markup=submit_keyboard(),
        )
        return

    result = wizard.advance()
    if result.ok:
        await _enter_step(message, state, wizard)
        return

    await message.answer(format_errors(result.errors, result.message))
    price_errors = {"price_per_unit", "total_price"} & result.errors.keys()
    failing = [f for f in fields if f in result.errors or (f == "price" and price_errors)]
    await _ask(message, state, wizard, failing[0] if failing else fields[0])


def _counts(wizard: PropertyWizard) -> dict[str, int]:
    return {c.value: wizard.tracker.count(c) for c in UploadCategory}


async def _current(message: Message, state: FSMContext) -> PropertyWizard | None:
    user = message.from_user
    wizard = _wizards.get(user.id) if user else None
    if wizard is None:
        await state.clear()
        await message.answer("No listing in progress. Send /postproperty to start.")
    return wizard


# ── Entry point / navigation ─────────────────────────────────


@router.message(Command("postproperty"))
async def cmd_post_property(message: Message, state: FSMContext) -> None:
    """Start a new listing for this user."""
    tg_user = message.from_user
    if tg_user is None:
        return

    await state.clear()
    _drop_wizard(tg_user.id)

    session = _sessions.setdefault(tg_user.id, {})
    wizard = PropertyWizard(
        get_client(),
        user=AuthenticatedUser(name=tg_user.full_name or ""),
        session_store=session,
    )
    _wizards[tg_user.id] = wizard
    logger.info("Listing wizard started for tg_id=%d", tg_user.id)

    await message.answer(
        "🏡 <b>Post your property for free</b>\n\n"
        "Four short steps. Send /back to return to the previous step, /cancel to stop."
    )
    await _enter_step(message, state, wizard)


@router.message(Command("back"), StateFilter(ListingSubmission))
async def cmd_back(message: Message, state: FSMContext) -> None:
    wizard = await _current(message, state)
    if wizard is None:
        return
    if await state.get_state() == ListingSubmission.otp.state:
        wizard.dismiss_otp()
    result = wizard.retreat()
    if not result.ok:
        await message.answer(result.message)
    await _enter_step(message, state, wizard)


@router.message(Command("cancel"), StateFilter(ListingSubmission))
async def cmd_cancel(message: Message, state: FSMContext) -> None:
    if message.from_user is not None:
        _drop_wizard(message.from_user.id)
    await state.clear()
    await message.answer("❌ Listing cancelled.")


# ── Choices and text answers ─────────────────────────────────


@router.callback_query(StateFilter(ListingSubmission.details), F.data.startswith("set:"))
async def process_choice(callback: CallbackQuery, state: FSMContext) -> None:
    """Inline-button answer for an enumerated field."""
    await callback.answer()
    _, field, value = callback.data.split(":", 2)  # type: ignore[union-attr]
    message = callback.message
    wizard = _wizards.get(callback.from_user.id)
    if wizard is None or message is None:
        await state.clear()
        return

    error = wizard.set_field(field, value)
    if error:
        await message.answer(f"⚠️ {error}")  # type: ignore[union-attr]
        await _ask(message, state, wizard, field)  # type: ignore[arg-type]
        return
    await _after_field(message, state, wizard, field)  # type: ignore[arg-type]


@router.callback_query(StateFilter(ListingSubmission.contact), F.data.startswith("keep:"))
async def process_keep(callback: CallbackQuery, state: FSMContext) -> None:
    """Keep a pre-filled contact value."""
    await callback.answer()
    field = callback.data.split(":", 1)[1]  # type: ignore[union-attr]
    wizard = _wizards.get(callback.from_user.id)
    if wizard is None or callback.message is None:
        await state.clear()
        return
    await _after_field(callback.message, state, wizard, field)  # type: ignore[arg-type]


@router.message(StateFilter(ListingSubmission.details, ListingSubmission.location, ListingSubmission.contact), F.text)
async def process_text(message: Message, state: FSMContext) -> None:
    """Free-text answer for the field currently asked."""
    wizard = await _current(message, state)
    if wizard is None:
        return
    field = (await state.get_data()).get("field")
    if not field:
        await message.answer("Use the buttons above, or /back to change something.")
        return
    if _choices(wizard, field) is not None and field not in ("contact_name", "contact_phone"):
        await message.answer("Please pick one of the options above.")
        return

    text = message.text.strip()  # type: ignore[union-attr]
    target = field
    if field == "price":
        lowered = text.lower()
        if lowered.startswith("total"):
            target, text = "total_price", text[5:].strip(" :=")
        else:
            target = "price_per_unit"

    error = wizard.set_field(target, text) or wizard.blur(target)
    if error:
        await message.answer(f"⚠️ {error}")
        await _ask(message, state, wizard, field)
        return

    if field == "price" and wizard.draft.total_price:
        await message.answer(f"💰 Total price: ₹{format_indian_number(wizard.draft.total_price)}")
    await _after_field(message, state, wizard, field)


# ── Media step ───────────────────────────────────────────────


@router.callback_query(StateFilter(ListingSubmission.media), F.data.startswith("ucat:"))
async def process_upload_category(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    category = callback.data.split(":", 1)[1]  # type: ignore[union-attr]
    wizard = _wizards.get(callback.from_user.id)
    if wizard is None or callback.message is None:
        await state.clear()
        return
    await state.update_data(category=category)
    await callback.message.answer(  # type: ignore[union-attr]
        f"Now send files for <b>{category}</b>.",
        reply_markup=upload_category_keyboard(category, _counts(wizard)),
    )


@router.message(StateFilter(ListingSubmission.media), F.photo | F.video | F.document)
async def process_media(message: Message, state: FSMContext, bot: Bot) -> None:
    """Download the sent file and stage it in the selected category."""
    wizard = await _current(message, state)
    if wizard is None:
        return
    category = (await state.get_data()).get("category", UploadCategory.EXTERIOR.value)

    if message.photo:
        photo = message.photo[-1]  # largest size
        file_id, name, mime = photo.file_id, f"photo_{photo.file_unique_id}.jpg", "image/jpeg"
        size = photo.file_size
    elif message.video:
        video = message.video
        file_id, mime = video.file_id, video.mime_type or "video/mp4"
        name, size = video.file_name or f"video_{video.file_unique_id}.mp4", video.file_size
    else:
        doc = message.document
        file_id, mime = doc.file_id, doc.mime_type or "application/octet-stream"  # type: ignore[union-attr]
        name, size = doc.file_name or doc.file_unique_id, doc.file_size  # type: ignore[union-attr]

    if category != UploadCategory.VIDEO.value and mime.startswith("video/"):
        category = UploadCategory.VIDEO.value

    content = await _download(bot, file_id)
    result = wizard.upload([IncomingFile(name=name, mime_type=mime, content=content, size=size)], category)

    if result.rejected:
        await message.answer(format_errors(dict(result.rejected)))
        return
    await message.answer(
        f"✅ Added. {format_upload_status(wizard.tracker)}",
        reply_markup=upload_category_keyboard(category, _counts(wizard)),
    )


async def _download(bot: Bot, file_id: str) -> bytes:
    """Download a file from Telegram by file_id."""
    file = await bot.get_file(file_id)
    if file.file_path is None:
        raise ValueError(f"Cannot download file: {file_id}")
    result = await bot.download_file(file.file_path)
    if result is None:
        raise ValueError(f"Download returned empty for: {file_id}")
    return result.read()


@router.callback_query(StateFilter(ListingSubmission.media), F.data == "media:done")
async def process_media_done(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = _wizards.get(callback.from_user.id)
    if wizard is None or callback.message is None:
        await state.clear()
        return
    result = wizard.advance()
    if not result.ok:
        await callback.message.answer(f"⚠️ {result.message}")  # type: ignore[union-attr]
        return
    await _enter_step(callback.message, state, wizard)  # type: ignore[arg-type]


# ── Submit / OTP ─────────────────────────────────────────────


@router.callback_query(StateFilter(ListingSubmission.contact), F.data == "submit:cancel")
async def process_submit_cancel(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    _drop_wizard(callback.from_user.id)
    await state.clear()
    await callback.message.answer("❌ Listing cancelled.")  # type: ignore[union-attr]


@router.callback_query(StateFilter(ListingSubmission.contact), F.data == "submit:yes")
async def process_submit(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = _wizards.get(callback.from_user.id)
    message = callback.message
    if wizard is None or message is None:
        await state.clear()
        return

    result = await wizard.submit()
    await _render_submit(message, state, wizard, result, callback.from_user.id)  # type: ignore[arg-type]


@router.message(StateFilter(ListingSubmission.otp), F.text)
async def process_otp(message: Message, state: FSMContext) -> None:
    """Receive the emailed code."""
    wizard = await _current(message, state)
    if wizard is None:
        return
    result = await wizard.verify_otp(message.text or "")
    await _render_submit(message, state, wizard, result, message.from_user.id)  # type: ignore[union-attr]


@router.callback_query(StateFilter(ListingSubmission.otp), F.data == "otp:resend")
async def process_otp_resend(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = _wizards.get(callback.from_user.id)
    if wizard is None or callback.message is None:
        await state.clear()
        return
    ok, text = await wizard.resend_otp()
    await callback.message.answer(("📧 " if ok else "⚠️ ") + text)  # type: ignore[union-attr]


@router.callback_query(StateFilter(ListingSubmission.otp), F.data == "otp:dismiss")
async def process_otp_dismiss(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = _wizards.get(callback.from_user.id)
    if wizard is None or callback.message is None:
        await state.clear()
        return
    wizard.dismiss_otp()
    await state.set_state(ListingSubmission.contact)
    await callback.message.answer(  # type: ignore[union-attr]
        "Verification closed. Your details are kept; submit again when ready.",
        reply_markup=submit_keyboard(),
    )


async def _render_submit(
    message: Message,
    state: FSMContext,
    wizard: PropertyWizard,
    result: SubmitResult,
    user_id: int,
) -> None:
    status = result.status

    if status is SubmitStatus.OTP_REQUESTED:
        await state.set_state(ListingSubmission.otp)
        await message.answer(f"📧 {result.message}\n\nSend the 6-digit code here:", reply_markup=otp_keyboard())
    elif status is SubmitStatus.OTP_REJECTED:
        await message.answer(f"⚠️ {result.message}", reply_markup=otp_keyboard())
    elif status is SubmitStatus.SUBMITTED:
        _drop_wizard(user_id)
        await state.clear()
        ref = f"\nListing ID: <code>{result.record_id}</code>" if result.record_id is not None else ""
        await message.answer(f"🎉 <b>Property submitted!</b>\n{result.message}{ref}")
    elif status is SubmitStatus.SUBMISSION_FAILED:
        await state.set_state(ListingSubmission.contact)
        await message.answer(f"⚠️ {result.message}\nYour details are kept.", reply_markup=submit_keyboard())
    elif status is SubmitStatus.VALIDATION_FAILED:
        await state.set_state(ListingSubmission.contact)
        await message.answer(format_errors(result.errors, result.message) + "\n\nUse /back to fix earlier steps.")
        contact_fields = [f for f in STEP_PROMPT_FIELDS[WizardStep.CONTACT] if f in result.errors]
        if contact_fields:
            await _ask(message, state, wizard, contact_fields[0])
    else:
        await message.answer(f"⏳ {result.message}")
