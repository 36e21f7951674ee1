"""
Property listing wizard — explicit state machine.

Holds the current step, the draft, the upload tracker and the OTP gate.
Front ends (web page, Telegram chat) call the named transitions below;
each returns a result object instead of raising, so validation problems
and network failures come back as data and the draft is never lost.

Flow:
    details → location → media → contact → submit
                                             ├─ email unverified → OTP requested
                                             └─ verified → dispatch → reset
"""

import enum
import json
import logging
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from urgentsales.config import Settings
from urgentsales.config import settings as default_settings
from urgentsales.core import options
from urgentsales.core.dispatcher import SubmissionDispatcher
from urgentsales.core.draft import (
    ENUM_FIELDS,
    PRICE_FIELDS,
    AuthenticatedUser,
    PropertyDraft,
    field_names,
)
from urgentsales.core.notices import NoticeLog, NoticeSink
from urgentsales.core.otp_gate import OtpGate
from urgentsales.core.pricing import apply_price_edit
from urgentsales.core.states import FIRST_STEP, LAST_STEP, WizardStep
from urgentsales.core.uploads import (
    AcceptResult,
    IncomingFile,
    PreviewRegistry,
    UploadCategory,
    UploadTracker,
)
from urgentsales.core.validation import (
    FIELD_RULES,
    SUBMIT_FIELDS,
    validate_field,
    validate_fields,
    validate_step,
)
from urgentsales.services.list_cache import ListViewCache

logger = logging.getLogger(__name__)

SESSION_KEY = "propertyImageData"
NO_PHOTOS_MESSAGE = "Please upload at least one photo of your property"
STALE_PHOTOS_MESSAGE = "Photos from your earlier session could not be kept, please add them again"


class SubmitStatus(str, enum.Enum):
    NOT_READY = "not_ready"                  # not on the contact step
    VALIDATION_FAILED = "validation_failed"
    OTP_REQUESTED = "otp_requested"          # code sent, waiting for entry
    OTP_SEND_FAILED = "otp_send_failed"
    OTP_REJECTED = "otp_rejected"
    SUBMITTED = "submitted"
    SUBMISSION_FAILED = "submission_failed"
    IGNORED = "ignored"                      # request already in flight


@dataclass
class StepResult:
    ok: bool
    step: WizardStep
    errors: dict[str, str] = field(default_factory=dict)
    message: str = ""


@dataclass
class SubmitResult:
    status: SubmitStatus
    message: str = ""
    errors: dict[str, str] = field(default_factory=dict)
    record_id: Any = None
    redirect_to: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (SubmitStatus.OTP_REQUESTED, SubmitStatus.SUBMITTED)


class PropertyWizard:
    """
    One seller's listing in progress.

    Args:
        api: backend client (send_email_otp, verify_otp, submit_property)
        user: signed-in user used to pre-fill the contact fields
        session_store: per-session key/value store for staged file metadata
        cache: list-view cache invalidated after a successful submission
        notify: receives every Notice as it is raised
        navigate: called with the confirmation route after success
    """

    def __init__(
        self,
        api: Any,
        *,
        user: AuthenticatedUser | None = None,
        session_store: MutableMapping[str, Any] | None = None,
        cache: ListViewCache | None = None,
        notify: NoticeSink | None = None,
        navigate: Callable[[str], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.api = api
        self.user = user
        self.settings = settings or default_settings
        self.session_store = session_store if session_store is not None else {}
        self.notices = NoticeLog(notify)
        self.previews = PreviewRegistry()
        self.tracker = self._new_tracker()
        self.draft = PropertyDraft.for_user(user)
        self.step = FIRST_STEP
        self.errors: dict[str, str] = {}
        self.scroll_anchor = 0
        self.otp_modal_open = False
        self.last_submitted_id: Any = None
        self.disposed = False

        self.otp = OtpGate(api, settings=self.settings, notices=self.notices)
        self.dispatcher = SubmissionDispatcher(
            api,
            cache=cache if cache is not None else getattr(api, "cache", None),
            settings=self.settings,
            notices=self.notices,
            navigate=navigate,
        )

    def _new_tracker(self) -> UploadTracker:
        return UploadTracker(
            self.previews,
            progress_step=self.settings.upload_progress_step,
            progress_interval=self.settings.upload_progress_interval,
        )

    # ── Derived views ─────────────────────────────────────────

    @property
    def visible_fields(self) -> set[str]:
        return options.visible_fields(
            category=self.draft.property_category,
            property_type=self.draft.property_type,
            transaction_type=self.draft.transaction_type,
        )

    @property
    def property_type_options(self) -> tuple[options.PropertyType, ...]:
        return options.property_types_for(self.draft.property_category)

    @property
    def transaction_type_options(self) -> tuple[options.TransactionType, ...]:
        return options.transaction_types_for(self.draft.user_type, self.draft.property_type)

    @property
    def area_unit_options(self) -> tuple[options.AreaUnit, ...]:
        return options.area_units_for(self.draft.property_type)

    # ── Field edits ───────────────────────────────────────────

    def set_field(self, name: str, value: Any) -> str | None:
        """
        The only way to change the draft.

        Returns an error message when the value is rejected (the draft is
        left unchanged), None on success. Unknown field names raise KeyError.
        """
        if name not in field_names():
            raise KeyError(f"Unknown draft field {name!r}")

        try:
            if name in PRICE_FIELDS:
                apply_price_edit(self.draft, name, _number(value))
            elif name in ENUM_FIELDS:
                error = self._set_choice(name, value)
                if error:
                    return error
            else:
                setattr(self.draft, name, value)
        except ValueError as e:
            logger.debug("Rejected %s=%r: %s", name, value, e)
            return f"Invalid value for {name.replace('_', ' ')}"

        self.errors.pop(name, None)
        return None

    def _set_choice(self, name: str, value: Any) -> str | None:
        draft = self.draft
        if value == "":
            value = None

        if name == "property_category":
            draft.property_category = value
            # Always, even when re-selecting the same category
            draft.property_type = None
            self._drop_stale_choices()
            return None

        if name == "property_type":
            if value is not None and not options.is_type_in_category(value, draft.property_category):
                return "Property type does not match the selected category"
            draft.property_type = value
            self._drop_stale_choices()
            return None

        if name == "transaction_type":
            allowed = options.transaction_types_for(draft.user_type, draft.property_type)
            if value is not None and options.TransactionType(value) not in allowed:
                return "This transaction type is not available for the selected property"
            draft.transaction_type = value
            return None

        setattr(draft, name, value)
        if name == "user_type":
            self._drop_stale_choices()
        return None

    def _drop_stale_choices(self) -> None:
        """Clear dependent choices that the new classification no longer offers."""
        draft = self.draft
        if draft.transaction_type is not None and draft.transaction_type not in self.transaction_type_options:
            draft.transaction_type = None
        if draft.area_unit not in self.area_unit_options:
            draft.area_unit = options.AreaUnit.SQFT

    def blur(self, name: str) -> str | None:
        """Validate a single field as the seller leaves it."""
        if name not in FIELD_RULES:
            return None
        message = validate_field(self.draft, name)
        if message:
            self.errors[name] = message
        else:
            self.errors.pop(name, None)
        return message

    # ── Step navigation ───────────────────────────────────────

    def advance(self) -> StepResult:
        """Validate the current step and move forward."""
        if self.step is WizardStep.MEDIA:
            message = self._photo_problem()
            if message:
                self.notices.warning("No Images", message)
                return StepResult(ok=False, step=self.step, message=message)
        else:
            errors = validate_step(self.draft, self.step)
            if errors:
                self.errors.update(errors)
                return StepResult(
                    ok=False,
                    step=self.step,
                    errors=errors,
                    message="Please fix the highlighted fields",
                )

        if self.step is LAST_STEP:
            return StepResult(ok=False, step=self.step, message="This is the last step, submit the listing")

        self._go_to(WizardStep(self.step + 1))
        return StepResult(ok=True, step=self.step)

    def retreat(self) -> StepResult:
        """Move back one step. Never validates."""
        if self.step is FIRST_STEP:
            return StepResult(ok=False, step=self.step, message="Already on the first step")
        self._go_to(WizardStep(self.step - 1))
        return StepResult(ok=True, step=self.step)

    def _go_to(self, step: WizardStep) -> None:
        if self.step is WizardStep.MEDIA:
            self._save_uploads()
        logger.debug("Wizard step %d → %d", self.step, step)
        self.step = step
        self.scroll_anchor += 1
        if step is WizardStep.MEDIA:
            self._restore_uploads()

    def _save_uploads(self) -> None:
        self.session_store[SESSION_KEY] = json.dumps(self.tracker.snapshot())

    def _restore_uploads(self) -> None:
        raw = self.session_store.get(SESSION_KEY)
        if not raw or not self.tracker.is_empty():
            return
        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable %s from session store", SESSION_KEY)
            self.session_store.pop(SESSION_KEY, None)
            return
        self.tracker.restore(data)

    # ── Uploads ───────────────────────────────────────────────

    def upload(self, files: list[IncomingFile], category: UploadCategory | str) -> AcceptResult:
        result = self.tracker.accept(
            files,
            category,
            bedrooms=self.draft.bedrooms,
            bathrooms=self.draft.bathrooms,
        )
        if result.rejected:
            self.notices.warning(
                "Some files were not added",
                "; ".join(f"{name}: {reason}" for name, reason in result.rejected),
            )
        return result

    def remove_upload(self, file_id: str, category: UploadCategory | str) -> bool:
        return self.tracker.remove(file_id, category)

    def _photo_problem(self) -> str | None:
        """Why the staged files cannot satisfy the one-photo minimum, if they cannot."""
        if self.tracker.sendable_images() >= 1:
            return None
        if self.tracker.total_images() >= 1:
            return STALE_PHOTOS_MESSAGE
        return NO_PHOTOS_MESSAGE

    # ── Submission ────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        return self.otp.in_flight or self.dispatcher.in_flight

    async def submit(self) -> SubmitResult:
        """
        Final submit from the contact step.

        An unverified email only triggers a code request; the dispatcher
        is reached once the email is verified.
        """
        if self.step is not LAST_STEP:
            return SubmitResult(SubmitStatus.NOT_READY, "Complete the previous steps first")
        if self.busy:
            return SubmitResult(SubmitStatus.IGNORED, "Please wait, a request is in progress")

        errors = validate_fields(self.draft, SUBMIT_FIELDS)
        if errors:
            self.errors.update(errors)
            return SubmitResult(SubmitStatus.VALIDATION_FAILED, "Please fix the highlighted fields", errors)
        photo_problem = self._photo_problem()
        if photo_problem:
            return SubmitResult(SubmitStatus.VALIDATION_FAILED, photo_problem)

        if not self.otp.verified:
            self.notices.info("Verification Required", "We need to verify your email before submitting")
            ok, message = await self.otp.request_code(self.draft.contact_email)
            self.otp_modal_open = ok
            if not ok:
                return SubmitResult(SubmitStatus.OTP_SEND_FAILED, message)
            return SubmitResult(SubmitStatus.OTP_REQUESTED, message)

        return await self._dispatch()

    async def verify_otp(self, code: str) -> SubmitResult:
        """Check the emailed code; on success the listing is dispatched once."""
        if self.busy:
            return SubmitResult(SubmitStatus.IGNORED, "Please wait, a request is in progress")

        ok, message = await self.otp.verify_code(self.draft.contact_email, code)
        if not ok:
            return SubmitResult(SubmitStatus.OTP_REJECTED, message)

        self.otp_modal_open = False
        return await self._dispatch()

    async def resend_otp(self) -> tuple[bool, str]:
        return await self.otp.request_code(self.draft.contact_email)

    def dismiss_otp(self) -> None:
        """Code entry closed; the draft stays and the next submit asks again."""
        self.otp.dismiss()
        self.otp_modal_open = False

    async def _dispatch(self) -> SubmitResult:
        result = await self.dispatcher.dispatch(
            self.draft, self.tracker, email_verified=self.otp.verified
        )
        if not result.ok:
            return SubmitResult(SubmitStatus.SUBMISSION_FAILED, result.message)

        self.last_submitted_id = result.record_id
        self.session_store.pop(SESSION_KEY, None)
        self._reset()
        return SubmitResult(
            SubmitStatus.SUBMITTED,
            result.message,
            record_id=result.record_id,
            redirect_to=result.redirect_to,
        )

    def _reset(self) -> None:
        self.tracker.dispose()
        self.tracker = self._new_tracker()
        self.draft = PropertyDraft.for_user(self.user)
        self.step = FIRST_STEP
        self.errors.clear()
        self.otp.reset()
        self.otp_modal_open = False

    # ── Teardown ──────────────────────────────────────────────

    def dispose(self) -> None:
        """Release every preview and stop all progress timers."""
        if self.disposed:
            return
        self.tracker.dispose()
        self.disposed = True
        logger.debug(
            "Wizard disposed (previews created=%d released=%d)",
            self.previews.created,
            self.previews.released,
        )


def _number(value: Any) -> float | None:
    """Parse a numeric form input; blank means cleared."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
        if not value:
            return None
    return float(value)
