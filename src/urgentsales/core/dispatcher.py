"""
Submission dispatcher: serializes a verified PropertyDraft plus its staged
files into one multipart request and handles the outcome.

Part layout:
  - every non-empty draft field under its camelCase name
    (booleans "true"/"false", amenities as a JSON array)
  - per upload category, in category order:
      <category>_urls_<i>  hosted URI of an already uploaded file
      <category>_<i>       the raw file otherwise
  - imageUrls            JSON array of every hosted image URI
  - imageUrl_<i>         the same URIs one per part
  - debug / timestamp / emailVerified markers
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from urgentsales.config import Settings
from urgentsales.config import settings as default_settings
from urgentsales.core.draft import PropertyDraft
from urgentsales.core.notices import NoticeLog
from urgentsales.core.uploads import UploadCategory, UploadTracker
from urgentsales.services.api_client import ApiError, Part
from urgentsales.services.list_cache import ListViewCache

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "Failed to submit property"
SUCCESS_ROUTE = "/submission-success"


class SubmissionApi(Protocol):
    async def submit_property(self, parts: list[Part]) -> dict[str, Any]: ...


@dataclass
class PropertyPayload:
    parts: list[Part] = field(default_factory=list)

    def add(self, name: str, value: str | tuple[str, bytes, str]) -> None:
        self.parts.append((name, value))

    def fields(self) -> dict[str, str]:
        """Text parts by name (last one wins)."""
        return {name: value for name, value in self.parts if isinstance(value, str)}

    def file_names(self) -> list[str]:
        """Names of the parts that carry raw file bytes."""
        return [name for name, value in self.parts if isinstance(value, tuple)]

    def names(self) -> list[str]:
        return [name for name, _ in self.parts]


@dataclass
class DispatchResult:
    ok: bool
    record_id: Any = None
    message: str = ""
    redirect_to: str | None = None


# ── Payload ──────────────────────────────────────────────────


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _clean_uri(uri: str) -> str:
    """Strip the curly braces some hosting responses wrap URIs in."""
    if uri.startswith("{") and uri.endswith("}"):
        return uri[1:-1]
    return uri


def build_property_payload(
    draft: PropertyDraft,
    tracker: UploadTracker,
    now: float | None = None,
) -> PropertyPayload:
    payload = PropertyPayload()

    for name, value in draft.model_dump(mode="json", by_alias=True).items():
        if value is None or value == "" or name == "otp":
            continue
        if isinstance(value, list):
            if value:
                payload.add(name, json.dumps(value))
            continue
        payload.add(name, _text(value))

    image_urls: list[str] = []
    skipped = 0
    for category in UploadCategory:
        for index, record in enumerate(tracker.files(category)):
            if record.server_uri:
                payload.add(f"{category.value}_urls_{index}", record.server_uri)
                if category is not UploadCategory.VIDEO:
                    image_urls.append(_clean_uri(record.server_uri))
            elif record.content:
                payload.add(
                    f"{category.value}_{index}",
                    (record.display_name, record.content, record.mime_type),
                )
            else:
                skipped += 1

    if skipped:
        logger.warning("Skipped %d restored files with no bytes and no hosted URI", skipped)

    if image_urls:
        payload.add("imageUrls", json.dumps(image_urls))
        for index, url in enumerate(image_urls):
            payload.add(f"imageUrl_{index}", url)

    timestamp = int((now if now is not None else time.time()) * 1000)
    payload.add("debug", "true")
    payload.add("timestamp", str(timestamp))
    payload.add("emailVerified", "true")
    return payload


# ── Dispatcher ───────────────────────────────────────────────


class SubmissionDispatcher:
    """
    Sends the listing and handles the outcome. One submission at a time.

    Args:
        api: anything with submit_property(parts)
        cache: list-view cache invalidated on success
        navigate: called with the confirmation route after the redirect delay
    """

    LIST_VIEW_KEYS = (
        "properties",
        "/api/properties/free",
        "/api/properties/featured",
        "/api/properties/premium",
        "/api/properties/urgent",
    )

    def __init__(
        self,
        api: SubmissionApi,
        *,
        cache: ListViewCache | None = None,
        settings: Settings | None = None,
        notices: NoticeLog | None = None,
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.settings = settings or default_settings
        self.notices = notices or NoticeLog()
        self.navigate = navigate
        self.in_flight = False
        self.calls = 0

    async def dispatch(
        self,
        draft: PropertyDraft,
        tracker: UploadTracker,
        *,
        email_verified: bool,
    ) -> DispatchResult:
        if not email_verified:
            logger.error("Refusing to dispatch a listing with an unverified email")
            return DispatchResult(ok=False, message="Please verify your email before submitting")
        if self.in_flight:
            logger.debug("Ignoring duplicate dispatch while a submission is in flight")
            return DispatchResult(ok=False, message="Submission already in progress")

        self.in_flight = True
        self.calls += 1
        try:
            payload = build_property_payload(draft, tracker)
            logger.info(
                "Submitting property '%s' (%d parts, %d files)",
                draft.title,
                len(payload.parts),
                len(payload.file_names()),
            )
            try:
                data = await self.api.submit_property(payload.parts)
            except ApiError as e:
                message = e.message or FAILED_MESSAGE
                logger.error("Property submission failed: %s", message)
                self.notices.error("Error", message)
                return DispatchResult(ok=False, message=message)

            record_id = data.get("id") if isinstance(data, dict) else None
            if self.cache is not None:
                self.cache.invalidate(*self.LIST_VIEW_KEYS)

            message = "Your property has been submitted successfully."
            self.notices.success("Property Submitted", message)
            logger.info("Property submitted, id=%s", record_id)

            redirect_to = None
            if record_id is not None:
                redirect_to = f"{SUCCESS_ROUTE}?id={record_id}"
                await asyncio.sleep(self.settings.redirect_delay_seconds)
                if self.navigate is not None:
                    self.navigate(redirect_to)

            return DispatchResult(ok=True, record_id=record_id, message=message, redirect_to=redirect_to)
        finally:
            self.in_flight = False
