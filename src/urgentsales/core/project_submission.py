"""
Project submission (builders listing a whole project).

The form is split into tabs; only basic-info and category carry required
fields. Submission tries multipart first (hero image as a file, arrays as
JSON) and falls back to a plain JSON body if the multipart attempt fails
for any reason.
"""

import enum
import json
import logging
from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from urgentsales.core.draft import AuthenticatedUser
from urgentsales.core.notices import NoticeLog
from urgentsales.core.uploads import IMAGE_TYPES, IncomingFile
from urgentsales.services.api_client import ApiError, Part

logger = logging.getLogger(__name__)

MAX_GALLERY_URLS = 25
DEFAULT_USER_ID = "1"


class ProjectCategory(str, enum.Enum):
    LUXURY = "luxury"
    AFFORDABLE = "affordable"
    COMMERCIAL = "commercial"
    NEW_LAUNCH = "new_launch"
    UPCOMING = "upcoming"
    TOP_URGENT = "top_urgent"
    FEATURED = "featured"
    NEWLY_LISTED = "newly_listed"
    COMPANY_PROJECTS = "company_projects"


PROJECT_CATEGORY_LABELS: dict[str, str] = {
    ProjectCategory.LUXURY.value: "Luxury Projects",
    ProjectCategory.AFFORDABLE.value: "Affordable Housing",
    ProjectCategory.COMMERCIAL.value: "Commercial Projects",
    ProjectCategory.NEW_LAUNCH.value: "New Launch",
    ProjectCategory.UPCOMING.value: "Upcoming Projects",
    ProjectCategory.TOP_URGENT.value: "Top Urgent Sale",
    ProjectCategory.FEATURED.value: "Featured Projects",
    ProjectCategory.NEWLY_LISTED.value: "Newly Listed",
    ProjectCategory.COMPANY_PROJECTS.value: "Company Projects",
}

TABS: tuple[str, ...] = ("basic-info", "category", "properties", "gallery", "location", "additional")


class ProjectDraft(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    # ── Basic info ────────────────────────────────────────────
    project_name: str = ""
    project_address: str = ""
    rera_number: str = ""
    project_price: str = ""
    about_project: str = ""
    developer_info: str = ""
    offer_details: str = ""
    project_category: str = ""

    # ── Media ─────────────────────────────────────────────────
    hero_image_url: str = ""
    gallery_urls: list[str] = Field(default_factory=list)
    location_map_url: str = ""
    master_plan_url: str = ""
    youtube_url: str = ""

    # ── Properties ────────────────────────────────────────────
    bhk2_sizes: list[str] = Field(default_factory=list)
    bhk3_sizes: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    location_advantages: str = ""

    # ── Financial ─────────────────────────────────────────────
    loan_amount: str = ""
    interest_rate: str = ""
    loan_tenure: str = ""

    # ── Category specific ─────────────────────────────────────
    premium_features: str = ""          # luxury
    exclusive_services: str = ""
    affordability_features: str = ""    # affordable
    financial_schemes: str = ""
    commercial_type: str = ""           # commercial
    business_amenities: str = ""
    launch_date: str = ""               # new launch
    launch_offers: str = ""
    expected_completion_date: str = ""  # upcoming
    construction_status: str = ""
    sale_deadline: str = ""             # top urgent
    urgency_reason: str = ""
    discount_offered: str = ""
    highlight_features: str = ""        # featured
    accolades: str = ""
    listing_date: str = ""              # newly listed
    special_intro_offer: str = ""
    company_profile: str = ""           # company projects
    past_projects: str = ""

    def add_gallery_urls(self, urls: list[str]) -> int:
        """Append gallery URLs up to the cap; returns how many were added."""
        room = MAX_GALLERY_URLS - len(self.gallery_urls)
        added = [u for u in urls if u.strip()][: max(room, 0)]
        self.gallery_urls = self.gallery_urls + added
        return len(added)


# ── Validation ───────────────────────────────────────────────

_RULES: dict[str, tuple[TypeAdapter, str]] = {
    "project_name": (
        TypeAdapter(Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]),
        "Project name must be at least 3 characters",
    ),
    "project_address": (
        TypeAdapter(Annotated[str, StringConstraints(strip_whitespace=True, min_length=5)]),
        "Address must be at least 5 characters",
    ),
    "project_category": (TypeAdapter(ProjectCategory), "Please select a project category"),
}

TAB_FIELDS: dict[str, tuple[str, ...]] = {
    "basic-info": ("project_name", "project_address"),
    "category": ("project_category",),
}


def validate_project(draft: ProjectDraft, names: tuple[str, ...] | None = None) -> dict[str, str]:
    """{field: message} for the failing fields (all required fields by default)."""
    errors: dict[str, str] = {}
    for name in names if names is not None else tuple(_RULES):
        adapter, message = _RULES[name]
        try:
            adapter.validate_python(getattr(draft, name))
        except ValidationError:
            errors[name] = message
    return errors


class ProjectTabs:
    """Tab navigation; moving forward checks the current tab's fields."""

    def __init__(self, draft: ProjectDraft) -> None:
        self.draft = draft
        self.tab = TABS[0]

    def advance(self) -> tuple[bool, dict[str, str]]:
        errors = validate_project(self.draft, TAB_FIELDS.get(self.tab, ()))
        if errors:
            return False, errors
        index = TABS.index(self.tab)
        if index + 1 < len(TABS):
            self.tab = TABS[index + 1]
        return True, {}

    def retreat(self) -> None:
        index = TABS.index(self.tab)
        if index > 0:
            self.tab = TABS[index - 1]

    def go_to(self, tab: str) -> None:
        """Jump to any tab (clicking a tab header)."""
        if tab not in TABS:
            raise ValueError(f"Unknown tab {tab!r}")
        self.tab = tab


# ── Payloads ─────────────────────────────────────────────────


def _strip_braces(url: str) -> str:
    if url.startswith("{") and url.endswith("}"):
        return url[1:-1]
    return url


def _non_blank(values: list[str]) -> list[str]:
    return [v for v in values if v.strip()]


def bhk_config(draft: ProjectDraft) -> str:
    """BHK label from the filled size lists, e.g. '2,3 BHK' or '3 BHK'."""
    kinds = []
    if _non_blank(draft.bhk2_sizes):
        kinds.append("2")
    if _non_blank(draft.bhk3_sizes):
        kinds.append("3")
    return f"{','.join(kinds)} BHK"


def build_project_parts(
    draft: ProjectDraft,
    *,
    user: AuthenticatedUser | None = None,
    hero_image: IncomingFile | None = None,
) -> list[Part]:
    """Multipart parts for POST /api/projects."""
    parts: list[Part] = []
    data = draft.model_dump(by_alias=True)
    data["bhk2Sizes"] = _non_blank(draft.bhk2_sizes)
    data["bhk3Sizes"] = _non_blank(draft.bhk3_sizes)
    gallery = [_strip_braces(u) for u in _non_blank(draft.gallery_urls)]
    data["galleryUrls"] = gallery

    for name, value in data.items():
        if isinstance(value, list):
            parts.append((name, json.dumps(value)))
        elif value not in (None, ""):
            parts.append((name, str(value)))

    if hero_image is not None and hero_image.content:
        parts.append(("heroImage", (hero_image.name, hero_image.content, hero_image.mime_type)))

    for index, url in enumerate(gallery):
        parts.append((f"galleryUrl_{index}", url))

    user_id = user.id if user is not None and user.id else None
    parts.append(("userId", str(user_id) if user_id else DEFAULT_USER_ID))
    parts.append(("status", "upcoming"))
    parts.append(("approvalStatus", "pending"))
    return parts


def build_project_json(draft: ProjectDraft, *, user: AuthenticatedUser | None = None) -> dict[str, Any]:
    """Fallback JSON body for POST /api/projects."""
    city = draft.project_address.split(",")[-1].strip() or "Unknown"
    image_urls = [
        _strip_braces(u)
        for u in [draft.hero_image_url, *draft.gallery_urls]
        if u and u.strip()
    ]
    return {
        "title": draft.project_name,
        "description": draft.about_project or "No description provided",
        "location": draft.project_address,
        "city": city,
        "state": "Not specified",
        "price": draft.project_price,
        "bhkConfig": bhk_config(draft),
        "builder": draft.developer_info or "Not specified",
        "category": draft.project_category,
        "status": "upcoming",
        "amenities": list(draft.amenities),
        "tags": [draft.project_category],
        "imageUrls": image_urls,
        "contactNumber": user.phone if user is not None else "",
        "userId": user.id if user is not None and user.id else 1,
        "approvalStatus": "pending",
    }


# ── Submission ───────────────────────────────────────────────


@dataclass
class ProjectSubmitResult:
    ok: bool
    project_id: Any = None
    message: str = ""
    errors: dict[str, str] | None = None


def _result_id(data: Any) -> Any:
    if not isinstance(data, dict):
        return None
    project = data.get("project")
    if isinstance(project, dict) and project.get("id") is not None:
        return project["id"]
    return data.get("id")


async def submit_project(
    api: Any,
    draft: ProjectDraft,
    *,
    user: AuthenticatedUser | None = None,
    hero_image: IncomingFile | None = None,
    notices: NoticeLog | None = None,
) -> ProjectSubmitResult:
    """
    Validate and send a project.

    Multipart first; on any ApiError the JSON body is tried once. Only
    the JSON attempt's error is reported.
    """
    notices = notices or NoticeLog()

    errors = validate_project(draft)
    if errors:
        message = next(iter(errors.values()))
        notices.error("Validation Error", message)
        return ProjectSubmitResult(ok=False, message=message, errors=errors)

    if hero_image is not None and hero_image.mime_type not in IMAGE_TYPES:
        message = f"Unsupported hero image type: {hero_image.mime_type}"
        notices.error("Validation Error", message)
        return ProjectSubmitResult(ok=False, message=message)

    notices.info("Submitting Project", "Please wait while we process your submission...")

    try:
        data = await api.submit_project_multipart(build_project_parts(draft, user=user, hero_image=hero_image))
    except ApiError as e:
        logger.warning("Multipart project submission failed (%s), retrying as JSON", e.message)
        try:
            data = await api.submit_project_json(build_project_json(draft, user=user))
        except ApiError as json_error:
            logger.error("Project submission failed: %s", json_error.message)
            notices.error("Error submitting project", json_error.message)
            return ProjectSubmitResult(ok=False, message=json_error.message)

    project_id = _result_id(data)
    logger.info("Project '%s' submitted, id=%s", draft.project_name, project_id)
    message = "Your project has been sent for review and approval"
    notices.success("Project submitted successfully", message)
    return ProjectSubmitResult(ok=True, project_id=project_id, message=message)
