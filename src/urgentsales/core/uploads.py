"""
Per-category file staging for the media step.

Every selected file becomes a FileRecord in its category's ordered list,
gets a local preview URI from the PreviewRegistry and shows simulated
progress until it reaches 100 % (or a real uploader attaches the hosted
URI). Previews are owned by the registry and must be released on removal
and in bulk when the wizard is disposed.
"""

import asyncio
import enum
import logging
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

MB = 1024 * 1024

IMAGE_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/jpg", "image/webp"})
VIDEO_TYPES: frozenset[str] = frozenset({"video/mp4", "video/mpeg", "video/webm", "video/quicktime"})


class UploadCategory(str, enum.Enum):
    """Media buckets; the value is also the multipart part prefix."""

    EXTERIOR = "exterior"
    LIVING_ROOM = "livingRoom"
    KITCHEN = "kitchen"
    BEDROOM = "bedroom"
    BATHROOM = "bathroom"
    FLOOR_PLAN = "floorPlan"
    MASTER_PLAN = "masterPlan"
    LOCATION_MAP = "locationMap"
    OTHER = "other"
    VIDEO = "video"


CATEGORY_LABELS: dict[UploadCategory, str] = {
    UploadCategory.EXTERIOR: "Exterior",
    UploadCategory.LIVING_ROOM: "Living Room",
    UploadCategory.KITCHEN: "Kitchen",
    UploadCategory.BEDROOM: "Bedroom",
    UploadCategory.BATHROOM: "Bathroom",
    UploadCategory.FLOOR_PLAN: "Floor Plan",
    UploadCategory.MASTER_PLAN: "Master Plan",
    UploadCategory.LOCATION_MAP: "Location Map",
    UploadCategory.OTHER: "Other",
    UploadCategory.VIDEO: "Video",
}


class FileStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class CategoryRule:
    """Accept-list, size cap and count cap for one category."""

    accepts: frozenset[str]
    max_size: int
    max_files: int
    per_bedroom: bool = False
    per_bathroom: bool = False

    def limit(self, bedrooms: int = 1, bathrooms: int = 1) -> int:
        if self.per_bedroom:
            return self.max_files * bedrooms
        if self.per_bathroom:
            return self.max_files * bathrooms
        return self.max_files


CATEGORY_RULES: dict[UploadCategory, CategoryRule] = {
    UploadCategory.EXTERIOR: CategoryRule(IMAGE_TYPES, 20 * MB, 5),
    UploadCategory.LIVING_ROOM: CategoryRule(IMAGE_TYPES, 20 * MB, 3),
    UploadCategory.KITCHEN: CategoryRule(IMAGE_TYPES, 20 * MB, 3),
    UploadCategory.BEDROOM: CategoryRule(IMAGE_TYPES, 20 * MB, 5, per_bedroom=True),
    UploadCategory.BATHROOM: CategoryRule(IMAGE_TYPES, 20 * MB, 3, per_bathroom=True),
    UploadCategory.FLOOR_PLAN: CategoryRule(IMAGE_TYPES, 20 * MB, 3),
    UploadCategory.MASTER_PLAN: CategoryRule(IMAGE_TYPES, 20 * MB, 3),
    UploadCategory.LOCATION_MAP: CategoryRule(IMAGE_TYPES, 20 * MB, 2),
    UploadCategory.OTHER: CategoryRule(IMAGE_TYPES, 20 * MB, 10),
    UploadCategory.VIDEO: CategoryRule(VIDEO_TYPES, 30 * MB, 2),
}


def room_count(value: Any) -> int:
    """Leading integer of a room selection ("3" → 3, "10+" → 10); 1 when unset."""
    match = re.match(r"\s*(\d+)", str(value or ""))
    count = int(match.group(1)) if match else 0
    return count or 1


# ── Records ──────────────────────────────────────────────────


@dataclass
class IncomingFile:
    """A file as handed over by the front end (browser picker, chat upload)."""

    name: str
    mime_type: str
    content: bytes | None = None
    size: int | None = None
    server_uri: str | None = None   # set when already hosted elsewhere

    @property
    def byte_size(self) -> int:
        if self.size is not None:
            return self.size
        return len(self.content or b"")


@dataclass
class FileRecord:
    id: str
    display_name: str
    byte_size: int
    mime_type: str
    preview_uri: str
    server_uri: str | None = None
    status: FileStatus = FileStatus.PENDING
    content: bytes = field(default=b"", repr=False)

    @property
    def is_placeholder(self) -> bool:
        """Restored from the session store: metadata only, no bytes."""
        return not self.content and self.server_uri is None

    @property
    def sendable(self) -> bool:
        """Has bytes or a hosted URI, so it can go into a submission."""
        return bool(self.content) or bool(self.server_uri)


@dataclass
class AcceptResult:
    accepted: list[FileRecord] = field(default_factory=list)
    rejected: list[tuple[str, str]] = field(default_factory=list)   # (file name, reason)


# ── Preview resources ────────────────────────────────────────


class PreviewRegistry:
    """
    Owns local preview URIs.

    Every URI handed out by allocate() (or taken over by adopt()) must come
    back through release(); after a full wizard lifecycle created == released.
    """

    SCHEME = "blob:urgentsales/"

    def __init__(self) -> None:
        self.live: set[str] = set()
        self.created = 0
        self.released = 0

    def allocate(self) -> str:
        uri = f"{self.SCHEME}{uuid.uuid4()}"
        self.live.add(uri)
        self.created += 1
        return uri

    def adopt(self, uri: str) -> str:
        """Take ownership of a URI restored from the session store."""
        if uri and uri not in self.live:
            self.live.add(uri)
            self.created += 1
        return uri

    def release(self, uri: str) -> bool:
        if uri not in self.live:
            return False
        self.live.discard(uri)
        self.released += 1
        return True

    def release_all(self) -> int:
        count = 0
        for uri in list(self.live):
            if self.release(uri):
                count += 1
        if count:
            logger.debug("Released %d preview URIs", count)
        return count


# ── Tracker ──────────────────────────────────────────────────


class UploadTracker:
    """
    Ordered file lists per UploadCategory plus the progress map.

    Progress runs as one asyncio task per file. Without a running event
    loop (or with simulate_progress=False) files complete immediately.
    """

    def __init__(
        self,
        previews: PreviewRegistry | None = None,
        *,
        progress_step: int = 5,
        progress_interval: float = 0.1,
        simulate_progress: bool = True,
    ) -> None:
        self.previews = previews or PreviewRegistry()
        self.progress_step = progress_step
        self.progress_interval = progress_interval
        self.simulate_progress = simulate_progress
        self.progress: dict[str, int] = {}
        self._files: dict[UploadCategory, list[FileRecord]] = {c: [] for c in UploadCategory}
        self._timers: dict[str, asyncio.Task] = {}

    # ── Queries ───────────────────────────────────────────────

    def files(self, category: UploadCategory | str) -> list[FileRecord]:
        return list(self._files[UploadCategory(category)])

    def count(self, category: UploadCategory | str) -> int:
        return len(self._files[UploadCategory(category)])

    def total_images(self) -> int:
        """Files across every category except video."""
        return sum(
            len(records)
            for category, records in self._files.items()
            if category is not UploadCategory.VIDEO
        )

    def sendable_images(self) -> int:
        """Images that will actually be submitted; restored placeholders do not count."""
        return sum(
            1
            for category, records in self._files.items()
            if category is not UploadCategory.VIDEO
            for record in records
            if record.sendable
        )

    def all_records(self) -> list[tuple[UploadCategory, FileRecord]]:
        return [(c, r) for c, records in self._files.items() for r in records]

    def is_empty(self) -> bool:
        return not any(self._files.values())

    @property
    def active_timers(self) -> int:
        return len(self._timers)

    # ── Mutations ─────────────────────────────────────────────

    def accept(
        self,
        files: Iterable[IncomingFile],
        category: UploadCategory | str,
        *,
        bedrooms: Any = 1,
        bathrooms: Any = 1,
    ) -> AcceptResult:
        """
        Stage files into a category.

        Files with a disallowed type, over the size cap, or beyond the
        category's count cap are rejected with a reason; the rest are
        appended in order.
        """
        category = UploadCategory(category)
        rule = CATEGORY_RULES[category]
        limit = rule.limit(room_count(bedrooms), room_count(bathrooms))
        label = CATEGORY_LABELS[category]
        records = self._files[category]
        result = AcceptResult()

        for incoming in files:
            if incoming.mime_type not in rule.accepts:
                result.rejected.append((incoming.name, f"Unsupported file type: {incoming.mime_type}"))
                continue
            if incoming.byte_size > rule.max_size:
                result.rejected.append(
                    (incoming.name, f"File is larger than {rule.max_size // MB} MB")
                )
                continue
            if len(records) >= limit:
                result.rejected.append(
                    (incoming.name, f"Maximum {limit} files allowed for {label}")
                )
                continue

            record = FileRecord(
                id=uuid.uuid4().hex,
                display_name=incoming.name,
                byte_size=incoming.byte_size,
                mime_type=incoming.mime_type,
                preview_uri=self.previews.allocate(),
                content=incoming.content or b"",
            )
            records.append(record)
            result.accepted.append(record)

            if incoming.server_uri:
                self.attach_server_uri(record.id, incoming.server_uri)
            else:
                self._start_progress(record)

        if result.rejected:
            logger.info(
                "Rejected %d of %d files for %s",
                len(result.rejected),
                len(result.rejected) + len(result.accepted),
                category.value,
            )
        return result

    def attach_server_uri(self, file_id: str, uri: str) -> bool:
        """Mark a file as hosted: status success, progress 100, timer stopped."""
        record = self._find(file_id)
        if record is None:
            return False
        self._cancel_timer(file_id)
        record.server_uri = uri
        record.status = FileStatus.SUCCESS
        self.progress[file_id] = 100
        return True

    def mark_error(self, file_id: str) -> bool:
        record = self._find(file_id)
        if record is None:
            return False
        self._cancel_timer(file_id)
        record.status = FileStatus.ERROR
        self.progress.pop(file_id, None)
        return True

    def remove(self, file_id: str, category: UploadCategory | str) -> bool:
        """
        Remove exactly one record. Cancels its timer, drops its progress
        entry and releases its preview. Returns False (no-op) if absent.
        """
        records = self._files[UploadCategory(category)]
        for index, record in enumerate(records):
            if record.id == file_id:
                del records[index]
                break
        else:
            self.progress.pop(file_id, None)
            return False

        self._cancel_timer(file_id)
        self.progress.pop(file_id, None)
        self.previews.release(record.preview_uri)
        return True

    async def wait_idle(self) -> None:
        """Wait until every simulated upload has finished."""
        while self._timers:
            await asyncio.gather(*list(self._timers.values()), return_exceptions=True)

    # ── Session persistence ───────────────────────────────────

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """File metadata per category. Bytes cannot be persisted."""
        return {
            category.value: [
                {
                    "id": r.id,
                    "name": r.display_name,
                    "size": r.byte_size,
                    "type": r.mime_type,
                    "preview": r.preview_uri,
                    "serverUri": r.server_uri,
                }
                for r in records
            ]
            for category, records in self._files.items()
            if records
        }

    def restore(self, data: dict[str, list[dict[str, Any]]]) -> int:
        """
        Rebuild records from a snapshot. Restored entries hold a zero-byte
        placeholder and status success; their previews are adopted.
        """
        restored = 0
        for key, items in (data or {}).items():
            try:
                category = UploadCategory(key)
            except ValueError:
                logger.warning("Skipping unknown upload category in session data: %s", key)
                continue
            for item in items:
                record = FileRecord(
                    id=item.get("id") or uuid.uuid4().hex,
                    display_name=item.get("name", ""),
                    byte_size=int(item.get("size") or 0),
                    mime_type=item.get("type", ""),
                    preview_uri=self.previews.adopt(item.get("preview") or self.previews.allocate()),
                    server_uri=item.get("serverUri"),
                    status=FileStatus.SUCCESS,
                )
                self._files[category].append(record)
                self.progress[record.id] = 100
                restored += 1
        if restored:
            logger.info("Restored %d staged files from session", restored)
        return restored

    def dispose(self) -> None:
        """Cancel every timer and release every live preview."""
        for file_id in list(self._timers):
            self._cancel_timer(file_id)
        self.previews.release_all()

    # ── Internals ─────────────────────────────────────────────

    def _find(self, file_id: str) -> FileRecord | None:
        for records in self._files.values():
            for record in records:
                if record.id == file_id:
                    return record
        return None

    def _start_progress(self, record: FileRecord) -> None:
        self.progress[record.id] = 0
        if not self.simulate_progress:
            self._complete(record)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._complete(record)
            return
        self._timers[record.id] = loop.create_task(self._run_progress(record))

    async def _run_progress(self, record: FileRecord) -> None:
        try:
            while self.progress.get(record.id, 0) < 100:
                await asyncio.sleep(self.progress_interval)
                if record.id not in self.progress:
                    return
                self.progress[record.id] = min(100, self.progress[record.id] + self.progress_step)
            if record.status is FileStatus.PENDING:
                record.status = FileStatus.SUCCESS
        finally:
            self._timers.pop(record.id, None)

    def _complete(self, record: FileRecord) -> None:
        self.progress[record.id] = 100
        record.status = FileStatus.SUCCESS

    def _cancel_timer(self, file_id: str) -> None:
        task = self._timers.pop(file_id, None)
        if task is not None and not task.done():
            task.cancel()
