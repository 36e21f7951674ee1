"""Tests for upload staging, progress and preview ownership."""

import asyncio

import pytest

from urgentsales.core.uploads import (
    MB,
    FileStatus,
    IncomingFile,
    PreviewRegistry,
    UploadCategory,
    UploadTracker,
    room_count,
)


@pytest.fixture
def tracker() -> UploadTracker:
    """Tracker whose files complete immediately."""
    return UploadTracker(simulate_progress=False)


class TestRoomCount:
    """Room selections scale the bedroom and bathroom caps."""

    def test_values(self) -> None:
        """Leading integer, or 1 when unset."""
        assert room_count("3") == 3
        assert room_count("10+") == 10
        assert room_count("") == 1
        assert room_count(None) == 1
        assert room_count("0") == 1


class TestAccept:
    """Type, size and count checks."""

    def test_category_cap(self, tracker: UploadTracker, jpeg) -> None:
        """Exterior holds five photos; the sixth is rejected."""
        result = tracker.accept([jpeg(f"{i}.jpg") for i in range(6)], "exterior")
        assert len(result.accepted) == 5
        assert result.rejected == [("5.jpg", "Maximum 5 files allowed for Exterior")]
        assert tracker.count("exterior") == 5

    def test_wrong_type(self, tracker: UploadTracker) -> None:
        """A PDF is not an image."""
        pdf = IncomingFile(name="deed.pdf", mime_type="application/pdf", content=b"%PDF")
        result = tracker.accept([pdf], UploadCategory.KITCHEN)
        assert result.rejected == [("deed.pdf", "Unsupported file type: application/pdf")]
        assert tracker.is_empty()

    def test_too_large(self, tracker: UploadTracker) -> None:
        """Size is checked against the category cap."""
        big = IncomingFile(name="huge.jpg", mime_type="image/jpeg", size=21 * MB)
        result = tracker.accept([big], "exterior")
        assert result.rejected == [("huge.jpg", "File is larger than 20 MB")]

    def test_bedroom_cap_scales(self, tracker: UploadTracker, jpeg) -> None:
        """Five photos per bedroom."""
        result = tracker.accept([jpeg(f"{i}.jpg") for i in range(11)], "bedroom", bedrooms="2")
        assert len(result.accepted) == 10
        assert len(result.rejected) == 1

    def test_video_not_counted_as_image(self, tracker: UploadTracker, jpeg) -> None:
        """Videos do not satisfy the photo requirement."""
        clip = IncomingFile(name="tour.mp4", mime_type="video/mp4", content=b"\x00" * 10)
        tracker.accept([clip], "video")
        assert tracker.total_images() == 0
        tracker.accept([jpeg()], "other")
        assert tracker.total_images() == 1

    def test_hosted_file_completes(self, tracker: UploadTracker) -> None:
        """A file with a server URI is done at once."""
        hosted = IncomingFile(
            name="a.jpg", mime_type="image/jpeg", size=10, server_uri="https://cdn.example.com/a.jpg"
        )
        record = tracker.accept([hosted], "exterior").accepted[0]
        assert record.server_uri == "https://cdn.example.com/a.jpg"
        assert record.status is FileStatus.SUCCESS
        assert tracker.progress[record.id] == 100


class TestRemove:
    """Removing one staged file."""

    def test_remove_keeps_order(self, tracker: UploadTracker, jpeg) -> None:
        """The rest of the category keeps its order."""
        records = tracker.accept([jpeg("a.jpg"), jpeg("b.jpg"), jpeg("c.jpg")], "exterior").accepted
        assert tracker.remove(records[1].id, "exterior")
        assert [r.display_name for r in tracker.files("exterior")] == ["a.jpg", "c.jpg"]
        assert records[1].id not in tracker.progress

    def test_remove_releases_preview(self, tracker: UploadTracker, jpeg) -> None:
        """The preview URI goes back to the registry."""
        record = tracker.accept([jpeg()], "exterior").accepted[0]
        tracker.remove(record.id, "exterior")
        assert record.preview_uri not in tracker.previews.live
        assert tracker.previews.released == 1

    def test_remove_absent_is_noop(self, tracker: UploadTracker, jpeg) -> None:
        """Unknown ids change nothing."""
        tracker.accept([jpeg()], "exterior")
        assert not tracker.remove("missing", "exterior")
        assert tracker.count("exterior") == 1
        assert tracker.previews.released == 0


class TestProgress:
    """Simulated progress inside an event loop."""

    def test_progress_reaches_success(self) -> None:
        """Progress climbs to 100 and the file is marked successful."""

        async def scenario() -> tuple[int, int, FileStatus, int]:
            tracker = UploadTracker(progress_step=50, progress_interval=0.001)
            record = tracker.accept(
                [IncomingFile(name="a.jpg", mime_type="image/jpeg", content=b"x")], "exterior"
            ).accepted[0]
            started = tracker.active_timers
            await tracker.wait_idle()
            return started, tracker.progress[record.id], record.status, tracker.active_timers

        started, progress, status, timers = asyncio.run(scenario())
        assert started == 1
        assert progress == 100
        assert status is FileStatus.SUCCESS
        assert timers == 0

    def test_remove_cancels_timer(self) -> None:
        """Removing a file mid-upload stops its timer."""

        async def scenario() -> tuple[int, dict]:
            tracker = UploadTracker(progress_step=1, progress_interval=0.01)
            record = tracker.accept(
                [IncomingFile(name="a.jpg", mime_type="image/jpeg", content=b"x")], "exterior"
            ).accepted[0]
            tracker.remove(record.id, "exterior")
            await asyncio.sleep(0)
            return tracker.active_timers, dict(tracker.progress)

        timers, progress = asyncio.run(scenario())
        assert timers == 0
        assert progress == {}

    def test_dispose_stops_everything(self) -> None:
        """Dispose cancels timers and releases every preview."""

        async def scenario() -> UploadTracker:
            tracker = UploadTracker(progress_step=1, progress_interval=0.01)
            tracker.accept(
                [IncomingFile(name=f"{i}.jpg", mime_type="image/jpeg", content=b"x") for i in range(3)],
                "other",
            )
            tracker.dispose()
            await asyncio.sleep(0)
            return tracker

        tracker = asyncio.run(scenario())
        assert tracker.active_timers == 0
        assert tracker.previews.created == tracker.previews.released == 3


class TestSessionPersistence:
    """Snapshot and restore of file metadata."""

    def test_snapshot_skips_empty_categories(self, tracker: UploadTracker, jpeg) -> None:
        """Only categories with files appear."""
        tracker.accept([jpeg("a.jpg", size=10)], "kitchen")
        snapshot = tracker.snapshot()
        assert list(snapshot) == ["kitchen"]
        entry = snapshot["kitchen"][0]
        assert entry["name"] == "a.jpg"
        assert entry["size"] == 10
        assert entry["serverUri"] is None

    def test_restore_creates_placeholders(self, tracker: UploadTracker, jpeg) -> None:
        """Restored records carry metadata only and adopt their previews."""
        tracker.accept([jpeg("a.jpg", size=10)], "kitchen")
        snapshot = tracker.snapshot()

        registry = PreviewRegistry()
        restored = UploadTracker(registry, simulate_progress=False)
        assert restored.restore(snapshot) == 1

        record = restored.files("kitchen")[0]
        assert record.is_placeholder
        assert record.byte_size == 10
        assert record.status is FileStatus.SUCCESS
        assert restored.progress[record.id] == 100
        assert registry.live == {snapshot["kitchen"][0]["preview"]}

    def test_placeholders_are_not_sendable(self, tracker: UploadTracker, jpeg) -> None:
        """Restored metadata counts as staged but not as a photo that can be sent."""
        tracker.accept([jpeg("a.jpg", size=10)], "kitchen")
        assert tracker.sendable_images() == 1

        restored = UploadTracker(simulate_progress=False)
        restored.restore(tracker.snapshot())
        assert restored.total_images() == 1
        assert restored.sendable_images() == 0
        assert not restored.files("kitchen")[0].sendable

    def test_restore_skips_unknown_category(self, tracker: UploadTracker) -> None:
        """Unknown keys are ignored."""
        assert tracker.restore({"garage": [{"name": "x.jpg"}]}) == 0
        assert tracker.is_empty()


class TestPreviewRegistry:
    """Preview URI ownership."""

    def test_release_once(self) -> None:
        """A URI is released at most once."""
        registry = PreviewRegistry()
        uri = registry.allocate()
        assert uri.startswith(PreviewRegistry.SCHEME)
        assert registry.release(uri)
        assert not registry.release(uri)
        assert registry.created == registry.released == 1

    def test_adopt_is_idempotent(self) -> None:
        """Adopting a live URI does not count it twice."""
        registry = PreviewRegistry()
        uri = registry.allocate()
        registry.adopt(uri)
        assert registry.created == 1
