"""Tests for builder project submission."""

import asyncio
import json

import httpx
import pytest

from urgentsales.core.draft import AuthenticatedUser
from urgentsales.core.project_submission import (
    MAX_GALLERY_URLS,
    ProjectDraft,
    ProjectTabs,
    bhk_config,
    build_project_json,
    build_project_parts,
    submit_project,
    validate_project,
)
from urgentsales.core.uploads import IncomingFile
from urgentsales.services.api_client import UrgentSalesClient


@pytest.fixture
def project() -> ProjectDraft:
    """A complete luxury project."""
    return ProjectDraft(
        project_name="Skyline Towers",
        project_address="Sector 62, Noida",
        project_category="luxury",
        project_price="1.2 Cr onwards",
        about_project="Twin towers with a sky deck",
        bhk2_sizes=["1100", ""],
        bhk3_sizes=["1450"],
        amenities=["gym", "swimming-pool"],
        gallery_urls=["{https://cdn.example.com/g1.jpg}", "https://cdn.example.com/g2.jpg"],
    )


class TestValidation:
    """Required project fields."""

    def test_empty_project(self) -> None:
        """Name, address and category are required."""
        errors = validate_project(ProjectDraft())
        assert errors == {
            "project_name": "Project name must be at least 3 characters",
            "project_address": "Address must be at least 5 characters",
            "project_category": "Please select a project category",
        }

    def test_unknown_category(self, project: ProjectDraft) -> None:
        """Only the known categories are accepted."""
        project.project_category = "castles"
        assert "project_category" in validate_project(project)


class TestTabs:
    """Tab navigation."""

    def test_basic_info_blocks(self) -> None:
        """The first tab needs a name and address."""
        tabs = ProjectTabs(ProjectDraft())
        ok, errors = tabs.advance()
        assert not ok
        assert set(errors) == {"project_name", "project_address"}
        assert tabs.tab == "basic-info"

    def test_walk_all_tabs(self, project: ProjectDraft) -> None:
        """A complete project walks to the last tab and stays there."""
        tabs = ProjectTabs(project)
        for _ in range(10):
            assert tabs.advance()[0]
        assert tabs.tab == "additional"
        tabs.retreat()
        assert tabs.tab == "location"

    def test_go_to(self) -> None:
        """Clicking a tab header jumps without validation."""
        tabs = ProjectTabs(ProjectDraft())
        tabs.go_to("gallery")
        assert tabs.tab == "gallery"
        with pytest.raises(ValueError):
            tabs.go_to("pricing")

    def test_gallery_cap(self) -> None:
        """At most 25 gallery URLs are kept."""
        draft = ProjectDraft()
        added = draft.add_gallery_urls([f"https://cdn.example.com/{i}.jpg" for i in range(30)])
        assert added == MAX_GALLERY_URLS
        assert draft.add_gallery_urls(["https://cdn.example.com/extra.jpg"]) == 0


class TestPayloads:
    """Multipart and JSON bodies."""

    def test_multipart_parts(self, project: ProjectDraft) -> None:
        """Arrays as JSON, gallery parts unwrapped, default user id."""
        hero = IncomingFile(name="hero.jpg", mime_type="image/jpeg", content=b"\xff")
        parts = build_project_parts(project, hero_image=hero)
        fields = {name: value for name, value in parts if isinstance(value, str)}

        assert fields["projectName"] == "Skyline Towers"
        assert json.loads(fields["bhk2Sizes"]) == ["1100"]
        assert fields["galleryUrl_0"] == "https://cdn.example.com/g1.jpg"
        assert fields["userId"] == "1"
        assert fields["status"] == "upcoming"
        assert fields["approvalStatus"] == "pending"
        assert ("heroImage", ("hero.jpg", b"\xff", "image/jpeg")) in parts

    def test_user_id(self, project: ProjectDraft) -> None:
        """The signed-in user owns the project."""
        parts = build_project_parts(project, user=AuthenticatedUser(id=7))
        assert ("userId", "7") in parts

    def test_json_body(self, project: ProjectDraft) -> None:
        """City from the last address segment and a BHK label."""
        body = build_project_json(project)
        assert body["city"] == "Noida"
        assert body["bhkConfig"] == "2,3 BHK"
        assert body["imageUrls"][0] == "https://cdn.example.com/g1.jpg"
        assert body["tags"] == ["luxury"]

    def test_bhk_config_single(self) -> None:
        """Only the filled size lists are named."""
        assert bhk_config(ProjectDraft(bhk3_sizes=["1450"])) == "3 BHK"


class TestSubmitProject:
    """Multipart with a JSON fallback."""

    def run(self, handler, project: ProjectDraft):
        async def scenario():
            client = UrgentSalesClient("http://backend.test", transport=httpx.MockTransport(handler))
            try:
                return await submit_project(client, project)
            finally:
                await client.aclose()

        return asyncio.run(scenario())

    def test_multipart_success(self, project: ProjectDraft) -> None:
        """The id is read from the nested project object."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"project": {"id": 9}})

        result = self.run(handler, project)
        assert result.ok
        assert result.project_id == 9

    def test_json_fallback(self, project: ProjectDraft) -> None:
        """A failed multipart attempt is retried as JSON once."""
        content_types: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            content_types.append(request.headers["content-type"])
            if len(content_types) == 1:
                return httpx.Response(500, json={"error": "Upload failed"})
            return httpx.Response(201, json={"id": 11})

        result = self.run(handler, project)
        assert result.ok
        assert result.project_id == 11
        assert content_types[0].startswith("multipart/form-data")
        assert content_types[1] == "application/json"

    def test_both_attempts_fail(self, project: ProjectDraft) -> None:
        """The JSON attempt's error is reported, preferring the error key."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": "Bad data", "message": "ignored", "details": "price missing"}
            )

        result = self.run(handler, project)
        assert not result.ok
        assert result.message == "Bad data: price missing"

    def test_invalid_project_not_sent(self) -> None:
        """Validation errors stop the submission before any request."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(201, json={"id": 1})

        result = self.run(handler, ProjectDraft())
        assert not result.ok
        assert result.errors
        assert calls == []
