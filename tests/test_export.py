"""Tests for Markdown export."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from prd_storage.exceptions import StorageIOError
from prd_storage.export import export_prd_markdown, prd_to_markdown
from prd_storage.services import PRD

SECTION = {
    "featureName": "Login",
    "featurePriority": "must",
    "overview": {"purpose": "Let users in", "successMetrics": ["95% success rate"]},
    "userStories": ["As a user I can sign in"],
    "acceptanceCriteria": {"guidelines": "Fast", "criteria": ["Under 2s"]},
    "useCases": [
        {
            "title": "Sign in with email",
            "description": "Happy path",
            "mainScenario": ["Open app", "Enter email"],
            "alternateFlows": [{"name": "Wrong password", "steps": ["Show error"]}],
        },
        "Freeform use case",
    ],
}


def make_prd(content: dict) -> PRD:
    prd = PRD.create("b1", "fs1", content, title="Acme Notes")
    prd.overview = "A note taking app"
    return prd


class TestPrdToMarkdown:
    """Tests for Markdown rendering."""

    def test_full_section(self) -> None:
        markdown = prd_to_markdown(make_prd({"sections": [SECTION]}))

        assert markdown.startswith("# Acme Notes - Product Requirements Document\n\n")
        assert "## Overview\n\nA note taking app\n\n" in markdown
        assert "## Feature: Login\n\n" in markdown
        assert "**Priority:** must" in markdown
        assert "**Purpose:** Let users in" in markdown
        assert "1. 95% success rate" in markdown
        assert "### User Stories\n\n1. As a user I can sign in\n" in markdown
        assert "**Guidelines:** Fast" in markdown
        assert "1. Under 2s" in markdown
        assert "#### Sign in with email" in markdown
        assert "**Main Scenario:**\n\n1. Open app\n2. Enter email\n" in markdown
        assert "- Wrong password:\n  1. Show error\n" in markdown
        assert "#### Use Case 2\n\nFreeform use case" in markdown

    def test_string_subsections(self) -> None:
        section = {
            "featureName": "Search",
            "overview": "Find notes",
            "userStories": "Users search",
            "acceptanceCriteria": "Results in order",
        }

        markdown = prd_to_markdown(make_prd({"sections": [section]}))

        assert "### Overview\n\nFind notes" in markdown
        assert "### User Stories\n\nUsers search" in markdown
        assert "### Acceptance Criteria\n\nResults in order" in markdown

    def test_steps_label(self) -> None:
        section = {"featureName": "Sync", "useCases": [{"steps": ["Go offline"]}]}

        markdown = prd_to_markdown(make_prd({"sections": [section]}))

        assert "#### Use Case 1" in markdown
        assert "**Steps:**\n\n1. Go offline" in markdown

    def test_content_without_sections(self) -> None:
        markdown = prd_to_markdown(make_prd({"summary": "Short"}))
        assert "## summary\n\nShort" in markdown

    def test_empty_content(self) -> None:
        prd = PRD.create("b1", "fs1", {}, title="Empty")
        assert prd_to_markdown(prd) == "# Empty - Product Requirements Document\n\n"

    def test_content_stored_as_section_list(self) -> None:
        prd = PRD.from_record(
            PRD.create("b1", "fs1", {}, title="Acme").to_record().with_payload(
                {"title": "Acme", "content": [SECTION, "stray"]}
            )
        )

        markdown = prd_to_markdown(prd)

        assert "## Feature: Login" in markdown
        assert "stray" not in markdown

    def test_content_stored_as_text(self) -> None:
        prd = PRD.from_record(
            PRD.create("b1", "fs1", {}, title="Acme").to_record().with_payload(
                {"title": "Acme", "content": "Plain text body"}
            )
        )

        assert prd_to_markdown(prd).endswith("Plain text body\n\n")


class TestExportPrdMarkdown:
    """Tests for writing the Markdown file."""

    async def test_writes_file(self, temp_dir: Path) -> None:
        prd = make_prd({"sections": [SECTION]})
        target = temp_dir / "exports" / "acme.md"

        written = await export_prd_markdown(prd, target)

        assert written == target
        assert target.read_text(encoding="utf-8") == prd_to_markdown(prd)
        assert not list(target.parent.glob(".tmp_*"))

    async def test_overwrites_existing(self, temp_dir: Path) -> None:
        target = temp_dir / "acme.md"
        target.write_text("old")

        await export_prd_markdown(make_prd({}), str(target))

        assert target.read_text(encoding="utf-8").startswith("# Acme Notes")

    async def test_unwritable_directory(self, temp_dir: Path) -> None:
        blocker = temp_dir / "blocker"
        blocker.write_text("file")

        with pytest.raises(StorageIOError):
            await export_prd_markdown(make_prd({}), blocker / "acme.md")

    async def test_replace_failure_cleans_up(self, temp_dir: Path) -> None:
        target = temp_dir / "acme.md"

        with patch("aiofiles.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageIOError) as exc_info:
                await export_prd_markdown(make_prd({}), target)

        assert exc_info.value.operation == "export_markdown"
        assert not target.exists()
        assert not list(temp_dir.glob(".tmp_*"))

    async def test_temp_file_failure_is_wrapped(self, temp_dir: Path) -> None:
        with patch("tempfile.mkstemp", side_effect=OSError("too many open files")):
            with pytest.raises(StorageIOError) as exc_info:
                await export_prd_markdown(make_prd({}), temp_dir / "acme.md")

        assert exc_info.value.operation == "export_markdown"
