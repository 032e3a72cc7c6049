"""
Markdown export of PRDs.

Generated PRD content is loosely shaped: sub-sections may be strings,
objects or missing. Rendering skips what is absent and prints strings
as-is.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StorageIOError
from ..services.types import PRD


def _numbered(items: list[Any], indent: str = "") -> str:
    return "".join(f"{indent}{i}. {item}\n" for i, item in enumerate(items, start=1)) + "\n"


def _render_overview(overview: Any) -> str:
    if isinstance(overview, str):
        return f"### Overview\n\n{overview}\n\n"
    out = "### Overview\n\n"
    if overview.get("purpose"):
        out += f"**Purpose:** {overview['purpose']}\n\n"
    metrics = overview.get("successMetrics")
    if isinstance(metrics, list) and metrics:
        out += "**Success Metrics:**\n\n" + _numbered(metrics)
    return out


def _render_acceptance(criteria: Any) -> str:
    if isinstance(criteria, str):
        return f"### Acceptance Criteria\n\n{criteria}\n\n"
    out = "### Acceptance Criteria\n\n"
    if criteria.get("guidelines"):
        out += f"**Guidelines:** {criteria['guidelines']}\n\n"
    items = criteria.get("criteria")
    if isinstance(items, list) and items:
        out += _numbered(items)
    return out


def _render_use_cases(use_cases: list[Any]) -> str:
    out = "### Use Cases\n\n"
    for i, use_case in enumerate(use_cases, start=1):
        if not isinstance(use_case, dict):
            out += f"#### Use Case {i}\n\n{use_case}\n\n"
            continue

        out += f"#### {use_case.get('title') or f'Use Case {i}'}\n\n"
        if use_case.get("description"):
            out += f"{use_case['description']}\n\n"

        steps = use_case.get("mainScenario") or use_case.get("steps")
        if isinstance(steps, list) and steps:
            label = "Main Scenario" if use_case.get("mainScenario") else "Steps"
            out += f"**{label}:**\n\n" + _numbered(steps)

        flows = use_case.get("alternateFlows")
        if isinstance(flows, list) and flows:
            out += "**Alternate Flows:**\n\n"
            for j, flow in enumerate(flows, start=1):
                flow = flow if isinstance(flow, dict) else {"name": str(flow)}
                out += f"- {flow.get('name') or f'Flow {j}'}:\n"
                flow_steps = flow.get("steps")
                if isinstance(flow_steps, list):
                    out += _numbered(flow_steps, indent="  ")
                else:
                    out += "\n"
    return out


def _render_section(section: dict[str, Any]) -> str:
    out = f"## Feature: {section.get('featureName', 'Unnamed feature')}\n\n"

    if section.get("featurePriority"):
        out += f"**Priority:** {section['featurePriority']}\n\n"
    if section.get("overview"):
        out += _render_overview(section["overview"])

    stories = section.get("userStories")
    if isinstance(stories, list) and stories:
        out += "### User Stories\n\n" + _numbered(stories)
    elif isinstance(stories, str) and stories:
        out += f"### User Stories\n\n{stories}\n\n"

    if section.get("acceptanceCriteria"):
        out += _render_acceptance(section["acceptanceCriteria"])

    use_cases = section.get("useCases")
    if isinstance(use_cases, list) and use_cases:
        out += _render_use_cases(use_cases)

    return out


def prd_to_markdown(prd: PRD) -> str:
    """Render a PRD as a Markdown document."""
    markdown = f"# {prd.title} - Product Requirements Document\n\n"

    if prd.overview:
        markdown += f"## Overview\n\n{prd.overview}\n\n"

    content = prd.content
    sections = content.get("sections") if isinstance(content, dict) else content
    if isinstance(sections, list):
        for section in sections:
            if isinstance(section, dict):
                markdown += _render_section(section)
    elif isinstance(content, dict):
        # Unknown content shape: emit top-level keys as sections
        for key, value in content.items():
            markdown += f"## {key}\n\n{value}\n\n"
    elif isinstance(content, str) and content:
        markdown += f"{content}\n\n"

    return markdown


async def export_prd_markdown(prd: PRD, path: Path | str) -> Path:
    """Write ``prd`` as Markdown to ``path`` atomically (temp file + rename).

    Raises:
        StorageIOError: If the file cannot be written
    """
    path = Path(path)
    try:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
    except OSError as e:
        raise StorageIOError("create_directory", str(path.parent), e) from e

    temp_path: str | None = None
    try:
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".md")
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(prd_to_markdown(prd))
            await f.flush()

        await aiofiles.os.replace(temp_path, path)
    except OSError as e:
        if temp_path is not None:
            try:
                await aiofiles.os.remove(temp_path)
            except OSError:
                pass
        raise StorageIOError("export_markdown", str(path), e) from e

    return path
