"""
Parsing of completion output into feature lists and PRD content.

Every failure here is a MalformedResponseError: the provider answered,
but not with something usable.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import MalformedResponseError
from ..services.types import FEATURE_DIFFICULTIES, FEATURE_PRIORITIES, Feature

_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


@dataclass
class GeneratedFeatureSet:
    """Features grouped by priority plus the open questions raised with them."""

    features: list[Feature] = field(default_factory=list)
    key_questions: list[str] = field(default_factory=list)

    def by_priority(self, priority: str) -> list[Feature]:
        return [f for f in self.features if f.priority == priority]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code block, if any."""
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_json_response(text: str) -> dict[str, Any]:
    """Parse completion text as a JSON object.

    Raises:
        MalformedResponseError: If the text is not a JSON object
    """
    if text is None or not text.strip():
        raise MalformedResponseError("empty response", text)

    try:
        parsed = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"invalid JSON: {e.msg}", text) from e

    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            f"expected a JSON object, got {type(parsed).__name__}", text
        )
    return parsed


def parse_feature_list(text: str, brief_id: str) -> GeneratedFeatureSet:
    """Parse ``{"features": {"must": [...], ...}, "keyQuestions": [...]}``.

    Missing priority buckets are treated as empty. Every feature gets a
    fresh id and is attached to ``brief_id``.
    """
    parsed = parse_json_response(text)

    buckets = parsed.get("features")
    if not isinstance(buckets, dict):
        raise MalformedResponseError("'features' must be an object keyed by priority", text)

    features: list[Feature] = []
    for priority in FEATURE_PRIORITIES:
        items = buckets.get(priority) or []
        if not isinstance(items, list):
            raise MalformedResponseError(f"'features.{priority}' must be a list", text)

        for item in items:
            if not isinstance(item, dict) or not item.get("name"):
                raise MalformedResponseError(f"feature in '{priority}' is missing a name", text)

            difficulty = item.get("difficulty", "medium")
            if difficulty not in FEATURE_DIFFICULTIES:
                difficulty = "medium"

            features.append(
                Feature.create(
                    brief_id=brief_id,
                    name=str(item["name"]),
                    description=str(item.get("description", "")),
                    priority=priority,
                    difficulty=difficulty,
                )
            )

    questions = parsed.get("keyQuestions") or []
    if not isinstance(questions, list):
        raise MalformedResponseError("'keyQuestions' must be a list", text)

    return GeneratedFeatureSet(features=features, key_questions=[str(q) for q in questions])


def parse_prd(text: str) -> dict[str, Any]:
    """Parse PRD content: an object with a ``sections`` list, each naming its feature."""
    parsed = parse_json_response(text)

    sections = parsed.get("sections")
    if not isinstance(sections, list):
        raise MalformedResponseError("'sections' must be a list", text)

    for index, section in enumerate(sections):
        if not isinstance(section, dict) or not section.get("featureName"):
            raise MalformedResponseError(f"section {index} is missing 'featureName'", text)

    return parsed
