"""
PRD and feature documents.

Typed views over a Record: the record's ``parent_id`` is the brief id and
the document fields live in the payload under camelCase keys.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..exceptions import ValidationError
from ..records.types import Record, utc_now

logger = logging.getLogger(__name__)

FEATURE_PRIORITIES = ("must", "should", "could", "wont")
FEATURE_DIFFICULTIES = ("easy", "medium", "hard")


def validate_priority(priority: str) -> str:
    if priority not in FEATURE_PRIORITIES:
        raise ValidationError(
            "priority", f"must be one of {', '.join(FEATURE_PRIORITIES)}", priority
        )
    return priority


def validate_difficulty(difficulty: str) -> str:
    if difficulty not in FEATURE_DIFFICULTIES:
        raise ValidationError(
            "difficulty", f"must be one of {', '.join(FEATURE_DIFFICULTIES)}", difficulty
        )
    return difficulty


def _stored_choice(
    record_id: str, name: str, value: Any, choices: tuple[str, ...], default: str
) -> str:
    """Normalize a stored priority/difficulty, falling back to ``default``."""
    normalized = str(value).strip().lower().replace("'", "") if value is not None else default
    if normalized in choices:
        return normalized
    logger.warning(f"Feature {record_id} has unknown {name} {value!r}, using '{default}'")
    return default


@dataclass
class Feature:
    """A prioritized product feature belonging to a brief."""

    id: str
    brief_id: str
    name: str
    description: str = ""
    priority: str = "should"
    difficulty: str = "medium"
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        validate_priority(self.priority)
        validate_difficulty(self.difficulty)

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "difficulty": self.difficulty,
        }

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            parent_id=self.brief_id,
            payload=self.to_payload(),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_record(cls, record: Record) -> Feature:
        payload = record.payload
        return cls(
            id=record.id,
            brief_id=record.parent_id,
            name=payload.get("name", ""),
            description=payload.get("description", ""),
            priority=_stored_choice(
                record.id, "priority", payload.get("priority"), FEATURE_PRIORITIES, "should"
            ),
            difficulty=_stored_choice(
                record.id, "difficulty", payload.get("difficulty"), FEATURE_DIFFICULTIES, "medium"
            ),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    @classmethod
    def create(
        cls,
        brief_id: str,
        name: str,
        description: str = "",
        priority: str = "should",
        difficulty: str = "medium",
    ) -> Feature:
        """New feature with a generated id."""
        now = utc_now()
        return cls(
            id=str(uuid.uuid4()),
            brief_id=brief_id,
            name=name,
            description=description,
            priority=priority,
            difficulty=difficulty,
            created_at=now,
            updated_at=now,
        )


@dataclass
class FeatureSet:
    """A brief's feature list together with the key questions raised alongside it.

    The feature-set record stores only the questions; ``features`` are the
    brief's feature records, attached when the set is loaded.
    """

    id: str
    brief_id: str
    features: list[Feature] = field(default_factory=list)
    key_questions: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, Any]:
        return {"keyQuestions": list(self.key_questions)}

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            parent_id=self.brief_id,
            payload=self.to_payload(),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_record(cls, record: Record, features: list[Feature] | None = None) -> FeatureSet:
        questions = record.payload.get("keyQuestions")
        if not isinstance(questions, list):
            questions = []
        return cls(
            id=record.id,
            brief_id=record.parent_id,
            features=list(features or []),
            key_questions=[str(q) for q in questions],
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


# Optional free-text PRD fields: attribute name -> payload key
_PRD_TEXT_FIELDS = {
    "overview": "overview",
    "goals": "goals",
    "user_flows": "userFlows",
    "requirements": "requirements",
    "constraints": "constraints",
    "timeline": "timeline",
}


@dataclass
class PRD:
    """Product Requirements Document generated for a brief.

    ``content`` holds the generated document tree (``{"sections": [...]}``).
    """

    id: str
    brief_id: str
    feature_set_id: str
    title: str
    content: dict[str, Any] = field(default_factory=dict)
    overview: str | None = None
    goals: str | None = None
    user_flows: str | None = None
    requirements: str | None = None
    constraints: str | None = None
    timeline: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "featureSetId": self.feature_set_id,
            "title": self.title,
            "content": self.content,
        }
        for attr, key in _PRD_TEXT_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                payload[key] = value
        return payload

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            parent_id=self.brief_id,
            payload=self.to_payload(),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_record(cls, record: Record) -> PRD:
        payload = record.payload
        return cls(
            id=record.id,
            brief_id=record.parent_id,
            feature_set_id=payload.get("featureSetId", ""),
            title=payload.get("title") or "Untitled PRD",
            content=payload.get("content") or {},
            created_at=record.created_at,
            updated_at=record.updated_at,
            **{attr: payload.get(key) for attr, key in _PRD_TEXT_FIELDS.items()},
        )

    @classmethod
    def create(
        cls,
        brief_id: str,
        feature_set_id: str,
        content: dict[str, Any],
        title: str | None = None,
    ) -> PRD:
        """New PRD with a generated id."""
        now = utc_now()
        return cls(
            id=str(uuid.uuid4()),
            brief_id=brief_id,
            feature_set_id=feature_set_id,
            title=title or "Untitled PRD",
            content=content,
            created_at=now,
            updated_at=now,
        )


def prd_changes_to_payload(changes: dict[str, Any]) -> dict[str, Any]:
    """Translate snake_case PRD attribute changes into payload keys.

    Raises:
        ValidationError: For attributes that cannot be changed
    """
    mapping = {"feature_set_id": "featureSetId", "title": "title", "content": "content"}
    mapping.update(_PRD_TEXT_FIELDS)

    payload: dict[str, Any] = {}
    for attr, value in changes.items():
        if attr not in mapping:
            raise ValidationError(attr, "not an updatable PRD field")
        payload[mapping[attr]] = value
    return payload
