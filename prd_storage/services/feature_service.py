"""
Feature persistence for a brief's prioritized feature list.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from ..exceptions import ValidationError
from ..records.types import Record, merge_payload, new_record
from ..sync.coordinator import SyncCoordinator
from .types import (
    FEATURE_PRIORITIES,
    Feature,
    FeatureSet,
    validate_difficulty,
    validate_priority,
)

if TYPE_CHECKING:
    from ..generation.parsing import GeneratedFeatureSet

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "description", "priority", "difficulty")


class FeatureService:
    """Typed feature operations over a SyncCoordinator for feature records.

    Feature sets (the key questions generated with a brief's features) are
    kept through a second coordinator for feature-set records.
    """

    def __init__(
        self, coordinator: SyncCoordinator, feature_sets: SyncCoordinator | None = None
    ) -> None:
        self.coordinator = coordinator
        self.feature_sets = feature_sets

    async def list_for_brief(self, brief_id: str) -> list[Feature]:
        """Features of a brief, oldest first."""
        records = await self.coordinator.list_by_parent(brief_id)
        features = [Feature.from_record(r) for r in records]
        features.sort(key=lambda f: f.created_at)
        return features

    async def get(self, feature_id: str, required: bool = False) -> Feature | None:
        record = await self.coordinator.get_by_id(feature_id, required=required)
        return Feature.from_record(record) if record else None

    async def save(self, feature: Feature) -> Feature:
        record = await self.coordinator.save(feature.to_record())
        return Feature.from_record(record)

    async def add_feature(
        self,
        brief_id: str,
        name: str,
        description: str = "",
        priority: str = "should",
        difficulty: str = "medium",
    ) -> Feature:
        """Create and persist a new feature for ``brief_id``."""
        if not name:
            raise ValidationError("name", "required")
        feature = Feature.create(brief_id, name, description, priority, difficulty)
        return await self.save(feature)

    async def update_feature(self, feature_id: str, **changes: Any) -> Feature:
        """Change name, description, priority or difficulty of a feature.

        Raises:
            ValidationError: For unknown fields or invalid priority/difficulty
            RecordNotFoundError: If the feature exists nowhere
        """
        for key in changes:
            if key not in _UPDATABLE_FIELDS:
                raise ValidationError(key, "not an updatable feature field")
        if "priority" in changes:
            validate_priority(changes["priority"])
        if "difficulty" in changes:
            validate_difficulty(changes["difficulty"])

        record = await self.coordinator.update(feature_id, changes)
        return Feature.from_record(record)

    async def delete_feature(self, feature_id: str) -> bool:
        return await self.coordinator.delete(feature_id)

    async def delete_for_brief(self, brief_id: str) -> int:
        """Delete every feature of a brief; returns how many were removed."""
        removed = 0
        for feature in await self.list_for_brief(brief_id):
            if await self.coordinator.delete(feature.id):
                removed += 1
        return removed

    async def replace_features(self, brief_id: str, features: list[Feature]) -> list[Feature]:
        """Replace a brief's feature set with ``features``.

        Existing features of the brief are deleted first, then each new
        feature is saved under ``brief_id``.
        """
        removed = await self.delete_for_brief(brief_id)
        logger.info(f"Replacing {removed} features of brief {brief_id} with {len(features)}")

        saved: list[Feature] = []
        for feature in features:
            if feature.brief_id != brief_id:
                feature = replace(feature, brief_id=brief_id)
            saved.append(await self.save(feature))
        return saved

    async def get_feature_set(self, brief_id: str) -> FeatureSet | None:
        """The brief's feature set with its current features, or None."""
        record = await self._feature_set_record(brief_id)
        if record is None:
            return None
        return FeatureSet.from_record(record, await self.list_for_brief(brief_id))

    async def save_feature_set(
        self, brief_id: str, features: list[Feature], key_questions: list[str]
    ) -> FeatureSet:
        """Replace the brief's features and store its key questions.

        A brief has one feature set: saving again keeps the existing set id
        and overwrites its questions.
        """
        feature_sets = self._require_feature_sets()
        existing = await self._feature_set_record(brief_id)
        saved_features = await self.replace_features(brief_id, features)

        payload = {"keyQuestions": [str(q) for q in key_questions]}
        if existing is None:
            record = new_record(brief_id, payload)
        else:
            record = existing.with_payload(merge_payload(existing.payload, payload))

        stored = await feature_sets.save(record)
        logger.info(f"Saved feature set {stored.id} for brief {brief_id}")
        return FeatureSet.from_record(stored, saved_features)

    async def save_generated(self, brief_id: str, generated: GeneratedFeatureSet) -> FeatureSet:
        """Persist the output of a FeatureGenerator run for ``brief_id``."""
        return await self.save_feature_set(brief_id, generated.features, generated.key_questions)

    async def _feature_set_record(self, brief_id: str) -> Record | None:
        records = await self._require_feature_sets().list_by_parent(brief_id)
        if not records:
            return None
        return min(records, key=lambda r: r.created_at)

    def _require_feature_sets(self) -> SyncCoordinator:
        if self.feature_sets is None:
            raise RuntimeError("FeatureService has no feature-set coordinator")
        return self.feature_sets

    @staticmethod
    def group_by_priority(features: list[Feature]) -> dict[str, list[Feature]]:
        """Bucket features under must/should/could/wont (all keys present)."""
        groups: dict[str, list[Feature]] = {priority: [] for priority in FEATURE_PRIORITIES}
        for feature in features:
            groups[feature.priority].append(feature)
        return groups
