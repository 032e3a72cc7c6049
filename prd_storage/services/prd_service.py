"""
PRD persistence.
"""

from __future__ import annotations

from typing import Any

from ..sync.coordinator import SyncCoordinator
from .types import PRD, prd_changes_to_payload


class PRDService:
    """Typed PRD operations over a SyncCoordinator for PRD records."""

    def __init__(self, coordinator: SyncCoordinator) -> None:
        self.coordinator = coordinator

    async def list_for_brief(self, brief_id: str) -> list[PRD]:
        records = await self.coordinator.list_by_parent(brief_id)
        return [PRD.from_record(r) for r in records]

    async def get_for_brief(self, brief_id: str) -> PRD | None:
        """Most recently updated PRD of a brief, if any."""
        prds = await self.list_for_brief(brief_id)
        if not prds:
            return None
        return max(prds, key=lambda p: p.updated_at)

    async def get(self, prd_id: str, required: bool = False) -> PRD | None:
        record = await self.coordinator.get_by_id(prd_id, required=required)
        return PRD.from_record(record) if record else None

    async def save(self, prd: PRD) -> PRD:
        record = await self.coordinator.save(prd.to_record())
        return PRD.from_record(record)

    async def update(self, prd_id: str, **changes: Any) -> PRD:
        """Apply attribute changes (title, content, overview, ...) to a PRD."""
        record = await self.coordinator.update(prd_id, prd_changes_to_payload(changes))
        return PRD.from_record(record)

    async def delete(self, prd_id: str) -> bool:
        return await self.coordinator.delete(prd_id)
