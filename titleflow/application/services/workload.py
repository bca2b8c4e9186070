"""WorkloadTracker — derives active case counts from assignment records."""

from __future__ import annotations

from collections import Counter

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.domain.value_objects.enums import ACTIVE_STATUSES


class WorkloadTracker:
    """Read-only view over the assignment repository.

    There is no stored counter to drift: every call recounts. The tracker is
    cap-agnostic; callers pass the cap that applies to their context.
    """

    def __init__(self, assignment_repo: AssignmentRepository):
        self._assignments = assignment_repo

    async def active_load(self, fulfiller_id: str) -> int:
        assignments = await self._assignments.get_by_fulfiller(fulfiller_id)
        return sum(1 for a in assignments if a.status in ACTIVE_STATUSES)

    async def is_eligible(self, fulfiller_id: str, cap: int) -> bool:
        return await self.active_load(fulfiller_id) < cap

    async def loads(self) -> dict[str, int]:
        """Active load for every fulfiller that has at least one active case."""
        active = await self._assignments.get_by_statuses(ACTIVE_STATUSES)
        return dict(Counter(a.assigned_fulfiller_id for a in active if a.assigned_fulfiller_id))
