"""AllocationEngine — match assignments to fulfillers and record the decision."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.unit_of_work import Commit
from titleflow.application.services.audit_log import AuditLog
from titleflow.application.services.clock import Clock, utc_now
from titleflow.application.services.locks import AssignmentLocks
from titleflow.application.services.workload import WorkloadTracker
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.errors import AllocationRejected, NoEligibleFulfiller, NotFound
from titleflow.domain.policies.reasons import require_reason
from titleflow.domain.policies.scoring import RankedCandidate, rank_candidates
from titleflow.domain.policies.state_machine import transition
from titleflow.domain.value_objects.enums import (
    AllocationStrategy,
    AssignmentStatus,
    AuditAction,
    RejectionReason,
)
from titleflow.domain.value_objects.location import SYSTEM_ACTOR, Actor

logger = logging.getLogger(__name__)


class AllocationEngine:
    """Allocation and re-allocation of single assignments.

    Every mutation runs under the assignment's lock and is written with one
    repository save, so status, fulfiller and audit entry land together. The
    commit hook runs before the lock is released, so the next holder of the
    lock always reads the committed result.

    The capacity check is a soft constraint: workload is derived from *other*
    assignments, which are not locked here, so N concurrent allocations to the
    same fulfiller can overshoot the cap by at most N - 1.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        fulfiller_repo: FulfillerRepository,
        locks: AssignmentLocks,
        clock: Clock = utc_now,
        default_capacity: int = 5,
        reason_min_length: int = 10,
        due_in_days: int = 7,
        commit: Commit | None = None,
    ):
        self._assignments = assignment_repo
        self._fulfillers = fulfiller_repo
        self._locks = locks
        self._clock = clock
        self._default_capacity = default_capacity
        self._reason_min_length = reason_min_length
        self._due_in = timedelta(days=due_in_days)
        self._commit = commit
        self._workload = WorkloadTracker(assignment_repo)
        self._audit = AuditLog(assignment_repo, clock)

    @property
    def workload(self) -> WorkloadTracker:
        return self._workload

    # ─── Ranking ─────────────────────────────────────────────────────

    async def rank(
        self,
        assignment_id: str,
        strategy: AllocationStrategy,
        cap: int | None = None,
    ) -> list[RankedCandidate]:
        """Eligible, under-cap candidates for an assignment, best first."""
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFound("Assignment", assignment_id)
        return await self._rank(assignment, strategy, self._cap(cap))

    async def _rank(
        self,
        assignment: Assignment,
        strategy: AllocationStrategy,
        cap: int,
        exclude: frozenset[str] = frozenset(),
    ) -> list[RankedCandidate]:
        fulfillers = await self._fulfillers.get_all()
        loads = await self._workload.loads()
        return rank_candidates(assignment, fulfillers, strategy, loads, cap, exclude)

    # ─── Allocation ──────────────────────────────────────────────────

    async def allocate(
        self,
        assignment_id: str,
        fulfiller_id: str,
        reason_detail: str,
        actor: Actor,
        cap: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Assignment:
        """Assign a pending assignment to an explicit fulfiller.

        Raises:
            AllocationRejected: assignment/fulfiller unknown, assignment no
                longer pending, or fulfiller at capacity.
        """
        async with self._locks.hold(assignment_id):
            return await self._allocate_locked(
                assignment_id, fulfiller_id, reason_detail, actor, self._cap(cap), metadata
            )

    async def auto_allocate(
        self,
        assignment_id: str,
        strategy: AllocationStrategy,
        cap: int | None = None,
        actor: Actor = SYSTEM_ACTOR,
    ) -> Assignment:
        """Allocate to the top-ranked candidate under *strategy*.

        Raises:
            NoEligibleFulfiller: ranking produced no candidate.
            AllocationRejected: as for allocate().
        """
        cap = self._cap(cap)
        async with self._locks.hold(assignment_id):
            assignment = await self._load_for_allocation(assignment_id)
            ranked = await self._rank(assignment, strategy, cap)
            if not ranked:
                raise NoEligibleFulfiller(assignment_id, f"{strategy.label} strategy")

            top = ranked[0]
            detail = (
                f"Auto-allocated to {top.fulfiller.name} via {strategy.label} "
                f"strategy (score {top.score})"
            )
            return await self._allocate_locked(
                assignment_id,
                top.fulfiller.id,
                detail,
                actor,
                cap,
                metadata={
                    "strategy": strategy.value,
                    "score": top.score,
                    "factors": list(top.factors),
                },
            )

    async def _load_for_allocation(self, assignment_id: str) -> Assignment:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise AllocationRejected(
                RejectionReason.ASSIGNMENT_NOT_FOUND, f"Assignment not found: {assignment_id}"
            )
        if not assignment.is_pending():
            raise AllocationRejected(
                RejectionReason.ALREADY_ALLOCATED,
                f"Assignment {assignment.reference} is already allocated "
                f"(status {assignment.status.value})",
            )
        return assignment

    async def _allocate_locked(
        self,
        assignment_id: str,
        fulfiller_id: str,
        reason_detail: str,
        actor: Actor,
        cap: int,
        metadata: dict[str, Any] | None,
    ) -> Assignment:
        assignment = await self._load_for_allocation(assignment_id)

        fulfiller = await self._fulfillers.get_by_id(fulfiller_id)
        if fulfiller is None:
            raise AllocationRejected(
                RejectionReason.FULFILLER_NOT_FOUND, f"Fulfiller not found: {fulfiller_id}"
            )

        load = await self._workload.active_load(fulfiller_id)
        if load >= cap:
            logger.warning(
                "Allocation of %s to %s rejected: load %d >= cap %d",
                assignment.reference, fulfiller_id, load, cap,
            )
            raise AllocationRejected(
                RejectionReason.AT_CAPACITY,
                f"Fulfiller {fulfiller.name} is at capacity ({load}/{cap})",
            )

        transition(assignment, AssignmentStatus.ALLOCATED, self._clock())
        assignment.assigned_fulfiller_id = fulfiller_id
        if assignment.due_at is None:
            assignment.due_at = assignment.allocated_at + self._due_in

        self._audit.record(
            assignment,
            AuditAction.ALLOCATED,
            actor,
            reason_detail,
            {"fulfiller_id": fulfiller_id, **(metadata or {})},
        )
        await self._persist(assignment)

        logger.info(
            "Assignment %s → %s (%s)", assignment.reference, fulfiller.name, reason_detail
        )
        return assignment

    # ─── Re-allocation ───────────────────────────────────────────────

    async def reallocate(
        self,
        assignment_id: str,
        new_fulfiller_id: str,
        reason: str,
        actor: Actor,
        cap: int | None = None,
    ) -> Assignment:
        """Swap the fulfiller of an allocated, not yet closed assignment.

        Status is untouched. Workload follows implicitly because it is derived;
        read ActiveLoad after this returns, not before.

        Raises:
            InvalidReason: blank or too-short reason (nothing is written).
            AllocationRejected: not allocated yet, closed, same fulfiller,
                unknown fulfiller, or fulfiller at capacity.
        """
        reason = require_reason(reason, self._reason_min_length, "Re-allocation reason")
        async with self._locks.hold(assignment_id):
            return await self._reallocate_locked(
                assignment_id, new_fulfiller_id, reason, actor, self._cap(cap)
            )

    async def auto_reallocate(
        self,
        assignment_id: str,
        strategy: AllocationStrategy,
        reason: str,
        actor: Actor = SYSTEM_ACTOR,
        cap: int | None = None,
    ) -> Assignment:
        """Re-allocate to the best candidate who has not held the assignment before."""
        reason = require_reason(reason, self._reason_min_length, "Re-allocation reason")
        cap = self._cap(cap)
        async with self._locks.hold(assignment_id):
            assignment = await self._load_for_reallocation(assignment_id)
            exclude = frozenset(
                {assignment.assigned_fulfiller_id, *assignment.previous_fulfiller_ids}
            )
            ranked = await self._rank(assignment, strategy, cap, exclude)
            if not ranked:
                raise NoEligibleFulfiller(assignment_id, f"{strategy.label} strategy")

            top = ranked[0]
            return await self._reallocate_locked(
                assignment_id,
                top.fulfiller.id,
                reason,
                actor,
                cap,
                metadata={
                    "strategy": strategy.value,
                    "score": top.score,
                    "factors": list(top.factors),
                },
            )

    async def _load_for_reallocation(self, assignment_id: str) -> Assignment:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise AllocationRejected(
                RejectionReason.ASSIGNMENT_NOT_FOUND, f"Assignment not found: {assignment_id}"
            )
        if assignment.is_pending():
            raise AllocationRejected(
                RejectionReason.NOT_ALLOCATED,
                f"Assignment {assignment.reference} has no fulfiller yet",
            )
        if assignment.status == AssignmentStatus.CLOSED:
            raise AllocationRejected(
                RejectionReason.CLOSED, f"Assignment {assignment.reference} is closed"
            )
        return assignment

    async def _reallocate_locked(
        self,
        assignment_id: str,
        new_fulfiller_id: str,
        reason: str,
        actor: Actor,
        cap: int,
        metadata: dict[str, Any] | None = None,
    ) -> Assignment:
        assignment = await self._load_for_reallocation(assignment_id)
        old_fulfiller_id = assignment.assigned_fulfiller_id

        if new_fulfiller_id == old_fulfiller_id:
            raise AllocationRejected(
                RejectionReason.SAME_FULFILLER,
                f"Assignment {assignment.reference} is already with {new_fulfiller_id}",
            )

        fulfiller = await self._fulfillers.get_by_id(new_fulfiller_id)
        if fulfiller is None:
            raise AllocationRejected(
                RejectionReason.FULFILLER_NOT_FOUND, f"Fulfiller not found: {new_fulfiller_id}"
            )

        load = await self._workload.active_load(new_fulfiller_id)
        if load >= cap:
            raise AllocationRejected(
                RejectionReason.AT_CAPACITY,
                f"Fulfiller {fulfiller.name} is at capacity ({load}/{cap})",
            )

        assignment.previous_fulfiller_ids.append(old_fulfiller_id)
        assignment.assigned_fulfiller_id = new_fulfiller_id

        self._audit.record(
            assignment,
            AuditAction.RE_ALLOCATED,
            actor,
            f"Re-allocated from {old_fulfiller_id} to {new_fulfiller_id}. Reason: {reason}",
            {
                "from_fulfiller_id": old_fulfiller_id,
                "to_fulfiller_id": new_fulfiller_id,
                "reason": reason,
                **(metadata or {}),
            },
        )
        await self._persist(assignment)

        logger.info(
            "Assignment %s re-allocated %s → %s",
            assignment.reference, old_fulfiller_id, new_fulfiller_id,
        )
        return assignment

    async def _persist(self, assignment: Assignment) -> None:
        await self._assignments.save(assignment)
        if self._commit is not None:
            await self._commit()

    def _cap(self, cap: int | None) -> int:
        return self._default_capacity if cap is None else cap
