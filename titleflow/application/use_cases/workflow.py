"""WorkflowUseCase — lifecycle transitions and requester ownership."""

from __future__ import annotations

import logging
import uuid

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.unit_of_work import Commit
from titleflow.application.services.audit_log import AuditLog
from titleflow.application.services.clock import Clock, utc_now
from titleflow.application.services.locks import AssignmentLocks
from titleflow.domain.entities.assignment import Assignment, ForfeitDetails, TransferRequest
from titleflow.domain.entities.document import Document
from titleflow.domain.entities.query import Query
from titleflow.domain.errors import AllocationRejected, InvalidReason, NotFound, OwnershipConflict
from titleflow.domain.policies.reasons import require_reason
from titleflow.domain.policies.state_machine import transition
from titleflow.domain.value_objects.enums import (
    ActorRole,
    AssignmentStatus,
    AuditAction,
    ForfeitReason,
    RejectionReason,
)
from titleflow.domain.value_objects.location import Actor

logger = logging.getLogger(__name__)


class WorkflowUseCase:
    """Every operation: lock → re-read → validate → mutate → audit → save → commit.

    A failed validation raises before anything is appended, so rejected
    operations leave no audit entry behind.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        locks: AssignmentLocks,
        clock: Clock = utc_now,
        reason_min_length: int = 10,
        commit: Commit | None = None,
    ):
        self._assignments = assignment_repo
        self._locks = locks
        self._clock = clock
        self._reason_min_length = reason_min_length
        self._commit = commit
        self._audit = AuditLog(assignment_repo, clock)

    async def _load(self, assignment_id: str) -> Assignment:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFound("Assignment", assignment_id)
        return assignment

    async def _save(self, assignment: Assignment) -> Assignment:
        await self._assignments.save(assignment)
        if self._commit is not None:
            await self._commit()
        logger.info("Assignment %s is now %s", assignment.reference, assignment.status.value)
        return assignment

    # ─── Work product ────────────────────────────────────────────────

    async def upload_triggers_progress(self, assignment_id: str, actor: Actor) -> Assignment:
        """Move ALLOCATED → IN_PROGRESS on first work product; otherwise a no-op."""
        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            if not self._start_if_allocated(assignment, actor):
                return assignment
            return await self._save(assignment)

    def _start_if_allocated(self, assignment: Assignment, actor: Actor) -> bool:
        if assignment.status != AssignmentStatus.ALLOCATED:
            return False
        transition(assignment, AssignmentStatus.IN_PROGRESS, self._clock())
        self._audit.record(
            assignment, AuditAction.WORK_STARTED, actor, "First work product received"
        )
        return True

    async def add_document(
        self,
        assignment_id: str,
        name: str,
        category: str,
        actor: Actor,
        size: int | None = None,
    ) -> Assignment:
        """Attach a document; an upload by the assigned fulfiller starts the work."""
        if not name or not name.strip():
            raise InvalidReason("Document name is mandatory")

        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            document = Document(
                id=uuid.uuid4().hex,
                name=name.strip(),
                category=category,
                uploaded_by=actor.id,
                uploaded_at=self._clock(),
                size=size,
            )
            assignment.documents.append(document)
            self._audit.record(
                assignment,
                AuditAction.DOCUMENT_UPLOADED,
                actor,
                f"Uploaded {document.name} ({category})",
                {"document_id": document.id},
            )
            if (
                actor.role == ActorRole.FULFILLER
                and actor.id == assignment.assigned_fulfiller_id
            ):
                self._start_if_allocated(assignment, actor)
            return await self._save(assignment)

    # ─── Queries ─────────────────────────────────────────────────────

    async def raise_query(
        self,
        assignment_id: str,
        text: str,
        actor: Actor,
        directed_to: ActorRole | None = None,
    ) -> Assignment:
        if not text or not text.strip():
            raise InvalidReason("Query text is mandatory")

        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            now = self._clock()
            transition(assignment, AssignmentStatus.QUERY_RAISED, now)
            query = Query(
                id=uuid.uuid4().hex,
                text=text.strip(),
                raised_by=actor.id,
                raised_at=now,
                directed_to=directed_to,
            )
            assignment.queries.append(query)
            self._audit.record(
                assignment,
                AuditAction.QUERY_RAISED,
                actor,
                f"Query raised: {query.text}",
                {"query_id": query.id},
            )
            return await self._save(assignment)

    async def respond_to_query(
        self,
        assignment_id: str,
        query_id: str,
        response: str,
        actor: Actor,
    ) -> Assignment:
        if not response or not response.strip():
            raise InvalidReason("Query response is mandatory")

        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            query = assignment.find_query(query_id)
            if query is None or not query.is_open:
                raise NotFound("Open query", query_id)

            now = self._clock()
            transition(assignment, AssignmentStatus.IN_PROGRESS, now)
            query.response = response.strip()
            query.responded_by = actor.id
            query.responded_at = now
            self._audit.record(
                assignment,
                AuditAction.QUERY_RESPONDED,
                actor,
                f"Query answered: {query.response}",
                {"query_id": query.id},
            )
            return await self._save(assignment)

    # ─── Completion & review ─────────────────────────────────────────

    async def mark_complete(self, assignment_id: str, actor: Actor) -> Assignment:
        return await self._simple_transition(
            assignment_id,
            AssignmentStatus.COMPLETED,
            AuditAction.COMPLETED,
            actor,
            "Work marked complete",
        )

    async def submit_for_review(self, assignment_id: str, actor: Actor) -> Assignment:
        return await self._simple_transition(
            assignment_id,
            AssignmentStatus.UNDER_REVIEW,
            AuditAction.SUBMITTED_FOR_REVIEW,
            actor,
            "Report submitted for review",
        )

    async def close(self, assignment_id: str, actor: Actor) -> Assignment:
        return await self._simple_transition(
            assignment_id,
            AssignmentStatus.CLOSED,
            AuditAction.CLOSED,
            actor,
            "Report approved, assignment closed",
        )

    async def request_rework(self, assignment_id: str, reason: str, actor: Actor) -> Assignment:
        reason = require_reason(reason, self._reason_min_length, "Rework reason")
        return await self._simple_transition(
            assignment_id,
            AssignmentStatus.IN_PROGRESS,
            AuditAction.REWORK_REQUESTED,
            actor,
            f"Rework requested: {reason}",
            {"reason": reason},
        )

    async def _simple_transition(
        self,
        assignment_id: str,
        target: AssignmentStatus,
        action: AuditAction,
        actor: Actor,
        detail: str,
        metadata: dict | None = None,
    ) -> Assignment:
        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            transition(assignment, target, self._clock())
            self._audit.record(assignment, action, actor, detail, metadata)
            return await self._save(assignment)

    # ─── Forfeit ─────────────────────────────────────────────────────

    async def forfeit(
        self,
        assignment_id: str,
        reason: ForfeitReason,
        details: str,
        actor: Actor,
    ) -> Assignment:
        """Record that the current fulfiller is giving the work back.

        Status and fulfiller stay as they are until operations re-allocate;
        meanwhile the assignment reports awaiting_reallocation.
        """
        details = (details or "").strip()
        if reason == ForfeitReason.OTHER and not details:
            raise InvalidReason("Details are mandatory when the forfeit reason is 'Other'")

        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            if not assignment.is_active():
                raise AllocationRejected(
                    RejectionReason.NOT_ACTIVE,
                    f"Assignment {assignment.reference} is {assignment.status.value}; "
                    "only active work can be forfeited",
                )
            if assignment.awaiting_reallocation:
                raise AllocationRejected(
                    RejectionReason.NOT_ACTIVE,
                    f"Assignment {assignment.reference} is already awaiting re-allocation",
                )

            previous_count = assignment.forfeit.forfeit_count if assignment.forfeit else 0
            assignment.forfeit = ForfeitDetails(
                reason=reason,
                details=details,
                fulfiller_id=assignment.assigned_fulfiller_id,
                forfeited_at=self._clock(),
                forfeit_count=previous_count + 1,
            )
            self._audit.record(
                assignment,
                AuditAction.FORFEITED,
                actor,
                f"Forfeited by {assignment.assigned_fulfiller_id}: {reason.value}"
                + (f" ({details})" if details else ""),
                {"reason": reason.value, "forfeit_count": previous_count + 1},
            )
            if assignment.forfeit.forfeit_count > 1:
                logger.warning(
                    "Assignment %s forfeited %d times",
                    assignment.reference, assignment.forfeit.forfeit_count,
                )
            return await self._save(assignment)

    # ─── Requester ownership ─────────────────────────────────────────

    async def claim(self, assignment_id: str, actor: Actor) -> Assignment:
        """Take ownership of an unclaimed assignment; a no-op for the current owner."""
        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            if assignment.requester_id == actor.id:
                return assignment
            if assignment.requester_id is not None:
                raise OwnershipConflict(
                    RejectionReason.OWNED_BY_OTHER,
                    f"Assignment {assignment.reference} is already claimed by another requester",
                )
            assignment.requester_id = actor.id
            self._audit.record(
                assignment, AuditAction.CLAIMED, actor, f"Claimed by {actor.id}"
            )
            return await self._save(assignment)

    async def request_transfer(self, assignment_id: str, actor: Actor) -> Assignment:
        """Ask the owning requester to hand the assignment over to *actor*."""
        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            if assignment.requester_id is None:
                raise OwnershipConflict(
                    RejectionReason.UNCLAIMED,
                    f"Assignment {assignment.reference} is unclaimed; claim it instead",
                )
            if assignment.requester_id == actor.id:
                raise OwnershipConflict(
                    RejectionReason.ALREADY_OWNER, "You already own this assignment"
                )
            if assignment.transfer_request is not None:
                raise OwnershipConflict(
                    RejectionReason.TRANSFER_PENDING,
                    f"A transfer request is already pending on {assignment.reference}",
                )

            assignment.transfer_request = TransferRequest(
                requested_by=actor.id, requested_at=self._clock()
            )
            self._audit.record(
                assignment,
                AuditAction.TRANSFER_REQUESTED,
                actor,
                f"Transfer requested by {actor.id}",
                {"from_requester_id": assignment.requester_id, "to_requester_id": actor.id},
            )
            return await self._save(assignment)

    async def resolve_transfer(
        self, assignment_id: str, approved: bool, actor: Actor
    ) -> Assignment:
        """Approve (ownership moves to the requester who asked) or reject a pending transfer."""
        async with self._locks.hold(assignment_id):
            assignment = await self._load(assignment_id)
            request = assignment.transfer_request
            if request is None:
                raise OwnershipConflict(
                    RejectionReason.NO_TRANSFER_PENDING,
                    f"No pending transfer request on {assignment.reference}",
                )

            previous_owner = assignment.requester_id
            assignment.transfer_request = None
            if approved:
                assignment.requester_id = request.requested_by
                self._audit.record(
                    assignment,
                    AuditAction.OWNERSHIP_TRANSFERRED,
                    actor,
                    f"Transferred from {previous_owner} to {request.requested_by}",
                    {"from_requester_id": previous_owner, "to_requester_id": request.requested_by},
                )
            else:
                self._audit.record(
                    assignment,
                    AuditAction.TRANSFER_REJECTED,
                    actor,
                    f"Transfer to {request.requested_by} rejected",
                    {"requested_by": request.requested_by},
                )
            return await self._save(assignment)
