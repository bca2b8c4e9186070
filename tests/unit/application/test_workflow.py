"""Tests for WorkflowUseCase: lifecycle after allocation."""

from __future__ import annotations

from dataclasses import replace

import pytest

from conftest import OPS, make_assignment
from titleflow.adapters.persistence.memory import InMemoryAssignmentRepository
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.application.use_cases.workflow import WorkflowUseCase
from titleflow.domain.errors import (
    AllocationRejected,
    InvalidReason,
    InvalidTransition,
    NotFound,
    OwnershipConflict,
)
from titleflow.domain.value_objects.enums import (
    ActorRole,
    AssignmentStatus,
    AuditAction,
    ForfeitReason,
    RejectionReason,
)
from titleflow.domain.value_objects.location import Actor

ASHA = Actor(id="f-asha", role=ActorRole.FULFILLER)


@pytest.fixture
def allocated_repo():
    return InMemoryAssignmentRepository(
        [make_assignment(status=AssignmentStatus.ALLOCATED, fulfiller_id="f-asha")]
    )


@pytest.fixture
def flow(allocated_repo, locks, clock):
    return WorkflowUseCase(allocated_repo, locks, clock=clock)


def _actions(assignment) -> list[AuditAction]:
    return [e.action for e in assignment.audit_trail]


@pytest.mark.asyncio
async def test_complete_from_pending_is_rejected(workflow, assignment_repo):
    with pytest.raises(InvalidTransition):
        await workflow.mark_complete("a-1", OPS)

    stored = await assignment_repo.get_by_id("a-1")
    assert stored.status == AssignmentStatus.PENDING_ALLOCATION
    assert stored.audit_trail == []


@pytest.mark.asyncio
async def test_full_lifecycle(flow, allocated_repo):
    await flow.add_document("a-1", "title_search.pdf", "Work Product", ASHA, size=2048)
    a = await flow.raise_query("a-1", "Need mother deed copy", ASHA, ActorRole.REQUESTER)
    query_id = a.queries[0].id

    with pytest.raises(InvalidTransition):
        await flow.mark_complete("a-1", ASHA)

    await flow.respond_to_query("a-1", query_id, "Uploaded to the portal", OPS)
    await flow.mark_complete("a-1", ASHA)
    await flow.submit_for_review("a-1", ASHA)
    closed = await flow.close("a-1", OPS)

    assert closed.status == AssignmentStatus.CLOSED
    assert closed.closed_at >= closed.completed_at >= closed.allocated_at
    assert closed.queries[0].responded_by == "ops-1"
    assert not closed.open_queries()
    assert _actions(closed) == [
        AuditAction.DOCUMENT_UPLOADED,
        AuditAction.WORK_STARTED,
        AuditAction.QUERY_RAISED,
        AuditAction.QUERY_RESPONDED,
        AuditAction.COMPLETED,
        AuditAction.SUBMITTED_FOR_REVIEW,
        AuditAction.CLOSED,
    ]

    stored = await allocated_repo.get_by_id("a-1")
    assert stored.status == AssignmentStatus.CLOSED
    assert len(stored.audit_trail) == 7


@pytest.mark.asyncio
async def test_document_from_operations_does_not_start_work(flow):
    a = await flow.add_document("a-1", "sale_deed.pdf", "Supporting", OPS)
    assert a.status == AssignmentStatus.ALLOCATED
    assert _actions(a) == [AuditAction.DOCUMENT_UPLOADED]


@pytest.mark.asyncio
async def test_blank_document_name_rejected(flow):
    with pytest.raises(InvalidReason):
        await flow.add_document("a-1", "  ", "Work Product", ASHA)


@pytest.mark.asyncio
async def test_upload_triggers_progress_is_idempotent(flow):
    first = await flow.upload_triggers_progress("a-1", ASHA)
    second = await flow.upload_triggers_progress("a-1", ASHA)
    assert first.status == second.status == AssignmentStatus.IN_PROGRESS
    assert _actions(second) == [AuditAction.WORK_STARTED]


@pytest.mark.asyncio
async def test_rework_requires_reason(flow):
    await flow.upload_triggers_progress("a-1", ASHA)
    await flow.mark_complete("a-1", ASHA)
    await flow.submit_for_review("a-1", ASHA)

    with pytest.raises(InvalidReason):
        await flow.request_rework("a-1", "redo", OPS)

    a = await flow.request_rework("a-1", "Encumbrance period is incomplete", OPS)
    assert a.status == AssignmentStatus.IN_PROGRESS
    assert a.audit_trail[-1].metadata["reason"] == "Encumbrance period is incomplete"


@pytest.mark.asyncio
async def test_respond_to_unknown_query(flow):
    await flow.upload_triggers_progress("a-1", ASHA)
    await flow.raise_query("a-1", "Which survey number?", ASHA)
    with pytest.raises(NotFound):
        await flow.respond_to_query("a-1", "nope", "Survey 42", OPS)


@pytest.mark.asyncio
async def test_unknown_assignment(flow):
    with pytest.raises(NotFound):
        await flow.close("missing", OPS)


# ─── Forfeit ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_forfeit_marks_awaiting_reallocation(flow, allocated_repo):
    a = await flow.forfeit("a-1", ForfeitReason.OVERLOADED, "", ASHA)

    assert a.status == AssignmentStatus.ALLOCATED
    assert a.assigned_fulfiller_id == "f-asha"
    assert a.awaiting_reallocation
    assert a.forfeit.forfeit_count == 1
    assert a.audit_trail[-1].action == AuditAction.FORFEITED

    with pytest.raises(AllocationRejected) as exc:
        await flow.forfeit("a-1", ForfeitReason.EMERGENCY, "", ASHA)
    assert exc.value.reason == RejectionReason.NOT_ACTIVE


@pytest.mark.asyncio
async def test_forfeit_count_survives_reallocation(flow, allocated_repo, fulfiller_repo, locks, clock):
    engine = AllocationEngine(allocated_repo, fulfiller_repo, locks, clock=clock)

    await flow.forfeit("a-1", ForfeitReason.CONFLICT_OF_INTEREST, "", ASHA)
    a = await engine.reallocate("a-1", "f-meera", "Forfeited by previous advocate", OPS)
    assert not a.awaiting_reallocation

    meera = Actor(id="f-meera", role=ActorRole.FULFILLER)
    a = await flow.forfeit("a-1", ForfeitReason.OTHER, "Moving out of Pune", meera)
    assert a.forfeit.forfeit_count == 2
    assert a.forfeit.fulfiller_id == "f-meera"


@pytest.mark.asyncio
async def test_forfeit_other_needs_details(flow):
    with pytest.raises(InvalidReason):
        await flow.forfeit("a-1", ForfeitReason.OTHER, "  ", ASHA)


@pytest.mark.asyncio
async def test_forfeit_pending_rejected(workflow):
    with pytest.raises(AllocationRejected):
        await workflow.forfeit("a-1", ForfeitReason.OVERLOADED, "", OPS)


# ─── Requester ownership ────────────────────────────────────────────

PRIYA = Actor(id="req-priya", role=ActorRole.REQUESTER)
RAVI = Actor(id="req-ravi", role=ActorRole.REQUESTER)


@pytest.fixture
def unclaimed_repo():
    return InMemoryAssignmentRepository(
        [replace(make_assignment(), requester_id=None)]
    )


@pytest.fixture
def owned_flow(unclaimed_repo, locks, clock):
    return WorkflowUseCase(unclaimed_repo, locks, clock=clock)


@pytest.mark.asyncio
async def test_claim_unclaimed_assignment(owned_flow, unclaimed_repo):
    a = await owned_flow.claim("a-1", PRIYA)

    assert a.requester_id == "req-priya"
    assert _actions(a) == [AuditAction.CLAIMED]
    stored = await unclaimed_repo.get_by_id("a-1")
    assert stored.requester_id == "req-priya"


@pytest.mark.asyncio
async def test_claim_by_owner_is_noop(owned_flow):
    await owned_flow.claim("a-1", PRIYA)
    a = await owned_flow.claim("a-1", PRIYA)
    assert _actions(a) == [AuditAction.CLAIMED]


@pytest.mark.asyncio
async def test_claim_owned_by_other_rejected(owned_flow, unclaimed_repo):
    await owned_flow.claim("a-1", PRIYA)

    with pytest.raises(OwnershipConflict) as exc:
        await owned_flow.claim("a-1", RAVI)
    assert exc.value.reason == RejectionReason.OWNED_BY_OTHER

    stored = await unclaimed_repo.get_by_id("a-1")
    assert stored.requester_id == "req-priya"


@pytest.mark.asyncio
async def test_request_transfer_on_unclaimed_rejected(owned_flow):
    with pytest.raises(OwnershipConflict) as exc:
        await owned_flow.request_transfer("a-1", RAVI)
    assert exc.value.reason == RejectionReason.UNCLAIMED


@pytest.mark.asyncio
async def test_request_transfer_by_owner_rejected(owned_flow):
    await owned_flow.claim("a-1", PRIYA)

    with pytest.raises(OwnershipConflict) as exc:
        await owned_flow.request_transfer("a-1", PRIYA)
    assert exc.value.reason == RejectionReason.ALREADY_OWNER
    assert str(exc.value) == "You already own this assignment"


@pytest.mark.asyncio
async def test_second_transfer_request_rejected(owned_flow):
    await owned_flow.claim("a-1", PRIYA)
    a = await owned_flow.request_transfer("a-1", RAVI)
    assert a.transfer_request.requested_by == "req-ravi"
    assert a.audit_trail[-1].metadata == {
        "from_requester_id": "req-priya",
        "to_requester_id": "req-ravi",
    }

    other = Actor(id="req-sana", role=ActorRole.REQUESTER)
    with pytest.raises(OwnershipConflict) as exc:
        await owned_flow.request_transfer("a-1", other)
    assert exc.value.reason == RejectionReason.TRANSFER_PENDING


@pytest.mark.asyncio
async def test_approved_transfer_moves_ownership(owned_flow, unclaimed_repo):
    await owned_flow.claim("a-1", PRIYA)
    await owned_flow.request_transfer("a-1", RAVI)
    a = await owned_flow.resolve_transfer("a-1", True, PRIYA)

    assert a.requester_id == "req-ravi"
    assert a.transfer_request is None
    assert a.audit_trail[-1].action == AuditAction.OWNERSHIP_TRANSFERRED
    assert a.audit_trail[-1].detail == "Transferred from req-priya to req-ravi"

    stored = await unclaimed_repo.get_by_id("a-1")
    assert stored.requester_id == "req-ravi"
    assert stored.transfer_request is None


@pytest.mark.asyncio
async def test_rejected_transfer_keeps_owner(owned_flow):
    await owned_flow.claim("a-1", PRIYA)
    await owned_flow.request_transfer("a-1", RAVI)
    a = await owned_flow.resolve_transfer("a-1", False, PRIYA)

    assert a.requester_id == "req-priya"
    assert a.transfer_request is None
    assert _actions(a) == [
        AuditAction.CLAIMED,
        AuditAction.TRANSFER_REQUESTED,
        AuditAction.TRANSFER_REJECTED,
    ]

    # A fresh request is allowed once the previous one is resolved
    again = await owned_flow.request_transfer("a-1", RAVI)
    assert again.transfer_request.requested_by == "req-ravi"


@pytest.mark.asyncio
async def test_resolve_without_request_rejected(owned_flow):
    await owned_flow.claim("a-1", PRIYA)
    with pytest.raises(OwnershipConflict) as exc:
        await owned_flow.resolve_transfer("a-1", True, PRIYA)
    assert exc.value.reason == RejectionReason.NO_TRANSFER_PENDING


# ─── Commit hook ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_commit_runs_while_assignment_locked(allocated_repo, locks, clock):
    held = []

    async def commit():
        held.append(locks.is_locked("a-1"))

    flow = WorkflowUseCase(allocated_repo, locks, clock=clock, commit=commit)
    await flow.upload_triggers_progress("a-1", ASHA)
    await flow.forfeit("a-1", ForfeitReason.OVERLOADED, "", ASHA)

    assert held == [True, True]
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_rejected_transition_does_not_commit(allocated_repo, locks, clock):
    commits = []

    async def commit():
        commits.append("a-1")

    flow = WorkflowUseCase(allocated_repo, locks, clock=clock, commit=commit)
    with pytest.raises(InvalidTransition):
        await flow.close("a-1", OPS)
    assert commits == []
