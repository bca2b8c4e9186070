"""Tests for AllocationEngine with in-memory repositories."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import OPS, make_assignment, make_fulfiller
from titleflow.adapters.persistence.memory import (
    InMemoryAssignmentRepository,
    InMemoryFulfillerRepository,
)
from titleflow.application.services.locks import AssignmentLocks
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.domain.errors import (
    AllocationRejected,
    InvalidReason,
    NoEligibleFulfiller,
    NotFound,
)
from titleflow.domain.value_objects.enums import (
    ActorRole,
    AllocationStrategy,
    AssignmentStatus,
    AuditAction,
    RejectionReason,
)

SUBJECT = AllocationStrategy.SUBJECT_LOCATION
REASON = "Fulfiller on extended leave"


def _busy(fulfiller_id: str, count: int) -> list:
    return [
        make_assignment(f"busy-{fulfiller_id}-{i}", status=AssignmentStatus.IN_PROGRESS,
                        fulfiller_id=fulfiller_id)
        for i in range(count)
    ]


# ─── Ranking ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rank_orders_by_score(engine):
    ranked = await engine.rank("a-1", SUBJECT)
    assert [(c.fulfiller.id, c.score) for c in ranked] == [("f-asha", 180), ("f-meera", 120)]


@pytest.mark.asyncio
async def test_rank_unknown_assignment(engine):
    with pytest.raises(NotFound):
        await engine.rank("nope", SUBJECT)


# ─── Auto-allocation ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_auto_allocate_picks_top_candidate(engine, assignment_repo):
    result = await engine.auto_allocate("a-1", SUBJECT)

    stored = await assignment_repo.get_by_id("a-1")
    assert stored.status == AssignmentStatus.ALLOCATED
    assert stored.assigned_fulfiller_id == "f-asha"
    assert stored.allocated_at is not None
    assert stored.due_at == stored.allocated_at + timedelta(days=7)

    entry = stored.audit_trail[-1]
    assert entry.action == AuditAction.ALLOCATED
    assert entry.actor_role == ActorRole.SYSTEM
    assert entry.metadata["score"] == 180
    assert entry.metadata["strategy"] == "subject_location"
    assert "subject-location" in entry.detail
    assert result.assigned_fulfiller_id == "f-asha"


@pytest.mark.asyncio
async def test_auto_allocate_at_cap_has_no_candidate(locks, clock):
    # Only candidate is already carrying 5 active cases
    repo = InMemoryAssignmentRepository([make_assignment(), *_busy("f-full", 5)])
    fulfillers = InMemoryFulfillerRepository([make_fulfiller("f-full")])
    engine = AllocationEngine(repo, fulfillers, locks, clock=clock, default_capacity=5)

    assert not await engine.workload.is_eligible("f-full", 5)
    with pytest.raises(NoEligibleFulfiller):
        await engine.auto_allocate("a-1", SUBJECT)

    stored = await repo.get_by_id("a-1")
    assert stored.status == AssignmentStatus.PENDING_ALLOCATION
    assert stored.audit_trail == []


@pytest.mark.asyncio
async def test_auto_allocate_hub_strategy(engine, assignment_repo):
    await engine.auto_allocate("a-1", AllocationStrategy.HUB)
    stored = await assignment_repo.get_by_id("a-1")
    assert stored.assigned_fulfiller_id == "f-meera"


# ─── Manual allocation ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_allocate_records_reason_and_actor(engine, assignment_repo):
    await engine.allocate("a-1", "f-meera", "Borrower asked for Mumbai counsel", OPS)
    stored = await assignment_repo.get_by_id("a-1")
    entry = stored.audit_trail[-1]
    assert stored.assigned_fulfiller_id == "f-meera"
    assert entry.actor_id == "ops-1"
    assert entry.detail == "Borrower asked for Mumbai counsel"
    assert entry.metadata["fulfiller_id"] == "f-meera"


@pytest.mark.asyncio
async def test_second_allocation_is_rejected(engine, assignment_repo):
    await engine.allocate("a-1", "f-asha", "Manual", OPS)
    with pytest.raises(AllocationRejected) as exc:
        await engine.allocate("a-1", "f-meera", "Manual", OPS)

    assert exc.value.reason == RejectionReason.ALREADY_ALLOCATED
    stored = await assignment_repo.get_by_id("a-1")
    assert stored.assigned_fulfiller_id == "f-asha"
    assert len(stored.audit_trail) == 1


@pytest.mark.asyncio
async def test_allocate_unknown_records(engine):
    with pytest.raises(AllocationRejected) as exc:
        await engine.allocate("a-1", "f-ghost", "Manual", OPS)
    assert exc.value.reason == RejectionReason.FULFILLER_NOT_FOUND

    with pytest.raises(AllocationRejected) as exc:
        await engine.allocate("missing", "f-asha", "Manual", OPS)
    assert exc.value.reason == RejectionReason.ASSIGNMENT_NOT_FOUND


@pytest.mark.asyncio
async def test_allocate_at_capacity_writes_nothing(locks, clock, fulfiller_repo):
    repo = InMemoryAssignmentRepository([make_assignment(), *_busy("f-asha", 2)])
    engine = AllocationEngine(repo, fulfiller_repo, locks, clock=clock)

    with pytest.raises(AllocationRejected) as exc:
        await engine.allocate("a-1", "f-asha", "Manual", OPS, cap=2)

    assert exc.value.reason == RejectionReason.AT_CAPACITY
    stored = await repo.get_by_id("a-1")
    assert stored.is_pending()
    assert stored.audit_trail == []


# ─── Re-allocation ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_reallocate_moves_workload(engine, assignment_repo):
    await engine.allocate("a-1", "f-asha", "Manual", OPS)
    await engine.reallocate("a-1", "f-meera", REASON, OPS)

    stored = await assignment_repo.get_by_id("a-1")
    assert stored.status == AssignmentStatus.ALLOCATED
    assert stored.assigned_fulfiller_id == "f-meera"
    assert stored.previous_fulfiller_ids == ["f-asha"]

    entry = stored.audit_trail[-1]
    assert entry.action == AuditAction.RE_ALLOCATED
    assert entry.metadata["from_fulfiller_id"] == "f-asha"
    assert entry.metadata["reason"] == REASON

    assert await engine.workload.active_load("f-asha") == 0
    assert await engine.workload.active_load("f-meera") == 1


@pytest.mark.asyncio
async def test_reallocate_short_reason_writes_nothing(engine, assignment_repo):
    await engine.allocate("a-1", "f-asha", "Manual", OPS)
    with pytest.raises(InvalidReason):
        await engine.reallocate("a-1", "f-meera", "leave", OPS)

    stored = await assignment_repo.get_by_id("a-1")
    assert stored.assigned_fulfiller_id == "f-asha"
    assert len(stored.audit_trail) == 1


@pytest.mark.asyncio
async def test_reallocate_same_fulfiller_rejected(engine):
    await engine.allocate("a-1", "f-asha", "Manual", OPS)
    with pytest.raises(AllocationRejected) as exc:
        await engine.reallocate("a-1", "f-asha", REASON, OPS)
    assert exc.value.reason == RejectionReason.SAME_FULFILLER


@pytest.mark.asyncio
async def test_reallocate_pending_rejected(engine):
    with pytest.raises(AllocationRejected) as exc:
        await engine.reallocate("a-1", "f-asha", REASON, OPS)
    assert exc.value.reason == RejectionReason.NOT_ALLOCATED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, allowed",
    [
        (AssignmentStatus.COMPLETED, True),
        (AssignmentStatus.UNDER_REVIEW, True),
        (AssignmentStatus.CLOSED, False),
    ],
)
async def test_reallocate_blocked_only_when_closed(status, allowed, locks, clock, fulfiller_repo):
    repo = InMemoryAssignmentRepository([make_assignment(status=status, fulfiller_id="f-asha")])
    engine = AllocationEngine(repo, fulfiller_repo, locks, clock=clock)

    if allowed:
        result = await engine.reallocate("a-1", "f-meera", REASON, OPS)
        assert result.status == status
    else:
        with pytest.raises(AllocationRejected) as exc:
            await engine.reallocate("a-1", "f-meera", REASON, OPS)
        assert exc.value.reason == RejectionReason.CLOSED


@pytest.mark.asyncio
async def test_auto_reallocate_skips_previous_holders(engine, assignment_repo):
    await engine.allocate("a-1", "f-asha", "Manual", OPS)

    await engine.auto_reallocate("a-1", SUBJECT, REASON)
    stored = await assignment_repo.get_by_id("a-1")
    assert stored.assigned_fulfiller_id == "f-meera"

    with pytest.raises(NoEligibleFulfiller):
        await engine.auto_reallocate("a-1", SUBJECT, REASON)


# ─── Commit hook ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_commit_runs_while_assignment_locked(assignment_repo, fulfiller_repo, locks, clock):
    held = []

    async def commit():
        held.append(locks.is_locked("a-1"))

    engine = AllocationEngine(assignment_repo, fulfiller_repo, locks, clock=clock, commit=commit)
    await engine.allocate("a-1", "f-asha", "Manual", OPS)
    await engine.reallocate("a-1", "f-meera", REASON, OPS)

    assert held == [True, True]
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_rejected_allocation_does_not_commit(assignment_repo, fulfiller_repo, locks, clock):
    commits = []

    async def commit():
        commits.append(True)

    engine = AllocationEngine(assignment_repo, fulfiller_repo, locks, clock=clock, commit=commit)
    with pytest.raises(AllocationRejected):
        await engine.allocate("a-1", "f-ghost", "Manual", OPS)
    assert commits == []
