"""Tests for BulkAllocationUseCase with fake scoring and in-memory stores."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from conftest import T0, make_assignment
from titleflow.adapters.persistence.memory import (
    InMemoryAssignmentRepository,
    InMemoryFulfillerRepository,
)
from titleflow.application.ports.scoring_port import ScoringPort, ScoringUnavailable
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.application.use_cases.bulk_allocate import (
    BulkAllocationUseCase,
    build_scoring_context,
)
from titleflow.domain.entities.suggestion import Suggestion
from titleflow.domain.value_objects.enums import (
    AllocationStrategy,
    AssignmentStatus,
    AuditAction,
    FailureKind,
)

# ─── Fakes ──────────────────────────────────────────────────────────


class FakeScoring(ScoringPort):
    """Answers per assignment reference; an Exception answer is raised."""

    def __init__(self, answers: dict[str, object], default: str = "f-asha"):
        self._answers = answers
        self._default = default
        self.contexts: list[dict] = []

    async def suggest(self, context):
        self.contexts.append(context)
        answer = self._answers.get(context["assignment"]["reference"], self._default)
        if isinstance(answer, Exception):
            raise answer
        return Suggestion(
            fulfiller_id=answer, confidence=8, factors=["Covers Pune"],
            reason="Best local match", model="fake-model",
        )


class FakeSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class DroppingAssignmentRepository(InMemoryAssignmentRepository):
    """Acknowledges allocation writes without storing them."""

    async def save(self, assignment):
        if assignment.status == AssignmentStatus.ALLOCATED:
            return assignment
        return await super().save(assignment)


class FlakyAssignmentRepository(InMemoryAssignmentRepository):
    """Raises a storage error when saving or reading one chosen assignment."""

    def __init__(self, assignments, fail_id: str, on: str = "save"):
        super().__init__(assignments)
        self._fail_id = fail_id
        self._on = on

    async def save(self, assignment):
        if self._on == "save" and assignment.id == self._fail_id:
            raise RuntimeError("db connection reset")
        return await super().save(assignment)

    async def get_by_id(self, assignment_id):
        if self._on == "read" and assignment_id == self._fail_id:
            raise RuntimeError("db connection reset")
        return await super().get_by_id(assignment_id)


class RecordingRollback:
    def __init__(self):
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


def _pending(count: int) -> list:
    return [
        make_assignment(f"a-{i}", created_at=T0 + timedelta(minutes=i))
        for i in range(1, count + 1)
    ]


def _bulk(repo, fulfiller_repo, locks, clock, commit=None, **kwargs):
    engine = AllocationEngine(repo, fulfiller_repo, locks, clock=clock, commit=commit)
    sleep = kwargs.pop("sleep", FakeSleep())
    return BulkAllocationUseCase(engine, repo, fulfiller_repo, sleep=sleep, **kwargs), sleep


# ─── Scored bulk allocation ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_bad_suggestion_fails_only_its_item(fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(3))
    bulk, sleep = _bulk(repo, fulfiller_repo, locks, clock)
    scoring = FakeScoring({"TS-a-2": "f-ghost"})

    summary = await bulk.scored_bulk_allocate(scoring)

    assert (summary.total, summary.succeeded, summary.failed) == (3, 2, 1)
    assert [r.success for r in summary.results] == [True, False, True]
    assert summary.results[1].failure == FailureKind.INVALID_SUGGESTION

    for assignment_id in ("a-1", "a-3"):
        stored = await repo.get_by_id(assignment_id)
        assert stored.status == AssignmentStatus.ALLOCATED
        assert stored.assigned_fulfiller_id == "f-asha"
    assert (await repo.get_by_id("a-2")).is_pending()

    # Paced between collaborator calls, never after the last one
    assert sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_scored_allocation_is_audited(fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(1))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)

    summary = await bulk.scored_bulk_allocate(FakeScoring({}))

    result = summary.results[0]
    assert result.confidence == 8
    assert result.factors == ["Covers Pune"]

    entry = (await repo.get_by_id("a-1")).audit_trail[-1]
    assert entry.action == AuditAction.ALLOCATED
    assert entry.detail.startswith("Scored allocation (confidence 8/10): Best local match")
    assert entry.metadata["model"] == "fake-model"


@pytest.mark.asyncio
async def test_items_processed_in_creation_order(fulfiller_repo, locks, clock):
    items = [
        make_assignment("z-late", created_at=T0 + timedelta(hours=2)),
        make_assignment("b-tie", created_at=T0),
        make_assignment("a-tie", created_at=T0),
    ]
    repo = InMemoryAssignmentRepository(items)
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)
    seen: list[str] = []

    await bulk.scored_bulk_allocate(
        FakeScoring({}), on_progress=lambda done, total, ref: seen.append(ref)
    )

    assert seen == ["TS-a-tie", "TS-b-tie", "TS-z-late"]


@pytest.mark.asyncio
async def test_unverified_write_is_reported(fulfiller_repo, locks, clock):
    repo = DroppingAssignmentRepository(_pending(1))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)

    summary = await bulk.scored_bulk_allocate(FakeScoring({}))

    assert summary.failed == 1
    assert summary.results[0].failure == FailureKind.VERIFICATION_FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [ScoringUnavailable("timeout"), RuntimeError("connection reset")]
)
async def test_collaborator_failure_is_per_item(error, fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(2))
    bulk, sleep = _bulk(repo, fulfiller_repo, locks, clock)

    summary = await bulk.scored_bulk_allocate(FakeScoring({"TS-a-1": error}))

    assert summary.results[0].failure == FailureKind.INVALID_SUGGESTION
    assert summary.results[1].success
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_no_candidates_skips_collaborator(locks, clock):
    repo = InMemoryAssignmentRepository(_pending(2))
    bulk, sleep = _bulk(repo, InMemoryFulfillerRepository(), locks, clock)
    scoring = FakeScoring({})

    summary = await bulk.scored_bulk_allocate(scoring)

    assert [r.failure for r in summary.results] == [FailureKind.NO_ELIGIBLE_FULFILLER] * 2
    assert scoring.contexts == []
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_strategy_narrows_candidates(fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(1))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)
    scoring = FakeScoring({})

    await bulk.scored_bulk_allocate(scoring, strategy=AllocationStrategy.SUBJECT_LOCATION)

    offered = [c["id"] for c in scoring.contexts[0]["candidates"]]
    assert offered == ["f-asha", "f-meera"]


@pytest.mark.asyncio
async def test_cancel_stops_before_next_item(fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(3))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)
    cancel = asyncio.Event()

    summary = await bulk.scored_bulk_allocate(
        FakeScoring({}), cancel=cancel, on_progress=lambda *_: cancel.set()
    )

    assert summary.cancelled
    assert len(summary.results) == 1
    assert repo.count(AssignmentStatus.PENDING_ALLOCATION) == 2


@pytest.mark.asyncio
async def test_each_allocation_commits_while_locked(fulfiller_repo, locks, clock):
    held: list[bool] = []

    async def commit():
        held.append(len(locks) == 1)

    repo = InMemoryAssignmentRepository(_pending(3))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock, commit=commit)

    await bulk.scored_bulk_allocate(FakeScoring({"TS-a-2": "f-ghost"}))

    # a-2 was rejected before any write, so only two commits
    assert held == [True, True]
    assert len(locks) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("scored", [False, True])
async def test_storage_error_fails_only_its_item(scored, fulfiller_repo, locks, clock):
    repo = FlakyAssignmentRepository(_pending(3), fail_id="a-2")
    rollback = RecordingRollback()
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock, rollback=rollback)

    if scored:
        summary = await bulk.scored_bulk_allocate(FakeScoring({}))
    else:
        summary = await bulk.bulk_auto_allocate(AllocationStrategy.SUBJECT_LOCATION)

    assert (summary.total, summary.succeeded, summary.failed) == (3, 2, 1)
    failed = summary.results[1]
    assert failed.assignment_id == "a-2"
    assert failed.failure == FailureKind.INTERNAL_ERROR
    assert "db connection reset" in failed.message
    assert rollback.calls == 1

    assert (await repo.get_by_id("a-3")).status == AssignmentStatus.ALLOCATED
    assert (await repo.get_by_id("a-2")).is_pending()
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_read_error_before_scoring_is_not_paced(fulfiller_repo, locks, clock):
    repo = FlakyAssignmentRepository(_pending(3), fail_id="a-2", on="read")
    bulk, sleep = _bulk(repo, fulfiller_repo, locks, clock)
    scoring = FakeScoring({})

    summary = await bulk.scored_bulk_allocate(scoring)

    assert [r.success for r in summary.results] == [True, False, True]
    assert summary.results[1].failure == FailureKind.INTERNAL_ERROR
    assert [c["assignment"]["id"] for c in scoring.contexts] == ["a-1", "a-3"]
    # Only a-1 called the collaborator with items still to come
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("scored", [False, True])
async def test_progress_reports_each_item(scored, fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(3))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)
    calls: list[tuple[int, int, str]] = []

    def on_progress(current, total, label):
        calls.append((current, total, label))

    if scored:
        await bulk.scored_bulk_allocate(
            FakeScoring({"TS-a-2": "f-ghost"}), on_progress=on_progress
        )
    else:
        await bulk.bulk_auto_allocate(AllocationStrategy.HUB, on_progress=on_progress)

    # Failed items are reported too
    assert calls == [(1, 3, "TS-a-1"), (2, 3, "TS-a-2"), (3, 3, "TS-a-3")]


@pytest.mark.asyncio
async def test_progress_stops_at_cancellation(fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(3))
    bulk, _ = _bulk(repo, fulfiller_repo, locks, clock)
    cancel = asyncio.Event()
    calls: list[tuple[int, int, str]] = []

    def on_progress(current, total, label):
        calls.append((current, total, label))
        if current == 2:
            cancel.set()

    summary = await bulk.bulk_auto_allocate(
        AllocationStrategy.SUBJECT_LOCATION, cancel=cancel, on_progress=on_progress
    )

    assert summary.cancelled
    assert calls == [(1, 3, "TS-a-1"), (2, 3, "TS-a-2")]
    assert len(summary.results) == 2


# ─── Rule-based bulk allocation ─────────────────────────────────────


@pytest.mark.asyncio
async def test_bulk_auto_allocate_respects_cap(fulfiller_repo, locks, clock):
    repo = InMemoryAssignmentRepository(_pending(3))
    bulk, sleep = _bulk(repo, fulfiller_repo, locks, clock)
    progress: list[tuple[int, int]] = []

    summary = await bulk.bulk_auto_allocate(
        AllocationStrategy.SUBJECT_LOCATION,
        cap=1,
        on_progress=lambda done, total, ref: progress.append((done, total)),
    )

    assert (summary.succeeded, summary.failed) == (2, 1)
    assert [r.fulfiller_id for r in summary.results[:2]] == ["f-asha", "f-meera"]
    assert summary.results[0].score == 180
    assert summary.results[2].failure == FailureKind.NO_ELIGIBLE_FULFILLER
    assert progress == [(1, 3), (2, 3), (3, 3)]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_bulk_with_nothing_pending(fulfiller_repo, locks, clock):
    bulk, _ = _bulk(InMemoryAssignmentRepository(), fulfiller_repo, locks, clock)
    summary = await bulk.bulk_auto_allocate(AllocationStrategy.HUB)
    assert (summary.total, summary.succeeded, summary.failed) == (0, 0, 0)


def test_scoring_context_is_plain_data(fulfillers):
    assignment = make_assignment()
    context = build_scoring_context(assignment, fulfillers, {"f-asha": 2})

    assert context["assignment"]["subject_location"] == {"state": "Maharashtra", "district": "Pune"}
    assert context["assignment"]["category"] == "Home Loan"
    asha = context["candidates"][0]
    assert asha["id"] == "f-asha"
    assert asha["active_load"] == 2
    assert asha["specializations"] == ["Home Loan"]
    assert context["candidates"][1]["active_load"] == 0
