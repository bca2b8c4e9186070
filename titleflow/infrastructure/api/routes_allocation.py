"""Allocation endpoints — ranking, single and bulk allocation, re-allocation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from titleflow.application.ports.scoring_port import ScoringPort
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.application.use_cases.bulk_allocate import BulkAllocationUseCase
from titleflow.config import settings
from titleflow.domain.value_objects.enums import AllocationStrategy
from titleflow.domain.value_objects.location import Actor
from titleflow.infrastructure.api.dependencies import (
    get_actor,
    get_bulk_uc,
    get_engine,
    get_scoring,
)
from titleflow.infrastructure.api.schemas import (
    AllocateRequest,
    AutoAllocateRequest,
    AutoReallocateRequest,
    BulkRequest,
    ReallocateRequest,
    ScoredBulkRequest,
    serialize_assignment,
    serialize_candidate,
    serialize_summary,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["allocation"])


@router.get("/assignments/{assignment_id}/candidates")
async def rank_candidates(
    assignment_id: str,
    strategy: AllocationStrategy = AllocationStrategy.SUBJECT_LOCATION,
    cap: int | None = None,
    engine: AllocationEngine = Depends(get_engine),
):
    """Eligible fulfillers, best first. Browsing defaults to the tighter cap."""
    cap = settings.browse_capacity if cap is None else cap
    ranked = await engine.rank(assignment_id, strategy, cap)
    return {
        "assignment_id": assignment_id,
        "strategy": strategy.value,
        "cap": cap,
        "candidates": [serialize_candidate(c) for c in ranked],
    }


@router.post("/assignments/{assignment_id}/allocate")
async def allocate(
    assignment_id: str,
    body: AllocateRequest,
    engine: AllocationEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    assignment = await engine.allocate(
        assignment_id, body.fulfiller_id, body.reason, actor, cap=body.cap
    )
    return serialize_assignment(assignment)


@router.post("/assignments/{assignment_id}/auto-allocate")
async def auto_allocate(
    assignment_id: str,
    body: AutoAllocateRequest,
    engine: AllocationEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    assignment = await engine.auto_allocate(assignment_id, body.strategy, body.cap, actor)
    return serialize_assignment(assignment)


@router.post("/assignments/{assignment_id}/reallocate")
async def reallocate(
    assignment_id: str,
    body: ReallocateRequest,
    engine: AllocationEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    assignment = await engine.reallocate(
        assignment_id, body.fulfiller_id, body.reason, actor, cap=body.cap
    )
    return serialize_assignment(assignment)


@router.post("/assignments/{assignment_id}/auto-reallocate")
async def auto_reallocate(
    assignment_id: str,
    body: AutoReallocateRequest,
    engine: AllocationEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    assignment = await engine.auto_reallocate(
        assignment_id, body.strategy, body.reason, actor, cap=body.cap
    )
    return serialize_assignment(assignment)


# ── Bulk ────────────────────────────────────────────────────────────


@router.post("/allocation/bulk")
async def bulk_allocate(
    body: BulkRequest,
    bulk: BulkAllocationUseCase = Depends(get_bulk_uc),
    actor: Actor = Depends(get_actor),
):
    """Auto-allocate every pending assignment; each item commits on its own."""
    summary = await bulk.bulk_auto_allocate(body.strategy, cap=body.cap, actor=actor)
    return {"status": "ok", **serialize_summary(summary)}


@router.post("/allocation/scored-bulk")
async def scored_bulk_allocate(
    body: ScoredBulkRequest,
    bulk: BulkAllocationUseCase = Depends(get_bulk_uc),
    scoring: ScoringPort = Depends(get_scoring),
    actor: Actor = Depends(get_actor),
):
    """Let the scoring collaborator choose per assignment, verifying each write."""

    def log_progress(index: int, total: int, label: str) -> None:
        logger.info("Scored allocation %d/%d: %s", index, total, label)

    summary = await bulk.scored_bulk_allocate(
        scoring,
        on_progress=log_progress,
        cap=body.cap,
        strategy=body.strategy,
        actor=actor,
    )
    return {"status": "ok", **serialize_summary(summary)}
