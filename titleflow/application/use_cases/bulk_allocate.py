"""BulkAllocationUseCase — allocate every pending assignment, one at a time."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.scoring_port import ScoringPort, ScoringUnavailable
from titleflow.application.ports.unit_of_work import Rollback
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.errors import DomainError
from titleflow.domain.policies.scoring import score
from titleflow.domain.value_objects.enums import (
    AllocationStrategy,
    AssignmentStatus,
    FailureKind,
)
from titleflow.domain.value_objects.location import SYSTEM_ACTOR, Actor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class ItemResult:
    """Outcome of one assignment within a batch."""

    assignment_id: str
    reference: str
    success: bool
    fulfiller_id: str | None = None
    score: int | None = None
    confidence: int | None = None
    factors: list[str] = field(default_factory=list)
    failure: FailureKind | None = None
    message: str | None = None


@dataclass
class BulkSummary:
    total: int
    succeeded: int = 0
    failed: int = 0
    results: list[ItemResult] = field(default_factory=list)
    cancelled: bool = False

    def add(self, result: ItemResult) -> None:
        self.results.append(result)
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1


def build_scoring_context(
    assignment: Assignment,
    candidates: list[Fulfiller],
    loads: dict[str, int],
) -> dict[str, Any]:
    """JSON-serialisable snapshot handed to the scoring collaborator."""
    return {
        "assignment": {
            "id": assignment.id,
            "reference": assignment.reference,
            "category": assignment.category.value,
            "priority": assignment.priority.value,
            "scope": assignment.scope.value,
            "subject_location": {
                "state": assignment.subject_location.state,
                "district": assignment.subject_location.district,
            },
            "requester_location": {
                "state": assignment.requester_location.state,
                "district": assignment.requester_location.district,
            },
            "origin_hub_id": assignment.origin_hub_id,
            "previous_fulfiller_ids": list(assignment.previous_fulfiller_ids),
        },
        "candidates": [
            {
                "id": f.id,
                "name": f.name,
                "firm_name": f.firm_name,
                "states": sorted(f.states),
                "districts": sorted(f.districts),
                "specializations": sorted(s.value for s in f.specializations),
                "tags": sorted(f.tags),
                "active_load": loads.get(f.id, 0),
                "home_hub_id": f.home_hub_id,
            }
            for f in candidates
        ],
    }


class BulkAllocationUseCase:
    """Batch allocation with per-item transactions.

    Each successful item is committed by the engine. A failing item, whatever
    the exception, is recorded and the loop moves on; after an unexpected
    error the rollback hook discards the item's half-written state so the
    next item starts clean. Cancellation is cooperative: the event is checked
    before each item, never mid-item.
    """

    def __init__(
        self,
        engine: AllocationEngine,
        assignment_repo: AssignmentRepository,
        fulfiller_repo: FulfillerRepository,
        default_capacity: int = 5,
        delay_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        rollback: Rollback | None = None,
    ):
        self._engine = engine
        self._assignments = assignment_repo
        self._fulfillers = fulfiller_repo
        self._default_capacity = default_capacity
        self._delay = delay_seconds
        self._sleep = sleep
        self._rollback = rollback

    async def _pending(self) -> list[Assignment]:
        pending = await self._assignments.get_by_statuses([AssignmentStatus.PENDING_ALLOCATION])
        # Repositories already order this way; sort again so reruns never depend on it
        return sorted(pending, key=lambda a: (a.created_at, a.id))

    # ─── Rule-based ──────────────────────────────────────────────────

    async def bulk_auto_allocate(
        self,
        strategy: AllocationStrategy,
        cap: int | None = None,
        actor: Actor = SYSTEM_ACTOR,
        cancel: asyncio.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BulkSummary:
        cap = self._default_capacity if cap is None else cap
        pending = await self._pending()
        summary = BulkSummary(total=len(pending))
        logger.info("Bulk auto-allocation (%s) over %d pending", strategy.label, len(pending))

        for index, item in enumerate(pending, start=1):
            if cancel is not None and cancel.is_set():
                summary.cancelled = True
                logger.info("Bulk auto-allocation cancelled after %d item(s)", index - 1)
                break

            try:
                allocated = await self._engine.auto_allocate(item.id, strategy, cap, actor)
                entry = allocated.audit_trail[-1]
                summary.add(ItemResult(
                    assignment_id=item.id,
                    reference=item.reference,
                    success=True,
                    fulfiller_id=allocated.assigned_fulfiller_id,
                    score=entry.metadata.get("score"),
                    factors=list(entry.metadata.get("factors", [])),
                ))
            except DomainError as e:
                logger.warning("Bulk: %s not allocated: %s", item.reference, e)
                summary.add(_failure(item, e.failure_kind or FailureKind.ALLOCATION_REJECTED, str(e)))
            except Exception as e:
                summary.add(await self._unexpected(item, e))

            if on_progress is not None:
                on_progress(index, summary.total, item.reference)

        logger.info(
            "Bulk auto-allocation complete: %d/%d successful",
            summary.succeeded, summary.total,
        )
        return summary

    # ─── Collaborator-scored ─────────────────────────────────────────

    async def scored_bulk_allocate(
        self,
        scoring: ScoringPort,
        on_progress: ProgressCallback | None = None,
        cap: int | None = None,
        strategy: AllocationStrategy | None = None,
        actor: Actor = SYSTEM_ACTOR,
        cancel: asyncio.Event | None = None,
    ) -> BulkSummary:
        """Let an external collaborator pick each fulfiller, then verify the write.

        Candidates are every fulfiller under *cap*; when *strategy* is given they
        must also pass that strategy's eligibility gate. Calls to the
        collaborator are spaced by the configured delay.
        """
        cap = self._default_capacity if cap is None else cap
        pending = await self._pending()
        summary = BulkSummary(total=len(pending))
        logger.info("Scored bulk allocation over %d pending", len(pending))

        for index, item in enumerate(pending, start=1):
            if cancel is not None and cancel.is_set():
                summary.cancelled = True
                logger.info("Scored bulk allocation cancelled after %d item(s)", index - 1)
                break

            try:
                result, called = await self._scored_item(item, scoring, cap, strategy, actor)
            except Exception as e:
                # Reading state before the collaborator call failed
                result, called = await self._unexpected(item, e), False
            summary.add(result)

            if on_progress is not None:
                on_progress(index, summary.total, item.reference)

            if called and index < len(pending):
                await self._sleep(self._delay)

        logger.info(
            "Scored bulk allocation complete: %d/%d successful",
            summary.succeeded, summary.total,
        )
        return summary

    async def _unexpected(self, item: Assignment, error: Exception) -> ItemResult:
        """Record a non-domain failure; call only from inside an except block."""
        logger.exception("Bulk: error processing %s", item.reference)
        if self._rollback is not None:
            try:
                await self._rollback()
            except Exception:
                logger.exception("Bulk: rollback after %s failed", item.reference)
        return _failure(item, FailureKind.INTERNAL_ERROR, f"Unexpected error: {error}")

    async def _scored_item(
        self,
        item: Assignment,
        scoring: ScoringPort,
        cap: int,
        strategy: AllocationStrategy | None,
        actor: Actor,
    ) -> tuple[ItemResult, bool]:
        """Process one assignment; returns (result, whether the collaborator was called)."""
        assignment = await self._assignments.get_by_id(item.id)
        if assignment is None:
            return _failure(item, FailureKind.NOT_FOUND, "Assignment disappeared"), False

        loads = await self._engine.workload.loads()
        candidates = sorted(
            (
                f for f in await self._fulfillers.get_all()
                if loads.get(f.id, 0) < cap
                and (strategy is None or score(assignment, f, strategy, loads.get(f.id, 0)).eligible)
            ),
            key=lambda f: f.id,
        )
        if not candidates:
            return _failure(
                item, FailureKind.NO_ELIGIBLE_FULFILLER, "No fulfiller under capacity"
            ), False

        context = build_scoring_context(assignment, candidates, loads)
        try:
            suggestion = await scoring.suggest(context)
        except ScoringUnavailable as e:
            logger.warning("Scoring unavailable for %s: %s", item.reference, e)
            return _failure(item, FailureKind.INVALID_SUGGESTION, f"Scoring unavailable: {e}"), True
        except Exception as e:
            logger.exception("Scoring collaborator failed for %s", item.reference)
            return _failure(item, FailureKind.INVALID_SUGGESTION, f"Scoring failed: {e}"), True

        candidate_ids = {f.id for f in candidates}
        if suggestion.fulfiller_id not in candidate_ids:
            logger.warning(
                "Scoring for %s suggested %r which is not an eligible candidate",
                item.reference, suggestion.fulfiller_id,
            )
            return _failure(
                item,
                FailureKind.INVALID_SUGGESTION,
                f"Suggested fulfiller {suggestion.fulfiller_id!r} is not an eligible candidate",
            ), True

        detail = f"Scored allocation (confidence {suggestion.confidence}/10)"
        if suggestion.reason:
            detail += f": {suggestion.reason}"
        if suggestion.factors:
            detail += f". Factors: {'; '.join(suggestion.factors)}"

        try:
            await self._engine.allocate(
                item.id,
                suggestion.fulfiller_id,
                detail,
                actor,
                cap,
                metadata={
                    "confidence": suggestion.confidence,
                    "factors": list(suggestion.factors),
                    "model": suggestion.model,
                },
            )
            # Trust nothing, not even our own write: re-read and check
            stored = await self._assignments.get_by_id(item.id)
        except DomainError as e:
            logger.warning("Scored allocation of %s rejected: %s", item.reference, e)
            return _failure(item, e.failure_kind or FailureKind.ALLOCATION_REJECTED, str(e)), True
        except Exception as e:
            return await self._unexpected(item, e), True

        if (
            stored is None
            or stored.status != AssignmentStatus.ALLOCATED
            or stored.assigned_fulfiller_id != suggestion.fulfiller_id
        ):
            logger.error("Verification failed for %s after allocation", item.reference)
            return _failure(
                item,
                FailureKind.VERIFICATION_FAILED,
                "Re-read after allocation does not show the chosen fulfiller",
            ), True

        return ItemResult(
            assignment_id=item.id,
            reference=item.reference,
            success=True,
            fulfiller_id=suggestion.fulfiller_id,
            confidence=suggestion.confidence,
            factors=list(suggestion.factors),
        ), True


def _failure(item: Assignment, kind: FailureKind, message: str) -> ItemResult:
    return ItemResult(
        assignment_id=item.id,
        reference=item.reference,
        success=False,
        failure=kind,
        message=message,
    )
