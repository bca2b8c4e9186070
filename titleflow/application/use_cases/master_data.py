"""MasterDataUseCase — fulfiller and hub registration with guarded deletes."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.hub_repo import HubRepository
from titleflow.application.services.workload import WorkloadTracker
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.entities.hub import Hub
from titleflow.domain.errors import CoverageError, IntegrityError, NotFound
from titleflow.domain.policies.coverage import validate_coverage

logger = logging.getLogger(__name__)


@dataclass
class FulfillerWorkload:
    fulfiller: Fulfiller
    active_load: int
    cap: int

    @property
    def eligible(self) -> bool:
        return self.active_load < self.cap


class MasterDataUseCase:
    def __init__(
        self,
        fulfiller_repo: FulfillerRepository,
        hub_repo: HubRepository,
        assignment_repo: AssignmentRepository,
    ):
        self._fulfillers = fulfiller_repo
        self._hubs = hub_repo
        self._assignments = assignment_repo
        self._workload = WorkloadTracker(assignment_repo)

    # ─── Fulfillers ──────────────────────────────────────────────────

    async def register_fulfiller(self, fulfiller: Fulfiller) -> Fulfiller:
        if not fulfiller.id:
            fulfiller.id = uuid.uuid4().hex
        elif await self._fulfillers.get_by_id(fulfiller.id) is not None:
            raise IntegrityError(f"Fulfiller already exists: {fulfiller.id}")
        await self._check(fulfiller)
        saved = await self._fulfillers.save(fulfiller)
        logger.info("Registered fulfiller %s (%s)", saved.id, saved.name)
        return saved

    async def update_fulfiller(self, fulfiller: Fulfiller) -> Fulfiller:
        if await self._fulfillers.get_by_id(fulfiller.id) is None:
            raise NotFound("Fulfiller", fulfiller.id)
        await self._check(fulfiller)
        saved = await self._fulfillers.save(fulfiller)
        logger.info("Updated fulfiller %s", saved.id)
        return saved

    async def _check(self, fulfiller: Fulfiller) -> None:
        if not fulfiller.name or not fulfiller.name.strip():
            raise CoverageError("Fulfiller name is mandatory")
        validate_coverage(fulfiller)
        if fulfiller.home_hub_id and await self._hubs.get_by_id(fulfiller.home_hub_id) is None:
            raise NotFound("Hub", fulfiller.home_hub_id)

    async def delete_fulfiller(self, fulfiller_id: str) -> None:
        if await self._fulfillers.get_by_id(fulfiller_id) is None:
            raise NotFound("Fulfiller", fulfiller_id)
        referencing = await self._assignments.get_by_fulfiller(fulfiller_id)
        if referencing:
            raise IntegrityError(
                f"Fulfiller {fulfiller_id} is referenced by {len(referencing)} assignment(s)"
            )
        await self._fulfillers.delete(fulfiller_id)
        logger.info("Deleted fulfiller %s", fulfiller_id)

    async def workloads(self, cap: int) -> list[FulfillerWorkload]:
        """Every fulfiller with its derived load, busiest first."""
        loads = await self._workload.loads()
        rows = [
            FulfillerWorkload(fulfiller=f, active_load=loads.get(f.id, 0), cap=cap)
            for f in await self._fulfillers.get_all()
        ]
        rows.sort(key=lambda w: (-w.active_load, w.fulfiller.id))
        return rows

    # ─── Hubs ────────────────────────────────────────────────────────

    async def add_hub(self, hub: Hub) -> Hub:
        if not hub.id:
            hub.id = uuid.uuid4().hex
        if await self._hubs.get_by_code(hub.code) is not None:
            raise IntegrityError(f"Hub code already in use: {hub.code}")
        saved = await self._hubs.save(hub)
        logger.info("Added hub %s (%s)", saved.code, saved.name)
        return saved

    async def delete_hub(self, hub_id: str) -> None:
        if await self._hubs.get_by_id(hub_id) is None:
            raise NotFound("Hub", hub_id)
        if await self._fulfillers.get_by_hub(hub_id):
            raise IntegrityError(f"Hub {hub_id} is the home hub of at least one fulfiller")
        if await self._assignments.get_by_hub(hub_id):
            raise IntegrityError(f"Hub {hub_id} originated at least one assignment")
        await self._hubs.delete(hub_id)
        logger.info("Deleted hub %s", hub_id)
