"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from titleflow.adapters.llm.openai_adapter import OpenAIScoringAdapter
from titleflow.adapters.persistence.database import async_session_factory
from titleflow.adapters.persistence.memory import (
    InMemoryAssignmentRepository,
    InMemoryFulfillerRepository,
    InMemoryHubRepository,
)
from titleflow.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlFulfillerRepository,
    SqlHubRepository,
)
from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.hub_repo import HubRepository
from titleflow.application.ports.scoring_port import ScoringPort
from titleflow.application.services.audit_log import AuditLog
from titleflow.application.services.locks import AssignmentLocks
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.application.use_cases.bulk_allocate import BulkAllocationUseCase
from titleflow.application.use_cases.intake import AssignmentIntake
from titleflow.application.use_cases.master_data import MasterDataUseCase
from titleflow.application.use_cases.workflow import WorkflowUseCase
from titleflow.config import settings
from titleflow.domain.value_objects.enums import ActorRole
from titleflow.domain.value_objects.location import Actor

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    """The three repositories of one request, plus its transaction (if any)."""

    assignments: AssignmentRepository
    fulfillers: FulfillerRepository
    hubs: HubRepository
    session: AsyncSession | None = None

    async def commit(self) -> None:
        if self.session is not None:
            await self.session.commit()

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()


# Process-wide singletons: the lock registry must be shared by every request
_locks = AssignmentLocks()
_scoring_adapter: OpenAIScoringAdapter | None = None
_memory: Repositories | None = None


def get_locks() -> AssignmentLocks:
    return _locks


def _memory_repositories() -> Repositories:
    global _memory
    if _memory is None:
        logger.info("Using in-memory repositories (STORAGE_BACKEND=memory)")
        _memory = Repositories(
            assignments=InMemoryAssignmentRepository(),
            fulfillers=InMemoryFulfillerRepository(),
            hubs=InMemoryHubRepository(),
        )
    return _memory


async def get_repositories() -> AsyncGenerator[Repositories, None]:
    """One session per request.

    Locked use cases commit through the commit hook before releasing the
    assignment lock; routes that take no lock (intake, master data) commit
    at the end. Anything left uncommitted is rolled back on error.
    """
    if settings.storage_backend == "memory":
        yield _memory_repositories()
        return

    async with async_session_factory() as session:
        try:
            yield Repositories(
                assignments=SqlAssignmentRepository(session),
                fulfillers=SqlFulfillerRepository(session),
                hubs=SqlHubRepository(session),
                session=session,
            )
        except Exception:
            await session.rollback()
            raise


def get_scoring() -> ScoringPort:
    global _scoring_adapter
    if _scoring_adapter is None:
        _scoring_adapter = OpenAIScoringAdapter()
    return _scoring_adapter


def get_actor(
    x_actor_id: str = Header(default="operations"),
    x_actor_role: ActorRole = Header(default=ActorRole.OPERATIONS),
) -> Actor:
    """Caller identity as claimed by the (already authenticated) front end."""
    return Actor(id=x_actor_id, role=x_actor_role)


def get_engine(
    repos: Repositories = Depends(get_repositories),
    locks: AssignmentLocks = Depends(get_locks),
) -> AllocationEngine:
    return AllocationEngine(
        assignment_repo=repos.assignments,
        fulfiller_repo=repos.fulfillers,
        locks=locks,
        default_capacity=settings.default_capacity,
        reason_min_length=settings.reason_min_length,
        due_in_days=settings.due_in_days,
        commit=repos.commit,
    )


def get_workflow_uc(
    repos: Repositories = Depends(get_repositories),
    locks: AssignmentLocks = Depends(get_locks),
) -> WorkflowUseCase:
    return WorkflowUseCase(
        assignment_repo=repos.assignments,
        locks=locks,
        reason_min_length=settings.reason_min_length,
        commit=repos.commit,
    )


def get_intake_uc(repos: Repositories = Depends(get_repositories)) -> AssignmentIntake:
    return AssignmentIntake(
        assignment_repo=repos.assignments,
        hub_repo=repos.hubs,
        reference_prefix=settings.reference_prefix,
    )


def get_master_data_uc(repos: Repositories = Depends(get_repositories)) -> MasterDataUseCase:
    return MasterDataUseCase(
        fulfiller_repo=repos.fulfillers,
        hub_repo=repos.hubs,
        assignment_repo=repos.assignments,
    )


def get_audit_log(repos: Repositories = Depends(get_repositories)) -> AuditLog:
    return AuditLog(repos.assignments)


def get_bulk_uc(
    repos: Repositories = Depends(get_repositories),
    engine: AllocationEngine = Depends(get_engine),
) -> BulkAllocationUseCase:
    return BulkAllocationUseCase(
        engine=engine,
        assignment_repo=repos.assignments,
        fulfiller_repo=repos.fulfillers,
        default_capacity=settings.default_capacity,
        delay_seconds=settings.scoring_delay_seconds,
        rollback=repos.rollback,
    )
