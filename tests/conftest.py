"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from titleflow.adapters.persistence.memory import (
    InMemoryAssignmentRepository,
    InMemoryFulfillerRepository,
    InMemoryHubRepository,
)
from titleflow.application.services.locks import AssignmentLocks
from titleflow.application.use_cases.allocate_assignment import AllocationEngine
from titleflow.application.use_cases.workflow import WorkflowUseCase
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.entities.hub import Hub
from titleflow.domain.value_objects.enums import ActorRole, AssignmentStatus, WorkCategory
from titleflow.domain.value_objects.location import Actor, Location

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

OPS = Actor(id="ops-1", role=ActorRole.OPERATIONS)


class TickingClock:
    """Deterministic clock: every call is one minute after the previous one."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self._step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self._step
        return current


def make_assignment(
    assignment_id: str = "a-1",
    state: str = "Maharashtra",
    district: str = "Pune",
    category: WorkCategory = WorkCategory.HOME_LOAN,
    origin_hub_id: str = "hub-mum",
    status: AssignmentStatus = AssignmentStatus.PENDING_ALLOCATION,
    fulfiller_id: str | None = None,
    created_at: datetime = T0,
    requester_state: str = "Maharashtra",
    requester_district: str = "Mumbai",
) -> Assignment:
    assignment = Assignment(
        id=assignment_id,
        reference=f"TS-{assignment_id}",
        category=category,
        subject_location=Location(state=state, district=district),
        requester_location=Location(state=requester_state, district=requester_district),
        requester_id="req-1",
        origin_hub_id=origin_hub_id,
        created_at=created_at,
        status=status,
        assigned_fulfiller_id=fulfiller_id,
    )
    if fulfiller_id is not None:
        assignment.allocated_at = created_at
    return assignment


def make_fulfiller(
    fulfiller_id: str,
    states: set[str] = frozenset({"Maharashtra"}),
    districts: set[str] = frozenset({"Pune"}),
    specializations: set[WorkCategory] = frozenset({WorkCategory.HOME_LOAN}),
    home_hub_id: str | None = None,
) -> Fulfiller:
    return Fulfiller(
        id=fulfiller_id,
        name=fulfiller_id.replace("f-", "").title(),
        states=set(states),
        districts=set(districts),
        specializations=set(specializations),
        home_hub_id=home_hub_id,
    )


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def hubs():
    return [
        Hub(id="hub-mum", code="MUM01", name="Mumbai Central", state="Maharashtra", district="Mumbai"),
        Hub(id="hub-blr", code="BLR01", name="Bangalore MG Road", state="Karnataka", district="Bangalore"),
    ]


@pytest.fixture
def fulfillers():
    return [
        make_fulfiller("f-asha"),
        make_fulfiller(
            "f-kiran",
            states={"Karnataka"},
            districts={"Bangalore"},
            specializations={WorkCategory.BUSINESS_LOAN},
            home_hub_id="hub-blr",
        ),
        make_fulfiller(
            "f-meera",
            districts={"Mumbai"},
            specializations={WorkCategory.LOAN_AGAINST_PROPERTY},
            home_hub_id="hub-mum",
        ),
    ]


@pytest.fixture
def hub_repo(hubs):
    return InMemoryHubRepository(hubs)


@pytest.fixture
def fulfiller_repo(fulfillers):
    return InMemoryFulfillerRepository(fulfillers)


@pytest.fixture
def assignment_repo():
    return InMemoryAssignmentRepository([make_assignment()])


@pytest.fixture
def locks():
    return AssignmentLocks()


@pytest.fixture
def engine(assignment_repo, fulfiller_repo, locks, clock):
    return AllocationEngine(assignment_repo, fulfiller_repo, locks, clock=clock)


@pytest.fixture
def workflow(assignment_repo, locks, clock):
    return WorkflowUseCase(assignment_repo, locks, clock=clock)
