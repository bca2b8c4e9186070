"""AssignmentIntake — register new work in PENDING_ALLOCATION."""

from __future__ import annotations

import logging
import uuid

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.hub_repo import HubRepository
from titleflow.application.services.audit_log import AuditLog
from titleflow.application.services.clock import Clock, utc_now
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.errors import NotFound
from titleflow.domain.value_objects.enums import (
    AuditAction,
    Priority,
    Scope,
    WorkCategory,
)
from titleflow.domain.value_objects.location import Actor, Location

logger = logging.getLogger(__name__)


class AssignmentIntake:
    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        hub_repo: HubRepository,
        clock: Clock = utc_now,
        reference_prefix: str = "TS",
    ):
        self._assignments = assignment_repo
        self._hubs = hub_repo
        self._clock = clock
        self._prefix = reference_prefix
        self._audit = AuditLog(assignment_repo, clock)

    async def create(
        self,
        category: WorkCategory,
        subject_location: Location,
        requester_location: Location,
        origin_hub_id: str,
        actor: Actor,
        priority: Priority = Priority.STANDARD,
        scope: Scope = Scope.TSR,
        borrower_name: str | None = None,
        account_number: str | None = None,
        claimed: bool = True,
    ) -> Assignment:
        """Create and persist a new assignment.

        With *claimed* the creating actor becomes the owning requester;
        imported work starts unclaimed instead.

        Raises:
            NotFound: origin hub does not exist.
        """
        hub = await self._hubs.get_by_id(origin_hub_id)
        if hub is None:
            raise NotFound("Hub", origin_hub_id)

        number = await self._assignments.next_reference_number()
        assignment = Assignment(
            id=uuid.uuid4().hex,
            reference=f"{self._prefix}-{number:06d}",
            category=category,
            subject_location=subject_location,
            requester_location=requester_location,
            requester_id=actor.id if claimed else None,
            origin_hub_id=hub.id,
            created_at=self._clock(),
            priority=priority,
            scope=scope,
            borrower_name=borrower_name,
            account_number=account_number,
        )
        self._audit.record(
            assignment,
            AuditAction.CREATED,
            actor,
            f"{category.value} {scope.value} for {subject_location.describe()} "
            f"raised by hub {hub.code}",
        )
        await self._assignments.save(assignment)

        logger.info(
            "Assignment %s created (%s, %s)",
            assignment.reference, category.value, subject_location.describe(),
        )
        return assignment
