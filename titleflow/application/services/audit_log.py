"""AuditLog — append-only provenance for assignments."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.services.clock import Clock, utc_now
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.entities.audit_entry import AuditEntry
from titleflow.domain.errors import NotFound
from titleflow.domain.value_objects.enums import AuditAction
from titleflow.domain.value_objects.location import Actor

logger = logging.getLogger(__name__)


class AuditLog:
    def __init__(self, assignment_repo: AssignmentRepository, clock: Clock = utc_now):
        self._assignments = assignment_repo
        self._clock = clock

    def record(
        self,
        assignment: Assignment,
        action: AuditAction,
        actor: Actor,
        detail: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> AuditEntry:
        """Append an entry to *assignment*'s trail.

        The entry becomes durable with the caller's next save of the
        assignment, so it commits together with the change it describes.
        """
        entry = AuditEntry(
            timestamp=self._clock(),
            action=action,
            actor_id=actor.id,
            actor_role=actor.role,
            detail=detail,
            metadata=metadata or {},
        )
        assignment.audit_trail.append(entry)
        logger.debug("Audit %s on %s: %s", action.value, assignment.reference, detail)
        return entry

    async def history(self, assignment_id: str) -> list[AuditEntry]:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFound("Assignment", assignment_id)
        return list(assignment.audit_trail)
