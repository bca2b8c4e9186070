"""Assignment lifecycle state machine."""

from __future__ import annotations

from datetime import datetime

from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.errors import InvalidTransition
from titleflow.domain.value_objects.enums import AssignmentStatus as S

ALLOWED_TRANSITIONS: dict[S, frozenset[S]] = {
    S.PENDING_ALLOCATION: frozenset({S.ALLOCATED}),
    S.ALLOCATED: frozenset({S.IN_PROGRESS}),
    S.IN_PROGRESS: frozenset({S.QUERY_RAISED, S.COMPLETED}),
    S.QUERY_RAISED: frozenset({S.IN_PROGRESS}),
    S.COMPLETED: frozenset({S.UNDER_REVIEW}),
    S.UNDER_REVIEW: frozenset({S.IN_PROGRESS, S.CLOSED}),
    S.CLOSED: frozenset(),
}

# Target statuses that stamp a lifecycle timestamp
_STAMPED_FIELDS: dict[S, str] = {
    S.ALLOCATED: "allocated_at",
    S.COMPLETED: "completed_at",
    S.CLOSED: "closed_at",
}


def can_transition(current: S, target: S) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(assignment: Assignment, target: S, now: datetime) -> Assignment:
    """Apply a status change in place and return the same record.

    Raises InvalidTransition when *target* is not an allowed successor of the
    current status (a no-op target == current is never allowed). Does not
    touch the audit trail: the caller writes the entry, since the detail
    depends on why the transition happened.
    """
    if not can_transition(assignment.status, target):
        raise InvalidTransition(assignment.status, target)

    assignment.status = target
    stamped = _STAMPED_FIELDS.get(target)
    if stamped:
        assignment.stamp(stamped, now)
    return assignment
