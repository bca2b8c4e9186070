"""Domain error taxonomy.

Every error is scoped to the single assignment (or master-data record) being
processed; none of them is fatal to the process.
"""

from __future__ import annotations

from titleflow.domain.value_objects.enums import (
    AssignmentStatus,
    FailureKind,
    RejectionReason,
)


class DomainError(Exception):
    """Base class for all expected, caller-reportable failures."""

    failure_kind: FailureKind | None = None


class NotFound(DomainError):
    failure_kind = FailureKind.NOT_FOUND

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InvalidTransition(DomainError):
    failure_kind = FailureKind.INVALID_TRANSITION

    def __init__(self, current: AssignmentStatus, target: AssignmentStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from {current.value} to {target.value}")


class AllocationRejected(DomainError):
    """Eligibility or precondition failure; safe to retry once conditions change."""

    failure_kind = FailureKind.ALLOCATION_REJECTED

    def __init__(self, reason: RejectionReason, message: str):
        self.reason = reason
        super().__init__(message)


class NoEligibleFulfiller(DomainError):
    failure_kind = FailureKind.NO_ELIGIBLE_FULFILLER

    def __init__(self, assignment_id: str, strategy_label: str):
        self.assignment_id = assignment_id
        super().__init__(
            f"No eligible fulfiller for assignment {assignment_id} ({strategy_label})"
        )


class InvalidReason(DomainError):
    """Input validation failure on a free-text reason; nothing was written."""


class InvalidSuggestion(DomainError):
    failure_kind = FailureKind.INVALID_SUGGESTION


class VerificationFailed(DomainError):
    failure_kind = FailureKind.VERIFICATION_FAILED


class CoverageError(DomainError):
    """A fulfiller's coverage is inconsistent with the geography reference data."""


class IntegrityError(DomainError):
    """A delete would orphan records that still reference the target."""


class OwnershipConflict(DomainError):
    """A requester-side claim or transfer clashes with the current owner."""

    def __init__(self, reason: RejectionReason, message: str):
        self.reason = reason
        super().__init__(message)
