"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class AssignmentStatus(str, Enum):
    PENDING_ALLOCATION = "PENDING_ALLOCATION"
    ALLOCATED = "ALLOCATED"
    IN_PROGRESS = "IN_PROGRESS"
    QUERY_RAISED = "QUERY_RAISED"
    COMPLETED = "COMPLETED"
    UNDER_REVIEW = "UNDER_REVIEW"
    CLOSED = "CLOSED"


# Statuses that count towards a fulfiller's workload
ACTIVE_STATUSES: frozenset[AssignmentStatus] = frozenset({
    AssignmentStatus.ALLOCATED,
    AssignmentStatus.IN_PROGRESS,
    AssignmentStatus.QUERY_RAISED,
})

# Statuses in which an assignment must carry a fulfiller
FULFILLER_BOUND_STATUSES: frozenset[AssignmentStatus] = frozenset(
    s for s in AssignmentStatus if s != AssignmentStatus.PENDING_ALLOCATION
)


class WorkCategory(str, Enum):
    HOME_LOAN = "Home Loan"
    LOAN_AGAINST_PROPERTY = "Loan Against Property"
    BUSINESS_LOAN = "Business Loan"


class Priority(str, Enum):
    STANDARD = "Standard"
    URGENT = "Urgent"
    HIGH_VALUE = "High Value"


class Scope(str, Enum):
    TSR = "TSR"  # title search report
    LOR = "LOR"  # legal opinion report
    PRR = "PRR"  # property re-verification


class ActorRole(str, Enum):
    REQUESTER = "REQUESTER"
    FULFILLER = "FULFILLER"
    OPERATIONS = "OPERATIONS"
    SYSTEM = "SYSTEM"


class AuditAction(str, Enum):
    CREATED = "CREATED"
    ALLOCATED = "ALLOCATED"
    RE_ALLOCATED = "RE_ALLOCATED"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    WORK_STARTED = "WORK_STARTED"
    QUERY_RAISED = "QUERY_RAISED"
    QUERY_RESPONDED = "QUERY_RESPONDED"
    COMPLETED = "COMPLETED"
    SUBMITTED_FOR_REVIEW = "SUBMITTED_FOR_REVIEW"
    REWORK_REQUESTED = "REWORK_REQUESTED"
    CLOSED = "CLOSED"
    FORFEITED = "FORFEITED"
    CLAIMED = "CLAIMED"
    TRANSFER_REQUESTED = "TRANSFER_REQUESTED"
    OWNERSHIP_TRANSFERRED = "OWNERSHIP_TRANSFERRED"
    TRANSFER_REJECTED = "TRANSFER_REJECTED"


class AllocationStrategy(str, Enum):
    SUBJECT_LOCATION = "subject_location"
    REQUESTER_LOCATION = "requester_location"
    HUB = "hub"

    @property
    def label(self) -> str:
        return self.value.replace("_", "-")


class ForfeitReason(str, Enum):
    TOO_COMPLEX = "Too Complex / Beyond Expertise"
    CONFLICT_OF_INTEREST = "Conflict of Interest"
    OVERLOADED = "Overloaded with Work"
    EMERGENCY = "Personal/Medical Emergency"
    ACCESS_ISSUES = "Property Access Issues"
    CLIENT_ISSUES = "Client Relationship Issues"
    OTHER = "Other"


class RejectionReason(str, Enum):
    ASSIGNMENT_NOT_FOUND = "assignment_not_found"
    FULFILLER_NOT_FOUND = "fulfiller_not_found"
    ALREADY_ALLOCATED = "already_allocated"
    AT_CAPACITY = "at_capacity"
    NOT_ALLOCATED = "not_allocated"
    CLOSED = "closed"
    SAME_FULFILLER = "same_fulfiller"
    NOT_ACTIVE = "not_active"
    # requester ownership
    OWNED_BY_OTHER = "owned_by_other"
    ALREADY_OWNER = "already_owner"
    UNCLAIMED = "unclaimed"
    TRANSFER_PENDING = "transfer_pending"
    NO_TRANSFER_PENDING = "no_transfer_pending"


class FailureKind(str, Enum):
    """Per-item failure tag reported by bulk allocation."""

    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    ALLOCATION_REJECTED = "AllocationRejected"
    NO_ELIGIBLE_FULFILLER = "NoEligibleFulfiller"
    INVALID_SUGGESTION = "InvalidSuggestion"
    VERIFICATION_FAILED = "VerificationFailed"
    INTERNAL_ERROR = "InternalError"
