"""Assignment entity — one title-search job routed through its lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from titleflow.domain.entities.audit_entry import AuditEntry
from titleflow.domain.entities.document import Document
from titleflow.domain.entities.query import Query
from titleflow.domain.value_objects.enums import (
    ACTIVE_STATUSES,
    AssignmentStatus,
    ForfeitReason,
    Priority,
    Scope,
    WorkCategory,
)
from titleflow.domain.value_objects.location import Location

# Lifecycle timestamps in the order they are reached
MILESTONE_FIELDS = ("created_at", "allocated_at", "completed_at", "closed_at")


@dataclass(frozen=True)
class ForfeitDetails:
    """Why the current fulfiller gave the assignment back."""

    reason: ForfeitReason
    details: str
    fulfiller_id: str
    forfeited_at: datetime
    forfeit_count: int = 1


@dataclass(frozen=True)
class TransferRequest:
    """A requester asking the current owner to hand the assignment over."""

    requested_by: str
    requested_at: datetime


@dataclass
class Assignment:
    id: str
    reference: str
    category: WorkCategory
    subject_location: Location
    requester_location: Location
    requester_id: str | None  # owning requester; None while unclaimed
    origin_hub_id: str
    created_at: datetime
    priority: Priority = Priority.STANDARD
    scope: Scope = Scope.TSR
    borrower_name: str | None = None
    account_number: str | None = None
    status: AssignmentStatus = AssignmentStatus.PENDING_ALLOCATION
    assigned_fulfiller_id: str | None = None
    allocated_at: datetime | None = None
    completed_at: datetime | None = None
    closed_at: datetime | None = None
    due_at: datetime | None = None
    documents: list[Document] = field(default_factory=list)
    queries: list[Query] = field(default_factory=list)
    audit_trail: list[AuditEntry] = field(default_factory=list)
    previous_fulfiller_ids: list[str] = field(default_factory=list)
    forfeit: ForfeitDetails | None = None
    transfer_request: TransferRequest | None = None

    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_pending(self) -> bool:
        return self.status == AssignmentStatus.PENDING_ALLOCATION

    @property
    def awaiting_reallocation(self) -> bool:
        """True while the currently assigned fulfiller has forfeited the work."""
        return (
            self.forfeit is not None
            and self.forfeit.fulfiller_id == self.assigned_fulfiller_id
        )

    def latest_milestone(self) -> datetime:
        stamps = [getattr(self, f) for f in MILESTONE_FIELDS if getattr(self, f) is not None]
        return max(stamps)

    def stamp(self, field_name: str, now: datetime) -> None:
        """Set a milestone timestamp once, never earlier than the previous one."""
        if field_name not in MILESTONE_FIELDS:
            raise ValueError(f"Unknown milestone field: {field_name}")
        if getattr(self, field_name) is not None:
            return
        setattr(self, field_name, max(now, self.latest_milestone()))

    def matches(self, term: str) -> bool:
        """Exact account number or reference, or part of the borrower name; case-insensitive."""
        q = term.strip().upper()
        if not q:
            return False
        return (
            (self.account_number or "").upper() == q
            or self.reference.upper() == q
            or q in (self.borrower_name or "").upper()
        )

    def find_query(self, query_id: str) -> Query | None:
        return next((q for q in self.queries if q.id == query_id), None)

    def open_queries(self) -> list[Query]:
        return [q for q in self.queries if q.is_open]
