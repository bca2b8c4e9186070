"""Request schemas and response serializers for the HTTP layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from titleflow.application.use_cases.bulk_allocate import BulkSummary, ItemResult
from titleflow.application.use_cases.master_data import FulfillerWorkload
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.entities.hub import Hub
from titleflow.domain.policies.scoring import RankedCandidate
from titleflow.domain.value_objects.enums import (
    ActorRole,
    AllocationStrategy,
    ForfeitReason,
    Priority,
    Scope,
    WorkCategory,
)
from titleflow.domain.value_objects.location import Location

# ── Request schemas ─────────────────────────────────────────────────


class LocationIn(BaseModel):
    state: str = Field(min_length=1)
    district: str = Field(min_length=1)
    address: str | None = None
    pincode: str | None = None

    def to_domain(self) -> Location:
        return Location(
            state=self.state.strip(),
            district=self.district.strip(),
            address=self.address,
            pincode=self.pincode,
        )


class AssignmentCreate(BaseModel):
    category: WorkCategory
    subject_location: LocationIn
    requester_location: LocationIn
    origin_hub_id: str
    priority: Priority = Priority.STANDARD
    scope: Scope = Scope.TSR
    borrower_name: str | None = None
    account_number: str | None = None


class AllocateRequest(BaseModel):
    fulfiller_id: str
    reason: str = "Manually allocated by operations"
    cap: int | None = Field(default=None, ge=1)


class AutoAllocateRequest(BaseModel):
    strategy: AllocationStrategy = AllocationStrategy.SUBJECT_LOCATION
    cap: int | None = Field(default=None, ge=1)


class ReallocateRequest(BaseModel):
    fulfiller_id: str
    reason: str
    cap: int | None = Field(default=None, ge=1)


class AutoReallocateRequest(BaseModel):
    strategy: AllocationStrategy = AllocationStrategy.SUBJECT_LOCATION
    reason: str
    cap: int | None = Field(default=None, ge=1)


class DocumentIn(BaseModel):
    name: str
    category: str = "Work Product"
    size: int | None = Field(default=None, ge=0)


class QueryIn(BaseModel):
    text: str
    directed_to: ActorRole | None = None


class QueryResponseIn(BaseModel):
    response: str


class ReasonIn(BaseModel):
    reason: str


class ForfeitIn(BaseModel):
    reason: ForfeitReason
    details: str = ""


class TransferDecisionIn(BaseModel):
    approved: bool


class BulkRequest(BaseModel):
    strategy: AllocationStrategy = AllocationStrategy.SUBJECT_LOCATION
    cap: int | None = Field(default=None, ge=1)


class ScoredBulkRequest(BaseModel):
    strategy: AllocationStrategy | None = None
    cap: int | None = Field(default=None, ge=1)


class FulfillerIn(BaseModel):
    id: str | None = None
    name: str
    states: list[str] = Field(default_factory=list)
    districts: list[str] = Field(default_factory=list)
    specializations: list[WorkCategory] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    home_hub_id: str | None = None
    firm_name: str | None = None
    email: str | None = None

    def to_domain(self, fulfiller_id: str | None = None) -> Fulfiller:
        return Fulfiller(
            id=fulfiller_id or self.id or "",
            name=self.name.strip(),
            states={s.strip() for s in self.states if s.strip()},
            districts={d.strip() for d in self.districts if d.strip()},
            specializations=set(self.specializations),
            tags={t.strip() for t in self.tags if t.strip()},
            home_hub_id=self.home_hub_id,
            firm_name=self.firm_name,
            email=self.email,
        )


class HubIn(BaseModel):
    id: str | None = None
    code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    state: str = Field(min_length=1)
    district: str = Field(min_length=1)
    email: str | None = None

    def to_domain(self) -> Hub:
        return Hub(
            id=self.id or "",
            code=self.code.strip(),
            name=self.name.strip(),
            state=self.state.strip(),
            district=self.district.strip(),
            email=self.email,
        )


# ── Serializers ─────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _location(loc: Location) -> dict[str, Any]:
    return {
        "state": loc.state,
        "district": loc.district,
        "address": loc.address,
        "pincode": loc.pincode,
    }


def serialize_assignment(a: Assignment, with_history: bool = False) -> dict[str, Any]:
    data = {
        "id": a.id,
        "reference": a.reference,
        "category": a.category.value,
        "priority": a.priority.value,
        "scope": a.scope.value,
        "status": a.status.value,
        "subject_location": _location(a.subject_location),
        "requester_location": _location(a.requester_location),
        "requester_id": a.requester_id,
        "origin_hub_id": a.origin_hub_id,
        "assigned_fulfiller_id": a.assigned_fulfiller_id,
        "previous_fulfiller_ids": list(a.previous_fulfiller_ids),
        "borrower_name": a.borrower_name,
        "account_number": a.account_number,
        "created_at": _iso(a.created_at),
        "allocated_at": _iso(a.allocated_at),
        "completed_at": _iso(a.completed_at),
        "closed_at": _iso(a.closed_at),
        "due_at": _iso(a.due_at),
        "awaiting_reallocation": a.awaiting_reallocation,
        "documents": [
            {
                "id": d.id,
                "name": d.name,
                "category": d.category,
                "uploaded_by": d.uploaded_by,
                "uploaded_at": _iso(d.uploaded_at),
                "size": d.size,
            }
            for d in a.documents
        ],
        "queries": [
            {
                "id": q.id,
                "text": q.text,
                "raised_by": q.raised_by,
                "raised_at": _iso(q.raised_at),
                "directed_to": q.directed_to.value if q.directed_to else None,
                "response": q.response,
                "responded_by": q.responded_by,
                "responded_at": _iso(q.responded_at),
            }
            for q in a.queries
        ],
        "forfeit": None,
        "transfer_request": None,
    }
    if a.forfeit:
        data["forfeit"] = {
            "reason": a.forfeit.reason.value,
            "details": a.forfeit.details,
            "fulfiller_id": a.forfeit.fulfiller_id,
            "forfeited_at": _iso(a.forfeit.forfeited_at),
            "forfeit_count": a.forfeit.forfeit_count,
        }
    if a.transfer_request:
        data["transfer_request"] = {
            "requested_by": a.transfer_request.requested_by,
            "requested_at": _iso(a.transfer_request.requested_at),
        }
    if with_history:
        data["history"] = [e.to_dict() for e in a.audit_trail]
    return data


def serialize_fulfiller(f: Fulfiller) -> dict[str, Any]:
    return {
        "id": f.id,
        "name": f.name,
        "firm_name": f.firm_name,
        "email": f.email,
        "states": sorted(f.states),
        "districts": sorted(f.districts),
        "specializations": sorted(s.value for s in f.specializations),
        "tags": sorted(f.tags),
        "home_hub_id": f.home_hub_id,
    }


def serialize_hub(h: Hub) -> dict[str, Any]:
    return {
        "id": h.id,
        "code": h.code,
        "name": h.name,
        "state": h.state,
        "district": h.district,
        "email": h.email,
    }


def serialize_candidate(c: RankedCandidate) -> dict[str, Any]:
    return {
        "fulfiller_id": c.fulfiller.id,
        "name": c.fulfiller.name,
        "score": c.score,
        "active_load": c.active_load,
        "factors": list(c.factors),
    }


def serialize_workload(w: FulfillerWorkload) -> dict[str, Any]:
    return {
        "fulfiller_id": w.fulfiller.id,
        "name": w.fulfiller.name,
        "active_load": w.active_load,
        "cap": w.cap,
        "eligible": w.eligible,
    }


def _item(r: ItemResult) -> dict[str, Any]:
    return {
        "assignment_id": r.assignment_id,
        "reference": r.reference,
        "success": r.success,
        "fulfiller_id": r.fulfiller_id,
        "score": r.score,
        "confidence": r.confidence,
        "factors": list(r.factors),
        "failure": r.failure.value if r.failure else None,
        "message": r.message,
    }


def serialize_summary(s: BulkSummary) -> dict[str, Any]:
    return {
        "total": s.total,
        "succeeded": s.succeeded,
        "failed": s.failed,
        "cancelled": s.cancelled,
        "results": [_item(r) for r in s.results],
    }
