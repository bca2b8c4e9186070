"""SQLAlchemy repository implementations."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from titleflow.adapters.persistence.models import (
    AssignmentModel,
    AuditEntryModel,
    FulfillerModel,
    HubModel,
    assignment_reference_seq,
)
from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.hub_repo import HubRepository
from titleflow.domain.entities.assignment import Assignment, ForfeitDetails, TransferRequest
from titleflow.domain.entities.audit_entry import AuditEntry
from titleflow.domain.entities.document import Document
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.entities.hub import Hub
from titleflow.domain.entities.query import Query
from titleflow.domain.value_objects.enums import (
    ActorRole,
    AssignmentStatus,
    AuditAction,
    ForfeitReason,
    Priority,
    Scope,
    WorkCategory,
)
from titleflow.domain.value_objects.location import Location

# ─── Mappers ─────────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _hub_to_domain(m: HubModel) -> Hub:
    return Hub(
        id=m.id, code=m.code, name=m.name, state=m.state, district=m.district, email=m.email
    )


def _fulfiller_to_domain(m: FulfillerModel) -> Fulfiller:
    return Fulfiller(
        id=m.id,
        name=m.name,
        states=set(m.states or []),
        districts=set(m.districts or []),
        specializations={WorkCategory(s) for s in m.specializations or []},
        tags=set(m.tags or []),
        home_hub_id=m.home_hub_id,
        firm_name=m.firm_name,
        email=m.email,
    )


def _document_to_json(d: Document) -> dict[str, Any]:
    return {
        "id": d.id,
        "name": d.name,
        "category": d.category,
        "uploaded_by": d.uploaded_by,
        "uploaded_at": _iso(d.uploaded_at),
        "size": d.size,
    }


def _document_from_json(data: dict[str, Any]) -> Document:
    return Document(
        id=data["id"],
        name=data["name"],
        category=data["category"],
        uploaded_by=data["uploaded_by"],
        uploaded_at=_parse(data["uploaded_at"]),
        size=data.get("size"),
    )


def _query_to_json(q: Query) -> dict[str, Any]:
    return {
        "id": q.id,
        "text": q.text,
        "raised_by": q.raised_by,
        "raised_at": _iso(q.raised_at),
        "directed_to": q.directed_to.value if q.directed_to else None,
        "response": q.response,
        "responded_by": q.responded_by,
        "responded_at": _iso(q.responded_at),
    }


def _query_from_json(data: dict[str, Any]) -> Query:
    return Query(
        id=data["id"],
        text=data["text"],
        raised_by=data["raised_by"],
        raised_at=_parse(data["raised_at"]),
        directed_to=ActorRole(data["directed_to"]) if data.get("directed_to") else None,
        response=data.get("response"),
        responded_by=data.get("responded_by"),
        responded_at=_parse(data.get("responded_at")),
    )


def _forfeit_to_json(f: ForfeitDetails | None) -> dict[str, Any] | None:
    if f is None:
        return None
    return {
        "reason": f.reason.value,
        "details": f.details,
        "fulfiller_id": f.fulfiller_id,
        "forfeited_at": _iso(f.forfeited_at),
        "forfeit_count": f.forfeit_count,
    }


def _forfeit_from_json(data: dict[str, Any] | None) -> ForfeitDetails | None:
    if not data:
        return None
    return ForfeitDetails(
        reason=ForfeitReason(data["reason"]),
        details=data.get("details", ""),
        fulfiller_id=data["fulfiller_id"],
        forfeited_at=_parse(data["forfeited_at"]),
        forfeit_count=data.get("forfeit_count", 1),
    )


def _transfer_to_json(t: TransferRequest | None) -> dict[str, Any] | None:
    if t is None:
        return None
    return {"requested_by": t.requested_by, "requested_at": _iso(t.requested_at)}


def _transfer_from_json(data: dict[str, Any] | None) -> TransferRequest | None:
    if not data:
        return None
    return TransferRequest(
        requested_by=data["requested_by"], requested_at=_parse(data["requested_at"])
    )


def _audit_to_domain(m: AuditEntryModel) -> AuditEntry:
    return AuditEntry(
        timestamp=m.timestamp,
        action=AuditAction(m.action),
        actor_id=m.actor_id,
        actor_role=ActorRole(m.actor_role),
        detail=m.detail,
        metadata=m.metadata_ or {},
    )


def _assignment_to_domain(m: AssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        reference=m.reference,
        category=WorkCategory(m.category),
        subject_location=Location(
            state=m.subject_state,
            district=m.subject_district,
            address=m.subject_address,
            pincode=m.subject_pincode,
        ),
        requester_location=Location(state=m.requester_state, district=m.requester_district),
        requester_id=m.requester_id,
        origin_hub_id=m.origin_hub_id,
        created_at=m.created_at,
        priority=Priority(m.priority),
        scope=Scope(m.scope),
        borrower_name=m.borrower_name,
        account_number=m.account_number,
        status=AssignmentStatus(m.status),
        assigned_fulfiller_id=m.assigned_fulfiller_id,
        allocated_at=m.allocated_at,
        completed_at=m.completed_at,
        closed_at=m.closed_at,
        due_at=m.due_at,
        documents=[_document_from_json(d) for d in m.documents or []],
        queries=[_query_from_json(q) for q in m.queries or []],
        audit_trail=[_audit_to_domain(e) for e in m.audit_entries],
        previous_fulfiller_ids=list(m.previous_fulfiller_ids or []),
        forfeit=_forfeit_from_json(m.forfeit),
        transfer_request=_transfer_from_json(m.transfer_request),
    )


def _apply_assignment(m: AssignmentModel, a: Assignment) -> None:
    """Copy every mutable column from the entity onto the row."""
    m.reference = a.reference
    m.category = a.category.value
    m.priority = a.priority.value
    m.scope = a.scope.value
    m.status = a.status.value
    m.subject_state = a.subject_location.state
    m.subject_district = a.subject_location.district
    m.subject_address = a.subject_location.address
    m.subject_pincode = a.subject_location.pincode
    m.requester_state = a.requester_location.state
    m.requester_district = a.requester_location.district
    m.requester_id = a.requester_id
    m.origin_hub_id = a.origin_hub_id
    m.assigned_fulfiller_id = a.assigned_fulfiller_id
    m.borrower_name = a.borrower_name
    m.account_number = a.account_number
    m.created_at = a.created_at
    m.allocated_at = a.allocated_at
    m.completed_at = a.completed_at
    m.closed_at = a.closed_at
    m.due_at = a.due_at
    m.documents = [_document_to_json(d) for d in a.documents]
    m.queries = [_query_to_json(q) for q in a.queries]
    m.previous_fulfiller_ids = list(a.previous_fulfiller_ids)
    m.forfeit = _forfeit_to_json(a.forfeit)
    m.transfer_request = _transfer_to_json(a.transfer_request)


# ─── Repositories ────────────────────────────────────────────────────


class SqlAssignmentRepository(AssignmentRepository):
    """Assignments plus their append-only audit rows.

    save() flushes but never commits. The use case commits through its
    commit hook while it still holds the assignment lock, so one
    operation's effects land together and a concurrent writer never reads
    the row before they do.
    """

    def __init__(self, session: AsyncSession):
        self._s = session

    def _select(self):
        return (
            select(AssignmentModel)
            .options(selectinload(AssignmentModel.audit_entries))
            .execution_options(populate_existing=True)
        )

    async def save(self, assignment: Assignment) -> Assignment:
        m = await self._s.get(AssignmentModel, assignment.id)
        if m is None:
            m = AssignmentModel(id=assignment.id)
            self._s.add(m)
        _apply_assignment(m, assignment)

        persisted = await self._s.scalar(
            select(func.count(AuditEntryModel.seq)).where(
                AuditEntryModel.assignment_id == assignment.id
            )
        ) or 0
        # Audit rows are never updated; only the tail that is new gets inserted
        for position, entry in enumerate(assignment.audit_trail[persisted:], start=persisted):
            self._s.add(AuditEntryModel(
                assignment_id=assignment.id,
                position=position,
                timestamp=entry.timestamp,
                action=entry.action.value,
                actor_id=entry.actor_id,
                actor_role=entry.actor_role.value,
                detail=entry.detail,
                metadata_=dict(entry.metadata),
            ))
        await self._s.flush()
        return assignment

    async def get_by_id(self, assignment_id: str) -> Assignment | None:
        result = await self._s.execute(
            self._select().where(AssignmentModel.id == assignment_id)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def get_all(self) -> list[Assignment]:
        return await self._fetch()

    async def get_by_statuses(self, statuses: Iterable[AssignmentStatus]) -> list[Assignment]:
        values = [s.value for s in statuses]
        return await self._fetch(AssignmentModel.status.in_(values))

    async def get_by_fulfiller(self, fulfiller_id: str) -> list[Assignment]:
        return await self._fetch(AssignmentModel.assigned_fulfiller_id == fulfiller_id)

    async def get_by_hub(self, hub_id: str) -> list[Assignment]:
        return await self._fetch(AssignmentModel.origin_hub_id == hub_id)

    async def _fetch(self, *criteria) -> list[Assignment]:
        result = await self._s.execute(
            self._select()
            .where(*criteria)
            .order_by(AssignmentModel.created_at, AssignmentModel.id)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def search(self, term: str) -> list[Assignment]:
        q = term.strip().upper()
        if not q:
            return []
        return await self._fetch(or_(
            func.upper(AssignmentModel.account_number) == q,
            func.upper(AssignmentModel.reference) == q,
            func.upper(AssignmentModel.borrower_name).contains(q, autoescape=True),
        ))

    async def next_reference_number(self) -> int:
        result = await self._s.execute(select(assignment_reference_seq.next_value()))
        return int(result.scalar_one())


class SqlFulfillerRepository(FulfillerRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, fulfiller: Fulfiller) -> Fulfiller:
        m = await self._s.get(FulfillerModel, fulfiller.id)
        if m is None:
            m = FulfillerModel(id=fulfiller.id)
            self._s.add(m)
        m.name = fulfiller.name
        m.firm_name = fulfiller.firm_name
        m.email = fulfiller.email
        m.states = sorted(fulfiller.states)
        m.districts = sorted(fulfiller.districts)
        m.specializations = sorted(s.value for s in fulfiller.specializations)
        m.tags = sorted(fulfiller.tags)
        m.home_hub_id = fulfiller.home_hub_id
        await self._s.flush()
        return fulfiller

    async def get_by_id(self, fulfiller_id: str) -> Fulfiller | None:
        m = await self._s.get(FulfillerModel, fulfiller_id)
        return _fulfiller_to_domain(m) if m else None

    async def get_all(self) -> list[Fulfiller]:
        result = await self._s.execute(select(FulfillerModel).order_by(FulfillerModel.id))
        return [_fulfiller_to_domain(m) for m in result.scalars()]

    async def get_by_hub(self, hub_id: str) -> list[Fulfiller]:
        result = await self._s.execute(
            select(FulfillerModel)
            .where(FulfillerModel.home_hub_id == hub_id)
            .order_by(FulfillerModel.id)
        )
        return [_fulfiller_to_domain(m) for m in result.scalars()]

    async def delete(self, fulfiller_id: str) -> None:
        await self._s.execute(delete(FulfillerModel).where(FulfillerModel.id == fulfiller_id))
        await self._s.flush()


class SqlHubRepository(HubRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, hub: Hub) -> Hub:
        m = await self._s.get(HubModel, hub.id)
        if m is None:
            m = HubModel(id=hub.id)
            self._s.add(m)
        m.code = hub.code
        m.name = hub.name
        m.state = hub.state
        m.district = hub.district
        m.email = hub.email
        await self._s.flush()
        return hub

    async def get_by_id(self, hub_id: str) -> Hub | None:
        m = await self._s.get(HubModel, hub_id)
        return _hub_to_domain(m) if m else None

    async def get_by_code(self, code: str) -> Hub | None:
        result = await self._s.execute(select(HubModel).where(HubModel.code == code))
        m = result.scalar_one_or_none()
        return _hub_to_domain(m) if m else None

    async def get_all(self) -> list[Hub]:
        result = await self._s.execute(select(HubModel).order_by(HubModel.code))
        return [_hub_to_domain(m) for m in result.scalars()]

    async def delete(self, hub_id: str) -> None:
        await self._s.execute(delete(HubModel).where(HubModel.id == hub_id))
        await self._s.flush()
