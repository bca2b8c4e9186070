"""Assignment endpoints — intake, read views and lifecycle actions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from titleflow.application.services.audit_log import AuditLog
from titleflow.application.use_cases.intake import AssignmentIntake
from titleflow.application.use_cases.workflow import WorkflowUseCase
from titleflow.domain.errors import NotFound
from titleflow.domain.value_objects.enums import AssignmentStatus
from titleflow.domain.value_objects.location import Actor
from titleflow.infrastructure.api.dependencies import (
    Repositories,
    get_actor,
    get_audit_log,
    get_intake_uc,
    get_repositories,
    get_workflow_uc,
)
from titleflow.infrastructure.api.schemas import (
    AssignmentCreate,
    DocumentIn,
    ForfeitIn,
    QueryIn,
    QueryResponseIn,
    ReasonIn,
    TransferDecisionIn,
    serialize_assignment,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    body: AssignmentCreate,
    intake: AssignmentIntake = Depends(get_intake_uc),
    repos: Repositories = Depends(get_repositories),
    actor: Actor = Depends(get_actor),
):
    assignment = await intake.create(
        category=body.category,
        subject_location=body.subject_location.to_domain(),
        requester_location=body.requester_location.to_domain(),
        origin_hub_id=body.origin_hub_id,
        actor=actor,
        priority=body.priority,
        scope=body.scope,
        borrower_name=body.borrower_name,
        account_number=body.account_number,
    )
    await repos.commit()
    return serialize_assignment(assignment)


@router.get("")
async def list_assignments(
    status_filter: list[AssignmentStatus] | None = Query(default=None, alias="status"),
    fulfiller_id: str | None = None,
    repos: Repositories = Depends(get_repositories),
):
    """List assignments, optionally filtered by status and/or fulfiller."""
    if status_filter:
        assignments = await repos.assignments.get_by_statuses(status_filter)
    else:
        assignments = await repos.assignments.get_all()
    if fulfiller_id:
        assignments = [a for a in assignments if a.assigned_fulfiller_id == fulfiller_id]

    return {
        "total": len(assignments),
        "assignments": [serialize_assignment(a) for a in assignments],
    }


@router.get("/search")
async def search_assignments(q: str = "", repos: Repositories = Depends(get_repositories)):
    """Exact account number or reference, or part of the borrower name."""
    assignments = await repos.assignments.search(q)
    return {
        "total": len(assignments),
        "assignments": [serialize_assignment(a) for a in assignments],
    }


@router.get("/{assignment_id}")
async def get_assignment(assignment_id: str, repos: Repositories = Depends(get_repositories)):
    assignment = await repos.assignments.get_by_id(assignment_id)
    if assignment is None:
        raise NotFound("Assignment", assignment_id)
    return serialize_assignment(assignment, with_history=True)


@router.get("/{assignment_id}/history")
async def get_history(assignment_id: str, audit: AuditLog = Depends(get_audit_log)):
    entries = await audit.history(assignment_id)
    return {"assignment_id": assignment_id, "entries": [e.to_dict() for e in entries]}


# ── Lifecycle actions ───────────────────────────────────────────────


@router.post("/{assignment_id}/documents")
async def add_document(
    assignment_id: str,
    body: DocumentIn,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.add_document(
        assignment_id, body.name, body.category, actor, size=body.size
    )
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/start")
async def start_work(
    assignment_id: str,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.upload_triggers_progress(assignment_id, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/queries")
async def raise_query(
    assignment_id: str,
    body: QueryIn,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.raise_query(
        assignment_id, body.text, actor, directed_to=body.directed_to
    )
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/queries/{query_id}/response")
async def respond_to_query(
    assignment_id: str,
    query_id: str,
    body: QueryResponseIn,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.respond_to_query(assignment_id, query_id, body.response, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/complete")
async def mark_complete(
    assignment_id: str,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.mark_complete(assignment_id, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/submit")
async def submit_for_review(
    assignment_id: str,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.submit_for_review(assignment_id, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/rework")
async def request_rework(
    assignment_id: str,
    body: ReasonIn,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.request_rework(assignment_id, body.reason, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/close")
async def close_assignment(
    assignment_id: str,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.close(assignment_id, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/forfeit")
async def forfeit(
    assignment_id: str,
    body: ForfeitIn,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.forfeit(assignment_id, body.reason, body.details, actor)
    return serialize_assignment(assignment)


# ── Requester ownership ─────────────────────────────────────────────


@router.post("/{assignment_id}/claim")
async def claim(
    assignment_id: str,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.claim(assignment_id, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/transfer-request")
async def request_transfer(
    assignment_id: str,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.request_transfer(assignment_id, actor)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/transfer-request/resolve")
async def resolve_transfer(
    assignment_id: str,
    body: TransferDecisionIn,
    workflow: WorkflowUseCase = Depends(get_workflow_uc),
    actor: Actor = Depends(get_actor),
):
    assignment = await workflow.resolve_transfer(assignment_id, body.approved, actor)
    return serialize_assignment(assignment)
