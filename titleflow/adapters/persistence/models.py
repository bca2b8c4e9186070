"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Sequence,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from titleflow.adapters.persistence.database import Base

assignment_reference_seq = Sequence("assignment_reference_seq", start=1)


class HubModel(Base):
    __tablename__ = "hubs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    district: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)


class FulfillerModel(Base):
    __tablename__ = "fulfillers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    firm_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    states: Mapped[list[str]] = mapped_column(ARRAY(String(100)), nullable=False, default=list)
    districts: Mapped[list[str]] = mapped_column(ARRAY(String(100)), nullable=False, default=list)
    specializations: Mapped[list[str]] = mapped_column(
        ARRAY(String(50)), nullable=False, default=list
    )
    tags: Mapped[list[str]] = mapped_column(ARRAY(String(100)), nullable=False, default=list)
    home_hub_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("hubs.id"), nullable=True
    )

    __table_args__ = (Index("idx_fulfillers_home_hub", "home_hub_id"),)


class AssignmentModel(Base):
    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    reference: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    scope: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)

    subject_state: Mapped[str] = mapped_column(String(100), nullable=False)
    subject_district: Mapped[str] = mapped_column(String(100), nullable=False)
    subject_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    subject_pincode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    requester_state: Mapped[str] = mapped_column(String(100), nullable=False)
    requester_district: Mapped[str] = mapped_column(String(100), nullable=False)

    requester_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    origin_hub_id: Mapped[str] = mapped_column(String(64), ForeignKey("hubs.id"), nullable=False)
    assigned_fulfiller_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("fulfillers.id"), nullable=True
    )
    borrower_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    allocated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    documents: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    queries: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    previous_fulfiller_ids: Mapped[list[str]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    forfeit: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    transfer_request: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    audit_entries: Mapped[list["AuditEntryModel"]] = relationship(
        back_populates="assignment",
        order_by="AuditEntryModel.seq",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_assignments_status", "status", "created_at"),
        Index("idx_assignments_fulfiller", "assigned_fulfiller_id"),
        Index("idx_assignments_hub", "origin_hub_id"),
        Index("idx_assignments_account", "account_number"),
    )


class AuditEntryModel(Base):
    __tablename__ = "audit_entries"

    seq: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    assignment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )

    assignment: Mapped["AssignmentModel"] = relationship(back_populates="audit_entries")

    __table_args__ = (
        Index("idx_audit_assignment_position", "assignment_id", "position", unique=True),
    )
