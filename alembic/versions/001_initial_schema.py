"""Initial schema — hubs, fulfillers, assignments, audit entries.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.schema.CreateSequence(sa.Sequence("assignment_reference_seq", start=1)))

    # Hubs
    op.create_table(
        "hubs",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("code", sa.String(50), unique=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("district", sa.String(100), nullable=False),
        sa.Column("email", sa.String(200), nullable=True),
    )

    # Fulfillers
    op.create_table(
        "fulfillers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("firm_name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("states", ARRAY(sa.String(100)), nullable=False, server_default="{}"),
        sa.Column("districts", ARRAY(sa.String(100)), nullable=False, server_default="{}"),
        sa.Column("specializations", ARRAY(sa.String(50)), nullable=False, server_default="{}"),
        sa.Column("tags", ARRAY(sa.String(100)), nullable=False, server_default="{}"),
        sa.Column("home_hub_id", sa.String(64), sa.ForeignKey("hubs.id"), nullable=True),
    )
    op.create_index("idx_fulfillers_home_hub", "fulfillers", ["home_hub_id"])

    # Assignments
    op.create_table(
        "assignments",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("reference", sa.String(50), unique=True, nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("scope", sa.String(10), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("subject_state", sa.String(100), nullable=False),
        sa.Column("subject_district", sa.String(100), nullable=False),
        sa.Column("subject_address", sa.Text, nullable=True),
        sa.Column("subject_pincode", sa.String(10), nullable=True),
        sa.Column("requester_state", sa.String(100), nullable=False),
        sa.Column("requester_district", sa.String(100), nullable=False),
        sa.Column("requester_id", sa.String(64), nullable=False),
        sa.Column("origin_hub_id", sa.String(64), sa.ForeignKey("hubs.id"), nullable=False),
        sa.Column(
            "assigned_fulfiller_id", sa.String(64), sa.ForeignKey("fulfillers.id"), nullable=True
        ),
        sa.Column("borrower_name", sa.String(200), nullable=True),
        sa.Column("account_number", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("allocated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("documents", JSONB, nullable=False, server_default="[]"),
        sa.Column("queries", JSONB, nullable=False, server_default="[]"),
        sa.Column("previous_fulfiller_ids", JSONB, nullable=False, server_default="[]"),
        sa.Column("forfeit", JSONB, nullable=True),
    )
    op.create_index("idx_assignments_status", "assignments", ["status", "created_at"])
    op.create_index("idx_assignments_fulfiller", "assignments", ["assigned_fulfiller_id"])
    op.create_index("idx_assignments_hub", "assignments", ["origin_hub_id"])

    # Audit entries (append-only)
    op.create_table(
        "audit_entries",
        sa.Column("seq", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "assignment_id",
            sa.String(64),
            sa.ForeignKey("assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("actor_role", sa.String(20), nullable=False),
        sa.Column("detail", sa.Text, nullable=False),
        sa.Column("metadata", JSONB, nullable=False, server_default="{}"),
    )
    op.create_index(
        "idx_audit_assignment_position", "audit_entries", ["assignment_id", "position"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_table("audit_entries")
    op.drop_table("assignments")
    op.drop_table("fulfillers")
    op.drop_table("hubs")
    op.execute(sa.schema.DropSequence(sa.Sequence("assignment_reference_seq")))
