"""Requester ownership — unclaimed assignments and pending transfer requests.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.alter_column("assignments", "requester_id", existing_type=sa.String(64), nullable=True)
    op.add_column("assignments", sa.Column("transfer_request", JSONB, nullable=True))
    op.create_index("idx_assignments_account", "assignments", ["account_number"])


def downgrade() -> None:
    op.drop_index("idx_assignments_account", table_name="assignments")
    op.drop_column("assignments", "transfer_request")
    # Unclaimed rows have no owner to restore
    op.execute("UPDATE assignments SET requester_id = 'unclaimed' WHERE requester_id IS NULL")
    op.alter_column("assignments", "requester_id", existing_type=sa.String(64), nullable=False)
