"""create leave_record and leave_policy

Revision ID: 0001
Revises:
Create Date: 2025-05-01 00:00:00

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "leave_policy",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("quota_type", sa.String(length=50), nullable=False),
        sa.Column("working_days", sa.JSON(), nullable=False),
        sa.Column("allocations", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", name="uq_leave_policy_tenant"),
    )
    op.create_index("ix_leave_policy_tenant_id", "leave_policy", ["tenant_id"])

    op.create_table(
        "leave_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("person_id", sa.String(length=255), nullable=True),
        sa.Column("person_name", sa.String(length=255), nullable=True),
        sa.Column("job_level", sa.String(length=255), nullable=True),
        sa.Column("leave_type", sa.String(length=100), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("comments", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=50), server_default="DRAFT", nullable=False),
        sa.Column("days", sa.Integer(), nullable=True),
        sa.Column("allocation_total", sa.Integer(), nullable=True),
        sa.Column("allocation_used", sa.Integer(), nullable=True),
        sa.Column("balance", sa.Integer(), nullable=True),
        sa.Column("limit_reached", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("registered_date", sa.String(length=50), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leave_record_tenant_id", "leave_record", ["tenant_id"])
    op.create_index("ix_leave_record_status", "leave_record", ["status"])
    op.create_index("ix_leave_tenant_person_start", "leave_record", ["tenant_id", "person_id", "start_date"])
    op.create_index("ix_leave_tenant_status", "leave_record", ["tenant_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_leave_tenant_status", table_name="leave_record")
    op.drop_index("ix_leave_tenant_person_start", table_name="leave_record")
    op.drop_index("ix_leave_record_status", table_name="leave_record")
    op.drop_index("ix_leave_record_tenant_id", table_name="leave_record")
    op.drop_table("leave_record")
    op.drop_index("ix_leave_policy_tenant_id", table_name="leave_policy")
    op.drop_table("leave_policy")
