"""create time tracking tables

Revision ID: 3c1f0a7d9b24
Revises:
Create Date: 2026-09-02 10:14:27.311402

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a7d9b24'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "time_entries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default="billable"),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("rate_applied_cents", sa.Integer(), nullable=True),
        sa.Column("rate_source", sa.String(), nullable=False, server_default="unresolved"),
        sa.Column("billable_amount_cents", sa.Integer(), nullable=True),
        sa.Column("is_billed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("billed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("duration_seconds >= 0", name="ck_time_entries_duration_nonnegative"),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_time_entries_status",
        ),
        sa.CheckConstraint("type IN ('billable', 'non_billable')", name="ck_time_entries_type"),
        sa.CheckConstraint(
            "billable_amount_cents IS NULL OR billable_amount_cents >= 0",
            name="ck_time_entries_billable_amount_nonnegative",
        ),
    )
    op.create_index("ix_time_entries_id", "time_entries", ["id"])
    op.create_index("ix_time_entries_tenant_id", "time_entries", ["tenant_id"])
    op.create_index("ix_time_entries_user_id", "time_entries", ["user_id"])
    op.create_index("ix_time_entries_client_id", "time_entries", ["client_id"])
    op.create_index("ix_time_entries_project_id", "time_entries", ["project_id"])
    op.create_index("ix_time_entries_task_id", "time_entries", ["task_id"])

    op.create_table(
        "timer_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("stopped_at", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("time_entry_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_timer_sessions_id", "timer_sessions", ["id"])
    op.create_index("ix_timer_sessions_tenant_id", "timer_sessions", ["tenant_id"])
    op.create_index("ix_timer_sessions_user_id", "timer_sessions", ["user_id"])

    for table, subject_column, subject_type in (
        ("staff_rates", "user_id", sa.String()),
        ("task_type_rates", "task_id", sa.Integer()),
        ("client_rates", "client_id", sa.Integer()),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column(subject_column, subject_type, nullable=False),
            sa.Column("hourly_rate_cents", sa.Integer(), nullable=False),
            sa.Column("effective_from", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint("hourly_rate_cents >= 0", name=f"ck_{table}_hourly_rate_nonnegative"),
        )
        op.create_index(f"ix_{table}_id", table, ["id"])
        op.create_index(f"ix_{table}_tenant_id", table, ["tenant_id"])
        op.create_index(f"ix_{table}_{subject_column}", table, [subject_column])

    op.create_table(
        "time_entry_comments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("time_entry_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_time_entry_comments_id", "time_entry_comments", ["id"])
    op.create_index("ix_time_entry_comments_time_entry_id", "time_entry_comments", ["time_entry_id"])
    op.create_index("ix_time_entry_comments_tenant_id", "time_entry_comments", ["tenant_id"])

    op.create_table(
        "time_entry_audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("time_entry_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("previous_status", sa.String(), nullable=True),
        sa.Column("new_status", sa.String(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_time_entry_audit_log_id", "time_entry_audit_log", ["id"])
    op.create_index("ix_time_entry_audit_log_time_entry_id", "time_entry_audit_log", ["time_entry_id"])
    op.create_index("ix_time_entry_audit_log_tenant_id", "time_entry_audit_log", ["tenant_id"])
    op.create_index("ix_time_entry_audit_log_action", "time_entry_audit_log", ["action"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("time_entry_audit_log")
    op.drop_table("time_entry_comments")
    op.drop_table("client_rates")
    op.drop_table("task_type_rates")
    op.drop_table("staff_rates")
    op.drop_table("timer_sessions")
    op.drop_table("time_entries")
