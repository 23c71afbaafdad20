"""single active timer and query indexes

Revision ID: 8e52d4b6c0a1
Revises: 3c1f0a7d9b24
Create Date: 2026-09-03 15:42:08.907215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8e52d4b6c0a1'
down_revision: Union[str, Sequence[str], None] = '3c1f0a7d9b24'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_index(
        "uq_timer_sessions_active_user",
        "timer_sessions",
        ["tenant_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active"),
    )
    op.create_index("ix_time_entries_tenant_status", "time_entries", ["tenant_id", "status"])
    op.create_index("ix_time_entries_tenant_start_time", "time_entries", ["tenant_id", "start_time"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_time_entries_tenant_start_time", table_name="time_entries")
    op.drop_index("ix_time_entries_tenant_status", table_name="time_entries")
    op.drop_index("uq_timer_sessions_active_user", table_name="timer_sessions")
