"""add row versions to users and tasks"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0004_add_row_versions"
down_revision = "0003_add_task_ledger"
branch_labels = None
depends_on = None


def upgrade() -> None:
    for table in ("users", "tasks"):
        op.add_column(
            table,
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        )


def downgrade() -> None:
    for table in ("tasks", "users"):
        op.drop_column(table, "version")
