"""add task logs and notes"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_add_task_ledger"
down_revision = "0002_create_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    for table, body in (("task_logs", "description"), ("task_notes", "text")):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "task_id",
                sa.String(length=32),
                sa.ForeignKey("tasks.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("timestamp", sa.BigInteger(), nullable=False),
            sa.Column("user_email", sa.String(length=320), nullable=False),
            sa.Column(body, sa.Text(), nullable=False),
        )
        op.create_index(f"ix_{table}_task_id", table, ["task_id"], unique=False)
        op.create_index(f"ix_{table}_user_email", table, ["user_email"], unique=False)


def downgrade() -> None:
    for table in ("task_notes", "task_logs"):
        op.drop_index(f"ix_{table}_user_email", table_name=table)
        op.drop_index(f"ix_{table}_task_id", table_name=table)
        op.drop_table(table)
