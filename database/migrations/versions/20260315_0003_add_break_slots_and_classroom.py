"""add per-day break slots and schedule classroom

Revision ID: 20260315_0003
Revises: 20260301_0002
Create Date: 2026-03-15 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20260315_0003"
down_revision = "20260301_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "schedule_configs",
        sa.Column("break_slots", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    )
    op.add_column("schedules", sa.Column("classroom", sa.String(length=100), nullable=True))


def downgrade() -> None:
    op.drop_column("schedules", "classroom")
    op.drop_column("schedule_configs", "break_slots")
