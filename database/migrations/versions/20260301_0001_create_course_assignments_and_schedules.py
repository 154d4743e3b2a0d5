"""create course assignments and schedules

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


assignment_type = sa.Enum("titular", "apoyo", "temporal", "suplente", name="assignment_type")


def upgrade() -> None:
    op.create_table(
        "course_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("section_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.Integer(), nullable=False),
        sa.Column("assignment_type", assignment_type, nullable=False),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("course_code", sa.String(length=50), nullable=False),
        sa.Column("course_color", sa.String(length=20), nullable=True),
        sa.Column("teacher_name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_course_assignments_section_id", "course_assignments", ["section_id"])
    op.create_index("ix_course_assignments_teacher_id", "course_assignments", ["teacher_id"])

    op.create_table(
        "schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "course_assignment_id",
            sa.Integer(),
            sa.ForeignKey("course_assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("teacher_id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("section_id", "day_of_week", "start_time", name="uq_schedules_section_day_start"),
    )
    op.create_index("ix_schedules_course_assignment_id", "schedules", ["course_assignment_id"])
    op.create_index("ix_schedules_teacher_id", "schedules", ["teacher_id"])
    op.create_index("ix_schedules_section_id", "schedules", ["section_id"])


def downgrade() -> None:
    op.drop_index("ix_schedules_section_id", table_name="schedules")
    op.drop_index("ix_schedules_teacher_id", table_name="schedules")
    op.drop_index("ix_schedules_course_assignment_id", table_name="schedules")
    op.drop_table("schedules")
    op.drop_index("ix_course_assignments_teacher_id", table_name="course_assignments")
    op.drop_index("ix_course_assignments_section_id", table_name="course_assignments")
    op.drop_table("course_assignments")
    assignment_type.drop(op.get_bind(), checkfirst=True)
