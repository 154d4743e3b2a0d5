from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AssignmentType(str, Enum):
    titular = "titular"
    apoyo = "apoyo"
    temporal = "temporal"
    suplente = "suplente"


class CourseAssignment(Base):
    """A (teacher, course, section) triple that can be placed on the grid.

    Read-only for the scheduling core; course and teacher names are kept
    denormalized so the grid can label occupied cells without extra lookups.
    """

    __tablename__ = "course_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    course_id: Mapped[int] = mapped_column(Integer, nullable=False)
    teacher_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    assignment_type: Mapped[AssignmentType] = mapped_column(
        SAEnum(AssignmentType, name="assignment_type"), nullable=False, default=AssignmentType.titular
    )
    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_code: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    course_color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    teacher_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
