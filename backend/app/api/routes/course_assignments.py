from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.schedule import CourseAssignmentOut
from app.services.schedule_store import list_course_assignments

router = APIRouter()


@router.get("/sections/{section_id}/course-assignments", response_model=list[CourseAssignmentOut])
def list_section_assignments(section_id: int, db: Session = Depends(get_db)) -> list[CourseAssignmentOut]:
    return list_course_assignments(db, section_id)
