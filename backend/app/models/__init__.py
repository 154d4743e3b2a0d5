from app.models.course_assignment import AssignmentType, CourseAssignment  # noqa: F401
from app.models.schedule import Schedule  # noqa: F401
from app.models.schedule_config import ScheduleConfig  # noqa: F401
