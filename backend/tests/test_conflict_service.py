from types import SimpleNamespace

import pytest

from app.schemas.schedule import ScheduleOut
from app.schemas.schedule_config import TimeSlot
from app.services.conflict_service import (
    ASSIGNMENT_NOT_FOUND,
    DUPLICATE_PLACEMENT,
    SLOT_NOT_BOOKABLE,
    ConflictEngine,
    check_drop,
)
from app.services.grid_index import ScheduleGridIndex

SLOT = TimeSlot(start="07:00", end="07:45", label="07:00 - 07:45")


@pytest.fixture
def assignments():
    return {
        7: SimpleNamespace(id=7, teacher_id=11, section_id=1, course_name="Matemática"),
        9: SimpleNamespace(id=9, teacher_id=12, section_id=1, course_name="Comunicación"),
    }


@pytest.fixture
def occupied_index():
    existing = ScheduleOut(
        id=1,
        course_assignment_id=7,
        teacher_id=11,
        section_id=1,
        day_of_week=2,
        start_time="07:00",
        end_time="07:45",
    )
    return ScheduleGridIndex.build([existing], [], [])


def test_unknown_assignment_is_rejected(assignments):
    decision = check_drop(42, 2, SLOT, ScheduleGridIndex.empty(), assignments=assignments, section_id=1)

    assert decision.status == "rejected"
    assert decision.reason == ASSIGNMENT_NOT_FOUND


def test_missing_section_skips(assignments):
    decision = check_drop(7, 2, SLOT, ScheduleGridIndex.empty(), assignments=assignments, section_id=None)

    assert decision.status == "skipped"
    assert not decision.ok


def test_break_and_non_working_day_are_not_bookable(assignments):
    engine = ConflictEngine(assignments, working_days=[1, 2, 3, 4, 5])
    recess = TimeSlot(start="10:00", end="10:15", label="RECREO", is_break=True)

    assert engine.check_drop(7, 1, recess, ScheduleGridIndex.empty(), 1).reason == SLOT_NOT_BOOKABLE
    assert engine.check_drop(7, 6, SLOT, ScheduleGridIndex.empty(), 1).reason == SLOT_NOT_BOOKABLE


def test_occupied_cell_names_the_occupant(assignments, occupied_index):
    decision = check_drop(9, 2, SLOT, occupied_index, assignments=assignments, section_id=1)

    assert decision.status == "rejected"
    assert decision.reason == "slot occupied by Matemática"


def test_free_cell_is_accepted(assignments, occupied_index):
    decision = check_drop(9, 3, SLOT, occupied_index, assignments=assignments, section_id=1)

    assert decision.ok


def test_move_ignores_the_moving_schedule(assignments, occupied_index):
    engine = ConflictEngine(assignments)
    entry = occupied_index.find(1)

    assert engine.check_move(entry, 2, SLOT, occupied_index, 1).ok
    assert engine.check_drop(9, 2, SLOT, occupied_index, 1).ok is False


def test_same_course_in_the_cell_is_a_duplicate_placement(assignments, occupied_index):
    decision = check_drop(7, 2, SLOT, occupied_index, assignments=assignments, section_id=1)

    assert decision.status == "rejected"
    assert decision.reason == DUPLICATE_PLACEMENT


def test_other_course_in_the_cell_wins_over_duplicate(assignments):
    rows = [
        ScheduleOut(id=1, course_assignment_id=7, teacher_id=11, section_id=1, day_of_week=2, start_time="07:00", end_time="07:45"),
        ScheduleOut(id=2, course_assignment_id=9, teacher_id=12, section_id=1, day_of_week=2, start_time="07:00", end_time="07:45"),
    ]
    index = ScheduleGridIndex.build(rows, [], [])

    decision = check_drop(7, 2, SLOT, index, assignments=assignments, section_id=1)

    assert decision.reason == "slot occupied by Comunicación"
