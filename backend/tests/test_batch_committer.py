from types import SimpleNamespace

import pytest

from app.core.exceptions import CommitError, ResourceNotFoundError, SessionLockedError
from app.schemas.schedule import ScheduleOut
from app.schemas.schedule_config import DEFAULT_SCHEDULE_CONFIG
from app.services.batch_committer import BatchCommitter
from app.services.edit_session import EditSession, SessionState

ASSIGNMENTS = [
    SimpleNamespace(id=7, teacher_id=11, section_id=1, course_name="Matemática"),
    SimpleNamespace(id=9, teacher_id=12, section_id=1, course_name="Comunicación"),
]
TEACHERS = {item.id: item.teacher_id for item in ASSIGNMENTS}


class FakeScheduleRepository:
    """Keeps rows in a dict and enforces one schedule per (section, day, start)."""

    def __init__(self, rows, fail_on=None, fail_once=None):
        self.rows = {row.id: row for row in rows}
        self.next_id = max(self.rows, default=0) + 1
        self.fail_on = fail_on
        # (action, nth call of that action) that raises a single time
        self.fail_once = fail_once
        self.calls = []

    def _record(self, action):
        self.calls.append(action)
        if self.fail_on == action:
            raise RuntimeError("database unavailable")
        if self.fail_once == (action, self.calls.count(action)):
            self.fail_once = None
            raise RuntimeError("connection reset")

    def _check_free(self, section_id, day, start, ignore_id=None):
        for row in self.rows.values():
            if row.id == ignore_id:
                continue
            if (row.section_id, row.day_of_week, row.start_time) == (section_id, day, start):
                raise RuntimeError("UNIQUE constraint failed: schedules.section_id, day_of_week, start_time")

    def list_for_section(self, section_id):
        self.calls.append("list")
        rows = [row for row in self.rows.values() if row.section_id == section_id]
        return sorted(rows, key=lambda row: (row.day_of_week, row.start_time))

    def create_schedules(self, requests):
        self._record("create")
        created = []
        for request in requests:
            self._check_free(1, request.day_of_week, request.start_time)
            row = ScheduleOut(id=self.next_id, teacher_id=TEACHERS[request.course_assignment_id], section_id=1, **request.model_dump())
            self.rows[row.id] = row
            self.next_id += 1
            created.append(row)
        return created

    def update_schedule(self, request):
        self._record("update")
        self._check_free(1, request.day_of_week, request.start_time, ignore_id=request.id)
        row = self.rows[request.id].model_copy(update=request.model_dump())
        self.rows[row.id] = row
        return row

    def delete_schedule(self, request):
        self._record("delete")
        if request.id not in self.rows:
            raise ResourceNotFoundError("Schedule", str(request.id))
        del self.rows[request.id]


def _persisted(schedule_id, day, start, end, assignment_id=7):
    return ScheduleOut(
        id=schedule_id,
        course_assignment_id=assignment_id,
        teacher_id=TEACHERS[assignment_id],
        section_id=1,
        day_of_week=day,
        start_time=start,
        end_time=end,
    )


@pytest.fixture
def persisted():
    return [_persisted(1, 1, "07:00", "07:45"), _persisted(2, 1, "07:45", "08:30", assignment_id=9)]


def _session(persisted):
    return EditSession(1, config=DEFAULT_SCHEDULE_CONFIG, assignments=ASSIGNMENTS, persisted=persisted)


def test_commit_runs_deletes_updates_then_creates(persisted):
    repository = FakeScheduleRepository(persisted)
    session = _session(persisted)
    session.drop(7, 2, "07:00")
    session.remove(1)
    session.move(2, 1, "07:00")

    result = BatchCommitter(repository).commit(session)

    assert repository.calls == ["delete", "update", "create", "list"]
    assert (len(result.deleted), len(result.updated), len(result.created)) == (1, 1, 1)
    assert result.counts.total == 3
    assert session.state == SessionState.clean
    assert session.temp_schedules == ()
    assert session.committing is False
    assert [(row.day_of_week, row.start_time) for row in session.persisted] == [(1, "07:00"), (2, "07:00")]
    assert session.index.cells_for(2, "07:00")[0].id == result.created[0].id


def test_creates_are_sent_as_one_batch(persisted):
    repository = FakeScheduleRepository(persisted)
    session = _session(persisted)
    session.drop(7, 3, "07:00")
    session.drop(9, 3, "07:45")
    session.drop(7, 4, "07:00")

    result = BatchCommitter(repository).commit(session)

    assert repository.calls.count("create") == 1
    assert len(result.created) == 3


def test_failed_partition_stays_pending(persisted):
    repository = FakeScheduleRepository(persisted, fail_on="create")
    session = _session(persisted)
    temp = session.drop(9, 2, "07:00")
    session.remove(1)

    with pytest.raises(CommitError) as exc_info:
        BatchCommitter(repository).commit(session)

    error = exc_info.value
    assert error.failed_action == "create"
    assert error.details["committed"]["deleted"] == 1
    assert error.details["pending"] == {"created": 1, "updated": 0, "deleted": 0, "total": 1}
    assert session.state == SessionState.dirty
    assert session.temp_schedules == (temp,)
    assert [row.id for row in session.persisted] == [2]
    assert session.committing is False
    assert 1 not in repository.rows


def test_retry_after_failure_commits_the_rest(persisted):
    repository = FakeScheduleRepository(persisted, fail_on="create")
    session = _session(persisted)
    session.drop(9, 2, "07:00")
    with pytest.raises(CommitError):
        BatchCommitter(repository).commit(session)

    repository.fail_on = None
    result = BatchCommitter(repository).commit(session)

    assert len(result.created) == 1
    assert session.state == SessionState.clean


def test_unique_violation_surfaces_as_commit_error(persisted):
    repository = FakeScheduleRepository(persisted)
    session = _session(persisted)
    session.drop(9, 2, "07:00")
    repository.rows[50] = _persisted(50, 2, "07:00", "07:45")

    with pytest.raises(CommitError) as exc_info:
        BatchCommitter(repository).commit(session)

    assert "UNIQUE" in exc_info.value.message
    assert session.counts().created == 1


def test_empty_ledger_commit_is_a_no_op(persisted):
    repository = FakeScheduleRepository(persisted)

    result = BatchCommitter(repository).commit(_session(persisted))

    assert result.counts.total == 0
    assert repository.calls == []


def test_concurrent_commit_is_refused(persisted):
    session = _session(persisted)
    session.drop(7, 2, "07:00")
    session.begin_commit()

    with pytest.raises(SessionLockedError):
        BatchCommitter(FakeScheduleRepository(persisted)).commit(session)
    assert session.committing is True


def test_partial_delete_failure_can_be_retried(persisted):
    rows = [*persisted, _persisted(3, 1, "08:30", "09:15")]
    repository = FakeScheduleRepository(rows, fail_once=("delete", 2))
    session = _session(rows)
    session.remove(1)
    session.remove(2)

    with pytest.raises(CommitError) as exc_info:
        BatchCommitter(repository).commit(session)

    error = exc_info.value
    assert error.message.startswith("Failed to delete 1 schedule(s)")
    assert error.details["committed"]["deleted"] == 1
    assert error.details["pending"] == {"created": 0, "updated": 0, "deleted": 1, "total": 1}
    assert 1 not in repository.rows
    assert [row.id for row in session.persisted] == [2, 3]

    result = BatchCommitter(repository).commit(session)

    assert result.deleted == [2]
    assert sorted(repository.rows) == [3]
    assert session.state == SessionState.clean


def test_delete_of_a_row_already_gone_counts_as_done(persisted):
    repository = FakeScheduleRepository(persisted)
    session = _session(persisted)
    session.remove(1)
    del repository.rows[1]

    result = BatchCommitter(repository).commit(session)

    assert result.deleted == [1]
    assert session.state == SessionState.clean


def test_update_waits_for_the_row_leaving_its_target(persisted):
    repository = FakeScheduleRepository(persisted)
    session = _session(persisted)
    session.move(1, 1, "09:15")
    session.move(2, 1, "08:30")
    session.move(1, 1, "07:45")

    result = BatchCommitter(repository).commit(session)

    assert [row.id for row in result.updated] == [2, 1]
    assert repository.calls == ["update", "update", "list"]
    assert (repository.rows[1].start_time, repository.rows[2].start_time) == ("07:45", "08:30")
    assert session.state == SessionState.clean


def test_swapped_rows_commit_through_a_parking_cell(persisted):
    repository = FakeScheduleRepository(persisted)
    session = _session(persisted)
    session.move(1, 1, "09:15")
    session.move(2, 1, "07:00")
    session.move(1, 1, "07:45")

    result = BatchCommitter(repository).commit(session)

    assert [row.id for row in result.updated] == [2, 1]
    assert repository.calls == ["update", "update", "update", "list"]
    assert (repository.rows[1].start_time, repository.rows[1].end_time) == ("07:45", "08:30")
    assert (repository.rows[2].start_time, repository.rows[2].end_time) == ("07:00", "07:45")
    assert [(row.id, row.start_time) for row in session.persisted] == [(2, "07:00"), (1, "07:45")]
    assert session.state == SessionState.clean


def test_failed_update_after_parking_keeps_the_move_pending(persisted):
    repository = FakeScheduleRepository(persisted, fail_once=("update", 2))
    session = _session(persisted)
    session.move(1, 1, "09:15")
    session.move(2, 1, "07:00")
    session.move(1, 1, "07:45")

    with pytest.raises(CommitError):
        BatchCommitter(repository).commit(session)

    assert repository.rows[1].start_time == "00:00"
    assert session.counts().updated == 2
    assert session.index.cells_for(1, "07:45")[0].id == 1

    BatchCommitter(repository).commit(session)

    assert (repository.rows[1].start_time, repository.rows[2].start_time) == ("07:45", "07:00")
    assert session.state == SessionState.clean
