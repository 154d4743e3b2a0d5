import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from app.db import bootstrap


def _raise_error(message: str):
    raise RuntimeError(message)


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "_ensure_schedules_classroom_column", lambda engine: None)
    monkeypatch.setattr(bootstrap, "_ensure_schedule_config_break_slots_column", lambda engine: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda engine: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Runtime schema compatibility bootstrap failed"):
        bootstrap.ensure_runtime_schema_compatibility()


def test_bootstrap_patches_legacy_tables():
    engine = create_engine("sqlite+pysqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE schedule_configs (id INTEGER PRIMARY KEY, section_id INTEGER NOT NULL, "
                "working_days JSON NOT NULL, start_time VARCHAR(5) NOT NULL, end_time VARCHAR(5) NOT NULL, "
                "class_duration INTEGER NOT NULL, created_at DATETIME, updated_at DATETIME)"
            )
        )
        connection.execute(
            text(
                "CREATE TABLE schedules (id INTEGER PRIMARY KEY, course_assignment_id INTEGER NOT NULL, "
                "teacher_id INTEGER NOT NULL, section_id INTEGER NOT NULL, day_of_week INTEGER NOT NULL, "
                "start_time VARCHAR(5) NOT NULL, end_time VARCHAR(5) NOT NULL, created_at DATETIME, updated_at DATETIME)"
            )
        )

    bootstrap.ensure_runtime_schema_compatibility(engine)

    inspector = inspect(engine)
    assert "classroom" in {column["name"] for column in inspector.get_columns("schedules")}
    assert "break_slots" in {column["name"] for column in inspector.get_columns("schedule_configs")}
    assert "course_assignments" in inspector.get_table_names()
