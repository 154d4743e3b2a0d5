from __future__ import annotations

import logging

from sqlalchemy import Engine, inspect, text

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine as default_engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "schedule_configs": {
        "id",
        "section_id",
        "working_days",
        "start_time",
        "end_time",
        "class_duration",
        "break_slots",
    },
    "schedules": {
        "id",
        "course_assignment_id",
        "teacher_id",
        "section_id",
        "day_of_week",
        "start_time",
        "end_time",
        "classroom",
    },
    "course_assignments": {"id", "section_id", "course_id", "teacher_id", "course_name"},
}


def _ensure_schedules_classroom_column(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "schedules" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("schedules")}
        if "classroom" in column_names:
            return
        connection.execute(text("ALTER TABLE schedules ADD COLUMN classroom VARCHAR(100)"))


def _ensure_schedule_config_break_slots_column(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "schedule_configs" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("schedule_configs")}
        if "break_slots" in column_names:
            return

        if connection.dialect.name == "postgresql":
            connection.execute(
                text(
                    "ALTER TABLE schedule_configs "
                    "ADD COLUMN break_slots JSONB NOT NULL DEFAULT '{}'::jsonb"
                )
            )
            return

        connection.execute(
            text(
                "ALTER TABLE schedule_configs "
                "ADD COLUMN break_slots JSON NOT NULL DEFAULT '{}'"
            )
        )


def _assert_required_columns(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility(engine: Engine | None = None) -> None:
    bind = engine or default_engine
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=bind)
        _ensure_schedules_classroom_column(bind)
        _ensure_schedule_config_break_slots_column(bind)
        _assert_required_columns(bind)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
