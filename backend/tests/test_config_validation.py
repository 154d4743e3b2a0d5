from types import SimpleNamespace

import pytest

from app.core.exceptions import ConfigurationError
from app.schemas.schedule_config import DEFAULT_SCHEDULE_CONFIG, PRESET_CONFIGS, ScheduleConfigBase
from app.services.config_validation import (
    collect_config_errors,
    ensure_valid_config,
    suggest_valid_time_slot,
    validate_schedules_against_config,
)


def _schedule(schedule_id, day, start, end):
    return SimpleNamespace(id=schedule_id, day_of_week=day, start_time=start, end_time=end)


def test_default_and_preset_configs_are_valid():
    assert collect_config_errors(DEFAULT_SCHEDULE_CONFIG) == []
    for preset in PRESET_CONFIGS.values():
        assert collect_config_errors(preset.config) == [], preset.key


def test_errors_are_itemized():
    config = ScheduleConfigBase(
        working_days=[1, 2],
        start_time="07:00",
        end_time="12:00",
        class_duration=300,
        break_slots={
            1: [{"start": "06:30", "end": "07:15", "label": "RECREO"}],
            2: [
                {"start": "09:00", "end": "09:30", "label": "RECREO"},
                {"start": "09:15", "end": "09:45", "label": "ACTO"},
            ],
        },
    )

    errors = collect_config_errors(config)

    assert len(errors) == 3
    assert any("Class duration" in message for message in errors)
    assert any(message.startswith("Lunes:") and "outside working hours" in message for message in errors)
    assert any(message.startswith("Martes:") and "overlaps" in message for message in errors)


def test_ensure_valid_config_raises_with_all_errors():
    config = ScheduleConfigBase(working_days=[], start_time="10:00", end_time="09:00", class_duration=45)

    with pytest.raises(ConfigurationError) as exc_info:
        ensure_valid_config(config)

    assert exc_info.value.status_code == 422
    assert len(exc_info.value.errors) == 2
    assert exc_info.value.details == {"errors": exc_info.value.errors}


def test_invalid_day_number_is_rejected_by_schema():
    with pytest.raises(ValueError):
        ScheduleConfigBase(working_days=[0, 8], start_time="07:00", end_time="12:00", class_duration=45)


def test_impact_report_flags_schedules_broken_by_new_config():
    new_config = ScheduleConfigBase(
        working_days=[1, 2, 3, 4],
        start_time="08:00",
        end_time="13:00",
        class_duration=45,
        break_slots={day: [{"start": "10:15", "end": "10:30", "label": "RECREO"}] for day in (1, 2, 3, 4)},
    )
    schedules = [
        _schedule(1, 1, "08:00", "08:45"),
        _schedule(2, 5, "08:00", "08:45"),
        _schedule(3, 2, "07:00", "07:45"),
        _schedule(4, 3, "08:00", "08:50"),
        _schedule(5, 4, "10:00", "10:45"),
    ]

    report = validate_schedules_against_config(schedules, DEFAULT_SCHEDULE_CONFIG, new_config)

    assert report.is_valid is False
    assert report.config_errors == []
    codes = {issue.schedule_id: issue.code for issue in report.issues}
    assert codes == {
        2: "outside_working_days",
        3: "outside_time_range",
        4: "invalid_duration",
        5: "overlaps_break",
    }
    assert report.changes.working_days_changed is True
    assert report.changes.start_time_changed is True
    assert report.changes.duration_changed is False
    outside_day = next(issue for issue in report.issues if issue.schedule_id == 2)
    assert (outside_day.suggested_start_time, outside_day.suggested_end_time) == ("08:00", "08:45")


def test_impact_report_with_invalid_config_skips_schedule_checks():
    broken = DEFAULT_SCHEDULE_CONFIG.model_copy(update={"class_duration": 0})

    report = validate_schedules_against_config([_schedule(1, 1, "07:00", "07:45")], DEFAULT_SCHEDULE_CONFIG, broken)

    assert report.is_valid is False
    assert report.config_errors
    assert report.issues == []


def test_suggest_valid_time_slot_skips_leading_break():
    config = ScheduleConfigBase(
        working_days=[2],
        start_time="07:00",
        end_time="09:00",
        class_duration=45,
        break_slots={2: [{"start": "07:00", "end": "07:30", "label": "FORMACIÓN"}]},
    )

    assert suggest_valid_time_slot(_schedule(9, 2, "07:00", "07:45"), config) == ("07:30", "08:15")
    assert suggest_valid_time_slot(_schedule(9, 2, "07:00", "07:45"), config.model_copy(update={"working_days": []})) is None
