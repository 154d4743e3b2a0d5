import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.schedule_config import (
    PRESET_CONFIGS,
    ApplySlotsRequest,
    SaveConfigRequest,
    ScheduleConfigBase,
    ScheduleConfigOut,
    ScheduleConfigPreset,
    TimeSlotsOut,
)
from app.services.config_validation import ConfigImpactReport, ensure_valid_config, validate_schedules_against_config
from app.services.day_slots import DaySlotTable, apply_slots_to_days, get_slots_for_day
from app.services.schedule_store import SqlAlchemyScheduleRepository, load_schedule_config, save_schedule_config
from app.services.time_slots import build_time_axis, build_time_slots

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/schedule-configs/presets", response_model=list[ScheduleConfigPreset])
def list_presets() -> list[ScheduleConfigPreset]:
    return list(PRESET_CONFIGS.values())


@router.get("/schedule-configs/section/{section_id}", response_model=ScheduleConfigOut)
def get_section_config(section_id: int, db: Session = Depends(get_db)) -> ScheduleConfigOut:
    return load_schedule_config(db, section_id)


@router.put("/schedule-configs/section/{section_id}", response_model=ScheduleConfigOut)
def save_section_config(
    section_id: int,
    payload: SaveConfigRequest,
    db: Session = Depends(get_db),
) -> ScheduleConfigOut:
    ensure_valid_config(payload)
    return save_schedule_config(db, section_id, payload)


@router.post("/schedule-configs/section/{section_id}/impact", response_model=ConfigImpactReport)
def preview_config_impact(
    section_id: int,
    payload: ScheduleConfigBase,
    db: Session = Depends(get_db),
) -> ConfigImpactReport:
    current = load_schedule_config(db, section_id)
    schedules = SqlAlchemyScheduleRepository(db).list_for_section(section_id)
    report = validate_schedules_against_config(schedules, current, payload)
    if report.issues:
        logger.info("Config change for section %s would invalidate %s schedule(s)", section_id, len(report.issues))
    return report


@router.post("/schedule-configs/section/{section_id}/break-slots/apply", response_model=ScheduleConfigOut)
def apply_break_slots(
    section_id: int,
    payload: ApplySlotsRequest,
    db: Session = Depends(get_db),
) -> ScheduleConfigOut:
    """Copy one day's slots onto other days; returns the edited config without saving it."""
    current = load_schedule_config(db, section_id)
    table = DaySlotTable.from_config(current)
    source_slots = get_slots_for_day(table, payload.source_day)
    updated = apply_slots_to_days(table, payload.target_days, source_slots)
    return current.model_copy(update={"break_slots": updated.to_mapping(current.working_days)})


@router.get("/schedule-configs/section/{section_id}/time-slots", response_model=TimeSlotsOut)
def get_time_slots(section_id: int, db: Session = Depends(get_db)) -> TimeSlotsOut:
    config = load_schedule_config(db, section_id)
    slots_by_day, is_fallback = build_time_slots(config)
    return TimeSlotsOut(
        section_id=section_id,
        is_fallback=is_fallback,
        slots_by_day={int(day): slots for day, slots in slots_by_day.items()},
        axis=build_time_axis(slots_by_day),
    )
