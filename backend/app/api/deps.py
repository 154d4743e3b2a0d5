from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.schedule_store import SqlAlchemyScheduleRepository
from app.services.session_registry import InMemoryEditSessionRegistry, get_session_registry


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_schedule_repository(db: Session = Depends(get_db)) -> SqlAlchemyScheduleRepository:
    return SqlAlchemyScheduleRepository(db)


def get_registry() -> InMemoryEditSessionRegistry:
    return get_session_registry()
