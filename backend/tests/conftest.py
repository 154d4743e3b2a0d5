import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient  # calls the FastAPI routes in-process, no real server
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.db.base import Base
from app.main import app
from app.models.course_assignment import CourseAssignment
from app.services.session_registry import clear_session_registry


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    clear_session_registry()  # sessions opened by a previous test must not leak into this one

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    clear_session_registry()


@pytest.fixture()
def seed_assignments(db_session):
    def _seed(section_id: int = 1):
        rows = [
            CourseAssignment(
                section_id=section_id,
                course_id=101,
                teacher_id=11,
                course_name="Matemática",
                course_code="MAT-1",
                teacher_name="Ana Pérez",
            ),
            CourseAssignment(
                section_id=section_id,
                course_id=102,
                teacher_id=12,
                course_name="Comunicación",
                course_code="COM-1",
                teacher_name="Luis Rojas",
            ),
        ]
        db_session.add_all(rows)
        db_session.commit()
        for row in rows:
            db_session.refresh(row)
        return rows

    return _seed
