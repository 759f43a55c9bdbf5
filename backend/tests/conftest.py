import os
import tempfile

# Keep the application engine (used by startup and readiness checks) off the working directory.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/timetabler-test.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timetabler.api.deps import get_db
from timetabler.db.base import Base
from timetabler.db.session import enable_sqlite_savepoints
from timetabler.main import app
from timetabler.schemas.subject import SubjectOut
from timetabler.schemas.teacher import TeacherOut
from timetabler.schemas.timetable import TimetableOut


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
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


@pytest.fixture()
def make_teacher():
    def build(teacher_id: str, name: str | None = None, **overrides) -> TeacherOut:
        values = {
            "id": teacher_id,
            "name": name or teacher_id.upper(),
            "rank": "assistant",
            "department": "CSE",
            "max_workload": 20,
        }
        values.update(overrides)
        return TeacherOut(**values)

    return build


@pytest.fixture()
def make_subject():
    def build(subject_id: str, credits: int, teacher_ids: list[str], type: str = "theory", **overrides) -> SubjectOut:
        values = {
            "id": subject_id,
            "name": subject_id.title(),
            "code": subject_id.upper(),
            "credits": credits,
            "type": type,
            "semester": 3,
            "department": "CSE",
            "teacher_ids": teacher_ids,
        }
        values.update(overrides)
        return SubjectOut(**values)

    return build


@pytest.fixture()
def make_timetable():
    def build(timetable_id: str, section: str, placements: list[tuple[str, int, str, list[str]]], **overrides) -> TimetableOut:
        days: dict[str, list[dict]] = {}
        for day, slot_number, subject_id, teacher_ids in placements:
            days.setdefault(day, []).append({"slotNumber": slot_number, "subject": subject_id, "teachers": teacher_ids})
        values = {
            "id": timetable_id,
            "semester": 3,
            "department": "CSE",
            "section": section,
            "schedule": [{"day": day, "slots": slots} for day, slots in days.items()],
        }
        values.update(overrides)
        return TimetableOut(**values)

    return build
