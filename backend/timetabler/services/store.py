from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Iterator

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timetabler.core.exceptions import CollaboratorError, ResourceNotFoundError
from timetabler.models.subject import Subject
from timetabler.models.teacher import Teacher
from timetabler.models.timetable import Timetable
from timetabler.schemas.subject import SubjectOut
from timetabler.schemas.teacher import TeacherOut
from timetabler.schemas.timetable import TimetableBase, TimetableOut

logger = logging.getLogger(__name__)


class TimetableStore:
    """Persistence seam for the scheduling core.

    Reads hand back detached pydantic snapshots so the generator and validator
    never touch the session. Any database failure becomes a CollaboratorError.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _fail(self, action: str, exc: SQLAlchemyError) -> CollaboratorError:
        logger.exception("STORE FAILURE | action=%s", action)
        return CollaboratorError(f"Could not {action}", details={"error": str(exc)})

    def list_teachers(self) -> dict[str, TeacherOut]:
        try:
            rows = list(self.db.execute(select(Teacher).order_by(Teacher.name)).scalars())
        except SQLAlchemyError as exc:
            raise self._fail("load teachers", exc) from exc
        return {row.id: TeacherOut.model_validate(row) for row in rows}

    def list_subjects(self, semester: int | None = None) -> dict[str, SubjectOut]:
        query = select(Subject).order_by(Subject.code)
        if semester is not None:
            query = query.where(Subject.semester == semester)
        try:
            rows = list(self.db.execute(query).scalars())
        except SQLAlchemyError as exc:
            raise self._fail("load subjects", exc) from exc
        return {row.id: SubjectOut.model_validate(row) for row in rows}

    def list_timetables(self, exclude_id: str | None = None) -> list[TimetableOut]:
        query = select(Timetable).order_by(Timetable.semester, Timetable.department, Timetable.section)
        if exclude_id is not None:
            query = query.where(Timetable.id != exclude_id)
        try:
            rows = list(self.db.execute(query).scalars())
        except SQLAlchemyError as exc:
            raise self._fail("load timetables", exc) from exc
        return [TimetableOut.model_validate(row) for row in rows]

    def get_timetable_row(self, timetable_id: str) -> Timetable:
        try:
            row = self.db.get(Timetable, timetable_id)
        except SQLAlchemyError as exc:
            raise self._fail("load timetable", exc) from exc
        if row is None:
            raise ResourceNotFoundError("Timetable", timetable_id)
        return row

    def find_by_class(self, semester: int, department: str, section: str) -> Timetable | None:
        try:
            return self.db.execute(
                select(Timetable).where(
                    Timetable.semester == semester,
                    Timetable.department == department,
                    Timetable.section == section,
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail("look up timetable", exc) from exc

    def save_timetable(self, payload: TimetableBase, row: Timetable | None = None) -> Timetable:
        if row is None:
            row = Timetable()
            self.db.add(row)
        row.semester = payload.semester
        row.department = payload.department
        row.section = payload.section
        row.cluster = payload.cluster
        row.schedule = payload.schedule_document()
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            raise self._fail("save timetable", exc) from exc
        return row

    def delete_timetable(self, row: Timetable) -> None:
        try:
            self.db.delete(row)
            self.db.flush()
        except SQLAlchemyError as exc:
            raise self._fail("delete timetable", exc) from exc

    def set_teacher_workload(self, teacher_id: str, workload: int) -> bool:
        """Write one teacher's cached workload; False if the teacher no longer exists.

        Raises SQLAlchemyError unwrapped so the caller can record the failure
        and carry on with the next teacher.
        """
        result = self.db.execute(
            update(Teacher)
            .where(Teacher.id == teacher_id)
            .values(current_workload=workload)
            .execution_options(synchronize_session="fetch")
        )
        return bool(result.rowcount)

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Scope a write so a failure rolls back only that write."""
        with self.db.begin_nested():
            yield

    def rollback(self) -> None:
        self.db.rollback()

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._fail("commit changes", exc) from exc
