from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.api.deps import get_db
from timetabler.core.exceptions import DuplicateResourceError, ResourceNotFoundError
from timetabler.models.subject import Subject
from timetabler.models.teacher import Teacher
from timetabler.models.timetable import Timetable
from timetabler.schemas.subject import SubjectBase, SubjectCreate, SubjectOut, SubjectUpdate

router = APIRouter()


def _get_subject(db: Session, subject_id: str) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject", subject_id)
    return subject


def _ensure_teachers_exist(db: Session, teacher_ids: list[str]) -> None:
    if not teacher_ids:
        return
    known = set(db.execute(select(Teacher.id).where(Teacher.id.in_(teacher_ids))).scalars())
    for teacher_id in teacher_ids:
        if teacher_id not in known:
            raise ResourceNotFoundError("Teacher", teacher_id)


def _ensure_code_free(db: Session, payload: SubjectBase, subject_id: str | None = None) -> None:
    query = select(Subject).where(
        Subject.code == payload.code,
        Subject.semester == payload.semester,
        Subject.department == payload.department,
    )
    if subject_id is not None:
        query = query.where(Subject.id != subject_id)
    if db.execute(query).scalars().first() is not None:
        raise DuplicateResourceError(
            f"Subject code {payload.code} already exists for {payload.department} semester {payload.semester}"
        )


@router.get("/", response_model=list[SubjectOut])
def list_subjects(department: str | None = None, db: Session = Depends(get_db)) -> list[SubjectOut]:
    query = select(Subject).order_by(Subject.semester, Subject.code)
    if department:
        query = query.where(Subject.department == department)
    return list(db.execute(query).scalars())


@router.get("/semester/{semester}", response_model=list[SubjectOut])
def list_subjects_for_semester(
    semester: int,
    department: str | None = None,
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    query = select(Subject).where(Subject.semester == semester).order_by(Subject.code)
    if department:
        query = query.where(Subject.department == department)
    return list(db.execute(query).scalars())


@router.post("/", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db)) -> SubjectOut:
    _ensure_code_free(db, payload)
    _ensure_teachers_exist(db, payload.teacher_ids)
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.get("/{subject_id}", response_model=SubjectOut)
def get_subject(subject_id: str, db: Session = Depends(get_db)) -> SubjectOut:
    return _get_subject(db, subject_id)


@router.put("/{subject_id}", response_model=SubjectOut)
def update_subject(subject_id: str, payload: SubjectUpdate, db: Session = Depends(get_db)) -> SubjectOut:
    subject = _get_subject(db, subject_id)
    data = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    if not data:
        return subject

    merged = SubjectBase.model_validate(
        {
            "name": data.get("name", subject.name),
            "code": data.get("code", subject.code),
            "credits": data.get("credits", subject.credits),
            "type": data.get("type", subject.type),
            "semester": data.get("semester", subject.semester),
            "department": data.get("department", subject.department),
            "teacher_ids": data.get("teacher_ids", subject.teacher_ids),
        }
    )
    _ensure_code_free(db, merged, subject_id)
    if "teacher_ids" in data:
        _ensure_teachers_exist(db, merged.teacher_ids)

    for key, value in merged.model_dump().items():
        setattr(subject, key, value)
    db.commit()
    db.refresh(subject)
    return subject


@router.delete("/{subject_id}")
def delete_subject(subject_id: str, db: Session = Depends(get_db)) -> dict:
    subject = _get_subject(db, subject_id)
    referencing = [
        timetable.id
        for timetable in db.execute(select(Timetable)).scalars()
        if any(
            slot.get("subject") == subject_id
            for day_entry in timetable.schedule or []
            for slot in day_entry.get("slots", [])
        )
    ]
    db.delete(subject)
    db.commit()
    return {"success": True, "referencing_timetable_ids": referencing}
