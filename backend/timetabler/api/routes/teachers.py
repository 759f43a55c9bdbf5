import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.api.deps import get_db, get_store
from timetabler.core.exceptions import ResourceNotFoundError
from timetabler.models.subject import Subject
from timetabler.models.teacher import Teacher
from timetabler.schemas.teacher import TeacherCreate, TeacherOut, TeacherUpdate
from timetabler.schemas.timetable import TeacherScheduleEntry
from timetabler.services.grid import DAYS
from timetabler.services.scheduling import exclusive_write
from timetabler.services.store import TimetableStore
from timetabler.services.workload import recompute_teacher_workloads

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_teacher(db: Session, teacher_id: str) -> Teacher:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise ResourceNotFoundError("Teacher", teacher_id)
    return teacher


@router.get("/", response_model=list[TeacherOut])
def list_teachers(department: str | None = None, db: Session = Depends(get_db)) -> list[TeacherOut]:
    query = select(Teacher).order_by(Teacher.name)
    if department:
        query = query.where(Teacher.department == department)
    return list(db.execute(query).scalars())


@router.post("/", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)) -> TeacherOut:
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    logger.info("TEACHER CREATED | teacher_id=%s | name=%s", teacher.id, teacher.name)
    return teacher


@router.get("/{teacher_id}", response_model=TeacherOut)
def get_teacher(teacher_id: str, db: Session = Depends(get_db)) -> TeacherOut:
    return _get_teacher(db, teacher_id)


@router.put("/{teacher_id}", response_model=TeacherOut)
def update_teacher(teacher_id: str, payload: TeacherUpdate, db: Session = Depends(get_db)) -> TeacherOut:
    teacher = _get_teacher(db, teacher_id)
    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        if value is None:
            continue
        setattr(teacher, key, value)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.delete("/{teacher_id}")
def delete_teacher(teacher_id: str, store: TimetableStore = Depends(get_store)) -> dict:
    db = store.db
    with exclusive_write(store):
        teacher = _get_teacher(db, teacher_id)
        subjects = [
            subject
            for subject in db.execute(select(Subject)).scalars()
            if teacher_id in (subject.teacher_ids or [])
        ]
        for subject in subjects:
            subject.teacher_ids = [item for item in subject.teacher_ids if item != teacher_id]
        db.delete(teacher)
        db.flush()
        recompute_teacher_workloads(store)
        store.commit()
    logger.info("TEACHER DELETED | teacher_id=%s | unassigned_subjects=%s", teacher_id, len(subjects))
    return {"success": True, "unassigned_subject_count": len(subjects)}


@router.get("/{teacher_id}/timetable", response_model=list[TeacherScheduleEntry])
def get_teacher_timetable(teacher_id: str, store: TimetableStore = Depends(get_store)) -> list[TeacherScheduleEntry]:
    _get_teacher(store.db, teacher_id)
    subjects = store.list_subjects()
    entries: list[TeacherScheduleEntry] = []
    for timetable in store.list_timetables():
        for day_entry in timetable.schedule:
            for slot in day_entry.slots:
                if teacher_id not in slot.teachers:
                    continue
                entries.append(
                    TeacherScheduleEntry(
                        day=day_entry.day,
                        slot_number=slot.slot_number,
                        subject_id=slot.subject,
                        subject=subjects.get(slot.subject),
                        timetable_id=timetable.id,
                        timetable=timetable.label,
                    )
                )
    entries.sort(key=lambda item: (DAYS.index(item.day), item.slot_number))
    return entries
