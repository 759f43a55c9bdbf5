"""Seed a demo department (teachers and subjects) for the timetabler.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py

Re-running updates the seeded records in place.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy import func, select

from timetabler.db.bootstrap import ensure_schema
from timetabler.db.session import SessionLocal
from timetabler.models.subject import Subject, SubjectType
from timetabler.models.teacher import Teacher, TeacherRank

DEPARTMENT = os.getenv("SEED_DEPARTMENT", "CSE").strip() or "CSE"
SEMESTER = int(os.getenv("SEED_SEMESTER", "3"))
WORKING_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


@dataclass(frozen=True)
class TeacherSeed:
    key: str
    name: str
    rank: TeacherRank
    max_workload: int
    availability: tuple[str, ...] = tuple(WORKING_DAYS)


@dataclass(frozen=True)
class SubjectSeed:
    code: str
    name: str
    credits: int
    type: SubjectType
    teacher_keys: tuple[str, ...]


TEACHERS = [
    TeacherSeed("meera", "Dr. Meera Iyer", TeacherRank.senior, 16),
    TeacherSeed("arun", "Arun Kumar", TeacherRank.associate, 14),
    TeacherSeed("priya", "Priya Nair", TeacherRank.assistant, 12, ("Monday", "Tuesday", "Thursday")),
    TeacherSeed("rahul", "Rahul Menon", TeacherRank.assistant, 12),
]

SUBJECTS = [
    SubjectSeed("CS201", "Data Structures", 3, SubjectType.theory, ("meera", "arun")),
    SubjectSeed("CS202", "Database Management Systems", 3, SubjectType.theory, ("arun",)),
    SubjectSeed("CS203", "Computer Organization", 3, SubjectType.theory, ("meera",)),
    SubjectSeed("MA201", "Discrete Mathematics", 2, SubjectType.theory, ("rahul",)),
    SubjectSeed("CS291", "Data Structures Lab", 2, SubjectType.lab, ("priya", "rahul")),
    SubjectSeed("CS292", "Database Lab", 4, SubjectType.lab, ("priya", "arun")),
]


def upsert_teacher(session, seed: TeacherSeed) -> Teacher:
    existing = session.execute(
        select(Teacher).where(
            func.lower(Teacher.name) == seed.name.lower(),
            Teacher.department == DEPARTMENT,
        )
    ).scalar_one_or_none()
    if existing is None:
        existing = Teacher(name=seed.name, department=DEPARTMENT, current_workload=0)
        session.add(existing)
    existing.rank = seed.rank
    existing.max_workload = seed.max_workload
    existing.availability = list(seed.availability)
    session.flush()
    return existing


def upsert_subject(session, seed: SubjectSeed, teachers_by_key: dict[str, Teacher]) -> Subject:
    existing = session.execute(
        select(Subject).where(
            Subject.code == seed.code,
            Subject.semester == SEMESTER,
            Subject.department == DEPARTMENT,
        )
    ).scalar_one_or_none()
    if existing is None:
        existing = Subject(code=seed.code, semester=SEMESTER, department=DEPARTMENT)
        session.add(existing)
    existing.name = seed.name
    existing.credits = seed.credits
    existing.type = seed.type
    existing.teacher_ids = [teachers_by_key[key].id for key in seed.teacher_keys]
    session.flush()
    return existing


def main() -> None:
    ensure_schema()

    with SessionLocal() as session:
        teachers_by_key = {seed.key: upsert_teacher(session, seed) for seed in TEACHERS}
        for seed in SUBJECTS:
            upsert_subject(session, seed, teachers_by_key)
        session.commit()

        teacher_count = session.execute(select(func.count(Teacher.id))).scalar_one()
        subject_count = session.execute(select(func.count(Subject.id))).scalar_one()
        ids = {key: teacher.id for key, teacher in teachers_by_key.items()}

    print("Demo data seeded successfully.")
    print("")
    print(f"Department: {DEPARTMENT}, semester {SEMESTER}")
    print(f"Teacher records: {teacher_count}")
    print(f"Subject records: {subject_count}")
    print("Teacher ids:")
    for key, teacher_id in ids.items():
        print(f"  {key}: {teacher_id}")


if __name__ == "__main__":
    main()
