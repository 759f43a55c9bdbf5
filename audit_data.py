"""Print record counts and any drift between cached and recomputed teacher workloads.

Run:
  PYTHONPATH=backend python audit_data.py
"""

from timetabler.db.session import SessionLocal
from timetabler.services.store import TimetableStore
from timetabler.services.workload import count_teacher_slots

db = SessionLocal()
try:
    store = TimetableStore(db)
    teachers = store.list_teachers()
    subjects = store.list_subjects()
    timetables = store.list_timetables()

    print(f"Teachers: {len(teachers)}")
    print(f"Subjects: {len(subjects)}")
    print(f"Timetables: {len(timetables)}")
    for timetable in timetables:
        slot_count = sum(len(entry.slots) for entry in timetable.schedule)
        print(f"  - {timetable.label}: {slot_count} slots")

    counts = count_teacher_slots(timetables)
    drift = [
        (teacher.name, teacher.current_workload, counts.get(teacher_id, 0))
        for teacher_id, teacher in teachers.items()
        if teacher.current_workload != counts.get(teacher_id, 0)
    ]
    print(f"Workload drift: {len(drift)} / {len(teachers)}")
    for name, cached, actual in drift:
        print(f"  - {name}: cached {cached}, actual {actual}")

    orphaned = sorted(set(counts) - set(teachers))
    if orphaned:
        print(f"Timetable slots reference unknown teachers: {', '.join(orphaned)}")

finally:
    db.close()
