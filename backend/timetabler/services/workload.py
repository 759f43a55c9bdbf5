from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
import logging

from sqlalchemy.exc import SQLAlchemyError

from timetabler.schemas.timetable import TimetableBase
from timetabler.schemas.workload import WorkloadFailure, WorkloadRecomputeReport
from timetabler.services.store import TimetableStore

logger = logging.getLogger(__name__)


def count_teacher_slots(
    timetables: Iterable[TimetableBase],
    *,
    excluding_timetable_id: str | None = None,
) -> Counter[str]:
    counts: Counter[str] = Counter()
    for timetable in timetables:
        if excluding_timetable_id is not None and getattr(timetable, "id", None) == excluding_timetable_id:
            continue
        for day_entry in timetable.schedule:
            for slot in day_entry.slots:
                counts.update(slot.teachers)
    return counts


def recompute_teacher_workloads(
    store: TimetableStore,
    *,
    excluding_timetable_id: str | None = None,
) -> WorkloadRecomputeReport:
    """Rebuild every teacher's cached workload from the persisted timetables.

    Always a full recount, so running it again converges on the same numbers.
    Each write runs in its own savepoint, so a failed write is logged and
    reported while the remaining teachers are still updated. The caller owns
    the commit.
    """
    teachers = store.list_teachers()
    counts = count_teacher_slots(
        store.list_timetables(),
        excluding_timetable_id=excluding_timetable_id,
    )

    report = WorkloadRecomputeReport()
    for teacher_id, teacher in teachers.items():
        workload = counts.get(teacher_id, 0)
        try:
            with store.savepoint():
                updated = store.set_teacher_workload(teacher_id, workload)
        except SQLAlchemyError as exc:
            logger.exception("WORKLOAD UPDATE FAILED | teacher_id=%s | workload=%s", teacher_id, workload)
            report.failures.append(WorkloadFailure(teacher_id=teacher_id, error=str(exc)))
            continue
        if not updated:
            logger.warning("WORKLOAD UPDATE SKIPPED | teacher_id=%s | reason=teacher removed", teacher_id)
            report.failures.append(WorkloadFailure(teacher_id=teacher_id, error="Teacher not found"))
            continue
        if teacher.current_workload != workload:
            logger.info(
                "WORKLOAD UPDATED | teacher=%s | previous=%s | current=%s",
                teacher.name,
                teacher.current_workload,
                workload,
            )
        report.workloads[teacher_id] = workload

    orphaned = sorted(set(counts) - set(teachers))
    if orphaned:
        logger.warning("WORKLOAD ORPHANED REFERENCES | teacher_ids=%s", ",".join(orphaned))
    return report
