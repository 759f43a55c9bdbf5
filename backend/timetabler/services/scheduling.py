"""Write paths for timetables.

Every create, replace, generate-and-save and delete re-reads the store,
re-validates and persists while holding one process-wide lock. Teachers are
shared across departments, so the lock is not partitioned.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from threading import Lock
from time import perf_counter
from typing import Iterator

from timetabler.core.config import Settings
from timetabler.core.exceptions import DuplicateResourceError, TimetableRejectedError
from timetabler.models.timetable import Timetable
from timetabler.schemas.generator import GenerateTimetableRequest, GeneratedSchedule
from timetabler.schemas.timetable import TimetableBase, TimetableCandidate, TimetableUpdate
from timetabler.schemas.validation import ValidationReport
from timetabler.services.generator import TimetableGenerator
from timetabler.services.store import TimetableStore
from timetabler.services.validator import TimetableValidator
from timetabler.services.workload import recompute_teacher_workloads

logger = logging.getLogger(__name__)

_commit_lock = Lock()


@contextmanager
def exclusive_write(store: TimetableStore) -> Iterator[None]:
    with _commit_lock:
        try:
            yield
        except Exception:
            store.rollback()
            raise


def validate_candidate(store: TimetableStore, candidate: TimetableCandidate) -> ValidationReport:
    teachers = store.list_teachers()
    subjects = store.list_subjects()
    others = store.list_timetables(exclude_id=candidate.id)
    return TimetableValidator(teachers, subjects).validate(candidate, others)


def _reject_if_invalid(report: ValidationReport, candidate: TimetableBase) -> None:
    if report.is_valid:
        return
    logger.info(
        "TIMETABLE REJECTED | timetable=%s | errors=%s | warnings=%s",
        candidate.label,
        len(report.errors),
        len(report.warnings),
    )
    raise TimetableRejectedError(
        f"Timetable {candidate.label} failed validation",
        errors=[issue.model_dump() for issue in report.errors],
        warnings=[issue.model_dump() for issue in report.warnings],
    )


def _ensure_class_free(store: TimetableStore, candidate: TimetableBase, own_id: str | None = None) -> None:
    existing = store.find_by_class(candidate.semester, candidate.department, candidate.section)
    if existing is not None and existing.id != own_id:
        raise DuplicateResourceError(
            f"A timetable already exists for {candidate.label}",
            details={"timetable_id": existing.id},
        )


def _persist(
    store: TimetableStore,
    candidate: TimetableCandidate,
    row: Timetable | None = None,
) -> tuple[Timetable, ValidationReport]:
    report = validate_candidate(store, candidate)
    _reject_if_invalid(report, candidate)
    saved = store.save_timetable(candidate, row)
    workload = recompute_teacher_workloads(store)
    store.commit()
    logger.info(
        "TIMETABLE SAVED | timetable_id=%s | timetable=%s | warnings=%s | workload_failures=%s",
        saved.id,
        candidate.label,
        len(report.warnings),
        len(workload.failures),
    )
    return saved, report


def create_timetable(store: TimetableStore, payload: TimetableBase) -> tuple[Timetable, ValidationReport]:
    candidate = TimetableCandidate.model_validate(payload.model_dump(by_alias=True))
    with exclusive_write(store):
        _ensure_class_free(store, candidate)
        return _persist(store, candidate)


def replace_timetable(
    store: TimetableStore,
    timetable_id: str,
    payload: TimetableUpdate,
) -> tuple[Timetable, ValidationReport]:
    with exclusive_write(store):
        row = store.get_timetable_row(timetable_id)
        # Only cluster is nullable; a null for any other field leaves it unchanged.
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True, by_alias=True).items()
            if value is not None or key == "cluster"
        }
        merged = {
            "id": row.id,
            "semester": row.semester,
            "department": row.department,
            "section": row.section,
            "cluster": row.cluster,
            "schedule": row.schedule,
            **changes,
        }
        candidate = TimetableCandidate.model_validate(merged)
        _ensure_class_free(store, candidate, own_id=row.id)
        return _persist(store, candidate, row)


def delete_timetable(store: TimetableStore, timetable_id: str) -> None:
    with exclusive_write(store):
        row = store.get_timetable_row(timetable_id)
        store.delete_timetable(row)
        recompute_teacher_workloads(store, excluding_timetable_id=timetable_id)
        store.commit()
        logger.info("TIMETABLE DELETED | timetable_id=%s", timetable_id)


def generate_schedule(
    store: TimetableStore,
    payload: GenerateTimetableRequest,
    settings: Settings,
) -> GeneratedSchedule:
    started = perf_counter()
    generator = TimetableGenerator(
        subjects=store.list_subjects(),
        teachers=store.list_teachers(),
        existing_timetables=store.list_timetables(),
        max_nodes=settings.generator_max_nodes,
        time_limit_seconds=settings.generator_time_limit_seconds,
    )
    try:
        return generator.generate(
            semester=payload.semester,
            department=payload.department,
            section=payload.section,
            selection=payload.selected_subjects,
            cluster=payload.cluster,
        )
    finally:
        logger.info(
            "TIMETABLE GENERATION WALL | semester=%s | department=%s | section=%s | wall_ms=%s",
            payload.semester,
            payload.department,
            payload.section,
            int((perf_counter() - started) * 1000),
        )


def preview_generated(
    store: TimetableStore,
    payload: GenerateTimetableRequest,
    settings: Settings,
) -> tuple[GeneratedSchedule, ValidationReport]:
    generated = generate_schedule(store, payload, settings)
    existing = store.find_by_class(payload.semester, payload.department, payload.section)
    candidate = TimetableCandidate(
        id=existing.id if existing is not None else None,
        semester=generated.semester,
        department=generated.department,
        section=generated.section,
        cluster=generated.cluster,
        schedule=generated.schedule,
    )
    return generated, validate_candidate(store, candidate)


def generate_and_save(
    store: TimetableStore,
    payload: GenerateTimetableRequest,
    settings: Settings,
) -> tuple[Timetable, GeneratedSchedule, ValidationReport]:
    """Generate, then validate and persist inside the write lock.

    A timetable that already exists for the same class is replaced; the
    generator ignored it when building teacher occupancy.
    """
    generated = generate_schedule(store, payload, settings)
    with exclusive_write(store):
        row = store.find_by_class(payload.semester, payload.department, payload.section)
        candidate = TimetableCandidate(
            id=row.id if row is not None else None,
            semester=generated.semester,
            department=generated.department,
            section=generated.section,
            cluster=generated.cluster,
            schedule=generated.schedule,
        )
        saved, report = _persist(store, candidate, row)
    return saved, generated, report


def recompute_workloads(store: TimetableStore, excluding_timetable_id: str | None = None):
    with exclusive_write(store):
        report = recompute_teacher_workloads(store, excluding_timetable_id=excluding_timetable_id)
        store.commit()
        return report
