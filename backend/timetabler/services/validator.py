from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import logging

from timetabler.models.subject import SubjectType
from timetabler.schemas.subject import SubjectOut
from timetabler.schemas.teacher import TeacherOut
from timetabler.schemas.timetable import TimetableBase
from timetabler.schemas.validation import ValidationIssue, ValidationReport
from timetabler.services.grid import DAYS

logger = logging.getLogger(__name__)

CANDIDATE_KEY = "__candidate__"
UNKNOWN_TYPE = "unknown"


@dataclass(frozen=True)
class TeacherSlot:
    slot_number: int
    subject_type: str
    timetable_key: str
    timetable_label: str


class TimetableValidator:
    """Checks a proposed timetable against every other timetable of the institution.

    Pure: the same inputs always produce the same report and nothing is
    written. Records that cannot be resolved are reported on the check that
    needed them; the remaining checks still run.
    """

    def __init__(self, teachers: Mapping[str, TeacherOut], subjects: Mapping[str, SubjectOut]) -> None:
        self.teachers = teachers
        self.subjects = subjects

    def validate(self, candidate: TimetableBase, others: Sequence[TimetableBase]) -> ValidationReport:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        candidate_id = getattr(candidate, "id", None)
        peers = [
            timetable
            for timetable in others
            if candidate_id is None or getattr(timetable, "id", None) != candidate_id
        ]
        schedules = self._assemble_teacher_schedules(candidate, peers)

        for teacher_id, days in schedules.items():
            teacher = self.teachers.get(teacher_id)
            if teacher is None:
                continue
            total = 0
            for day in DAYS:
                slots = sorted(days.get(day, []), key=lambda item: item.slot_number)
                if not slots:
                    continue
                total += len(slots)
                errors.extend(self._double_bookings(teacher, day, slots))
                day_errors, day_warnings = self._consecutive_load(teacher, day, slots)
                errors.extend(day_errors)
                warnings.extend(day_warnings)
            if total > teacher.max_workload:
                errors.append(
                    ValidationIssue(
                        kind="workload_exceeded",
                        message=(
                            f"Teacher {teacher.name} has been assigned {total} slots, "
                            f"which exceeds their maximum workload of {teacher.max_workload}"
                        ),
                        teacher_id=teacher.id,
                    )
                )

        errors.extend(self._availability(candidate))
        errors.extend(self._credits(candidate))

        logger.debug(
            "TIMETABLE VALIDATION | timetable=%s | errors=%s | warnings=%s",
            candidate.label,
            len(errors),
            len(warnings),
        )
        return ValidationReport(is_valid=not errors, errors=errors, warnings=warnings)

    def _subject_type(self, subject_id: str) -> str:
        subject = self.subjects.get(subject_id)
        if subject is None:
            return UNKNOWN_TYPE
        return subject.type.value

    def _assemble_teacher_schedules(
        self,
        candidate: TimetableBase,
        peers: Sequence[TimetableBase],
    ) -> dict[str, dict[str, list[TeacherSlot]]]:
        schedules: dict[str, dict[str, list[TeacherSlot]]] = defaultdict(lambda: defaultdict(list))
        entries = [(getattr(timetable, "id", None) or f"peer-{position}", timetable) for position, timetable in enumerate(peers)]
        entries.append((CANDIDATE_KEY, candidate))
        for key, timetable in entries:
            label = timetable.label
            for day_entry in timetable.schedule:
                for slot in day_entry.slots:
                    subject_type = self._subject_type(slot.subject)
                    for teacher_id in slot.teachers:
                        schedules[teacher_id][day_entry.day].append(
                            TeacherSlot(
                                slot_number=slot.slot_number,
                                subject_type=subject_type,
                                timetable_key=key,
                                timetable_label=label,
                            )
                        )
        return schedules

    def _double_bookings(self, teacher: TeacherOut, day: str, slots: list[TeacherSlot]) -> list[ValidationIssue]:
        by_slot: dict[int, list[TeacherSlot]] = defaultdict(list)
        for item in slots:
            by_slot[item.slot_number].append(item)

        issues: list[ValidationIssue] = []
        for slot_number, items in by_slot.items():
            labels: dict[str, str] = {}
            for item in items:
                labels.setdefault(item.timetable_key, item.timetable_label)
            if len(labels) < 2:
                continue
            issues.append(
                ValidationIssue(
                    kind="double_booking",
                    message=(
                        f"Conflict: Teacher {teacher.name} is scheduled in multiple classes at the same time "
                        f"on {day}, Slot {slot_number}: {' and '.join(labels.values())}"
                    ),
                    teacher_id=teacher.id,
                    day=day,
                    slot_numbers=[slot_number],
                    timetables=list(labels.values()),
                )
            )
        return issues

    def _consecutive_load(
        self,
        teacher: TeacherOut,
        day: str,
        slots: list[TeacherSlot],
    ) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        theory = SubjectType.theory.value
        for current, following in zip(slots, slots[1:]):
            if following.slot_number - current.slot_number != 1:
                continue
            described = (
                f"{current.timetable_label} (Slot {current.slot_number}) and "
                f"{following.timetable_label} (Slot {following.slot_number})"
            )
            if current.subject_type == theory and following.subject_type == theory:
                errors.append(
                    ValidationIssue(
                        kind="consecutive_theory",
                        message=f"Teacher {teacher.name} has consecutive theory classes on {day}: {described}",
                        teacher_id=teacher.id,
                        day=day,
                        slot_numbers=[current.slot_number, following.slot_number],
                        timetables=[current.timetable_label, following.timetable_label],
                    )
                )
            elif current.subject_type != following.subject_type:
                warnings.append(
                    ValidationIssue(
                        kind="mixed_consecutive",
                        message=f"Teacher {teacher.name} has consecutive theory and lab classes on {day}: {described}",
                        teacher_id=teacher.id,
                        day=day,
                        slot_numbers=[current.slot_number, following.slot_number],
                        timetables=[current.timetable_label, following.timetable_label],
                    )
                )
        return errors, warnings

    def _availability(self, candidate: TimetableBase) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        reported_unknown: set[str] = set()
        for day_entry in candidate.schedule:
            for slot in day_entry.slots:
                for teacher_id in slot.teachers:
                    teacher = self.teachers.get(teacher_id)
                    if teacher is None:
                        if teacher_id not in reported_unknown:
                            reported_unknown.add(teacher_id)
                            issues.append(
                                ValidationIssue(
                                    kind="unknown_teacher",
                                    message=f"Teacher not found for ID: {teacher_id}",
                                    teacher_id=teacher_id,
                                )
                            )
                        continue
                    if not teacher.available_on(day_entry.day):
                        issues.append(
                            ValidationIssue(
                                kind="teacher_unavailable",
                                message=(
                                    f"Teacher {teacher.name} is scheduled on {day_entry.day} "
                                    f"(Slot {slot.slot_number}) but is not available."
                                ),
                                teacher_id=teacher.id,
                                subject_id=slot.subject,
                                day=day_entry.day,
                                slot_numbers=[slot.slot_number],
                            )
                        )
        return issues

    def _credits(self, candidate: TimetableBase) -> list[ValidationIssue]:
        counts: Counter[str] = Counter(
            slot.subject for day_entry in candidate.schedule for slot in day_entry.slots
        )
        issues: list[ValidationIssue] = []
        for subject_id, count in counts.items():
            subject = self.subjects.get(subject_id)
            if subject is None:
                issues.append(
                    ValidationIssue(
                        kind="unknown_subject",
                        message=f"Subject not found for ID: {subject_id}",
                        subject_id=subject_id,
                    )
                )
                continue
            if count != subject.credits:
                issues.append(
                    ValidationIssue(
                        kind="credit_mismatch",
                        message=f"Subject {subject.name} has {count} slots, but requires {subject.credits} credits.",
                        subject_id=subject.id,
                    )
                )
        return issues
