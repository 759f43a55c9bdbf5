from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import Callable

from timetabler.core.exceptions import (
    GenerationTimeoutError,
    InfeasibleScheduleError,
    InternalConsistencyError,
    ResourceNotFoundError,
    SchedulerError,
)
from timetabler.models.subject import SubjectType
from timetabler.schemas.generator import GeneratedSchedule, SubjectSelection
from timetabler.schemas.subject import SubjectOut
from timetabler.schemas.teacher import TeacherOut
from timetabler.schemas.timetable import DayEntry, SlotEntry, TimetableBase
from timetabler.services.grid import DAYS, SLOT_NUMBERS, SLOTS_PER_DAY, lab_partner_slot
from timetabler.services.occupancy import OccupancyIndex

logger = logging.getLogger(__name__)

# Slot-major enumeration: every day's first period is tried before any second period.
POSITIONS: tuple[tuple[int, int], ...] = tuple(
    (day, slot) for slot in SLOT_NUMBERS for day in range(len(DAYS))
)


@dataclass(frozen=True)
class PlacedSession:
    subject_id: str
    subject_type: SubjectType
    teacher_ids: tuple[str, ...]


@dataclass
class SubjectPlan:
    subject: SubjectOut
    teachers: tuple[TeacherOut, ...]
    assigned: int = 0

    @property
    def is_lab(self) -> bool:
        return self.subject.type == SubjectType.lab

    @property
    def satisfied(self) -> bool:
        return self.assigned >= self.subject.credits


@dataclass
class SearchStats:
    nodes: int = 0
    backtracks: int = 0
    soft_score: int = 0
    started: float = field(default_factory=perf_counter)


def priority_order(plans: Sequence[SubjectPlan]) -> list[SubjectPlan]:
    """Most constrained first: more credits first, labs ahead of theory on ties."""
    return sorted(plans, key=lambda plan: (-plan.subject.credits, 0 if plan.is_lab else 1))


class TimetableGenerator:
    """First-feasible backtracking search for one section's weekly schedule.

    Hard constraints decide legality; the soft score is accumulated for
    reporting only, so the first legal position in slot-major order always
    wins.
    """

    def __init__(
        self,
        *,
        subjects: Mapping[str, SubjectOut],
        teachers: Mapping[str, TeacherOut],
        existing_timetables: Sequence[TimetableBase],
        max_nodes: int = 200_000,
        time_limit_seconds: float = 10.0,
        clock: Callable[[], float] = perf_counter,
    ) -> None:
        self.subjects = subjects
        self.teachers = teachers
        self.existing_timetables = existing_timetables
        self.max_nodes = max_nodes
        self.time_limit_seconds = time_limit_seconds
        self.clock = clock

        self._grid: list[list[PlacedSession | None]] = []
        self._occupancy = OccupancyIndex()
        self._plans: list[SubjectPlan] = []
        self._stats = SearchStats()

    def generate(
        self,
        *,
        semester: int,
        department: str,
        section: str,
        selection: Sequence[SubjectSelection],
        cluster: str | None = None,
    ) -> GeneratedSchedule:
        logger.info(
            "TIMETABLE GENERATION START | semester=%s | department=%s | section=%s | subjects=%s",
            semester,
            department,
            section,
            len(selection),
        )
        plans = self._resolve_selection(selection)
        others = [
            timetable
            for timetable in self.existing_timetables
            if (timetable.semester, timetable.department, timetable.section) != (semester, department, section)
        ]
        self._occupancy = OccupancyIndex.from_timetables(others)
        self._grid = [[None] * SLOTS_PER_DAY for _ in DAYS]
        self._plans = priority_order(plans)
        self._stats = SearchStats(started=self.clock())

        self._check_capacity()

        if not self._assign(0, 0):
            logger.info(
                "TIMETABLE GENERATION INFEASIBLE | semester=%s | department=%s | section=%s | nodes=%s | backtracks=%s",
                semester,
                department,
                section,
                self._stats.nodes,
                self._stats.backtracks,
            )
            raise InfeasibleScheduleError(
                "Unable to generate a valid timetable with the given constraints",
                details={"nodes_visited": self._stats.nodes},
            )

        schedule = self._compose_schedule()
        self._verify_credits(schedule)
        logger.info(
            "TIMETABLE GENERATION COMPLETE | semester=%s | department=%s | section=%s | nodes=%s | backtracks=%s | soft_score=%s",
            semester,
            department,
            section,
            self._stats.nodes,
            self._stats.backtracks,
            self._stats.soft_score,
        )
        return GeneratedSchedule(
            semester=semester,
            department=department,
            section=section,
            cluster=cluster,
            schedule=schedule,
            soft_score=self._stats.soft_score,
            nodes_visited=self._stats.nodes,
        )

    def _resolve_selection(self, selection: Sequence[SubjectSelection]) -> list[SubjectPlan]:
        plans: list[SubjectPlan] = []
        unplaceable: list[dict] = []
        seen: set[str] = set()
        for item in selection:
            subject = self.subjects.get(item.subject)
            if subject is None:
                raise ResourceNotFoundError("Subject", item.subject)
            if subject.id in seen:
                raise SchedulerError(
                    f"Subject {subject.name} is selected more than once",
                    details={"subject_id": subject.id},
                )
            seen.add(subject.id)

            eligible = set(subject.teacher_ids)
            chosen: list[TeacherOut] = []
            problems: list[str] = []
            for teacher_id in dict.fromkeys(item.teachers):
                teacher = self.teachers.get(teacher_id)
                if teacher is None:
                    problems.append(f"teacher {teacher_id} does not exist")
                elif teacher_id not in eligible:
                    problems.append(f"{teacher.name} is not eligible to teach it")
                else:
                    chosen.append(teacher)
            if not item.teachers:
                problems.append("no teacher was chosen")
            if subject.type == SubjectType.lab and subject.credits % 2:
                problems.append(f"a lab needs an even number of credits, got {subject.credits}")
            if problems:
                unplaceable.append({"subject_id": subject.id, "subject": subject.name, "reasons": problems})
            plans.append(SubjectPlan(subject=subject, teachers=tuple(chosen)))

        if unplaceable:
            summary = "; ".join(f"{entry['subject']}: {', '.join(entry['reasons'])}" for entry in unplaceable)
            raise InfeasibleScheduleError(
                f"Unable to generate a valid timetable: {summary}",
                details={"unplaceable": unplaceable},
            )
        return plans

    def _check_capacity(self) -> None:
        # Necessary conditions only; a failure here is the same answer the search would reach.
        total = sum(plan.subject.credits for plan in self._plans)
        capacity = len(DAYS) * SLOTS_PER_DAY
        if total > capacity:
            raise InfeasibleScheduleError(
                f"Selected subjects need {total} slots but the week only has {capacity}",
                details={"required_slots": total, "available_slots": capacity},
            )

        demand: Counter[str] = Counter()
        for plan in self._plans:
            for teacher in plan.teachers:
                demand[teacher.id] += plan.subject.credits
        for teacher_id, required in demand.items():
            teacher = self.teachers[teacher_id]
            free = sum(
                1
                for day_index, day in enumerate(DAYS)
                if teacher.available_on(day)
                for slot in SLOT_NUMBERS
                if not self._occupancy.is_busy(teacher_id, day_index, slot)
            )
            if required > free:
                raise InfeasibleScheduleError(
                    f"Teacher {teacher.name} needs {required} free slots but only {free} remain",
                    details={"teacher_id": teacher_id, "required_slots": required, "free_slots": free},
                )

    def _tick(self) -> None:
        self._stats.nodes += 1
        if self._stats.nodes > self.max_nodes:
            raise GenerationTimeoutError(
                f"Timetable search gave up after visiting {self.max_nodes} nodes",
                details={"nodes_visited": self._stats.nodes - 1},
            )
        elapsed = self.clock() - self._stats.started
        if elapsed > self.time_limit_seconds:
            raise GenerationTimeoutError(
                f"Timetable search exceeded {self.time_limit_seconds} seconds",
                details={"nodes_visited": self._stats.nodes, "elapsed_seconds": round(elapsed, 3)},
            )

    def _assign(self, plan_index: int, start: int) -> bool:
        if plan_index >= len(self._plans):
            return True
        self._tick()
        plan = self._plans[plan_index]

        for position in range(start, len(POSITIONS)):
            day, slot = POSITIONS[position]
            if not self._is_legal(day, slot, plan):
                continue

            score = self.soft_score(day, slot, plan)
            placed_slots = self._place(day, slot, plan)
            self._stats.soft_score += score
            logger.debug(
                "PLACE | subject=%s | day=%s | slots=%s | assigned=%s/%s | soft_score=%s",
                plan.subject.code,
                DAYS[day],
                placed_slots,
                plan.assigned,
                plan.subject.credits,
                score,
            )

            if plan.satisfied:
                done = self._assign(plan_index + 1, 0)
            else:
                # Later sessions of the same subject only look forward, so each
                # combination of positions is tried once.
                done = self._assign(plan_index, position + 1)
            if done:
                return True

            self._stats.soft_score -= score
            self._stats.backtracks += 1
            self._unplace(day, placed_slots, plan)
            logger.debug("BACKTRACK | subject=%s | day=%s | slots=%s", plan.subject.code, DAYS[day], placed_slots)

        return False

    def _is_legal(self, day: int, slot: int, plan: SubjectPlan) -> bool:
        if not plan.teachers:
            return False
        if self._grid[day][slot - 1] is not None:
            return False
        for teacher in plan.teachers:
            if not teacher.available_on(DAYS[day]):
                return False
            if self._occupancy.is_busy(teacher.id, day, slot):
                return False

        if plan.is_lab:
            partner = lab_partner_slot(slot)
            if partner is None:
                return False
            if self._grid[day][partner - 1] is not None:
                return False
            for teacher in plan.teachers:
                if self._occupancy.is_busy(teacher.id, day, partner):
                    return False
        return True

    def soft_score(self, day: int, slot: int, plan: SubjectPlan) -> int:
        subject_id = plan.subject.id
        per_day = [
            sum(1 for cell in row if cell is not None and cell.subject_id == subject_id)
            for row in self._grid
        ]
        score = 0
        if per_day[day] > 0:
            score -= 1
        if max(per_day) - min(per_day) <= 1:
            score += 1
        if plan.is_lab and slot > 3:
            score += 1
        return score

    def _place(self, day: int, slot: int, plan: SubjectPlan) -> list[int]:
        slots = [slot]
        if plan.is_lab:
            slots.append(lab_partner_slot(slot))
        session = PlacedSession(
            subject_id=plan.subject.id,
            subject_type=plan.subject.type,
            teacher_ids=tuple(teacher.id for teacher in plan.teachers),
        )
        for slot_number in slots:
            self._grid[day][slot_number - 1] = session
            for teacher_id in session.teacher_ids:
                self._occupancy.occupy(teacher_id, day, slot_number)
        plan.assigned += len(slots)
        return slots

    def _unplace(self, day: int, slots: list[int], plan: SubjectPlan) -> None:
        for slot_number in slots:
            self._grid[day][slot_number - 1] = None
            for teacher in plan.teachers:
                self._occupancy.release(teacher.id, day, slot_number)
        plan.assigned -= len(slots)

    def _compose_schedule(self) -> list[DayEntry]:
        schedule: list[DayEntry] = []
        for day_index, day in enumerate(DAYS):
            slots = [
                SlotEntry(slot_number=slot_index + 1, subject=cell.subject_id, teachers=list(cell.teacher_ids))
                for slot_index, cell in enumerate(self._grid[day_index])
                if cell is not None
            ]
            schedule.append(DayEntry(day=day, slots=slots))
        return schedule

    def _verify_credits(self, schedule: Sequence[DayEntry]) -> None:
        counts: Counter[str] = Counter(slot.subject for entry in schedule for slot in entry.slots)
        mismatches = [
            {"subject_id": plan.subject.id, "expected": plan.subject.credits, "assigned": counts[plan.subject.id]}
            for plan in self._plans
            if counts[plan.subject.id] != plan.subject.credits
        ]
        if mismatches:
            logger.error("TIMETABLE GENERATION CREDIT MISMATCH | mismatches=%s", mismatches)
            raise InternalConsistencyError(
                "Credit-based assignment verification failed",
                details={"mismatches": mismatches},
            )
