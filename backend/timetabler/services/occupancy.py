from __future__ import annotations

from collections.abc import Iterable

from timetabler.schemas.timetable import TimetableBase
from timetabler.services.grid import DAYS, SLOTS_PER_DAY


def _empty_grid() -> list[list[bool]]:
    return [[False] * SLOTS_PER_DAY for _ in DAYS]


class OccupancyIndex:
    """Per-teacher day × slot busy map.

    Built from persisted timetables and, inside the generator, mutated in place
    to track the candidate's provisional placements. Each instance belongs to a
    single generation or validation call.
    """

    def __init__(self) -> None:
        self._grids: dict[str, list[list[bool]]] = {}

    @classmethod
    def from_timetables(
        cls,
        timetables: Iterable[TimetableBase],
        *,
        exclude_id: str | None = None,
    ) -> "OccupancyIndex":
        index = cls()
        for timetable in timetables:
            if exclude_id is not None and getattr(timetable, "id", None) == exclude_id:
                continue
            for entry in timetable.schedule:
                day = DAYS.index(entry.day)
                for slot in entry.slots:
                    for teacher_id in slot.teachers:
                        index.occupy(teacher_id, day, slot.slot_number)
        return index

    def _grid(self, teacher_id: str) -> list[list[bool]]:
        grid = self._grids.get(teacher_id)
        if grid is None:
            grid = _empty_grid()
            self._grids[teacher_id] = grid
        return grid

    def is_busy(self, teacher_id: str, day: int, slot_number: int) -> bool:
        grid = self._grids.get(teacher_id)
        if grid is None:
            return False
        return grid[day][slot_number - 1]

    def occupy(self, teacher_id: str, day: int, slot_number: int) -> None:
        self._grid(teacher_id)[day][slot_number - 1] = True

    def release(self, teacher_id: str, day: int, slot_number: int) -> None:
        grid = self._grids.get(teacher_id)
        if grid is not None:
            grid[day][slot_number - 1] = False

    def busy_slots(self, teacher_id: str) -> list[tuple[str, int]]:
        grid = self._grids.get(teacher_id)
        if grid is None:
            return []
        return [
            (DAYS[day], slot_index + 1)
            for day, row in enumerate(grid)
            for slot_index, busy in enumerate(row)
            if busy
        ]

    def teacher_ids(self) -> list[str]:
        return sorted(self._grids)

    def __contains__(self, teacher_id: object) -> bool:
        return teacher_id in self._grids
