"""Fixed weekly grid shared by the occupancy index, generator and validator.

Break periods are not represented; slots are the seven numbered teaching
periods of each weekday.
"""

from __future__ import annotations

from typing import Any

DAYS: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
SLOTS_PER_DAY = 7
SLOT_NUMBERS: tuple[int, ...] = tuple(range(1, SLOTS_PER_DAY + 1))

# Slot 6 starts two different pairs; kept as the institution defines it.
LAB_SLOT_PAIRS: tuple[tuple[int, int], ...] = ((1, 2), (3, 4), (5, 6), (6, 7))

DAY_SHORT_MAP = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
}


def normalize_day(value: str) -> str:
    cleaned = value.strip()
    lowered = cleaned.lower()
    if lowered in DAY_SHORT_MAP:
        return DAY_SHORT_MAP[lowered]
    for day in DAYS:
        if day.lower() == lowered:
            return day
    return cleaned


def lab_partner_slot(slot_number: int) -> int | None:
    """Second slot of the lab pair starting at ``slot_number``, if it is a valid start."""
    for start, end in LAB_SLOT_PAIRS:
        if start == slot_number:
            return end
    return None


def reference_id(reference: Any) -> str:
    """Identity of a subject/teacher reference given either as a bare id or an expanded record."""
    if isinstance(reference, dict):
        value = reference.get("id") or reference.get("_id")
        if value is None:
            raise ValueError("Reference record has no id")
        return str(value)
    for attribute in ("id", "_id"):
        value = getattr(reference, attribute, None)
        if value is not None:
            return str(value)
    return str(reference)


def timetable_label(department: str, semester: int, section: str) -> str:
    return f"{department} - Semester {semester} - Section {section}"
