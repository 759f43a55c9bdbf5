from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from timetabler.schemas.subject import SubjectOut
from timetabler.services.grid import DAYS, SLOTS_PER_DAY, normalize_day, reference_id, timetable_label


class SlotEntry(BaseModel):
    slot_number: int = Field(alias="slotNumber", ge=1, le=SLOTS_PER_DAY)
    subject: str = Field(min_length=1, max_length=36)
    teachers: list[str] = Field(default_factory=list, max_length=20)

    model_config = {"populate_by_name": True}

    @field_validator("subject", mode="before")
    @classmethod
    def normalize_subject_reference(cls, value: Any) -> str:
        return reference_id(value)

    @field_validator("teachers", mode="before")
    @classmethod
    def normalize_teacher_references(cls, value: Any) -> list[str]:
        if value is None:
            return []
        seen: set[str] = set()
        normalized: list[str] = []
        for item in value:
            identifier = reference_id(item)
            if identifier in seen:
                continue
            seen.add(identifier)
            normalized.append(identifier)
        return normalized


class DayEntry(BaseModel):
    day: str
    slots: list[SlotEntry] = Field(default_factory=list)

    @field_validator("day")
    @classmethod
    def validate_day(cls, value: str) -> str:
        day = normalize_day(value)
        if day not in DAYS:
            raise ValueError(f"Invalid day value: {value}")
        return day

    @model_validator(mode="after")
    def validate_unique_slots(self) -> "DayEntry":
        seen: set[int] = set()
        for slot in self.slots:
            if slot.slot_number in seen:
                raise ValueError(f"{self.day} lists slot {slot.slot_number} more than once")
            seen.add(slot.slot_number)
        self.slots.sort(key=lambda item: item.slot_number)
        return self


class TimetableBase(BaseModel):
    semester: int = Field(ge=1, le=20)
    department: str = Field(min_length=1, max_length=200)
    section: str = Field(min_length=1, max_length=50)
    cluster: str | None = Field(default=None, max_length=100)
    schedule: list[DayEntry] = Field(default_factory=list, max_length=len(DAYS))

    @model_validator(mode="after")
    def validate_unique_days(self) -> "TimetableBase":
        seen: set[str] = set()
        for entry in self.schedule:
            if entry.day in seen:
                raise ValueError(f"{entry.day} appears more than once in the schedule")
            seen.add(entry.day)
        # Always one entry per weekday; unoccupied days carry no slots.
        self.schedule.extend(DayEntry(day=day) for day in DAYS if day not in seen)
        self.schedule.sort(key=lambda item: DAYS.index(item.day))
        return self

    @property
    def label(self) -> str:
        return timetable_label(self.department, self.semester, self.section)

    def schedule_document(self) -> list[dict]:
        return [entry.model_dump(by_alias=True) for entry in self.schedule]


class TimetableCreate(TimetableBase):
    pass


class TimetableUpdate(BaseModel):
    semester: int | None = Field(default=None, ge=1, le=20)
    department: str | None = Field(default=None, min_length=1, max_length=200)
    section: str | None = Field(default=None, min_length=1, max_length=50)
    cluster: str | None = Field(default=None, max_length=100)
    schedule: list[DayEntry] | None = Field(default=None, max_length=len(DAYS))


class TimetableCandidate(TimetableBase):
    """A timetable under validation; ``id`` is set when it replaces a persisted one."""

    id: str | None = None


class TimetableOut(TimetableBase):
    id: str

    model_config = {"from_attributes": True}


class TeacherScheduleEntry(BaseModel):
    day: str
    slot_number: int = Field(alias="slotNumber")
    subject_id: str
    subject: SubjectOut | None = None
    timetable_id: str
    timetable: str

    model_config = {"populate_by_name": True}
