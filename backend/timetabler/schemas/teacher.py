from pydantic import BaseModel, Field, field_validator

from timetabler.models.teacher import TeacherRank
from timetabler.services.grid import DAYS, normalize_day


def _normalize_availability(value: list[str]) -> list[str]:
    seen: set[str] = set()
    invalid: list[str] = []
    for item in value:
        if not item.strip():
            continue
        day = normalize_day(item)
        if day not in DAYS:
            invalid.append(item)
            continue
        seen.add(day)
    if invalid:
        raise ValueError(f"Invalid availability day(s): {', '.join(invalid)}")
    return [day for day in DAYS if day in seen]


class TeacherBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    rank: TeacherRank
    department: str = Field(min_length=1, max_length=200)
    max_workload: int = Field(ge=0, le=35)
    availability: list[str] = Field(default_factory=lambda: list(DAYS), max_length=10)

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, value: list[str]) -> list[str]:
        return _normalize_availability(value)


class TeacherCreate(TeacherBase):
    pass


class TeacherUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    rank: TeacherRank | None = None
    department: str | None = Field(default=None, min_length=1, max_length=200)
    max_workload: int | None = Field(default=None, ge=0, le=35)
    availability: list[str] | None = Field(default=None, max_length=10)

    @field_validator("availability")
    @classmethod
    def validate_optional_availability(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return _normalize_availability(value)


class TeacherOut(TeacherBase):
    id: str
    current_workload: int = 0

    model_config = {"from_attributes": True}

    def available_on(self, day: str) -> bool:
        return normalize_day(day) in self.availability
