from pydantic import BaseModel, Field, field_validator

from timetabler.schemas.timetable import DayEntry, TimetableOut
from timetabler.schemas.validation import ValidationIssue, ValidationReport
from timetabler.services.grid import reference_id


class SubjectSelection(BaseModel):
    subject: str = Field(min_length=1, max_length=36)
    teachers: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("subject", mode="before")
    @classmethod
    def normalize_subject(cls, value) -> str:
        return reference_id(value)

    @field_validator("teachers", mode="before")
    @classmethod
    def normalize_teachers(cls, value) -> list[str]:
        return [reference_id(item) for item in (value or [])]


class GenerateTimetableRequest(BaseModel):
    semester: int = Field(ge=1, le=20)
    department: str = Field(min_length=1, max_length=200)
    section: str = Field(min_length=1, max_length=50)
    cluster: str | None = Field(default=None, max_length=100)
    selected_subjects: list[SubjectSelection] = Field(alias="selectedSubjects", min_length=1, max_length=40)

    model_config = {"populate_by_name": True}


class GeneratedSchedule(BaseModel):
    semester: int
    department: str
    section: str
    cluster: str | None = None
    schedule: list[DayEntry]
    soft_score: int = 0
    nodes_visited: int = 0


class GeneratePreviewResponse(BaseModel):
    generated: GeneratedSchedule
    report: ValidationReport


class GenerateTimetableResponse(BaseModel):
    timetable: TimetableOut
    message: str
    soft_score: int
    warnings: list[ValidationIssue] = Field(default_factory=list)
