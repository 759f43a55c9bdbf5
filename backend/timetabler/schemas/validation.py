from typing import Literal

from pydantic import BaseModel, Field

IssueKind = Literal[
    "double_booking",
    "consecutive_theory",
    "mixed_consecutive",
    "workload_exceeded",
    "teacher_unavailable",
    "credit_mismatch",
    "unknown_subject",
    "unknown_teacher",
]


class ValidationIssue(BaseModel):
    kind: IssueKind
    message: str
    teacher_id: str | None = None
    subject_id: str | None = None
    day: str | None = None
    slot_numbers: list[int] = Field(default_factory=list)
    timetables: list[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
