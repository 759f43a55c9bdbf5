from pydantic import BaseModel, Field, field_validator

from timetabler.models.subject import SubjectType


def _dedupe_ids(value: list[str]) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for item in value:
        identifier = item.strip()
        if not identifier or identifier in seen:
            continue
        seen.add(identifier)
        cleaned.append(identifier)
    return cleaned


class SubjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    credits: int = Field(ge=1, le=35)
    type: SubjectType
    semester: int = Field(ge=1, le=20)
    department: str = Field(min_length=1, max_length=200)
    teacher_ids: list[str] = Field(default_factory=list, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("teacher_ids")
    @classmethod
    def normalize_teacher_ids(cls, value: list[str]) -> list[str]:
        return _dedupe_ids(value)


class SubjectCreate(SubjectBase):
    pass


class SubjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    code: str | None = Field(default=None, min_length=1, max_length=50)
    credits: int | None = Field(default=None, ge=1, le=35)
    type: SubjectType | None = None
    semester: int | None = Field(default=None, ge=1, le=20)
    department: str | None = Field(default=None, min_length=1, max_length=200)
    teacher_ids: list[str] | None = Field(default=None, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_optional_code(cls, value: str | None) -> str | None:
        return value.strip().upper() if value is not None else None

    @field_validator("teacher_ids")
    @classmethod
    def normalize_optional_teacher_ids(cls, value: list[str] | None) -> list[str] | None:
        return _dedupe_ids(value) if value is not None else None


class SubjectOut(SubjectBase):
    id: str

    model_config = {"from_attributes": True}
