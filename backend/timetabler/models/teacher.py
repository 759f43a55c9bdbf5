import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetabler.db.base import Base
from timetabler.services.grid import DAYS


class TeacherRank(str, Enum):
    assistant = "assistant"
    associate = "associate"
    senior = "senior"


class Teacher(Base):
    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    rank: Mapped[TeacherRank] = mapped_column(SAEnum(TeacherRank, name="teacher_rank"), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    max_workload: Mapped[int] = mapped_column(Integer, nullable=False)
    # Cache of the slot count across all timetables; rebuilt by the workload recomputer.
    current_workload: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    availability: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=lambda: list(DAYS))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
