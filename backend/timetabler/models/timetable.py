import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetabler.db.base import Base


class Timetable(Base):
    __tablename__ = "timetables"
    __table_args__ = (
        UniqueConstraint("semester", "department", "section", name="uq_timetables_class"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    section: Mapped[str] = mapped_column(String(50), nullable=False)
    cluster: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # [{"day": "Monday", "slots": [{"slotNumber": 1, "subject": "<id>", "teachers": ["<id>"]}]}]
    schedule: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
