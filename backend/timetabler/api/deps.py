from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from timetabler.db.session import SessionLocal
from timetabler.services.store import TimetableStore


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> TimetableStore:
    return TimetableStore(db)
