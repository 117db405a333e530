# dependencies.py
from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from skill_backend.services.skill_repository import SkillRepository


def get_db(request: Request) -> Generator[Session, None, None]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_skill_repository(db: Session = Depends(get_db)) -> SkillRepository:
    return SkillRepository(db)
