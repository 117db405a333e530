# skill_repository.py
from __future__ import annotations

from sqlalchemy import delete, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skill_backend.models.skill import Skill


class SkillStoreError(RuntimeError):
    pass


class SkillRepository:
    """List/Create/Delete for the skill table, one statement at a time.

    Each instance wraps the session of a single request. Writes are committed
    immediately so the read that follows sees them.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_skills(self) -> list[Skill]:
        # Ascending id keeps List and Delete responses stable across calls.
        try:
            return self.db.query(Skill).order_by(Skill.skill_id.asc()).all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SkillStoreError(f"Failed to query skill: {exc}") from exc

    def create_skill(self, name: str, description: str) -> Skill:
        try:
            result = self.db.execute(insert(Skill.__table__).values(name=name, description=description))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SkillStoreError(f"Failed to insert skill: {exc}") from exc

        new_id = result.inserted_primary_key[0] if result.inserted_primary_key else None
        if new_id is None:
            raise SkillStoreError("Failed to lookup new skill id: store returned no primary key")

        # Re-read so the response reflects what was stored, not what was sent.
        try:
            created = self.db.query(Skill).filter(Skill.skill_id == int(new_id)).one_or_none()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SkillStoreError(f"Failed to lookup new skill: {exc}") from exc
        if created is None:
            raise SkillStoreError(f"Failed to lookup new skill: no row with skill_id {new_id}")
        return created

    def delete_skill(self, skill_id: int) -> list[Skill]:
        """Delete by id and return what is left.

        A missing id is not an error: the statement simply affects no rows.
        """
        try:
            self.db.execute(delete(Skill).where(Skill.skill_id == skill_id))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SkillStoreError(f"Failed to delete skill: {exc}") from exc
        return self.list_skills()
