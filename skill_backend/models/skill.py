# skill.py
from sqlalchemy import Column, Integer, Text

from skill_backend.database import Base


class Skill(Base):
    # The table itself is owned by the SQL migrations, not by metadata.create_all.
    __tablename__ = "skill"

    skill_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
