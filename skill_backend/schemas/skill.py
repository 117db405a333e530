# skill.py
from pydantic import BaseModel, ConfigDict


class SkillOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    skill_id: int
    name: str
    description: str


class SkillFields(BaseModel):
    # Presence of the enclosing "skill" object is the only check; empty values are accepted.
    name: str = ""
    description: str = ""


class SkillCreateRequest(BaseModel):
    skill: SkillFields | None = None


class SkillCreateResponse(BaseModel):
    skill: SkillOut


class SkillListResponse(BaseModel):
    skills: list[SkillOut]
