# __init__.py
from skill_backend.schemas.skill import SkillCreateRequest, SkillCreateResponse, SkillFields, SkillListResponse, SkillOut

__all__ = [
	"SkillCreateRequest",
	"SkillCreateResponse",
	"SkillFields",
	"SkillListResponse",
	"SkillOut",
]
