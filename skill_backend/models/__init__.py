# __init__.py
from skill_backend.models.skill import Skill

__all__ = [
	"Skill",
]
