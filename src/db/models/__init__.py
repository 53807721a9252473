# SQLAlchemy models
from .base import Base
from .state import DeveloperState, PublishedSkill

__all__ = [
    "Base",
    "DeveloperState",
    "PublishedSkill",
]
