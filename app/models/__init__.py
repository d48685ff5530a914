from app.models.base import Base
from app.models.org import Organization
from app.models.task import Task

__all__ = [
    "Base",
    "Organization",
    "Task",
]
