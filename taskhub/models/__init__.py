from taskhub.models.user import User, UserRole
from taskhub.models.task import Task, TaskPriority, TaskStatus
from taskhub.models.project import Project

__all__ = [
    "User",
    "UserRole",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Project",
]
