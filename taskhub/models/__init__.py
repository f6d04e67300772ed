from taskhub.models.enums import UserRole, TaskStatus, TaskPriority
from taskhub.models.task import Task
from taskhub.models.user import User

__all__ = ["UserRole", "TaskStatus", "TaskPriority", "Task", "User"]
