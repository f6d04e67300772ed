from taskhub.repositories.task_repository import TaskRepository
from taskhub.repositories.user_repository import UserRepository

__all__ = ["TaskRepository", "UserRepository"]
