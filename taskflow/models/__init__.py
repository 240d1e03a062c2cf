from .task import Task, TaskAssignment, TaskPriority, TaskStatus
from .user import User, UserRole

# Export all models for easy importing
__all__ = ["Task", "TaskAssignment", "TaskPriority", "TaskStatus", "User", "UserRole"]
