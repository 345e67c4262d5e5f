from .task import Task, UNASSIGNED
from .user import User

# Export all models for easy importing
__all__ = ["Task", "User", "UNASSIGNED"]
