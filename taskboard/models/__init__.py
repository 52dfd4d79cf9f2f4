from .task import Task, TaskStatus
from .checklist import ChecklistItem, Subtask
from .time_entry import EntryType, TimeEntry
from .user import User

# Export all models for easy importing
__all__ = ["Task", "TaskStatus", "Subtask", "ChecklistItem", "TimeEntry", "EntryType", "User"]
