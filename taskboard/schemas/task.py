from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from ..models.task import TaskStatus


class TaskBase(BaseModel):
    """Base task schema with common fields."""
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    project_id: Optional[str] = None
    estimated_time_minutes: Optional[int] = Field(default=None, ge=0)


class TaskCreate(TaskBase):
    """Schema for creating new tasks.

    ``progress`` defaults to the baseline of the initial status.
    """
    progress: Optional[int] = Field(default=None, ge=0, le=100)


class TaskUpdate(BaseModel):
    """Schema for updating existing tasks; progress has its own endpoints."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    project_id: Optional[str] = None
    estimated_time_minutes: Optional[int] = Field(default=None, ge=0)


class ItemCreate(BaseModel):
    """Schema for adding a subtask or checklist item."""
    title: str = Field(min_length=1)
    is_done: bool = False


class ItemUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    is_done: Optional[bool] = None


class Item(BaseModel):
    id: str
    task_id: str
    title: str
    is_done: bool
    position: int
    created_at: datetime

    class Config:
        from_attributes = True


class Task(TaskBase):
    """Complete task schema with all fields."""
    id: str
    progress: int
    actual_time_minutes: int
    created_at: datetime
    updated_at: datetime
    user_id: str

    class Config:
        from_attributes = True


class TaskDetail(Task):
    """Task with its subtasks and checklist."""
    subtasks: List[Item] = []
    checklist_items: List[Item] = []
