from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional, List
from uuid import uuid4
import enum

from ..timeutil import utcnow


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"


class Task(SQLModel, table=True):
    """Task owned by a user, optionally grouped under a project.

    ``progress`` is the stored percentage shown to users. It is either the
    derived value or a manual override; which one is inferred on every read.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str
    description: Optional[str] = None
    status: TaskStatus = Field(default=TaskStatus.PENDING, sa_column_kwargs={"nullable": False})
    progress: int = Field(default=0, ge=0, le=100)
    project_id: Optional[str] = Field(default=None, index=True)
    estimated_time_minutes: Optional[int] = None
    actual_time_minutes: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    user_id: str = Field(foreign_key="users.id", index=True)

    user: Optional["User"] = Relationship(back_populates="tasks")
    subtasks: List["Subtask"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Subtask.position"},
    )
    checklist_items: List["ChecklistItem"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "ChecklistItem.position"},
    )
    time_entries: List["TimeEntry"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
