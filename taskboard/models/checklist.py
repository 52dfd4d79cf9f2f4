from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional
from uuid import uuid4

from ..timeutil import utcnow


class Subtask(SQLModel, table=True):
    """A sub-unit of a task with its own completion flag."""
    __tablename__ = "task_subtasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    title: str
    is_done: bool = Field(default=False)
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    task: Optional["Task"] = Relationship(back_populates="subtasks")


class ChecklistItem(SQLModel, table=True):
    """A checklist entry of a task."""
    __tablename__ = "task_checklist"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    title: str
    is_done: bool = Field(default=False)
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    task: Optional["Task"] = Relationship(back_populates="checklist_items")
