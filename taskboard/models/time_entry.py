from sqlalchemy import DateTime, Index, text
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional
from uuid import uuid4
import enum

from ..timeutil import utcnow


class EntryType(str, enum.Enum):
    TIMER = "timer"
    MANUAL = "manual"


class TimeEntry(SQLModel, table=True):
    """One work session of a user on a task.

    A running timer is an entry whose ``end_time`` is still empty.
    """
    __tablename__ = "time_entries"
    __table_args__ = (
        # At most one running timer per user
        Index(
            "uq_time_entries_running_user",
            "user_id",
            unique=True,
            sqlite_where=text("end_time IS NULL"),
            postgresql_where=text("end_time IS NULL"),
        ),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    start_time: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    end_time: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=True))
    duration_minutes: Optional[int] = None
    description: Optional[str] = None
    entry_type: EntryType = Field(default=EntryType.TIMER, sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    task: Optional["Task"] = Relationship(back_populates="time_entries")
    user: Optional["User"] = Relationship(back_populates="time_entries")
