from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import List
from uuid import uuid4

from ..timeutil import utcnow


class User(SQLModel, table=True):
    """Agency team member; owns tasks and time entries."""
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    tasks: List["Task"] = Relationship(back_populates="user")
    time_entries: List["TimeEntry"] = Relationship(back_populates="user")
