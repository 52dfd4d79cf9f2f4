from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from ..models.time_entry import EntryType


class TimerStop(BaseModel):
    description: Optional[str] = None


class ManualTimeEntryCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None


class TimeEntry(BaseModel):
    id: str
    task_id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    description: Optional[str] = None
    entry_type: EntryType

    class Config:
        from_attributes = True


class TimerState(BaseModel):
    """Timer view of one task for the current user."""
    is_running: bool
    elapsed_seconds: int
    session_count: int
    active_entry: Optional[TimeEntry] = None
    other_active_task_id: Optional[str] = None
