from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_timer_service
from ..models import User
from ..schemas.time_entry import (
    ManualTimeEntryCreate,
    TimeEntry as TimeEntrySchema,
    TimerState,
    TimerStop,
)
from ..time_tracking import TimerService, elapsed_seconds
from .auth import get_current_user
from .tasks import get_owned_task

router = APIRouter()


@router.get("/tasks/{task_id}/timer", response_model=TimerState)
def get_timer(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    """Timer state of the task for the current user."""
    get_owned_task(db, task_id, current_user)
    running = timers.active_entry(current_user.id)
    on_this_task = running if running is not None and running.task_id == task_id else None
    return TimerState(
        is_running=on_this_task is not None,
        elapsed_seconds=elapsed_seconds(on_this_task, timers.clock()) if on_this_task else 0,
        session_count=timers.session_count(current_user.id, task_id),
        active_entry=TimeEntrySchema.model_validate(on_this_task) if on_this_task else None,
        other_active_task_id=running.task_id if running is not None and on_this_task is None else None,
    )


@router.post("/tasks/{task_id}/timer/start", response_model=TimeEntrySchema, status_code=status.HTTP_201_CREATED)
def start_timer(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    get_owned_task(db, task_id, current_user)
    return timers.start(current_user.id, task_id)


@router.post("/tasks/{task_id}/timer/pause", response_model=TimeEntrySchema)
def pause_timer(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    """Close the running entry without a description."""
    get_owned_task(db, task_id, current_user)
    return timers.pause(current_user.id, task_id)


@router.post("/tasks/{task_id}/timer/stop", response_model=TimeEntrySchema)
def stop_timer(
    task_id: str,
    payload: Optional[TimerStop] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    get_owned_task(db, task_id, current_user)
    description = payload.description if payload is not None else None
    return timers.stop(current_user.id, task_id, description=description)


@router.get("/tasks/{task_id}/time-entries", response_model=List[TimeEntrySchema])
def list_time_entries(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    get_owned_task(db, task_id, current_user)
    return timers.entries(task_id)


@router.post("/tasks/{task_id}/time-entries", response_model=TimeEntrySchema, status_code=status.HTTP_201_CREATED)
def add_time_entry(
    task_id: str,
    payload: ManualTimeEntryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    """Log time worked without the timer."""
    get_owned_task(db, task_id, current_user)
    return timers.add_manual(
        current_user.id,
        task_id,
        payload.start_time,
        payload.end_time,
        description=payload.description,
    )


@router.delete("/tasks/{task_id}/time-entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time_entry(
    task_id: str,
    entry_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    timers: TimerService = Depends(get_timer_service),
):
    get_owned_task(db, task_id, current_user)
    timers.delete_entry(task_id, entry_id)
