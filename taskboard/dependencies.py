from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .progress import ProgressChannel, ProgressSyncService
from .time_tracking import TimerService

# One channel per process; subscribers are scoped per task id inside it.
progress_channel = ProgressChannel()


def get_progress_channel() -> ProgressChannel:
    return progress_channel


def get_progress_service(
    db: Session = Depends(get_db),
    channel: ProgressChannel = Depends(get_progress_channel),
) -> ProgressSyncService:
    return ProgressSyncService(db, channel)


def get_timer_service(db: Session = Depends(get_db)) -> TimerService:
    return TimerService(db)
