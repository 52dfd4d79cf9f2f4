import logging
from datetime import datetime
from fractions import Fraction
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotFoundError, PersistenceError, TimerConflictError, ValidationError
from .models import EntryType, Task, TimeEntry
from .progress.calculator import round_half_up
from .timeutil import as_utc, utcnow

logger = logging.getLogger(__name__)


def format_duration(minutes: int) -> str:
    """Format minutes as ``45min``, ``2h`` or ``1h 30min``."""
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def elapsed_seconds(entry: TimeEntry, now: Optional[datetime] = None) -> int:
    end = as_utc(entry.end_time or now or utcnow())
    return max(0, int((end - as_utc(entry.start_time)).total_seconds()))


class TimerService:
    """Start, pause and stop task timers, and log time by hand.

    A user has at most one running entry across all tasks. Closing a timer
    records whole minutes and adds them to the task's actual time.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def active_entry(self, user_id: str, task_id: Optional[str] = None) -> Optional[TimeEntry]:
        query = self.db.query(TimeEntry).filter(
            TimeEntry.user_id == user_id,
            TimeEntry.end_time.is_(None),
        )
        if task_id is not None:
            query = query.filter(TimeEntry.task_id == task_id)
        return query.order_by(TimeEntry.start_time.desc()).first()

    def session_count(self, user_id: str, task_id: str) -> int:
        return (
            self.db.query(TimeEntry)
            .filter(
                TimeEntry.user_id == user_id,
                TimeEntry.task_id == task_id,
                TimeEntry.end_time.is_not(None),
            )
            .count()
        )

    def entries(self, task_id: str) -> List[TimeEntry]:
        return (
            self.db.query(TimeEntry)
            .filter(TimeEntry.task_id == task_id)
            .order_by(TimeEntry.start_time.desc())
            .all()
        )

    def _add_minutes(self, task_id: str, minutes: int, now: datetime) -> None:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if task is not None:
            task.actual_time_minutes = max(0, (task.actual_time_minutes or 0) + minutes)
            task.updated_at = now

    def start(self, user_id: str, task_id: str) -> TimeEntry:
        running = self.active_entry(user_id)
        if running is not None:
            if running.task_id == task_id:
                raise TimerConflictError("Timer already running for this task")
            other = self.db.query(Task).filter(Task.id == running.task_id).first()
            title = other.title if other else "another task"
            raise TimerConflictError(f"Timer already running on '{title}'")

        entry = TimeEntry(
            task_id=task_id,
            user_id=user_id,
            start_time=self.clock(),
            entry_type=EntryType.TIMER,
        )
        try:
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
        except IntegrityError as exc:
            # Another request started a timer between the check and the insert
            self.db.rollback()
            logger.warning("Concurrent timer start rejected task=%s user=%s", task_id, user_id)
            raise TimerConflictError("Timer already running") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Could not start timer task=%s user=%s", task_id, user_id)
            raise PersistenceError("Could not start timer") from exc

        logger.info("Timer started task=%s user=%s entry=%s", task_id, user_id, entry.id)
        return entry

    def pause(self, user_id: str, task_id: str) -> TimeEntry:
        return self._close(user_id, task_id, description=None)

    def stop(self, user_id: str, task_id: str, description: Optional[str] = None) -> TimeEntry:
        return self._close(user_id, task_id, description=description or None)

    def _close(self, user_id: str, task_id: str, description: Optional[str]) -> TimeEntry:
        entry = self.active_entry(user_id, task_id)
        if entry is None:
            raise NotFoundError("No running timer for this task")

        now = self.clock()
        minutes = elapsed_seconds(entry, now) // 60
        try:
            entry.end_time = now
            entry.duration_minutes = minutes
            entry.description = description
            entry.updated_at = now
            self._add_minutes(task_id, minutes, now)
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Could not close timer entry=%s", entry.id)
            raise PersistenceError("Could not stop timer") from exc

        logger.info(
            "Timer closed task=%s user=%s session=%s",
            task_id,
            user_id,
            format_duration(minutes),
        )
        return entry

    def add_manual(
        self,
        user_id: str,
        task_id: str,
        start: datetime,
        end: datetime,
        description: Optional[str] = None,
    ) -> TimeEntry:
        """Log a finished work session; its minutes are rounded half up."""
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise ValidationError("End time must be after start time")

        minutes = round_half_up(Fraction(int((end - start).total_seconds()), 60))
        now = self.clock()
        entry = TimeEntry(
            task_id=task_id,
            user_id=user_id,
            start_time=start,
            end_time=end,
            duration_minutes=minutes,
            description=description or None,
            entry_type=EntryType.MANUAL,
        )
        try:
            self.db.add(entry)
            self._add_minutes(task_id, minutes, now)
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Could not log time task=%s user=%s", task_id, user_id)
            raise PersistenceError("Could not log time entry") from exc

        logger.info("Time logged task=%s user=%s minutes=%s", task_id, user_id, minutes)
        return entry

    def delete_entry(self, task_id: str, entry_id: str) -> None:
        """Remove an entry and take its minutes back off the task."""
        entry = (
            self.db.query(TimeEntry)
            .filter(TimeEntry.id == entry_id, TimeEntry.task_id == task_id)
            .first()
        )
        if entry is None:
            raise NotFoundError("Time entry not found")

        try:
            if entry.duration_minutes:
                self._add_minutes(task_id, -entry.duration_minutes, self.clock())
            self.db.delete(entry)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Could not delete time entry=%s", entry_id)
            raise PersistenceError("Could not delete time entry") from exc

        logger.info("Time entry deleted task=%s entry=%s", task_id, entry_id)
