import logging
from collections import Counter, defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..models import ChecklistItem, Subtask, Task, TaskStatus
from ..timeutil import utcnow
from .calculator import (
    ProgressCounts,
    ProgressInfo,
    ProgressSource,
    is_manual,
    progress_info,
    round_half_up,
    status_baseline,
)
from .notifications import ProgressChannel

logger = logging.getLogger(__name__)


@dataclass
class ProjectProgressStats:
    project_id: str
    tasks: List[ProgressInfo] = field(default_factory=list)
    by_source: Dict[str, int] = field(default_factory=dict)
    average_progress: int = 0


class ProgressSyncService:
    """Keeps stored task progress and its derived counterpart in step.

    Writes happen only on explicit user action (``set_manual``,
    ``reset_to_auto``) or when a status change moves an automatic baseline.
    Everything else recomputes and publishes on the channel without writing.
    A failed write leaves the last published snapshot untouched.
    """

    def __init__(self, db: Session, channel: ProgressChannel):
        self.db = db
        self.channel = channel

    @contextmanager
    def _persistence(self, action: str, task_id: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Progress %s failed task=%s", action, task_id)
            raise PersistenceError(f"Could not {action} progress") from exc

    def _get_task(self, task_id: str) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _done_flags(self, model, task_id: str) -> Tuple[int, int]:
        flags = [row[0] for row in self.db.query(model.is_done).filter(model.task_id == task_id).all()]
        return len(flags), sum(1 for done in flags if done)

    def read_counts(self, task: Task) -> ProgressCounts:
        subtasks_total, subtasks_done = self._done_flags(Subtask, task.id)
        checklist_total, checklist_done = self._done_flags(ChecklistItem, task.id)
        return ProgressCounts(
            subtasks_total=subtasks_total,
            subtasks_done=subtasks_done,
            checklist_total=checklist_total,
            checklist_done=checklist_done,
            status=TaskStatus(task.status),
        )

    def current(self, task_id: str) -> ProgressInfo:
        """Read-only view of a task's progress."""
        with self._persistence("read", task_id):
            task = self._get_task(task_id)
            return progress_info(task.id, self.read_counts(task), task.progress)

    def _store(self, task: Task, percentage: int, action: str) -> None:
        with self._persistence(action, task.id):
            task.progress = percentage
            task.updated_at = utcnow()
            self.db.commit()
            self.db.refresh(task)

    def set_manual(self, task_id: str, percentage: int) -> ProgressInfo:
        """Persist ``percentage`` as an explicit override."""
        if isinstance(percentage, bool) or not isinstance(percentage, int):
            raise ValidationError("Progress must be an integer")
        if not 0 <= percentage <= 100:
            raise ValidationError("Progress must be between 0 and 100")

        sequence = self.channel.next_sequence()
        with self._persistence("read", task_id):
            task = self._get_task(task_id)
            counts = self.read_counts(task)
        self._store(task, percentage, "update")
        logger.info("Manual progress set task=%s progress=%s", task_id, percentage)

        info = progress_info(task.id, counts, task.progress)
        self.channel.publish(task.id, info, sequence=sequence)
        return info

    def reset_to_auto(self, task_id: str) -> ProgressInfo:
        """Store the derived value, ending any manual override."""
        sequence = self.channel.next_sequence()
        with self._persistence("read", task_id):
            task = self._get_task(task_id)
            counts = self.read_counts(task)
        derived = progress_info(task.id, counts, task.progress).calculated_progress
        self._store(task, derived, "reset")
        logger.info("Progress reset to automatic task=%s progress=%s", task_id, derived)

        info = progress_info(task.id, counts, task.progress)
        self.channel.publish(task.id, info, sequence=sequence)
        return info

    def on_related_change(self, task_id: str) -> ProgressInfo:
        """Recompute after a task, subtask or checklist mutation; never writes."""
        sequence = self.channel.next_sequence()
        with self._persistence("read", task_id):
            task = self._get_task(task_id)
            info = progress_info(task.id, self.read_counts(task), task.progress)
        logger.debug(
            "Progress recomputed task=%s stored=%s calculated=%s source=%s",
            task_id,
            info.stored_progress,
            info.calculated_progress,
            info.source.value,
        )
        self.channel.publish(task_id, info, sequence=sequence)
        return info

    def follow_status_change(self, task: Task, previous_status: TaskStatus) -> bool:
        """Move an automatic status baseline along with a status change.

        Applies only to tasks without subtasks or checklist items whose stored
        progress matched the previous status baseline. The caller commits.
        """
        if TaskStatus(task.status) == TaskStatus(previous_status):
            return False
        with self._persistence("read", task.id):
            counts = self.read_counts(task)
        if counts.subtasks_total or counts.checklist_total:
            return False
        if is_manual(task.progress, status_baseline(previous_status)):
            return False
        task.progress = status_baseline(task.status)
        return True

    def project_stats(self, project_id: str, user_id: Optional[str] = None) -> ProjectProgressStats:
        """Progress of every task in a project, grouped by source."""
        with self._persistence("read", project_id):
            query = self.db.query(Task).filter(Task.project_id == project_id)
            if user_id is not None:
                query = query.filter(Task.user_id == user_id)
            tasks = query.order_by(Task.created_at.asc()).all()

            task_ids = [task.id for task in tasks]
            subtasks = self._grouped_flags(Subtask, task_ids)
            checklist = self._grouped_flags(ChecklistItem, task_ids)

        stats = ProjectProgressStats(project_id=project_id)
        for task in tasks:
            sub_total, sub_done = subtasks.get(task.id, (0, 0))
            check_total, check_done = checklist.get(task.id, (0, 0))
            counts = ProgressCounts(sub_total, sub_done, check_total, check_done, TaskStatus(task.status))
            stats.tasks.append(progress_info(task.id, counts, task.progress))

        sources = Counter(info.source for info in stats.tasks)
        stats.by_source = {source.value: sources.get(source, 0) for source in ProgressSource}
        if stats.tasks:
            stats.average_progress = round_half_up(
                Fraction(sum(info.stored_progress for info in stats.tasks), len(stats.tasks))
            )
        return stats

    def _grouped_flags(self, model, task_ids: List[str]) -> Dict[str, Tuple[int, int]]:
        if not task_ids:
            return {}
        grouped = defaultdict(lambda: [0, 0])
        rows = self.db.query(model.task_id, model.is_done).filter(model.task_id.in_(task_ids)).all()
        for task_id, done in rows:
            grouped[task_id][0] += 1
            if done:
                grouped[task_id][1] += 1
        return {task_id: (total, done) for task_id, (total, done) in grouped.items()}
