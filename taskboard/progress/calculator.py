"""Derived task progress and manual-override detection.

Progress is derived from, in order of precedence: subtasks only, checklist
only, the average of both, or a fixed baseline per task status. A stored
value that drifts more than ``MANUAL_THRESHOLD`` points from the derived one
is reported as a manual override.
"""

import enum
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Tuple, Union

from ..models.task import TaskStatus

MANUAL_THRESHOLD = 5


class ProgressSource(str, enum.Enum):
    SUBTASKS = "subtasks"
    CHECKLIST = "checklist"
    HYBRID = "hybrid"
    STATUS = "status"
    MANUAL = "manual"


STATUS_PROGRESS: Dict[TaskStatus, int] = {
    TaskStatus.PENDING: 10,
    TaskStatus.IN_PROGRESS: 50,
    TaskStatus.REVIEW: 80,
    TaskStatus.COMPLETED: 100,
}


@dataclass(frozen=True)
class ProgressCounts:
    """Live completion counts of one task."""

    subtasks_total: int
    subtasks_done: int
    checklist_total: int
    checklist_done: int
    status: TaskStatus


@dataclass(frozen=True)
class ProgressInfo:
    """What the UI shows for a task: stored value, derived value and provenance."""

    task_id: str
    stored_progress: int
    calculated_progress: int
    source: ProgressSource
    description: str
    is_manual: bool
    counts: ProgressCounts


def round_half_up(value: Union[Fraction, int]) -> int:
    return math.floor(Fraction(value) + Fraction(1, 2))


def _percent(done: int, total: int) -> Fraction:
    return Fraction(done * 100, total)


def status_baseline(status: TaskStatus) -> int:
    return STATUS_PROGRESS[TaskStatus(status)]


def derive(
    subtasks_total: int,
    subtasks_done: int,
    checklist_total: int,
    checklist_done: int,
    status: TaskStatus,
) -> Tuple[int, ProgressSource]:
    """Return the expected progress percentage and where it came from."""
    percentage, source, _ = _derive_with_description(
        subtasks_total, subtasks_done, checklist_total, checklist_done, status
    )
    return percentage, source


def _derive_with_description(
    subtasks_total: int,
    subtasks_done: int,
    checklist_total: int,
    checklist_done: int,
    status: TaskStatus,
) -> Tuple[int, ProgressSource, str]:
    if subtasks_total > 0 and checklist_total == 0:
        return (
            round_half_up(_percent(subtasks_done, subtasks_total)),
            ProgressSource.SUBTASKS,
            f"{subtasks_done}/{subtasks_total} subtasks done",
        )
    if checklist_total > 0 and subtasks_total == 0:
        return (
            round_half_up(_percent(checklist_done, checklist_total)),
            ProgressSource.CHECKLIST,
            f"{checklist_done}/{checklist_total} checklist items done",
        )
    if subtasks_total > 0 and checklist_total > 0:
        # Average of the two percentages, not of the pooled item counts.
        subtask_pct = _percent(subtasks_done, subtasks_total)
        checklist_pct = _percent(checklist_done, checklist_total)
        return (
            round_half_up((subtask_pct + checklist_pct) / 2),
            ProgressSource.HYBRID,
            f"Average of subtasks ({round_half_up(subtask_pct)}%) "
            f"and checklist ({round_half_up(checklist_pct)}%)",
        )
    status = TaskStatus(status)
    return (
        status_baseline(status),
        ProgressSource.STATUS,
        f"Based on task status: {status.value}",
    )


def is_manual(stored: int, derived: int) -> bool:
    return abs(stored - derived) > MANUAL_THRESHOLD


def progress_info(task_id: str, counts: ProgressCounts, stored: int) -> ProgressInfo:
    """Derive progress for ``counts`` and classify ``stored`` against it."""
    calculated, source, description = _derive_with_description(
        counts.subtasks_total,
        counts.subtasks_done,
        counts.checklist_total,
        counts.checklist_done,
        counts.status,
    )
    manual = is_manual(stored, calculated)
    if manual:
        source = ProgressSource.MANUAL
        description = "Progress set manually"
    return ProgressInfo(
        task_id=task_id,
        stored_progress=stored,
        calculated_progress=calculated,
        source=source,
        description=description,
        is_manual=manual,
        counts=counts,
    )
