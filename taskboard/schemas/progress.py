from pydantic import BaseModel, StrictInt
from typing import Dict, List

from ..progress import ProgressInfo as ProgressInfoValue
from ..progress import ProjectProgressStats


class ManualProgressUpdate(BaseModel):
    """Body of a manual override; range checks happen in the sync service."""
    progress: StrictInt


class ProgressInfo(BaseModel):
    task_id: str
    stored_progress: int
    calculated_progress: int
    source: str
    description: str
    is_manual: bool
    subtasks_total: int
    subtasks_done: int
    checklist_total: int
    checklist_done: int
    status: str

    @classmethod
    def from_value(cls, info: ProgressInfoValue) -> "ProgressInfo":
        return cls(
            task_id=info.task_id,
            stored_progress=info.stored_progress,
            calculated_progress=info.calculated_progress,
            source=info.source.value,
            description=info.description,
            is_manual=info.is_manual,
            subtasks_total=info.counts.subtasks_total,
            subtasks_done=info.counts.subtasks_done,
            checklist_total=info.counts.checklist_total,
            checklist_done=info.counts.checklist_done,
            status=info.counts.status.value,
        )


class ProjectProgress(BaseModel):
    project_id: str
    average_progress: int
    by_source: Dict[str, int]
    tasks: List[ProgressInfo]

    @classmethod
    def from_stats(cls, stats: ProjectProgressStats) -> "ProjectProgress":
        return cls(
            project_id=stats.project_id,
            average_progress=stats.average_progress,
            by_source=stats.by_source,
            tasks=[ProgressInfo.from_value(info) for info in stats.tasks],
        )
