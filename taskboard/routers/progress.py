from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_progress_service
from ..models import User
from ..progress import ProgressSyncService
from ..schemas.progress import ManualProgressUpdate, ProgressInfo, ProjectProgress
from .auth import get_current_user
from .tasks import get_owned_task

router = APIRouter()


@router.get("/tasks/{task_id}/progress", response_model=ProgressInfo)
def get_task_progress(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    """Stored and calculated progress with its source."""
    get_owned_task(db, task_id, current_user)
    return ProgressInfo.from_value(progress.current(task_id))


@router.put("/tasks/{task_id}/progress", response_model=ProgressInfo)
def set_manual_progress(
    task_id: str,
    payload: ManualProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    get_owned_task(db, task_id, current_user)
    return ProgressInfo.from_value(progress.set_manual(task_id, payload.progress))


@router.post("/tasks/{task_id}/progress/reset", response_model=ProgressInfo)
def reset_progress(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    """Drop a manual override and store the calculated value."""
    get_owned_task(db, task_id, current_user)
    return ProgressInfo.from_value(progress.reset_to_auto(task_id))


@router.get("/projects/{project_id}/progress", response_model=ProjectProgress)
def get_project_progress(
    project_id: str,
    current_user: User = Depends(get_current_user),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    stats = progress.project_stats(project_id, user_id=current_user.id)
    return ProjectProgress.from_stats(stats)
