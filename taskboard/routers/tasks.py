import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_progress_service
from ..models import ChecklistItem, Subtask, Task as TaskModel, TaskStatus, User
from ..progress import ProgressSyncService
from ..progress.calculator import status_baseline
from ..schemas.task import (
    Item,
    ItemCreate,
    ItemUpdate,
    Task as TaskSchema,
    TaskCreate,
    TaskDetail,
    TaskUpdate,
)
from ..timeutil import utcnow
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

_SORT_FIELDS = {
    "created_at": TaskModel.created_at,
    "title": TaskModel.title,
    "progress": TaskModel.progress,
}


def get_owned_task(db: Session, task_id: str, current_user: User) -> TaskModel:
    task = db.query(TaskModel).filter(TaskModel.id == task_id, TaskModel.user_id == current_user.id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/tasks", response_model=List[TaskSchema])
def get_tasks(
    skip: int = 0,
    limit: int = 100,
    status: str = "all",
    project_id: Optional[str] = None,
    sort: str = "created_at",
    order: str = "desc",
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the user's tasks with optional status/project filtering and sorting."""
    query = db.query(TaskModel).filter(TaskModel.user_id == current_user.id)

    if status != "all":
        try:
            query = query.filter(TaskModel.status == TaskStatus(status))
        except ValueError:
            raise HTTPException(status_code=422, detail="Invalid status filter") from None
    if project_id is not None:
        query = query.filter(TaskModel.project_id == project_id)

    column = _SORT_FIELDS.get(sort)
    if column is None:
        raise HTTPException(status_code=422, detail="Invalid sort field")
    if order not in ("asc", "desc"):
        raise HTTPException(status_code=422, detail="Invalid sort order")
    query = query.order_by(column.asc() if order == "asc" else column.desc())

    return query.offset(skip).limit(limit).all()


@router.post("/tasks", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    """Create a task; without an explicit progress it starts at its status baseline."""
    db_task = TaskModel(
        title=task.title,
        description=task.description,
        status=task.status,
        progress=task.progress if task.progress is not None else status_baseline(task.status),
        project_id=task.project_id,
        estimated_time_minutes=task.estimated_time_minutes,
        user_id=current_user.id,
    )
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    logger.info("Task created id=%s user=%s", db_task.id, current_user.id)

    progress.on_related_change(db_task.id)
    return db_task


@router.get("/tasks/{task_id}", response_model=TaskDetail)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_owned_task(db, task_id, current_user)


@router.put("/tasks/{task_id}", response_model=TaskSchema)
def update_task(
    task_id: str,
    task_update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    """Update task fields; a status change may move an automatic baseline."""
    task = get_owned_task(db, task_id, current_user)
    previous_status = task.status

    for field, value in task_update.model_dump(exclude_unset=True).items():
        if field in ("title", "status") and value is None:
            continue
        setattr(task, field, value)

    if progress.follow_status_change(task, previous_status):
        logger.info("Progress follows status task=%s status=%s", task.id, task.status)
    task.updated_at = utcnow()

    db.commit()
    db.refresh(task)

    progress.on_related_change(task.id)
    return task


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    task = get_owned_task(db, task_id, current_user)
    db.delete(task)
    db.commit()
    progress.channel.forget(task_id)
    logger.info("Task deleted id=%s", task_id)


# Subtasks and checklist items share one shape; only the model differs.

def _add_item(db: Session, model, task: TaskModel, payload: ItemCreate):
    last = db.query(func.max(model.position)).filter(model.task_id == task.id).scalar()
    item = model(
        task_id=task.id,
        title=payload.title,
        is_done=payload.is_done,
        position=0 if last is None else last + 1,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def _get_item(db: Session, model, task: TaskModel, item_id: str):
    item = db.query(model).filter(model.id == item_id, model.task_id == task.id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


def _update_item(db: Session, model, task: TaskModel, item_id: str, payload: ItemUpdate):
    item = _get_item(db, model, task, item_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


def _delete_item(db: Session, model, task: TaskModel, item_id: str) -> None:
    item = _get_item(db, model, task, item_id)
    db.delete(item)
    db.commit()


@router.post("/tasks/{task_id}/subtasks", response_model=Item, status_code=status.HTTP_201_CREATED)
def create_subtask(
    task_id: str,
    payload: ItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    task = get_owned_task(db, task_id, current_user)
    item = _add_item(db, Subtask, task, payload)
    progress.on_related_change(task.id)
    return item


@router.patch("/tasks/{task_id}/subtasks/{subtask_id}", response_model=Item)
def update_subtask(
    task_id: str,
    subtask_id: str,
    payload: ItemUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    """Rename a subtask or toggle its completion flag."""
    task = get_owned_task(db, task_id, current_user)
    item = _update_item(db, Subtask, task, subtask_id, payload)
    progress.on_related_change(task.id)
    return item


@router.delete("/tasks/{task_id}/subtasks/{subtask_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subtask(
    task_id: str,
    subtask_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    task = get_owned_task(db, task_id, current_user)
    _delete_item(db, Subtask, task, subtask_id)
    progress.on_related_change(task.id)


@router.post("/tasks/{task_id}/checklist", response_model=Item, status_code=status.HTTP_201_CREATED)
def create_checklist_item(
    task_id: str,
    payload: ItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    task = get_owned_task(db, task_id, current_user)
    item = _add_item(db, ChecklistItem, task, payload)
    progress.on_related_change(task.id)
    return item


@router.patch("/tasks/{task_id}/checklist/{item_id}", response_model=Item)
def update_checklist_item(
    task_id: str,
    item_id: str,
    payload: ItemUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    task = get_owned_task(db, task_id, current_user)
    item = _update_item(db, ChecklistItem, task, item_id, payload)
    progress.on_related_change(task.id)
    return item


@router.delete("/tasks/{task_id}/checklist/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_checklist_item(
    task_id: str,
    item_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    progress: ProgressSyncService = Depends(get_progress_service),
):
    task = get_owned_task(db, task_id, current_user)
    _delete_item(db, ChecklistItem, task, item_id)
    progress.on_related_change(task.id)
