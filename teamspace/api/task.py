# teamspace/api/task.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from teamspace.schemas.task import (
    BulkResult,
    SubtaskPositionUpdate,
    SubtaskRead,
    SubtaskStatusUpdate,
    TaskBulkDelete,
    TaskBulkUpdate,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from teamspace.schemas.response import SuccessResponse
from teamspace.crud.task import (
    bulk_delete_tasks,
    bulk_update_tasks,
    create_task,
    delete_task,
    get_task,
    get_tasks,
    get_upcoming_tasks,
    update_subtask_position,
    update_subtask_status,
    update_task,
)
from teamspace.crud.project import ensure_project_access, get_project
from teamspace.core.exceptions import BaseAppException
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as DBUser
import logging

router = APIRouter(prefix="/tasks", tags=["Tasks"])
logger = logging.getLogger("Teamspace.TasksAPI")

def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error while {action}: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"An unexpected error occurred while {action}.")

@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def create_new_task(
    data: TaskCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Создать задачу с начальным набором сабтасков.
    """
    try:
        return create_task(db, data.model_dump(), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("creating the task", e)

@router.get("/", response_model=List[TaskRead])
def list_tasks(
    project_id: int = Query(...),
    task_status: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    assignee_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Задачи проекта с фильтрами.
    """
    ensure_project_access(get_project(db, project_id), current_user)
    filters = {"status": task_status, "priority": priority, "assignee_id": assignee_id}
    filters = {k: v for k, v in filters.items() if v is not None}
    return get_tasks(db, project_id, filters)

@router.get("/upcoming", response_model=List[TaskRead])
def list_upcoming_tasks(
    days_ahead: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Незавершённые задачи текущего пользователя с ближайшим сроком.
    """
    return get_upcoming_tasks(db, current_user.id, days_ahead=days_ahead)

@router.post("/bulk_update", response_model=BulkResult)
def bulk_update(
    data: TaskBulkUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Массовое обновление задач (ошибки по отдельным id не прерывают операцию).
    """
    try:
        return bulk_update_tasks(db, data.task_ids, data.updates.model_dump(exclude_unset=True), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("updating tasks", e)

@router.post("/bulk_delete", response_model=BulkResult)
def bulk_delete(
    data: TaskBulkDelete,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return bulk_delete_tasks(db, data.task_ids, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("deleting tasks", e)

@router.patch("/subtasks/{subtask_id}/status", response_model=SubtaskRead)
def change_subtask_status(
    subtask_id: int,
    data: SubtaskStatusUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Сменить статус сабтаска; задача и проект пересчитываются каскадно.
    """
    try:
        return update_subtask_status(db, subtask_id, data.status, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("updating the subtask", e)

@router.patch("/subtasks/{subtask_id}/position", response_model=SubtaskRead)
def change_subtask_position(
    subtask_id: int,
    data: SubtaskPositionUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return update_subtask_position(db, subtask_id, data.position, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("reordering the subtask", e)

@router.get("/{task_id}", response_model=TaskRead)
def get_one_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    task = get_task(db, task_id)
    ensure_project_access(get_project(db, task.project_id), current_user)
    return task

@router.patch("/{task_id}", response_model=TaskRead)
def update_one_task(
    task_id: int,
    data: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Обновить задачу: поля, полная замена сабтасков или переключение одного сабтаска.
    """
    try:
        return update_task(db, task_id, data.model_dump(exclude_unset=True), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("updating the task", e)

@router.delete("/{task_id}", response_model=SuccessResponse)
def delete_one_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        delete_task(db, task_id, current_user)
        return SuccessResponse(result=task_id, detail="Task deleted")
    except BaseAppException:
        raise
    except Exception as e:
        raise _unexpected("deleting the task", e)
