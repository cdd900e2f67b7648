# teamspace/api/project.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from teamspace.schemas.project import ProjectCreate, ProjectRead, ProjectUpdate, ProjectBulkDelete
from teamspace.schemas.task import BulkResult
from teamspace.schemas.response import SuccessResponse
from teamspace.crud.project import (
    bulk_delete_projects,
    create_project,
    delete_project,
    ensure_project_access,
    get_project,
    get_projects,
    recalculate_project_counters,
    update_project,
)
from teamspace.core.exceptions import BaseAppException
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as DBUser
import logging

router = APIRouter(prefix="/projects", tags=["Projects"])
logger = logging.getLogger("Teamspace.ProjectsAPI")

@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_new_project(
    data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Создать новый проект.
    """
    try:
        return create_project(db, data.model_dump(), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in create_new_project: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred while creating the project.")

@router.get("/", response_model=List[ProjectRead])
def list_projects(
    project_status: Optional[str] = Query(None, alias="status"),
    team_id: Optional[int] = Query(None),
    parent_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Получить список проектов с фильтрацией.
    """
    filters = {
        "status": project_status,
        "team_id": team_id,
        "parent_id": parent_id,
        "search": search,
    }
    filters = {k: v for k, v in filters.items() if v is not None}
    return get_projects(db, current_user, filters)

@router.post("/bulk_delete", response_model=BulkResult)
def bulk_delete(
    data: ProjectBulkDelete,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Массовое удаление проектов.
    """
    try:
        return bulk_delete_projects(db, data.ids, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in bulk_delete: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred during bulk deletion.")

@router.get("/{project_id}", response_model=ProjectRead)
def get_one_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Получить проект по ID.
    """
    project = get_project(db, project_id)
    ensure_project_access(project, current_user)
    return project

@router.patch("/{project_id}", response_model=ProjectRead)
def update_one_project(
    project_id: int,
    data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Обновить проект.
    """
    try:
        return update_project(db, project_id, data.model_dump(exclude_unset=True), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to update project {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred during project update.")

@router.delete("/{project_id}", response_model=SuccessResponse)
def delete_one_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Удалить проект вместе с задачами.
    """
    try:
        delete_project(db, project_id, current_user)
        return SuccessResponse(result=project_id, detail="Project deleted")
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete project {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred during project deletion.")

@router.post("/{project_id}/recalculate", response_model=ProjectRead)
def recalculate(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Пересчитать счётчики проекта по фактическим задачам.
    """
    try:
        return recalculate_project_counters(db, project_id, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to recalculate project {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred during recalculation.")
