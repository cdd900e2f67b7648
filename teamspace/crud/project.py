# teamspace/crud/project.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from teamspace.models.project import Project, PROJECT_STATUSES, PROJECT_PRIORITIES, HEALTH_STATUSES
from teamspace.models.task import Task
from teamspace.models.user import User
from teamspace.core.exceptions import (
    BaseAppException,
    NotAuthenticatedError,
    PermissionDeniedError,
    ProjectNotFound,
    ProjectValidationError,
)
from teamspace.crud.activity import record_activity
from teamspace.crud.progress import percent
from teamspace.crud.team import get_team
import logging

logger = logging.getLogger("Teamspace.Projects")

UPDATABLE_FIELDS = [
    "name", "description", "team_id", "parent_id", "status", "priority",
    "health_status", "tags", "category", "start_date", "end_date",
]

def require_actor(actor: Optional[User]) -> User:
    if actor is None:
        raise NotAuthenticatedError()
    return actor

def ensure_project_access(project: Project, actor: User) -> None:
    """
    Доступ к проекту — у участников компании проекта и у суперюзеров.
    """
    if actor.is_superuser:
        return
    if actor.company_id is None or actor.company_id != project.company_id:
        raise PermissionDeniedError("Not enough permissions for the parent project.")

def _validate_choices(data: dict) -> None:
    if data.get("status") is not None and data["status"] not in PROJECT_STATUSES:
        raise ProjectValidationError(f"Invalid project status '{data['status']}'.")
    if data.get("priority") is not None and data["priority"] not in PROJECT_PRIORITIES:
        raise ProjectValidationError(f"Invalid project priority '{data['priority']}'.")
    if data.get("health_status") is not None and data["health_status"] not in HEALTH_STATUSES:
        raise ProjectValidationError(f"Invalid health status '{data['health_status']}'.")
    start, end = data.get("start_date"), data.get("end_date")
    if start and end and as_utc(end) < as_utc(start):
        raise ProjectValidationError("End date cannot be before start date.")

def _validate_refs(db: Session, data: dict, company_id: int, project_id: Optional[int] = None) -> None:
    team_id = data.get("team_id")
    if team_id is not None and get_team(db, team_id).company_id != company_id:
        raise ProjectValidationError("Team belongs to another company.")
    parent_id = data.get("parent_id")
    if parent_id is not None:
        if project_id is not None and parent_id == project_id:
            raise ProjectValidationError("Project cannot be its own parent.")
        if get_project(db, parent_id).company_id != company_id:
            raise ProjectValidationError("Parent project belongs to another company.")

def create_project(db: Session, data: dict, actor: Optional[User]) -> Project:
    """
    Создаёт проект в компании текущего пользователя. Счётчики задач стартуют с нуля.
    """
    actor = require_actor(actor)
    name = (data.get("name") or "").strip()
    if not name:
        raise ProjectValidationError("Project name is required.")
    company_id = data.get("company_id") or actor.company_id
    if company_id is None:
        raise ProjectValidationError("Company is required.")
    if not actor.is_superuser and company_id != actor.company_id:
        raise PermissionDeniedError("Cannot create projects in another company.")
    if not data.get("start_date"):
        raise ProjectValidationError("Start date is required.")
    _validate_choices(data)
    _validate_refs(db, data, company_id)

    status = data.get("status") or "planned"
    project = Project(
        name=name,
        description=data.get("description") or "",
        company_id=company_id,
        team_id=data.get("team_id"),
        parent_id=data.get("parent_id"),
        status=status,
        priority=data.get("priority"),
        health_status=data.get("health_status"),
        tags=data.get("tags") or [],
        category=data.get("category"),
        start_date=data["start_date"],
        end_date=data.get("end_date"),
        progress=0,
        total_tasks=0,
        completed_tasks=0,
        created_by=actor.id,
        completed_at=datetime.now(timezone.utc) if status == "completed" else None,
    )
    db.add(project)
    try:
        db.flush()
        record_activity(
            db,
            user_id=actor.id,
            action_type="Created Project",
            target_id=project.id,
            target_type="project",
            description=f"Project '{project.name}' created",
            metadata={"companyId": company_id, "status": status},
        )
        db.commit()
        db.refresh(project)
        logger.info(f"Created project '{project.name}' (ID: {project.id})")
        return project
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Exception during project save: {e}")
        raise

def get_project(db: Session, project_id: int) -> Project:
    """
    Возвращает проект по ID или поднимает ProjectNotFound.
    """
    project = db.get(Project, project_id) if project_id is not None else None
    if not project:
        raise ProjectNotFound(f"Project with id={project_id} not found.")
    return project

def get_projects(
    db: Session,
    actor: User,
    filters: Optional[Dict[str, Any]] = None,
) -> List[Project]:
    """
    Проекты компании пользователя (суперюзер видит все) с фильтрами.
    """
    query = db.query(Project)
    filters = filters or {}
    if not actor.is_superuser:
        query = query.filter(Project.company_id == actor.company_id)
    if "status" in filters:
        query = query.filter(Project.status == filters["status"])
    if "team_id" in filters:
        query = query.filter(Project.team_id == filters["team_id"])
    if "parent_id" in filters:
        query = query.filter(Project.parent_id == filters["parent_id"])
    if "search" in filters:
        search = f"%{filters['search']}%"
        query = query.filter(Project.name.ilike(search) | Project.description.ilike(search))
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()

def update_project(db: Session, project_id: int, data: dict, actor: Optional[User]) -> Project:
    """
    Обновляет поля проекта. Счётчики задач и progress здесь не редактируются.
    """
    actor = require_actor(actor)
    project = get_project(db, project_id)
    ensure_project_access(project, actor)
    if "name" in data and not (data["name"] or "").strip():
        raise ProjectValidationError("Project name is required.")
    if "start_date" in data and data["start_date"] is None:
        raise ProjectValidationError("Start date is required.")
    _validate_choices({
        **data,
        "start_date": data.get("start_date", project.start_date),
        "end_date": data.get("end_date", project.end_date),
    })
    _validate_refs(db, data, project.company_id, project_id=project.id)

    changes = {}
    for field in UPDATABLE_FIELDS:
        if field in data and getattr(project, field) != data[field]:
            changes[field] = [jsonable(getattr(project, field)), jsonable(data[field])]
            setattr(project, field, data[field].strip() if field == "name" else data[field])
    if "status" in changes:
        project.completed_at = datetime.now(timezone.utc) if project.status == "completed" else None
    project.updated_by = actor.id

    try:
        if changes:
            record_activity(
                db,
                user_id=actor.id,
                action_type="Updated Project",
                target_id=project.id,
                target_type="project",
                description=f"Project '{project.name}' updated",
                metadata={"changes": changes},
            )
        db.commit()
        if changes:
            logger.info(f"Updated project {project.id} fields: {sorted(changes)}")
        else:
            logger.info(f"Update called but no changes for project {project.id}")
        return project
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update project: {e}")
        raise

def _remove_project(db: Session, project: Project, actor: User) -> None:
    record_activity(
        db,
        user_id=actor.id,
        action_type="Deleted Project",
        target_id=project.id,
        target_type="project",
        description=f"Project '{project.name}' deleted",
        metadata={"totalTasks": project.total_tasks, "completedTasks": project.completed_tasks},
    )
    # Подпроекты становятся корневыми
    db.query(Project).filter(Project.parent_id == project.id).update(
        {Project.parent_id: None}, synchronize_session="fetch"
    )
    db.delete(project)
    db.flush()

def delete_project(db: Session, project_id: int, actor: Optional[User]) -> bool:
    """
    Удаляет проект вместе с его задачами и сабтасками.
    """
    actor = require_actor(actor)
    project = get_project(db, project_id)
    ensure_project_access(project, actor)
    try:
        _remove_project(db, project, actor)
        db.commit()
        logger.info(f"Deleted project {project_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete project {project_id}: {e}")
        raise

def bulk_result(processed: int, errors: List[dict], verb: str, noun: str) -> dict:
    """
    Итог bulk-операции: success=False только если ничего не обработано и есть ошибки.
    """
    if errors and processed == 0:
        message = f"Failed to {verb} any {noun}"
    elif errors:
        message = f"Successfully {verb}d {processed} {noun}, but encountered errors with {len(errors)} {noun}"
    else:
        message = f"Successfully {verb}d {processed} {noun}"
    return {
        "success": not (errors and processed == 0),
        "processed_count": processed,
        "errors": errors,
        "message": message,
    }

def bulk_delete_projects(db: Session, project_ids: List[int], actor: Optional[User]) -> dict:
    """
    Удаляет проекты по одному; ошибка по одному id не прерывает остальные.
    """
    actor = require_actor(actor)
    processed = 0
    errors: List[dict] = []
    for project_id in project_ids:
        savepoint = db.begin_nested()
        try:
            project = get_project(db, project_id)
            ensure_project_access(project, actor)
            _remove_project(db, project, actor)
            savepoint.commit()
        except (BaseAppException, SQLAlchemyError) as e:
            savepoint.rollback()
            logger.warning(f"Bulk delete skipped project {project_id}: {e}")
            errors.append({"id": project_id, "error": str(e)})
            continue
        processed += 1
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to commit bulk project delete: {e}")
        raise
    logger.info(f"Bulk deleted {processed} projects ({len(errors)} errors)")
    return bulk_result(processed, errors, "delete", "projects")

def recalculate_project_counters(db: Session, project_id: int, actor: Optional[User]) -> Project:
    """
    Пересчитывает total_tasks/completed_tasks/progress по фактическим задачам проекта.
    """
    actor = require_actor(actor)
    project = get_project(db, project_id)
    ensure_project_access(project, actor)
    total = db.query(func.count(Task.id)).filter(Task.project_id == project.id).scalar() or 0
    completed = (
        db.query(func.count(Task.id))
        .filter(Task.project_id == project.id, Task.status == "completed")
        .scalar()
        or 0
    )
    project.total_tasks = total
    project.completed_tasks = completed
    project.progress = percent(completed, total)
    project.updated_by = actor.id
    try:
        db.commit()
        logger.info(f"Recalculated project {project.id}: {completed}/{total} ({project.progress}%)")
        return project
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to recalculate project {project.id}: {e}")
        raise

def as_utc(value: datetime) -> datetime:
    # SQLite отдаёт naive datetime
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
