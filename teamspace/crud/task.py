# teamspace/crud/task.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from teamspace.models.task import Task, Subtask, TASK_STATUSES, TASK_PRIORITIES
from teamspace.models.user import User
from teamspace.core.exceptions import (
    BaseAppException,
    SubtaskNotFound,
    TaskNotFound,
    TaskValidationError,
)
from teamspace.crud.activity import record_activity
from teamspace.crud.progress import (
    COMPLETED,
    ProjectDelta,
    apply_project_delta,
    completion_edge,
    rollup_subtasks,
    set_status,
)
from teamspace.crud.project import (
    as_utc,
    bulk_result,
    ensure_project_access,
    get_project,
    jsonable,
    require_actor,
)
from teamspace.crud.user import get_user
import logging

logger = logging.getLogger("Teamspace.Tasks")

PLAIN_FIELDS = ["name", "description", "priority", "due_date"]
BULK_FIELDS = {"assignee_id", "status", "priority", "due_date"}

# ==== Валидация ====

def _validate_status(status: Optional[str]) -> None:
    if status is not None and status not in TASK_STATUSES:
        raise TaskValidationError(f"Invalid status '{status}'.")

def _validate_priority(priority: Optional[str]) -> None:
    if priority is not None and priority not in TASK_PRIORITIES:
        raise TaskValidationError(f"Invalid priority '{priority}'.")

def _validate_subtask_items(items: Optional[List[dict]]) -> None:
    """
    Набор сабтасков не может быть пустым; у каждого должен быть label.
    """
    if not items:
        raise TaskValidationError("A task must have at least one subtask.")
    for item in items:
        if not (item.get("label") or "").strip():
            raise TaskValidationError("Subtask label is required.")
        _validate_status(item.get("status"))

def _same(old: Any, new: Any) -> bool:
    if isinstance(old, datetime) and isinstance(new, datetime):
        return as_utc(old) == as_utc(new)
    return old == new

# ==== Чтение ====

def get_task(db: Session, task_id: int) -> Task:
    """
    Получить задачу по ID (поднимает TaskNotFound).
    """
    task = db.get(Task, task_id) if task_id is not None else None
    if not task:
        raise TaskNotFound(f"Task {task_id} not found.")
    return task

def get_subtask(db: Session, subtask_id: int) -> Subtask:
    subtask = db.get(Subtask, subtask_id) if subtask_id is not None else None
    if not subtask:
        raise SubtaskNotFound(f"Subtask {subtask_id} not found.")
    return subtask

def get_tasks(db: Session, project_id: int, filters: Optional[Dict[str, Any]] = None) -> List[Task]:
    """
    Задачи проекта с фильтрами по статусу, приоритету и исполнителю.
    """
    filters = filters or {}
    query = db.query(Task).filter(Task.project_id == project_id)
    if "status" in filters:
        query = query.filter(Task.status == filters["status"])
    if "priority" in filters:
        query = query.filter(Task.priority == filters["priority"])
    if "assignee_id" in filters:
        query = query.filter(Task.assignee_id == filters["assignee_id"])
    return query.order_by(Task.created_at.asc(), Task.id.asc()).all()

def get_upcoming_tasks(db: Session, user_id: int, days_ahead: int = 7) -> List[Task]:
    """
    Незавершённые задачи пользователя со сроком в ближайшие days_ahead дней.
    """
    now = datetime.now(timezone.utc)
    until = now + timedelta(days=days_ahead)
    return (
        db.query(Task)
        .filter(
            Task.assignee_id == user_id,
            Task.due_date > now,
            Task.due_date < until,
            Task.status != COMPLETED,
        )
        .order_by(Task.due_date.asc())
        .all()
    )

# ==== Внутренние шаги ====

def _log_assignment(db: Session, task: Task, old_assignee: Optional[int], new_assignee: Optional[int], actor: User) -> None:
    if old_assignee is not None:
        record_activity(
            db,
            user_id=old_assignee,
            action_type="Removed from Task",
            target_id=task.id,
            target_type="task",
            description=f"Removed from task '{task.name}'",
            metadata={"taskId": task.id, "projectId": task.project_id, "changedBy": actor.id},
        )
    if new_assignee is not None:
        record_activity(
            db,
            user_id=new_assignee,
            action_type="Assigned to Task",
            target_id=task.id,
            target_type="task",
            description=f"Assigned to task '{task.name}'",
            metadata={"taskId": task.id, "projectId": task.project_id, "assignedBy": actor.id},
        )

def _log_subtask(db: Session, action_type: str, subtask: Subtask, task: Task, actor: User, **extra) -> None:
    record_activity(
        db,
        user_id=actor.id,
        action_type=action_type,
        target_id=task.id,
        target_type="task",
        description=f"{action_type}: '{subtask.label}'",
        metadata={"subtaskId": subtask.id, "taskId": task.id, "label": subtask.label, "status": subtask.status, **extra},
    )

def _replace_subtasks(db: Session, task: Task, items: List[dict], actor: User) -> None:
    """
    Полная замена набора сабтасков: сравнение по id → added / removed / updated.
    """
    current = {s.id: s for s in task.subtasks}
    kept_ids = {item.get("id") for item in items if item.get("id") in current}

    for subtask_id, subtask in current.items():
        if subtask_id not in kept_ids:
            _log_subtask(db, "Removed Subtask", subtask, task, actor)
            task.subtasks.remove(subtask)

    for index, item in enumerate(items):
        label = item["label"].strip()
        existing = current.get(item.get("id"))
        if existing is None:
            subtask = Subtask(
                label=label,
                position=item.get("position") if item.get("position") is not None else index,
                created_by=actor.id,
            )
            set_status(subtask, item.get("status") or "todo", actor.id)
            task.subtasks.append(subtask)
            db.flush()
            _log_subtask(db, "Added Subtask", subtask, task, actor)
            continue

        diff = {}
        if existing.label != label:
            diff["label"] = [existing.label, label]
            existing.label = label
        if item.get("status") is not None and existing.status != item["status"]:
            diff["status"] = [existing.status, item["status"]]
            set_status(existing, item["status"], actor.id)
        if item.get("position") is not None and existing.position != item["position"]:
            diff["position"] = [existing.position, item["position"]]
            existing.position = item["position"]
        if diff:
            _log_subtask(db, "Updated Subtask", existing, task, actor, changes=diff)

def _toggle_subtask(db: Session, task: Task, subtask: Subtask, actor: User) -> None:
    """
    Бинарное переключение todo ↔ completed.
    """
    old_status = subtask.status
    set_status(subtask, "todo" if old_status == COMPLETED else COMPLETED, actor.id)
    _log_subtask(db, "Updated Subtask", subtask, task, actor, changes={"status": [old_status, subtask.status]})

def _log_completion_edge(db: Session, task: Task, edge: int, actor: User) -> None:
    if edge == 0:
        return
    action_type = "Completed Task" if edge > 0 else "Reopened Task"
    record_activity(
        db,
        user_id=actor.id,
        action_type=action_type,
        target_id=task.id,
        target_type="task",
        description=f"{action_type} '{task.name}'",
        metadata={"taskId": task.id, "projectId": task.project_id, "progress": task.progress},
    )

def _apply_task_changes(
    db: Session,
    task: Task,
    data: dict,
    actor: User,
    toggle_target: Optional[Subtask] = None,
) -> int:
    """
    Применяет изменения к задаче (поля, сабтаски, статус) и пишет активность.
    Возвращает переход по completed: +1 / -1 / 0 — для счётчиков проекта.
    """
    prior_status = task.status
    changes: Dict[str, list] = {}

    for field in PLAIN_FIELDS:
        if field in data and not _same(getattr(task, field), data[field]):
            value = data[field].strip() if field == "name" else data[field]
            changes[field] = [jsonable(getattr(task, field)), jsonable(value)]
            setattr(task, field, value)

    if "assignee_id" in data and data["assignee_id"] != task.assignee_id:
        old_assignee = task.assignee_id
        if data["assignee_id"] is not None:
            get_user(db, data["assignee_id"])
        task.assignee_id = data["assignee_id"]
        changes["assignee_id"] = [old_assignee, task.assignee_id]
        _log_assignment(db, task, old_assignee, task.assignee_id, actor)

    if data.get("status") is not None:
        set_status(task, data["status"], actor.id)

    subtasks_changed = False
    if data.get("subtasks") is not None:
        _replace_subtasks(db, task, data["subtasks"], actor)
        subtasks_changed = True
    elif toggle_target is not None:
        _toggle_subtask(db, task, toggle_target, actor)
        subtasks_changed = True

    if subtasks_changed:
        db.flush()
        rollup_subtasks(task, prior_status, actor.id)

    if task.status != prior_status:
        changes["status"] = [prior_status, task.status]
    if changes:
        record_activity(
            db,
            user_id=actor.id,
            action_type="Updated Task",
            target_id=task.id,
            target_type="task",
            description=f"Task '{task.name}' updated",
            metadata={"taskId": task.id, "projectId": task.project_id, "changes": changes},
        )

    edge = completion_edge(prior_status, task.status)
    _log_completion_edge(db, task, edge, actor)
    db.flush()
    return edge

def _remove_task(db: Session, task: Task, actor: User) -> ProjectDelta:
    """
    Каскадное удаление задачи и её сабтасков. Возвращает дельту для проекта.
    """
    for subtask in list(task.subtasks):
        _log_subtask(db, "Subtask Deleted", subtask, task, actor)
    was_completed = task.status == COMPLETED
    record_activity(
        db,
        user_id=actor.id,
        action_type="Deleted Task",
        target_id=task.id,
        target_type="task",
        description=f"Task '{task.name}' deleted",
        metadata={"taskId": task.id, "projectId": task.project_id, "status": task.status},
    )
    if task.assignee_id is not None:
        record_activity(
            db,
            user_id=task.assignee_id,
            action_type="Removed from Task",
            target_id=task.id,
            target_type="task",
            description=f"Task '{task.name}' you were assigned to was deleted",
            metadata={"taskId": task.id, "projectId": task.project_id, "deletedBy": actor.id},
        )
    db.delete(task)
    db.flush()
    return ProjectDelta(total=-1, completed=-1 if was_completed else 0)

# ==== Мутации ====

def create_task(db: Session, data: dict, actor: Optional[User]) -> Task:
    """
    Создаёт задачу вместе с начальным набором сабтасков (минимум один).
    Все начальные сабтаски получают статус todo.
    """
    actor = require_actor(actor)
    subtask_items = data.get("subtasks") or []
    _validate_subtask_items(subtask_items)
    name = (data.get("name") or "").strip()
    if not name:
        raise TaskValidationError("Task name is required.")
    status = data.get("status") or "todo"
    priority = data.get("priority") or "medium"
    _validate_status(status)
    _validate_priority(priority)

    project = get_project(db, data.get("project_id"))
    ensure_project_access(project, actor)
    assignee_id = data.get("assignee_id")
    if assignee_id is not None:
        get_user(db, assignee_id)

    try:
        task = Task(
            project_id=project.id,
            name=name,
            description=data.get("description"),
            assignee_id=assignee_id,
            priority=priority,
            due_date=data.get("due_date"),
            progress=0,
            created_by=actor.id,
        )
        set_status(task, status, actor.id)
        for index, item in enumerate(subtask_items):
            task.subtasks.append(Subtask(
                label=item["label"].strip(),
                status="todo",
                position=item.get("position") if item.get("position") is not None else index,
                created_by=actor.id,
            ))
        db.add(task)
        db.flush()

        record_activity(
            db,
            user_id=actor.id,
            action_type="Created Task",
            target_id=task.id,
            target_type="task",
            description=f"Task '{task.name}' created",
            metadata={"taskId": task.id, "projectId": project.id, "status": status, "subtaskCount": len(subtask_items)},
        )
        for subtask in task.subtasks:
            _log_subtask(db, "Created Subtask", subtask, task, actor)
        if assignee_id is not None:
            _log_assignment(db, task, None, assignee_id, actor)

        apply_project_delta(db, project.id, total_delta=1, completed_delta=1 if status == COMPLETED else 0)
        db.commit()
        logger.info(f"Created task {task.id} with {len(subtask_items)} subtasks for project {project.id}")
        return task
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create task: {e}")
        raise

def update_task(db: Session, task_id: int, data: dict, actor: Optional[User]) -> Task:
    """
    Обновляет задачу. data может содержать subtasks (полная замена набора)
    или toggle_subtask_id (переключение одного сабтаска); при наличии обоих
    используется замена. Счётчики проекта меняются только на переходе через completed.
    """
    actor = require_actor(actor)
    task = get_task(db, task_id)
    project = get_project(db, task.project_id)
    ensure_project_access(project, actor)

    if "name" in data and not (data["name"] or "").strip():
        raise TaskValidationError("Task name is required.")
    _validate_status(data.get("status"))
    _validate_priority(data.get("priority"))
    if "priority" in data and data["priority"] is None:
        raise TaskValidationError("Priority cannot be empty.")
    if data.get("assignee_id") is not None and data["assignee_id"] != task.assignee_id:
        get_user(db, data["assignee_id"])

    toggle_target = None
    if "subtasks" in data and data["subtasks"] is not None:
        _validate_subtask_items(data["subtasks"])
    elif data.get("toggle_subtask_id") is not None:
        toggle_target = get_subtask(db, data["toggle_subtask_id"])
        if toggle_target.task_id != task.id:
            raise SubtaskNotFound(f"Subtask {data['toggle_subtask_id']} not found in task {task.id}.")

    try:
        edge = _apply_task_changes(db, task, data, actor, toggle_target=toggle_target)
        if edge:
            apply_project_delta(db, project.id, completed_delta=edge)
        db.commit()
        logger.info(f"Updated task {task.id} (status={task.status}, progress={task.progress})")
        return task
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update task {task_id}: {e}")
        raise

def delete_task(db: Session, task_id: int, actor: Optional[User]) -> bool:
    """
    Удаляет задачу с каскадным удалением сабтасков и уменьшает счётчики проекта.
    """
    actor = require_actor(actor)
    task = get_task(db, task_id)
    project = get_project(db, task.project_id)
    ensure_project_access(project, actor)
    try:
        delta = _remove_task(db, task, actor)
        apply_project_delta(db, project.id, total_delta=delta.total, completed_delta=delta.completed)
        db.commit()
        logger.info(f"Deleted task {task_id} from project {project.id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete task {task_id}: {e}")
        raise

def _run_bulk(db: Session, task_ids: List[int], actor: User, step) -> tuple:
    """
    Выполняет step(task) для каждого id в отдельном SAVEPOINT.
    Счётчики проектов копятся в памяти и применяются по одному разу на проект.
    """
    deltas: Dict[int, ProjectDelta] = {}
    processed = 0
    errors: List[dict] = []
    for task_id in task_ids:
        savepoint = db.begin_nested()
        try:
            task = get_task(db, task_id)
            project_id = task.project_id
            ensure_project_access(get_project(db, project_id), actor)
            delta = step(task)
            savepoint.commit()
        except (BaseAppException, SQLAlchemyError) as e:
            savepoint.rollback()
            logger.warning(f"Bulk operation skipped task {task_id}: {e}")
            errors.append({"task_id": task_id, "error": str(e)})
            continue
        processed += 1
        if delta:
            acc = deltas.setdefault(project_id, ProjectDelta())
            acc.total += delta.total
            acc.completed += delta.completed
    try:
        for project_id, delta in deltas.items():
            if delta:
                apply_project_delta(db, project_id, total_delta=delta.total, completed_delta=delta.completed)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to commit bulk task operation: {e}")
        raise
    return processed, errors

def bulk_update_tasks(db: Session, task_ids: List[int], updates: dict, actor: Optional[User]) -> dict:
    """
    Массовое обновление (assignee_id, status, priority, due_date).
    Ошибка по одной задаче не прерывает обработку остальных.
    """
    actor = require_actor(actor)
    updates = {k: v for k, v in updates.items() if k in BULK_FIELDS}
    _validate_status(updates.get("status"))
    _validate_priority(updates.get("priority"))

    def step(task: Task) -> ProjectDelta:
        return ProjectDelta(completed=_apply_task_changes(db, task, updates, actor))

    processed, errors = _run_bulk(db, task_ids, actor, step)
    logger.info(f"Bulk updated {processed} tasks ({len(errors)} errors)")
    return bulk_result(processed, errors, "update", "tasks")

def bulk_delete_tasks(db: Session, task_ids: List[int], actor: Optional[User]) -> dict:
    """
    Массовое удаление задач с отложенным обновлением счётчиков проектов.
    """
    actor = require_actor(actor)
    processed, errors = _run_bulk(db, task_ids, actor, lambda task: _remove_task(db, task, actor))
    logger.info(f"Bulk deleted {processed} tasks ({len(errors)} errors)")
    return bulk_result(processed, errors, "delete", "tasks")

def update_subtask_status(db: Session, subtask_id: int, status: str, actor: Optional[User]) -> Subtask:
    """
    Меняет статус одного сабтаска (любое значение) и каскадно пересчитывает
    задачу и проект по тем же правилам, что и update_task.
    """
    actor = require_actor(actor)
    _validate_status(status)
    if status is None:
        raise TaskValidationError("Status is required.")
    subtask = get_subtask(db, subtask_id)
    task = get_task(db, subtask.task_id)
    project = get_project(db, task.project_id)
    ensure_project_access(project, actor)

    try:
        prior_status = task.status
        old_status = subtask.status
        set_status(subtask, status, actor.id)
        db.flush()
        _log_subtask(db, "Updated Subtask", subtask, task, actor, changes={"status": [old_status, status]})
        rollup_subtasks(task, prior_status, actor.id)
        edge = completion_edge(prior_status, task.status)
        _log_completion_edge(db, task, edge, actor)
        if edge:
            apply_project_delta(db, project.id, completed_delta=edge)
        db.commit()
        logger.info(f"Subtask {subtask.id} -> {status}; task {task.id} progress={task.progress}")
        return subtask
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update subtask {subtask_id}: {e}")
        raise

def update_subtask_position(db: Session, subtask_id: int, position: float, actor: Optional[User]) -> Subtask:
    """
    Только перестановка (drag-and-drop): без пересчёта и без активности.
    """
    actor = require_actor(actor)
    subtask = get_subtask(db, subtask_id)
    ensure_project_access(get_project(db, get_task(db, subtask.task_id).project_id), actor)
    subtask.position = position
    try:
        db.commit()
        return subtask
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to reorder subtask {subtask_id}: {e}")
        raise
