# teamspace/crud/progress.py
"""
Агрегация прогресса по иерархии Project ⊃ Task ⊃ Subtask.

- percent() — единая формула процента (round half up, целочисленно);
- set_status() — смена статуса задачи/сабтаска с отметками completed_at/completed_by;
- rollup_subtasks() — пересчёт progress задачи по сабтаскам и авто-закрытие/переоткрытие;
- apply_project_delta() — патч счётчиков проекта под блокировкой строки.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from sqlalchemy.orm import Session
from teamspace.models.project import Project
from teamspace.models.task import Task, Subtask

COMPLETED = "completed"
IN_PROGRESS = "in_progress"

def percent(done: int, total: int) -> int:
    """
    round(done / total * 100) с округлением половины вверх; 0 при total == 0.
    """
    if total <= 0:
        return 0
    return (done * 200 + total) // (2 * total)

def set_status(obj: Union[Task, Subtask], status: str, actor_id: Optional[int]) -> None:
    """
    Меняет статус и поддерживает completed_at/completed_by:
    они есть тогда и только тогда, когда статус == completed.
    """
    if status == COMPLETED:
        if obj.status != COMPLETED or obj.completed_at is None:
            obj.completed_at = datetime.now(timezone.utc)
            obj.completed_by = actor_id
    else:
        obj.completed_at = None
        obj.completed_by = None
    obj.status = status

def completion_edge(prior_status: Optional[str], new_status: Optional[str]) -> int:
    """
    +1 — задача стала completed, -1 — перестала быть completed, 0 — без перехода.
    """
    if prior_status != COMPLETED and new_status == COMPLETED:
        return 1
    if prior_status == COMPLETED and new_status != COMPLETED:
        return -1
    return 0

def rollup_subtasks(task: Task, prior_status: str, actor_id: Optional[int]) -> None:
    """
    Пересчитывает task.progress по текущему набору сабтасков.
    Все сабтаски completed → задача completed; иначе, если задача была completed,
    она переоткрывается в in_progress. Перекрывает явно переданный статус.
    """
    subtasks = list(task.subtasks)
    total = len(subtasks)
    done = sum(1 for s in subtasks if s.status == COMPLETED)
    task.progress = percent(done, total)
    if total > 0 and done == total:
        set_status(task, COMPLETED, actor_id)
    elif prior_status == COMPLETED:
        set_status(task, IN_PROGRESS, actor_id)


@dataclass
class ProjectDelta:
    """Накопленное изменение счётчиков проекта (для bulk-операций)."""
    total: int = 0
    completed: int = 0

    def __bool__(self) -> bool:
        return bool(self.total or self.completed)


def apply_project_delta(
    db: Session,
    project_id: int,
    total_delta: int = 0,
    completed_delta: int = 0,
) -> Optional[Project]:
    """
    Применяет дельту к total_tasks/completed_tasks и пересчитывает progress.

    Строка проекта читается в момент применения (SELECT ... FOR UPDATE) внутри
    той же транзакции, поэтому устаревший снимок никогда не записывается обратно.
    Значения ограничиваются: 0 <= completed_tasks <= total_tasks.
    """
    db.flush()
    project = (
        db.query(Project)
        .filter(Project.id == project_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if project is None:
        return None
    total = max(0, (project.total_tasks or 0) + total_delta)
    completed = min(total, max(0, (project.completed_tasks or 0) + completed_delta))
    project.total_tasks = total
    project.completed_tasks = completed
    project.progress = percent(completed, total)
    db.flush()
    return project
