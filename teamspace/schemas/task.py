# teamspace/schemas/task.py
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from teamspace.core.settings import settings

class SubtaskIn(BaseModel):
    """
    SubtaskIn — элемент набора сабтасков. id указывается для существующих
    сабтасков при полной замене набора.
    """
    id: Optional[int] = Field(None, description="ID существующего сабтаска")
    label: str = Field(..., min_length=1, examples=["Write tests"], description="Текст сабтаска")
    status: Optional[str] = Field(None, description="Статус (при создании игнорируется — todo)")
    position: Optional[float] = Field(None, description="Порядок отображения")

class SubtaskRead(BaseModel):
    id: int
    task_id: int
    label: str
    status: str
    position: float
    created_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True

class TaskCreate(BaseModel):
    """
    TaskCreate — задача создаётся сразу с непустым набором сабтасков.
    """
    project_id: int = Field(..., description="ID проекта")
    name: str = Field(..., min_length=1, max_length=256, description="Название задачи")
    description: Optional[str] = Field(None, description="Описание")
    assignee_id: Optional[int] = Field(None, description="Исполнитель")
    status: Optional[str] = Field("todo", description="todo, in_progress, completed, on_hold, canceled")
    priority: Optional[str] = Field("medium", description="low, medium, high, urgent")
    due_date: Optional[datetime] = Field(None, description="Срок")
    subtasks: List[SubtaskIn] = Field(..., min_length=1, description="Начальные сабтаски")

class TaskUpdate(BaseModel):
    """
    TaskUpdate — частичное обновление. subtasks заменяет набор целиком,
    toggle_subtask_id переключает один сабтаск todo ↔ completed.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    assignee_id: Optional[int] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None
    subtasks: Optional[List[SubtaskIn]] = None
    toggle_subtask_id: Optional[int] = None

class TaskRead(BaseModel):
    """
    TaskRead — задача с упорядоченными сабтасками.
    """
    id: int
    project_id: int
    name: str
    description: Optional[str] = None
    assignee_id: Optional[int] = None
    status: str
    priority: str
    due_date: Optional[datetime] = None
    progress: int
    created_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    subtasks: List[SubtaskRead] = Field(default_factory=list)

    class Config:
        from_attributes = True

class BulkTaskChanges(BaseModel):
    assignee_id: Optional[int] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None

class TaskBulkUpdate(BaseModel):
    task_ids: List[int] = Field(..., min_length=1, max_length=settings.BULK_MAX_ITEMS)
    updates: BulkTaskChanges

class TaskBulkDelete(BaseModel):
    task_ids: List[int] = Field(..., min_length=1, max_length=settings.BULK_MAX_ITEMS)

class SubtaskStatusUpdate(BaseModel):
    status: str = Field(..., description="todo, in_progress, completed, on_hold, canceled")

class SubtaskPositionUpdate(BaseModel):
    position: float = Field(..., description="Новая позиция")

class BulkResult(BaseModel):
    """
    BulkResult — итог массовой операции.
    """
    success: bool
    processed_count: int
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    message: str
