# teamspace/schemas/project.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from teamspace.core.settings import settings

class ProjectBase(BaseModel):
    """
    ProjectBase — базовая схема проекта.
    """
    name: str = Field(..., examples=["Website redesign"], description="Название проекта")
    description: Optional[str] = Field("", description="Описание")
    team_id: Optional[int] = Field(None, description="ID команды")
    parent_id: Optional[int] = Field(None, description="ID родительского проекта")
    status: Optional[str] = Field("planned", description="planned, in_progress, completed, on_hold, canceled")
    priority: Optional[str] = Field(None, description="low, medium, high, critical")
    health_status: Optional[str] = Field(None, description="on_track, at_risk, off_track")
    tags: List[str] = Field(default_factory=list, description="Теги проекта")
    category: Optional[str] = Field(None, description="Категория")
    start_date: datetime = Field(..., description="Дата начала")
    end_date: Optional[datetime] = Field(None, description="Дата окончания")

class ProjectCreate(ProjectBase):
    """
    ProjectCreate — company_id по умолчанию берётся из текущего пользователя.
    """
    company_id: Optional[int] = Field(None, description="ID компании")

class ProjectUpdate(BaseModel):
    """
    ProjectUpdate — все поля опциональны; счётчики задач не редактируются.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    team_id: Optional[int] = None
    parent_id: Optional[int] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    health_status: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class ProjectRead(ProjectBase):
    """
    ProjectRead — схема для выдачи проекта вместе с денормализованными счётчиками.
    """
    id: int
    company_id: int
    progress: int
    total_tasks: int
    completed_tasks: int
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ProjectBulkDelete(BaseModel):
    ids: List[int] = Field(..., min_length=1, max_length=settings.BULK_MAX_ITEMS)
