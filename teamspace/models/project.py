# teamspace/models/project.py
from datetime import datetime
from teamspace.models.base import Base
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, JSON, ForeignKey, Index, func
)
from sqlalchemy.orm import relationship

PROJECT_STATUSES = ("planned", "in_progress", "completed", "on_hold", "canceled")
PROJECT_PRIORITIES = ("low", "medium", "high", "critical")
HEALTH_STATUSES = ("on_track", "at_risk", "off_track")

class Project(Base):
    """
    Project — проект компании. Счётчики total_tasks/completed_tasks и progress
    денормализованы и меняются только операциями над задачами.
    """
    __tablename__ = "projects"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(128), nullable=False, index=True, doc="Название проекта")
    description: str = Column(Text, nullable=True, doc="Описание")
    company_id: int = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, doc="ID команды")
    parent_id: int = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, doc="ID родительского проекта")
    status: str = Column(String(24), nullable=False, default="planned", index=True, doc="planned, in_progress, completed, on_hold, canceled")
    priority: str = Column(String(16), nullable=True, doc="low, medium, high, critical")
    health_status: str = Column(String(16), nullable=True, doc="on_track, at_risk, off_track")
    tags: list = Column(JSON, nullable=False, default=lambda: [], doc="Теги проекта")
    category: str = Column(String(64), nullable=True)
    start_date: datetime = Column(DateTime(timezone=True), nullable=False, doc="Дата начала")
    end_date: datetime = Column(DateTime(timezone=True), nullable=True, doc="Дата окончания")

    progress: int = Column(Integer, nullable=False, default=0, doc="0-100, completed_tasks / total_tasks")
    total_tasks: int = Column(Integer, nullable=False, default=0)
    completed_tasks: int = Column(Integer, nullable=False, default=0)

    created_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, doc="Автор проекта")
    updated_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_at: datetime = Column(DateTime(timezone=True), nullable=True)
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата изменения")

    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_projects_company_status", "company_id", "status"),
    )

    def __repr__(self):
        return (
            f"<Project(id={self.id}, name='{self.name}', status='{self.status}', "
            f"progress={self.progress}, tasks={self.completed_tasks}/{self.total_tasks})>"
        )
