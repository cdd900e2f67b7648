# teamspace/models/task.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey, Index, func
)
from sqlalchemy.orm import relationship
from teamspace.models.base import Base

TASK_STATUSES = ("todo", "in_progress", "completed", "on_hold", "canceled")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")

class Task(Base):
    """
    Task — задача проекта. Всегда имеет хотя бы один сабтаск;
    progress считается по сабтаскам.
    """
    __tablename__ = "tasks"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    project_id: int = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True, doc="ID проекта")
    name: str = Column(String(160), nullable=False, doc="Название задачи")
    description: str = Column(String(2000), nullable=True, doc="Описание")
    assignee_id: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True, doc="Исполнитель")
    status: str = Column(String(24), nullable=False, default="todo", doc="todo, in_progress, completed, on_hold, canceled")
    priority: str = Column(String(16), nullable=False, default="medium", doc="low, medium, high, urgent")
    due_date: datetime = Column(DateTime(timezone=True), nullable=True, doc="Дедлайн")
    progress: int = Column(Integer, nullable=False, default=0, doc="0-100")
    created_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_at: datetime = Column(DateTime(timezone=True), nullable=True)
    completed_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата изменения")

    project = relationship("Project", back_populates="tasks")
    subtasks = relationship(
        "Subtask",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="Subtask.position",
    )

    __table_args__ = (
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_due_date", "due_date"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return (
            f"<Task(id={self.id}, name='{self.name}', status={self.status}, "
            f"project_id={self.project_id}, progress={self.progress})>"
        )


class Subtask(Base):
    """
    Subtask — пункт чек-листа задачи.
    """
    __tablename__ = "subtasks"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    task_id: int = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    label: str = Column(String(255), nullable=False)
    status: str = Column(String(24), nullable=False, default="todo")
    position: float = Column(Float, nullable=False, default=0)
    created_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_at: datetime = Column(DateTime(timezone=True), nullable=True)
    completed_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    task = relationship("Task", back_populates="subtasks")

    # SQLite не должен переиспользовать id удалённых сабтасков
    __table_args__ = ({"sqlite_autoincrement": True},)

    def __repr__(self):
        return f"<Subtask(id={self.id}, task_id={self.task_id}, label='{self.label}', status={self.status})>"
