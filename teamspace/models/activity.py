# teamspace/models/activity.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, JSON, Index, func
)
from teamspace.models.base import Base

class ActivityRecord(Base):
    """
    ActivityRecord — неизменяемая запись ленты активности.
    user_id — пользователь, которому приписано событие (не обязательно автор запроса).
    """
    __tablename__ = "activity_records"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type: str = Column(String(64), nullable=False, index=True)
    target_id: str = Column(String(64), nullable=True)
    target_type: str = Column(String(32), nullable=True)
    description: str = Column(String(1000), nullable=False)
    # "metadata" занято declarative Base, поэтому атрибут называется meta
    meta: dict = Column("metadata", JSON, nullable=False, default=lambda: {})
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_activity_records_target", "target_type", "target_id"),
    )

    def __repr__(self):
        return (
            f"<ActivityRecord(id={self.id}, user_id={self.user_id}, action='{self.action_type}', "
            f"target={self.target_type}:{self.target_id})>"
        )
