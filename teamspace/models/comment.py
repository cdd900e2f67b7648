# teamspace/models/comment.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, JSON, Index, func
)
from teamspace.models.base import Base

REACTION_KINDS = ("heart", "thumbs_up", "thumbs_down")

class Comment(Base):
    """
    Comment — комментарий к любой сущности (target_id + target_type).
    Ответы хранятся в той же таблице, ссылаясь на родителя через parent_id.
    """
    __tablename__ = "comments"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    author_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_id: str = Column(String(64), nullable=False, doc="ID объекта (строка)")
    target_type: str = Column(String(32), nullable=False, doc="project, task, ...")
    body: str = Column(Text, nullable=False)
    parent_id: int = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    mentioned_user_ids: list = Column(JSON, nullable=False, default=lambda: [])
    reactions: dict = Column(JSON, nullable=False, default=lambda: {}, doc="{kind: [user_id, ...]}")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_comments_target", "target_id", "target_type", "parent_id"),
    )

    def __repr__(self):
        return (
            f"<Comment(id={self.id}, author_id={self.author_id}, "
            f"target={self.target_type}:{self.target_id}, parent_id={self.parent_id})>"
        )
