# teamspace/schemas/comment.py
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime

class CommentCreate(BaseModel):
    """
    CommentCreate — комментарий к объекту (target_id + target_type) или ответ (parent_id).
    """
    target_id: str = Field(..., min_length=1, max_length=64, description="ID объекта")
    target_type: str = Field(..., min_length=1, max_length=32, examples=["task"], description="Тип объекта")
    body: str = Field(..., description="Текст, может содержать @упоминания")
    parent_id: Optional[int] = Field(None, description="ID родительского комментария")
    mentioned_user_ids: List[int] = Field(default_factory=list, description="Явные упоминания")

class CommentUpdate(BaseModel):
    body: str
    mentioned_user_ids: Optional[List[int]] = None

class ReactionIn(BaseModel):
    kind: str = Field(..., description="heart, thumbs_up, thumbs_down")

class CommentRead(BaseModel):
    id: int
    author_id: int
    target_id: str
    target_type: str
    body: str
    parent_id: Optional[int] = None
    mentioned_user_ids: List[int] = Field(default_factory=list)
    reactions: Dict[str, List[int]] = Field(default_factory=dict)
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CommentWithReplies(CommentRead):
    """
    CommentWithReplies — комментарий верхнего уровня с числом ответов (рекурсивно).
    """
    reply_count: int = 0
