# teamspace/schemas/activity.py
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime

class ActivityCreate(BaseModel):
    action_type: str = Field(..., min_length=1, max_length=64, examples=["Viewed Project"])
    description: str = Field(..., min_length=1, max_length=1000)
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

class ActivityRead(BaseModel):
    """
    ActivityRead — запись ленты; атрибут модели meta отдаётся как metadata.
    """
    id: int
    user_id: int
    action_type: str
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime

    class Config:
        from_attributes = True
