# teamspace/schemas/team.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128, description="Название компании")

class CompanyRead(BaseModel):
    id: int
    name: str
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True

class TeamCreate(BaseModel):
    """
    TeamCreate — команда создаётся в компании текущего пользователя.
    """
    name: str = Field(..., min_length=1, max_length=128, description="Название команды")
    description: Optional[str] = Field("", description="Описание")
    member_ids: List[int] = Field(default_factory=list, description="Участники, кроме владельца")

class TeamRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    company_id: int
    owner_id: Optional[int] = None
    created_at: datetime
    member_ids: List[int] = []

    class Config:
        from_attributes = True

class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    description: Optional[str] = None
    member_ids: Optional[List[int]] = Field(None, description="Полный новый состав (владелец сохраняется)")

class TeamMembersChange(BaseModel):
    user_ids: List[int] = Field(..., min_length=1, description="ID пользователей")
