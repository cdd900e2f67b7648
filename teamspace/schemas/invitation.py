# teamspace/schemas/invitation.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

class InvitationCreate(BaseModel):
    """
    Приглашение в компанию текущего пользователя (и, опционально, в команду).
    """
    email: EmailStr = Field(..., description="Email зарегистрированного пользователя")
    team_id: Optional[int] = Field(None, description="Команда, в которую добавить при принятии")
    expires_in_hours: Optional[int] = Field(None, ge=1, le=24 * 30)

class InvitationAccept(BaseModel):
    token: str = Field(..., min_length=1)

class InvitationRead(BaseModel):
    id: int
    email: str
    token: str
    status: str
    company_id: int
    team_id: Optional[int] = None
    invited_by: Optional[int] = None
    invited_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
