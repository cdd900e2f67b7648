# teamspace/schemas/user.py
from pydantic import BaseModel, Field, EmailStr, constr
from typing import Optional
from datetime import datetime

class UserBase(BaseModel):
    """
    UserBase — базовая схема пользователя (используется для create/read).
    """
    username: constr(min_length=3, max_length=50) = Field(..., examples=["john_doe"], description="Уникальный username")
    email: EmailStr = Field(..., examples=["john.doe@example.com"], description="Email пользователя")
    name: Optional[str] = Field(None, examples=["John"], description="Отображаемое имя (используется в @упоминаниях)")

class UserCreate(UserBase):
    """
    UserCreate — регистрация (пароль обязателен).
    """
    password: constr(min_length=8) = Field(..., description="Пароль пользователя")

class UserRead(UserBase):
    """
    UserRead — схема для выдачи пользователя (response).
    """
    id: int
    company_id: Optional[int] = None
    is_active: bool
    is_superuser: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
