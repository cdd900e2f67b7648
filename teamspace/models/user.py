# teamspace/models/user.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, func
)
from teamspace.models.base import Base

class User(Base):
    """
    User — аккаунт пользователя внутри компании.
    Поле name — отображаемое имя, по нему резолвятся @упоминания.
    """
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    username: str = Column(String(50), unique=True, nullable=False, index=True, doc="Уникальный username")
    email: str = Column(String(255), unique=True, nullable=False, index=True, doc="Email")
    name: str = Column(String(128), nullable=True, index=True, doc="Отображаемое имя (для @mentions)")
    password_hash: str = Column(String(256), nullable=False, doc="Хэш пароля")
    company_id: int = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True, doc="ID компании")
    is_active: bool = Column(Boolean, default=True, nullable=False, doc="Аккаунт активен")
    is_superuser: bool = Column(Boolean, default=False, nullable=False, doc="Является ли суперюзером")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")
    last_login_at: datetime = Column(DateTime(timezone=True), nullable=True, doc="Последний вход")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', name='{self.name}', company_id={self.company_id})>"
