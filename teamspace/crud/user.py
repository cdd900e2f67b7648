# teamspace/crud/user.py
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from teamspace.models.user import User
from teamspace.core.exceptions import UserNotFound, UserValidationError
from teamspace.core.security import get_password_hash, verify_password
import logging

logger = logging.getLogger("Teamspace.Users")

def create_user(db: Session, data: dict) -> User:
    """
    Регистрирует пользователя (пароль хранится только в виде хэша).
    """
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not username or not email:
        raise UserValidationError("Username and email are required.")
    if len(password) < 8:
        raise UserValidationError("Password must be at least 8 characters long.")
    if db.query(User).filter((User.username == username) | (User.email == email)).first():
        raise UserValidationError("User with this username or email already exists.")

    user = User(
        username=username,
        email=email,
        name=(data.get("name") or username).strip(),
        password_hash=get_password_hash(password),
        company_id=data.get("company_id"),
        is_active=data.get("is_active", True),
        is_superuser=data.get("is_superuser", False),
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"Created user '{user.username}' (ID: {user.id})")
        return user
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error while creating user: {e}")
        raise UserValidationError("User with this username or email already exists.")

def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found.")
    return user

def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()

def get_user_by_name(db: Session, name: str) -> Optional[User]:
    """
    Точное (регистрозависимое) совпадение по отображаемому имени, первый найденный.
    """
    return db.query(User).filter(User.name == name).order_by(User.id).first()

def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """
    Проверка логина по username или email.
    """
    user = db.query(User).filter((User.username == username) | (User.email == username.lower())).first()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user

def set_last_login(db: Session, user: User) -> User:
    user.last_login_at = datetime.now(timezone.utc)
    try:
        db.commit()
        return user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update last login for user {user.id}: {e}")
        raise
