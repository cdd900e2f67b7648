# teamspace/api/user.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from teamspace.schemas.user import UserCreate, UserRead
from teamspace.crud.user import create_user
from teamspace.core.exceptions import BaseAppException
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as DBUser
import logging

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger("Teamspace.UsersAPI")

@router.get("/me", response_model=UserRead)
def read_users_me(current_user: DBUser = Depends(get_current_active_user)):
    """
    Профиль текущего пользователя.
    """
    return current_user

@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(
    data: UserCreate,
    db: Session = Depends(get_db),
):
    """
    Регистрация нового пользователя.
    """
    try:
        return create_user(db, data.model_dump())
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in register_user: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred during user registration.")
