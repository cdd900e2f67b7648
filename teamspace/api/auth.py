# teamspace/api/auth.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta
from teamspace.schemas.auth import LoginResponse
from teamspace.crud.user import authenticate_user, set_last_login
from teamspace.core.security import create_access_token
from teamspace.core.settings import settings
from teamspace.dependencies import get_db
import logging

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger("Teamspace.Auth")

@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Логин по username/email + password.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user or not user.is_active:
        logger.warning(f"Failed login attempt for '{form_data.username}'")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

    token, expires_at = create_access_token(
        data={"sub": user.username, "user_id": user.id},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    set_last_login(db, user)
    logger.info(f"User {user.username} logged in")
    return LoginResponse(access_token=token, token_type="bearer", expires_at=expires_at)
