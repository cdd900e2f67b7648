# teamspace/api/invitation.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from teamspace.schemas.invitation import InvitationAccept, InvitationCreate, InvitationRead
from teamspace.crud.invitation import accept_invitation, get_pending_invitations, invite_user
from teamspace.core.exceptions import BaseAppException
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as UserModel
import logging

router = APIRouter(prefix="/invitations", tags=["Invitations"])
logger = logging.getLogger("Teamspace.InvitationAPI")

@router.post("/", response_model=InvitationRead, status_code=status.HTTP_201_CREATED)
def create_invitation(
    data: InvitationCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Пригласить пользователя в свою компанию. Токен из ответа передаётся приглашённому.
    """
    try:
        return invite_user(db, data.model_dump(), user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in create_invitation: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create invitation.")

@router.get("/", response_model=List[InvitationRead])
def list_pending_invitations(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    if user.company_id is None:
        return []
    return get_pending_invitations(db, user.company_id)

@router.post("/accept", response_model=InvitationRead)
def accept_invitation_api(
    data: InvitationAccept,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Принять приглашение от имени текущего пользователя.
    """
    try:
        return accept_invitation(db, data.token, user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in accept_invitation_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to accept invitation.")
