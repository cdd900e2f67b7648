# teamspace/api/activity.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from teamspace.schemas.activity import ActivityCreate, ActivityRead
from teamspace.schemas.response import SuccessResponse
from teamspace.crud.activity import (
    create_activity,
    delete_activity,
    get_activities,
    get_activities_by_company,
)
from teamspace.core.exceptions import BaseAppException, PermissionDeniedError
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as DBUser
import logging

router = APIRouter(prefix="/activity", tags=["Activity"])
logger = logging.getLogger("Teamspace.ActivityAPI")

@router.post("/", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
def create_activity_record(
    data: ActivityCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return create_activity(db, data.model_dump(), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in create_activity_record: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create activity.")

@router.get("/", response_model=List[ActivityRead])
def list_activity(
    user_id: Optional[int] = Query(None),
    action_type: Optional[str] = Query(None),
    target_type: Optional[str] = Query(None),
    target_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Лента активности (новые первыми).
    """
    filters = {
        "user_id": user_id,
        "action_type": action_type,
        "target_type": target_type,
        "target_id": target_id,
    }
    filters = {k: v for k, v in filters.items() if v is not None}
    return get_activities(db, filters)

@router.get("/company/{company_id}", response_model=List[ActivityRead])
def list_company_activity(
    company_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    if not current_user.is_superuser and current_user.company_id != company_id:
        raise PermissionDeniedError("Not a member of this company.")
    return get_activities_by_company(db, company_id)

@router.delete("/{activity_id}", response_model=SuccessResponse)
def remove_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        delete_activity(db, activity_id, current_user)
        return SuccessResponse(result=activity_id, detail="Activity deleted")
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete activity {activity_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete activity.")
