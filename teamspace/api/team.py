# teamspace/api/team.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from teamspace.schemas.response import SuccessResponse
from teamspace.schemas.team import (
    CompanyCreate,
    CompanyRead,
    TeamCreate,
    TeamMembersChange,
    TeamRead,
    TeamUpdate,
)
from teamspace.crud.team import (
    add_team_members,
    create_company,
    create_team,
    delete_team,
    get_company,
    get_team,
    get_teams,
    remove_team_members,
    update_team,
)
from teamspace.core.exceptions import BaseAppException, PermissionDeniedError
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as UserModel
import logging

router = APIRouter(prefix="/teams", tags=["Teams"])
company_router = APIRouter(prefix="/companies", tags=["Companies"])
logger = logging.getLogger("Teamspace.TeamAPI")

def _ensure_member(company_id: int, user: UserModel) -> None:
    if not user.is_superuser and user.company_id != company_id:
        raise PermissionDeniedError("Not a member of this company.")

@company_router.post("/", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def create_company_api(
    data: CompanyCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Создать компанию (создатель становится её участником).
    """
    try:
        return create_company(db, data.model_dump(), user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in create_company_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create company.")

@company_router.get("/{company_id}", response_model=CompanyRead)
def read_company(
    company_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    company = get_company(db, company_id)
    _ensure_member(company.id, user)
    return company

@router.post("/", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team_api(
    data: TeamCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Создать новую команду (владелец — текущий пользователь).
    """
    try:
        return create_team(db, data.model_dump(), user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in create_team_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create team.")

@router.get("/", response_model=List[TeamRead])
def list_teams(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Команды компании текущего пользователя.
    """
    if user.company_id is None:
        return []
    return get_teams(db, user.company_id)

@router.get("/{team_id}", response_model=TeamRead)
def read_team(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    team = get_team(db, team_id)
    _ensure_member(team.company_id, user)
    return team

@router.patch("/{team_id}", response_model=TeamRead)
def update_team_api(
    team_id: int,
    data: TeamUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Обновить команду (владелец или участник).
    """
    try:
        return update_team(db, team_id, data.model_dump(exclude_unset=True), user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in update_team_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update team.")

@router.delete("/{team_id}", response_model=SuccessResponse)
def delete_team_api(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    try:
        delete_team(db, team_id, user)
        return SuccessResponse(result=team_id, detail="Team deleted")
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in delete_team_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete team.")

@router.post("/{team_id}/members", response_model=TeamRead)
def add_members_api(
    team_id: int,
    data: TeamMembersChange,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    try:
        return add_team_members(db, team_id, data.user_ids, user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in add_members_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add team members.")

@router.delete("/{team_id}/members", response_model=TeamRead)
def remove_members_api(
    team_id: int,
    data: TeamMembersChange,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Удалить участников (только владелец команды).
    """
    try:
        return remove_team_members(db, team_id, data.user_ids, user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in remove_members_api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to remove team members.")
