# teamspace/crud/team.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Iterable, List, Optional
from teamspace.models.invitation import Invitation
from teamspace.models.team import Company, Team
from teamspace.models.user import User
from teamspace.core.exceptions import (
    CompanyNotFound,
    NotAuthenticatedError,
    PermissionDeniedError,
    TeamNotFound,
    TeamValidationError,
)
from teamspace.crud.activity import record_activity
from teamspace.crud.user import get_user
import logging

logger = logging.getLogger("Teamspace.Team")

def create_company(db: Session, data: dict, actor: Optional[User]) -> Company:
    """
    Создать компанию. Создатель автоматически становится её участником.
    """
    if actor is None:
        raise NotAuthenticatedError()
    name = (data.get("name") or "").strip()
    if not name:
        raise TeamValidationError("Company name is required.")
    if db.query(Company).filter_by(name=name).first():
        raise TeamValidationError(f"Company with name '{name}' already exists.")
    company = Company(name=name, created_by=actor.id)
    db.add(company)
    try:
        db.flush()
        actor.company_id = company.id
        db.commit()
        db.refresh(company)
        logger.info(f"Created company '{company.name}' (ID: {company.id})")
        return company
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error while creating company: {e}")
        raise TeamValidationError(f"Error creating company: {e}")

def get_company(db: Session, company_id: int) -> Company:
    company = db.get(Company, company_id)
    if not company:
        raise CompanyNotFound(f"Company with id={company_id} not found.")
    return company

# ==== Команды ====

def _resolve_members(db: Session, company_id: int, user_ids: Iterable[int]) -> List[User]:
    """
    Загружает пользователей по id (без дублей) и проверяет, что все они из компании команды.
    """
    users: List[User] = []
    for user_id in dict.fromkeys(user_ids or []):
        user = get_user(db, user_id)
        if user.company_id != company_id:
            raise TeamValidationError(f"User {user_id} does not belong to the team's company.")
        users.append(user)
    return users

def _ensure_team_member(team: Team, actor: User) -> None:
    if actor.is_superuser:
        return
    if team.owner_id != actor.id and actor.id not in team.member_ids:
        raise PermissionDeniedError("Not authorized to modify this team.")

def _ensure_team_owner(team: Team, actor: User) -> None:
    if not actor.is_superuser and team.owner_id != actor.id:
        raise PermissionDeniedError("Only the team owner can do this.")

def _check_name_free(db: Session, company_id: int, name: str, team_id: Optional[int] = None) -> None:
    query = db.query(Team).filter(Team.company_id == company_id, Team.name == name)
    if team_id is not None:
        query = query.filter(Team.id != team_id)
    if query.first():
        raise TeamValidationError(f"Team with name '{name}' already exists.")

def _log_membership(db: Session, team: Team, user_ids: Iterable[int], action_type: str, actor: User) -> None:
    verb = "Added to" if action_type == "Added to Team" else "Removed from"
    for user_id in user_ids:
        record_activity(
            db,
            user_id=user_id,
            action_type=action_type,
            target_id=team.id,
            target_type="team",
            description=f"{verb} team '{team.name}'",
            metadata={"teamId": team.id, "changedBy": actor.id},
        )

def create_team(db: Session, data: dict, actor: Optional[User]) -> Team:
    """
    Создать команду в компании текущего пользователя (уникальное имя в пределах компании).
    Владелец входит в состав вместе с переданными member_ids.
    """
    if actor is None:
        raise NotAuthenticatedError()
    if actor.company_id is None:
        raise PermissionDeniedError("User does not belong to a company.")
    name = (data.get("name") or "").strip()
    if not name:
        raise TeamValidationError("Team name is required.")
    _check_name_free(db, actor.company_id, name)
    members = _resolve_members(db, actor.company_id, [actor.id, *(data.get("member_ids") or [])])
    team = Team(
        name=name,
        description=(data.get("description") or "").strip(),
        company_id=actor.company_id,
        owner_id=actor.id,
        members=members,
    )
    db.add(team)
    try:
        db.commit()
        db.refresh(team)
        logger.info(f"Created team '{team.name}' (ID: {team.id})")
        return team
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error while creating team: {e}")
        raise TeamValidationError(f"Error creating team: {e}")

def get_team(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if not team:
        raise TeamNotFound(f"Team with id={team_id} not found.")
    return team

def get_teams(db: Session, company_id: int) -> List[Team]:
    return db.query(Team).filter(Team.company_id == company_id).order_by(Team.name).all()

def update_team(db: Session, team_id: int, data: dict, actor: Optional[User]) -> Team:
    """
    Обновить название, описание или состав (member_ids заменяет состав целиком,
    владелец остаётся). Разрешено владельцу и участникам команды.
    """
    if actor is None:
        raise NotAuthenticatedError()
    team = get_team(db, team_id)
    _ensure_team_member(team, actor)

    changes = {}
    if "name" in data and data["name"] is not None:
        name = data["name"].strip()
        if not name:
            raise TeamValidationError("Team name is required.")
        if name != team.name:
            _check_name_free(db, team.company_id, name, team.id)
            changes["name"] = [team.name, name]
    if "description" in data and data["description"] is not None:
        description = data["description"].strip()
        if description != (team.description or ""):
            changes["description"] = [team.description, description]

    added, removed = [], []
    new_members = None
    if data.get("member_ids") is not None:
        wanted = [team.owner_id] if team.owner_id is not None else []
        new_members = _resolve_members(db, team.company_id, [*wanted, *data["member_ids"]])
        current = set(team.member_ids)
        added = [u.id for u in new_members if u.id not in current]
        removed = [user_id for user_id in team.member_ids if user_id not in {u.id for u in new_members}]

    if not changes and not added and not removed:
        return team

    try:
        if "name" in changes:
            team.name = changes["name"][1]
        if "description" in changes:
            team.description = changes["description"][1]
        if new_members is not None:
            team.members = new_members
        _log_membership(db, team, added, "Added to Team", actor)
        _log_membership(db, team, removed, "Removed from Team", actor)
        record_activity(
            db,
            user_id=actor.id,
            action_type="Updated Team",
            target_id=team.id,
            target_type="team",
            description=f"Updated team '{team.name}'",
            metadata={"teamId": team.id, "changes": changes, "added": added, "removed": removed},
        )
        db.commit()
        logger.info(f"Updated team {team.id}: {list(changes)} (+{len(added)}/-{len(removed)} members)")
        return team
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update team {team_id}: {e}")
        raise

def add_team_members(db: Session, team_id: int, user_ids: List[int], actor: Optional[User]) -> Team:
    """
    Добавить участников. Уже состоящие в команде пропускаются.
    """
    if actor is None:
        raise NotAuthenticatedError()
    team = get_team(db, team_id)
    _ensure_team_member(team, actor)
    users = _resolve_members(db, team.company_id, user_ids)
    current = set(team.member_ids)
    new_users = [u for u in users if u.id not in current]
    if not new_users:
        return team
    try:
        team.members.extend(new_users)
        _log_membership(db, team, [u.id for u in new_users], "Added to Team", actor)
        db.commit()
        logger.info(f"Added {len(new_users)} members to team {team.id}")
        return team
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to add members to team {team_id}: {e}")
        raise

def remove_team_members(db: Session, team_id: int, user_ids: List[int], actor: Optional[User]) -> Team:
    """
    Удалить участников (только владелец). Владельца удалить нельзя, он молча пропускается.
    """
    if actor is None:
        raise NotAuthenticatedError()
    team = get_team(db, team_id)
    _ensure_team_owner(team, actor)
    doomed = set(user_ids or []) - {team.owner_id}
    leaving = [u for u in team.members if u.id in doomed]
    if not leaving:
        return team
    try:
        for user in leaving:
            team.members.remove(user)
        _log_membership(db, team, [u.id for u in leaving], "Removed from Team", actor)
        db.commit()
        logger.info(f"Removed {len(leaving)} members from team {team.id}")
        return team
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to remove members from team {team_id}: {e}")
        raise

def delete_team(db: Session, team_id: int, actor: Optional[User]) -> bool:
    """
    Удалить команду (только владелец). Ожидающие приглашения в неё остаются
    приглашениями в компанию.
    """
    if actor is None:
        raise NotAuthenticatedError()
    team = get_team(db, team_id)
    _ensure_team_owner(team, actor)
    try:
        record_activity(
            db,
            user_id=actor.id,
            action_type="Deleted Team",
            target_id=team.id,
            target_type="team",
            description=f"Deleted team '{team.name}'",
            metadata={"teamId": team.id, "members": team.member_ids},
        )
        db.query(Invitation).filter(Invitation.team_id == team.id).update(
            {"team_id": None}, synchronize_session="fetch"
        )
        team.members = []
        db.delete(team)
        db.commit()
        logger.info(f"Deleted team {team_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete team {team_id}: {e}")
        raise
