# teamspace/crud/invitation.py
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from teamspace.models.invitation import Invitation
from teamspace.models.user import User
from teamspace.core.exceptions import (
    InvitationNotFound,
    InvitationValidationError,
    NotAuthenticatedError,
    PermissionDeniedError,
    UserNotFound,
)
from teamspace.core.settings import settings
from teamspace.crud.activity import record_activity
from teamspace.crud.project import as_utc
from teamspace.crud.team import get_company, get_team
import logging

logger = logging.getLogger("Teamspace.Invitations")

def invite_user(db: Session, data: dict, actor: Optional[User]) -> Invitation:
    """
    Приглашает зарегистрированного пользователя без компании в компанию приглашающего.
    Необязательный team_id добавит его и в команду при принятии.
    """
    if actor is None:
        raise NotAuthenticatedError()
    if actor.company_id is None:
        raise PermissionDeniedError("User does not belong to a company.")
    email = (data.get("email") or "").strip().lower()
    if not email:
        raise InvitationValidationError("Invitee email is required.")

    invitee = db.query(User).filter(User.email == email).first()
    if not invitee:
        raise UserNotFound(f"User with email '{email}' not found.")
    if invitee.company_id is not None:
        raise InvitationValidationError("User already belongs to a company.")

    team_id = data.get("team_id")
    if team_id is not None and get_team(db, team_id).company_id != actor.company_id:
        raise PermissionDeniedError("Team belongs to another company.")

    hours = data.get("expires_in_hours") or settings.INVITATION_EXPIRE_HOURS
    invitation = Invitation(
        email=email,
        token=secrets.token_urlsafe(32),
        status="pending",
        company_id=actor.company_id,
        team_id=team_id,
        invited_by=actor.id,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=hours),
    )
    db.add(invitation)
    try:
        db.flush()
        record_activity(
            db,
            user_id=actor.id,
            action_type="Invited User",
            target_id=actor.company_id,
            target_type="company",
            description=f"Invited {email}",
            metadata={"invitationId": invitation.id, "email": email, "teamId": team_id},
        )
        db.commit()
        db.refresh(invitation)
        logger.info(f"Invited {email} to company {actor.company_id} (invitation {invitation.id})")
        return invitation
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to invite {email}: {e}")
        raise

def get_invitation_by_token(db: Session, token: str) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.token == token).first() if token else None
    if not invitation:
        raise InvitationNotFound("Invitation not found.")
    return invitation

def get_pending_invitations(db: Session, company_id: int) -> List[Invitation]:
    return (
        db.query(Invitation)
        .filter(Invitation.company_id == company_id, Invitation.status == "pending")
        .order_by(Invitation.invited_at.desc(), Invitation.id.desc())
        .all()
    )

def accept_invitation(db: Session, token: str, actor: Optional[User]) -> Invitation:
    """
    Принимает приглашение от имени приглашённого: переводит его в компанию
    (и в команду, если она указана) и пишет запись активности на него.
    Просроченное приглашение помечается expired.
    """
    if actor is None:
        raise NotAuthenticatedError()
    invitation = get_invitation_by_token(db, token)
    if invitation.status != "pending":
        raise InvitationValidationError("Invalid or expired invitation.")
    if (actor.email or "").lower() != invitation.email:
        raise PermissionDeniedError("Invitation was issued for another user.")

    now = datetime.now(timezone.utc)
    if as_utc(invitation.expires_at) < now:
        invitation.status = "expired"
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to expire invitation {invitation.id}: {e}")
            raise
        logger.info(f"Invitation {invitation.id} expired")
        raise InvitationValidationError("Invitation has expired.")
    if actor.company_id is not None:
        raise InvitationValidationError("User already belongs to a company.")

    company = get_company(db, invitation.company_id)
    team = get_team(db, invitation.team_id) if invitation.team_id is not None else None
    try:
        actor.company_id = company.id
        if team is not None and actor not in team.members:
            team.members.append(actor)
        invitation.status = "accepted"
        invitation.accepted_at = now
        record_activity(
            db,
            user_id=actor.id,
            action_type="Joined Company",
            target_id=company.id,
            target_type="company",
            description=f"Joined company '{company.name}'",
            metadata={"invitationId": invitation.id, "invitedBy": invitation.invited_by, "teamId": invitation.team_id},
        )
        db.commit()
        logger.info(f"User {actor.id} accepted invitation {invitation.id}")
        return invitation
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to accept invitation {invitation.id}: {e}")
        raise
