import pytest
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
from teamspace.crud.invitation import accept_invitation, get_pending_invitations, invite_user
from teamspace.crud.team import create_team
from teamspace.crud.user import create_user
from teamspace.models.activity import ActivityRecord
from teamspace.core.exceptions import (
    InvitationNotFound,
    InvitationValidationError,
    PermissionDeniedError,
    UserNotFound,
)


@pytest.fixture
def newcomer(db: Session):
    """
    Зарегистрированный пользователь без компании.
    """
    return create_user(db, {
        "username": "newcomer",
        "email": "newcomer@example.com",
        "password": "testpassword",
        "name": "carol",
    })


def test_invite_and_accept(db: Session, test_user, company, newcomer):
    invitation = invite_user(db, {"email": "Newcomer@example.com"}, test_user)
    assert invitation.status == "pending"
    assert invitation.company_id == company.id
    assert [i.id for i in get_pending_invitations(db, company.id)] == [invitation.id]

    accepted = accept_invitation(db, invitation.token, newcomer)
    assert accepted.status == "accepted"
    assert accepted.accepted_at is not None
    assert newcomer.company_id == company.id
    assert get_pending_invitations(db, company.id) == []

    record = (
        db.query(ActivityRecord)
        .filter(ActivityRecord.user_id == newcomer.id, ActivityRecord.action_type == "Joined Company")
        .one()
    )
    assert record.target_id == str(company.id)
    assert record.meta["invitedBy"] == test_user.id


def test_accept_with_team_adds_membership(db: Session, test_user, newcomer):
    team = create_team(db, {"name": "Core"}, test_user)
    invitation = invite_user(db, {"email": newcomer.email, "team_id": team.id}, test_user)
    accept_invitation(db, invitation.token, newcomer)
    assert newcomer.id in team.member_ids


def test_invite_requires_companyless_user(db: Session, test_user, outsider):
    with pytest.raises(UserNotFound):
        invite_user(db, {"email": "ghost@example.com"}, test_user)
    with pytest.raises(InvitationValidationError):
        invite_user(db, {"email": outsider.email}, test_user)


def test_invite_into_foreign_team_denied(db: Session, test_user, outsider, newcomer):
    foreign = create_team(db, {"name": "Globex Ops"}, outsider)
    with pytest.raises(PermissionDeniedError):
        invite_user(db, {"email": newcomer.email, "team_id": foreign.id}, test_user)


def test_accept_only_by_invitee(db: Session, test_user, teammate, newcomer):
    invitation = invite_user(db, {"email": newcomer.email}, test_user)
    with pytest.raises(PermissionDeniedError):
        accept_invitation(db, invitation.token, teammate)
    assert invitation.status == "pending"


def test_accept_twice_rejected(db: Session, test_user, newcomer):
    invitation = invite_user(db, {"email": newcomer.email}, test_user)
    accept_invitation(db, invitation.token, newcomer)
    with pytest.raises(InvitationValidationError):
        accept_invitation(db, invitation.token, newcomer)


def test_expired_invitation_is_marked(db: Session, test_user, newcomer):
    invitation = invite_user(db, {"email": newcomer.email}, test_user)
    invitation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()

    with pytest.raises(InvitationValidationError):
        accept_invitation(db, invitation.token, newcomer)
    db.refresh(invitation)
    assert invitation.status == "expired"
    assert newcomer.company_id is None


def test_unknown_token(db: Session, newcomer):
    with pytest.raises(InvitationNotFound):
        accept_invitation(db, "nope", newcomer)
