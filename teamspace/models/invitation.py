# teamspace/models/invitation.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from teamspace.models.base import Base

INVITATION_STATUSES = ("pending", "accepted", "expired")


class Invitation(Base):
    """
    Invitation — приглашение пользователя (по email) в компанию и, опционально, в команду.
    Принимается по одноразовому токену.
    """
    __tablename__ = "invitations"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    email: str = Column(String(255), nullable=False, index=True, doc="Email приглашённого")
    token: str = Column(String(64), nullable=False, unique=True, index=True)
    status: str = Column(String(16), nullable=False, default="pending", doc="pending, accepted, expired")
    company_id: int = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: int = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    invited_by: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    invited_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at: datetime = Column(DateTime(timezone=True), nullable=False)
    accepted_at: datetime = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Invitation(id={self.id}, email='{self.email}', status={self.status})>"
