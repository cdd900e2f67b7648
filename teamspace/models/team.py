# teamspace/models/team.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Table, UniqueConstraint, func
from sqlalchemy.orm import relationship
from teamspace.models.base import Base

team_members = Table(
    "team_members",
    Base.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("added_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)


class Company(Base):
    """
    Company — арендатор (tenant). Пользователи, команды и проекты принадлежат компании.
    """
    __tablename__ = "companies"

    id: int = Column(Integer, primary_key=True)
    name: str = Column(String(128), nullable=False, unique=True, index=True, doc="Название компании")
    created_by: int = Column(Integer, nullable=True, doc="ID создателя")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"


class Team(Base):
    """
    Team — команда пользователей внутри компании. Владелец всегда входит в состав.
    """
    __tablename__ = "teams"

    id: int = Column(Integer, primary_key=True)
    name: str = Column(String(128), nullable=False, index=True, doc="Название команды")
    description: str = Column(String(255), nullable=True, doc="Описание")
    company_id: int = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id: int = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True, doc="ID владельца")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    members = relationship("User", secondary=team_members, order_by="User.id")

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_teams_company_name"),
    )

    @property
    def member_ids(self):
        return [user.id for user in self.members]

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}', company_id={self.company_id})>"
