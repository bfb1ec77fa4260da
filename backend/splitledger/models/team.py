"""
Team model for expense-sharing groups.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel


class Team(BaseModel):
    """Team model representing a group that shares expenses."""
    __tablename__ = "teams"

    name = Column(String(200), nullable=False)
    code = Column(String(6), unique=True, nullable=False, index=True)  # Invite code for joining
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="team")


class TeamMember(BaseModel):
    """Junction table for Team and User many-to-many relationship."""
    __tablename__ = "team_members"

    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_creator = Column(Boolean, default=False, nullable=False)
    left_at = Column(DateTime, nullable=True)  # Set when the member leaves; row is kept

    # Relationships
    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='uq_team_user_member'),
    )
