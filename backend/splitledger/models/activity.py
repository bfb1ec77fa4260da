"""
Activity log model for the team audit trail.
"""
from sqlalchemy import Column, String, Text, ForeignKey, Integer
from splitledger.db.base import BaseModel


class ActivityLog(BaseModel):
    """One ledger mutation, written in the same transaction as the change."""
    __tablename__ = "activity_logs"

    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False)  # e.g. ADDED_EXPENSE, VERIFIED_PAYMENT
    details = Column(Text, nullable=True)
