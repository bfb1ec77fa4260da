"""
Expense model for tracking spending.
"""
from sqlalchemy import Column, String, Numeric, Date, DateTime, Boolean, ForeignKey, Integer, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel
import enum


class ExpenseCategory(str, enum.Enum):
    """Expense category enumeration."""
    FOOD = "food"
    PRINTING = "printing"
    SUPPLIES = "supplies"
    OTHER = "other"


class Expense(BaseModel):
    """Expense model representing a single spend event. Amount and payer never change."""
    __tablename__ = "expenses"

    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="PHP")
    description = Column(String(500), nullable=False)
    note = Column(Text, nullable=True)
    category = Column(SQLEnum(ExpenseCategory), nullable=False, default=ExpenseCategory.OTHER)

    # Monthly plan tagging
    is_monthly = Column(Boolean, default=False, nullable=False)
    month_number = Column(Integer, nullable=True)
    total_months = Column(Integer, nullable=True)
    deadline = Column(Date, nullable=True, index=True)
    deadline_day = Column(Integer, nullable=True)

    deleted_at = Column(DateTime, nullable=True, index=True)

    # Relationships
    team = relationship("Team", back_populates="expenses")
    payer = relationship("User", foreign_keys=[paid_by], back_populates="expenses_paid")
    settlements = relationship("Settlement", back_populates="expense", order_by="Settlement.owed_by")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
