"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from splitledger.models.expense import ExpenseCategory
from splitledger.schemas.settlement import SettlementResponse


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    amount: Decimal
    description: str
    category: ExpenseCategory = ExpenseCategory.OTHER
    note: Optional[str] = None
    split_strategy: str = "equal"


class MonthlyExpenseCreate(BaseModel):
    """Schema for monthly plan creation."""
    total_amount: Decimal
    number_of_months: int
    deadline_day: int
    description: str
    category: ExpenseCategory = ExpenseCategory.OTHER


class ExpenseUpdate(BaseModel):
    """Schema for expense update. Amount and payer cannot change."""
    description: Optional[str] = None
    note: Optional[str] = None


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    team_id: int
    paid_by: int
    amount: Decimal
    currency: str
    description: str
    note: Optional[str] = None
    category: ExpenseCategory
    is_monthly: bool = False
    month_number: Optional[int] = None
    total_months: Optional[int] = None
    deadline: Optional[date] = None
    deadline_day: Optional[int] = None
    created_at: datetime
    settlements: List[SettlementResponse] = []

    class Config:
        from_attributes = True


class MonthlyPlanResponse(BaseModel):
    """Schema for monthly plan response."""
    expenses: List[ExpenseResponse]
    per_participant_amount: Decimal = Field(description="Preview only; settlements carry the exact amounts")

    class Config:
        from_attributes = True
