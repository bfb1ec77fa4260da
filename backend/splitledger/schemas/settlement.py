"""
Pydantic schemas for Settlement entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from splitledger.models.settlement import SettlementStatus, PaymentMethod


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    expense_id: int
    owed_by: int
    owed_to: int
    amount_owed: Decimal
    status: SettlementStatus
    payment_method: Optional[PaymentMethod] = None
    proof_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    agreement_id: Optional[int] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentSubmit(BaseModel):
    """Schema for submitting a payment on one settlement."""
    method: PaymentMethod
    proof_uri: Optional[str] = None


class BatchPaymentSubmit(BaseModel):
    """Schema for submitting one payment covering several settlements."""
    settlement_ids: List[int]
    method: PaymentMethod
    proof_uri: Optional[str] = None


class PaymentVerify(BaseModel):
    """Schema for the creditor's verdict on a submitted payment."""
    accept: bool


class SkippedSettlement(BaseModel):
    """A settlement left untouched by a batch payment, with the reason."""
    settlement_id: int
    reason: str  # not_found, forbidden or invalid_state


class BatchPaymentResult(BaseModel):
    """Schema for batch payment outcome."""
    succeeded: List[int] = []
    skipped: List[SkippedSettlement] = []


class TeamBalances(BaseModel):
    """Open exposure of one member within a team."""
    team_id: int
    member_id: int
    you_owe: Decimal
    owed_to_you: Decimal
    you_owe_count: int  # Distinct creditors
    owed_to_you_count: int  # Distinct debtors


class ScheduleItem(BaseModel):
    """One upcoming monthly-plan installment owed by a member."""
    settlement_id: int
    expense_id: int
    description: str
    amount_owed: Decimal
    status: SettlementStatus
    owed_to: int
    deadline: date
    month_number: int
    total_months: int
