"""
Pydantic schemas for mutual debts and settlement agreements.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from splitledger.models.agreement import AgreementStatus


class MutualDebt(BaseModel):
    """Open debts running both ways between a member and one counterpart."""
    counterpart_id: int
    i_owe: Decimal
    they_owe: Decimal
    net_amount: Decimal  # they_owe - i_owe; positive means the counterpart still owes
    my_settlement_ids: List[int]
    their_settlement_ids: List[int]


class AgreementCreate(BaseModel):
    """Schema for proposing a settlement agreement."""
    responder_id: int
    proposer_owes: Decimal
    responder_owes: Decimal
    settlement_ids: List[int]


class AgreementRespond(BaseModel):
    """Schema for the responder's answer."""
    accept: bool


class AgreementResponse(BaseModel):
    """Schema for settlement agreement response."""
    id: int
    team_id: int
    proposer_id: int
    responder_id: int
    proposer_owes: Decimal
    responder_owes: Decimal
    net_amount: Decimal
    status: AgreementStatus
    settlement_ids: List[int]
    proposed_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
