"""
Settlement management routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.models.settlement import SettlementStatus
from splitledger.schemas.settlement import (
    SettlementResponse, PaymentSubmit, BatchPaymentSubmit, BatchPaymentResult, PaymentVerify, ScheduleItem
)
from splitledger.core.cache import LedgerCache
from splitledger.core.clock import Clock
from splitledger.api.dependencies import get_current_member, get_cache, get_clock
from splitledger.services import settlement_service
from splitledger.services.team_service import require_member

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.get("/team/{team_id}", response_model=List[SettlementResponse])
async def list_settlements(
    team_id: int,
    status: Optional[SettlementStatus] = None,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """List a team's settlements, optionally filtered by status."""
    require_member(db, team_id, current_user.id)
    return settlement_service.list_team_settlements(db, team_id, status)


@router.get("/team/{team_id}/schedule", response_model=List[ScheduleItem])
async def get_schedule(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Upcoming monthly installments owed by the caller."""
    require_member(db, team_id, current_user.id)
    return settlement_service.get_payment_schedule(db, team_id, current_user.id)


@router.post("/batch-pay", response_model=BatchPaymentResult)
async def pay_batch(
    payment: BatchPaymentSubmit,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache)
):
    """Submit one payment for several settlements; reports which were skipped."""
    return settlement_service.submit_batch_payment(
        db,
        settlement_ids=payment.settlement_ids,
        member_id=current_user.id,
        method=payment.method,
        proof_uri=payment.proof_uri,
        cache=cache
    )


@router.post("/{settlement_id}/pay", response_model=SettlementResponse)
async def pay_settlement(
    settlement_id: int,
    payment: PaymentSubmit,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache)
):
    """Debtor submits a payment for verification."""
    return settlement_service.submit_payment(
        db,
        settlement_id=settlement_id,
        member_id=current_user.id,
        method=payment.method,
        proof_uri=payment.proof_uri,
        cache=cache
    )


@router.post("/{settlement_id}/verify", response_model=SettlementResponse)
async def verify_settlement(
    settlement_id: int,
    verdict: PaymentVerify,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Creditor confirms or rejects a submitted payment."""
    return settlement_service.verify_payment(
        db,
        settlement_id=settlement_id,
        member_id=current_user.id,
        accept=verdict.accept,
        clock=clock,
        cache=cache
    )
