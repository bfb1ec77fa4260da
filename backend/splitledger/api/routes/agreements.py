"""
Mutual debt and settlement agreement routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.schemas.agreement import MutualDebt, AgreementCreate, AgreementRespond, AgreementResponse
from splitledger.core.cache import LedgerCache
from splitledger.core.clock import Clock
from splitledger.api.dependencies import get_current_member, get_cache, get_clock
from splitledger.services import agreement_service
from splitledger.services.team_service import require_member

router = APIRouter(prefix="/agreements", tags=["agreements"])


@router.get("/team/{team_id}/mutual-debts", response_model=List[MutualDebt])
async def get_mutual_debts(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Members the caller both owes and is owed by."""
    require_member(db, team_id, current_user.id)
    return agreement_service.detect_mutual_debts(db, team_id, current_user.id)


@router.get("/team/{team_id}/pending", response_model=List[AgreementResponse])
async def get_pending_agreements(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Pending agreements involving the caller."""
    require_member(db, team_id, current_user.id)
    return agreement_service.list_pending_agreements(db, team_id, current_user.id)


@router.post("/team/{team_id}", response_model=AgreementResponse, status_code=status.HTTP_201_CREATED)
async def propose_agreement(
    team_id: int,
    proposal: AgreementCreate,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Propose cancelling mutual debts with another member."""
    return agreement_service.propose_settlement_agreement(
        db,
        team_id=team_id,
        proposer_id=current_user.id,
        responder_id=proposal.responder_id,
        proposer_owes=proposal.proposer_owes,
        responder_owes=proposal.responder_owes,
        settlement_ids=proposal.settlement_ids,
        clock=clock
    )


@router.post("/{agreement_id}/respond", response_model=AgreementResponse)
async def respond_to_agreement(
    agreement_id: int,
    answer: AgreementRespond,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Responder accepts or rejects a pending agreement."""
    return agreement_service.respond_to_settlement_agreement(
        db,
        agreement_id=agreement_id,
        member_id=current_user.id,
        accept=answer.accept,
        clock=clock,
        cache=cache
    )
