"""
Team management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.schemas.team import TeamCreate, TeamResponse, TeamJoin, MemberAdd, TeamMemberResponse, ActivityLogResponse
from splitledger.schemas.settlement import TeamBalances
from splitledger.core.cache import LedgerCache
from splitledger.core.clock import Clock
from splitledger.core.utils import format_response
from splitledger.api.dependencies import get_current_member, get_cache, get_clock
from splitledger.services import team_service
from splitledger.services.activity_service import list_activity
from splitledger.services.settlement_service import get_team_balances

router = APIRouter(prefix="/teams", tags=["teams"])


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_data: TeamCreate,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Create a new team with the caller as creator."""
    return team_service.create_team(db, team_data.name, current_user.id, clock=clock)


@router.post("/join", response_model=TeamResponse)
async def join_team(
    join_data: TeamJoin,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache)
):
    """Join a team with its invite code."""
    return team_service.join_team(db, join_data.code, current_user.id, cache=cache)


@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_members(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache)
):
    """List active members."""
    team_service.require_member(db, team_id, current_user.id)
    return team_service.list_members(db, team_id, cache=cache)


@router.post("/{team_id}/members", status_code=status.HTTP_201_CREATED)
async def add_member(
    team_id: int,
    member_data: MemberAdd,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache)
):
    """Add a user to the team. Only members can invite."""
    team_service.require_member(db, team_id, current_user.id)
    team_service.add_member(db, team_id, member_data.user_id, cache=cache)
    return format_response({"team_id": team_id, "user_id": member_data.user_id}, message="Member added")


@router.delete("/{team_id}/members/me")
async def leave_team(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Leave the team. Open settlements stay on the ledger."""
    team_service.remove_member(db, team_id, current_user.id, clock=clock, cache=cache)
    return format_response({"team_id": team_id, "user_id": current_user.id}, message="Left team")


@router.get("/{team_id}/balances", response_model=TeamBalances)
async def get_balances(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache)
):
    """What the caller owes and is owed in this team."""
    team_service.require_member(db, team_id, current_user.id)
    return get_team_balances(db, team_id, current_user.id, cache=cache)


@router.get("/{team_id}/activity", response_model=List[ActivityLogResponse])
async def get_activity(
    team_id: int,
    limit: int = 50,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Recent ledger activity."""
    team_service.require_member(db, team_id, current_user.id)
    return list_activity(db, team_id, limit=min(limit, 200))


@router.delete("/{team_id}")
async def delete_team(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Soft-delete the team with all its expenses and settlements."""
    team_service.delete_team(db, team_id, current_user.id, clock=clock, cache=cache)
    return format_response({"team_id": team_id}, message="Team deleted")
