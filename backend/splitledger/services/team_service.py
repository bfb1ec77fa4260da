"""
Team service: member directory and team lifecycle.
"""
import logging
import secrets
import string
from typing import List, Optional
from sqlalchemy.orm import Session
from splitledger.core.cache import LedgerCache, NullCache, cache_keys
from splitledger.core.clock import Clock, system_clock
from splitledger.core.config import settings
from splitledger.core.exceptions import Forbidden, NotFound, ValidationError
from splitledger.db.session import transaction
from splitledger.models.team import Team, TeamMember
from splitledger.models.user import User
from splitledger.models.expense import Expense
from splitledger.models.settlement import Settlement
from splitledger.services.activity_service import log_activity

logger = logging.getLogger(__name__)

TEAM_CODE_LENGTH = 6
TEAM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def create_user(db: Session, name: str, email: str, gcash_number: Optional[str] = None) -> User:
    """Register a member in the directory."""
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("Email is already registered")

    with transaction(db):
        user = User(name=name.strip(), email=email, gcash_number=gcash_number)
        db.add(user)
    db.refresh(user)
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not user or not user.is_active:
        raise NotFound("User not found")
    return user


def get_team(db: Session, team_id: int) -> Team:
    """Get a live team or raise NotFound."""
    team = db.query(Team).filter(Team.id == team_id, Team.deleted_at.is_(None)).first()
    if not team:
        raise NotFound("Team not found")
    return team


def _active_members_query(db: Session, team_id: int):
    return db.query(TeamMember).join(User, User.id == TeamMember.user_id).filter(
        TeamMember.team_id == team_id,
        TeamMember.left_at.is_(None),
        User.is_active.is_(True),
        User.deleted_at.is_(None),
    )


def get_active_member_ids(db: Session, team_id: int) -> List[int]:
    """Active member ids of a team, ascending."""
    rows = _active_members_query(db, team_id).with_entities(TeamMember.user_id).all()
    return sorted(user_id for (user_id,) in rows)


def list_members(db: Session, team_id: int, cache: LedgerCache = None) -> List[dict]:
    """Active members with names, cached under members:{team}."""
    get_team(db, team_id)
    cache = cache or NullCache()

    def fetch():
        rows = _active_members_query(db, team_id).with_entities(
            User.id, User.name, User.email, User.gcash_number, TeamMember.is_creator
        ).order_by(User.id).all()
        return [
            {
                "id": row.id,
                "name": row.name,
                "email": row.email,
                "gcash_number": row.gcash_number,
                "is_creator": row.is_creator,
            }
            for row in rows
        ]

    return cache.cached(cache_keys.team_members(team_id), fetch, settings.CACHE_TTL_MEMBERS)


def require_member(db: Session, team_id: int, user_id: int) -> TeamMember:
    """Raise Forbidden unless user is an active member of the team."""
    member = _active_members_query(db, team_id).filter(TeamMember.user_id == user_id).first()
    if not member:
        raise Forbidden("Not a member of this team")
    return member


def create_team(
    db: Session,
    name: str,
    creator_id: int,
    clock: Clock = system_clock
) -> Team:
    """Create a team with its creator as first member."""
    if not name or not name.strip():
        raise ValidationError("Team name is required")
    get_user(db, creator_id)

    with transaction(db):
        team = Team(name=name.strip(), code=_new_team_code(db))
        db.add(team)
        db.flush()
        db.add(TeamMember(team_id=team.id, user_id=creator_id, is_creator=True))
        log_activity(db, team.id, creator_id, "CREATED_TEAM", f"Created team '{team.name}'")
    db.refresh(team)
    logger.info(f"Created team {team.id} for user {creator_id}")
    return team


def add_member(
    db: Session,
    team_id: int,
    user_id: int,
    cache: LedgerCache = None
) -> TeamMember:
    """Add a user to a team, re-activating a previous membership if one exists."""
    get_team(db, team_id)
    user = get_user(db, user_id)

    with transaction(db):
        member = db.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id
        ).first()
        if member and member.left_at is None:
            raise ValidationError("User is already a member of this team")
        if member:
            member.left_at = None
        else:
            member = TeamMember(team_id=team_id, user_id=user_id)
            db.add(member)
        log_activity(db, team_id, user_id, "JOINED_TEAM", f"{user.name} joined the team")
    (cache or NullCache()).invalidate_team(team_id)
    return member


def _new_team_code(db: Session) -> str:
    while True:
        code = "".join(secrets.choice(TEAM_CODE_ALPHABET) for _ in range(TEAM_CODE_LENGTH))
        if not db.query(Team.id).filter(Team.code == code).first():
            return code


def get_team_by_code(db: Session, code: str) -> Team:
    """Look up a live team by its invite code (case-insensitive)."""
    team = db.query(Team).filter(
        Team.code == (code or "").strip().upper(),
        Team.deleted_at.is_(None)
    ).first()
    if not team:
        raise NotFound("Invalid team code")
    return team


def join_team(db: Session, code: str, user_id: int, cache: LedgerCache = None) -> Team:
    """Join the team the invite code belongs to."""
    team = get_team_by_code(db, code)
    add_member(db, team.id, user_id, cache=cache)
    logger.info(f"User {user_id} joined team {team.id} by invite code")
    return team


def remove_member(
    db: Session,
    team_id: int,
    user_id: int,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> None:
    """Mark a membership as left. Existing settlements are untouched."""
    get_team(db, team_id)
    with transaction(db):
        member = require_member(db, team_id, user_id)
        member.left_at = clock.now()
        log_activity(db, team_id, user_id, "LEFT_TEAM", "Left the team")
    (cache or NullCache()).invalidate_team(team_id, [user_id])


def delete_team(
    db: Session,
    team_id: int,
    caller_id: int,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> None:
    """
    Soft-delete a team and cascade the tombstone over its expenses and their
    settlements, all in one transaction. Only the creator may do this.
    """
    team = get_team(db, team_id)
    member = require_member(db, team_id, caller_id)
    if not member.is_creator:
        raise Forbidden("Only the team creator can delete the team")

    member_ids = get_active_member_ids(db, team_id)
    now = clock.now()
    with transaction(db):
        team.deleted_at = now
        expenses = db.query(Expense).filter(
            Expense.team_id == team_id,
            Expense.deleted_at.is_(None)
        ).all()
        for expense in expenses:
            cascade_soft_delete(db, expense, now)
        log_activity(db, team_id, caller_id, "DELETED_TEAM", f"Deleted team '{team.name}'")
    (cache or NullCache()).invalidate_team(team_id, member_ids)
    logger.info(f"Deleted team {team_id} with {len(expenses)} expenses")


def cascade_soft_delete(db: Session, expense: Expense, now) -> int:
    """Tombstone an expense and every live settlement under it. Returns settlements touched."""
    expense.deleted_at = now
    settlements = db.query(Settlement).filter(
        Settlement.expense_id == expense.id,
        Settlement.deleted_at.is_(None)
    ).all()
    for settlement in settlements:
        settlement.deleted_at = now
    return len(settlements)
