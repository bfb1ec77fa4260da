"""
Shared route dependencies: caller identity, cache and clock.
"""
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from splitledger.core.cache import LedgerCache, NullCache
from splitledger.core.clock import Clock, system_clock
from splitledger.db.session import get_db
from splitledger.models.user import User


def get_current_member(
    x_member_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the caller from the X-Member-Id header set by the upstream gateway.
    Identity is established before requests reach the ledger.
    """
    if x_member_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing member identity"
        )
    user = db.query(User).filter(
        User.id == x_member_id,
        User.deleted_at.is_(None),
        User.is_active.is_(True)
    ).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown member"
        )
    return user


def get_cache(request: Request) -> LedgerCache:
    return getattr(request.app.state, "cache", None) or NullCache()


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", None) or system_clock
