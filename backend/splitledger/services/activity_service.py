"""
Activity log helpers.
"""
from typing import List
from sqlalchemy.orm import Session
from splitledger.models.activity import ActivityLog


def log_activity(db: Session, team_id: int, user_id: int, action: str, details: str = None) -> ActivityLog:
    """Stage an activity entry in the caller's transaction."""
    entry = ActivityLog(team_id=team_id, user_id=user_id, action=action, details=details)
    db.add(entry)
    return entry


def list_activity(db: Session, team_id: int, limit: int = 50) -> List[ActivityLog]:
    return db.query(ActivityLog).filter(
        ActivityLog.team_id == team_id
    ).order_by(ActivityLog.id.desc()).limit(limit).all()
